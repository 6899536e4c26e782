from django.db import models


class Country(models.Model):
    # id — auto-generated
    # name — natural key, the refresh upserts on it
    name = models.CharField(max_length=200, unique=True)
    capital = models.CharField(max_length=200, null=True, blank=True)
    region = models.CharField(max_length=100, null=True, blank=True, db_index=True)
    population = models.BigIntegerField(default=0)
    # currency_code — first currency of the country, null when it has none
    currency_code = models.CharField(max_length=10, null=True, blank=True, db_index=True)
    # exchange_rate — units of currency per 1 unit of the base currency; null when not available
    exchange_rate = models.FloatField(null=True, blank=True)
    # estimated_gdp — 0 without a currency, null when the currency has no rate
    estimated_gdp = models.FloatField(null=True, blank=True, db_index=True)
    flag_url = models.URLField(max_length=500, null=True, blank=True)
    # last_refreshed_at — timestamp of the refresh run that last wrote the row
    last_refreshed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "countries"
        verbose_name_plural = "countries"

    def __str__(self):
        return self.name
