from rest_framework import serializers
from .models import Country

# Largest value a BigIntegerField column holds
MAX_POPULATION = 2 ** 63 - 1


class CountrySerializer(serializers.ModelSerializer):
    class Meta:
        model = Country
        fields = [
            'id', 'name', 'capital', 'region', 'population',
            'currency_code', 'exchange_rate', 'estimated_gdp',
            'flag_url', 'last_refreshed_at', 'created_at'
        ]
        read_only_fields = fields


class RefreshRecordSerializer(serializers.Serializer):
    """
    Validates one normalized record before it is priced and upserted.
    Only name and population are required, everything else may be null
    because the external sources are partial.
    """
    name = serializers.CharField(max_length=200, allow_null=True, required=False)
    capital = serializers.CharField(max_length=200, allow_null=True, allow_blank=True, required=False)
    region = serializers.CharField(max_length=100, allow_null=True, allow_blank=True, required=False)
    population = serializers.IntegerField(min_value=0, max_value=MAX_POPULATION, allow_null=True, required=False)
    currency_code = serializers.CharField(max_length=10, allow_null=True, allow_blank=True, required=False)
    flag_url = serializers.CharField(max_length=500, allow_null=True, allow_blank=True, required=False)

    def validate(self, data):
        errors = {}
        if not data.get("name"):
            errors["name"] = "is required"
        if data.get("population") is None:
            errors["population"] = "is required"

        if errors:
            raise serializers.ValidationError({
                "error": "Validation failed",
                "details": errors
            })

        return data
