import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from django.conf import settings
from django.core.cache import cache
from django.db import DatabaseError, transaction
from django.db.models import F

from .exceptions import PersistenceError, RefreshInProgressError
from .models import Country
from .serializers import RefreshRecordSerializer
from .sources import CountriesAPI, ExchangeRatesAPI
from .summary import TOP_N, generate_summary_image
from .utils import estimate_gdp, get_now, get_summary_image_path, make_multiplier, normalize_country

logger = logging.getLogger(__name__)

INSERTED = "inserted"
UPDATED = "updated"
FAILED = "failed"

REFRESH_LOCK_KEY = "countries:refresh-lock"

# Overwritten on every upsert; created_at is never touched.
MUTABLE_FIELDS = [
    "capital", "region", "population", "currency_code",
    "exchange_rate", "estimated_gdp", "flag_url", "last_refreshed_at",
]


@dataclass
class RefreshConfig:
    countries_url: str
    exchange_url: str
    base_currency: str = "USD"
    timeout: float = 15
    image_path: str = "cache/summary.png"
    lock_timeout: int = 600

    @classmethod
    def from_settings(cls):
        return cls(
            countries_url=settings.COUNTRIES_API_URL,
            exchange_url=settings.EXCHANGE_API_URL,
            base_currency=settings.BASE_CURRENCY,
            timeout=settings.EXTERNAL_TIMEOUT,
            image_path=get_summary_image_path(),
            lock_timeout=settings.REFRESH_LOCK_TIMEOUT,
        )


@dataclass
class RecordOutcome:
    name: Optional[str]
    status: str
    error: Optional[object] = None


@dataclass
class RefreshReport:
    last_refreshed_at: datetime
    outcomes: List[RecordOutcome] = field(default_factory=list)
    total: int = 0
    image_path: Optional[str] = None

    def _count(self, status):
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def inserted(self):
        return self._count(INSERTED)

    @property
    def updated(self):
        return self._count(UPDATED)

    @property
    def failures(self):
        return [o for o in self.outcomes if o.status == FAILED]

    def as_dict(self):
        return {
            "last_refreshed_at": self.last_refreshed_at.isoformat(),
            "inserted": self.inserted,
            "updated": self.updated,
            "failed": len(self.failures),
            "total_countries": self.total,
            "errors": [{"name": o.name, "details": o.error} for o in self.failures],
        }


def upsert_country(record, refreshed_at):
    """
    Insert or update one country matched by name. Returns INSERTED or UPDATED.
    Each call commits on its own; earlier rows survive a later failure.
    """
    name = record["name"]
    defaults = {key: record.get(key) for key in MUTABLE_FIELDS}
    defaults["last_refreshed_at"] = refreshed_at
    try:
        with transaction.atomic():
            _, created = Country.objects.update_or_create(name=name, defaults=defaults)
    except (DatabaseError, OverflowError) as e:
        raise PersistenceError(f"Could not save {name}: {e}", name=name) from e
    return INSERTED if created else UPDATED


def gdp_ranking():
    """Countries by estimated GDP, highest first, nulls last."""
    return Country.objects.order_by(F("estimated_gdp").desc(nulls_last=True), "id")


def read_aggregates():
    try:
        total = Country.objects.count()
        top5 = list(gdp_ranking().values("name", "estimated_gdp")[:TOP_N])
    except DatabaseError as e:
        raise PersistenceError(f"Could not read back countries: {e}") from e
    return total, top5


@contextmanager
def refresh_lock(timeout):
    """Allow a single refresh at a time across everything sharing the cache."""
    token = uuid.uuid4().hex
    if not cache.add(REFRESH_LOCK_KEY, token, timeout):
        raise RefreshInProgressError("A refresh is already running")
    try:
        yield
    finally:
        # the lock may have expired and been taken by another run
        if cache.get(REFRESH_LOCK_KEY) == token:
            cache.delete(REFRESH_LOCK_KEY)


class RefreshPipeline:
    """
    Fetch countries and rates, upsert one row per country, then render
    the summary image. Sources are injectable for tests.
    """

    def __init__(self, config, countries_source=None, rates_source=None,
                 clock=get_now, multiplier=make_multiplier):
        self.config = config
        self.countries_source = countries_source or CountriesAPI(config.countries_url, config.timeout)
        self.rates_source = rates_source or ExchangeRatesAPI(config.exchange_url, config.timeout)
        self.clock = clock
        self.multiplier = multiplier

    def run(self):
        with refresh_lock(self.config.lock_timeout):
            return self._run()

    def _run(self):
        # Upstream errors propagate before anything is written.
        logger.info("Refresh: fetching countries")
        countries_data = self.countries_source.fetch_countries()
        logger.info("Refresh: fetching %s exchange rates", self.config.base_currency)
        rates = self.rates_source.fetch_rates(self.config.base_currency)

        now = self.clock()
        report = RefreshReport(last_refreshed_at=now)
        logger.info("Refresh: processing %d countries", len(countries_data))
        for raw in countries_data:
            report.outcomes.append(self.process(raw, rates, now))

        report.total, top5 = read_aggregates()
        report.image_path = generate_summary_image(report.total, top5, now, self.config.image_path)

        logger.info(
            "Refresh done: %d inserted, %d updated, %d failed, %d total",
            report.inserted, report.updated, len(report.failures), report.total,
        )
        return report

    def build_record(self, raw, rates):
        """Normalize, validate and price one raw country; returns (record, errors)."""
        record = normalize_country(raw)
        if record["population"] is None:
            record["population"] = 0

        serializer = RefreshRecordSerializer(data=record)
        if not serializer.is_valid():
            return record, serializer.errors.get("details", serializer.errors)

        record = dict(serializer.validated_data)
        code = record.get("currency_code") or None
        rate = rates.get(code) if code else None
        record["currency_code"] = code
        record["exchange_rate"] = rate
        record["estimated_gdp"] = estimate_gdp(record["population"], code, rate, self.multiplier())
        return record, None

    def process(self, raw, rates, now):
        record, errors = self.build_record(raw, rates)
        if errors:
            logger.warning("Skipping invalid country %r: %s", record.get("name"), errors)
            return RecordOutcome(record.get("name"), FAILED, errors)
        try:
            status = upsert_country(record, now)
        except PersistenceError as e:
            logger.warning("%s", e)
            return RecordOutcome(record["name"], FAILED, str(e))
        return RecordOutcome(record["name"], status)


def refresh_country_data():
    """Run one refresh with the configuration from settings."""
    return RefreshPipeline(RefreshConfig.from_settings()).run()
