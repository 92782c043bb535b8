"""Exchange rate provider with a TTL cache and a static fallback.

The provider is an injected service. Callers take one snapshot from
get_rates() and thread it through a whole computation instead of querying
the provider again mid-run.
"""

import logging
import threading
from collections.abc import Callable
from datetime import date, datetime, timedelta

from .clients.exchange_rates import ExchangeRateClient
from .config import Settings
from .currencies import FALLBACK_BASE_CURRENCY, FALLBACK_RATES
from .exceptions import RateFetchError
from .models import ExchangeRateSnapshot

logger = logging.getLogger(__name__)

RateFetcher = Callable[[], ExchangeRateSnapshot]


def fallback_snapshot(now: datetime | None = None) -> ExchangeRateSnapshot:
    """The built-in USD-based rate table. Always available."""
    now = now or datetime.now()
    return ExchangeRateSnapshot(
        base=FALLBACK_BASE_CURRENCY,
        as_of=now.date(),
        rates=dict(FALLBACK_RATES),
        fetched_at=now,
        source="fallback",
    )


def http_fetcher(settings: Settings) -> RateFetcher:
    """Build a fetcher that calls the configured live rates endpoint."""

    def fetch() -> ExchangeRateSnapshot:
        with ExchangeRateClient(
            base_url=settings.exchange_rate_api_url,
            timeout=settings.rate_fetch_timeout,
        ) as client:
            return client.get_latest(settings.rate_base_currency)

    return fetch


class ExchangeRateProvider:
    """Supplies rate snapshots, caching live results for a fixed window."""

    def __init__(
        self,
        fetcher: RateFetcher,
        ttl: timedelta = timedelta(hours=1),
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize the provider.

        Args:
            fetcher: Performs one live fetch; should raise RateFetchError on failure
            ttl: How long a live snapshot stays valid
            clock: Source of the current time
        """
        self.fetcher = fetcher
        self.ttl = ttl
        self.clock = clock
        self._lock = threading.Lock()
        self._cached: ExchangeRateSnapshot | None = None
        self._cached_at: datetime | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "ExchangeRateProvider":
        return cls(
            fetcher=http_fetcher(settings),
            ttl=timedelta(seconds=settings.rate_cache_ttl_seconds),
        )

    @property
    def cached_snapshot(self) -> ExchangeRateSnapshot | None:
        with self._lock:
            return self._cached

    def clear_cache(self):
        """Drop the cached snapshot so the next call fetches."""
        with self._lock:
            self._cached = None
            self._cached_at = None

    def get_rates(self) -> ExchangeRateSnapshot:
        """
        Get a rate snapshot.

        Returns the cached snapshot while it is younger than the TTL.
        Otherwise fetches live rates and caches them. If the fetch fails for
        any reason, returns the static fallback table (which is not cached).

        The lock is held across the fetch, so concurrent cache misses
        result in a single request.
        """
        with self._lock:
            now = self.clock()
            if (
                self._cached is not None
                and self._cached_at is not None
                and now - self._cached_at < self.ttl
            ):
                logger.debug(f"Rate cache hit (fetched {self._cached_at.isoformat()})")
                return self._cached

            logger.debug("Rate cache miss")
            return self._fetch_locked(now)

    def refresh(self) -> ExchangeRateSnapshot:
        """Force a live fetch, falling back to static rates on failure."""
        with self._lock:
            return self._fetch_locked(self.clock())

    def _fetch_locked(self, now: datetime) -> ExchangeRateSnapshot:
        try:
            snapshot = self.fetcher()
        except RateFetchError as e:
            logger.warning(f"Using fallback exchange rates: {e}")
            return fallback_snapshot(now)
        except Exception:
            # The fallback must always be reachable, whatever the fetcher does
            logger.exception("Unexpected error fetching exchange rates; using fallback")
            return fallback_snapshot(now)

        self._cached = snapshot
        self._cached_at = now
        logger.info(
            f"Fetched {len(snapshot.rates)} exchange rates "
            f"(base {snapshot.base}, as of {snapshot.as_of})"
        )
        return snapshot

    @staticmethod
    def is_stale(snapshot: ExchangeRateSnapshot, today: date | None = None) -> bool:
        """True when a snapshot's as-of date is before today."""
        return snapshot.as_of < (today or date.today())
