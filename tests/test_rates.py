"""Tests for the exchange rate client and cached provider."""

import json
import threading
import time
from datetime import date, datetime, timedelta
from decimal import Decimal
from unittest.mock import MagicMock

import httpx
import pytest

from trip_settle.clients.exchange_rates import ExchangeRateClient, parse_rates_payload
from trip_settle.exceptions import RateFetchError
from trip_settle.models import ExchangeRateSnapshot
from trip_settle.money import Money
from trip_settle.normalizer import normalize
from trip_settle.rates import ExchangeRateProvider, fallback_snapshot


class FakeClock:
    """A clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 9, 22, 12, 0, 0))


@pytest.fixture
def live_snapshot():
    return ExchangeRateSnapshot(
        base="USD",
        as_of=date(2025, 9, 22),
        rates={"USD": Decimal("1"), "JPY": Decimal("147.8"), "EUR": Decimal("0.85")},
        source="live",
    )


class TestExchangeRateProvider:
    """Tests for ExchangeRateProvider caching and fallback."""

    def test_cache_hit_within_ttl(self, clock, live_snapshot):
        fetcher = MagicMock(return_value=live_snapshot)
        provider = ExchangeRateProvider(fetcher, ttl=timedelta(hours=1), clock=clock)

        first = provider.get_rates()
        clock.advance(minutes=59)
        second = provider.get_rates()

        assert first is live_snapshot
        assert second is live_snapshot
        fetcher.assert_called_once()

    def test_refetch_after_ttl(self, clock, live_snapshot):
        newer = live_snapshot.model_copy(update={"as_of": date(2025, 9, 23)})
        fetcher = MagicMock(side_effect=[live_snapshot, newer])
        provider = ExchangeRateProvider(fetcher, ttl=timedelta(hours=1), clock=clock)

        provider.get_rates()
        clock.advance(hours=1)
        result = provider.get_rates()

        assert result is newer
        assert fetcher.call_count == 2
        assert provider.cached_snapshot is newer

    def test_fallback_on_fetch_error(self, clock, caplog):
        fetcher = MagicMock(side_effect=RateFetchError("timeout"))
        provider = ExchangeRateProvider(fetcher, clock=clock)

        result = provider.get_rates()

        assert result.source == "fallback"
        assert result.base == "USD"
        assert result.rate_for("JPY") == Decimal("149.50")
        assert result.as_of == date(2025, 9, 22)
        assert "fallback" in caplog.text

    def test_fallback_on_unexpected_error(self, clock):
        fetcher = MagicMock(side_effect=RuntimeError("boom"))
        provider = ExchangeRateProvider(fetcher, clock=clock)

        assert provider.get_rates().source == "fallback"

    def test_fallback_is_not_cached(self, clock, live_snapshot):
        fetcher = MagicMock(side_effect=[RateFetchError("down"), live_snapshot])
        provider = ExchangeRateProvider(fetcher, clock=clock)

        assert provider.get_rates().source == "fallback"
        assert provider.cached_snapshot is None
        assert provider.get_rates() is live_snapshot
        assert fetcher.call_count == 2

    def test_refresh_bypasses_cache(self, clock, live_snapshot):
        fetcher = MagicMock(return_value=live_snapshot)
        provider = ExchangeRateProvider(fetcher, clock=clock)

        provider.get_rates()
        provider.refresh()

        assert fetcher.call_count == 2

    def test_clear_cache(self, clock, live_snapshot):
        fetcher = MagicMock(return_value=live_snapshot)
        provider = ExchangeRateProvider(fetcher, clock=clock)

        provider.get_rates()
        provider.clear_cache()
        provider.get_rates()

        assert fetcher.call_count == 2

    def test_concurrent_misses_fetch_once(self, live_snapshot):
        calls = []

        def slow_fetch():
            calls.append(1)
            time.sleep(0.05)
            return live_snapshot

        provider = ExchangeRateProvider(slow_fetch)
        results = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            results.append(provider.get_rates())

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(calls) == 1
        assert len(results) == 8
        assert all(r is live_snapshot for r in results)

    def test_is_stale(self, live_snapshot):
        assert ExchangeRateProvider.is_stale(live_snapshot, today=date(2025, 9, 23))
        assert not ExchangeRateProvider.is_stale(live_snapshot, today=date(2025, 9, 22))


class TestFallbackSnapshot:
    def test_covers_common_currencies(self):
        snapshot = fallback_snapshot(datetime(2025, 1, 1))

        assert snapshot.source == "fallback"
        assert snapshot.as_of == date(2025, 1, 1)
        for code in ("JPY", "USD", "EUR", "GBP", "KRW", "THB"):
            assert snapshot.supports(code)

    def test_failed_fetch_still_converts(self, clock):
        """After a failed fetch, every rate is positive and JPY/USD/EUR convert."""
        fetcher = MagicMock(side_effect=RateFetchError("connection refused"))
        snapshot = ExchangeRateProvider(fetcher, clock=clock).get_rates()

        assert snapshot.source == "fallback"
        assert all(rate > 0 for rate in snapshot.rates.values())

        yen = Money(amount=Decimal("14950"), currency="JPY")
        dollars = normalize(yen, "JPY", "USD", snapshot)
        euros = normalize(dollars, "USD", "EUR", snapshot)

        assert dollars == Money(amount=Decimal("100"), currency="USD")
        assert euros.currency == "EUR"
        assert euros.amount == Decimal("92")
        assert normalize(euros, "EUR", "JPY", snapshot).amount == Decimal("14950")


def mock_transport(handler):
    return httpx.MockTransport(handler)


class TestExchangeRateClient:
    """Tests for ExchangeRateClient against a mocked transport."""

    def test_get_latest(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            body = '{"base": "USD", "date": "2025-09-22", "rates": {"USD": 1, "JPY": 147.83, "EUR": 0.8512}}'
            return httpx.Response(200, content=body.encode())

        with ExchangeRateClient(
            base_url="https://rates.test/v4/latest", transport=mock_transport(handler)
        ) as client:
            snapshot = client.get_latest("USD")

        assert seen["url"] == "https://rates.test/v4/latest/USD"
        assert snapshot.source == "live"
        assert snapshot.as_of == date(2025, 9, 22)
        # Decoded as exact decimals, not binary floats
        assert snapshot.rates["JPY"] == Decimal("147.83")
        assert snapshot.rates["EUR"] == Decimal("0.8512")

    def test_server_error(self):
        def handler(request):
            return httpx.Response(500, text="oops")

        with ExchangeRateClient(transport=mock_transport(handler)) as client:
            with pytest.raises(RateFetchError):
                client.get_latest("USD")

    def test_not_json(self):
        def handler(request):
            return httpx.Response(200, text="<html>maintenance</html>")

        with ExchangeRateClient(transport=mock_transport(handler)) as client:
            with pytest.raises(RateFetchError, match="not JSON"):
                client.get_latest("USD")

    def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("no route", request=request)

        with ExchangeRateClient(transport=mock_transport(handler)) as client:
            with pytest.raises(RateFetchError):
                client.get_latest("USD")

    def test_wrong_shape(self):
        def handler(request):
            return httpx.Response(200, content=json.dumps({"result": "error"}).encode())

        with ExchangeRateClient(transport=mock_transport(handler)) as client:
            with pytest.raises(RateFetchError, match="Malformed"):
                client.get_latest("USD")


class TestParseRatesPayload:
    """Edge cases for parse_rates_payload."""

    def payload(self, **overrides):
        data = {
            "base": "USD",
            "date": "2025-09-22",
            "rates": {"USD": Decimal("1"), "JPY": Decimal("147.8")},
        }
        data.update(overrides)
        return data

    def test_valid(self):
        snapshot = parse_rates_payload(self.payload(), expected_base="USD")
        assert snapshot.rates == {"USD": Decimal("1"), "JPY": Decimal("147.8")}

    def test_not_an_object(self):
        with pytest.raises(RateFetchError):
            parse_rates_payload(["USD"], expected_base="USD")

    def test_bad_date(self):
        with pytest.raises(RateFetchError):
            parse_rates_payload(self.payload(date="yesterday"), expected_base="USD")

    def test_non_numeric_rate(self):
        rates = {"USD": Decimal("1"), "JPY": "147.8"}
        with pytest.raises(RateFetchError, match="not a number"):
            parse_rates_payload(self.payload(rates=rates), expected_base="USD")

    def test_boolean_rate(self):
        rates = {"USD": Decimal("1"), "JPY": True}
        with pytest.raises(RateFetchError, match="not a number"):
            parse_rates_payload(self.payload(rates=rates), expected_base="USD")

    def test_non_positive_rate(self):
        rates = {"USD": Decimal("1"), "JPY": Decimal("0")}
        with pytest.raises(RateFetchError, match="not positive"):
            parse_rates_payload(self.payload(rates=rates), expected_base="USD")

    def test_base_mismatch(self):
        with pytest.raises(RateFetchError, match="expected USD"):
            parse_rates_payload(self.payload(base="EUR"), expected_base="USD")

    def test_base_missing_from_rates(self):
        rates = {"JPY": Decimal("147.8")}
        with pytest.raises(RateFetchError):
            parse_rates_payload(self.payload(rates=rates), expected_base="USD")

    def test_float_rates_go_through_str(self):
        rates = {"USD": 1.0, "EUR": 0.1}
        snapshot = parse_rates_payload(self.payload(rates=rates), expected_base="USD")
        assert snapshot.rates["EUR"] == Decimal("0.1")
