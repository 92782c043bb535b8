"""Live exchange rate API client."""

import logging
from datetime import date, datetime
from decimal import Decimal

import httpx

from ..exceptions import RateFetchError
from ..models import ExchangeRateSnapshot

logger = logging.getLogger(__name__)


class ExchangeRateClient:
    """Client for a latest-rates endpoint (GET {base_url}/{BASE})."""

    BASE_URL = "https://api.exchangerate-api.com/v4/latest"

    def __init__(
        self,
        base_url: str = BASE_URL,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the exchange rate client."""
        self.client = httpx.Client(
            base_url=base_url,
            headers={"Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    def close(self):
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()

    def get_latest(self, base: str = "USD") -> ExchangeRateSnapshot:
        """
        Fetch the latest rates relative to a base currency.

        Rates are decoded straight into Decimal so no binary float ever
        touches an amount.

        Args:
            base: Base (quote) currency code

        Returns:
            A live rate snapshot

        Raises:
            RateFetchError: On network failure, timeout, non-2xx status, or a
                payload that is not {base, date, rates}
        """
        try:
            response = self.client.get(f"/{base}")
            response.raise_for_status()
            data = response.json(parse_float=Decimal, parse_int=Decimal)
        except httpx.HTTPError as e:
            raise RateFetchError(f"Exchange rate request failed: {e}") from e
        except ValueError as e:
            raise RateFetchError(f"Exchange rate response is not JSON: {e}") from e

        return parse_rates_payload(data, expected_base=base)


def parse_rates_payload(data: object, expected_base: str) -> ExchangeRateSnapshot:
    """
    Decode a {base, date, rates} payload into a snapshot.

    Raises:
        RateFetchError: If the shape is wrong, a rate is not a positive
            number, or the base currency is missing from the rates
    """
    if not isinstance(data, dict):
        raise RateFetchError("Exchange rate payload is not an object")

    try:
        base = data["base"]
        as_of = date.fromisoformat(data["date"])
        raw_rates = data["rates"]
    except (KeyError, TypeError, ValueError) as e:
        raise RateFetchError(f"Malformed exchange rate payload: {e}") from e

    if not isinstance(base, str) or not isinstance(raw_rates, dict):
        raise RateFetchError("Malformed exchange rate payload: bad base or rates")

    rates: dict[str, Decimal] = {}
    for code, value in raw_rates.items():
        if isinstance(value, bool) or not isinstance(value, (Decimal, int, float)):
            raise RateFetchError(f"Rate for {code} is not a number: {value!r}")
        rate = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
        if rate <= 0:
            raise RateFetchError(f"Rate for {code} is not positive: {rate}")
        rates[code] = rate

    if base != expected_base or base not in rates:
        raise RateFetchError(
            f"Exchange rate payload is for base {base}, expected {expected_base}"
        )

    logger.debug(f"Decoded {len(rates)} rates for base {base} as of {as_of}")

    return ExchangeRateSnapshot(
        base=base,
        as_of=as_of,
        rates=rates,
        fetched_at=datetime.now(),
        source="live",
    )
