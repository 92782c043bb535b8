"""Currency reference data: display metadata and the static fallback rate table."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict

from .exceptions import UnsupportedCurrencyError


class CurrencyInfo(BaseModel):
    """Display metadata for a single currency."""

    model_config = ConfigDict(frozen=True)

    code: str
    name: str
    symbol: str
    region: str
    decimal_places: int = 2
    is_popular: bool = False

    @property
    def region_group(self) -> str:
        """Continental grouping used for picker sections."""
        for group, keywords in REGION_GROUPS:
            if any(keyword in self.region for keyword in keywords):
                return group
        return "Others"


def _info(code, name, symbol, region, decimal_places=2, is_popular=False):
    return CurrencyInfo(
        code=code,
        name=name,
        symbol=symbol,
        region=region,
        decimal_places=decimal_places,
        is_popular=is_popular,
    )


# ============================================================================
# Currency metadata
# ============================================================================

CURRENCIES: dict[str, CurrencyInfo] = {
    info.code: info
    for info in [
        # Major currencies
        _info("JPY", "Japanese Yen", "¥", "Japan", 0, True),
        _info("USD", "US Dollar", "$", "United States", is_popular=True),
        _info("EUR", "Euro", "€", "European Union", is_popular=True),
        _info("GBP", "British Pound", "£", "United Kingdom", is_popular=True),
        # Asia
        _info("KRW", "South Korean Won", "₩", "South Korea", 0, True),
        _info("CNY", "Chinese Yuan", "¥", "China", is_popular=True),
        _info("THB", "Thai Baht", "฿", "Thailand", is_popular=True),
        _info("SGD", "Singapore Dollar", "S$", "Singapore", is_popular=True),
        _info("HKD", "Hong Kong Dollar", "HK$", "Hong Kong", is_popular=True),
        _info("TWD", "Taiwan Dollar", "NT$", "Taiwan"),
        _info("MYR", "Malaysian Ringgit", "RM", "Malaysia"),
        _info("PHP", "Philippine Peso", "₱", "Philippines"),
        _info("IDR", "Indonesian Rupiah", "Rp", "Indonesia", 0),
        _info("VND", "Vietnamese Dong", "₫", "Vietnam", 0, True),
        _info("INR", "Indian Rupee", "₹", "India"),
        # Oceania
        _info("AUD", "Australian Dollar", "A$", "Australia", is_popular=True),
        _info("NZD", "New Zealand Dollar", "NZ$", "New Zealand"),
        # Americas
        _info("CAD", "Canadian Dollar", "C$", "Canada", is_popular=True),
        _info("BRL", "Brazilian Real", "R$", "Brazil"),
        _info("MXN", "Mexican Peso", "$", "Mexico"),
        _info("ARS", "Argentine Peso", "$", "Argentina"),
        _info("CLP", "Chilean Peso", "$", "Chile", 0),
        _info("COP", "Colombian Peso", "$", "Colombia", 0),
        _info("PEN", "Peruvian Sol", "S/", "Peru"),
        # Europe
        _info("CHF", "Swiss Franc", "CHF", "Switzerland", is_popular=True),
        _info("NOK", "Norwegian Krone", "kr", "Norway"),
        _info("SEK", "Swedish Krona", "kr", "Sweden"),
        _info("DKK", "Danish Krone", "kr", "Denmark"),
        _info("PLN", "Polish Zloty", "zł", "Poland"),
        _info("CZK", "Czech Koruna", "Kč", "Czech Republic"),
        _info("HUF", "Hungarian Forint", "Ft", "Hungary", 0),
        _info("RON", "Romanian Leu", "lei", "Romania"),
        _info("BGN", "Bulgarian Lev", "лв", "Bulgaria"),
        _info("HRK", "Croatian Kuna", "kn", "Croatia"),
        _info("RSD", "Serbian Dinar", "дин", "Serbia"),
        _info("RUB", "Russian Ruble", "₽", "Russia"),
        _info("TRY", "Turkish Lira", "₺", "Turkey"),
        # Middle East & Africa
        _info("AED", "UAE Dirham", "د.إ", "United Arab Emirates"),
        _info("SAR", "Saudi Riyal", "ر.س", "Saudi Arabia"),
        _info("QAR", "Qatari Riyal", "ر.ق", "Qatar"),
        _info("KWD", "Kuwaiti Dinar", "د.ك", "Kuwait", 3),
        _info("BHD", "Bahraini Dinar", "د.ب", "Bahrain", 3),
        _info("OMR", "Omani Rial", "ر.ع.", "Oman", 3),
        _info("JOD", "Jordanian Dinar", "د.ا", "Jordan", 3),
        _info("LBP", "Lebanese Pound", "ل.ل", "Lebanon", 0),
        _info("ILS", "Israeli Shekel", "₪", "Israel"),
        _info("EGP", "Egyptian Pound", "ج.م", "Egypt"),
        _info("ZAR", "South African Rand", "R", "South Africa"),
        _info("NGN", "Nigerian Naira", "₦", "Nigeria"),
        _info("KES", "Kenyan Shilling", "KSh", "Kenya"),
        _info("GHS", "Ghanaian Cedi", "₵", "Ghana"),
        _info("MAD", "Moroccan Dirham", "د.م.", "Morocco"),
        _info("TND", "Tunisian Dinar", "د.ت", "Tunisia", 3),
        _info("DZD", "Algerian Dinar", "د.ج", "Algeria"),
        # Others
        _info("ISK", "Icelandic Krona", "kr", "Iceland", 0),
        _info("ALL", "Albanian Lek", "L", "Albania"),
        _info("MKD", "Macedonian Denar", "ден", "North Macedonia"),
        _info("BAM", "Bosnia-Herzegovina Convertible Mark", "KM", "Bosnia and Herzegovina"),
        _info("MDL", "Moldovan Leu", "L", "Moldova"),
        _info("GEL", "Georgian Lari", "₾", "Georgia"),
        _info("AMD", "Armenian Dram", "֏", "Armenia"),
        _info("AZN", "Azerbaijani Manat", "₼", "Azerbaijan"),
        _info("KZT", "Kazakhstani Tenge", "₸", "Kazakhstan"),
        _info("UZS", "Uzbekistani Som", "soʻm", "Uzbekistan", 0),
        _info("KGS", "Kyrgystani Som", "сом", "Kyrgyzstan"),
        _info("TJS", "Tajikistani Somoni", "SM", "Tajikistan"),
        _info("TMT", "Turkmenistani Manat", "m", "Turkmenistan"),
        _info("MNT", "Mongolian Tugrik", "₮", "Mongolia", 0),
        _info("NPR", "Nepalese Rupee", "₨", "Nepal"),
        _info("PKR", "Pakistani Rupee", "₨", "Pakistan"),
        _info("BDT", "Bangladeshi Taka", "৳", "Bangladesh"),
        _info("LKR", "Sri Lankan Rupee", "₨", "Sri Lanka"),
        _info("MVR", "Maldivian Rufiyaa", "Rf", "Maldives"),
        _info("AFN", "Afghan Afghani", "؋", "Afghanistan"),
        _info("IRR", "Iranian Rial", "﷼", "Iran", 0),
        _info("IQD", "Iraqi Dinar", "د.ع", "Iraq", 3),
        _info("SYP", "Syrian Pound", "£", "Syria"),
        _info("YER", "Yemeni Rial", "﷼", "Yemen"),
    ]
}

REGION_GROUPS: list[tuple[str, tuple[str, ...]]] = [
    (
        "Asia",
        (
            "Japan", "Korea", "China", "Thailand", "Singapore", "Hong Kong",
            "Taiwan", "Malaysia", "Philippines", "Indonesia", "Vietnam", "India",
        ),
    ),
    ("Oceania", ("Australia", "New Zealand")),
    (
        "Americas",
        (
            "United States", "Canada", "Brazil", "Mexico", "Argentina",
            "Chile", "Colombia", "Peru",
        ),
    ),
    (
        "Europe",
        (
            "European", "United Kingdom", "Switzerland", "Norway", "Sweden",
            "Denmark", "Poland", "Czech", "Hungary", "Romania", "Bulgaria",
            "Croatia", "Serbia", "Russia", "Turkey",
        ),
    ),
    (
        "Middle East & Africa",
        (
            "Arab Emirates", "Saudi", "Qatar", "Kuwait", "Bahrain", "Oman", "Jordan",
            "Lebanon", "Israel", "Egypt", "South Africa", "Nigeria", "Kenya",
            "Ghana", "Morocco", "Tunisia", "Algeria",
        ),
    ),
]


# ============================================================================
# Static fallback rates (units per 1 USD)
# ============================================================================

FALLBACK_BASE_CURRENCY = "USD"

FALLBACK_RATES: dict[str, Decimal] = {
    code: Decimal(rate)
    for code, rate in {
        "USD": "1.0",
        "JPY": "149.50",
        "EUR": "0.92",
        "GBP": "0.79",
        "KRW": "1340.0",
        "CNY": "7.31",
        "THB": "36.80",
        "SGD": "1.35",
        "HKD": "7.83",
        "AUD": "1.53",
        "TWD": "32.20",
        "MYR": "4.70",
        "PHP": "56.50",
        "IDR": "15800",
        "VND": "24500",
        "INR": "83.20",
        "NZD": "1.66",
        "CAD": "1.36",
        "BRL": "5.05",
        "MXN": "17.20",
        "ARS": "870",
        "CLP": "940",
        "COP": "3950",
        "PEN": "3.75",
        "CHF": "0.88",
        "NOK": "10.70",
        "SEK": "10.50",
        "DKK": "6.88",
        "PLN": "4.00",
        "CZK": "23.10",
        "HUF": "360",
        "RON": "4.58",
        "BGN": "1.80",
        "HRK": "6.93",
        "RSD": "108",
        "RUB": "92.0",
        "TRY": "32.0",
        "AED": "3.6725",
        "SAR": "3.75",
        "QAR": "3.64",
        "KWD": "0.307",
        "BHD": "0.376",
        "OMR": "0.385",
        "JOD": "0.709",
        "LBP": "89500",
        "ILS": "3.70",
        "EGP": "47.50",
        "ZAR": "18.60",
        "NGN": "1450",
        "KES": "130",
        "GHS": "14.50",
        "MAD": "10.00",
        "TND": "3.12",
        "DZD": "134.50",
        "ISK": "138",
        "ALL": "93.50",
        "MKD": "56.70",
        "BAM": "1.80",
        "MDL": "17.70",
        "GEL": "2.70",
        "AMD": "390",
        "AZN": "1.70",
        "KZT": "450",
        "UZS": "12600",
        "KGS": "88.50",
        "TJS": "10.90",
        "TMT": "3.50",
        "MNT": "3400",
        "NPR": "133",
        "PKR": "278",
        "BDT": "110",
        "LKR": "300",
        "MVR": "15.40",
        "AFN": "71.0",
        "IRR": "42000",
        "IQD": "1310",
        "SYP": "13000",
        "YER": "250",
        "UAH": "41.0",
        "BYN": "3.27",
        "UYU": "39.50",
        "BOB": "6.91",
        "PYG": "7450",
    }.items()
}

KNOWN_CURRENCY_CODES: frozenset[str] = frozenset(CURRENCIES) | frozenset(FALLBACK_RATES)


# ============================================================================
# Currency code validation
# ============================================================================


def parse_currency_code(code: str) -> str:
    """
    Validate a currency code at an input boundary.

    Args:
        code: Raw ISO 4217 code (case-insensitive, surrounding whitespace ignored)

    Returns:
        The normalized upper-case code

    Raises:
        UnsupportedCurrencyError: If the code is not a known currency
    """
    normalized = code.strip().upper()
    if normalized not in KNOWN_CURRENCY_CODES:
        raise UnsupportedCurrencyError(normalized)
    return normalized


def _normalize_code(value):
    return value.strip().upper() if isinstance(value, str) else value


def _check_known(value: str) -> str:
    if value not in KNOWN_CURRENCY_CODES:
        raise ValueError(f"Unknown currency code: {value}")
    return value


CurrencyCode = Annotated[
    str, BeforeValidator(_normalize_code), AfterValidator(_check_known)
]


# ============================================================================
# Metadata queries
# ============================================================================


def get_currency(code: str) -> CurrencyInfo | None:
    """Look up metadata for a currency code (case-insensitive)."""
    return CURRENCIES.get(code.upper())


def decimal_places(code: str) -> int:
    """Minor-unit count for a currency; 2 for codes without metadata."""
    info = get_currency(code)
    return info.decimal_places if info else 2


def all_currencies() -> list[CurrencyInfo]:
    """All currencies sorted by code."""
    return sorted(CURRENCIES.values(), key=lambda c: c.code)


def popular_currencies() -> list[CurrencyInfo]:
    """Currencies flagged as popular, sorted by code."""
    return [c for c in all_currencies() if c.is_popular]


def currencies_by_region() -> dict[str, list[CurrencyInfo]]:
    """Currencies grouped by continental region, each group sorted by code."""
    groups: dict[str, list[CurrencyInfo]] = {}
    for currency in all_currencies():
        groups.setdefault(currency.region_group, []).append(currency)
    return groups


def search_currencies(query: str) -> list[CurrencyInfo]:
    """Case-insensitive substring search over code, name and region."""
    needle = query.lower()
    return [
        c
        for c in all_currencies()
        if needle in c.code.lower()
        or needle in c.name.lower()
        or needle in c.region.lower()
    ]


def format_amount(amount: Decimal, code: str) -> str:
    """
    Format an amount for display using the currency's symbol and minor units.

    Rounds with ROUND_HALF_UP. This is display-only; never feed the result
    back into arithmetic.
    """
    info = get_currency(code)
    places = info.decimal_places if info else 2
    symbol = info.symbol if info else f"{code} "
    quantized = amount.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
    sign = "-" if quantized < 0 else ""
    return f"{sign}{symbol}{abs(quantized):,.{places}f}"
