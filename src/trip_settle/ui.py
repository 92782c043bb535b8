"""Interactive UI components for currency selection and settlement confirmation."""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from .currencies import CurrencyInfo, format_amount

logger = logging.getLogger(__name__)


def currency_label(currency: CurrencyInfo) -> str:
    return f"{currency.code} - {currency.name} ({currency.region})"


class CurrencyCompleter(Completer):
    """Fuzzy search completer for currencies."""

    def __init__(self, currencies: list[CurrencyInfo]):
        """Initialize the completer with available currencies."""
        self.currencies = currencies

        # Build searchable strings and label-to-code mapping
        self.searchable = []
        self.label_to_code = {}
        for currency in currencies:
            label = currency_label(currency)
            self.searchable.append((currency.code, label))
            self.label_to_code[label] = currency.code

    def get_completions(self, document: Document, complete_event: Any):
        """Get fuzzy-matched completions."""
        query = document.text.lower()

        for _code, label in self.searchable:
            if not query or fuzzy_match(query, label.lower()):
                yield Completion(
                    text=label,
                    start_position=-len(document.text),
                    display=label,
                )


def fuzzy_match(query: str, text: str) -> bool:
    """
    Fuzzy match: all characters in query must appear in order in text.

    Example:
        query="jpy" matches "JPY - Japanese Yen (Japan)"
        query="swfr" matches "CHF - Swiss Franc (Switzerland)"
    """
    query_idx = 0
    for char in text:
        if query_idx < len(query) and char == query[query_idx]:
            query_idx += 1
    return query_idx == len(query)


def select_currency_interactive(
    currencies: list[CurrencyInfo], default_code: str | None = None
) -> str | None:
    """
    Interactive currency selection with fuzzy search.

    Args:
        currencies: Currencies to choose from
        default_code: Optional code to pre-fill

    Returns:
        Selected currency code, or None to skip
    """
    print("\n💱 Select a currency")
    print("   Type to search, press Enter to confirm, Ctrl+C to skip\n")

    completer = CurrencyCompleter(currencies)
    session: PromptSession[str] = PromptSession(completer=completer)

    default_text = ""
    if default_code:
        for currency in currencies:
            if currency.code == default_code:
                default_text = currency_label(currency)
                break

    try:
        while True:
            result = session.prompt(
                "Currency: ",
                default=default_text,
                complete_while_typing=True,
            )

            if not result:
                return None

            # Accept a full label or a bare code
            code = completer.label_to_code.get(result)
            if code is None and result.strip().upper() in {
                c.code for c in currencies
            }:
                code = result.strip().upper()
            if code:
                logger.info(f"User selected currency: {code}")
                return code

            print("❌ Unknown currency. Select from the list or press Tab to complete.")
            default_text = ""

    except KeyboardInterrupt:
        print("\n⏭️  Skipped")
        return None
    except EOFError:
        return None


def prompt_settlement_amount(suggested: Decimal, currency: str) -> Decimal | None:
    """
    Ask how much was actually paid, defaulting to the suggested amount.

    Returns:
        The entered amount, or None if the user cancelled
    """
    print(f"\n💸 Suggested amount: {format_amount(suggested, currency)}")
    print("   Press Enter to settle in full, or type a smaller amount\n")

    session: PromptSession[str] = PromptSession()
    try:
        while True:
            result = session.prompt("Amount paid: ").strip().replace(",", "")
            if not result:
                return suggested
            try:
                value = Decimal(result)
            except InvalidOperation:
                print("❌ Not a number. Try again.")
                continue
            if value.is_finite():
                return value
            print("❌ Enter a finite amount. Try again.")
    except (KeyboardInterrupt, EOFError):
        print("\n⏭️  Cancelled")
        return None
