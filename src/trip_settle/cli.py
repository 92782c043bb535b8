"""CLI for TripSettle using Typer."""

import logging
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from .config import load_settings
from .currencies import (
    all_currencies,
    currencies_by_region,
    format_amount,
    popular_currencies,
    search_currencies,
)
from .db import Database
from .exceptions import TripSettleError
from .models import GroupSnapshot, MemberBalance, SettlementSuggestion
from .normalizer import format_exchange_rate
from .rates import ExchangeRateProvider
from .service import SettlementPlan, SettlementService
from .ui import prompt_settlement_amount, select_currency_interactive

app = typer.Typer(
    name="trip-settle",
    help="Work out who owes whom for shared trip expenses",
)

console = Console()


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def load_group(path: Path) -> GroupSnapshot:
    """Read a group snapshot from a JSON file."""
    return GroupSnapshot.model_validate_json(path.read_text(encoding="utf-8"))


def report_error(e: Exception, verbose: bool):
    """Print an error and exit with status 1."""
    if isinstance(e, TripSettleError):
        console.print(f"\n[bold yellow]⚠️  {e}[/bold yellow]\n")
    else:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise e
    sys.exit(1)


def format_money(amount: Decimal, currency: str, use_color: bool = True) -> str:
    """
    Format money in accounting style.

    Negative amounts use parentheses: (¥1,000)
    Positive amounts have spaces:      ¥2,000
    """
    formatted = format_amount(abs(amount), currency)
    if amount < 0:
        return f"([red]{formatted}[/red])" if use_color else f"({formatted})"
    return f" [green]{formatted}[/green] " if use_color else f" {formatted} "


def display_balances(group: GroupSnapshot, balances: list[MemberBalance], currency: str):
    """Display member balances in a table."""
    table = Table(title="Balances", show_header=True, header_style="bold magenta")
    table.add_column("Member", style="cyan")
    table.add_column("Balance", justify="right")
    table.add_column("Status", style="dim")

    for balance in balances:
        if balance.balance > 0:
            status = "is owed"
        elif balance.balance < 0:
            status = "owes"
        else:
            status = "settled"
        table.add_row(
            group.member_name(balance.member_id),
            format_money(balance.balance, currency),
            status,
        )

    console.print(table)


def display_suggestions(group: GroupSnapshot, suggestions: list[SettlementSuggestion]):
    """Display suggested transfers in a table."""
    if not suggestions:
        console.print("[green]✓ Nobody owes anything.[/green]")
        return

    table = Table(
        title="Suggested Transfers", show_header=True, header_style="bold magenta"
    )
    table.add_column("#", style="dim", width=4)
    table.add_column("From", style="cyan")
    table.add_column("To", style="cyan")
    table.add_column("Amount", justify="right")

    for i, suggestion in enumerate(suggestions, start=1):
        table.add_row(
            str(i),
            group.member_name(suggestion.from_member_id),
            group.member_name(suggestion.to_member_id),
            format_amount(suggestion.amount, suggestion.currency),
        )

    console.print(table)


def display_rates_note(plan: SettlementPlan):
    if plan.rates is None:
        return
    note = f"Converted with {plan.rates.source} rates as of {plan.rates.as_of}"
    if plan.rates.source == "fallback":
        note += " (live rates unavailable)"
    console.print(f"[dim]{note}[/dim]")


def build_service(with_database: bool = False) -> SettlementService:
    settings = load_settings()
    db = Database(settings.database_path) if with_database else None
    return SettlementService(settings, db)


def parse_amount(text: str) -> Decimal:
    """Parse a typed amount, allowing thousands separators."""
    try:
        value = Decimal(text.replace(",", ""))
    except InvalidOperation:
        raise typer.BadParameter(f"'{text}' is not a number")
    if not value.is_finite():
        raise typer.BadParameter(f"'{text}' is not a finite amount")
    return value


def find_member_id(group: GroupSnapshot, name_or_id: str) -> str:
    """Resolve a member by id or (case-insensitive) display name."""
    for member in group.members:
        if member.id == name_or_id or member.name.lower() == name_or_id.lower():
            return member.id
    raise typer.BadParameter(f"No active member named '{name_or_id}'")


@app.command()
def balances(
    group_file: Path = typer.Argument(..., exists=True, help="Group snapshot JSON"),
    currency: str | None = typer.Option(
        None, "--currency", "-c", help="Display currency (default: group currency)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show each member's net balance."""
    setup_logging(verbose)

    try:
        group = load_group(group_file)
        service = build_service()
        plan = service.plan(group, currency)

        console.print(f"\n[bold]{group.name}[/bold]")
        display_balances(group, plan.balances, plan.currency)
        display_rates_note(plan)

    except Exception as e:
        report_error(e, verbose)


@app.command()
def suggest(
    group_file: Path = typer.Argument(..., exists=True, help="Group snapshot JSON"),
    currency: str | None = typer.Option(
        None, "--currency", "-c", help="Settlement currency (default: group currency)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Suggest the transfers that settle the group."""
    setup_logging(verbose)

    try:
        group = load_group(group_file)
        service = build_service()
        plan = service.plan(group, currency)

        console.print(f"\n[bold]{group.name}[/bold]")
        display_suggestions(group, plan.suggestions)
        display_rates_note(plan)

    except Exception as e:
        report_error(e, verbose)


@app.command()
def settle(
    group_file: Path = typer.Argument(..., exists=True, help="Group snapshot JSON"),
    from_member: str = typer.Option(..., "--from", help="Paying member (name or id)"),
    to_member: str = typer.Option(..., "--to", help="Receiving member (name or id)"),
    amount: str | None = typer.Option(
        None, "--amount", "-a", help="Amount actually paid (default: suggested)"
    ),
    currency: str | None = typer.Option(
        None, "--currency", "-c", help="Settlement currency (default: group currency)"
    ),
    note: str | None = typer.Option(None, "--note", "-n", help="Optional note"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Record a suggested transfer as paid.

    Pass --amount to record a partial payment. Recorded settlements are kept
    as history only: balances are still computed from expenses alone.
    """
    setup_logging(verbose)

    try:
        group = load_group(group_file)
        service = build_service(with_database=True)
        plan = service.plan(group, currency)

        payer_id = find_member_id(group, from_member)
        receiver_id = find_member_id(group, to_member)

        suggestion = next(
            (
                s
                for s in plan.suggestions
                if s.from_member_id == payer_id and s.to_member_id == receiver_id
            ),
            None,
        )
        if suggestion is None:
            console.print(
                f"[yellow]No suggested transfer from {from_member} to {to_member}.[/yellow]"
            )
            display_suggestions(group, plan.suggestions)
            sys.exit(1)

        paid: Decimal | None
        if amount is not None:
            paid = parse_amount(amount)
        elif yes:
            paid = suggestion.amount
        else:
            paid = prompt_settlement_amount(suggestion.amount, suggestion.currency)
            if paid is None:
                return

        if not yes:
            console.print(
                f"\n[bold yellow]⚠️  Record {group.member_name(payer_id)} → "
                f"{group.member_name(receiver_id)}: "
                f"{format_amount(paid, suggestion.currency)}[/bold yellow]"
            )
            confirm = input("Continue? [y/N] ").strip().lower()
            if confirm not in ("y", "yes"):
                console.print("[yellow]Cancelled.[/yellow]")
                return

        settlement = service.record_settlement(group.id, suggestion, paid, note)

        console.print("\n[bold green]✓ Settlement recorded[/bold green]")
        if settlement.amount < suggestion.amount:
            console.print(
                f"[dim]Partial payment: "
                f"{format_amount(suggestion.amount - settlement.amount, suggestion.currency)} "
                f"still outstanding[/dim]"
            )
        console.print(
            "[dim]Note: suggestions are computed from expenses and will not "
            "reflect this settlement.[/dim]\n"
        )

    except typer.BadParameter:
        raise
    except Exception as e:
        report_error(e, verbose)
    finally:
        if "service" in locals() and service.db is not None:
            service.db.close()


@app.command()
def history(
    group_file: Path = typer.Argument(..., exists=True, help="Group snapshot JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show completed settlements for a group."""
    setup_logging(verbose)

    try:
        group = load_group(group_file)
        service = build_service(with_database=True)
        settlements = service.history(group.id)

        if not settlements:
            console.print("[yellow]No settlements recorded yet.[/yellow]")
            return

        table = Table(
            title=f"{group.name}: Settlements",
            show_header=True,
            header_style="bold magenta",
        )
        table.add_column("Settled", style="dim")
        table.add_column("From", style="cyan")
        table.add_column("To", style="cyan")
        table.add_column("Amount", justify="right")
        table.add_column("Note", no_wrap=False)

        for s in settlements:
            table.add_row(
                s.settled_at.strftime("%Y-%m-%d %H:%M") if s.settled_at else "—",
                group.member_name(s.payer_id),
                group.member_name(s.receiver_id),
                format_amount(s.amount, s.currency),
                s.note or "",
            )

        console.print(table)

    except Exception as e:
        report_error(e, verbose)
    finally:
        if "service" in locals() and service.db is not None:
            service.db.close()


@app.command()
def rates(
    currencies: list[str] = typer.Argument(None, help="Codes to show (default: popular)"),
    refresh: bool = typer.Option(False, "--refresh", "-r", help="Force a live fetch"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show the current exchange rate snapshot."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        provider = ExchangeRateProvider.from_settings(settings)
        snapshot = provider.refresh() if refresh else provider.get_rates()

        codes = [c.upper() for c in currencies] if currencies else [
            c.code for c in popular_currencies()
        ]

        stale = " [yellow](stale)[/yellow]" if provider.is_stale(snapshot) else ""
        console.print(
            f"\n[bold]Rates per 1 {snapshot.base}[/bold] "
            f"({snapshot.source}, as of {snapshot.as_of}){stale}"
        )

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Currency", style="cyan")
        table.add_column("Rate", justify="right")
        for code in codes:
            if snapshot.supports(code):
                table.add_row(code, format_exchange_rate(snapshot.base, code, snapshot))
            else:
                table.add_row(code, "[dim]unavailable[/dim]")

        console.print(table)

    except Exception as e:
        report_error(e, verbose)


@app.command()
def convert(
    amount: str = typer.Argument(..., help="Amount to convert"),
    from_currency: str = typer.Argument(..., help="Source currency code"),
    to_currency: str | None = typer.Argument(
        None, help="Target currency code (default: display currency)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Convert an amount between currencies."""
    setup_logging(verbose)

    value = parse_amount(amount)

    try:
        service = build_service()
        result = service.convert(value, from_currency, to_currency)
        console.print(
            f"{format_amount(value, from_currency.upper())} = "
            f"[bold green]{result.format()}[/bold green]"
        )

    except Exception as e:
        report_error(e, verbose)


@app.command()
def currencies(
    popular: bool = typer.Option(False, "--popular", "-p", help="Popular only"),
    search: str | None = typer.Option(None, "--search", "-s", help="Search query"),
    pick: bool = typer.Option(False, "--pick", help="Pick one interactively"),
):
    """List supported currencies."""
    if pick:
        code = select_currency_interactive(all_currencies())
        if code:
            console.print(code)
        return

    if search:
        groups = {"Results": search_currencies(search)}
    elif popular:
        groups = {"Popular": popular_currencies()}
    else:
        groups = currencies_by_region()

    for region, infos in groups.items():
        table = Table(title=region, show_header=True, header_style="bold magenta")
        table.add_column("Code", style="cyan", width=5)
        table.add_column("Name")
        table.add_column("Symbol", justify="center")
        table.add_column("Region", style="dim")
        for info in infos:
            table.add_row(info.code, info.name, info.symbol, info.region)
        console.print(table)


if __name__ == "__main__":
    app()
