"""CLI interface for fee calculation and invoicing."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from .calculations import (
    FeeCalculation,
    compute_batch,
    compute_fee,
    compute_reverse_amount,
    parse_amounts,
)
from .company_settings import CompanySettingsRepository, format_company_address
from .config import FeeCalcConfig, get_config
from .constants import MICROPAYMENT, MICROPAYMENT_THRESHOLD, currency_symbol, format_currency
from .invoices import (
    build_invoice,
    compute_invoice_fee,
    compute_invoice_totals,
    compute_item_amount,
    generate_invoice_number,
)
from .models import CustomerInput, Invoice, InvoiceDraft, InvoiceItem, InvoiceItemInput
from .repositories.file import JsonFileKeyValueStore
from .repositories.history import CalculationHistory
from .repositories.invoices import InvoiceRepository

app = typer.Typer(
    name="feecalc",
    help="""
    [bold]Payment Fee Calculator[/bold]

    Calculate payment processor fees and manage simple invoices.

    [cyan]Examples:[/cyan]
      feecalc fee 100
      feecalc fee 100 --type international
      feecalc request 50
      feecalc batch "10, 25.50, 100"
      feecalc invoices create --customer-name "Acme" --customer-email a@acme.test --item "Design:2:50"
    """,
    no_args_is_help=True,
)
invoices_app = typer.Typer(help="Create and manage stored invoices.", no_args_is_help=True)
settings_app = typer.Typer(help="Company details printed on invoices.", no_args_is_help=True)
app.add_typer(invoices_app, name="invoices")
app.add_typer(settings_app, name="settings")

console = Console()
logger = logging.getLogger(__name__)

STORE_OPTION_HELP = "JSON store file (default: FEECALC_STORAGE_PATH)"


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _open_store(config: FeeCalcConfig, store: Optional[Path]) -> JsonFileKeyValueStore:
    return JsonFileKeyValueStore(store or config.storage_path)


def _invoice_repository(store: Optional[Path]) -> InvoiceRepository:
    config = get_config()
    return InvoiceRepository(
        _open_store(config, store),
        payment_terms_days=config.payment_terms_days,
        prefix=config.invoice_prefix,
    )


def _print_json(payload: object) -> None:
    print(json.dumps(payload, indent=2))


def _fail(message: str) -> None:
    console.print(f"[bold red]✗ Error:[/bold red] {message}")
    raise typer.Exit(code=1)


def _render_fee(calculation: FeeCalculation, symbol: str) -> None:
    table = Table(title="Fee Breakdown", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Amount", format_currency(calculation.original_amount, symbol))
    table.add_row(
        "Fee",
        f"-{format_currency(calculation.paypal_fee, symbol)} "
        f"({calculation.fee_percentage:g}% + {format_currency(calculation.fixed_fee, symbol)})",
    )
    table.add_row("You receive", format_currency(calculation.net_amount, symbol))
    table.add_row(
        "Request to receive full amount",
        format_currency(calculation.should_request_amount, symbol),
    )
    console.print(table)


def _micropayment_flag(transaction_type: str, enabled: bool, amount: float) -> bool:
    return transaction_type == MICROPAYMENT or (enabled and amount < MICROPAYMENT_THRESHOLD)


def _parse_item(spec: str) -> InvoiceItemInput:
    """Parse 'description:quantity:rate' or 'quantity:rate'."""
    parts = spec.rsplit(":", 2)
    if len(parts) == 2:
        description, (quantity, rate) = "", parts
    elif len(parts) == 3:
        description, quantity, rate = parts
    else:
        raise typer.BadParameter(f"Invalid item '{spec}', expected DESCRIPTION:QTY:RATE")
    try:
        return InvoiceItemInput(
            description=description.strip(), quantity=float(quantity), rate=float(rate)
        )
    except ValueError:
        raise typer.BadParameter(f"Invalid quantity or rate in item '{spec}'")


@app.command()
def fee(
    amount: float = typer.Argument(..., help="Payment amount"),
    transaction_type: Optional[str] = typer.Option(
        None,
        "--type",
        "-t",
        help="Transaction type: domestic, international or micropayment",
    ),
    micropayment: bool = typer.Option(
        True,
        "--micropayment/--no-micropayment",
        help=f"Use micropayment rates for amounts below {MICROPAYMENT_THRESHOLD:g}",
    ),
    currency: Optional[str] = typer.Option(None, "--currency", "-c", help="Display currency"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table"),
    save: bool = typer.Option(True, "--save/--no-save", help="Record in calculation history"),
    store: Optional[Path] = typer.Option(None, "--store", help=STORE_OPTION_HELP),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Calculate the fee and net amount for a payment."""
    _configure_logging(verbose)
    config = get_config()
    transaction_type = transaction_type or config.default_transaction_type

    calculation = compute_fee(
        amount,
        transaction_type,
        _micropayment_flag(transaction_type, micropayment, amount),
    )

    if save and calculation.original_amount > 0:
        history = CalculationHistory(_open_store(config, store), limit=config.history_limit)
        history.add(calculation)
        logger.debug("Saved calculation to history")

    if as_json:
        _print_json(calculation.to_dict())
        return
    _render_fee(calculation, currency_symbol(currency or config.default_currency))


@app.command()
def request(
    amount: float = typer.Argument(..., help="Amount you want to receive"),
    transaction_type: Optional[str] = typer.Option(None, "--type", "-t", help="Transaction type"),
    micropayment: bool = typer.Option(
        True,
        "--micropayment/--no-micropayment",
        help=f"Use micropayment rates for amounts below {MICROPAYMENT_THRESHOLD:g}",
    ),
    currency: Optional[str] = typer.Option(None, "--currency", "-c", help="Display currency"),
):
    """Calculate how much to request so that AMOUNT remains after fees."""
    config = get_config()
    transaction_type = transaction_type or config.default_transaction_type
    result = compute_reverse_amount(
        amount,
        transaction_type,
        _micropayment_flag(transaction_type, micropayment, amount),
    )
    symbol = currency_symbol(currency or config.default_currency)
    console.print(
        f"Request [bold green]{format_currency(result, symbol)}[/bold green] "
        f"to receive {format_currency(amount, symbol)}"
    )


@app.command()
def batch(
    amounts: Optional[str] = typer.Argument(
        None, help="Amounts separated by commas or newlines"
    ),
    input_file: Optional[Path] = typer.Option(
        None, "--file", "-f", exists=True, dir_okay=False, help="Read amounts from a file"
    ),
    transaction_type: Optional[str] = typer.Option(None, "--type", "-t", help="Transaction type"),
    currency: Optional[str] = typer.Option(None, "--currency", "-c", help="Display currency"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table"),
):
    """Calculate fees for many amounts at once."""
    config = get_config()
    text = input_file.read_text(encoding="utf-8") if input_file else (amounts or "")
    values = parse_amounts(text)
    if not values:
        _fail("No valid positive amounts found")

    result = compute_batch(values, transaction_type or config.default_transaction_type)

    if as_json:
        _print_json(result.to_dict())
        return

    symbol = currency_symbol(currency or config.default_currency)
    table = Table(title=f"Batch ({len(result.calculations)} payments)")
    table.add_column("Amount", justify="right")
    table.add_column("Fee", justify="right", style="red")
    table.add_column("Net", justify="right", style="green")
    for calc in result.calculations:
        table.add_row(
            format_currency(calc.original_amount, symbol),
            format_currency(calc.paypal_fee, symbol),
            format_currency(calc.net_amount, symbol),
        )
    table.add_section()
    table.add_row(
        format_currency(result.total_original, symbol),
        format_currency(result.total_fees, symbol),
        format_currency(result.total_net, symbol),
        style="bold",
    )
    console.print(table)


@app.command()
def totals(
    items: List[str] = typer.Option(
        ..., "--item", "-i", help="Line item as DESCRIPTION:QTY:RATE (repeatable)"
    ),
    tax_rate: float = typer.Option(0.0, "--tax", help="Tax rate in percent"),
    discount_rate: float = typer.Option(0.0, "--discount", help="Discount rate in percent"),
    fee_type: Optional[str] = typer.Option(
        None, "--fee-type", help="Add the payment fee for this transaction type"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print JSON"),
):
    """Preview invoice totals without storing anything."""
    line_items = [
        InvoiceItem(
            description=item.description,
            quantity=item.quantity,
            rate=item.rate,
            amount=compute_item_amount(item.quantity, item.rate),
        )
        for item in (_parse_item(spec) for spec in items)
    ]
    result = compute_invoice_totals(line_items, tax_rate, discount_rate)
    paypal_fee = 0.0
    if fee_type:
        paypal_fee = compute_invoice_fee(result, fee_type)
        result = compute_invoice_totals(line_items, tax_rate, discount_rate, paypal_fee, True)

    payload = result.model_dump()
    payload["paypal_fee"] = paypal_fee
    if as_json:
        _print_json(payload)
        return
    for key, value in payload.items():
        console.print(f"{key.replace('_', ' ').title():<16} {value:>12.2f}")


@app.command()
def history(
    clear: bool = typer.Option(False, "--clear", help="Delete saved calculations"),
    store: Optional[Path] = typer.Option(None, "--store", help=STORE_OPTION_HELP),
):
    """Show recent single-amount calculations."""
    config = get_config()
    calc_history = CalculationHistory(_open_store(config, store), limit=config.history_limit)
    if clear:
        calc_history.clear()
        console.print("[dim]History cleared[/dim]")
        return

    entries = calc_history.list()
    if not entries:
        console.print("[dim]No calculations yet[/dim]")
        return
    _print_json([entry.to_dict() for entry in entries])


def _invoice_table(invoices: List[Invoice]) -> Table:
    table = Table(title=f"Invoices ({len(invoices)})")
    table.add_column("ID", style="dim", overflow="fold")
    table.add_column("Number")
    table.add_column("Customer")
    table.add_column("Status")
    table.add_column("Due")
    table.add_column("Total", justify="right")
    for inv in invoices:
        table.add_row(
            inv.id,
            inv.invoice_number,
            inv.customer.name,
            inv.status,
            inv.due_date.date().isoformat(),
            format_currency(inv.total, currency_symbol(inv.currency)),
        )
    return table


@invoices_app.callback()
def invoices_main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Create and manage stored invoices."""
    _configure_logging(verbose)


@invoices_app.command("list")
def list_invoices(
    status: Optional[str] = typer.Option(None, "--status", help="Filter by status"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON"),
    store: Optional[Path] = typer.Option(None, "--store", help=STORE_OPTION_HELP),
):
    """List stored invoices."""
    repository = _invoice_repository(store)
    invoices = repository.list_by_status(status) if status else repository.list_all()
    if as_json:
        _print_json([inv.model_dump(mode="json") for inv in invoices])
        return
    console.print(_invoice_table(invoices))


@invoices_app.command("show")
def show_invoice(
    invoice_id: str = typer.Argument(..., help="Invoice id"),
    store: Optional[Path] = typer.Option(None, "--store", help=STORE_OPTION_HELP),
):
    """Print one invoice as JSON."""
    invoice = _invoice_repository(store).get(invoice_id)
    if invoice is None:
        _fail(f"Invoice not found: {invoice_id}")
    _print_json(invoice.model_dump(mode="json"))


@invoices_app.command("create")
def create_invoice(
    customer_name: str = typer.Option(..., "--customer-name", help="Customer name"),
    customer_email: str = typer.Option(..., "--customer-email", help="Customer email"),
    items: List[str] = typer.Option(
        ..., "--item", "-i", help="Line item as DESCRIPTION:QTY:RATE (repeatable)"
    ),
    tax_rate: float = typer.Option(0.0, "--tax", help="Tax rate in percent"),
    discount_rate: float = typer.Option(0.0, "--discount", help="Discount rate in percent"),
    include_fee: bool = typer.Option(False, "--include-fee", help="Add the payment fee to the total"),
    fee_type: str = typer.Option("domestic", "--fee-type", help="Transaction type for the fee"),
    currency: Optional[str] = typer.Option(None, "--currency", "-c", help="Invoice currency"),
    due_date: Optional[datetime] = typer.Option(
        None, "--due-date", formats=["%Y-%m-%d"], help="Due date (YYYY-MM-DD)"
    ),
    notes: Optional[str] = typer.Option(None, "--notes", help="Free-form notes"),
    store: Optional[Path] = typer.Option(None, "--store", help=STORE_OPTION_HELP),
):
    """Create and store a draft invoice."""
    config = get_config()
    currency = (currency or config.default_currency).upper()
    if currency not in config.get_supported_currencies():
        _fail(
            f"Unsupported currency: {currency}. "
            f"Valid: {', '.join(config.get_supported_currencies())}"
        )

    try:
        draft = InvoiceDraft(
            customer=CustomerInput(name=customer_name, email=customer_email),
            items=[_parse_item(spec) for spec in items],
            currency=currency,
            tax_rate=tax_rate,
            discount_rate=discount_rate,
            include_paypal_fee=include_fee,
            paypal_transaction_type=fee_type,
            notes=notes,
            due_date=due_date,
        )
    except ValueError as e:
        _fail(str(e))

    repository = _invoice_repository(store)
    invoice = build_invoice(
        draft,
        repository.next_invoice_number(),
        payment_terms_days=config.payment_terms_days,
    )
    invoice = repository.save(invoice)
    console.print(
        f"[bold green]✓ Created {invoice.invoice_number}[/bold green] "
        f"total {format_currency(invoice.total, currency_symbol(invoice.currency))} "
        f"[dim]({invoice.id})[/dim]"
    )


@invoices_app.command("number")
def adhoc_number():
    """Print a one-off invoice number that does not touch the stored counter."""
    print(generate_invoice_number(get_config().invoice_prefix))


@invoices_app.command("status")
def set_status(
    invoice_id: str = typer.Argument(..., help="Invoice id"),
    status: str = typer.Argument(..., help="draft, sent, paid, overdue or cancelled"),
    store: Optional[Path] = typer.Option(None, "--store", help=STORE_OPTION_HELP),
):
    """Change the status of an invoice."""
    if status not in ("draft", "sent", "paid", "overdue", "cancelled"):
        raise typer.BadParameter(f"Unknown status: {status}")
    if not _invoice_repository(store).update_status(invoice_id, status):
        _fail(f"Invoice not found: {invoice_id}")
    console.print(f"[green]✓ Marked {invoice_id} as {status}[/green]")


@invoices_app.command("delete")
def delete_invoice(
    invoice_id: str = typer.Argument(..., help="Invoice id"),
    store: Optional[Path] = typer.Option(None, "--store", help=STORE_OPTION_HELP),
):
    """Delete an invoice."""
    if not _invoice_repository(store).delete(invoice_id):
        _fail(f"Invoice not found: {invoice_id}")
    console.print(f"[green]✓ Deleted {invoice_id}[/green]")


@invoices_app.command("duplicate")
def duplicate_invoice(
    invoice_id: str = typer.Argument(..., help="Invoice id"),
    store: Optional[Path] = typer.Option(None, "--store", help=STORE_OPTION_HELP),
):
    """Copy an invoice as a new draft."""
    copy = _invoice_repository(store).duplicate(invoice_id)
    if copy is None:
        _fail(f"Invoice not found: {invoice_id}")
    console.print(f"[green]✓ Created {copy.invoice_number}[/green] [dim]({copy.id})[/dim]")


@invoices_app.command("stats")
def invoice_stats(
    store: Optional[Path] = typer.Option(None, "--store", help=STORE_OPTION_HELP),
):
    """Show paid, pending and overdue totals."""
    _print_json(_invoice_repository(store).stats().model_dump())


@invoices_app.command("search")
def search_invoices(
    query: str = typer.Argument(..., help="Text to look for"),
    store: Optional[Path] = typer.Option(None, "--store", help=STORE_OPTION_HELP),
):
    """Search invoices by number, customer or item description."""
    console.print(_invoice_table(_invoice_repository(store).search(query)))


@invoices_app.command("export")
def export_invoices(
    output_file: Optional[Path] = typer.Option(None, "--output", "-o", help="Output JSON file"),
    store: Optional[Path] = typer.Option(None, "--store", help=STORE_OPTION_HELP),
):
    """Export all invoices as JSON."""
    data = _invoice_repository(store).export_json()
    if output_file:
        output_file.write_text(data, encoding="utf-8")
        console.print(f"[dim]Saved output to {output_file}[/dim]")
    else:
        print(data)


@invoices_app.command("import")
def import_invoices(
    input_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON export"),
    store: Optional[Path] = typer.Option(None, "--store", help=STORE_OPTION_HELP),
):
    """Replace stored invoices with a JSON export."""
    if not _invoice_repository(store).import_json(input_file.read_text(encoding="utf-8")):
        _fail("Invalid invoice data format")
    console.print("[green]✓ Invoices imported[/green]")


@settings_app.command("show")
def show_settings(
    store: Optional[Path] = typer.Option(None, "--store", help=STORE_OPTION_HELP),
):
    """Show company settings."""
    settings = CompanySettingsRepository(_open_store(get_config(), store)).get()
    console.print(f"[bold]{settings.name}[/bold]")
    console.print(settings.email)
    if settings.phone:
        console.print(settings.phone)
    console.print(format_company_address(settings.address))


@settings_app.command("import")
def import_settings(
    input_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Settings JSON"),
    store: Optional[Path] = typer.Option(None, "--store", help=STORE_OPTION_HELP),
):
    """Load company settings from JSON (name and email required)."""
    repository = CompanySettingsRepository(_open_store(get_config(), store))
    if not repository.import_json(input_file.read_text(encoding="utf-8")):
        _fail("Invalid settings: name and email are required")
    console.print("[green]✓ Settings saved[/green]")


@settings_app.command("export")
def export_settings(
    store: Optional[Path] = typer.Option(None, "--store", help=STORE_OPTION_HELP),
):
    """Print company settings as JSON."""
    print(CompanySettingsRepository(_open_store(get_config(), store)).export_json())


@settings_app.command("reset")
def reset_settings(
    store: Optional[Path] = typer.Option(None, "--store", help=STORE_OPTION_HELP),
):
    """Restore default company settings."""
    CompanySettingsRepository(_open_store(get_config(), store)).reset_to_defaults()
    console.print("[green]✓ Settings reset to defaults[/green]")


@app.command()
def version():
    """Show version information."""
    console.print("feecalc version 0.1.0")


if __name__ == "__main__":
    app()
