# ruff: noqa: I001
"""CLI for the ``fintrack`` package.

This module exposes callable command handlers (``cmd_add``,
``cmd_import_legacy``, ...) that return a process exit code, and a Typer
console interface that wraps them. The root callback loads a local ``.env``
with ``python-dotenv`` (never overriding already-set variables) and
configures logging before any command runs. Business logic lives in
``fintrack.store`` and the read-side modules.

Commands
--------
- ``add``, ``delete``, ``list``: transaction CRUD
- ``import-legacy <path>``: merge a legacy tab-separated export
- ``fuel-stats``: mileage derived from fuel-tagged notes
- ``lent list|toggle|partial``: repayment tracking
- ``summary``, ``breakdown``: balance and per-category totals
- ``export``: JSON backup or CSV log
- ``insights``, ``scan-receipt``: LLM-assisted helpers (need ``OPENAI_API_KEY``)
"""

from __future__ import annotations

import math
import sys
from datetime import datetime
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv

from .categories import category_label, find_category, find_payment_method, payment_method_label
from .errors import FintrackError
from .logging_setup import configure_logging
from .models import Transaction, TransactionType
from .store import FinanceStore, new_transaction_id


# ---- Small module-level helpers used by CLI commands -------------------------


def _fail(message: str) -> int:
    print(f"Error: {message}", file=sys.stderr)
    return 1


def _format_row(store: FinanceStore, tx: Transaction) -> str:
    from .stats import format_inr

    if tx.type == TransactionType.LENT:
        label = f"Lent to {tx.note}" if tx.note else "Lent"
    else:
        name, icon = category_label(store.categories, tx.category_id)
        label = f"{icon} {name}"
    method, _ = payment_method_label(store.payment_methods, tx.payment_method_id)
    return "\t".join(
        [
            tx.id,
            tx.date.strftime("%Y-%m-%d %H:%M"),
            tx.type.value,
            format_inr(tx.amount),
            label,
            method,
            tx.note,
        ]
    )


# ---- Command handlers --------------------------------------------------------


def cmd_add(
    amount: float,
    *,
    tx_type: TransactionType = TransactionType.EXPENSE,
    category: str | None = None,
    payment_method: str | None = None,
    note: str = "",
    date: datetime | None = None,
    database_url: str | None = None,
) -> int:
    """Record one transaction and print its id.

    ``category`` and ``payment_method`` are matched by id or by name
    (case-insensitive). Lent transactions take no category; their ``note``
    names the counterparty. The payment method defaults to the first one.
    """

    if not math.isfinite(amount) or amount <= 0:
        return _fail("amount must be a positive number")

    store = FinanceStore.open(database_url=database_url)

    category_id: str | None = None
    if tx_type != TransactionType.LENT:
        if not category:
            return _fail("--category is required for income and expense transactions")
        match = next((c for c in store.categories if c.id == category), None) or find_category(
            store.categories, category
        )
        if match is None:
            return _fail(f"unknown category: {category}")
        category_id = match.id

    if payment_method:
        method = next(
            (p for p in store.payment_methods if p.id == payment_method), None
        ) or find_payment_method(store.payment_methods, payment_method)
        if method is None:
            return _fail(f"unknown payment method: {payment_method}")
    elif store.payment_methods:
        method = store.payment_methods[0]
    else:
        return _fail("no payment methods configured")

    tx = store.add_transaction(
        Transaction(
            id=new_transaction_id(),
            amount=amount,
            type=tx_type,
            category_id=category_id,
            payment_method_id=method.id,
            date=date or datetime.now(),
            note=note,
        )
    )
    print(tx.id)
    return 0


def cmd_delete(tx_id: str, *, database_url: str | None = None) -> int:
    store = FinanceStore.open(database_url=database_url)
    try:
        store.delete_transaction(tx_id)
    except FintrackError as e:
        return _fail(str(e))
    print(f"Deleted {tx_id}")
    return 0


def cmd_list(
    *,
    limit: int | None = None,
    tx_type: TransactionType | None = None,
    database_url: str | None = None,
) -> int:
    """Print transactions in stored order (newest entries first)."""

    store = FinanceStore.open(database_url=database_url)
    rows = [t for t in store.transactions if tx_type is None or t.type == tx_type]
    if limit is not None:
        rows = rows[:limit]
    if not rows:
        print("No transactions.")
        return 0
    for tx in rows:
        print(_format_row(store, tx))
    return 0


def cmd_import_legacy(path: str, *, database_url: str | None = None) -> int:
    """Merge a legacy tab-separated export into the store (all or nothing)."""

    from .ingest import read_export_text

    try:
        text = read_export_text(path)
    except FileNotFoundError:
        return _fail(f"File not found: {path}")
    except PermissionError:
        return _fail(f"Permission denied: {path}")
    except FintrackError as e:
        return _fail(str(e))

    store = FinanceStore.open(database_url=database_url)
    try:
        result = store.import_legacy(text)
    except FintrackError as e:
        return _fail(str(e))

    print(
        f"Imported {len(result.transactions)} transactions "
        f"(skipped {result.skipped_lines} lines, "
        f"{result.created_categories} new categories, "
        f"{result.created_payment_methods} new payment methods)"
    )
    return 0


def cmd_fuel_stats(*, database_url: str | None = None) -> int:
    from .fuel import calculate_fuel_stats

    store = FinanceStore.open(database_url=database_url)
    stats = calculate_fuel_stats(store.transactions)
    if stats is None:
        print(
            "Not enough fuel entries. Add at least two expenses with notes like "
            "'Petrol 5L 12000km @104'."
        )
        return 0

    print(f"Average mileage:   {stats.avg_mileage:.2f} km/L")
    print(f"Cost per km:       {stats.avg_cost_per_km:.2f}")
    print(f"Distance tracked:  {stats.total_km_tracked} km")
    print(f"Efficiency:        {stats.efficiency_tier}")
    print(stats.efficiency_summary)
    for p in stats.log_points:
        print(
            f"{p.date:%Y-%m-%d}\t{p.odometer} km\t{p.liters:g} L\t"
            f"{p.mileage:.2f} km/L\t@{p.price_per_liter:.2f}"
        )
    return 0


def cmd_lent_list(*, status: str = "all", database_url: str | None = None) -> int:
    from .lent import Outstanding, filter_lent, lent_status, summarize_lent
    from .stats import format_inr

    store = FinanceStore.open(database_url=database_url)
    try:
        rows = filter_lent(store.transactions, status)
    except ValueError as e:
        return _fail(str(e))

    summary = summarize_lent(store.transactions)
    print(
        f"Total lent {format_inr(summary.total)}, returned {format_inr(summary.returned)}, "
        f"pending {format_inr(summary.pending)}"
    )
    for tx in rows:
        state = lent_status(tx)
        if isinstance(state, Outstanding):
            detail = f"pending {format_inr(state.remaining)}"
        elif state.date is not None:
            detail = f"returned {state.date:%Y-%m-%d}"
        else:
            detail = "returned"
        print(f"{tx.id}\t{tx.date:%Y-%m-%d}\t{tx.note or '-'}\t{format_inr(tx.amount)}\t{detail}")
    return 0


def cmd_lent_toggle(tx_id: str, *, database_url: str | None = None) -> int:
    store = FinanceStore.open(database_url=database_url)
    try:
        tx = store.toggle_returned(tx_id)
    except FintrackError as e:
        return _fail(str(e))
    print(f"{tx.id}\t{'returned' if tx.is_returned else 'pending'}")
    return 0


def cmd_lent_partial(
    tx_id: str,
    amount: float,
    *,
    date: datetime | None = None,
    database_url: str | None = None,
) -> int:
    from .lent import outstanding_balance
    from .stats import format_inr

    store = FinanceStore.open(database_url=database_url)
    try:
        store.add_partial_return(tx_id, amount, date=date)
    except (FintrackError, ValueError) as e:
        return _fail(str(e))
    tx = store.get_transaction(tx_id)
    state = "returned" if tx.is_returned else f"pending {format_inr(outstanding_balance(tx))}"
    print(f"{tx.id}\t{state}")
    return 0


def cmd_summary(*, database_url: str | None = None) -> int:
    from .stats import balance_summary, format_inr

    store = FinanceStore.open(database_url=database_url)
    s = balance_summary(store.transactions)
    print(f"Income:        {format_inr(s.income)}")
    print(f"Expenses:      {format_inr(s.expenses)}")
    print(f"Lent pending:  {format_inr(s.lent_pending)}")
    print(f"Balance:       {format_inr(s.balance)}")
    return 0


def cmd_breakdown(
    *,
    period: str = "month",
    tx_type: TransactionType = TransactionType.EXPENSE,
    category_id: str | None = None,
    database_url: str | None = None,
) -> int:
    from .stats import PERIODS, category_breakdown, filter_period, format_inr

    if period not in PERIODS:
        return _fail(f"unknown period: {period} (expected one of {', '.join(PERIODS)})")

    store = FinanceStore.open(database_url=database_url)
    selected = filter_period(store.transactions, period, category_id=category_id)  # type: ignore[arg-type]
    rows = category_breakdown(selected, store.categories, tx_type)
    if not rows:
        print(f"No {tx_type.value} transactions this {period}.")
        return 0
    for r in rows:
        print(f"{r.icon} {r.name}\t{format_inr(r.value)}\t{r.percentage:.1f}%")
    return 0


def cmd_export(
    *,
    fmt: str = "json",
    output: str | None = None,
    database_url: str | None = None,
) -> int:
    from .export import default_filename, to_csv, to_json, write_export

    store = FinanceStore.open(database_url=database_url)
    if fmt == "json":
        content = to_json(store.transactions, store.categories, store.payment_methods)
    elif fmt == "csv":
        content = to_csv(store.transactions, store.categories, store.payment_methods)
    else:
        return _fail(f"unknown export format: {fmt} (expected json or csv)")

    path = write_export(Path(output) if output else Path.cwd() / default_filename(fmt), content)
    print(path)
    return 0


def cmd_insights(*, database_url: str | None = None) -> int:
    """Refresh and print spending insights; previous ones are kept on failure."""

    from .insights import analyze_finances

    store = FinanceStore.open(database_url=database_url)
    if not store.transactions:
        return _fail("no transactions to analyze")

    insights = analyze_finances(store.transactions, store.categories)
    if insights is None:
        return _fail("could not generate insights (see log for details)")

    store.set_insights(insights)
    for i in insights:
        print(f"[{i.severity}] {i.title}: {i.description}")
    return 0


def cmd_scan_receipt(
    path: str,
    *,
    mime_type: str | None = None,
    database_url: str | None = None,
) -> int:
    """Scan a receipt image and record it as an expense."""

    import mimetypes

    from .insights import image_data_url, scan_receipt, transaction_from_receipt
    from .stats import format_inr

    try:
        image = Path(path).read_bytes()
    except FileNotFoundError:
        return _fail(f"File not found: {path}")
    except PermissionError:
        return _fail(f"Permission denied: {path}")

    mime = mime_type or mimetypes.guess_type(path)[0] or "image/jpeg"
    store = FinanceStore.open(database_url=database_url)
    result = scan_receipt(image, mime, category_names=[c.name for c in store.categories])
    if result is None:
        return _fail("failed to scan receipt (see log for details)")

    tx = store.add_transaction(
        transaction_from_receipt(
            result,
            store.categories,
            store.payment_methods,
            tx_id=new_transaction_id(),
            image_url=image_data_url(image, mime),
        )
    )
    print(f"{tx.id}\t{format_inr(tx.amount)}\t{tx.note}")
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Personal finance tracker: record transactions, import legacy exports, "
        "track lent money and fuel efficiency. Loads a local .env before running."
    ),
)

lent_app = typer.Typer(no_args_is_help=True, help="Money lent to others and its repayment.")
app.add_typer(lent_app, name="lent")


def _exit(code: int) -> None:
    if code:
        raise typer.Exit(code)


def _db(ctx: typer.Context) -> str | None:
    return (ctx.obj or {}).get("database_url")


# Shared annotated parameter for commands addressing one transaction.
TxIdArgument = Annotated[str, typer.Argument(help="Transaction id (see `fintrack list`).")]


@app.command("add")
def add_cmd(
    ctx: typer.Context,
    amount: Annotated[float, typer.Argument(help="Amount in rupees (positive).")],
    *,
    tx_type: Annotated[TransactionType, typer.Option("--type", "-t")] = TransactionType.EXPENSE,
    category: Annotated[str | None, typer.Option("--category", "-c", help="Name or id.")] = None,
    payment_method: Annotated[
        str | None, typer.Option("--method", "-m", help="Payment method name or id.")
    ] = None,
    note: Annotated[str, typer.Option("--note", "-n")] = "",
    date: Annotated[datetime | None, typer.Option("--date", help="Defaults to now.")] = None,
) -> None:
    """Record a transaction."""

    _exit(
        cmd_add(
            amount,
            tx_type=tx_type,
            category=category,
            payment_method=payment_method,
            note=note,
            date=date,
            database_url=_db(ctx),
        )
    )


@app.command("delete")
def delete_cmd(ctx: typer.Context, tx_id: TxIdArgument) -> None:
    """Delete a transaction by id."""

    _exit(cmd_delete(tx_id, database_url=_db(ctx)))


@app.command("list")
def list_cmd(
    ctx: typer.Context,
    *,
    limit: Annotated[int | None, typer.Option("--limit", "-l", min=1)] = None,
    tx_type: Annotated[TransactionType | None, typer.Option("--type", "-t")] = None,
) -> None:
    """List transactions, newest entries first."""

    _exit(cmd_list(limit=limit, tx_type=tx_type, database_url=_db(ctx)))


@app.command("import-legacy")
def import_legacy_cmd(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(help="Tab-separated legacy export (.txt/.tsv).")],
) -> None:
    """Import a legacy export, auto-creating unknown categories and accounts."""

    _exit(cmd_import_legacy(str(path), database_url=_db(ctx)))


@app.command("fuel-stats")
def fuel_stats_cmd(ctx: typer.Context) -> None:
    """Show mileage derived from expense notes like 'Petrol 5L 12000km'."""

    _exit(cmd_fuel_stats(database_url=_db(ctx)))


@lent_app.command("list")
def lent_list_cmd(
    ctx: typer.Context,
    *,
    status: Annotated[str, typer.Option(help="all, pending or returned.")] = "all",
) -> None:
    """List lent transactions with their repayment state."""

    _exit(cmd_lent_list(status=status, database_url=_db(ctx)))


@lent_app.command("toggle")
def lent_toggle_cmd(ctx: typer.Context, tx_id: TxIdArgument) -> None:
    """Mark a lent transaction returned, or back to pending."""

    _exit(cmd_lent_toggle(tx_id, database_url=_db(ctx)))


@lent_app.command("partial")
def lent_partial_cmd(
    ctx: typer.Context,
    tx_id: TxIdArgument,
    amount: Annotated[float, typer.Argument(help="Amount repaid.")],
    *,
    date: Annotated[datetime | None, typer.Option("--date", help="Defaults to now.")] = None,
) -> None:
    """Record a partial repayment."""

    _exit(cmd_lent_partial(tx_id, amount, date=date, database_url=_db(ctx)))


@app.command("summary")
def summary_cmd(ctx: typer.Context) -> None:
    """Show income, expenses, pending lent money and the balance."""

    _exit(cmd_summary(database_url=_db(ctx)))


@app.command("breakdown")
def breakdown_cmd(
    ctx: typer.Context,
    *,
    period: Annotated[str, typer.Option(help="day, week or month.")] = "month",
    tx_type: Annotated[TransactionType, typer.Option("--type", "-t")] = TransactionType.EXPENSE,
    category_id: Annotated[str | None, typer.Option("--category-id")] = None,
) -> None:
    """Per-category totals for the current day, week or month."""

    _exit(
        cmd_breakdown(
            period=period, tx_type=tx_type, category_id=category_id, database_url=_db(ctx)
        )
    )


@app.command("export")
def export_cmd(
    ctx: typer.Context,
    *,
    fmt: Annotated[str, typer.Option("--format", "-f", help="json or csv.")] = "json",
    output: Annotated[str | None, typer.Option("--output", "-o")] = None,
) -> None:
    """Write a JSON backup or a CSV log."""

    _exit(cmd_export(fmt=fmt, output=output, database_url=_db(ctx)))


@app.command("insights")
def insights_cmd(ctx: typer.Context) -> None:
    """Ask the model for spending insights and store them."""

    _exit(cmd_insights(database_url=_db(ctx)))


@app.command("scan-receipt")
def scan_receipt_cmd(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(help="Receipt image (jpeg/png).")],
    *,
    mime_type: Annotated[str | None, typer.Option("--mime-type")] = None,
) -> None:
    """Scan a receipt image and record it as an expense."""

    _exit(cmd_scan_receipt(str(path), mime_type=mime_type, database_url=_db(ctx)))


@app.callback()
def _root(
    ctx: typer.Context,
    *,
    database_url: Annotated[
        str | None, typer.Option(help="Override DATABASE_URL (falls back to env var).")
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option(help="Log level (falls back to FINTRACK_LOG_LEVEL, then INFO)."),
    ] = None,
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)
    ctx.obj = {"database_url": database_url}


if __name__ == "__main__":  # pragma: no cover
    # Running as a module: `python -m fintrack.cli`
    app()
