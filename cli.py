"""Postgres auditor — CLI runner.

Runs the audit against a fixture payload and renders the findings in the
terminal using Rich: one table of check results, then every table of every
report.

Usage:
    uv run python cli.py [path/to/payload.json]

Without an argument the bundled fixtures/cluster_a.json is used.
"""

import json
import logging
import pathlib
import sys

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from auditor.runner import Auditor
from checks.catalog import CheckCatalog
from schemas.instance import AuditInput
from schemas.report import AuditResult, TableCell

console = Console()

_FIXTURE = pathlib.Path(__file__).parent / "fixtures" / "cluster_a.json"

_STATUS_COLORS = {"ok": "green", "warning": "yellow", "critical": "red", "unknown": "dim"}


# ── Rendering ─────────────────────────────────────────────────────────────────

def _cell_text(cell: TableCell) -> str:
    """Flatten a TableCell into Rich markup."""
    text = escape(cell.stub or cell.value)
    if cell.unit and cell.value:
        text = f"{text} {cell.unit}"
    if cell.status:
        color = _STATUS_COLORS.get(cell.status, "dim")
        text = f"[{color}]{text}[/{color}]"
    if cell.tags:
        text += " [dim]" + escape(" ".join(cell.tags)) + "[/dim]"
    for s in cell.summaries:
        mark = "[green]✓[/green]" if s.ok else "[red]✗[/red]"
        text += f"\n{mark} {escape(s.message)}"
    return text


def _print_result(result: AuditResult) -> None:
    """Render the check table and every report table."""
    if not result.reports:
        console.print("\n[yellow]Nothing to audit.[/yellow]")
        return

    checks = Table(title="Checks", show_lines=True, border_style="bright_black")
    checks.add_column("Report",    style="dim",  min_width=10)
    checks.add_column("Check",     style="bold", min_width=24)
    checks.add_column("Threshold", width=14,     justify="right")
    checks.add_column("Status",    width=9,      justify="center")
    checks.add_column("Details",   min_width=30)

    for report in result.reports:
        for c in report.checks:
            color = _STATUS_COLORS[c.status]
            details = c.message
            if c.items:
                details += f" [dim]({', '.join(c.items)})[/dim]"
            checks.add_row(
                report.name,
                c.title,
                f"{c.threshold:g} {c.unit}".strip(),
                f"[{color}]{c.status}[/{color}]",
                details,
            )

    console.print()
    console.print(checks)

    for report in result.reports:
        for t in report.tables:
            table = Table(title=report.name, show_lines=True, border_style="bright_black")
            for h in t.header:
                table.add_column(h)
            for row in t.rows:
                table.add_row(*(_cell_text(c) for c in row.cells))
            console.print()
            console.print(table)

    console.print(f"\n[dim]audit: {result.audit_id}[/dim]\n")


# ── Entry point ───────────────────────────────────────────────────────────────

def main() -> None:
    logging.basicConfig(level=logging.WARNING)

    path = pathlib.Path(sys.argv[1]) if len(sys.argv) > 1 else _FIXTURE
    with open(path) as f:
        audit = AuditInput(**json.load(f))

    console.rule("[bold]Postgres Auditor[/bold]")
    console.print(f"  application  [cyan]{audit.application}[/cyan]")
    console.print(f"  instances    [cyan]{len(audit.instances)}[/cyan]")

    result = Auditor(CheckCatalog.from_env()).run(audit)
    _print_result(result)


if __name__ == "__main__":
    main()
