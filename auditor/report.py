"""Report builder for a single audit pass.

ReportBuilder is the mutable workspace one domain audit writes into while it
walks the instances: it creates the audit's Check sinks from the catalog and
gets-or-creates charts and tables by title. When the audit is done, build()
snapshots everything into an immutable-by-convention AuditReport.

It is not a store. Nothing outlives the audit pass that created it.
"""

from checks.catalog import CheckCatalog
from checks.check import Check
from schemas.report import AuditReport, Chart, Table


class ReportBuilder:
    """Collects checks, charts and tables for one report.

    Attributes:
        name: Report name (e.g. "postgres").
        _catalog: Shared check catalog. Read only.
        _checks: Checks created for this pass, in creation order.
        _charts: Charts keyed by (title, group), in creation order.
        _tables: Tables keyed by header, in creation order.
    """

    def __init__(self, name: str, catalog: CheckCatalog) -> None:
        self.name = name
        self._catalog = catalog
        self._checks: list[Check] = []
        self._charts: dict[tuple[str, str | None], Chart] = {}
        self._tables: dict[tuple[str, ...], Table] = {}

    def create_check(self, check_id: str) -> Check:
        """Create a fresh Check sink and attach it to this report."""
        check = self._catalog.create(check_id)
        self._checks.append(check)
        return check

    def chart(self, title: str, group: str | None = None, **hints: bool) -> Chart:
        """Return the chart with this title in this group, creating it if needed.

        Keyword arguments set rendering hints on the chart
        (stacked=True, column=True, sorted=True, featured=True).
        """
        key = (title, group)
        chart = self._charts.get(key)
        if chart is None:
            chart = Chart(title=title, group=group)
            self._charts[key] = chart
        for hint, enabled in hints.items():
            setattr(chart, hint, enabled)
        return chart

    def table(self, *header: str) -> Table:
        """Return the table with this header, creating it if needed."""
        table = self._tables.get(header)
        if table is None:
            table = Table(header=list(header))
            self._tables[header] = table
        return table

    def build(self) -> AuditReport:
        """Snapshot checks, non-empty charts and tables into an AuditReport."""
        return AuditReport(
            name=self.name,
            checks=[c.result() for c in self._checks],
            charts=[c for c in self._charts.values() if c.series],
            tables=list(self._tables.values()),
        )
