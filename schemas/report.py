"""Audit output schema.

These are the finished findings handed to the rendering layer: check
results, charts of named series and tables of formatted cells. The audit
core fills them in; it never decides how they are drawn.
"""

import uuid

from pydantic import BaseModel, Field

from checks.check import CheckResult
from schemas.instance import DeploymentSummary, Status
from timeseries.series import TimeSeries


class SeriesData(BaseModel):
    """A named series ready for charting. NaN samples are serialized as null."""

    name: str
    color: str | None = None
    from_ts: int
    step: int
    values: list[float | None]

    @classmethod
    def from_series(cls, name: str, ts: TimeSeries, color: str | None = None) -> "SeriesData":
        return cls(name=name, color=color, from_ts=ts.from_ts, step=ts.step, values=ts.to_list())


class Chart(BaseModel):
    """A chart inside a report.

    Attributes:
        title: Chart title. Charts sharing a title form a group that the
            renderer switches between with a selector.
        group: Selector entry ("overview" or an instance name), None for
            standalone charts.
        stacked, column, sorted, featured: Rendering hints.
        threshold: Optional horizontal limit drawn over the series.
    """

    title: str
    group: str | None = None
    stacked: bool = False
    column: bool = False
    sorted: bool = False
    featured: bool = False
    threshold: SeriesData | None = None
    series: list[SeriesData] = []

    def add_series(self, name: str, ts: TimeSeries | None, color: str | None = None) -> "Chart":
        """Append a series. Series without any data are left out."""
        if ts is None or ts.is_empty():
            return self
        self.series.append(SeriesData.from_series(name, ts, color))
        return self

    def add_many(self, named: list[tuple[str, TimeSeries]]) -> "Chart":
        for name, ts in named:
            self.add_series(name, ts)
        return self

    def set_threshold(self, name: str, ts: TimeSeries | None) -> "Chart":
        if ts is not None and not ts.is_empty():
            self.threshold = SeriesData.from_series(name, ts)
        return self


class TableCell(BaseModel):
    """One formatted table cell. Empty by default: missing data renders blank."""

    value: str = ""
    short_value: str = ""
    unit: str = ""
    tags: list[str] = []
    status: Status | None = None
    icon: str | None = None
    stub: str = ""
    summaries: list[DeploymentSummary] = []


class TableRow(BaseModel):
    id: str | None = None
    cells: list[TableCell]


class Table(BaseModel):
    header: list[str]
    sorted: bool = False
    rows: list[TableRow] = []

    def add_row(self, *cells: TableCell, row_id: str | None = None) -> TableRow:
        row = TableRow(id=row_id, cells=list(cells))
        self.rows.append(row)
        return row


class AuditReport(BaseModel):
    """Findings of one domain audit (e.g. "postgres", "deployments")."""

    name: str
    checks: list[CheckResult] = []
    charts: list[Chart] = []
    tables: list[Table] = []


class AuditResult(BaseModel):
    """Final output of one Auditor.run() pass."""

    application: str
    reports: list[AuditReport]
    audit_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
