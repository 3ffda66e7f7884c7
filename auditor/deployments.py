"""Deployments audit.

Renders deployment statuses that an external classifier has already
assigned (in progress, stuck, cancelled, deployed, summary) into the
"deployments" report: one row per deployment, newest first, and the
deployment-status check, which holds how long the stuck rollout has been
running.
"""

from auditor.report import ReportBuilder
from checks import catalog as checks
from checks.catalog import CheckCatalog
from schemas.instance import DeploymentState, DeploymentStatusInput, DeploymentSummary
from schemas.report import AuditReport, TableCell
from utils.format import format_duration, format_duration_short

MIN_LIFETIME = 30 * 60  # seconds a deployment must live before it is summarized


class DeploymentsAuditor:
    """Builds the deployments report."""

    name = "deployments"

    def __init__(self, catalog: CheckCatalog) -> None:
        self._catalog = catalog

    def audit(self, statuses: list[DeploymentStatusInput], now: int) -> AuditReport | None:
        """Run the audit. Returns None if the application has no deployments.

        Args:
            statuses: Classified deployments, oldest first.
            now: Current time (unix seconds) for age calculations.
        """
        if not statuses:
            return None

        report = ReportBuilder(self.name, self._catalog)
        status_check = report.create_check(checks.DEPLOYMENT_STATUS)
        table = report.table("Deployment", "Active", "Summary")
        table.sorted = True

        newest = len(statuses) - 1
        for i in range(newest, -1, -1):
            ds = statuses[i]
            version = TableCell(
                value=ds.version,
                status=ds.status,
                tags=[f"{format_duration(now - ds.started_at)} ago"],
            )
            active = TableCell(
                value=format_duration(ds.lifetime),
                short_value=format_duration_short(ds.lifetime),
            )

            summary = TableCell()
            if ds.state is DeploymentState.SUMMARY:
                if ds.summary:
                    summary.summaries = list(ds.summary)
                else:
                    summary.stub = "No notable changes"
            elif ds.state is DeploymentState.DEPLOYED:
                version.status = "unknown"
                if i == newest:
                    summary.stub = "Collecting data..."
                else:
                    summary.stub = f"Not enough data due to the lifetime < {format_duration(MIN_LIFETIME)}"
            elif ds.state is DeploymentState.STUCK:
                status_check.set_value(now - ds.started_at)
                summary.summaries = [
                    DeploymentSummary(report="instances", ok=False, message=ds.message, time=ds.started_at)
                ]
            else:
                summary.stub = ds.message

            table.add_row(version, active, summary, row_id=ds.id)

        return report.build()
