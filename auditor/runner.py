"""Auditor — runs every domain audit over one payload.

This is the only class callers use. It:
1. Loads the payload's value lists into immutable TimeSeries
2. Runs each domain audit (postgres, deployments) against them
3. Collects the reports that apply to the application
4. Returns one AuditResult

Each audit gets fresh Check sinks from the shared catalog, so passes are
fully isolated — one run cannot leak findings into the next.
"""

import logging
import time

from auditor.deployments import DeploymentsAuditor
from auditor.instance import load_instances
from auditor.postgres import PostgresAuditor
from checks.catalog import CheckCatalog
from schemas.instance import AuditInput
from schemas.report import AuditReport, AuditResult

logger = logging.getLogger(__name__)


class Auditor:
    """Orchestrates the domain audits for one application.

    Attributes:
        _catalog: Check definitions shared by every pass. Read only.
        _postgres: Postgres audit.
        _deployments: Deployments audit.
    """

    def __init__(self, catalog: CheckCatalog | None = None, top_k: int = PostgresAuditor.TOP_K) -> None:
        self._catalog = catalog or CheckCatalog.default()
        self._postgres = PostgresAuditor(self._catalog, top_k=top_k)
        self._deployments = DeploymentsAuditor(self._catalog)

    def run(self, audit: AuditInput) -> AuditResult:
        """Run every audit against the payload.

        If one audit raises, the error is logged and the remaining audits
        still run — a partial report is better than no report.
        """
        instances = load_instances(audit)
        now = audit.now if audit.now is not None else int(time.time())

        reports: list[AuditReport] = []
        reports.extend(self._run(lambda: self._postgres.audit(instances), self._postgres.name))
        reports.extend(self._run(lambda: self._deployments.audit(audit.deployments, now), self._deployments.name))

        result = AuditResult(application=audit.application, reports=reports)
        logger.info(
            "Audit %s of %s: %d reports, %d instances.",
            result.audit_id, audit.application, len(reports), len(instances),
        )
        return result

    # ── Private ───────────────────────────────────────────────────────────────

    def _run(self, fn, name: str) -> list[AuditReport]:
        """Call an audit, catching and logging any exception."""
        try:
            report = fn()
        except Exception as exc:
            logger.error("Audit %s failed — skipping. Error: %s", name, exc)
            return []
        return [report] if report is not None else []
