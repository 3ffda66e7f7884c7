"""Postgres auditor — HTTP entry point.

Exposes the audit core over a small JSON API:

    POST /api/audit
        → validate the AuditInput payload (400 if it does not parse)
        → run Auditor.run() over it
        → remember the result in memory
        → return the AuditResult

    GET /audits/latest   or   GET /audits/{audit_id}
        → return a result computed earlier in this process

Run locally:
    uv run uvicorn main:app --reload
"""

import logging
import logging.handlers
import os
import pathlib

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

load_dotenv()

from auditor.postgres import PostgresAuditor
from auditor.runner import Auditor
from checks.catalog import CheckCatalog
from schemas.instance import AuditInput
from schemas.report import AuditResult

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

LOG_FILE = pathlib.Path(__file__).parent / "audit.log"
LOG_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_file_handler = logging.handlers.RotatingFileHandler(
    LOG_FILE, maxBytes=1_000_000, backupCount=3, encoding="utf-8",
)
_file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))

_root_logger = logging.getLogger()
_root_logger.setLevel(logging.INFO)
_root_logger.addHandler(_file_handler)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App + CORS
# ---------------------------------------------------------------------------

app = FastAPI(title="Postgres Auditor")

# ALLOWED_ORIGINS env var overrides the default for production deployments.
_origins = os.environ.get("ALLOWED_ORIGINS", "http://localhost:3000").split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Auditor setup
# ---------------------------------------------------------------------------


def _top_k() -> int:
    raw = os.environ.get("AUDIT_TOP_K")
    if raw is None:
        return PostgresAuditor.TOP_K
    try:
        return max(1, int(raw))
    except ValueError:
        logger.error("Ignoring invalid AUDIT_TOP_K=%r.", raw)
        return PostgresAuditor.TOP_K


# Built once per process; every request shares the same catalog.
catalog = CheckCatalog.from_env()
auditor = Auditor(catalog, top_k=_top_k())

# ---------------------------------------------------------------------------
# Result store
# ---------------------------------------------------------------------------

# In-memory store: audit_id → AuditResult. Lost on server restart.
_store: dict[str, AuditResult] = {}
_latest_id: str | None = None


def _save(result: AuditResult) -> None:
    """Write a result to the store and update the latest pointer."""
    global _latest_id
    _store[result.audit_id] = result
    _latest_id = result.audit_id


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@app.get("/health")
def health():
    return {"status": "ok"}


@app.post("/api/audit", response_model=AuditResult)
async def run_audit(request: Request):
    """Audit one application's telemetry and return the findings."""
    try:
        body = await request.json()
        audit = AuditInput.model_validate(body)
    except (ValueError, ValidationError) as exc:
        logger.warning("Rejected audit payload: %s", exc)
        raise HTTPException(status_code=400, detail=str(exc))

    result = auditor.run(audit)
    _save(result)
    return result


@app.get("/audits/latest", response_model=AuditResult)
def get_latest_audit():
    """Return the most recent audit result. 404 if none has run yet."""
    if _latest_id is None or _latest_id not in _store:
        raise HTTPException(status_code=404, detail="No audits yet.")
    return _store[_latest_id]


@app.get("/audits/{audit_id}", response_model=AuditResult)
def get_audit(audit_id: str):
    """Return a specific audit result by ID. 404 if it is unknown."""
    if audit_id not in _store:
        raise HTTPException(status_code=404, detail=f"Audit '{audit_id}' not found.")
    return _store[audit_id]


if __name__ == "__main__":
    uvicorn.run("main:app", host="127.0.0.1", port=8000, reload=True)
