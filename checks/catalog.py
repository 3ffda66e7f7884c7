"""Check catalog.

CheckCatalog is the process-wide registry of check definitions: keys,
titles, thresholds and message templates. It is built once at startup
(optionally with threshold overrides from the environment) and passed by
reference into every audit pass, which creates fresh Check sinks from it.

The catalog is immutable once built. It enforces one invariant: check ids
are unique. Two definitions with the same id would make report output
ambiguous, so a duplicate is rejected immediately.
"""

import logging
import os
from collections.abc import Iterable, Mapping

from checks.check import Check, CheckConfig, CheckMode

logger = logging.getLogger(__name__)

ENV_PREFIX = "AUDIT_THRESHOLD_"

POSTGRES_AVAILABILITY = "postgres_availability"
POSTGRES_LATENCY = "postgres_latency"
POSTGRES_ERRORS = "postgres_errors"
POSTGRES_REPLICATION_LAG = "postgres_replication_lag"
POSTGRES_CONNECTIONS = "postgres_connections"
DEPLOYMENT_STATUS = "deployment_status"

DEFAULT_CHECKS: tuple[CheckConfig, ...] = (
    CheckConfig(
        id=POSTGRES_AVAILABILITY,
        title="Postgres availability",
        threshold=0,
        message="{items} postgres instances are unavailable",
    ),
    CheckConfig(
        id=POSTGRES_LATENCY,
        title="Postgres latency",
        threshold=0.1,
        unit="seconds",
        message="{items} postgres instances are performing slowly",
    ),
    CheckConfig(
        id=POSTGRES_ERRORS,
        title="Postgres errors",
        threshold=0,
        unit="errors",
        mode=CheckMode.COUNTER,
        message="{count} errors occurred",
    ),
    CheckConfig(
        id=POSTGRES_REPLICATION_LAG,
        title="Postgres replication lag",
        threshold=30,
        unit="seconds",
        message="{items} replicas are far behind the primary",
    ),
    CheckConfig(
        id=POSTGRES_CONNECTIONS,
        title="Postgres connections",
        threshold=90,
        unit="percent",
        message="{items} postgres instances have too many connections",
    ),
    CheckConfig(
        id=DEPLOYMENT_STATUS,
        title="Deployment status",
        threshold=0,
        unit="seconds",
        mode=CheckMode.LAST_VALUE,
        message="the rollout has been stuck for {value}s",
    ),
)


class CheckCatalog:
    """Immutable lookup of CheckConfig by id.

    Attributes:
        _configs: Internal dict mapping check id to its definition.
    """

    def __init__(self, configs: Iterable[CheckConfig]) -> None:
        """Build the catalog.

        Raises:
            ValueError: If two configs share an id. This is always a
                programming error, not a recoverable condition.
        """
        self._configs: dict[str, CheckConfig] = {}
        for config in configs:
            if config.id in self._configs:
                raise ValueError(
                    f"Check '{config.id}' is already defined. "
                    "Each check must have a unique id."
                )
            self._configs[config.id] = config

    @classmethod
    def default(cls) -> "CheckCatalog":
        """The built-in catalog with no overrides."""
        return cls(DEFAULT_CHECKS)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "CheckCatalog":
        """The built-in catalog with thresholds overridden from the environment.

        AUDIT_THRESHOLD_POSTGRES_LATENCY=0.25 overrides the threshold of
        "postgres_latency". Values that do not parse as floats are logged
        and ignored so one typo cannot take the whole auditor down.
        """
        environ = os.environ if environ is None else environ
        configs = []
        for config in DEFAULT_CHECKS:
            raw = environ.get(ENV_PREFIX + config.id.upper())
            if raw is not None:
                try:
                    config = config.model_copy(update={"threshold": float(raw)})
                    logger.info("Check %s: threshold overridden to %s", config.id, raw)
                except ValueError:
                    logger.error("Check %s: ignoring invalid threshold %r", config.id, raw)
            configs.append(config)
        return cls(configs)

    def get(self, check_id: str) -> CheckConfig:
        """Return the definition for check_id.

        Raises:
            KeyError: If no check with that id is defined. Audits only
                reference ids from this module, so a miss is a bug.
        """
        return self._configs[check_id]

    def create(self, check_id: str) -> Check:
        """Create a fresh Check sink for one audit pass."""
        return Check(self.get(check_id))

    def all(self) -> list[CheckConfig]:
        return list(self._configs.values())

    def __contains__(self, check_id: object) -> bool:
        return check_id in self._configs

    def __len__(self) -> int:
        return len(self._configs)
