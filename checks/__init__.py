"""Threshold checks and the check catalog."""

from checks.catalog import CheckCatalog
from checks.check import Check, CheckConfig, CheckMode, CheckResult

__all__ = ["Check", "CheckCatalog", "CheckConfig", "CheckMode", "CheckResult"]
