"""Performance report over a running oracle network."""

import dataclasses
import logging
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from fractions import Fraction
from typing import Any, Dict, List, Optional

from .core.network import OracleNetwork

logger = logging.getLogger(__name__)

UPTIME_THRESHOLD = Decimal("0.95")
ACCURACY_THRESHOLD = Decimal("0.90")
UPTIME_TARGET = Decimal("0.98")
ACCURACY_TARGET = Decimal("0.95")


def to_primitive(value: Any) -> Any:
    """Convert core results into JSON-friendly values.

    Decimals and fractions become strings so no precision is lost.
    """
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            field.name: to_primitive(getattr(value, field.name))
            for field in dataclasses.fields(value)
        }
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (Decimal, Fraction)):
        return str(value)
    if isinstance(value, dict):
        return {str(key): to_primitive(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_primitive(item) for item in value]
    return value


def _average(values: List[Decimal]) -> Optional[Decimal]:
    if not values:
        return None
    return sum(values, Decimal(0)) / len(values)


def build_network_report(
    network: OracleNetwork, timestamp: Optional[datetime] = None
) -> Dict[str, Any]:
    """Network stats, per-oracle performance and the issues found in them."""
    timestamp = timestamp or datetime.now(timezone.utc)
    stats = network.get_network_stats()
    performance = [
        network.get_oracle_performance(oracle_id)
        for oracle_id in network.get_active_oracles()
    ]

    avg_uptime = _average([p.uptime for p in performance if p.uptime is not None])
    avg_accuracy = _average([p.accuracy for p in performance if p.accuracy is not None])

    issues = []
    for entry in performance:
        if entry.uptime is not None and entry.uptime < UPTIME_THRESHOLD:
            issues.append(f"{entry.oracle_id} uptime below threshold")
        if entry.accuracy is not None and entry.accuracy < ACCURACY_THRESHOLD:
            issues.append(f"{entry.oracle_id} accuracy below threshold")

    suggestions = []
    if avg_uptime is not None and avg_uptime < UPTIME_TARGET:
        suggestions.append("Improve oracle uptime reliability")
    if avg_accuracy is not None and avg_accuracy < ACCURACY_TARGET:
        suggestions.append("Enhance oracle accuracy mechanisms")
    if stats.active_oracles < network.settings.min_quorum:
        suggestions.append("Register more oracles to reach quorum")

    if issues:
        logger.warning("Performance issues found: %d", len(issues))

    return {
        "timestamp": timestamp.isoformat(),
        "network_stats": to_primitive(stats),
        "oracle_performance": to_primitive(performance),
        "averages": {
            "avg_uptime": to_primitive(avg_uptime),
            "avg_accuracy": to_primitive(avg_accuracy),
        },
        "halted_assets": sorted(network.state.halted_assets),
        "performance_issues": issues,
        "improvement_suggestions": suggestions,
    }
