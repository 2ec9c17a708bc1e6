"""
Alert evaluator for checking rule conditions against node snapshots.
"""

import logging
from datetime import datetime
from typing import Callable, Dict, Optional

from redis_alert.alerts.alert_rule import AlertRule, CompareType
from redis_alert.alerts.models import NodeInfo
from redis_alert.utils.helpers import to_decimal

logger = logging.getLogger(__name__)

# (threshold, observed) -> matched
Comparator = Callable[[float, float], bool]


def _decimal_equal(threshold: float, observed: float) -> bool:
    return to_decimal(observed) == to_decimal(threshold)


DEFAULT_COMPARATORS: Dict[int, Comparator] = {
    CompareType.EQUAL: _decimal_equal,
    CompareType.NOT_EQUAL: lambda t, v: not _decimal_equal(t, v),
    CompareType.GREATER: lambda t, v: t > v,
    CompareType.LESS: lambda t, v: t < v,
}


class RuleEvaluator:
    """Decides whether a rule is violated by one node snapshot"""

    def __init__(self, comparators: Optional[Dict[int, Comparator]] = None):
        """
        Initialize rule evaluator.

        Args:
            comparators: Operator code to predicate table, defaults to
                DEFAULT_COMPARATORS
        """
        self.comparators = dict(DEFAULT_COMPARATORS if comparators is None else comparators)

    def is_notify(self, node_info: NodeInfo, rule: AlertRule,
                  now: Optional[datetime] = None) -> bool:
        """
        Check whether a rule matches a node snapshot now.

        Args:
            node_info: Latest snapshot of the node
            rule: Alert rule to evaluate
            now: Evaluation time, defaults to datetime.now()

        Returns:
            True if the rule is violated
        """
        if not rule.status:
            return False

        if now is None:
            now = datetime.now()
        if not rule.is_due(now):
            return False

        # Metric not carried by this node type
        if rule.accessor is None:
            return False
        actual_value = rule.accessor.read(node_info.metrics)
        if actual_value is None:
            return False

        return self.compare(rule.alert_value, actual_value, rule.compare_type)

    def compare(self, alert_value: float, actual_value: float, compare_type) -> bool:
        """
        Compare an observed value against a threshold.

        Args:
            alert_value: Rule threshold
            actual_value: Observed metric value
            compare_type: Operator code

        Returns:
            True if the comparison matches, False for unknown operators
        """
        comparator = self.comparators.get(compare_type)
        if comparator is None:
            logger.debug(f"Unknown compare type: {compare_type}")
            return False

        try:
            return comparator(alert_value, actual_value)
        except (TypeError, ValueError, ArithmeticError) as e:
            logger.error(f"Error comparing {actual_value} against {alert_value}: {e}")
            return False
