"""
Alert rule data structures and loading utilities.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import IntEnum
from typing import Dict, List, Optional
import logging

from redis_alert.utils.helpers import format_number
from redis_alert.utils.metric_reader import MetricAccessor, resolve_metric

logger = logging.getLogger(__name__)


class CompareType(IntEnum):
    """Comparison operator codes stored on a rule"""
    EQUAL = 0
    GREATER = 1
    LESS = -1
    NOT_EQUAL = 2


_NAMES = {
    'equal': CompareType.EQUAL,
    '=': CompareType.EQUAL,
    '==': CompareType.EQUAL,
    'greater': CompareType.GREATER,
    '>': CompareType.GREATER,
    'less': CompareType.LESS,
    '<': CompareType.LESS,
    'not_equal': CompareType.NOT_EQUAL,
    '!=': CompareType.NOT_EQUAL,
}


def parse_compare_type(value) -> int:
    """
    Parse an operator given as a code or a name.

    Unrecognized values are kept as-is; the evaluator treats them as
    never matching.
    """
    if isinstance(value, str):
        named = _NAMES.get(value.strip().lower())
        if named is not None:
            return int(named)
        try:
            return int(value)
        except ValueError:
            return value
    return value


def compare_code(compare_type) -> str:
    """Render an operator as its numeric code, or as given if unknown"""
    try:
        return str(int(CompareType(compare_type)))
    except ValueError:
        return str(compare_type)


@dataclass
class AlertRule:
    """Threshold condition on a node metric"""
    rule_id: int
    alert_key: str
    compare_type: int
    alert_value: float
    check_cycle: int = 1  # minutes
    last_check_time: Optional[datetime] = None
    status: bool = True
    is_global: bool = False
    rule_info: str = ""
    accessor: Optional[MetricAccessor] = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        """Validate rule configuration and resolve the metric accessor"""
        if self.check_cycle < 0:
            raise ValueError(f"check_cycle must be >= 0, got {self.check_cycle}")

        if self.accessor is None:
            self.accessor = resolve_metric(self.alert_key)

    @property
    def rule_text(self) -> str:
        """Rule rendered as key, operator code and threshold, e.g. usedMemory1100"""
        return f"{self.alert_key}{compare_code(self.compare_type)}{format_number(self.alert_value)}"

    def is_due(self, now: datetime) -> bool:
        """Check whether the check cycle has elapsed since the last match"""
        if self.last_check_time is None:
            return True
        return now - self.last_check_time >= timedelta(minutes=self.check_cycle)


def build_alert_rule(rule_config: Dict) -> AlertRule:
    """
    Build an AlertRule from a config mapping.

    Raises:
        KeyError: If a required field is missing
        ValueError: If a field has an invalid value
    """
    condition = rule_config.get('condition', {})
    last_check_time = rule_config.get('last_check_time')
    if isinstance(last_check_time, str):
        last_check_time = datetime.fromisoformat(last_check_time)

    return AlertRule(
        rule_id=int(rule_config['rule_id']),
        alert_key=rule_config['alert_key'],
        compare_type=parse_compare_type(condition.get('operator', rule_config.get('compare_type', 1))),
        alert_value=float(condition.get('threshold', rule_config.get('alert_value', 0))),
        check_cycle=int(rule_config.get('check_cycle', 1)),
        last_check_time=last_check_time,
        status=bool(rule_config.get('status', True)),
        is_global=bool(rule_config.get('global', False)),
        rule_info=rule_config.get('rule_info', ''),
    )


def load_alert_rules(rule_configs: List[Dict]) -> List[AlertRule]:
    """
    Load alert rules from config mappings.

    Rules whose metric key is unknown are skipped with an error log; a
    rule that cannot match anything is a configuration mistake.

    Args:
        rule_configs: List of rule mappings (from YAML)

    Returns:
        List of AlertRule objects
    """
    rules = []
    for rule_config in rule_configs or []:
        try:
            rule = build_alert_rule(rule_config)
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Failed to load rule {rule_config.get('rule_id', 'unknown')}: {e}")
            continue

        if rule.accessor is None:
            logger.error(f"Unknown metric key '{rule.alert_key}' in rule {rule.rule_id}, skipping")
            continue

        rules.append(rule)
        logger.debug(f"Loaded alert rule: {rule.rule_id} ({rule.rule_text})")

    logger.info(f"Loaded {len(rules)} alert rules")
    return rules
