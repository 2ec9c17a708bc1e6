"""
Builds alert records from matched rule evaluations.
"""

from datetime import datetime
from typing import Optional

from redis_alert.alerts.alert_rule import AlertRule
from redis_alert.alerts.models import Cluster, Group, NodeInfo
from redis_alert.alerts.storage.base_storage import AlertRecord
from redis_alert.utils.helpers import format_number


class AlertRecordBuilder:
    """Turns a (group, cluster, node, rule) match into an AlertRecord"""

    def build(self, group: Group, cluster: Cluster, node_info: NodeInfo,
              rule: AlertRule, now: Optional[datetime] = None) -> AlertRecord:
        actual_value = rule.accessor.read(node_info.metrics) if rule.accessor else None

        return AlertRecord(
            group_id=group.group_id,
            group_name=group.group_name,
            cluster_id=cluster.cluster_id,
            cluster_name=cluster.cluster_name,
            redis_node=node_info.node,
            alert_rule=rule.rule_text,
            actual_data=f"{rule.alert_key}={format_number(actual_value)}",
            is_global=rule.is_global,
            rule_info=rule.rule_info,
            update_time=now or datetime.now(),
        )
