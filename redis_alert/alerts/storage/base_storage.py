"""
Base storage interfaces consumed by the alert engine.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from redis_alert.alerts.alert_rule import AlertRule
from redis_alert.alerts.models import AlertChannel, Cluster, DataType, Group, NodeInfo, TimeType


@dataclass(frozen=True)
class AlertRecord:
    """One rule violation on one node at one point in time"""
    group_id: int
    group_name: str
    cluster_id: int
    cluster_name: str
    redis_node: str
    alert_rule: str
    actual_data: str
    is_global: bool
    rule_info: str
    update_time: datetime
    record_id: Optional[int] = None

    def to_dict(self) -> Dict:
        """Convert to dictionary for storage"""
        return {
            'group_id': self.group_id,
            'group_name': self.group_name,
            'cluster_id': self.cluster_id,
            'cluster_name': self.cluster_name,
            'redis_node': self.redis_node,
            'alert_rule': self.alert_rule,
            'actual_data': self.actual_data,
            'is_global': 1 if self.is_global else 0,
            'rule_info': self.rule_info,
            'update_time': self.update_time.isoformat(timespec='microseconds'),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'AlertRecord':
        """Create AlertRecord from dictionary"""
        update_time = data['update_time']
        return cls(
            group_id=data['group_id'],
            group_name=data['group_name'],
            cluster_id=data['cluster_id'],
            cluster_name=data['cluster_name'],
            redis_node=data['redis_node'],
            alert_rule=data['alert_rule'],
            actual_data=data['actual_data'],
            is_global=bool(data['is_global']),
            rule_info=data.get('rule_info') or '',
            update_time=datetime.fromisoformat(update_time) if isinstance(update_time, str) else update_time,
            record_id=data.get('record_id'),
        )


class GroupStore(ABC):
    """Read access to groups"""

    @abstractmethod
    def get_all_groups(self) -> List[Group]:
        pass


class ClusterStore(ABC):
    """Read access to clusters"""

    @abstractmethod
    def get_cluster_list_by_group_id(self, group_id: int) -> List[Cluster]:
        """
        Get the clusters owned by a group, in listing order.

        Args:
            group_id: Group identifier
        """
        pass


class RuleStore(ABC):
    """Alert rules and their checkpoints"""

    @abstractmethod
    def get_alert_rules_by_ids(self, rule_ids: List[int]) -> List[AlertRule]:
        """
        Get rules by id, in the order of the id list.

        Unknown ids are skipped. Returned rules are detached copies;
        mutating them does not change the store.
        """
        pass

    @abstractmethod
    def update_last_check_time(self, rule_ids: List[int], check_time: datetime) -> None:
        """
        Set last_check_time on every listed rule.

        Args:
            rule_ids: Rules to update
            check_time: New checkpoint timestamp
        """
        pass


class ChannelStore(ABC):
    """Read access to notification channels"""

    @abstractmethod
    def get_alert_channels_by_ids(self, channel_ids: List[int]) -> List[AlertChannel]:
        pass


class NodeInfoStore(ABC):
    """Read access to node metric snapshots"""

    @abstractmethod
    def get_last_node_info_list(self, cluster_id: int,
                                data_type: DataType = DataType.NODE,
                                time_type: TimeType = TimeType.MINUTE) -> List[NodeInfo]:
        """
        Get the most recent snapshot batch of a cluster.

        Args:
            cluster_id: Cluster identifier
            data_type: Snapshot granularity
            time_type: Snapshot time bucket

        Returns:
            One NodeInfo per node, all from the latest update_time
        """
        pass


class RecordStore(ABC):
    """Alert record history"""

    @abstractmethod
    def add_alert_records(self, records: List[AlertRecord]) -> int:
        """
        Append a batch of records.

        Returns:
            Number of records written
        """
        pass

    @abstractmethod
    def get_alert_records_by_cluster_id(self, cluster_id: int) -> List[AlertRecord]:
        pass

    @abstractmethod
    def delete_alert_records_by_ids(self, record_ids: List[int]) -> int:
        pass

    @abstractmethod
    def delete_alert_records_before(self, earliest_time: datetime) -> int:
        """
        Delete records strictly older than a timestamp.

        Args:
            earliest_time: Records with update_time before this are deleted

        Returns:
            Number of records deleted
        """
        pass

    def close(self) -> None:
        """Close storage connection and cleanup resources"""
        pass
