"""
In-memory stores, backed by plain lists and dicts.

Used for inventory loaded from YAML and in tests.
"""

import dataclasses
import logging
import threading
from datetime import datetime
from typing import Dict, List, Optional

from redis_alert.alerts.alert_rule import AlertRule
from redis_alert.alerts.models import AlertChannel, Cluster, DataType, Group, NodeInfo, TimeType
from redis_alert.alerts.storage.base_storage import (
    AlertRecord, ChannelStore, ClusterStore, GroupStore, NodeInfoStore, RecordStore, RuleStore,
)

logger = logging.getLogger(__name__)


class MemoryGroupStore(GroupStore, ClusterStore):
    """Groups and their clusters"""

    def __init__(self, groups: Optional[List[Group]] = None,
                 clusters: Optional[List[Cluster]] = None):
        self.groups = list(groups or [])
        self.clusters = list(clusters or [])

    def get_all_groups(self) -> List[Group]:
        return list(self.groups)

    def get_cluster_list_by_group_id(self, group_id: int) -> List[Cluster]:
        return [cluster for cluster in self.clusters if cluster.group_id == group_id]


class MemoryRuleStore(RuleStore):
    """Alert rules keyed by id"""

    def __init__(self, rules: Optional[List[AlertRule]] = None):
        self._lock = threading.Lock()
        self.rules: Dict[int, AlertRule] = {rule.rule_id: rule for rule in rules or []}

    def get_alert_rules_by_ids(self, rule_ids: List[int]) -> List[AlertRule]:
        with self._lock:
            return [
                dataclasses.replace(self.rules[rule_id])
                for rule_id in rule_ids
                if rule_id in self.rules
            ]

    def update_last_check_time(self, rule_ids: List[int], check_time: datetime) -> None:
        with self._lock:
            for rule_id in rule_ids:
                rule = self.rules.get(rule_id)
                if rule is not None:
                    rule.last_check_time = check_time
        logger.debug(f"Updated last check time of rules {rule_ids}")


class MemoryChannelStore(ChannelStore):
    """Notification channels keyed by id"""

    def __init__(self, channels: Optional[List[AlertChannel]] = None):
        self.channels: Dict[int, AlertChannel] = {ch.channel_id: ch for ch in channels or []}

    def get_alert_channels_by_ids(self, channel_ids: List[int]) -> List[AlertChannel]:
        return [self.channels[cid] for cid in channel_ids if cid in self.channels]


class MemoryNodeInfoStore(NodeInfoStore):
    """Snapshots pushed by a collector, latest batch served per cluster"""

    def __init__(self, snapshots: Optional[List[NodeInfo]] = None):
        self._lock = threading.Lock()
        self.snapshots: List[NodeInfo] = list(snapshots or [])

    def add(self, node_infos: List[NodeInfo]) -> None:
        with self._lock:
            self.snapshots.extend(node_infos)

    def get_last_node_info_list(self, cluster_id: int,
                                data_type: DataType = DataType.NODE,
                                time_type: TimeType = TimeType.MINUTE) -> List[NodeInfo]:
        with self._lock:
            matching = [
                info for info in self.snapshots
                if info.cluster_id == cluster_id
                and info.data_type == data_type
                and info.time_type == time_type
            ]
        if not matching:
            return []
        latest = max(info.update_time for info in matching)
        return [info for info in matching if info.update_time == latest]


class MemoryRecordStore(RecordStore):
    """Alert records in a list"""

    def __init__(self):
        self._lock = threading.Lock()
        self._next_id = 1
        self.records: List[AlertRecord] = []

    def add_alert_records(self, records: List[AlertRecord]) -> int:
        with self._lock:
            for record in records:
                self.records.append(dataclasses.replace(record, record_id=self._next_id))
                self._next_id += 1
        return len(records)

    def get_alert_records_by_cluster_id(self, cluster_id: int) -> List[AlertRecord]:
        with self._lock:
            return [record for record in self.records if record.cluster_id == cluster_id]

    def delete_alert_records_by_ids(self, record_ids: List[int]) -> int:
        wanted = set(record_ids)
        with self._lock:
            before = len(self.records)
            self.records = [r for r in self.records if r.record_id not in wanted]
            return before - len(self.records)

    def delete_alert_records_before(self, earliest_time: datetime) -> int:
        with self._lock:
            before = len(self.records)
            self.records = [r for r in self.records if r.update_time >= earliest_time]
            return before - len(self.records)
