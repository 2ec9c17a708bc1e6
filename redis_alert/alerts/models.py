"""
Entities read by the alert engine: groups, clusters, channels and node
metric snapshots.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Group:
    """Top-level organizational unit owning clusters"""
    group_id: int
    group_name: str


@dataclass(frozen=True)
class Cluster:
    """Managed Redis deployment with its rule and channel references"""
    cluster_id: int
    cluster_name: str
    group_id: int
    rule_ids: str = ""      # comma-separated
    channel_ids: str = ""   # comma-separated


class ChannelType(IntEnum):
    """Delivery mechanism of a notification channel"""
    EMAIL = 0
    WECHAT_WEB_HOOK = 1
    DINGDING_WEB_HOOK = 2
    WECHAT_APP = 3

    @classmethod
    def of(cls, code) -> Optional['ChannelType']:
        """Look up a channel type by code, None when unrecognized"""
        try:
            return cls(int(code))
        except (TypeError, ValueError):
            return None


@dataclass(frozen=True)
class AlertChannel:
    """Configured notification destination"""
    channel_id: int
    channel_type: int
    channel_name: str = ""
    group_id: Optional[int] = None
    config: Dict[str, Any] = field(default_factory=dict, hash=False, compare=False)


class DataType(str, Enum):
    """Granularity of a metric snapshot"""
    NODE = 'node'
    CLUSTER = 'cluster'


class TimeType(str, Enum):
    """Time bucket of a metric snapshot"""
    MINUTE = 'minute'
    HOUR = 'hour'
    DAY = 'day'


@dataclass(frozen=True)
class NodeInfo:
    """Timestamped metric snapshot of one Redis node"""
    node: str
    cluster_id: int
    update_time: datetime
    metrics: Dict[str, float] = field(default_factory=dict, hash=False)
    data_type: DataType = DataType.NODE
    time_type: TimeType = TimeType.MINUTE
