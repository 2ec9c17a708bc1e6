"""
Storage backends for the alert engine.
"""

from redis_alert.alerts.storage.base_storage import (
    AlertRecord, ChannelStore, ClusterStore, GroupStore, NodeInfoStore, RecordStore, RuleStore,
)

__all__ = [
    'AlertRecord',
    'ChannelStore',
    'ClusterStore',
    'GroupStore',
    'NodeInfoStore',
    'RecordStore',
    'RuleStore',
]
