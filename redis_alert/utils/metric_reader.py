"""
Utility for reading metric values out of node snapshots.

Alert rules name metrics with canonical snake_case keys (``used_memory``),
while snapshots store INFO fields under camelCase names (``usedMemory``).
The table below maps one onto the other so a rule's key is resolved once,
when the rule is loaded, instead of on every evaluation.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

logger = logging.getLogger(__name__)


METRIC_FIELDS: Dict[str, str] = {
    'response_time': 'responseTime',
    'connected_clients': 'connectedClients',
    'blocked_clients': 'blockedClients',
    'connections_received': 'connectionsReceived',
    'rejected_connections': 'rejectedConnections',
    'commands_processed': 'commandsProcessed',
    'instantaneous_ops_per_sec': 'instantaneousOpsPerSec',
    'sync_full': 'syncFull',
    'sync_partial_ok': 'syncPartialOk',
    'sync_partial_err': 'syncPartialErr',
    'keyspace_hits': 'keyspaceHits',
    'keyspace_misses': 'keyspaceMisses',
    'keyspace_hits_ratio': 'keyspaceHitsRatio',
    'used_memory': 'usedMemory',
    'used_memory_rss': 'usedMemoryRss',
    'used_memory_overhead': 'usedMemoryOverhead',
    'used_memory_dataset': 'usedMemoryDataset',
    'used_memory_dataset_perc': 'usedMemoryDatasetPerc',
    'mem_fragmentation_ratio': 'memFragmentationRatio',
    'total_net_input_bytes': 'totalNetInputBytes',
    'total_net_output_bytes': 'totalNetOutputBytes',
    'instantaneous_input_kbps': 'instantaneousInputKbps',
    'instantaneous_output_kbps': 'instantaneousOutputKbps',
    'used_cpu_sys': 'usedCpuSys',
    'used_cpu_user': 'usedCpuUser',
    'keys': 'keys',
    'expires': 'expires',
}

# Snapshot field names are accepted as rule keys too
_FIELD_NAMES = {field: field for field in METRIC_FIELDS.values()}


@dataclass(frozen=True)
class MetricAccessor:
    """Reads one metric field from a snapshot's metric mapping"""
    key: str
    field: str

    def read(self, metrics: Dict[str, float]) -> Optional[float]:
        """
        Read the metric value.

        Returns:
            The value, or None when the snapshot does not carry the field
            or carries something that is not a number
        """
        value = metrics.get(self.field)
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return value
        try:
            return float(value)
        except (TypeError, ValueError):
            logger.debug(f"Non-numeric value for {self.field}: {value!r}")
            return None


def resolve_metric(key: str) -> Optional[MetricAccessor]:
    """
    Resolve a rule's metric key to an accessor.

    Args:
        key: Canonical snake_case key or snapshot field name

    Returns:
        MetricAccessor, or None when the key is unknown
    """
    if not key:
        return None
    field = METRIC_FIELDS.get(key) or _FIELD_NAMES.get(key)
    if field is None:
        return None
    return MetricAccessor(key=key, field=field)
