"""
Groups notification channels by channel type.
"""

import logging
from typing import Dict, List

from redis_alert.alerts.models import AlertChannel, ChannelType, Cluster
from redis_alert.alerts.storage.base_storage import ChannelStore
from redis_alert.utils.helpers import parse_id_list

logger = logging.getLogger(__name__)


def classify_channels(channels: List[AlertChannel]) -> Dict[ChannelType, List[AlertChannel]]:
    """
    Group channels by type, keeping their order within a type.

    Channels with an unrecognized type are left out.
    """
    classified: Dict[ChannelType, List[AlertChannel]] = {}
    for channel in channels or []:
        channel_type = ChannelType.of(channel.channel_type)
        if channel_type is None:
            logger.debug(f"Ignoring channel {channel.channel_id} with unknown type {channel.channel_type}")
            continue
        classified.setdefault(channel_type, []).append(channel)
    return classified


class ChannelClassifier:
    """Resolves a cluster's channel ids and classifies the channels"""

    def __init__(self, channel_store: ChannelStore):
        self.channel_store = channel_store

    def get_channel_classification(self, cluster: Cluster) -> Dict[ChannelType, List[AlertChannel]]:
        """
        Args:
            cluster: Cluster whose channel_ids are resolved

        Returns:
            Channel type to channels, empty when the cluster has no channels
        """
        channel_ids = parse_id_list(cluster.channel_ids)
        if not channel_ids:
            return {}

        channels = self.channel_store.get_alert_channels_by_ids(channel_ids)
        if not channels:
            return {}

        return classify_channels(channels)
