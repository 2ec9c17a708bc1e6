"""
Fans alert record batches out to one notifier per channel type.
"""

import logging
from typing import Dict, List, Optional

from redis_alert.alerts.channels.base_channel import BaseNotifier
from redis_alert.alerts.models import AlertChannel, ChannelType
from redis_alert.alerts.storage.base_storage import AlertRecord

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Invokes every channel type's notifier for a cluster's record batch"""

    def __init__(self, notifiers: Dict[ChannelType, BaseNotifier], metrics=None):
        """
        Initialize dispatcher.

        Args:
            notifiers: Notifier per channel type
            metrics: Optional AlertMetrics for failure counting
        """
        self.notifiers = notifiers
        self.metrics = metrics

    def send_message(self, channel_map: Dict[ChannelType, List[AlertChannel]],
                     records: List[AlertRecord]) -> Dict[ChannelType, bool]:
        """
        Send records through every known channel type.

        Each notifier is called once, with an empty channel list when the
        cluster has no channel of its type. A notifier failure is logged
        and does not affect the others.

        Returns:
            Delivery outcome per channel type
        """
        results = {}
        for channel_type in ChannelType:
            notifier: Optional[BaseNotifier] = self.notifiers.get(channel_type)
            if notifier is None:
                continue

            channels = channel_map.get(channel_type, [])
            try:
                ok = notifier.notify(channels, records)
            except Exception as e:
                logger.error(f"Notifier {channel_type.name} failed: {e}", exc_info=True)
                ok = False

            if not ok and self.metrics is not None:
                self.metrics.notify_failures.labels(channel_type=channel_type.name.lower()).inc()
            results[channel_type] = ok
        return results
