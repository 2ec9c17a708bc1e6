"""
Base notification channel interface.
"""

from abc import ABC, abstractmethod
from typing import List
import logging

from redis_alert.alerts.models import AlertChannel
from redis_alert.alerts.storage.base_storage import AlertRecord

logger = logging.getLogger(__name__)


class BaseNotifier(ABC):
    """Delivers alert record batches to all channels of one channel type"""

    name = 'base'

    def notify(self, channels: List[AlertChannel], records: List[AlertRecord]) -> bool:
        """
        Send a record batch to every channel.

        Nothing is sent when there are no channels or no records. A failed
        channel does not stop delivery to the remaining ones.

        Args:
            channels: Channels of this notifier's type
            records: Alert records of one cluster

        Returns:
            True if every channel was delivered to
        """
        if not channels or not records:
            return True

        ok = True
        for channel in channels:
            try:
                sent = self.send(channel, records)
            except Exception as e:
                logger.error(f"{self.name} notification error for channel {channel.channel_id}: {e}", exc_info=True)
                sent = False
            if not sent:
                logger.error(f"{self.name} notification failed for channel {channel.channel_id}")
                ok = False
        return ok

    @abstractmethod
    def send(self, channel: AlertChannel, records: List[AlertRecord]) -> bool:
        """
        Send alert notification to one channel.

        Args:
            channel: Destination channel
            records: Alert records to deliver

        Returns:
            True if notification sent successfully, False otherwise
        """
        pass

    def format_title(self, records: List[AlertRecord]) -> str:
        first = records[0]
        return f"Redis alert: {first.group_name}/{first.cluster_name} ({len(records)})"

    def format_message(self, records: List[AlertRecord]) -> str:
        """
        Render a record batch as markdown lines.

        Args:
            records: Alert records

        Returns:
            Message body
        """
        lines = [f"### {self.format_title(records)}"]
        for record in records:
            scope = 'cluster' if record.is_global else 'node'
            lines.append(
                f"- **{record.redis_node}** {record.actual_data} "
                f"(rule `{record.alert_rule}`, {scope})"
                + (f": {record.rule_info}" if record.rule_info else "")
            )
        lines.append(f"> {records[-1].update_time.strftime('%Y-%m-%d %H:%M:%S')}")
        return "\n".join(lines)
