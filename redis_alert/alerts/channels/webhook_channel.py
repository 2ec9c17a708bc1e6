"""
Group-robot webhook notification channels (WeChat Work and DingTalk).
"""

import logging
from abc import abstractmethod
from typing import Dict, List

import requests

from redis_alert.alerts.channels.base_channel import BaseNotifier
from redis_alert.alerts.models import AlertChannel
from redis_alert.alerts.storage.base_storage import AlertRecord

logger = logging.getLogger(__name__)


class WebhookNotifier(BaseNotifier):
    """Posts markdown messages to a robot webhook URL stored on the channel"""

    name = 'webhook'

    def __init__(self, config: Dict = None):
        """
        Initialize webhook notifier.

        Args:
            config: Notify configuration dict with optional 'timeout'
        """
        config = config or {}
        self.timeout = config.get('timeout', 10)

    def send(self, channel: AlertChannel, records: List[AlertRecord]) -> bool:
        url = channel.config.get('webhook')
        if not url:
            logger.error(f"Channel {channel.channel_id} has no webhook url")
            return False

        try:
            payload = self._create_payload(records)

            response = requests.post(
                url,
                json=payload,
                headers={'Content-Type': 'application/json'},
                timeout=self.timeout
            )
            response.raise_for_status()

            # Robots answer HTTP 200 with an error code in the body
            body = response.json() if response.content else {}
            if not isinstance(body, dict):
                logger.error(f"Unexpected {self.name} webhook response: {body!r}")
                return False
            if body.get('errcode', 0) != 0:
                logger.error(f"{self.name} webhook rejected message: {body.get('errmsg')}")
                return False

            logger.info(f"{self.name} notification sent to channel {channel.channel_id} ({len(records)} records)")
            return True

        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to send {self.name} notification to channel {channel.channel_id}: {e}")
            return False
        except ValueError as e:
            logger.error(f"Malformed {self.name} webhook response: {e}")
            return False

    @abstractmethod
    def _create_payload(self, records: List[AlertRecord]) -> Dict:
        """Build the robot message body"""
        pass


class WeChatWebHookNotifier(WebhookNotifier):
    """WeChat Work group robot"""

    name = 'wechat_web_hook'

    def _create_payload(self, records: List[AlertRecord]) -> Dict:
        return {
            "msgtype": "markdown",
            "markdown": {
                "content": self.format_message(records),
            },
        }


class DingDingWebHookNotifier(WebhookNotifier):
    """DingTalk group robot"""

    name = 'dingding_web_hook'

    def _create_payload(self, records: List[AlertRecord]) -> Dict:
        return {
            "msgtype": "markdown",
            "markdown": {
                "title": self.format_title(records),
                "text": self.format_message(records),
            },
        }
