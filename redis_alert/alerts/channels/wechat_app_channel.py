"""
WeChat Work application message channel.
"""

import logging
import threading
import time
from typing import Dict, List, Tuple

import requests

from redis_alert.alerts.channels.base_channel import BaseNotifier
from redis_alert.alerts.models import AlertChannel
from redis_alert.alerts.storage.base_storage import AlertRecord

logger = logging.getLogger(__name__)


class WeChatAppNotifier(BaseNotifier):
    """Sends markdown messages through a WeChat Work application"""

    name = 'wechat_app'

    def __init__(self, config: Dict = None):
        """
        Initialize WeChat app notifier.

        Args:
            config: Dict with optional 'api_url' and 'timeout'
        """
        config = config or {}
        self.api_url = config.get('api_url', 'https://qyapi.weixin.qq.com/cgi-bin').rstrip('/')
        self.timeout = config.get('timeout', 10)

        # (corp_id, corp_secret) -> (token, expires_at)
        self._tokens: Dict[Tuple[str, str], Tuple[str, float]] = {}
        self._lock = threading.Lock()

    def _get_access_token(self, corp_id: str, corp_secret: str) -> str:
        """Fetch an access token, reusing a cached one until it expires"""
        key = (corp_id, corp_secret)
        with self._lock:
            cached = self._tokens.get(key)
            if cached and cached[1] > time.time():
                return cached[0]

        response = requests.get(
            f"{self.api_url}/gettoken",
            params={'corpid': corp_id, 'corpsecret': corp_secret},
            timeout=self.timeout
        )
        response.raise_for_status()
        body = response.json()
        if body.get('errcode', 0) != 0:
            raise ValueError(f"gettoken failed: {body.get('errmsg')}")

        token = body['access_token']
        # Refresh a minute early
        expires_at = time.time() + int(body.get('expires_in', 7200)) - 60
        with self._lock:
            self._tokens[key] = (token, expires_at)
        return token

    def send(self, channel: AlertChannel, records: List[AlertRecord]) -> bool:
        config = channel.config
        corp_id = config.get('corp_id')
        corp_secret = config.get('corp_secret')
        agent_id = config.get('agent_id')
        if not (corp_id and corp_secret and agent_id):
            logger.error(f"Channel {channel.channel_id} needs corp_id, corp_secret and agent_id")
            return False

        try:
            token = self._get_access_token(corp_id, corp_secret)
            payload = {
                "touser": config.get('to_user', '@all'),
                "toparty": config.get('to_party', ''),
                "msgtype": "markdown",
                "agentid": agent_id,
                "markdown": {
                    "content": self.format_message(records),
                },
            }

            response = requests.post(
                f"{self.api_url}/message/send",
                params={'access_token': token},
                json=payload,
                timeout=self.timeout
            )
            response.raise_for_status()

            body = response.json()
            if not isinstance(body, dict):
                logger.error(f"Unexpected WeChat app response: {body!r}")
                return False
            if body.get('errcode', 0) != 0:
                logger.error(f"WeChat app rejected message: {body.get('errmsg')}")
                return False

            logger.info(f"WeChat app notification sent to channel {channel.channel_id} ({len(records)} records)")
            return True

        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to send WeChat app notification to channel {channel.channel_id}: {e}")
            return False
        except (KeyError, ValueError) as e:
            logger.error(f"WeChat app error for channel {channel.channel_id}: {e}")
            return False
