"""
Email notification channel over SMTP.
"""

import logging
import smtplib
from email.mime.text import MIMEText
from typing import Dict, List

from redis_alert.alerts.channels.base_channel import BaseNotifier
from redis_alert.alerts.models import AlertChannel
from redis_alert.alerts.storage.base_storage import AlertRecord
from redis_alert.utils.helpers import split_by_commas

logger = logging.getLogger(__name__)


class EmailNotifier(BaseNotifier):
    """
    Sends record batches by email.

    SMTP settings come from the channel's configuration, falling back to
    the global notify.email settings.
    """

    name = 'email'

    def __init__(self, config: Dict = None):
        self.defaults = config or {}

    def _setting(self, channel: AlertChannel, key: str, default=None):
        value = channel.config.get(key)
        if value in (None, ''):
            value = self.defaults.get(key, default)
        return value

    def send(self, channel: AlertChannel, records: List[AlertRecord]) -> bool:
        smtp_host = self._setting(channel, 'smtp_host')
        try:
            smtp_port = int(self._setting(channel, 'smtp_port', 25))
        except (TypeError, ValueError):
            logger.error(f"Channel {channel.channel_id} has invalid smtp_port: {self._setting(channel, 'smtp_port')!r}")
            return False
        email_from = self._setting(channel, 'email_from')
        email_to = split_by_commas(self._setting(channel, 'email_to', ''))

        if not smtp_host or not email_from or not email_to:
            logger.error(f"Channel {channel.channel_id} needs smtp_host, email_from and email_to")
            return False

        message = MIMEText(self.format_message(records), 'plain', 'utf-8')
        message['Subject'] = self.format_title(records)
        message['From'] = email_from
        message['To'] = ', '.join(email_to)

        try:
            with smtplib.SMTP(smtp_host, smtp_port, timeout=self._setting(channel, 'timeout', 10)) as smtp:
                if self._setting(channel, 'use_tls', False):
                    smtp.starttls()
                user = self._setting(channel, 'email_user_name')
                if user:
                    smtp.login(user, self._setting(channel, 'email_password', ''))
                smtp.sendmail(email_from, email_to, message.as_string())

            logger.info(f"Email notification sent to channel {channel.channel_id} ({len(records)} records)")
            return True

        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to channel {channel.channel_id}: {e}")
            return False
