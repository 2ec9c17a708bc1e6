"""Tests for notification channels"""

from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest
import requests

from redis_alert.alerts.channels.base_channel import BaseNotifier
from redis_alert.alerts.channels.email_channel import EmailNotifier
from redis_alert.alerts.channels.webhook_channel import (
    DingDingWebHookNotifier, WeChatWebHookNotifier, WebhookNotifier,
)
from redis_alert.alerts.channels.wechat_app_channel import WeChatAppNotifier
from redis_alert.alerts.models import AlertChannel, ChannelType
from redis_alert.alerts.storage.base_storage import AlertRecord

WEBHOOK_POST = 'redis_alert.alerts.channels.webhook_channel.requests.post'


def make_record(redis_node="10.0.0.1:6379", rule_info=""):
    return AlertRecord(
        group_id=1, group_name="payments", cluster_id=10, cluster_name="payments-cache",
        redis_node=redis_node, alert_rule="usedMemory1100", actual_data="usedMemory=50",
        is_global=False, rule_info=rule_info, update_time=datetime(2026, 3, 1, 12, 0, 0),
    )


def ok_response(body=None):
    response = MagicMock()
    response.content = b'{}'
    response.json.return_value = body if body is not None else {'errcode': 0, 'errmsg': 'ok'}
    return response


class TestBaseNotifier:
    """Test batch delivery shared by every notifier"""

    def test_nothing_sent_without_channels_or_records(self):
        notifier = WeChatWebHookNotifier()
        channel = AlertChannel(channel_id=1, channel_type=ChannelType.WECHAT_WEB_HOOK,
                               config={'webhook': 'http://hook'})

        with patch(WEBHOOK_POST) as post:
            assert notifier.notify([], [make_record()]) is True
            assert notifier.notify([channel], []) is True
            post.assert_not_called()

    def test_failed_channel_does_not_stop_others(self):
        notifier = WeChatWebHookNotifier()
        channels = [
            AlertChannel(channel_id=1, channel_type=ChannelType.WECHAT_WEB_HOOK),
            AlertChannel(channel_id=2, channel_type=ChannelType.WECHAT_WEB_HOOK, config={'webhook': 'http://hook'}),
        ]

        with patch(WEBHOOK_POST, return_value=ok_response()) as post:
            assert notifier.notify(channels, [make_record()]) is False
            post.assert_called_once()

    def test_raising_channel_does_not_stop_others(self):
        class FlakyNotifier(BaseNotifier):
            def __init__(self):
                self.sent = []

            def send(self, channel, records):
                if channel.channel_id == 1:
                    raise KeyError("webhook")
                self.sent.append(channel.channel_id)
                return True

        notifier = FlakyNotifier()
        channels = [AlertChannel(channel_id=1, channel_type=1), AlertChannel(channel_id=2, channel_type=1)]

        assert notifier.notify(channels, [make_record()]) is False
        assert notifier.sent == [2]

    def test_bad_email_channel_before_good_one(self):
        notifier = EmailNotifier({'smtp_host': 'smtp.default', 'email_from': 'alert@example.com'})
        channels = [
            AlertChannel(channel_id=1, channel_type=0, config={'smtp_port': 'abc', 'email_to': 'a@example.com'}),
            AlertChannel(channel_id=2, channel_type=0, config={'email_to': 'b@example.com'}),
        ]

        with patch('redis_alert.alerts.channels.email_channel.smtplib.SMTP') as smtp_cls:
            smtp = smtp_cls.return_value.__enter__.return_value
            assert notifier.notify(channels, [make_record()]) is False

        smtp.sendmail.assert_called_once()
        assert smtp.sendmail.call_args.args[1] == ['b@example.com']

    def test_format_message(self):
        notifier = WeChatWebHookNotifier()
        message = notifier.format_message([make_record(), make_record("10.0.0.2:6379", "memory low")])

        lines = message.split("\n")
        assert lines[0] == "### Redis alert: payments/payments-cache (2)"
        assert "10.0.0.1:6379" in lines[1]
        assert "usedMemory1100" in lines[1]
        assert lines[2].endswith(": memory low")
        assert lines[-1] == "> 2026-03-01 12:00:00"


class TestWebhookNotifiers:
    """Test robot webhook delivery"""

    def test_wechat_payload(self):
        notifier = WeChatWebHookNotifier({'timeout': 3})
        channel = AlertChannel(channel_id=1, channel_type=1, config={'webhook': 'http://wechat'})

        with patch(WEBHOOK_POST, return_value=ok_response()) as post:
            assert notifier.send(channel, [make_record()]) is True

        args, kwargs = post.call_args
        assert args[0] == 'http://wechat'
        assert kwargs['json']['msgtype'] == 'markdown'
        assert "usedMemory=50" in kwargs['json']['markdown']['content']
        assert kwargs['timeout'] == 3

    def test_dingding_payload(self):
        notifier = DingDingWebHookNotifier()
        channel = AlertChannel(channel_id=2, channel_type=2, config={'webhook': 'http://dingding'})

        with patch(WEBHOOK_POST, return_value=ok_response()) as post:
            assert notifier.send(channel, [make_record()]) is True

        markdown = post.call_args.kwargs['json']['markdown']
        assert markdown['title'] == "Redis alert: payments/payments-cache (1)"
        assert markdown['text'].startswith("### ")

    def test_missing_webhook(self):
        channel = AlertChannel(channel_id=1, channel_type=1)

        with patch(WEBHOOK_POST) as post:
            assert WeChatWebHookNotifier().send(channel, [make_record()]) is False
            post.assert_not_called()

    def test_error_code_in_body(self):
        channel = AlertChannel(channel_id=1, channel_type=1, config={'webhook': 'http://wechat'})
        response = ok_response({'errcode': 93000, 'errmsg': 'invalid webhook url'})

        with patch(WEBHOOK_POST, return_value=response):
            assert WeChatWebHookNotifier().send(channel, [make_record()]) is False

    def test_non_object_body(self):
        channels = [
            AlertChannel(channel_id=1, channel_type=1, config={'webhook': 'http://broken'}),
            AlertChannel(channel_id=2, channel_type=1, config={'webhook': 'http://wechat'}),
        ]

        def respond(url, **kwargs):
            return ok_response([]) if url == 'http://broken' else ok_response()

        with patch(WEBHOOK_POST, side_effect=respond) as post:
            assert WeChatWebHookNotifier().send(channels[0], [make_record()]) is False
            assert WeChatWebHookNotifier().notify(channels, [make_record()]) is False

        assert [c.args[0] for c in post.call_args_list] == ['http://broken', 'http://broken', 'http://wechat']

    def test_generic_webhook_is_abstract(self):
        with pytest.raises(TypeError):
            WebhookNotifier()

    def test_request_failure(self):
        channel = AlertChannel(channel_id=1, channel_type=1, config={'webhook': 'http://wechat'})

        with patch(WEBHOOK_POST, side_effect=requests.exceptions.ConnectionError("refused")):
            assert WeChatWebHookNotifier().send(channel, [make_record()]) is False


class TestWeChatAppNotifier:
    """Test WeChat Work application delivery"""

    def setup_method(self):
        self.channel = AlertChannel(
            channel_id=3, channel_type=3,
            config={'corp_id': 'corp', 'corp_secret': 'secret', 'agent_id': 1000002, 'to_user': 'ops'},
        )

    def test_token_cached(self):
        notifier = WeChatAppNotifier({'api_url': 'http://wechat/cgi-bin/'})
        token = ok_response({'errcode': 0, 'access_token': 'token-1', 'expires_in': 7200})

        with patch('redis_alert.alerts.channels.wechat_app_channel.requests.get', return_value=token) as get, \
                patch('redis_alert.alerts.channels.wechat_app_channel.requests.post',
                      return_value=ok_response()) as post:
            assert notifier.send(self.channel, [make_record()]) is True
            assert notifier.send(self.channel, [make_record()]) is True

        get.assert_called_once()
        assert get.call_args.args[0] == 'http://wechat/cgi-bin/gettoken'
        assert post.call_count == 2
        assert post.call_args.kwargs['params'] == {'access_token': 'token-1'}
        assert post.call_args.kwargs['json']['touser'] == 'ops'
        assert post.call_args.kwargs['json']['agentid'] == 1000002

    def test_missing_credentials(self):
        channel = AlertChannel(channel_id=3, channel_type=3, config={'corp_id': 'corp'})
        assert WeChatAppNotifier().send(channel, [make_record()]) is False

    def test_token_error(self):
        error = ok_response({'errcode': 40013, 'errmsg': 'invalid corpid'})

        with patch('redis_alert.alerts.channels.wechat_app_channel.requests.get', return_value=error):
            assert WeChatAppNotifier().send(self.channel, [make_record()]) is False


class TestEmailNotifier:
    """Test SMTP delivery"""

    def test_channel_settings_override_defaults(self):
        notifier = EmailNotifier({'smtp_host': 'smtp.default', 'smtp_port': 25, 'email_from': 'alert@example.com'})
        channel = AlertChannel(channel_id=4, channel_type=0,
                               config={'smtp_port': 2525, 'email_to': 'a@example.com, b@example.com'})

        with patch('redis_alert.alerts.channels.email_channel.smtplib.SMTP') as smtp_cls:
            smtp = smtp_cls.return_value.__enter__.return_value
            assert notifier.send(channel, [make_record()]) is True

        assert smtp_cls.call_args.args == ('smtp.default', 2525)
        from_addr, to_addrs, _ = smtp.sendmail.call_args.args
        assert from_addr == 'alert@example.com'
        assert to_addrs == ['a@example.com', 'b@example.com']
        smtp.login.assert_not_called()

    def test_missing_recipients(self):
        notifier = EmailNotifier({'smtp_host': 'smtp.default', 'email_from': 'alert@example.com'})
        channel = AlertChannel(channel_id=4, channel_type=0)

        with patch('redis_alert.alerts.channels.email_channel.smtplib.SMTP') as smtp_cls:
            assert notifier.send(channel, [make_record()]) is False
            smtp_cls.assert_not_called()

    def test_smtp_failure(self):
        notifier = EmailNotifier({'smtp_host': 'smtp.default', 'email_from': 'alert@example.com',
                                  'email_to': 'ops@example.com'})
        channel = AlertChannel(channel_id=4, channel_type=0)

        with patch('redis_alert.alerts.channels.email_channel.smtplib.SMTP', side_effect=OSError("refused")):
            assert notifier.send(channel, [make_record()]) is False
