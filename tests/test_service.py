"""Tests for service wiring and the command-line entry point"""

from datetime import datetime
from unittest.mock import MagicMock

import pytest

from redis_alert.alerts.alert_rule import AlertRule, CompareType
from redis_alert.alerts.models import AlertChannel, ChannelType, Cluster, Group, NodeInfo
from redis_alert.alerts.storage.inventory import Inventory
from redis_alert.alerts.storage.memory_storage import MemoryChannelStore, MemoryGroupStore, MemoryRuleStore
from redis_alert.alerts.storage.sqlite_storage import SQLiteStorage
from redis_alert.config.settings import get_default_config
from redis_alert.main import main
from redis_alert.service import AlertService, build_notifiers


@pytest.fixture
def config(tmp_path):
    config = get_default_config()
    config['storage']['sqlite_path'] = str(tmp_path / 'alerts.db')
    return config


def make_notifiers():
    notifiers = {}
    for channel_type in ChannelType:
        notifier = MagicMock()
        notifier.notify.return_value = True
        notifiers[channel_type] = notifier
    return notifiers


class TestAlertService:
    """Test one full sweep through the wired service"""

    def test_run_once(self, config):
        inventory = Inventory(
            groups=MemoryGroupStore(
                [Group(1, "payments")],
                [Cluster(cluster_id=10, cluster_name="payments-cache", group_id=1,
                         rule_ids="1", channel_ids="1")],
            ),
            rules=MemoryRuleStore([
                AlertRule(rule_id=1, alert_key="connected_clients", compare_type=CompareType.LESS,
                          alert_value=100, check_cycle=5),
            ]),
            channels=MemoryChannelStore([
                AlertChannel(channel_id=1, channel_type=ChannelType.DINGDING_WEB_HOOK,
                             config={'webhook': 'http://hook'}),
            ]),
        )
        storage = SQLiteStorage(config['storage'])
        storage.add_node_info([
            NodeInfo(node="10.0.0.1:6379", cluster_id=10, update_time=datetime.now(),
                     metrics={"connectedClients": 500}),
        ])
        notifiers = make_notifiers()

        service = AlertService(config, inventory=inventory, storage=storage, notifiers=notifiers)
        results = service.run_once()

        assert len(results) == 1
        assert results[0].ok
        assert results[0].records_created == 1
        assert inventory.rules.rules[1].last_check_time is not None

        channels, records = notifiers[ChannelType.DINGDING_WEB_HOOK].notify.call_args.args
        assert [ch.channel_id for ch in channels] == [1]
        assert records[0].alert_rule == "connected_clients-1100"
        assert records[0].actual_data == "connected_clients=500"

        reopened = SQLiteStorage(config['storage'])
        try:
            assert len(reopened.get_alert_records_by_cluster_id(10)) == 1
        finally:
            reopened.close()

    def test_stop_is_idempotent(self, config):
        service = AlertService(config, notifiers=make_notifiers())

        service.stop()
        service.stop()

        assert service.context is None

    def test_build_notifiers(self, config):
        notifiers = build_notifiers(config)

        assert set(notifiers) == set(ChannelType)
        assert notifiers[ChannelType.WECHAT_WEB_HOOK].timeout == 10


class TestMain:
    """Test the command-line entry point"""

    def test_run_once_with_inventory(self, tmp_path, monkeypatch):
        inventory_file = tmp_path / 'inventory.yaml'
        inventory_file.write_text(
            "groups:\n"
            "  - group_id: 1\n"
            "    group_name: payments\n"
            "    clusters:\n"
            "      - cluster_id: 10\n"
            "        cluster_name: payments-cache\n"
            "        rule_ids: '1'\n"
            "alert_rules:\n"
            "  - rule_id: 1\n"
            "    alert_key: used_memory\n"
            "    condition:\n"
            "      operator: greater\n"
            "      threshold: 100\n"
        )
        monkeypatch.setenv('ALERT_INVENTORY_FILE', str(inventory_file))
        monkeypatch.setenv('ALERT_SQLITE_PATH', str(tmp_path / 'alerts.db'))

        assert main(['--run-once']) == 0

    def test_invalid_config(self, tmp_path):
        config_file = tmp_path / 'config.yaml'
        config_file.write_text("alert:\n  max_workers: 0\n")

        assert main(['--config', str(config_file), '--run-once']) == 1
