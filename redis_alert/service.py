"""Alert service orchestration"""

import signal
import threading
from typing import Any, Dict, List, Optional

from redis_alert.alerts.alert_evaluator import RuleEvaluator
from redis_alert.alerts.channel_classifier import ChannelClassifier
from redis_alert.alerts.channels.email_channel import EmailNotifier
from redis_alert.alerts.channels.webhook_channel import DingDingWebHookNotifier, WeChatWebHookNotifier
from redis_alert.alerts.channels.wechat_app_channel import WeChatAppNotifier
from redis_alert.alerts.cluster_task import ClusterAlertTask, GroupTaskResult
from redis_alert.alerts.dispatcher import NotificationDispatcher
from redis_alert.alerts.models import ChannelType
from redis_alert.alerts.scheduler import AlertScheduler, SchedulerContext
from redis_alert.alerts.storage.inventory import Inventory, load_inventory
from redis_alert.alerts.storage.memory_storage import (
    MemoryChannelStore, MemoryGroupStore, MemoryRuleStore,
)
from redis_alert.alerts.storage.sqlite_storage import SQLiteStorage
from redis_alert.exporters.prometheus_exporter import AlertMetrics, PrometheusExporter
from redis_alert.utils.logger import get_logger


def build_notifiers(config: Dict[str, Any]):
    """Create one notifier per channel type from the notify config"""
    notify = config.get('notify', {})
    timeout = notify.get('timeout', 10)
    return {
        ChannelType.EMAIL: EmailNotifier(dict(notify.get('email', {}), timeout=timeout)),
        ChannelType.WECHAT_WEB_HOOK: WeChatWebHookNotifier({'timeout': timeout}),
        ChannelType.DINGDING_WEB_HOOK: DingDingWebHookNotifier({'timeout': timeout}),
        ChannelType.WECHAT_APP: WeChatAppNotifier(dict(notify.get('wechat_app', {}), timeout=timeout)),
    }


class AlertService:
    """Wires stores, notifiers and the scheduler together"""

    def __init__(self, config: Dict[str, Any], inventory: Optional[Inventory] = None,
                 storage: Optional[SQLiteStorage] = None, notifiers=None):
        """
        Initialize alert service

        Args:
            config: Configuration dictionary
            inventory: Groups, rules and channels; loaded from
                alert.inventory_file when not given
            storage: Record and snapshot storage; SQLite from config when
                not given
            notifiers: Notifier per channel type
        """
        self.config = config
        self.logger = get_logger(self.__class__.__name__)
        self._stop_event = threading.Event()
        self.running = False

        alert_config = config['alert']

        if inventory is None:
            inventory = self._load_inventory(alert_config.get('inventory_file'))
        self.inventory = inventory

        self.storage = storage or SQLiteStorage(config['storage'])

        self.metrics = AlertMetrics()
        self.exporter = None
        if config.get('prometheus', {}).get('enabled', False):
            self.exporter = PrometheusExporter(config, self.metrics)

        self.context = SchedulerContext(max_workers=alert_config['max_workers'], metrics=self.metrics)

        dispatcher = NotificationDispatcher(notifiers or build_notifiers(config), metrics=self.metrics)
        cluster_task = ClusterAlertTask(
            rule_store=inventory.rules,
            node_info_store=self.storage,
            record_store=self.storage,
            classifier=ChannelClassifier(inventory.channels),
            dispatcher=dispatcher,
            evaluator=RuleEvaluator(),
        )

        self.scheduler = AlertScheduler(
            context=self.context,
            group_store=inventory.groups,
            cluster_store=inventory.groups,
            rule_store=inventory.rules,
            record_store=self.storage,
            cluster_task=cluster_task,
            data_keep_days=alert_config['data_keep_days'],
            task_timeout=alert_config.get('task_timeout'),
            metrics=self.metrics,
        )

    def _load_inventory(self, inventory_file: Optional[str]) -> Inventory:
        if inventory_file:
            return load_inventory(inventory_file)
        self.logger.warning("No inventory file specified, nothing will be evaluated")
        return Inventory(groups=MemoryGroupStore(), rules=MemoryRuleStore(),
                         channels=MemoryChannelStore())

    def _setup_signal_handlers(self):
        """Setup signal handlers for graceful shutdown"""
        def signal_handler(signum, frame):
            self.logger.info(f"Received signal {signum}, initiating graceful shutdown...")
            self._stop_event.set()

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

    def run_once(self) -> List[GroupTaskResult]:
        """Run one evaluation sweep and one cleanup, then stop"""
        try:
            results = self.scheduler.collect(wait=True)
            self.scheduler.cleanup()
            return results
        finally:
            self.stop()

    def start(self):
        """Start the service and block until a shutdown signal"""
        self.logger.info("Starting alert service...")
        self._setup_signal_handlers()
        self.running = True

        try:
            if self.exporter:
                self.exporter.start()

            alert_config = self.config['alert']
            jobs = self.scheduler.schedule(alert_config.get('collect_cron'), alert_config.get('cleanup_cron'))
            if not jobs:
                self.logger.warning("Both collect and cleanup jobs are disabled")
            self.context.start()

            self.logger.info("Alert service started successfully")

            # Keep main thread alive
            while not self._stop_event.wait(1):
                pass

        except KeyboardInterrupt:
            self.logger.info("Keyboard interrupt received")
        finally:
            self.stop()

    def stop(self):
        """Stop the service"""
        self._stop_event.set()
        if self.context is None:
            return

        self.logger.info("Stopping alert service...")
        self.running = False

        self.context.shutdown(wait=True)
        self.context = None

        if self.exporter:
            self.exporter.stop()

        self.storage.close()

        self.logger.info("Alert service stopped")
