"""
Alert engine: rule evaluation, record building, channel dispatch and
scheduling.
"""

from redis_alert.alerts.alert_rule import AlertRule, CompareType, load_alert_rules
from redis_alert.alerts.alert_evaluator import RuleEvaluator
from redis_alert.alerts.record_builder import AlertRecordBuilder
from redis_alert.alerts.channel_classifier import ChannelClassifier, classify_channels
from redis_alert.alerts.dispatcher import NotificationDispatcher
from redis_alert.alerts.cluster_task import ClusterAlertTask, GroupAlertTask, GroupTaskResult
from redis_alert.alerts.scheduler import AlertScheduler, PoolRejectedError, SchedulerContext, WorkerPool

__all__ = [
    'AlertRule',
    'CompareType',
    'load_alert_rules',
    'RuleEvaluator',
    'AlertRecordBuilder',
    'ChannelClassifier',
    'classify_channels',
    'NotificationDispatcher',
    'ClusterAlertTask',
    'GroupAlertTask',
    'GroupTaskResult',
    'AlertScheduler',
    'PoolRejectedError',
    'SchedulerContext',
    'WorkerPool',
]
