"""
Per-cluster and per-group alert processing.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional

from redis_alert.alerts.alert_evaluator import RuleEvaluator
from redis_alert.alerts.channel_classifier import ChannelClassifier
from redis_alert.alerts.dispatcher import NotificationDispatcher
from redis_alert.alerts.models import Cluster, DataType, Group, TimeType
from redis_alert.alerts.record_builder import AlertRecordBuilder
from redis_alert.alerts.storage.base_storage import (
    AlertRecord, ClusterStore, NodeInfoStore, RecordStore, RuleStore,
)
from redis_alert.utils.helpers import parse_id_list

logger = logging.getLogger(__name__)


@dataclass
class ClusterResult:
    """Outcome of one cluster's pass"""
    cluster_id: int
    records: List[AlertRecord] = field(default_factory=list)
    checkpoint_rule_ids: List[int] = field(default_factory=list)


class ClusterAlertTask:
    """Evaluates, notifies and persists one cluster's alerts"""

    def __init__(self, rule_store: RuleStore, node_info_store: NodeInfoStore,
                 record_store: RecordStore, classifier: ChannelClassifier,
                 dispatcher: NotificationDispatcher,
                 evaluator: Optional[RuleEvaluator] = None,
                 builder: Optional[AlertRecordBuilder] = None,
                 clock: Callable[[], datetime] = datetime.now):
        self.rule_store = rule_store
        self.node_info_store = node_info_store
        self.record_store = record_store
        self.classifier = classifier
        self.dispatcher = dispatcher
        self.evaluator = evaluator or RuleEvaluator()
        self.builder = builder or AlertRecordBuilder()
        self.clock = clock

    def run(self, group: Group, cluster: Cluster) -> ClusterResult:
        """
        Run one evaluation pass over a cluster.

        Rules are evaluated in listing order against every node before the
        next rule. A matched rule gets its in-memory last_check_time set to
        now, so it is throttled for the remaining nodes of this pass.

        Args:
            group: Owning group
            cluster: Cluster to process

        Returns:
            ClusterResult with the new records and the ids of rules whose
            checkpoint must be persisted
        """
        result = ClusterResult(cluster_id=cluster.cluster_id)

        rule_ids = parse_id_list(cluster.rule_ids)
        if not rule_ids:
            logger.debug(f"Cluster {cluster.cluster_name} has no alert rules, skipping")
            return result

        rules = self.rule_store.get_alert_rules_by_ids(rule_ids)
        node_infos = self.node_info_store.get_last_node_info_list(
            cluster.cluster_id, DataType.NODE, TimeType.MINUTE
        )

        for rule in rules:
            for node_info in node_infos:
                now = self.clock()
                if not self.evaluator.is_notify(node_info, rule, now):
                    continue
                result.records.append(self.builder.build(group, cluster, node_info, rule, now))
                rule.last_check_time = now
                if rule.rule_id not in result.checkpoint_rule_ids:
                    result.checkpoint_rule_ids.append(rule.rule_id)

        if result.records:
            logger.info(
                f"Cluster {cluster.cluster_name}: {len(result.records)} alerts "
                f"from rules {result.checkpoint_rule_ids}"
            )

        self._notify(cluster, result.records)
        self._save_records(cluster, result.records)
        return result

    def _notify(self, cluster: Cluster, records: List[AlertRecord]) -> None:
        # Persistence must not depend on notification
        try:
            channel_map = self.classifier.get_channel_classification(cluster)
            if channel_map:
                self.dispatcher.send_message(channel_map, records)
        except Exception as e:
            logger.error(f"Send alert message failed, cluster name = {cluster.cluster_name}: {e}", exc_info=True)

    def _save_records(self, cluster: Cluster, records: List[AlertRecord]) -> None:
        if not records:
            return
        try:
            self.record_store.add_alert_records(records)
        except Exception as e:
            logger.error(f"Save alert records failed, cluster name = {cluster.cluster_name}: {e}", exc_info=True)


@dataclass
class GroupTaskResult:
    """Outcome of one group's pass, returned rather than raised"""
    group: Group
    clusters_processed: int = 0
    records_created: int = 0
    checkpoint_rule_ids: List[int] = field(default_factory=list)
    cluster_errors: List[str] = field(default_factory=list)
    checkpoint_error: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.checkpoint_error is None and not self.cluster_errors


class GroupAlertTask:
    """Runs ClusterAlertTask over every cluster of a group, sequentially"""

    def __init__(self, group: Group, cluster_store: ClusterStore, rule_store: RuleStore,
                 cluster_task: ClusterAlertTask):
        self.group = group
        self.cluster_store = cluster_store
        self.rule_store = rule_store
        self.cluster_task = cluster_task

    def __call__(self) -> GroupTaskResult:
        return self.run()

    def run(self) -> GroupTaskResult:
        """
        Process all clusters of the group, then persist rule checkpoints.

        Cluster failures are logged and collected; they do not stop the
        remaining clusters. Any other failure is captured in the result.
        """
        result = GroupTaskResult(group=self.group)
        try:
            clusters = self.cluster_store.get_cluster_list_by_group_id(self.group.group_id)
            for cluster in clusters or []:
                try:
                    cluster_result = self.cluster_task.run(self.group, cluster)
                except Exception as e:
                    logger.error(f"Alert task failed for cluster {cluster.cluster_name}: {e}", exc_info=True)
                    result.cluster_errors.append(f"{cluster.cluster_name}: {e}")
                    continue

                result.clusters_processed += 1
                result.records_created += len(cluster_result.records)
                for rule_id in cluster_result.checkpoint_rule_ids:
                    if rule_id not in result.checkpoint_rule_ids:
                        result.checkpoint_rule_ids.append(rule_id)

            self._update_rule_last_check_time(result)
        except Exception as e:
            result.error = f"{type(e).__name__}: {e}"
        return result

    def _update_rule_last_check_time(self, result: GroupTaskResult) -> None:
        if not result.checkpoint_rule_ids:
            return
        try:
            self.rule_store.update_last_check_time(result.checkpoint_rule_ids, self.cluster_task.clock())
        except Exception as e:
            logger.error(f"Update alert rule last check time failed, {result.checkpoint_rule_ids}: {e}", exc_info=True)
            result.checkpoint_error = str(e)
