"""
Periodic driver of the alert engine.

The evaluation sweep submits one task per group to a bounded worker pool
and the retention sweep deletes old records; each runs on its own cron
trigger.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait as wait_futures
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from apscheduler.executors.pool import ThreadPoolExecutor as JobExecutor
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from redis_alert.alerts.cluster_task import ClusterAlertTask, GroupAlertTask, GroupTaskResult
from redis_alert.alerts.storage.base_storage import ClusterStore, GroupStore, RecordStore, RuleStore

logger = logging.getLogger(__name__)

COLLECT_JOB_ID = 'alert_collect'
CLEANUP_JOB_ID = 'alert_cleanup'


class PoolRejectedError(RuntimeError):
    """Raised when the worker pool has no free worker for a submission"""


def build_cron_trigger(expression: Optional[str]) -> Optional[CronTrigger]:
    """
    Build a cron trigger from a crontab expression.

    Accepts standard five-field expressions and six-field ones with a
    leading seconds field.

    Returns:
        CronTrigger, or None when the expression is empty (disabled)

    Raises:
        ValueError: If the expression is invalid
    """
    if expression is None or not str(expression).strip():
        return None

    fields = str(expression).split()
    if len(fields) == 5:
        return CronTrigger.from_crontab(' '.join(fields))
    if len(fields) == 6:
        second, minute, hour, day, month, day_of_week = fields
        return CronTrigger(second=second, minute=minute, hour=hour,
                           day=day, month=month, day_of_week=day_of_week)
    raise ValueError(f"Wrong number of fields in cron expression '{expression}': got {len(fields)}, expected 5 or 6")


class WorkerPool:
    """
    Thread pool that hands work directly to a free worker.

    There is no queue: once max_workers tasks are running, further
    submissions raise PoolRejectedError until a worker frees up.
    """

    def __init__(self, max_workers: int = 5, thread_name_prefix: str = 'redis-notify-pool-thread',
                 metrics=None):
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")

        self.max_workers = max_workers
        self.metrics = metrics
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=thread_name_prefix)
        self._slots = threading.BoundedSemaphore(max_workers)
        self._shutdown = False

    def submit(self, fn: Callable, *args, **kwargs) -> Future:
        """
        Run fn on a free worker.

        Raises:
            PoolRejectedError: If every worker is busy or the pool is shut down
        """
        if self._shutdown:
            raise PoolRejectedError("Worker pool is shut down")

        if not self._slots.acquire(blocking=False):
            if self.metrics is not None:
                self.metrics.pool_rejections.inc()
            raise PoolRejectedError(f"Worker pool saturated ({self.max_workers} workers busy)")

        if self.metrics is not None:
            self.metrics.busy_workers.inc()

        def run():
            try:
                return fn(*args, **kwargs)
            finally:
                self._release()

        try:
            return self._executor.submit(run)
        except RuntimeError as e:
            self._release()
            raise PoolRejectedError(f"Worker pool rejected task: {e}")

    def _release(self):
        self._slots.release()
        if self.metrics is not None:
            self.metrics.busy_workers.dec()

    def shutdown(self, wait: bool = True) -> None:
        """
        Stop accepting work.

        Args:
            wait: Drain running tasks; when False, queued-but-unstarted
                work is cancelled and running tasks are abandoned
        """
        self._shutdown = True
        self._executor.shutdown(wait=wait, cancel_futures=not wait)


class SchedulerContext:
    """
    Process-wide scheduling resources: the group worker pool and the cron
    scheduler. Create one at process start and shut it down on exit.
    """

    def __init__(self, max_workers: int = 5, metrics=None):
        self.pool = WorkerPool(max_workers=max_workers, metrics=metrics)
        # Two triggers, allowed to overlap; each runs one instance at a time
        self.scheduler = BackgroundScheduler(
            executors={'default': JobExecutor(2)},
            job_defaults={
                'coalesce': True,
                'max_instances': 1,
                'misfire_grace_time': 60,
            },
        )

    def start(self) -> None:
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Scheduler context started")

    def shutdown(self, wait: bool = True) -> None:
        """Stop the cron scheduler, then drain or cancel the worker pool"""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)
        self.pool.shutdown(wait=wait)
        logger.info("Scheduler context stopped")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown(wait=True)


class AlertScheduler:
    """Drives the evaluation sweep and the retention cleanup"""

    def __init__(self, context: SchedulerContext, group_store: GroupStore,
                 cluster_store: ClusterStore, rule_store: RuleStore,
                 record_store: RecordStore, cluster_task: ClusterAlertTask,
                 data_keep_days: int = 15, task_timeout: Optional[float] = None,
                 metrics=None, clock: Callable[[], datetime] = datetime.now):
        """
        Initialize alert scheduler.

        Args:
            context: Owned scheduling resources
            group_store: Source of groups
            cluster_store: Source of clusters per group
            rule_store: Rule checkpoint persistence
            record_store: Alert record persistence
            cluster_task: Per-cluster processing
            data_keep_days: Retention window for alert records
            task_timeout: Seconds a sweep waits for its group tasks
            metrics: Optional AlertMetrics
            clock: Time source
        """
        self.context = context
        self.group_store = group_store
        self.cluster_store = cluster_store
        self.rule_store = rule_store
        self.record_store = record_store
        self.cluster_task = cluster_task
        self.data_keep_days = data_keep_days
        self.task_timeout = task_timeout
        self.metrics = metrics
        self.clock = clock

    def schedule(self, collect_cron: Optional[str], cleanup_cron: Optional[str]) -> List[str]:
        """
        Register the cron jobs. An empty expression leaves its job disabled.

        Returns:
            Ids of the registered jobs
        """
        job_ids = []
        jobs = (
            (COLLECT_JOB_ID, collect_cron, lambda: self.collect(wait=True)),
            (CLEANUP_JOB_ID, cleanup_cron, self.cleanup),
        )
        for job_id, expression, func in jobs:
            trigger = build_cron_trigger(expression)
            if trigger is None:
                logger.info(f"Job {job_id} disabled (no cron expression)")
                continue
            self.context.scheduler.add_job(func, trigger, id=job_id, name=job_id, replace_existing=True)
            job_ids.append(job_id)
            logger.info(f"Scheduled {job_id} with cron '{expression}'")
        return job_ids

    def collect(self, wait: bool = False) -> List[GroupTaskResult]:
        """
        Submit one alert task per group.

        Args:
            wait: Block until the tasks finish or task_timeout elapses

        Returns:
            Results of the tasks that finished, when waiting
        """
        if self.metrics is not None:
            self.metrics.sweeps.inc()

        try:
            groups = self.group_store.get_all_groups()
        except Exception as e:
            logger.error(f"Alert scheduled failed, cannot list groups: {e}", exc_info=True)
            return []

        futures = []
        for group in groups or []:
            task = GroupAlertTask(group, self.cluster_store, self.rule_store, self.cluster_task)
            try:
                future = self.context.pool.submit(task)
            except PoolRejectedError as e:
                logger.error(f"Alert task for group {group.group_name} rejected: {e}")
                continue
            future.add_done_callback(self._on_group_done)
            futures.append(future)

        if not wait or not futures:
            return []

        done, not_done = wait_futures(futures, timeout=self.task_timeout)
        if not_done:
            logger.warning(
                f"{len(not_done)} group alert tasks still running after {self.task_timeout}s"
            )
        return [future.result() for future in futures if future in done and not future.cancelled()]

    def _on_group_done(self, future: Future) -> None:
        """Log a finished group task's outcome"""
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(f"Alert task crashed: {error}", exc_info=error)
            self._count_group('failed')
            return

        result: GroupTaskResult = future.result()
        if result.error:
            logger.error(f"Alert task failed, group {result.group.group_name}: {result.error}")
            self._count_group('failed')
        elif not result.ok:
            logger.warning(
                f"Alert task partially failed, group {result.group.group_name}: "
                f"clusters={result.cluster_errors} checkpoint={result.checkpoint_error}"
            )
            self._count_group('partial')
        else:
            logger.debug(
                f"Alert task done, group {result.group.group_name}: "
                f"{result.clusters_processed} clusters, {result.records_created} records"
            )
            self._count_group('success')

        if self.metrics is not None and result.records_created:
            self.metrics.records_created.inc(result.records_created)

    def _count_group(self, outcome: str) -> None:
        if self.metrics is not None:
            self.metrics.group_tasks.labels(outcome=outcome).inc()

    def cleanup(self) -> int:
        """
        Delete alert records older than the retention window.

        Returns:
            Number of records deleted, 0 on failure
        """
        try:
            earliest_time = self.clock() - timedelta(days=self.data_keep_days)
            deleted = self.record_store.delete_alert_records_before(earliest_time)
        except Exception as e:
            logger.error(f"Cleanup alert data failed: {e}", exc_info=True)
            if self.metrics is not None:
                self.metrics.cleanup_runs.labels(outcome='failed').inc()
            return 0

        logger.info(f"Cleanup removed {deleted} alert records older than {earliest_time.isoformat()}")
        if self.metrics is not None:
            self.metrics.cleanup_runs.labels(outcome='success').inc()
            self.metrics.records_deleted.inc(deleted)
        return deleted
