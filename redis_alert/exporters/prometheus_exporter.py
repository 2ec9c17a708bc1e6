"""Prometheus metrics for the alert engine"""

from prometheus_client import start_http_server, Counter, Gauge
from prometheus_client.core import CollectorRegistry
from redis_alert.utils.logger import get_logger


class AlertMetrics:
    """Counters describing sweeps, notifications and retention"""

    def __init__(self, registry: CollectorRegistry = None):
        """
        Initialize metrics

        Args:
            registry: Registry to register on, a fresh one by default
        """
        self.registry = registry or CollectorRegistry()

        self.sweeps = Counter(
            'redis_alert_sweeps_total',
            'Number of evaluation sweeps started',
            registry=self.registry
        )

        self.group_tasks = Counter(
            'redis_alert_group_tasks_total',
            'Group tasks finished, by outcome',
            ['outcome'],
            registry=self.registry
        )

        self.pool_rejections = Counter(
            'redis_alert_pool_rejections_total',
            'Group tasks rejected because the worker pool was saturated',
            registry=self.registry
        )

        self.records_created = Counter(
            'redis_alert_records_created_total',
            'Alert records created',
            registry=self.registry
        )

        self.notify_failures = Counter(
            'redis_alert_notify_failures_total',
            'Failed notifier invocations',
            ['channel_type'],
            registry=self.registry
        )

        self.cleanup_runs = Counter(
            'redis_alert_cleanup_runs_total',
            'Retention cleanup runs, by outcome',
            ['outcome'],
            registry=self.registry
        )

        self.records_deleted = Counter(
            'redis_alert_records_deleted_total',
            'Alert records deleted by retention cleanup',
            registry=self.registry
        )

        self.busy_workers = Gauge(
            'redis_alert_busy_workers',
            'Worker pool slots currently in use',
            registry=self.registry
        )


class PrometheusExporter:
    """Prometheus HTTP server for exposing alert metrics"""

    def __init__(self, config, metrics: AlertMetrics):
        """
        Initialize Prometheus exporter

        Args:
            config: Configuration dictionary
            metrics: Metrics to expose
        """
        self.metrics = metrics
        self.logger = get_logger(self.__class__.__name__)

        self.host = config.get('prometheus', {}).get('host', '0.0.0.0')
        self.port = config.get('prometheus', {}).get('port', 9121)
        self.running = False
        self._server = None
        self._thread = None

    def start(self):
        """Start HTTP server"""
        try:
            self.logger.info(f"Starting Prometheus HTTP server on {self.host}:{self.port}")
            self._server, self._thread = start_http_server(self.port, addr=self.host, registry=self.metrics.registry)
            self.running = True
            self.logger.info(f"Metrics available at http://{self.host}:{self.port}/metrics")
        except OSError as e:
            self.logger.error(f"Failed to start Prometheus HTTP server: {e}")
            raise

    def stop(self):
        """Stop HTTP server"""
        if self._server is None:
            return

        self._server.shutdown()
        self._server.server_close()
        self._thread.join(timeout=5)
        self._server = None
        self._thread = None
        self.running = False
        self.logger.info("Prometheus HTTP server stopped")
