"""
SQLite storage backend for alert records and node snapshots.
"""

import json
import sqlite3
import logging
import threading
from datetime import datetime
from typing import Dict, List
from pathlib import Path

from redis_alert.alerts.models import DataType, NodeInfo, TimeType
from redis_alert.alerts.storage.base_storage import AlertRecord, NodeInfoStore, RecordStore

logger = logging.getLogger(__name__)


class SQLiteStorage(RecordStore, NodeInfoStore):
    """SQLite implementation of the record and snapshot stores"""

    def __init__(self, config: Dict):
        """
        Initialize SQLite storage.

        Args:
            config: Storage configuration dict with 'sqlite_path' key
        """
        self.db_path = config.get('sqlite_path', './data/redis_alert.db')

        # Ensure directory exists
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        # Scheduler threads share one connection
        self._lock = threading.Lock()
        self.conn = None
        self._init_db()

        logger.info(f"Initialized SQLite storage at {self.db_path}")

    def _init_db(self):
        """Create database tables and indexes"""
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row

        # Enable WAL mode for better concurrency
        self.conn.execute("PRAGMA journal_mode=WAL")

        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS alert_record (
                record_id INTEGER PRIMARY KEY AUTOINCREMENT,
                group_id INTEGER NOT NULL,
                group_name VARCHAR(255),
                cluster_id INTEGER NOT NULL,
                cluster_name VARCHAR(255),
                redis_node VARCHAR(255),
                alert_rule VARCHAR(255),
                actual_data VARCHAR(255),
                is_global INTEGER DEFAULT 0,
                rule_info TEXT,
                update_time TIMESTAMP NOT NULL
            )
        """)

        # Written by the metric collector, read here
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS node_info (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                cluster_id INTEGER NOT NULL,
                node VARCHAR(255) NOT NULL,
                data_type VARCHAR(20) NOT NULL,
                time_type VARCHAR(20) NOT NULL,
                metrics TEXT NOT NULL,
                update_time TIMESTAMP NOT NULL
            )
        """)

        self.conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_record_cluster_id ON alert_record(cluster_id)"
        )
        self.conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_record_update_time ON alert_record(update_time)"
        )
        self.conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_node_info_lookup "
            "ON node_info(cluster_id, data_type, time_type, update_time)"
        )

        self.conn.commit()

    def add_alert_records(self, records: List[AlertRecord]) -> int:
        """Append a batch of records in one transaction"""
        if not records:
            return 0

        rows = []
        for record in records:
            data = record.to_dict()
            rows.append((
                data['group_id'],
                data['group_name'],
                data['cluster_id'],
                data['cluster_name'],
                data['redis_node'],
                data['alert_rule'],
                data['actual_data'],
                data['is_global'],
                data['rule_info'],
                data['update_time'],
            ))

        with self._lock:
            try:
                self.conn.executemany("""
                    INSERT INTO alert_record (
                        group_id, group_name, cluster_id, cluster_name, redis_node,
                        alert_rule, actual_data, is_global, rule_info, update_time
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, rows)
                self.conn.commit()
            except sqlite3.Error as e:
                logger.error(f"Failed to save {len(rows)} alert records: {e}")
                self.conn.rollback()
                raise

        logger.debug(f"Saved {len(rows)} alert records")
        return len(rows)

    def get_alert_records_by_cluster_id(self, cluster_id: int) -> List[AlertRecord]:
        """Get records of a cluster, newest first"""
        with self._lock:
            cursor = self.conn.execute("""
                SELECT * FROM alert_record
                WHERE cluster_id = ?
                ORDER BY update_time DESC, record_id DESC
            """, (cluster_id,))
            rows = cursor.fetchall()

        return [AlertRecord.from_dict(dict(row)) for row in rows]

    def delete_alert_records_by_ids(self, record_ids: List[int]) -> int:
        """Delete records by id"""
        if not record_ids:
            return 0

        placeholders = ', '.join('?' for _ in record_ids)
        with self._lock:
            try:
                cursor = self.conn.execute(
                    f"DELETE FROM alert_record WHERE record_id IN ({placeholders})",
                    list(record_ids)
                )
                self.conn.commit()
            except sqlite3.Error as e:
                logger.error(f"Failed to delete alert records {record_ids}: {e}")
                self.conn.rollback()
                raise

        return cursor.rowcount

    def delete_alert_records_before(self, earliest_time: datetime) -> int:
        """Delete records strictly older than earliest_time"""
        with self._lock:
            try:
                cursor = self.conn.execute("""
                    DELETE FROM alert_record
                    WHERE update_time < ?
                """, (earliest_time.isoformat(timespec='microseconds'),))
                deleted_count = cursor.rowcount
                self.conn.commit()
            except sqlite3.Error as e:
                logger.error(f"Failed to delete alert records before {earliest_time}: {e}")
                self.conn.rollback()
                raise

        if deleted_count > 0:
            logger.info(f"Deleted {deleted_count} alert records older than {earliest_time.isoformat()}")

        return deleted_count

    def add_node_info(self, node_infos: List[NodeInfo]) -> None:
        """Write a snapshot batch (the collector's side of the table)"""
        rows = [
            (
                info.cluster_id,
                info.node,
                info.data_type.value,
                info.time_type.value,
                json.dumps(info.metrics),
                info.update_time.isoformat(timespec='microseconds'),
            )
            for info in node_infos
        ]
        with self._lock:
            try:
                self.conn.executemany("""
                    INSERT INTO node_info (cluster_id, node, data_type, time_type, metrics, update_time)
                    VALUES (?, ?, ?, ?, ?, ?)
                """, rows)
                self.conn.commit()
            except sqlite3.Error as e:
                logger.error(f"Failed to save node info: {e}")
                self.conn.rollback()
                raise

    def get_last_node_info_list(self, cluster_id: int,
                                data_type: DataType = DataType.NODE,
                                time_type: TimeType = TimeType.MINUTE) -> List[NodeInfo]:
        """Get the snapshot batch with the latest update_time of a cluster"""
        with self._lock:
            cursor = self.conn.execute("""
                SELECT * FROM node_info
                WHERE cluster_id = ? AND data_type = ? AND time_type = ?
                AND update_time = (
                    SELECT MAX(update_time) FROM node_info
                    WHERE cluster_id = ? AND data_type = ? AND time_type = ?
                )
                ORDER BY node
            """, (cluster_id, data_type.value, time_type.value,
                  cluster_id, data_type.value, time_type.value))
            rows = cursor.fetchall()

        node_infos = []
        for row in rows:
            try:
                metrics = json.loads(row['metrics'])
            except ValueError:
                logger.warning(f"Malformed metrics for node {row['node']} of cluster {cluster_id}")
                continue
            node_infos.append(NodeInfo(
                node=row['node'],
                cluster_id=row['cluster_id'],
                update_time=datetime.fromisoformat(row['update_time']),
                metrics=metrics,
                data_type=DataType(row['data_type']),
                time_type=TimeType(row['time_type']),
            ))
        return node_infos

    def close(self) -> None:
        """Close database connection"""
        if self.conn:
            try:
                self.conn.close()
                logger.debug("Closed SQLite connection")
            except sqlite3.Error as e:
                logger.error(f"Error closing SQLite connection: {e}")
