"""Configuration management"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any

from redis_alert.alerts.scheduler import build_cron_trigger


def get_default_config() -> Dict[str, Any]:
    """Get default configuration"""
    return {
        'app': {
            'log_level': 'INFO',
            'log_file': None,
            'log_format': 'text',
        },
        'prometheus': {
            'enabled': False,
            'port': 9121,
            'host': '0.0.0.0',
        },
        'alert': {
            'collect_cron': '*/5 * * * *',
            'cleanup_cron': '0 1 * * *',
            'data_keep_days': 15,
            'max_workers': 5,
            'task_timeout': 300,
            'inventory_file': None,
        },
        'storage': {
            'type': 'sqlite',
            'sqlite_path': './data/redis_alert.db',
        },
        'notify': {
            'timeout': 10,
            'email': {
                'smtp_host': '',
                'smtp_port': 25,
                'use_tls': False,
                'email_user_name': '',
                'email_password': '',
                'email_from': '',
            },
            'wechat_app': {
                'api_url': 'https://qyapi.weixin.qq.com/cgi-bin',
            },
        },
    }


def load_config(config_path: str = None) -> Dict[str, Any]:
    """
    Load configuration from file and environment variables

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Configuration dictionary
    """
    # Start with defaults
    config = get_default_config()

    # Load from YAML file if provided
    if config_path and Path(config_path).exists():
        try:
            with open(config_path, 'r') as f:
                yaml_config = yaml.safe_load(f)
                if yaml_config:
                    config = merge_configs(config, yaml_config)
        except (OSError, yaml.YAMLError) as e:
            raise ValueError(f"Failed to load config from {config_path}: {e}")

    # Override with environment variables
    config = override_from_env(config)

    # Validate configuration
    validate_config(config)

    return config


def merge_configs(base: Dict, override: Dict) -> Dict:
    """Recursively merge two configuration dictionaries"""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value
    return result


def override_from_env(config: Dict) -> Dict:
    """Override configuration from environment variables"""

    # App settings
    if 'LOG_LEVEL' in os.environ:
        config['app']['log_level'] = os.environ['LOG_LEVEL'].upper()
    if 'LOG_FILE' in os.environ:
        config['app']['log_file'] = os.environ['LOG_FILE']
    if 'LOG_FORMAT' in os.environ:
        config['app']['log_format'] = os.environ['LOG_FORMAT'].lower()

    # Prometheus settings
    if 'PROMETHEUS_PORT' in os.environ:
        config['prometheus']['port'] = int(os.environ['PROMETHEUS_PORT'])

    # Alert settings; an empty cron variable disables that sweep
    if 'ALERT_COLLECT_CRON' in os.environ:
        config['alert']['collect_cron'] = os.environ['ALERT_COLLECT_CRON']
    if 'ALERT_CLEANUP_CRON' in os.environ:
        config['alert']['cleanup_cron'] = os.environ['ALERT_CLEANUP_CRON']
    if 'ALERT_DATA_KEEP_DAYS' in os.environ:
        config['alert']['data_keep_days'] = int(os.environ['ALERT_DATA_KEEP_DAYS'])
    if 'ALERT_MAX_WORKERS' in os.environ:
        config['alert']['max_workers'] = int(os.environ['ALERT_MAX_WORKERS'])
    if 'ALERT_INVENTORY_FILE' in os.environ:
        config['alert']['inventory_file'] = os.environ['ALERT_INVENTORY_FILE']

    # Storage settings
    if 'ALERT_SQLITE_PATH' in os.environ:
        config['storage']['sqlite_path'] = os.environ['ALERT_SQLITE_PATH']

    return config


def validate_config(config: Dict):
    """
    Validate configuration values

    Raises:
        ValueError: If configuration is invalid
    """
    # Validate Prometheus port
    port = config['prometheus']['port']
    if not (1 <= port <= 65535):
        raise ValueError(f"Invalid Prometheus port: {port}. Must be between 1 and 65535")

    # Validate log level
    valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
    log_level = config['app']['log_level'].upper()
    if log_level not in valid_log_levels:
        raise ValueError(f"Invalid log level: {log_level}. Must be one of {valid_log_levels}")

    log_format = config['app']['log_format']
    if log_format not in ('text', 'json'):
        raise ValueError(f"Invalid log format: {log_format}. Must be 'text' or 'json'")

    alert = config['alert']

    # Cron expressions: empty means disabled
    for key in ('collect_cron', 'cleanup_cron'):
        try:
            build_cron_trigger(alert.get(key))
        except ValueError as e:
            raise ValueError(f"Invalid {key}: {e}")

    data_keep_days = alert.get('data_keep_days', 15)
    if not isinstance(data_keep_days, int) or data_keep_days < 1:
        raise ValueError(f"Invalid data_keep_days: {data_keep_days}. Must be >= 1")

    max_workers = alert.get('max_workers', 5)
    if not isinstance(max_workers, int) or not (1 <= max_workers <= 64):
        raise ValueError(f"Invalid max_workers: {max_workers}. Must be between 1 and 64")

    task_timeout = alert.get('task_timeout')
    if task_timeout is not None and task_timeout <= 0:
        raise ValueError(f"Invalid task_timeout: {task_timeout}. Must be > 0")

    # Validate storage
    storage_type = config['storage'].get('type', 'sqlite')
    if storage_type != 'sqlite':
        raise ValueError(f"Unsupported storage type: {storage_type}. Only 'sqlite' is currently supported")
