"""
Inventory of groups, clusters, alert rules and channels loaded from YAML.

Example:

    groups:
      - group_id: 1
        group_name: "payments"
        clusters:
          - cluster_id: 10
            cluster_name: "payments-cache"
            rule_ids: "1,2"
            channel_ids: "1"
    alert_rules:
      - rule_id: 1
        alert_key: "used_memory"
        condition:
          operator: "greater"
          threshold: 1073741824
        check_cycle: 5
    alert_channels:
      - channel_id: 1
        channel_type: 1
        channel_name: "ops robot"
        webhook: "https://qyapi.weixin.qq.com/cgi-bin/webhook/send?key=..."
"""

import logging
from dataclasses import dataclass
from typing import Dict, List

import yaml

from redis_alert.alerts.alert_rule import load_alert_rules
from redis_alert.alerts.models import AlertChannel, Cluster, Group
from redis_alert.alerts.storage.memory_storage import (
    MemoryChannelStore, MemoryGroupStore, MemoryRuleStore,
)

logger = logging.getLogger(__name__)

_CHANNEL_FIELDS = ('channel_id', 'channel_type', 'channel_name', 'group_id')


@dataclass
class Inventory:
    """Stores built from an inventory file"""
    groups: MemoryGroupStore
    rules: MemoryRuleStore
    channels: MemoryChannelStore


def load_alert_channels(channel_configs: List[Dict]) -> List[AlertChannel]:
    """
    Build channels from config mappings.

    Everything beside the identity fields is kept as the channel's
    delivery configuration.
    """
    channels = []
    for channel_config in channel_configs or []:
        try:
            channel = AlertChannel(
                channel_id=int(channel_config['channel_id']),
                channel_type=int(channel_config['channel_type']),
                channel_name=channel_config.get('channel_name', ''),
                group_id=channel_config.get('group_id'),
                config={k: v for k, v in channel_config.items() if k not in _CHANNEL_FIELDS},
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Failed to load channel {channel_config.get('channel_id', 'unknown')}: {e}")
            continue
        channels.append(channel)
    return channels


def load_groups(group_configs: List[Dict]):
    """Build groups and their clusters from config mappings"""
    groups = []
    clusters = []
    for group_config in group_configs or []:
        try:
            group = Group(group_id=int(group_config['group_id']),
                          group_name=group_config.get('group_name', ''))
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Failed to load group {group_config.get('group_id', 'unknown')}: {e}")
            continue
        groups.append(group)

        for cluster_config in group_config.get('clusters') or []:
            try:
                clusters.append(Cluster(
                    cluster_id=int(cluster_config['cluster_id']),
                    cluster_name=cluster_config.get('cluster_name', ''),
                    group_id=group.group_id,
                    rule_ids=str(cluster_config.get('rule_ids') or ''),
                    channel_ids=str(cluster_config.get('channel_ids') or ''),
                ))
            except (KeyError, TypeError, ValueError) as e:
                logger.error(f"Failed to load cluster in group {group.group_id}: {e}")
    return groups, clusters


def load_inventory(inventory_file: str) -> Inventory:
    """
    Load inventory from a YAML file.

    Args:
        inventory_file: Path to YAML inventory

    Returns:
        Inventory with in-memory stores

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file has invalid format
    """
    try:
        with open(inventory_file, 'r') as f:
            config = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.error(f"Inventory file not found: {inventory_file}")
        raise
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse YAML file {inventory_file}: {e}")
        raise ValueError(f"Invalid YAML format: {e}")

    if not isinstance(config, dict):
        raise ValueError(f"Inventory {inventory_file} must be a mapping")

    groups, clusters = load_groups(config.get('groups'))
    rules = load_alert_rules(config.get('alert_rules'))
    channels = load_alert_channels(config.get('alert_channels'))

    logger.info(
        f"Loaded inventory from {inventory_file}: {len(groups)} groups, "
        f"{len(clusters)} clusters, {len(rules)} rules, {len(channels)} channels"
    )

    return Inventory(
        groups=MemoryGroupStore(groups, clusters),
        rules=MemoryRuleStore(rules),
        channels=MemoryChannelStore(channels),
    )
