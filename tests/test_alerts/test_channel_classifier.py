"""Tests for channel classification"""

from redis_alert.alerts.channel_classifier import ChannelClassifier, classify_channels
from redis_alert.alerts.models import AlertChannel, ChannelType, Cluster
from redis_alert.alerts.storage.memory_storage import MemoryChannelStore


class TestClassifyChannels:
    """Test grouping channels by type"""

    def test_groups_by_type_in_order(self):
        channels = [
            AlertChannel(channel_id=1, channel_type=0),
            AlertChannel(channel_id=2, channel_type=1),
            AlertChannel(channel_id=3, channel_type=0),
        ]

        classified = classify_channels(channels)

        assert set(classified) == {ChannelType.EMAIL, ChannelType.WECHAT_WEB_HOOK}
        assert [ch.channel_id for ch in classified[ChannelType.EMAIL]] == [1, 3]
        assert [ch.channel_id for ch in classified[ChannelType.WECHAT_WEB_HOOK]] == [2]

    def test_unknown_type_excluded(self):
        channels = [
            AlertChannel(channel_id=1, channel_type=9),
            AlertChannel(channel_id=2, channel_type=3),
        ]

        classified = classify_channels(channels)

        assert list(classified) == [ChannelType.WECHAT_APP]

    def test_empty(self):
        assert classify_channels([]) == {}
        assert classify_channels(None) == {}


class TestChannelClassifier:
    """Test channel resolution for a cluster"""

    def setup_method(self):
        self.store = MemoryChannelStore([
            AlertChannel(channel_id=1, channel_type=0),
            AlertChannel(channel_id=2, channel_type=2),
        ])
        self.classifier = ChannelClassifier(self.store)

    def test_resolves_channel_ids(self):
        cluster = Cluster(cluster_id=1, cluster_name="c", group_id=1, channel_ids="1, 2")

        classified = self.classifier.get_channel_classification(cluster)

        assert [ch.channel_id for ch in classified[ChannelType.EMAIL]] == [1]
        assert [ch.channel_id for ch in classified[ChannelType.DINGDING_WEB_HOOK]] == [2]

    def test_empty_channel_ids(self):
        for channel_ids in ("", None, " , "):
            cluster = Cluster(cluster_id=1, cluster_name="c", group_id=1, channel_ids=channel_ids)
            assert self.classifier.get_channel_classification(cluster) == {}

    def test_unresolvable_channel_ids(self):
        cluster = Cluster(cluster_id=1, cluster_name="c", group_id=1, channel_ids="42,x")
        assert self.classifier.get_channel_classification(cluster) == {}
