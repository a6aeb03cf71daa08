"""Use-case coordination: the operations callers see."""
from __future__ import annotations

import logging
import time
from typing import List, Optional

from kafka_inspector.codecs.base import DecoderPair, EncoderPair
from kafka_inspector.codecs.registry import CodecRegistry
from kafka_inspector.core.config import Settings
from kafka_inspector.domain.models.record import Record
from kafka_inspector.domain.models.selection import FormatSelection
from kafka_inspector.domain.models.topic import Partition
from kafka_inspector.services.descriptors import DescriptorResolver
from kafka_inspector.services.kafka_service import LogBroker
from kafka_inspector.services.message_reader import MessageReader, require_topic
from kafka_inspector.services.message_search import ALL_PARTITIONS, MessageSearchEngine, SearchResult
from kafka_inspector.services.publisher import MessagePublisher

logger = logging.getLogger(__name__)


class Inspector:
    """
    Stateless per call: every operation builds a fresh decoder/encoder pair
    from the request's FormatSelection and the configured defaults.
    """

    def __init__(
        self,
        settings: Settings,
        broker: LogBroker,
        codecs: CodecRegistry,
        descriptors: DescriptorResolver,
    ) -> None:
        self.settings = settings
        self._broker = broker
        self._codecs = codecs
        self._descriptors = descriptors
        self._reader = MessageReader(broker, max_workers=settings.read_max_workers)
        self._search = MessageSearchEngine(
            broker,
            batch_size=settings.search_batch_size,
            timestamp_lookup=settings.search_timestamp_lookup,
        )
        self._publisher = MessagePublisher(broker)

    # ------------------------------------------------------------------ #
    # Queries                                                             #
    # ------------------------------------------------------------------ #
    def get_partitions(self, topic: str) -> List[Partition]:
        return list(require_topic(self._broker, topic).partitions)

    def get_messages(
        self,
        topic: str,
        partition: int,
        offset: int,
        count: int,
        selection: Optional[FormatSelection] = None,
    ) -> List[Record]:
        decoders = self.decoders(topic, selection)
        return self._reader.read_range(topic, partition, offset, count, decoders)

    def get_all_messages(self, topic: str, count_per_partition: Optional[int] = None) -> List[Record]:
        """Sample of every partition, sorted by timestamp, using default formats."""
        count = count_per_partition or self.settings.default_message_count
        return self._reader.read_all(topic, count, self.decoders(topic))

    def search_messages(
        self,
        topic: str,
        text: str,
        partition: int = ALL_PARTITIONS,
        max_matches: Optional[int] = None,
        start_timestamp: int = 0,
        selection: Optional[FormatSelection] = None,
    ) -> SearchResult:
        decoders = self.decoders(topic, selection)
        timeout = self.settings.search_timeout_sec
        deadline = time.monotonic() + timeout if timeout > 0 else None
        return self._search.search(
            topic,
            text,
            partition,
            max_matches if max_matches is not None else self.settings.search_max_matches,
            start_timestamp,
            decoders,
            deadline=deadline,
        )

    def list_descriptors(self, topic: Optional[str] = None) -> tuple[List[str], Optional[str]]:
        """Available descriptor files plus the one matching *topic*, if any."""
        files = self._descriptors.list_files()
        default = self._descriptors.default_for_topic(topic) if topic else None
        return files, default

    # ------------------------------------------------------------------ #
    # Commands                                                            #
    # ------------------------------------------------------------------ #
    def publish_message(
        self,
        topic: str,
        partition: int,
        key: Optional[str],
        value: Optional[str],
        selection: Optional[FormatSelection] = None,
    ) -> int:
        encoders = self.encoders(topic, selection)
        return self._publisher.publish(topic, partition, key, value, encoders)

    # ------------------------------------------------------------------ #
    # Codec selection                                                     #
    # ------------------------------------------------------------------ #
    def decoders(self, topic: str, selection: Optional[FormatSelection] = None) -> DecoderPair:
        sel = selection or FormatSelection(is_any_proto=self.settings.parse_any_proto)
        return self._codecs.resolve_pair(
            topic,
            key_format=sel.key_format or self.settings.key_format,
            value_format=sel.format or self.settings.message_format,
            desc_file=sel.desc_file,
            msg_type_name=sel.msg_type_name,
            parse_any=sel.is_any_proto,
        )

    def encoders(self, topic: str, selection: Optional[FormatSelection] = None) -> EncoderPair:
        sel = selection or FormatSelection()
        return self._codecs.resolve_encoder_pair(
            topic,
            key_format=sel.key_format or self.settings.key_format,
            value_format=sel.format or self.settings.message_format,
            desc_file=sel.desc_file,
            msg_type_name=sel.msg_type_name,
        )
