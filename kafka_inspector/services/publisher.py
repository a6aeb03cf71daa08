"""Encode-then-append publish path."""
from __future__ import annotations

import logging
from typing import Optional

from kafka_inspector.codecs.base import EncoderPair
from kafka_inspector.services.kafka_service import LogBroker
from kafka_inspector.services.message_reader import require_partition, require_topic

logger = logging.getLogger(__name__)


class MessagePublisher:
    def __init__(self, broker: LogBroker) -> None:
        self._broker = broker

    def publish(
        self,
        topic: str,
        partition: int,
        key: Optional[str],
        value: Optional[str],
        encoders: EncoderPair,
    ) -> int:
        """Append one record and return its offset.

        Both sides are encoded before the broker is touched, so an
        EncodingError means nothing was written.
        """
        require_partition(require_topic(self._broker, topic), partition)
        key_bytes = encoders.key.encode(key) if key is not None else None
        value_bytes = encoders.value.encode(value) if value is not None else None
        offset = self._broker.append(topic, partition, key_bytes, value_bytes)
        logger.info("published to %s[%d]@%d", topic, partition, offset)
        return offset
