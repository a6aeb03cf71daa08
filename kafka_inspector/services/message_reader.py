"""Bounded reads from one partition or from every partition of a topic."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

from kafka_inspector.codecs.base import Decoder, DecoderPair
from kafka_inspector.core.exceptions import DecodeError, PartitionNotFoundError, TopicNotFoundError
from kafka_inspector.domain.models.record import RawRecord, Record
from kafka_inspector.domain.models.topic import Partition, Topic
from kafka_inspector.services.kafka_service import LogBroker

logger = logging.getLogger(__name__)


def require_topic(broker: LogBroker, name: str) -> Topic:
    topic = broker.lookup_topic(name)
    if topic is None:
        raise TopicNotFoundError(name)
    return topic


def require_partition(topic: Topic, partition_id: int) -> Partition:
    partition = topic.partition(partition_id)
    if partition is None:
        raise PartitionNotFoundError(topic.name, partition_id)
    return partition


def _decode_side(decoder: Decoder, data: Optional[bytes]) -> tuple[Optional[str], Optional[str]]:
    """Return (text, error). Malformed payloads fall back to raw UTF-8."""
    if data is None:
        return None, None
    try:
        return decoder.decode(data), None
    except DecodeError as exc:
        return bytes(data).decode("utf-8", "replace"), exc.message


def decode_record(raw: RawRecord, decoders: DecoderPair) -> Record:
    """Decode one record. SchemaResolutionError propagates; DecodeError is recorded."""
    key, key_err = _decode_side(decoders.key, raw.key)
    value, value_err = _decode_side(decoders.value, raw.value)
    errors = [f"{side}: {e}" for side, e in (("key", key_err), ("value", value_err)) if e]
    if errors:
        logger.warning("undecodable record %s[%d]@%d: %s", raw.topic, raw.partition, raw.offset, "; ".join(errors))
    return Record(
        partition=raw.partition,
        offset=raw.offset,
        timestamp=raw.timestamp,
        key=key,
        value=value,
        key_size=len(raw.key) if raw.key is not None else 0,
        value_size=len(raw.value) if raw.value is not None else 0,
        headers={k: v.decode("utf-8", "replace") for k, v in raw.headers},
        decode_error="; ".join(errors) or None,
    )


class MessageReader:
    def __init__(self, broker: LogBroker, max_workers: int = 8) -> None:
        self._broker = broker
        self._max_workers = max_workers

    def read_range(
        self,
        topic: str,
        partition: int,
        start_offset: int,
        max_count: int,
        decoders: DecoderPair,
    ) -> List[Record]:
        """
        At most *max_count* consecutive records of *partition* from *start_offset*.

        Offsets below the first retained offset are clamped up to it; offsets
        at or past the high-water mark yield an empty list.
        """
        t = require_topic(self._broker, topic)
        p = require_partition(t, partition)
        return self._read_partition(t.name, p, start_offset, max_count, decoders)

    def read_all(self, topic: str, max_count_per_partition: int, decoders: DecoderPair) -> List[Record]:
        """
        Up to *max_count_per_partition* records from the start of every partition,
        merged and stably sorted by timestamp.

        The cap applies to each partition independently, so a busy partition is
        undersampled relative to quiet ones. This is a sample, not the topic.
        """
        t = require_topic(self._broker, topic)
        if not t.partitions:
            return []

        def _one(p: Partition) -> List[Record]:
            return self._read_partition(t.name, p, p.first_offset, max_count_per_partition, decoders)

        workers = max(1, min(self._max_workers, len(t.partitions)))
        with ThreadPoolExecutor(max_workers=workers) as ex:
            # map() keeps partition order regardless of completion order
            chunks = list(ex.map(_one, t.partitions))

        merged = [r for chunk in chunks for r in chunk]
        merged.sort(key=lambda r: r.timestamp)
        return merged

    # ---------- helpers ----------
    def _read_partition(
        self,
        topic: str,
        partition: Partition,
        start_offset: int,
        max_count: int,
        decoders: DecoderPair,
    ) -> List[Record]:
        if max_count <= 0:
            return []
        start = max(start_offset, partition.first_offset)
        if start >= partition.size:
            return []
        limit = min(max_count, partition.size - start)
        raw = self._broker.fetch(topic, partition.id, start, limit)
        logger.debug("read %d records from %s[%d]@%d", len(raw), topic, partition.id, start)
        return [decode_record(r, decoders) for r in raw[:max_count]]
