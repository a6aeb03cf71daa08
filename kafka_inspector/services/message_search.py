"""Linear, capped text search over a topic.

This is not an indexed search: its cost grows with the number of records
between the start timestamp and the end of retention.
"""
from __future__ import annotations

import logging
import time
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from kafka_inspector.codecs.base import DecoderPair
from kafka_inspector.domain.models.record import Record
from kafka_inspector.domain.models.topic import Partition
from kafka_inspector.services.kafka_service import LogBroker
from kafka_inspector.services.message_reader import decode_record, require_partition, require_topic

logger = logging.getLogger(__name__)

ALL_PARTITIONS = -1


class CompletionReason(str, Enum):
    FOUND_REQUESTED_NUMBER_OF_RESULTS = "FOUND_REQUESTED_NUMBER_OF_RESULTS"
    EXHAUSTED_ALL_MESSAGES = "EXHAUSTED_ALL_MESSAGES"
    REACHED_DEADLINE = "REACHED_DEADLINE"


class SearchCompletion(BaseModel):
    exhausted: bool
    messages_scanned: int = 0
    matches_found: int = 0
    elapsed_ms: int = 0
    reason: CompletionReason


class SearchResult(BaseModel):
    messages: List[Record] = Field(default_factory=list)
    completion: SearchCompletion


class MessageSearchEngine:
    def __init__(
        self,
        broker: LogBroker,
        batch_size: int = 500,
        timestamp_lookup: Literal["index", "scan"] = "index",
    ) -> None:
        self._broker = broker
        self._batch_size = batch_size
        self._timestamp_lookup = timestamp_lookup

    def search(
        self,
        topic: str,
        text: str,
        partition: int,
        max_matches: int,
        start_timestamp: int,
        decoders: DecoderPair,
        deadline: Optional[float] = None,
    ) -> SearchResult:
        """
        Scan for records whose decoded value contains *text* (case sensitive).

        *start_timestamp* is epoch millis; *deadline* is a ``time.monotonic()``
        value after which scanning stops between batches.
        """
        started = time.monotonic()
        t = require_topic(self._broker, topic)
        if partition == ALL_PARTITIONS:
            partitions = list(t.partitions)
        else:
            partitions = [require_partition(t, partition)]

        matches: List[Record] = []
        scanned = 0
        reason = CompletionReason.EXHAUSTED_ALL_MESSAGES

        for p in partitions:
            if max_matches <= 0 or len(matches) >= max_matches:
                reason = CompletionReason.FOUND_REQUESTED_NUMBER_OF_RESULTS
                break
            position = self._start_offset(t.name, p, start_timestamp)
            while position is not None and position < p.size:
                if deadline is not None and time.monotonic() >= deadline:
                    reason = CompletionReason.REACHED_DEADLINE
                    break
                batch = self._broker.fetch(t.name, p.id, position, min(self._batch_size, p.size - position))
                if not batch:
                    break
                for raw in batch:
                    position = raw.offset + 1
                    if raw.timestamp < start_timestamp:
                        continue
                    scanned += 1
                    record = decode_record(raw, decoders)
                    if record.decode_error is None and record.value is not None and text in record.value:
                        matches.append(record)
                        if len(matches) >= max_matches:
                            break
                if len(matches) >= max_matches:
                    reason = CompletionReason.FOUND_REQUESTED_NUMBER_OF_RESULTS
                    break
            if reason is not CompletionReason.EXHAUSTED_ALL_MESSAGES:
                break

        matches.sort(key=lambda r: r.timestamp)
        completion = SearchCompletion(
            exhausted=reason is CompletionReason.EXHAUSTED_ALL_MESSAGES,
            messages_scanned=scanned,
            matches_found=len(matches),
            elapsed_ms=int((time.monotonic() - started) * 1000),
            reason=reason,
        )
        logger.debug("search %s for %r: %s", t.name, text, completion)
        return SearchResult(messages=matches, completion=completion)

    def _start_offset(self, topic: str, partition: Partition, start_timestamp: int) -> Optional[int]:
        if self._timestamp_lookup == "scan" or start_timestamp <= 0:
            return partition.first_offset
        # time index lookup assumes per-partition monotonic timestamps; the scan
        # loop still skips earlier records so a non-monotonic log cannot leak them
        found = self._broker.offset_for_timestamp(topic, partition.id, start_timestamp)
        if found is None:
            return None
        return max(found, partition.first_offset)
