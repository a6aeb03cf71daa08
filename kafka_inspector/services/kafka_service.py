from __future__ import annotations
import logging
import time
from typing import List, Optional, Protocol

from kafka import KafkaConsumer, KafkaProducer, TopicPartition
from kafka.errors import KafkaError, KafkaTimeoutError, NoBrokersAvailable, NodeNotReadyError

from kafka_inspector.core.config import Settings
from kafka_inspector.domain.models.record import RawRecord
from kafka_inspector.domain.models.topic import Partition, Topic

logger = logging.getLogger(__name__)

_RETRYABLE = (KafkaTimeoutError, NoBrokersAvailable, NodeNotReadyError)


class LogBroker(Protocol):
    """What the inspector core needs from a partitioned log."""

    def lookup_topic(self, name: str) -> Optional[Topic]: ...

    def fetch(self, topic: str, partition: int, offset: int, max_count: int) -> List[RawRecord]:
        """Up to *max_count* consecutive records from *offset* (already in range)."""
        ...

    def offset_for_timestamp(self, topic: str, partition: int, timestamp_ms: int) -> Optional[int]:
        """First offset whose timestamp is >= *timestamp_ms*, or None."""
        ...

    def append(
        self, topic: str, partition: int, key: Optional[bytes], value: Optional[bytes]
    ) -> int: ...


class KafkaService:
    """
    Lazy, retrying adapter around kafka-python Consumer + Producer APIs.
    Every call uses a short-lived client so concurrent requests never share
    consumer position state.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.bootstrap = settings.kafka_bootstrap

    # ---------- bootstrap common kwargs ----------
    def _common_kwargs(self) -> dict:
        s = self.settings
        kw = dict(
            bootstrap_servers=self.bootstrap,
            client_id="kafka-inspector",
            request_timeout_ms=s.request_timeout_ms,
            metadata_max_age_ms=s.metadata_max_age_ms,
            api_version_auto_timeout_ms=s.api_version_auto_timeout_ms,
            security_protocol=s.security_protocol,
        )
        if s.kafka_api_version:
            kw["api_version"] = tuple(int(p) for p in s.kafka_api_version.split("."))
        if s.security_protocol.startswith("SASL"):
            kw.update(
                sasl_mechanism=s.sasl_mechanism,
                sasl_plain_username=s.sasl_plain_username,
                sasl_plain_password=s.sasl_plain_password,
            )
        if s.security_protocol.endswith("SSL"):
            kw.update(ssl_cafile=s.ssl_cafile)
        return kw

    def _connect(self, factory, **kw):
        last_exc: Exception | None = None
        for attempt in range(1, self.settings.connect_max_tries + 1):
            try:
                return factory(**{**self._common_kwargs(), **kw})
            except _RETRYABLE as exc:
                last_exc = exc
                logger.warning("kafka connect attempt %d failed: %s", attempt, exc)
                time.sleep(self.settings.connect_backoff_sec * attempt)
        # give up
        raise last_exc or RuntimeError("Failed to connect to Kafka")

    def _consumer(self, **kw) -> KafkaConsumer:
        return self._connect(KafkaConsumer, enable_auto_commit=False, **kw)

    def _producer(self, **kw) -> KafkaProducer:
        return self._connect(KafkaProducer, **kw)

    # ---------- Topic directory ----------
    def lookup_topic(self, name: str) -> Optional[Topic]:
        c = self._consumer()
        try:
            if name not in c.topics():  # forces a metadata refresh
                return None
            ids = sorted(c.partitions_for_topic(name) or ())
            tps = [TopicPartition(name, pid) for pid in ids]
            start = c.beginning_offsets(tps)
            end = c.end_offsets(tps)
        finally:
            c.close()
        return Topic(
            name=name,
            partitions=[
                Partition(id=tp.partition, first_offset=start[tp], size=end[tp]) for tp in tps
            ],
        )

    # ---------- Reading ----------
    def fetch(self, topic: str, partition: int, offset: int, max_count: int) -> List[RawRecord]:
        tp = TopicPartition(topic, partition)
        c = self._consumer(max_poll_records=max(1, min(max_count, 500)))
        try:
            c.assign([tp])
            end = c.end_offsets([tp])[tp]
            if offset >= end:
                return []
            c.seek(tp, offset)
            out: List[RawRecord] = []
            while len(out) < max_count:
                batch = c.poll(timeout_ms=self.settings.poll_timeout_ms)
                if not batch:
                    break
                for r in batch.get(tp, []):
                    out.append(_to_raw(r))
                    if len(out) >= max_count:
                        break
                if out and out[-1].offset >= end - 1:
                    break
            return out
        finally:
            c.close()

    def offset_for_timestamp(self, topic: str, partition: int, timestamp_ms: int) -> Optional[int]:
        tp = TopicPartition(topic, partition)
        c = self._consumer()
        try:
            res = c.offsets_for_times({tp: timestamp_ms})
            found = res.get(tp) if res else None
            return found.offset if found is not None else None
        finally:
            c.close()

    # ---------- Writing ----------
    def append(self, topic: str, partition: int, key: Optional[bytes], value: Optional[bytes]) -> int:
        p = self._producer(acks="all")
        try:
            meta = p.send(topic, key=key, value=value, partition=partition).get(
                timeout=self.settings.publish_timeout_sec
            )
            return meta.offset
        except KafkaError:
            logger.warning("publish to %s[%d] failed", topic, partition)
            raise
        finally:
            p.close()


def _to_raw(r) -> RawRecord:
    return RawRecord(
        topic=r.topic,
        partition=r.partition,
        offset=r.offset,
        timestamp=r.timestamp,
        key=r.key,
        value=r.value,
        headers=[(k, v or b"") for k, v in (r.headers or [])],
    )
