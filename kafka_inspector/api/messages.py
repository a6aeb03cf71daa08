from __future__ import annotations
import datetime as dt
from typing import Optional

from fastapi import APIRouter, Depends, Query

from kafka_inspector.api.dependencies import get_inspector
from kafka_inspector.core.exceptions import ConfigurationError
from kafka_inspector.domain.models.selection import FormatSelection, MessageSelection
from kafka_inspector.models.messages import MessageRecord, PublishRequest, PublishResponse, SearchResponse
from kafka_inspector.models.topics import PartitionOffsetInfo
from kafka_inspector.services.inspector import Inspector
from kafka_inspector.services.message_search import ALL_PARTITIONS

router = APIRouter(prefix="/topics/{topic}", tags=["messages"])


# ---------- helpers ----------

def _parse_iso8601(ts: str) -> dt.datetime:
    """
    Accepts ISO 8601 with 'Z' or offset, e.g. '2025-08-15T09:30:00Z' or '+00:00'.
    Naive values are taken as UTC. Raises ValueError on bad input.
    """
    parsed = dt.datetime.fromisoformat(ts.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed


def _selection(
    format: Optional[str] = Query(None, description="DEFAULT, AVRO, PROTOBUF or MSGPACK"),
    keyFormat: Optional[str] = Query(None),
    descFile: Optional[str] = Query(None, description="Protobuf descriptor file name"),
    msgTypeName: Optional[str] = Query(None),
    isAnyProto: Optional[bool] = Query(None, description="Defaults to PARSE_ANY_PROTO"),
    svc: Inspector = Depends(get_inspector),
) -> FormatSelection:
    return FormatSelection(
        format=format,
        key_format=keyFormat,
        desc_file=descFile,
        msg_type_name=msgTypeName,
        is_any_proto=svc.settings.parse_any_proto if isAnyProto is None else isAnyProto,
    )


# ---------- endpoints ----------

@router.get("/messages")
def get_messages(
    topic: str,
    partition: Optional[int] = Query(None, ge=0),
    offset: Optional[int] = Query(None, ge=0),
    count: Optional[int] = Query(None, ge=1),
    selection: FormatSelection = Depends(_selection),
    svc: Inspector = Depends(get_inspector),
):
    """
    Without partition/offset/count returns the partition offset table; with
    them returns decoded messages (empty when the offset is past the end).
    """
    window = MessageSelection(partition=partition, offset=offset, count=count)
    if window.is_unset(svc.settings.count_one_is_unset):
        return [PartitionOffsetInfo.from_partition(p) for p in svc.get_partitions(topic)]

    size = count if count is not None else svc.settings.default_message_count
    if size > svc.settings.max_message_count:
        raise ConfigurationError(f"count must be <= {svc.settings.max_message_count}")
    records = svc.get_messages(topic, partition or 0, offset or 0, size, selection)
    return [MessageRecord.from_record(r) for r in records]


@router.get("/all-messages", response_model=list[MessageRecord])
def get_all_messages(
    topic: str,
    count: Optional[int] = Query(None, ge=1, description="Per-partition cap"),
    svc: Inspector = Depends(get_inspector),
):
    """Every partition read from its start, capped per partition, sorted by timestamp."""
    return [MessageRecord.from_record(r) for r in svc.get_all_messages(topic, count)]


@router.get("/search", response_model=SearchResponse)
def search_messages(
    topic: str,
    text: str = Query("", description="Case-sensitive substring of the decoded value"),
    partition: int = Query(ALL_PARTITIONS, ge=ALL_PARTITIONS),
    maxMatches: Optional[int] = Query(None, ge=1),
    startTimestamp: Optional[str] = Query(None, description="ISO8601; defaults to the epoch"),
    selection: FormatSelection = Depends(_selection),
    svc: Inspector = Depends(get_inspector),
):
    """Linear scan, not an indexed search: cost grows with the scanned range."""
    start_ms = 0
    if startTimestamp:
        try:
            start_ms = int(_parse_iso8601(startTimestamp).timestamp() * 1000)
        except ValueError as exc:
            raise ConfigurationError("startTimestamp must be ISO8601") from exc
    result = svc.search_messages(topic, text, partition, maxMatches, start_ms, selection)
    return SearchResponse.from_result(result)


@router.post("/messages", response_model=PublishResponse)
def publish_message(topic: str, body: PublishRequest, svc: Inspector = Depends(get_inspector)):
    """Publish one record, then read back from its offset with the same formats."""
    selection = FormatSelection(
        format=body.format,
        key_format=body.keyFormat,
        desc_file=body.descFile,
        msg_type_name=body.msgTypeName,
        is_any_proto=svc.settings.parse_any_proto,
    )
    offset = svc.publish_message(topic, body.partition, body.key, body.value, selection)
    records = svc.get_messages(topic, body.partition, offset, svc.settings.default_message_count, selection)
    return PublishResponse(
        topic=topic,
        partition=body.partition,
        offset=offset,
        messages=[MessageRecord.from_record(r) for r in records],
    )
