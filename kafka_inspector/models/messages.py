from __future__ import annotations
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from kafka_inspector.domain.models.record import Record
from kafka_inspector.services.message_search import SearchResult


class MessageRecord(BaseModel):
    partition: int
    offset: int
    timestamp: int
    key: Optional[str] = None
    message: Optional[str] = None
    keySize: int = 0
    valueSize: int = 0
    headers: Dict[str, str] = Field(default_factory=dict)
    decodeError: Optional[str] = None

    @classmethod
    def from_record(cls, r: Record) -> "MessageRecord":
        return cls(
            partition=r.partition,
            offset=r.offset,
            timestamp=r.timestamp,
            key=r.key,
            message=r.value,
            keySize=r.key_size,
            valueSize=r.value_size,
            headers=r.headers,
            decodeError=r.decode_error,
        )


class CompletionDetails(BaseModel):
    exhausted: bool
    reason: str
    messagesScanned: int
    matchesFound: int
    elapsedMs: int


class SearchResponse(BaseModel):
    messages: List[MessageRecord]
    details: CompletionDetails

    @classmethod
    def from_result(cls, result: SearchResult) -> "SearchResponse":
        c = result.completion
        return cls(
            messages=[MessageRecord.from_record(r) for r in result.messages],
            details=CompletionDetails(
                exhausted=c.exhausted,
                reason=c.reason.value,
                messagesScanned=c.messages_scanned,
                matchesFound=c.matches_found,
                elapsedMs=c.elapsed_ms,
            ),
        )


class PublishRequest(BaseModel):
    partition: int = Field(0, ge=0)
    key: Optional[str] = None
    value: Optional[str] = None
    format: Optional[str] = None
    keyFormat: Optional[str] = None
    descFile: Optional[str] = None
    msgTypeName: Optional[str] = None


class PublishResponse(BaseModel):
    topic: str
    partition: int
    offset: int
    messages: List[MessageRecord] = Field(default_factory=list)
