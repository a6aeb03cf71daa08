"""Error taxonomy of the inspector core plus RFC 7807 *Problem Details* model."""
from __future__ import annotations

from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field


class ProblemDetail(BaseModel):
    """Data model that serialises to RFC 7807 JSON.

    Attributes
    ----------
    type : str
        A URI reference that identifies the problem type.
    title : str
        A short human-readable summary of the problem type.
    status : int
        The HTTP status code.
    detail : str | None
        A human-readable explanation specific to this occurrence.
    kind : str | None
        Inspector error kind (``not_found``, ``encoding`` ...).
    instance : str
        A URI reference that identifies the specific occurrence.
    """

    type: str = Field(..., examples=["/not-found"])
    title: str
    status: int = Field(..., ge=400, le=599)
    detail: Optional[str] = None
    kind: Optional[str] = None
    instance: str = Field(default_factory=lambda: f"urn:uuid:{uuid4()}")

    model_config = {"json_schema_extra": {"required": ["type", "title", "status"]}}


class InspectorError(Exception):
    """Base class: every core failure carries a machine-readable *kind*."""

    kind = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(InspectorError):
    kind = "not_found"


class TopicNotFoundError(NotFoundError):
    def __init__(self, topic: str) -> None:
        super().__init__(f"Topic not found: {topic}")
        self.topic = topic


class PartitionNotFoundError(NotFoundError):
    def __init__(self, topic: str, partition: int) -> None:
        super().__init__(f"Partition {partition} not found in topic {topic}")
        self.topic = topic
        self.partition = partition


class ConfigurationError(InspectorError):
    """Bad request-level configuration, reported before any I/O."""

    kind = "configuration"


class EncodingError(InspectorError):
    """A value could not be encoded for publishing; nothing was sent."""

    kind = "encoding"


class SchemaResolutionError(InspectorError):
    """Schema registry unreachable or schema unknown."""

    kind = "schema_resolution"

    def __init__(self, message: str, *, topic: str | None = None, schema_id: int | None = None) -> None:
        parts = [message]
        if topic is not None:
            parts.append(f"topic={topic}")
        if schema_id is not None:
            parts.append(f"schema_id={schema_id}")
        super().__init__(" ".join(parts))
        self.topic = topic
        self.schema_id = schema_id


class DecodeError(InspectorError):
    """A single payload is malformed for the selected format.

    Recovered per record by the reader; never surfaces as a call failure.
    """

    kind = "decode"
