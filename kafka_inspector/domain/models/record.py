"""Raw and decoded record models."""
from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class RawRecord(BaseModel):
    """A record exactly as the broker returned it."""

    model_config = ConfigDict(frozen=True)

    topic: str
    partition: int
    offset: int
    timestamp: int  # epoch millis
    key: Optional[bytes] = None
    value: Optional[bytes] = None
    headers: List[Tuple[str, bytes]] = Field(default_factory=list)


class Record(BaseModel):
    """A record after key/value decoding.

    ``decode_error`` is set when the key or value was malformed for the
    selected format; the failing side then holds its raw UTF-8 rendering.
    """

    partition: int
    offset: int
    timestamp: int
    key: Optional[str] = None
    value: Optional[str] = None
    key_size: int = 0
    value_size: int = 0
    headers: Dict[str, str] = Field(default_factory=dict)
    decode_error: Optional[str] = None
