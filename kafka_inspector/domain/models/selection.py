"""Request-side selection structs (never serialised back to callers)."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, field_validator

from kafka_inspector.codecs.formats import MessageFormat, parse_format


class FormatSelection(BaseModel):
    """How to decode/encode keys and values for one request.

    ``None`` formats mean "use the configured default".
    """

    format: Optional[MessageFormat] = None
    key_format: Optional[MessageFormat] = None
    desc_file: Optional[str] = None
    msg_type_name: Optional[str] = None
    is_any_proto: bool = False

    @field_validator("format", "key_format", mode="before")
    def _lenient_format(cls, v):
        if v is None or v == "":
            return None
        return parse_format(v)


class MessageSelection(BaseModel):
    partition: Optional[int] = None
    offset: Optional[int] = None
    count: Optional[int] = None

    def is_unset(self, count_one_is_unset: bool = False) -> bool:
        """True when the caller asked for no specific window.

        With *count_one_is_unset* a lone ``count == 1`` also counts as unset,
        matching the legacy message form.
        """
        if self.partition is not None or self.offset is not None:
            return False
        return self.count is None or (count_one_is_unset and self.count == 1)

    def is_complete(self) -> bool:
        return None not in (self.partition, self.offset, self.count)
