"""Topic metadata snapshot used by the reader, search engine and publisher."""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Partition(BaseModel):
    """One partition's retained offset range.

    ``size`` is the high-water mark: one past the last written offset.
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., ge=0)
    first_offset: int = Field(..., ge=0)
    size: int = Field(..., ge=0)

    @model_validator(mode="after")
    def _first_not_past_size(self) -> "Partition":
        if self.first_offset > self.size:
            raise ValueError("first_offset must not exceed size")
        return self


class Topic(BaseModel):
    """Immutable view of a topic, refreshed on every lookup."""

    model_config = ConfigDict(frozen=True)

    name: str
    partitions: List[Partition] = Field(default_factory=list)

    def partition(self, partition_id: int) -> Optional[Partition]:
        for p in self.partitions:
            if p.id == partition_id:
                return p
        return None
