from pydantic import BaseModel
from typing import List, Optional

from kafka_inspector.domain.models.topic import Partition


class PartitionOffsetInfo(BaseModel):
    partition: int
    firstOffset: int
    size: int

    @classmethod
    def from_partition(cls, p: Partition) -> "PartitionOffsetInfo":
        return cls(partition=p.id, firstOffset=p.first_offset, size=p.size)


class DescriptorListing(BaseModel):
    files: List[str]
    defaultDescFile: Optional[str] = None
