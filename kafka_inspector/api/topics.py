# kafka_inspector/api/topics.py
from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends, Query

from kafka_inspector.api.dependencies import get_inspector
from kafka_inspector.models.topics import DescriptorListing, PartitionOffsetInfo
from kafka_inspector.services.inspector import Inspector

router = APIRouter(tags=["topics"])


@router.get("/topics/{topic}/partitions", response_model=list[PartitionOffsetInfo])
def partitions(topic: str, svc: Inspector = Depends(get_inspector)):
    """One entry per partition: id, first retained offset, high-water mark."""
    return [PartitionOffsetInfo.from_partition(p) for p in svc.get_partitions(topic)]


@router.get("/descriptors", response_model=DescriptorListing)
def descriptors(
    topic: Optional[str] = Query(None, description="Pre-select <topic>.desc when present"),
    svc: Inspector = Depends(get_inspector),
):
    files, default = svc.list_descriptors(topic)
    return DescriptorListing(files=files, defaultDescFile=default)
