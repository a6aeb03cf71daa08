"""Shared fixtures: an in-memory broker and a mocked schema registry."""
from __future__ import annotations

import base64
import json
from typing import Callable, Dict, List, Optional, Tuple

import httpx
import pytest
from google.protobuf import descriptor_pb2

from kafka_inspector.codecs.base import DecoderPair
from kafka_inspector.codecs.default import DefaultDecoder
from kafka_inspector.codecs.registry import CodecRegistry
from kafka_inspector.codecs.schema_registry import SchemaRegistryClient
from kafka_inspector.core.config import Settings
from kafka_inspector.domain.models.record import RawRecord
from kafka_inspector.domain.models.topic import Partition, Topic
from kafka_inspector.services.descriptors import DescriptorResolver
from kafka_inspector.services.inspector import Inspector


class FakeBroker:
    """Partitioned in-memory log honouring retention and high-water marks."""

    def __init__(self) -> None:
        self._topics: Dict[str, Dict[int, dict]] = {}
        self.appended: List[Tuple[str, int, Optional[bytes], Optional[bytes]]] = []
        self.fetch_calls = 0

    # ---------- test setup ----------
    def create(self, name: str, partitions: int = 1) -> None:
        self._topics[name] = {pid: {"first": 0, "records": []} for pid in range(partitions)}

    def add(
        self,
        topic: str,
        partition: int,
        value: Optional[bytes],
        key: Optional[bytes] = None,
        timestamp: Optional[int] = None,
        headers: Optional[List[Tuple[str, bytes]]] = None,
    ) -> int:
        part = self._topics[topic][partition]
        offset = len(part["records"])
        part["records"].append(
            RawRecord(
                topic=topic,
                partition=partition,
                offset=offset,
                timestamp=offset * 10 if timestamp is None else timestamp,
                key=key,
                value=value,
                headers=headers or [],
            )
        )
        return offset

    def expire_before(self, topic: str, partition: int, first_offset: int) -> None:
        """Simulate retention deleting everything below *first_offset*."""
        self._topics[topic][partition]["first"] = first_offset

    # ---------- LogBroker ----------
    def lookup_topic(self, name: str) -> Optional[Topic]:
        parts = self._topics.get(name)
        if parts is None:
            return None
        return Topic(
            name=name,
            partitions=[
                Partition(id=pid, first_offset=p["first"], size=len(p["records"]))
                for pid, p in sorted(parts.items())
            ],
        )

    def fetch(self, topic: str, partition: int, offset: int, max_count: int) -> List[RawRecord]:
        self.fetch_calls += 1
        part = self._topics[topic][partition]
        start = max(offset, part["first"])
        return part["records"][start:start + max_count]

    def offset_for_timestamp(self, topic: str, partition: int, timestamp_ms: int) -> Optional[int]:
        part = self._topics[topic][partition]
        for r in part["records"][part["first"]:]:
            if r.timestamp >= timestamp_ms:
                return r.offset
        return None

    def append(self, topic: str, partition: int, key: Optional[bytes], value: Optional[bytes]) -> int:
        self.appended.append((topic, partition, key, value))
        return self.add(topic, partition, value, key=key)


# --------------------------------------------------------------------------- #
# Schema registry mock                                                        #
# --------------------------------------------------------------------------- #
USER_SCHEMA = {
    "type": "record",
    "name": "User",
    "fields": [
        {"name": "name", "type": "string"},
        {"name": "age", "type": "int"},
    ],
}


def person_file() -> descriptor_pb2.FileDescriptorProto:
    """``demo.Person { string name = 1; int32 id = 2; }``"""
    F = descriptor_pb2.FieldDescriptorProto
    fdp = descriptor_pb2.FileDescriptorProto(name="people.proto", package="demo", syntax="proto3")
    msg = fdp.message_type.add(name="Person")
    msg.field.add(name="name", number=1, type=F.TYPE_STRING, label=F.LABEL_OPTIONAL, json_name="name")
    msg.field.add(name="id", number=2, type=F.TYPE_INT32, label=F.LABEL_OPTIONAL, json_name="id")
    return fdp


class RegistryStub:
    """Routes registry paths to canned JSON bodies; counts hits per path."""

    def __init__(self) -> None:
        self.routes: Dict[str, dict] = {}
        self.hits: Dict[str, int] = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.hits[path] = self.hits.get(path, 0) + 1
        body = self.routes.get(path)
        if body is None:
            return httpx.Response(404, json={"error_code": 40403, "message": "Schema not found"})
        return httpx.Response(200, json=body)


@pytest.fixture
def registry_stub() -> RegistryStub:
    stub = RegistryStub()
    avro = json.dumps(USER_SCHEMA)
    stub.routes["/schemas/ids/1"] = {"schema": avro}
    stub.routes["/subjects/users-value/versions/latest"] = {
        "subject": "users-value", "version": 1, "id": 1, "schema": avro,
    }
    proto = base64.b64encode(person_file().SerializeToString()).decode()
    stub.routes["/schemas/ids/3"] = {"schemaType": "PROTOBUF", "schema": proto}
    stub.routes["/subjects/people-value/versions/latest"] = {
        "subject": "people-value", "version": 1, "id": 3, "schemaType": "PROTOBUF", "schema": proto,
    }
    return stub


@pytest.fixture
def schema_registry(registry_stub: RegistryStub) -> SchemaRegistryClient:
    client = SchemaRegistryClient("http://registry:8081", transport=httpx.MockTransport(registry_stub.handler))
    yield client
    client.close()


# --------------------------------------------------------------------------- #
# Core wiring                                                                 #
# --------------------------------------------------------------------------- #
@pytest.fixture
def desc_dir(tmp_path):
    d = tmp_path / "descriptors"
    d.mkdir()
    fds = descriptor_pb2.FileDescriptorSet(file=[person_file()])
    (d / "people.desc").write_bytes(fds.SerializeToString())
    return d


@pytest.fixture
def settings(desc_dir) -> Settings:
    return Settings(_env_file=None, protobuf_desc_directory=str(desc_dir), search_timeout_sec=0)


@pytest.fixture
def broker() -> FakeBroker:
    return FakeBroker()


@pytest.fixture
def codecs(settings: Settings, schema_registry: SchemaRegistryClient) -> CodecRegistry:
    return CodecRegistry(DescriptorResolver(settings.protobuf_desc_directory), schema_registry)


@pytest.fixture
def inspector(settings: Settings, broker: FakeBroker, codecs: CodecRegistry) -> Inspector:
    return Inspector(
        settings=settings,
        broker=broker,
        codecs=codecs,
        descriptors=DescriptorResolver(settings.protobuf_desc_directory),
    )


@pytest.fixture
def text_decoders() -> DecoderPair:
    return DecoderPair(key=DefaultDecoder(), value=DefaultDecoder())


@pytest.fixture
def fill() -> Callable[..., None]:
    """fill(broker, topic, partition, [(ts, value), ...])"""

    def _fill(broker: FakeBroker, topic: str, partition: int, rows) -> None:
        for ts, value in rows:
            broker.add(topic, partition, value.encode(), key=f"k{ts}".encode(), timestamp=ts)

    return _fill
