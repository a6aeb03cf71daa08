from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient
from google.protobuf import any_pb2
from google.protobuf.message_factory import GetMessageClass

from kafka_inspector.codecs.protobuf import build_pool
from server import create_app

from conftest import person_file


@pytest.fixture
def client(settings, broker, schema_registry):
    broker.create("orders", partitions=2)
    for i in range(5):
        broker.add("orders", 0, f"order {i}".encode(), key=f"k{i}".encode(), timestamp=1_000 + i)
    broker.add("orders", 1, b"order late", timestamp=1_002)
    app = create_app(settings=settings, broker=broker, schema_registry=schema_registry)
    with TestClient(app) as c:
        yield c


def test_partitions(client):
    resp = client.get("/api/v1/topics/orders/partitions")
    assert resp.status_code == 200
    assert resp.json() == [
        {"partition": 0, "firstOffset": 0, "size": 5},
        {"partition": 1, "firstOffset": 0, "size": 1},
    ]


def test_messages_without_window_lists_partitions(client):
    resp = client.get("/api/v1/topics/orders/messages")
    assert resp.status_code == 200
    assert [p["partition"] for p in resp.json()] == [0, 1]


def test_messages_window(client):
    resp = client.get("/api/v1/topics/orders/messages", params={"partition": 0, "offset": 1, "count": 2})
    assert resp.status_code == 200
    body = resp.json()
    assert [m["offset"] for m in body] == [1, 2]
    assert body[0]["message"] == "order 1"
    assert body[0]["key"] == "k1"
    assert body[0]["decodeError"] is None


def test_count_of_one_reads_one_message_by_default(client):
    resp = client.get("/api/v1/topics/orders/messages", params={"count": 1})
    assert resp.status_code == 200
    assert [m["offset"] for m in resp.json()] == [0]


def test_count_of_one_as_unset_when_configured(settings, broker):
    broker.create("orders")
    broker.add("orders", 0, b"x")
    settings = settings.model_copy(update={"count_one_is_unset": True})
    with TestClient(create_app(settings=settings, broker=broker)) as c:
        resp = c.get("/api/v1/topics/orders/messages", params={"count": 1})
    assert resp.json() == [{"partition": 0, "firstOffset": 0, "size": 1}]


def test_offset_past_end_is_empty(client):
    resp = client.get("/api/v1/topics/orders/messages", params={"partition": 0, "offset": 99, "count": 5})
    assert resp.status_code == 200
    assert resp.json() == []


def test_count_above_maximum_is_rejected(client):
    resp = client.get("/api/v1/topics/orders/messages", params={"partition": 0, "offset": 0, "count": 101})
    assert resp.status_code == 400


def test_unknown_topic_is_problem_404(client):
    resp = client.get("/api/v1/topics/ghost/partitions")
    assert resp.status_code == 404
    assert resp.headers["content-type"].startswith("application/problem+json")
    body = resp.json()
    assert body["kind"] == "not_found"
    assert "ghost" in body["detail"]


def test_descriptor_config_error_is_400(client):
    resp = client.get(
        "/api/v1/topics/orders/messages",
        params={"partition": 0, "offset": 0, "count": 1, "format": "PROTOBUF", "descFile": "../.."},
    )
    assert resp.status_code == 400
    assert resp.json()["kind"] == "configuration"


def test_all_messages_sorted(client):
    resp = client.get("/api/v1/topics/orders/all-messages", params={"count": 3})
    assert resp.status_code == 200
    stamps = [m["timestamp"] for m in resp.json()]
    assert stamps == sorted(stamps)
    assert len(stamps) == 4


def test_search(client):
    resp = client.get(
        "/api/v1/topics/orders/search",
        params={"text": "late", "startTimestamp": "1970-01-01T00:00:01Z"},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert [m["message"] for m in body["messages"]] == ["order late"]
    assert body["details"]["exhausted"] is True
    assert body["details"]["matchesFound"] == 1
    assert body["details"]["reason"] == "EXHAUSTED_ALL_MESSAGES"


def test_search_rejects_bad_timestamp(client):
    resp = client.get("/api/v1/topics/orders/search", params={"text": "x", "startTimestamp": "yesterday"})
    assert resp.status_code == 400


def test_publish_and_read_back(client):
    resp = client.post("/api/v1/topics/orders/messages", json={"partition": 1, "key": "k", "value": "fresh"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["offset"] == 1
    assert body["messages"][0]["message"] == "fresh"
    assert body["messages"][0]["key"] == "k"


def test_publish_encoding_error_is_422(client, broker):
    broker.create("users")
    resp = client.post("/api/v1/topics/users/messages", json={"value": "not json", "format": "AVRO"})
    assert resp.status_code == 422
    assert resp.json()["kind"] == "encoding"


def test_unknown_schema_id_is_502(client, broker):
    broker.create("users")
    broker.add("users", 0, b"\x00\x00\x00\x00\x63payload")
    resp = client.get(
        "/api/v1/topics/users/messages",
        params={"partition": 0, "offset": 0, "count": 1, "format": "AVRO"},
    )
    assert resp.status_code == 502
    assert "schema_id=99" in resp.json()["detail"]


def test_descriptors_listing(client):
    resp = client.get("/api/v1/descriptors", params={"topic": "people"})
    assert resp.json() == {"files": ["people.desc"], "defaultDescFile": "people.desc"}


def test_msgpack_values_render_as_json(client, broker):
    import msgpack

    broker.create("packed")
    broker.add("packed", 0, msgpack.packb({"id": 7}))
    resp = client.get(
        "/api/v1/topics/packed/messages",
        params={"partition": 0, "offset": 0, "count": 1, "format": "msgpack"},
    )
    assert json.loads(resp.json()[0]["message"]) == {"id": 7}


def _any_person(name: str) -> bytes:
    cls = GetMessageClass(build_pool([person_file()]).FindMessageTypeByName("demo.Person"))
    inner = cls(name=name, id=1).SerializeToString()
    return any_pb2.Any(type_url="type.googleapis.com/demo.Person", value=inner).SerializeToString()


def test_search_applies_configured_any_unwrapping(settings, broker):
    broker.create("people")
    broker.add("people", 0, _any_person("ada"))
    broker.add("people", 0, _any_person("grace"))
    settings = settings.model_copy(update={"parse_any_proto": True})
    params = {"text": "ada", "format": "PROTOBUF", "descFile": "people.desc", "msgTypeName": "demo.Person"}
    with TestClient(create_app(settings=settings, broker=broker)) as c:
        resp = c.get("/api/v1/topics/people/search", params=params)
        listed = c.get("/api/v1/topics/people/messages", params={**params, "partition": 0, "offset": 0, "count": 2})
    body = resp.json()
    assert body["details"]["matchesFound"] == 1
    assert json.loads(body["messages"][0]["message"]) == {"name": "ada", "id": 1}
    assert [json.loads(m["message"])["name"] for m in listed.json()] == ["ada", "grace"]


def test_bad_request_parameters_are_problem_responses(client):
    resp = client.get("/api/v1/topics/orders/search", params={"text": "x", "startTimestamp": "yesterday"})
    assert resp.headers["content-type"].startswith("application/problem+json")
    assert resp.json()["kind"] == "configuration"
    resp = client.get("/api/v1/topics/orders/messages", params={"partition": 0, "offset": 0, "count": 101})
    assert resp.status_code == 400
    assert resp.json()["kind"] == "configuration"
