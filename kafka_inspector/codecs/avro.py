"""Avro over the schema registry (Confluent framing)."""
from __future__ import annotations

import io
import json
import threading
from typing import Any, Dict

import fastavro
from fastavro.schema import SchemaParseException
from fastavro.validation import ValidationError, validate

from kafka_inspector.codecs.base import to_json
from kafka_inspector.codecs.formats import Role
from kafka_inspector.codecs.schema_registry import SchemaRegistryClient
from kafka_inspector.codecs.wire import pack_header, split_header
from kafka_inspector.core.exceptions import DecodeError, EncodingError, SchemaResolutionError


def _parse(raw_schema: str, *, topic: str, schema_id: int | None) -> Any:
    try:
        return fastavro.parse_schema(json.loads(raw_schema))
    except (ValueError, TypeError, SchemaParseException) as exc:
        raise SchemaResolutionError(f"unparseable avro schema: {exc}", topic=topic, schema_id=schema_id) from exc


class AvroDecoder:
    def __init__(self, topic: str, registry: SchemaRegistryClient) -> None:
        self.topic = topic
        self._registry = registry
        self._parsed: Dict[int, Any] = {}
        self._lock = threading.Lock()

    def _schema(self, schema_id: int) -> Any:
        parsed = self._parsed.get(schema_id)
        if parsed is None:
            body = self._registry.get_schema(schema_id, topic=self.topic)
            parsed = _parse(body["schema"], topic=self.topic, schema_id=schema_id)
            with self._lock:
                self._parsed[schema_id] = parsed
        return parsed

    def decode(self, data: bytes) -> str:
        schema_id, body = split_header(data)
        schema = self._schema(schema_id)
        try:
            record = fastavro.schemaless_reader(io.BytesIO(body), schema)
        except (EOFError, ValueError, TypeError, IndexError, UnicodeDecodeError) as exc:
            raise DecodeError(f"avro payload does not match schema {schema_id}: {exc}") from exc
        return to_json(record)


class AvroEncoder:
    """Encodes JSON text with the latest schema of ``{topic}-{role}``."""

    def __init__(self, topic: str, role: Role, registry: SchemaRegistryClient) -> None:
        self.topic = topic
        self.subject = f"{topic}-{role.value}"
        self._registry = registry

    def encode(self, value: str) -> bytes:
        try:
            obj = json.loads(value)
        except (TypeError, ValueError) as exc:
            raise EncodingError(f"avro input must be JSON: {exc}") from exc
        latest = self._registry.get_latest(self.subject)
        schema_id = int(latest["id"])
        schema = _parse(latest["schema"], topic=self.topic, schema_id=schema_id)
        try:
            validate(obj, schema, raise_errors=True)
        except ValidationError as exc:
            raise EncodingError(f"value does not conform to {self.subject} schema: {exc}") from exc
        out = io.BytesIO()
        out.write(pack_header(schema_id))
        fastavro.schemaless_writer(out, schema, obj)
        return out.getvalue()
