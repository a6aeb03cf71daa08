"""Protobuf codecs: local descriptor sets or the schema registry."""
from __future__ import annotations

import base64
import logging
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from google.protobuf import any_pb2, descriptor_pb2, descriptor_pool, json_format
# imported for their side effect: well-known types land in the default pool
from google.protobuf import duration_pb2, empty_pb2, struct_pb2, timestamp_pb2, wrappers_pb2  # noqa: F401
from google.protobuf.message import DecodeError as ProtoDecodeError
from google.protobuf.message_factory import GetMessageClass

from kafka_inspector.codecs.formats import Role
from kafka_inspector.codecs.schema_registry import SchemaRegistryClient
from kafka_inspector.codecs.wire import pack_header, read_message_indexes, split_header, write_message_indexes
from kafka_inspector.core.exceptions import (
    ConfigurationError,
    DecodeError,
    EncodingError,
    SchemaResolutionError,
)

logger = logging.getLogger(__name__)


# --------------------------------------------------------------------------- #
# Descriptor pool helpers                                                     #
# --------------------------------------------------------------------------- #
def build_pool(files: Iterable[descriptor_pb2.FileDescriptorProto]) -> descriptor_pool.DescriptorPool:
    """
    Load *files* into a private pool in dependency order. Imports missing
    from *files* (well-known types) are taken from the default pool.
    """
    by_name = {f.name: f for f in files}
    pool = descriptor_pool.DescriptorPool()
    added: set[str] = set()

    def _add(name: str, stack: Tuple[str, ...] = ()) -> None:
        if name in added:
            return
        if name in stack:
            raise TypeError(f"import cycle through {name}")
        fdp = by_name.get(name)
        if fdp is None:
            serialized = descriptor_pool.Default().FindFileByName(name).serialized_pb
            pool.AddSerializedFile(serialized)
            added.add(name)
            return
        for dep in fdp.dependency:
            _add(dep, stack + (name,))
        pool.AddSerializedFile(fdp.SerializeToString())
        added.add(name)

    for name in by_name:
        _add(name)
    return pool


def _to_json(message: Any, pool: descriptor_pool.DescriptorPool) -> str:
    try:
        return json_format.MessageToJson(
            message,
            preserving_proto_field_name=True,
            indent=None,
            descriptor_pool=pool,
        )
    except (json_format.Error, TypeError, KeyError) as exc:
        # nested Any with a type the pool does not know
        raise DecodeError(f"cannot render {message.DESCRIPTOR.full_name} as JSON: {exc}") from exc


def _parse_message(cls: Any, data: bytes) -> Any:
    message = cls()
    try:
        message.ParseFromString(data)
    except ProtoDecodeError as exc:
        raise DecodeError(f"invalid protobuf payload for {message.DESCRIPTOR.full_name}: {exc}") from exc
    return message


# --------------------------------------------------------------------------- #
# Local descriptor files                                                      #
# --------------------------------------------------------------------------- #
class _DescriptorSet:
    """A compiled ``FileDescriptorSet`` read once from disk."""

    def __init__(self, path: Path) -> None:
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise ConfigurationError(f"cannot read descriptor file {path.name}: {exc.strerror}") from exc
        fds = descriptor_pb2.FileDescriptorSet()
        try:
            fds.ParseFromString(data)
            self.pool = build_pool(fds.file)
        except (ProtoDecodeError, TypeError, KeyError) as exc:
            raise ConfigurationError(f"invalid descriptor file {path.name}: {exc}") from exc
        self._files = list(fds.file)
        self._classes: Dict[str, Any] = {}

    def message_class(self, type_name: str) -> Any:
        cls = self._classes.get(type_name)
        if cls is not None:
            return cls
        full_name = self._full_name(type_name)
        if full_name is None:
            raise ConfigurationError(f"message type {type_name!r} not found in descriptor")
        cls = GetMessageClass(self.pool.FindMessageTypeByName(full_name))
        self._classes[type_name] = cls
        return cls

    def _full_name(self, type_name: str) -> Optional[str]:
        # Accept fully-qualified names as well as bare top-level message names.
        for fdp in self._files:
            prefix = f"{fdp.package}." if fdp.package else ""
            for mt in fdp.message_type:
                full = prefix + mt.name
                if type_name in (full, mt.name):
                    return full
        return None


class ProtobufDescriptorDecoder:
    def __init__(self, path: Path, msg_type_name: Optional[str], parse_any: bool = False) -> None:
        if not msg_type_name and not parse_any:
            raise ConfigurationError("msgTypeName is required for protobuf descriptor decoding")
        self.msg_type_name = msg_type_name
        self.parse_any = parse_any
        self._set = _DescriptorSet(path)
        if msg_type_name:
            self._set.message_class(msg_type_name)

    def decode(self, data: bytes) -> str:
        if not self.parse_any:
            message = _parse_message(self._set.message_class(self.msg_type_name), data)
            return _to_json(message, self._set.pool)
        envelope = _parse_message(any_pb2.Any, data)
        type_name = envelope.type_url.rsplit("/", 1)[-1] or self.msg_type_name
        if not type_name:
            raise DecodeError("Any envelope carries no type URL")
        try:
            cls = self._set.message_class(type_name)
        except ConfigurationError as exc:
            raise DecodeError(exc.message) from exc
        return _to_json(_parse_message(cls, envelope.value), self._set.pool)


class ProtobufDescriptorEncoder:
    """Parses JSON text into the named message type."""

    def __init__(self, path: Path, msg_type_name: Optional[str]) -> None:
        if not msg_type_name:
            raise ConfigurationError("msgTypeName is required for protobuf descriptor encoding")
        self._cls = _DescriptorSet(path).message_class(msg_type_name)

    def encode(self, value: str) -> bytes:
        try:
            return json_format.Parse(value, self._cls()).SerializeToString()
        except json_format.ParseError as exc:
            raise EncodingError(f"value does not conform to {self._cls.DESCRIPTOR.full_name}: {exc}") from exc


# --------------------------------------------------------------------------- #
# Schema registry                                                             #
# --------------------------------------------------------------------------- #
class _RegistrySchema:
    """One registry schema id resolved to a pool plus its root file."""

    def __init__(self, root: descriptor_pb2.FileDescriptorProto, pool: descriptor_pool.DescriptorPool) -> None:
        self.root = root
        self.pool = pool
        self._classes: Dict[Tuple[int, ...], Any] = {}

    def message_class(self, indexes: List[int]) -> Any:
        key = tuple(indexes)
        cls = self._classes.get(key)
        if cls is None:
            cls = GetMessageClass(self.pool.FindMessageTypeByName(self._full_name(indexes)))
            self._classes[key] = cls
        return cls

    def _full_name(self, indexes: List[int]) -> str:
        types = self.root.message_type
        names = []
        try:
            for i in indexes:
                names.append(types[i].name)
                types = types[i].nested_type
        except IndexError:
            raise DecodeError(f"message index {indexes} out of range for {self.root.name}") from None
        prefix = f"{self.root.package}." if self.root.package else ""
        return prefix + ".".join(names)


def _file_proto(body: Dict[str, Any], fallback_name: str) -> descriptor_pb2.FileDescriptorProto:
    fdp = descriptor_pb2.FileDescriptorProto()
    fdp.ParseFromString(base64.b64decode(body["schema"]))
    if not fdp.name:
        fdp.name = fallback_name
    return fdp


def _load_registry_schema(
    registry: SchemaRegistryClient,
    body: Dict[str, Any],
    *,
    topic: str,
    schema_id: int | None,
) -> _RegistrySchema:
    files: Dict[str, descriptor_pb2.FileDescriptorProto] = {}

    def _collect(refs: List[Dict[str, Any]]) -> None:
        for ref in refs or []:
            if ref["name"] in files:
                continue
            dep = registry.get_version(ref["subject"], int(ref["version"]), serialized=True)
            files[ref["name"]] = _file_proto(dep, ref["name"])
            _collect(dep.get("references", []))

    try:
        root = _file_proto(body, f"schema-{schema_id}.proto")
        _collect(body.get("references", []))
        files[root.name] = root
        return _RegistrySchema(root, build_pool(files.values()))
    except (ProtoDecodeError, TypeError, KeyError, ValueError) as exc:
        raise SchemaResolutionError(
            f"unusable protobuf schema: {exc}", topic=topic, schema_id=schema_id,
        ) from exc


class ProtobufRegistryDecoder:
    def __init__(self, topic: str, registry: SchemaRegistryClient) -> None:
        self.topic = topic
        self._registry = registry
        self._schemas: Dict[int, _RegistrySchema] = {}
        self._lock = threading.Lock()

    def _schema(self, schema_id: int) -> _RegistrySchema:
        schema = self._schemas.get(schema_id)
        if schema is None:
            body = self._registry.get_schema(schema_id, serialized=True, topic=self.topic)
            schema = _load_registry_schema(self._registry, body, topic=self.topic, schema_id=schema_id)
            with self._lock:
                self._schemas[schema_id] = schema
        return schema

    def decode(self, data: bytes) -> str:
        schema_id, body = split_header(data)
        indexes, payload = read_message_indexes(body)
        schema = self._schema(schema_id)
        message = _parse_message(schema.message_class(indexes), payload)
        return _to_json(message, schema.pool)


class ProtobufRegistryEncoder:
    """Encodes JSON text with the first message of the latest ``{topic}-{role}`` schema."""

    def __init__(self, topic: str, role: Role, registry: SchemaRegistryClient) -> None:
        self.topic = topic
        self.subject = f"{topic}-{role.value}"
        self._registry = registry

    def encode(self, value: str) -> bytes:
        latest = self._registry.get_latest(self.subject, serialized=True)
        schema_id = int(latest["id"])
        schema = _load_registry_schema(self._registry, latest, topic=self.topic, schema_id=schema_id)
        cls = schema.message_class([0])
        try:
            payload = json_format.Parse(value, cls()).SerializeToString()
        except json_format.ParseError as exc:
            raise EncodingError(f"value does not conform to {self.subject} schema: {exc}") from exc
        return pack_header(schema_id) + write_message_indexes([0]) + payload
