"""Confluent wire-format framing: magic byte, schema id, protobuf message indexes."""
from __future__ import annotations

import struct
from typing import List, Tuple

from kafka_inspector.core.exceptions import DecodeError

MAGIC_BYTE = 0
_HEADER = struct.Struct(">bI")


def split_header(data: bytes) -> Tuple[int, bytes]:
    """Return (schema_id, body) or raise DecodeError."""
    if len(data) < _HEADER.size:
        raise DecodeError(f"payload too short for schema-registry framing ({len(data)} bytes)")
    magic, schema_id = _HEADER.unpack_from(data)
    if magic != MAGIC_BYTE:
        raise DecodeError(f"unknown magic byte {magic}")
    return schema_id, bytes(data[_HEADER.size:])


def pack_header(schema_id: int) -> bytes:
    return _HEADER.pack(MAGIC_BYTE, schema_id)


def _read_varint(buf: bytes, pos: int) -> Tuple[int, int]:
    result = 0
    shift = 0
    while True:
        if pos >= len(buf):
            raise DecodeError("truncated varint in message-index header")
        b = buf[pos]
        pos += 1
        result |= (b & 0x7F) << shift
        if not b & 0x80:
            return result, pos
        shift += 7
        if shift > 63:
            raise DecodeError("varint too long in message-index header")


def _zigzag(n: int) -> int:
    return (n >> 1) ^ -(n & 1)


def _write_varint(n: int) -> bytes:
    out = bytearray()
    while True:
        towrite = n & 0x7F
        n >>= 7
        if n:
            out.append(towrite | 0x80)
        else:
            out.append(towrite)
            return bytes(out)


def read_message_indexes(body: bytes) -> Tuple[List[int], bytes]:
    """
    Parse the protobuf message-index path that follows the schema id.
    An empty array is shorthand for ``[0]`` (the first message in the file).
    """
    count, pos = _read_varint(body, 0)
    count = _zigzag(count)
    if count < 0:
        raise DecodeError("negative message-index count")
    if count == 0:
        return [0], body[pos:]
    indexes = []
    for _ in range(count):
        raw, pos = _read_varint(body, pos)
        index = _zigzag(raw)
        if index < 0:
            raise DecodeError(f"negative message index {index}")
        indexes.append(index)
    return indexes, body[pos:]


def write_message_indexes(indexes: List[int]) -> bytes:
    if indexes == [0]:
        return b"\x00"
    out = _write_varint((len(indexes) << 1) ^ (len(indexes) >> 63))
    for i in indexes:
        out += _write_varint((i << 1) ^ (i >> 63))
    return out
