"""Single dispatch point from (format, role, schema source) to a codec."""
from __future__ import annotations

import logging
from typing import Optional

from kafka_inspector.codecs.avro import AvroDecoder, AvroEncoder
from kafka_inspector.codecs.base import Decoder, DecoderPair, Encoder, EncoderPair
from kafka_inspector.codecs.default import DefaultDecoder, DefaultEncoder
from kafka_inspector.codecs.formats import MessageFormat, Role, parse_format
from kafka_inspector.codecs.msgpack_codec import MsgPackDecoder, MsgPackEncoder
from kafka_inspector.codecs.protobuf import (
    ProtobufDescriptorDecoder,
    ProtobufDescriptorEncoder,
    ProtobufRegistryDecoder,
    ProtobufRegistryEncoder,
)
from kafka_inspector.codecs.schema_registry import SchemaRegistryClient
from kafka_inspector.core.exceptions import ConfigurationError
from kafka_inspector.services.descriptors import DescriptorResolver

logger = logging.getLogger(__name__)


class CodecRegistry:
    """
    Builds request-scoped decoders/encoders. The schema-registry client and
    the descriptor resolver are process-wide and injected.
    """

    def __init__(
        self,
        descriptors: DescriptorResolver,
        schema_registry: Optional[SchemaRegistryClient] = None,
    ) -> None:
        self._descriptors = descriptors
        self._schema_registry = schema_registry

    def _registry(self, fmt: MessageFormat) -> SchemaRegistryClient:
        if self._schema_registry is None:
            raise ConfigurationError(f"{fmt.value} needs a schema registry; set SCHEMA_REGISTRY_URL")
        return self._schema_registry

    # ---------- decoders ----------
    def resolve(
        self,
        fmt: MessageFormat | str | None,
        role: Role,
        topic: str,
        desc_file: Optional[str] = None,
        msg_type_name: Optional[str] = None,
        parse_any: bool = False,
    ) -> Decoder:
        fmt = parse_format(fmt)
        if fmt is MessageFormat.AVRO:
            return AvroDecoder(topic, self._registry(fmt))
        if fmt is MessageFormat.PROTOBUF and desc_file:
            path = self._descriptors.resolve(desc_file)
            return ProtobufDescriptorDecoder(path, msg_type_name, parse_any)
        if fmt is MessageFormat.PROTOBUF:
            return ProtobufRegistryDecoder(topic, self._registry(fmt))
        if fmt is MessageFormat.MSGPACK:
            return MsgPackDecoder()
        return DefaultDecoder()

    def resolve_pair(
        self,
        topic: str,
        key_format: MessageFormat | str | None,
        value_format: MessageFormat | str | None,
        desc_file: Optional[str] = None,
        msg_type_name: Optional[str] = None,
        parse_any: bool = False,
    ) -> DecoderPair:
        logger.debug("decoders for %s: key=%s value=%s", topic, key_format, value_format)
        return DecoderPair(
            key=self.resolve(key_format, Role.KEY, topic, desc_file, msg_type_name, parse_any),
            value=self.resolve(value_format, Role.VALUE, topic, desc_file, msg_type_name, parse_any),
        )

    # ---------- encoders ----------
    def resolve_encoder(
        self,
        fmt: MessageFormat | str | None,
        role: Role,
        topic: str,
        desc_file: Optional[str] = None,
        msg_type_name: Optional[str] = None,
    ) -> Encoder:
        fmt = parse_format(fmt)
        if fmt is MessageFormat.AVRO:
            return AvroEncoder(topic, role, self._registry(fmt))
        if fmt is MessageFormat.PROTOBUF and desc_file:
            return ProtobufDescriptorEncoder(self._descriptors.resolve(desc_file), msg_type_name)
        if fmt is MessageFormat.PROTOBUF:
            return ProtobufRegistryEncoder(topic, role, self._registry(fmt))
        if fmt is MessageFormat.MSGPACK:
            return MsgPackEncoder()
        return DefaultEncoder()

    def resolve_encoder_pair(
        self,
        topic: str,
        key_format: MessageFormat | str | None,
        value_format: MessageFormat | str | None,
        desc_file: Optional[str] = None,
        msg_type_name: Optional[str] = None,
    ) -> EncoderPair:
        return EncoderPair(
            key=self.resolve_encoder(key_format, Role.KEY, topic, desc_file, msg_type_name),
            value=self.resolve_encoder(value_format, Role.VALUE, topic, desc_file, msg_type_name),
        )
