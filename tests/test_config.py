from __future__ import annotations

from kafka_inspector.codecs.formats import MessageFormat
from kafka_inspector.core.config import Settings


def test_garbled_default_formats_fall_back(monkeypatch):
    monkeypatch.setenv("MESSAGE_FORMAT", "avro")
    monkeypatch.setenv("KEY_FORMAT", "something-else")
    s = Settings(_env_file=None)
    assert s.message_format is MessageFormat.AVRO
    assert s.key_format is MessageFormat.DEFAULT


def test_defaults():
    s = Settings(_env_file=None)
    assert s.parse_any_proto is False
    assert s.count_one_is_unset is False
    assert s.default_message_count == 100
    assert s.search_timestamp_lookup == "index"
    assert s.registry_credentials() is None


def test_registry_credentials_split():
    s = Settings(_env_file=None, schema_registry_auth="alice:s3:cret")
    assert s.registry_credentials() == ("alice", "s3:cret")


def test_cors_origins_accept_csv_and_json():
    assert Settings(_env_file=None, cors_allow_origins="http://a, http://b").cors_allow_origins == [
        "http://a",
        "http://b",
    ]
    assert Settings(_env_file=None, cors_allow_origins='["http://c"]').cors_allow_origins == ["http://c"]
