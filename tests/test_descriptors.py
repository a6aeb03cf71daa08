from __future__ import annotations

import pytest

from kafka_inspector.core.exceptions import ConfigurationError
from kafka_inspector.services.descriptors import DescriptorResolver, sanitize_descriptor_name


@pytest.mark.parametrize(
    "name, expected",
    [
        ("../../etc/passwd", "passwd.desc"),
        ("a/b.desc", "b.desc"),
        ("weird..name.desc", "weirdname.desc"),
        ("/abs/path/people.desc", "people.desc"),
        ("..\\..\\windows\\system.ini", "systemini.desc"),
        ("people", "people.desc"),
        ("v1.people.desc", "v1people.desc"),
    ],
)
def test_sanitized_names(name, expected):
    assert sanitize_descriptor_name(name) == expected


@pytest.mark.parametrize("name", ["../../etc/passwd", "a/b.desc", "weird..name.desc", "/x/y/../../z.desc"])
def test_resolved_path_is_direct_child(tmp_path, name):
    resolver = DescriptorResolver(tmp_path)
    path = resolver.resolve(name)

    assert path.parent == tmp_path.absolute()
    stem, suffix = path.name[: -len(".desc")], path.name[-len(".desc"):]
    assert suffix == ".desc"
    assert "." not in stem and "/" not in stem


@pytest.mark.parametrize("name", ["", "..", "/", ".desc", "a/.."])
def test_names_without_a_stem_are_rejected(tmp_path, name):
    with pytest.raises(ConfigurationError):
        DescriptorResolver(tmp_path).resolve(name)


def test_list_files_and_topic_default(desc_dir):
    (desc_dir / "orders.desc").write_bytes(b"")
    (desc_dir / "notes.txt").write_text("ignored")
    resolver = DescriptorResolver(desc_dir)

    assert resolver.list_files() == ["orders.desc", "people.desc"]
    assert resolver.default_for_topic("orders") == "orders.desc"
    assert resolver.default_for_topic("payments") is None


def test_missing_directory_lists_nothing(tmp_path):
    assert DescriptorResolver(tmp_path / "absent").list_files() == []
