"""Safe lookup of protobuf descriptor files by user-supplied name."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from kafka_inspector.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DESC_SUFFIX = ".desc"


def sanitize_descriptor_name(name: str) -> str:
    """
    Reduce attacker-controlled *name* to ``<stem>.desc`` where the stem has
    no '.', '/' or '\\'. Used by both the decode and the encode path.
    """
    segment = name.replace("\\", "/").rsplit("/", 1)[-1]
    if segment.endswith(DESC_SUFFIX):
        segment = segment[: -len(DESC_SUFFIX)]
    stem = segment.replace(".", "").replace("/", "").replace("\x00", "")
    if not stem:
        raise ConfigurationError(f"invalid descriptor file name: {name!r}")
    return stem + DESC_SUFFIX


class DescriptorResolver:
    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory).absolute()

    def resolve(self, name: str) -> Path:
        """Absolute path of *name*, always a direct child of the configured directory."""
        return self.directory / sanitize_descriptor_name(name)

    def list_files(self) -> List[str]:
        if not self.directory.is_dir():
            return []
        return sorted(p.name for p in self.directory.glob(f"*{DESC_SUFFIX}") if p.is_file())

    def default_for_topic(self, topic: str) -> Optional[str]:
        """Pre-select ``<topic>.desc`` when it exists."""
        wanted = topic + DESC_SUFFIX
        return wanted if wanted in self.list_files() else None
