"""Thin Confluent Schema Registry client on httpx.

One instance is created per process (FastAPI lifespan) and shared by every
request-scoped decoder. Schemas looked up by id are immutable in the
registry, so they are cached forever; "latest version" lookups are not.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Optional, Tuple

import httpx

from kafka_inspector.core.exceptions import SchemaResolutionError

logger = logging.getLogger(__name__)

_ACCEPT = "application/vnd.schemaregistry.v1+json, application/json"


class SchemaRegistryClient:
    def __init__(
        self,
        url: str,
        auth: Optional[Tuple[str, str]] = None,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.url = url.rstrip("/")
        self._client = httpx.Client(
            base_url=self.url,
            auth=auth,
            timeout=timeout,
            transport=transport,
            headers={"Accept": _ACCEPT},
        )
        self._by_id: Dict[Tuple[int, bool], Dict[str, Any]] = {}
        self._by_version: Dict[Tuple[str, int, bool], Dict[str, Any]] = {}
        self._lock = threading.Lock()

    # ---------- lookups ----------
    def get_schema(self, schema_id: int, *, serialized: bool = False, topic: str | None = None) -> Dict[str, Any]:
        """Return ``{"schema": ..., "schemaType": ..., "references": [...]}`` for *schema_id*."""
        key = (schema_id, serialized)
        cached = self._by_id.get(key)
        if cached is not None:
            return cached
        with self._lock:
            cached = self._by_id.get(key)
            if cached is None:
                params = {"format": "serialized"} if serialized else None
                cached = self._get(f"/schemas/ids/{schema_id}", params, topic=topic, schema_id=schema_id)
                self._by_id[key] = cached
        return cached

    def get_version(self, subject: str, version: int, *, serialized: bool = False) -> Dict[str, Any]:
        key = (subject, version, serialized)
        cached = self._by_version.get(key)
        if cached is not None:
            return cached
        with self._lock:
            cached = self._by_version.get(key)
            if cached is None:
                cached = self._get(f"/subjects/{subject}/versions/{version}", _fmt(serialized))
                self._by_version[key] = cached
        return cached

    def get_latest(self, subject: str, *, serialized: bool = False) -> Dict[str, Any]:
        """Latest registered version of *subject* (``id``, ``version``, ``schema`` ...)."""
        return self._get(f"/subjects/{subject}/versions/latest", _fmt(serialized))

    def close(self) -> None:
        self._client.close()

    # ---------- helpers ----------
    def _get(
        self,
        path: str,
        params: Optional[Dict[str, str]] = None,
        *,
        topic: str | None = None,
        schema_id: int | None = None,
    ) -> Dict[str, Any]:
        logger.debug("schema registry GET %s", path)
        try:
            resp = self._client.get(path, params=params)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as exc:
            raise SchemaResolutionError(
                f"schema registry returned {exc.response.status_code} for {path}",
                topic=topic, schema_id=schema_id,
            ) from exc
        except httpx.HTTPError as exc:
            raise SchemaResolutionError(
                f"schema registry unreachable at {self.url}: {exc}",
                topic=topic, schema_id=schema_id,
            ) from exc
        except ValueError as exc:
            raise SchemaResolutionError(
                f"schema registry sent invalid JSON for {path}",
                topic=topic, schema_id=schema_id,
            ) from exc


def _fmt(serialized: bool) -> Optional[Dict[str, str]]:
    return {"format": "serialized"} if serialized else None
