"""Test doubles shared by the test modules."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from pytankctl.exceptions import TankCtlStoreError

_MISSING = object()


def _values_at(doc: Any, path: list[str]) -> list[Any]:
    """All values reachable at a dotted *path*, descending through lists."""
    if not path:
        return [doc]
    if isinstance(doc, list):
        return [v for item in doc for v in _values_at(item, path)]
    if not isinstance(doc, Mapping):
        return []
    value = doc.get(path[0], _MISSING)
    if value is _MISSING:
        return []
    return _values_at(value, path[1:])


def _condition_matches(values: list[Any], condition: Any) -> bool:
    flat: list[Any] = []
    for value in values:
        flat.extend(value if isinstance(value, list) else [value])

    if isinstance(condition, Mapping) and condition and all(str(k).startswith("$") for k in condition):
        for op, operand in condition.items():
            if op == "$gte":
                if not any(v is not None and v >= operand for v in flat):
                    return False
            elif op == "$in":
                if not any(v in operand for v in flat):
                    return False
            else:  # pragma: no cover - guard against unsupported queries in tests
                raise AssertionError(f"unsupported operator {op}")
        return True
    return any(v == condition for v in flat)


def _matches(doc: Mapping[str, Any], filter: Mapping[str, Any]) -> bool:
    return all(_condition_matches(_values_at(doc, key.split(".")), cond) for key, cond in filter.items())


@dataclass
class FakeStore:
    """In-memory stand-in for :class:`MongoDocumentStore`."""

    collections: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    failures: dict[str, int] = field(default_factory=dict)
    calls: list[tuple[str, dict[str, Any]]] = field(default_factory=list)

    def insert(self, collection: str, doc: dict[str, Any]) -> dict[str, Any]:
        self.collections.setdefault(collection, []).append(doc)
        return doc

    def insert_later(
        self,
        delay: float,
        collection: str,
        doc: dict[str, Any],
        *,
        stamp_field: str,
    ) -> None:
        """Insert *doc* after *delay* seconds, stamped with the insertion time."""

        def _insert() -> None:
            self.insert(collection, {**doc, stamp_field: datetime.now(UTC)})

        asyncio.get_running_loop().call_later(delay, _insert)

    def fail(self, collection: str, times: int = -1) -> None:
        """Make the next *times* queries on *collection* fail (-1: always)."""
        self.failures[collection] = times

    def _maybe_fail(self, collection: str) -> None:
        remaining = self.failures.get(collection, 0)
        if remaining == 0:
            return
        if remaining > 0:
            self.failures[collection] = remaining - 1
        raise TankCtlStoreError(f"{collection} unavailable", collection=collection)

    def _query(
        self,
        collection: str,
        filter: Mapping[str, Any],
        sort: Sequence[tuple[str, int]] | None,
    ) -> list[dict[str, Any]]:
        self.calls.append((collection, dict(filter)))
        self._maybe_fail(collection)
        docs = [d for d in self.collections.get(collection, []) if _matches(d, filter)]
        for key, direction in reversed(list(sort or [])):
            docs.sort(key=lambda d, k=key: d.get(k), reverse=direction < 0)
        return [dict(d) for d in docs]

    async def find_one(
        self,
        collection: str,
        filter: Mapping[str, Any],
        *,
        sort: Sequence[tuple[str, int]] | None = None,
        projection: Mapping[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        docs = self._query(collection, filter, sort)
        if not docs:
            return None
        doc = docs[0]
        if projection:
            doc = {k: v for k, v in doc.items() if k == "_id" or projection.get(k)}
        return doc

    async def find(
        self,
        collection: str,
        filter: Mapping[str, Any],
        *,
        sort: Sequence[tuple[str, int]] | None = None,
        limit: int = 0,
    ) -> list[dict[str, Any]]:
        docs = self._query(collection, filter, sort)
        return docs[:limit] if limit else docs

    def queried(self, collection: str) -> int:
        return sum(1 for name, _ in self.calls if name == collection)


@dataclass
class RecordingPublisher:
    """Publisher double that records messages or fails on demand."""

    published: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    error: Exception | None = None

    async def publish(self, topic: str, payload: Mapping[str, Any]) -> None:
        if self.error is not None:
            raise self.error
        self.published.append((topic, dict(payload)))


def seconds_ago(seconds: float) -> datetime:
    return datetime.now(UTC) - timedelta(seconds=seconds)
