"""Document store access for the resolver and the response poller.

The service only ever reads: point lookups by equality filter, optionally
combined with a ``$gte`` timestamp range and a newest-first sort.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError

from pytankctl.config import TankCtlConfig
from pytankctl.exceptions import TankCtlStoreError

_logger = logging.getLogger(__name__)

SortSpec = Sequence[tuple[str, int]]

DESCENDING = -1


class DocumentStore(Protocol):
    """Structural store interface used by the resolver and poller.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (:class:`MongoDocumentStore`) concrete.
    Implementations raise :class:`TankCtlStoreError` on query failure.
    """

    async def find_one(
        self,
        collection: str,
        filter: Mapping[str, Any],
        *,
        sort: SortSpec | None = None,
        projection: Mapping[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        ...

    async def find(
        self,
        collection: str,
        filter: Mapping[str, Any],
        *,
        sort: SortSpec | None = None,
        limit: int = 0,
    ) -> list[dict[str, Any]]:
        ...


class MongoDocumentStore:
    """Read-only store backed by pymongo's asyncio client."""

    def __init__(self, client: AsyncMongoClient[dict[str, Any]], database: str) -> None:
        self._client = client
        self._db = client[database]

    @classmethod
    def from_config(cls, config: TankCtlConfig) -> MongoDocumentStore:
        """Open a client for ``config.mongo_uri`` (connection is lazy)."""
        client: AsyncMongoClient[dict[str, Any]] = AsyncMongoClient(config.mongo_uri, tz_aware=True)
        return cls(client, config.database)

    async def close(self) -> None:
        await self._client.close()

    async def find_one(
        self,
        collection: str,
        filter: Mapping[str, Any],
        *,
        sort: SortSpec | None = None,
        projection: Mapping[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        _logger.debug("find_one %s filter=%s sort=%s", collection, filter, sort)
        try:
            return await self._db[collection].find_one(
                dict(filter),
                projection=dict(projection) if projection is not None else None,
                sort=list(sort) if sort else None,
            )
        except PyMongoError as exc:
            raise TankCtlStoreError(
                f"find_one on {collection} failed: {exc}",
                collection=collection,
            ) from exc

    async def find(
        self,
        collection: str,
        filter: Mapping[str, Any],
        *,
        sort: SortSpec | None = None,
        limit: int = 0,
    ) -> list[dict[str, Any]]:
        _logger.debug("find %s filter=%s sort=%s limit=%d", collection, filter, sort, limit)
        try:
            cursor = self._db[collection].find(dict(filter), sort=list(sort) if sort else None, limit=limit)
            return await cursor.to_list()
        except PyMongoError as exc:
            raise TankCtlStoreError(
                f"find on {collection} failed: {exc}",
                collection=collection,
            ) from exc
