"""Bounded-time polling of the response store.

Devices never answer on the command channel. Their replies land in the
store, so "waiting for a reply" means querying for the newest matching
document inside a sliding recency window until one shows up or the
caller's budget runs out.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from pytankctl._constants import MESSAGE_TYPE_ALIVE, MESSAGE_TYPE_UPDATE, RESPONSE_TYPE_SLAVE
from pytankctl._store import DESCENDING, DocumentStore
from pytankctl.config import CollectionNames, PollProfile
from pytankctl.exceptions import TankCtlStoreError
from pytankctl.models._base import safe_int

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class MatchCriteria:
    """What a poll loop looks for and how often it asks.

    Parameters
    ----------
    collection : str
        Collection to query.
    match : Mapping
        Equality filter (may use ``$in`` for alternative values).
    timestamp_field : str
        Insertion-time field used for the window and for ordering.
    window : float
        Recency window in seconds, relative to each query.
    interval : float
        Seconds between queries.
    label : str
        Short description for log lines.
    """

    collection: str
    match: Mapping[str, Any]
    timestamp_field: str
    window: float
    interval: float
    label: str = "response"

    def query(self, now: datetime) -> dict[str, Any]:
        """Build the filter for a query issued at *now*."""
        return {
            **self.match,
            self.timestamp_field: {"$gte": now - timedelta(seconds=self.window)},
        }


def _sensor_no_filter(sensor_no: str | int) -> Any:
    # Path parameters arrive as text while producers may store numbers.
    as_int = safe_int(sensor_no)
    if as_int is None or str(as_int) != str(sensor_no).strip():
        return sensor_no
    return {"$in": [str(as_int), as_int]}


def slave_reply_criteria(
    thing_id: str,
    profile: PollProfile,
    collections: CollectionNames | None = None,
) -> MatchCriteria:
    """Generic command reply, keyed by thing id."""
    names = collections or CollectionNames()
    return MatchCriteria(
        collection=names.device_responses,
        match={"thingid": thing_id, "response_type": RESPONSE_TYPE_SLAVE},
        timestamp_field="inserted_at",
        window=profile.window,
        interval=profile.interval,
        label=f"slave reply thing={thing_id}",
    )


def alive_reply_criteria(
    device_id: str,
    profile: PollProfile,
    collections: CollectionNames | None = None,
) -> MatchCriteria:
    """Base liveness reply, keyed by device id."""
    names = collections or CollectionNames()
    return MatchCriteria(
        collection=names.readings,
        match={"deviceid": device_id, "message_type": MESSAGE_TYPE_ALIVE},
        timestamp_field="timestamp",
        window=profile.window,
        interval=profile.interval,
        label=f"alive reply device={device_id}",
    )


def sensor_update_criteria(
    device_id: str,
    sensor_no: str | int,
    profile: PollProfile,
    collections: CollectionNames | None = None,
) -> MatchCriteria:
    """Tank sensor update, keyed by device id and sensor number."""
    names = collections or CollectionNames()
    return MatchCriteria(
        collection=names.readings,
        match={
            "deviceid": device_id,
            "sensor_no": _sensor_no_filter(sensor_no),
            "message_type": MESSAGE_TYPE_UPDATE,
        },
        timestamp_field="timestamp",
        window=profile.window,
        interval=profile.interval,
        label=f"sensor update device={device_id} sensor={sensor_no}",
    )


class ResponsePoller:
    """Fixed-interval poll loop over a :class:`DocumentStore`.

    ``clock`` measures the budget (monotonic); ``now`` anchors the
    recency window (wall clock, UTC). Both are injectable for tests.
    """

    def __init__(
        self,
        store: DocumentStore,
        *,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.clock = clock
        self.now = now or _utcnow

    async def poll(self, criteria: MatchCriteria, budget: float) -> dict[str, Any] | None:
        """Return the newest matching document, or ``None`` once *budget* seconds pass.

        Query failures count as "no match" for that iteration and never
        end the loop early.
        """
        start = self.clock()
        sort = [(criteria.timestamp_field, DESCENDING)]
        attempts = 0

        _logger.info("Polling for %s (budget %.1fs)", criteria.label, budget)

        while self.clock() - start < budget:
            attempts += 1
            try:
                doc = await self.store.find_one(criteria.collection, criteria.query(self.now()), sort=sort)
            except TankCtlStoreError as exc:
                _logger.error("Error polling %s (attempt %d): %s", criteria.label, attempts, exc)
                doc = None

            if doc is not None:
                _logger.info("Found %s after %.2fs (attempt %d)", criteria.label, self.clock() - start, attempts)
                return doc

            remaining = budget - (self.clock() - start)
            if remaining <= 0:
                break
            await asyncio.sleep(min(criteria.interval, remaining))

        _logger.warning(
            "Timeout waiting for %s after %.1fs (%d attempts)",
            criteria.label,
            self.clock() - start,
            attempts,
        )
        return None

    async def recent(self, criteria: MatchCriteria) -> list[dict[str, Any]]:
        """All documents currently inside the criteria's window, newest first."""
        return await self.store.find(
            criteria.collection,
            criteria.query(self.now()),
            sort=[(criteria.timestamp_field, DESCENDING)],
        )
