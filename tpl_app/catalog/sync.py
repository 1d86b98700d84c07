"""
Pinball Map inventory client and active-machine synchronizer.

The synchronizer is best-effort: when the feed cannot be fetched or the
store cannot be updated it logs a warning and leaves the previously
committed active set untouched. The next run is the retry.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

import requests
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from tpl_app.models import Machine
from tpl_app.store import CatalogStore, StoreClosedError

from .errors import InventoryFeedError
from .metrics import record_sync_outcome

logger = logging.getLogger(__name__)

DEFAULT_PINBALL_MAP_API_BASE = "https://pinballmap.com/api/v1"


class SyncState(str, enum.Enum):
    """Progress of one synchronizer run."""

    FETCHING = "fetching"
    RESETTING = "resetting"
    REASSERTING = "reasserting"
    COMMITTED = "committed"
    ABORTED = "aborted"


@dataclass
class SyncSummary:
    """Outcome of a single ``sync_active_machines`` call."""

    venue_id: int
    state: SyncState = SyncState.FETCHING
    machines_listed: int = 0
    machines_activated: int = 0
    unknown_opdb_ids: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def committed(self) -> bool:
        return self.state is SyncState.COMMITTED

    def as_dict(self) -> dict[str, Any]:
        return {
            "venue_id": self.venue_id,
            "state": self.state.value,
            "machines_listed": self.machines_listed,
            "machines_activated": self.machines_activated,
            "unknown_opdb_ids": list(self.unknown_opdb_ids),
            "error": self.error,
        }


class PinballMapClient:
    """Reads a location's machine listing from the Pinball Map API."""

    def __init__(
        self,
        base_url: str = DEFAULT_PINBALL_MAP_API_BASE,
        *,
        session: requests.Session | None = None,
        timeout: float | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def machine_details_url(self, location_id: int) -> str:
        return f"{self.base_url}/locations/{location_id}/machine_details.json"

    def fetch_machine_opdb_ids(self, location_id: int) -> list[str]:
        """
        Return the OPDB ids of the machines listed at ``location_id``.

        Duplicates are collapsed and entries without an OPDB id are dropped.
        Raises ``InventoryFeedError`` for any transport, status, or payload
        problem.
        """
        url = self.machine_details_url(location_id)
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            raise InventoryFeedError(f"Unable to get response from Pinball Map: {exc}", url=url) from exc

        if response.status_code != 200:
            raise InventoryFeedError(
                f"Pinball Map responded with status {response.status_code}",
                url=url,
                details=response.text[:500] if response.text else None,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise InventoryFeedError(f"Unable to parse the body of the response from Pinball Map: {exc}", url=url) from exc

        if not isinstance(payload, Mapping):
            raise InventoryFeedError("Pinball Map response is not a JSON object", url=url)
        if payload.get("errors") is not None:
            raise InventoryFeedError("Pinball Map reported errors", url=url, details=payload["errors"])

        machines = payload.get("machines")
        if not isinstance(machines, list):
            raise InventoryFeedError("Pinball Map response has no machines list", url=url)

        opdb_ids: dict[str, None] = {}
        for entry in machines:
            if not isinstance(entry, Mapping):
                continue
            opdb_id = entry.get("opdb_id")
            if isinstance(opdb_id, str) and opdb_id:
                opdb_ids[opdb_id] = None
            else:
                logger.debug("Pinball Map machine without opdb_id", extra={"machine": entry.get("name")})
        return list(opdb_ids)


def _abort(summary: SyncSummary, exc: Exception, message: str) -> SyncSummary:
    summary.state = SyncState.ABORTED
    summary.error = str(exc)
    extra: dict[str, Any] = {"location_id": summary.venue_id, "error": str(exc)}
    if isinstance(exc, InventoryFeedError):
        extra.update({"url": exc.url, "details": exc.details})
    logger.warning(message, extra=extra)
    record_sync_outcome("aborted")
    return summary


def sync_active_machines(
    store: CatalogStore,
    venue_id: int,
    *,
    client: PinballMapClient | None = None,
) -> SyncSummary:
    """
    Reset every machine's ``active`` flag and re-assert it for the machines
    Pinball Map lists at ``venue_id``.

    Never raises for feed or database failures; inspect the returned
    ``SyncSummary`` instead.
    """
    summary = SyncSummary(venue_id=venue_id)
    client = client or PinballMapClient()
    logger.debug("Assigning active machines using Pinball Map", extra={"location_id": venue_id})

    try:
        opdb_ids = client.fetch_machine_opdb_ids(venue_id)
    except InventoryFeedError as exc:
        return _abort(summary, exc, "Unable to get machine listing from Pinball Map")
    summary.machines_listed = len(opdb_ids)

    try:
        with store.transaction() as session:
            summary.state = SyncState.RESETTING
            session.execute(
                update(Machine).values(active=False),
                execution_options={"synchronize_session": False},
            )

            summary.state = SyncState.REASSERTING
            for opdb_id in opdb_ids:
                result = session.execute(
                    update(Machine).where(Machine.opdb_id == opdb_id).values(active=True),
                    execution_options={"synchronize_session": False},
                )
                if result.rowcount:
                    summary.machines_activated += 1
                else:
                    summary.unknown_opdb_ids.append(opdb_id)
                    logger.debug("Pinball Map machine not in catalog", extra={"opdb_id": opdb_id})
    except (SQLAlchemyError, StoreClosedError) as exc:
        summary.machines_activated = 0
        return _abort(summary, exc, "Unable to commit transaction for assigning active machines")

    summary.state = SyncState.COMMITTED
    record_sync_outcome("committed", active_machines=summary.machines_activated)
    logger.info(
        "Finished assigning active machines using Pinball Map",
        extra={
            "location_id": venue_id,
            "machines_listed": summary.machines_listed,
            "machines_activated": summary.machines_activated,
            "unknown_machines": len(summary.unknown_opdb_ids),
        },
    )
    return summary


def build_pinball_map_client(config: Mapping[str, Any]) -> PinballMapClient:
    """Client configured from ``PINBALL_MAP_API_BASE`` and ``PINBALL_MAP_TIMEOUT``."""
    return PinballMapClient(
        config.get("PINBALL_MAP_API_BASE") or DEFAULT_PINBALL_MAP_API_BASE,
        timeout=config.get("PINBALL_MAP_TIMEOUT"),
    )
