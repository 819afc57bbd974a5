"""
Persistence boundary: a key-value store keyed by collection name.

Stores only move rows (see core.rows); load_state/save_state convert them
to and from model objects. Rows that cannot be converted are skipped and
reported, the rest of the collection is still loaded.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Protocol

from config import COLLECTIONS
from core.errors import DataError, RecordError
from core.models import Alert, Booking, Client, Configuration
from core.rows import FROM_ROW, TO_ROW, Row, config_to_rows, rows_to_config

logger = logging.getLogger(__name__)


class Store(Protocol):
    def load(self, name: str) -> Optional[List[Row]]:
        """Rows of a collection, or None when the collection was never saved."""

    def save(self, name: str, rows: List[Row]) -> None:
        """Replaces the whole collection."""


@dataclass
class AgencyState:
    clients: List[Client] = field(default_factory=list)
    bookings: List[Booking] = field(default_factory=list)
    alerts: List[Alert] = field(default_factory=list)
    config: Configuration = field(default_factory=Configuration)
    errors: List[RecordError] = field(default_factory=list)


def _load_collection(store: Store, name: str, errors: List[RecordError]) -> list:
    rows = store.load(COLLECTIONS[name]) or []
    convert = FROM_ROW[name]
    kind = name.rstrip("s")
    items = []
    for i, row in enumerate(rows):
        try:
            items.append(convert(row))
        except DataError as e:
            err = RecordError(kind, str(row.get("id") or f"row {i + 2}"), "row", row, str(e))
            logger.warning("Skipping %s", err)
            errors.append(err)
    return items


def load_state(store: Store) -> AgencyState:
    errors: List[RecordError] = []
    state = AgencyState(
        clients=_load_collection(store, "clients", errors),
        bookings=_load_collection(store, "bookings", errors),
        alerts=_load_collection(store, "alerts", errors),
        errors=errors,
    )

    config_rows = store.load(COLLECTIONS["config"])
    if config_rows:
        try:
            state.config = rows_to_config(config_rows)
        except DataError as e:
            logger.warning("Configuration unreadable, using defaults: %s", e)
            errors.append(RecordError("config", "config", "value", None, str(e)))

    logger.info(
        "Loaded %d clients, %d bookings, %d alerts",
        len(state.clients), len(state.bookings), len(state.alerts),
    )
    return state


def save_collection(store: Store, name: str, items: list) -> None:
    convert = TO_ROW[name]
    store.save(COLLECTIONS[name], [convert(item) for item in items])


def save_config(store: Store, config: Configuration) -> None:
    store.save(COLLECTIONS["config"], config_to_rows(config))


def save_state(store: Store, state: AgencyState) -> None:
    save_collection(store, "clients", state.clients)
    save_collection(store, "bookings", state.bookings)
    save_collection(store, "alerts", state.alerts)
    save_config(store, state.config)
