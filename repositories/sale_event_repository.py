"""
Sale event repository (persistence).

Stores the audit trail of committed sale operations. It does not enforce
business rules and the sale never reloads ledger state from it; it only
inserts and lists events.
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional
from uuid import UUID

from domain.events import SaleEvent, SaleEventKind
from domain.time import require_utc_timestamp

# Supabase table name for sale events.
# Keep this aligned with your database schema.
_SALE_EVENTS_TABLE: str = "sale_events"


def _to_iso_utc(dt: datetime, *, name: str) -> str:
    """Serialize a UTC datetime to ISO-8601 (timezone-aware, offset 0)."""

    require_utc_timestamp(name, dt)
    return dt.astimezone(timezone.utc).isoformat()


def _parse_utc_datetime(value: Any) -> datetime:
    """
    Parse a Supabase timestamp into a timezone-aware UTC datetime.

    Supabase commonly returns ISO-8601 strings, sometimes with a trailing 'Z'.
    """

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise TypeError(f"Unsupported timestamp type: {type(value)!r}")

    if dt.tzinfo is None or dt.utcoffset() is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _event_to_row(sale_id: str, event: SaleEvent) -> dict[str, Any]:
    # Amounts exceed the range of JSON-safe integers; store them as text.
    return {
        "event_id": str(event.event_id),
        "sale_id": sale_id,
        "kind": event.kind.value,
        "occurred_at_utc": _to_iso_utc(event.occurred_at, name="occurred_at"),
        "wallet": event.wallet,
        "amount": str(event.amount) if event.amount is not None else None,
        "details": {k: str(v) if isinstance(v, int) and not isinstance(v, bool) else v
                    for k, v in event.details.items()},
    }


def _row_to_event(row: Mapping[str, Any]) -> SaleEvent:
    """Convert a Supabase row into a SaleEvent."""

    amount = row.get("amount")
    return SaleEvent(
        kind=SaleEventKind(str(row["kind"])),
        occurred_at=_parse_utc_datetime(row["occurred_at_utc"]),
        wallet=row.get("wallet"),
        amount=int(amount) if amount is not None else None,
        details=dict(row.get("details") or {}),
        event_id=UUID(str(row["event_id"])),
    )


class SupabaseSaleEventSink:
    """Writes sale events to the `sale_events` table."""

    def __init__(self, sale_id: str, client: Optional[Any] = None) -> None:
        self._sale_id = sale_id
        self._client = client

    def _supabase(self) -> Any:
        if self._client is None:
            from repositories.client import get_supabase

            self._client = get_supabase()
        return self._client

    def record(self, event: SaleEvent) -> None:
        payload = _event_to_row(self._sale_id, event)
        response = self._supabase().table(_SALE_EVENTS_TABLE).insert(payload).execute()
        error = getattr(response, "error", None)
        if error:
            raise RuntimeError(f"Failed to record sale event: {error}")

    def list_events(self, kind: Optional[SaleEventKind] = None, limit: int = 100) -> List[SaleEvent]:
        """
        Fetch this sale's events, oldest first.

        Args:
            kind: Only events of this kind (all kinds when None)
            limit: Maximum number of rows
        """
        query = (
            self._supabase()
            .table(_SALE_EVENTS_TABLE)
            .select("*")
            .eq("sale_id", self._sale_id)
        )
        if kind is not None:
            query = query.eq("kind", kind.value)
        response = query.order("occurred_at_utc").limit(limit).execute()

        error = getattr(response, "error", None)
        if error:
            raise RuntimeError(f"Failed to list sale events: {error}")

        rows = getattr(response, "data", None) or []
        return [_row_to_event(row) for row in rows]


class InMemorySaleEventSink:
    """Keeps sale events in a list."""

    def __init__(self) -> None:
        self._events: List[SaleEvent] = []
        self._lock = threading.Lock()

    def record(self, event: SaleEvent) -> None:
        with self._lock:
            self._events.append(event)

    def list_events(self, kind: Optional[SaleEventKind] = None, limit: int = 100) -> List[SaleEvent]:
        with self._lock:
            events = [e for e in self._events if kind is None or e.kind is kind]
        return events[:limit]


__all__ = [
    "InMemorySaleEventSink",
    "SupabaseSaleEventSink",
]
