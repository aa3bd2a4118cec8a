"""Change-request classification: which edits need approver sign-off.

Anything that moves the booking in time or space, changes its stated purpose,
or grows its footprint (more participants, more visitors) goes to an
approver. Pure reductions are self-service.
"""
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional

import pytz
from pydantic import TypeAdapter

from reservation_portal.config import settings
from reservation_portal.schemas.reservation import Change, ChangeField, ExternalVisitor, as_utc

ALWAYS_REVIEWED = frozenset({
    ChangeField.start_time,
    ChangeField.end_time,
    ChangeField.purpose,
    ChangeField.room_id,
})

# Diff order when comparing a reservation against proposed values
_FIELD_ATTRS = [
    (ChangeField.start_time, "start_time"),
    (ChangeField.end_time, "end_time"),
    (ChangeField.room_id, "room_id"),
    (ChangeField.purpose, "purpose"),
    (ChangeField.participants, "participants"),
    (ChangeField.external_visitors, "external_visitors"),
]

FIELD_LABELS = {
    ChangeField.start_time: "Start time",
    ChangeField.end_time: "End time",
    ChangeField.room_id: "Room",
    ChangeField.purpose: "Purpose",
    ChangeField.participants: "Participants",
    ChangeField.external_visitors: "External visitors",
}


def _visitor_dict(visitor: Any) -> dict:
    if isinstance(visitor, ExternalVisitor):
        return visitor.model_dump()
    return {"company": visitor.get("company"), "name": visitor.get("name"), "email": visitor.get("email")}


def normalize_visitors(visitors: Optional[Iterable[Any]]) -> list[dict]:
    return [_visitor_dict(v) for v in visitors or []]


def is_prefix_reduction(old_visitors, new_visitors) -> bool:
    """True if ``new`` is ``old`` with entries dropped from the tail only."""
    old = normalize_visitors(old_visitors)
    new = normalize_visitors(new_visitors)
    if len(new) > len(old):
        return False
    return all(nv == old[i] for i, nv in enumerate(new))


def _needs_review(change: Change) -> bool:
    if change.field in ALWAYS_REVIEWED:
        return True

    if change.field == ChangeField.participants:
        return int(change.new_value) > int(change.old_value)

    if change.field == ChangeField.external_visitors:
        old = normalize_visitors(change.old_value)
        new = normalize_visitors(change.new_value)
        if len(new) > len(old):
            return True
        if new != old:
            return not is_prefix_reduction(old, new)

    return False


def requires_approval(changes: Optional[Iterable[Change]]) -> bool:
    """Decide whether a set of field changes must wait for an approver."""
    return any(_needs_review(change) for change in changes or [])


def compute_changes(original, proposed: Mapping[str, Any]) -> list[Change]:
    """Diff ``proposed`` values against a reservation.

    Only keys present in ``proposed`` (and not None) are compared; entries
    whose new value equals the old one are left out.
    """
    changes: list[Change] = []
    for field, attr in _FIELD_ATTRS:
        new_value = proposed.get(attr)
        if new_value is None:
            continue
        old_value = getattr(original, attr)
        if field == ChangeField.external_visitors:
            old_value = normalize_visitors(old_value)
            new_value = normalize_visitors(new_value)
        if new_value != old_value:
            changes.append(Change(field=field, old_value=old_value, new_value=new_value))
    return changes


_TIMESTAMP = TypeAdapter(datetime)


def parse_timestamp(value: Any) -> datetime:
    """Accept a datetime or its ISO form (as stored in change lists)."""
    return as_utc(_TIMESTAMP.validate_python(value))


def _format_local(value: Any) -> str:
    value = parse_timestamp(value)
    tz = pytz.timezone(settings.PORTAL_TIMEZONE)
    return value.astimezone(tz).strftime("%m/%d %H:%M")


def describe_change(change: Change, rooms: Optional[Mapping[str, str]] = None) -> str:
    """Render a change as a one-line summary, e.g. ``Purpose: A → B``."""
    label = FIELD_LABELS.get(change.field, change.field.value)

    if change.field in (ChangeField.start_time, ChangeField.end_time):
        return f"{label}: {_format_local(change.old_value)} → {_format_local(change.new_value)}"

    if change.field == ChangeField.room_id and rooms:
        old_name = rooms.get(change.old_value, change.old_value)
        new_name = rooms.get(change.new_value, change.new_value)
        return f"{label}: {old_name} → {new_name}"

    if change.field == ChangeField.external_visitors:
        return f"{label}: {len(change.old_value or [])} → {len(change.new_value or [])} people"

    return f"{label}: {change.old_value} → {change.new_value}"
