"""Typed view over a booking's status column and its lifecycle timestamps.

Each variant carries exactly the timestamps that are meaningful for that
status, so callers cannot read an approval time off a rejected booking.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Union


@dataclass(frozen=True)
class Pending:
    status = "pending"


@dataclass(frozen=True)
class Selected:
    selected_at: datetime
    status = "selected"


@dataclass(frozen=True)
class Approved:
    approved_at: datetime
    paid_at: datetime
    status = "approved"


@dataclass(frozen=True)
class Rejected:
    rejected_at: datetime
    status = "rejected"


@dataclass(frozen=True)
class Cancelled:
    cancelled_at: datetime
    cancelled_by: str
    status = "cancelled"


@dataclass(frozen=True)
class Unrecognized:
    """A status value this code does not know; never actionable."""

    status: str


BookingState = Union[Pending, Selected, Approved, Rejected, Cancelled, Unrecognized]


def state_of(booking) -> BookingState:
    status = booking.status
    if status == Pending.status:
        return Pending()
    if status == Selected.status:
        return Selected(selected_at=booking.selected_at)
    if status == Approved.status:
        return Approved(approved_at=booking.approved_at, paid_at=booking.paid_at)
    if status == Rejected.status:
        return Rejected(rejected_at=booking.rejected_at)
    if status == Cancelled.status:
        return Cancelled(cancelled_at=booking.cancelled_at, cancelled_by=booking.cancelled_by)
    return Unrecognized(status=status)
