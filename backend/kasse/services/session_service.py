# Overview: Session selection queries shared by the SAF-T export and the POS reports.

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Optional, Union

from sqlalchemy.orm import joinedload, selectinload

from ..extensions import db
from ..models import PosSession, Store
from kasse.time_utils import coerce_date


DateLike = Union[date, datetime, str]


def get_store(store_id: int) -> Optional[Store]:
    return db.session.get(Store, store_id)


def day_bounds(from_date: DateLike, to_date: DateLike) -> tuple[datetime, datetime]:
    """
    Half-open datetime window covering whole calendar days [from, to].

    Time-of-day on the inputs is ignored. Raises ValueError for unparsable strings.
    """
    start_day = coerce_date(from_date)
    end_day = coerce_date(to_date)
    start = datetime.combine(start_day, time.min)
    end = datetime.combine(end_day + timedelta(days=1), time.min)
    return start, end


def sessions_in_range(
    store_id: int,
    from_date: DateLike,
    to_date: DateLike,
    *,
    status: Optional[str] = None,
) -> list[PosSession]:
    """
    Sessions of a store opened on a day in [from_date, to_date], oldest first.

    Charges, device, user and events are eagerly loaded.
    """
    start, end = day_bounds(from_date, to_date)

    query = db.session.query(PosSession).options(
        selectinload(PosSession.charges),
        joinedload(PosSession.pos_device),
        joinedload(PosSession.user),
        selectinload(PosSession.events),
    ).filter(
        PosSession.store_id == store_id,
        PosSession.opened_at >= start,
        PosSession.opened_at < end,
    )

    if status:
        query = query.filter(PosSession.status == status)

    return query.order_by(PosSession.opened_at.asc(), PosSession.id.asc()).all()


def closed_sessions_in_range(store_id: int, from_date: DateLike, to_date: DateLike) -> list[PosSession]:
    """Sessions eligible for SAF-T export: closed, opened within the day range."""
    return sessions_in_range(store_id, from_date, to_date, status="closed")


def load_session_for_report(session_id: int) -> Optional[PosSession]:
    return db.session.query(PosSession).options(
        selectinload(PosSession.charges),
        joinedload(PosSession.pos_device),
        joinedload(PosSession.user),
        joinedload(PosSession.store),
        selectinload(PosSession.events),
        selectinload(PosSession.receipts),
        selectinload(PosSession.line_corrections),
    ).filter(PosSession.id == session_id).first()
