"""Balance and payout ledger.

A user's available balance is derived, never stored:

    available = sum(conversion commission over the user's links)
              - sum(payout amount in COUNTED_PAYOUT_STATUSES)

Every non-rejected payout (pending, approved or paid) counts against the
balance, so a pending request reserves its amount immediately and a
rejection releases it. This is the only place that rule is stated.

Payout requests check the balance and insert the row as one unit that is
serialized per user, so concurrent requests cannot spend the same balance
twice.
"""
from __future__ import annotations

import asyncio
import logging
import weakref
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from affiliate.models import AffiliateLink, Conversion, Payout, User
from affiliate.models.base import utcnow
from affiliate.models.payout import (
    PAYOUT_APPROVED,
    PAYOUT_PAID,
    PAYOUT_PENDING,
    PAYOUT_REJECTED,
    PAYOUT_STATUSES,
)
from affiliate.money import to_money
from core.config import get_settings
from core.errors import ConflictError, InsufficientBalanceError, InvalidAmountError, NotFoundError

logger = logging.getLogger(__name__)

COUNTED_PAYOUT_STATUSES = (PAYOUT_PENDING, PAYOUT_APPROVED, PAYOUT_PAID)

# Forward-only lifecycle; paid and rejected are terminal
PAYOUT_TRANSITIONS: dict[str, frozenset[str]] = {
    PAYOUT_PENDING: frozenset({PAYOUT_APPROVED, PAYOUT_REJECTED}),
    PAYOUT_APPROVED: frozenset({PAYOUT_PAID}),
    PAYOUT_PAID: frozenset(),
    PAYOUT_REJECTED: frozenset(),
}

# First key of the two-key advisory lock taken around payout requests
PAYOUT_LOCK_NAMESPACE = 0x5041


@dataclass(frozen=True)
class Balance:
    total_earned: Decimal
    total_committed: Decimal

    @property
    def available(self) -> Decimal:
        return self.total_earned - self.total_committed


class UserLocks:
    """One asyncio.Lock per user id, kept separately for each event loop.

    Locks are held weakly: once no request holds or waits on a user's lock
    it is dropped.
    """

    def __init__(self) -> None:
        self._by_loop: weakref.WeakKeyDictionary[
            asyncio.AbstractEventLoop, weakref.WeakValueDictionary[int, asyncio.Lock]
        ] = weakref.WeakKeyDictionary()

    def _current(self) -> weakref.WeakValueDictionary[int, asyncio.Lock]:
        loop = asyncio.get_running_loop()
        locks = self._by_loop.get(loop)
        if locks is None:
            locks = weakref.WeakValueDictionary()
            self._by_loop[loop] = locks
        return locks

    def lock_for(self, user_id: int) -> asyncio.Lock:
        locks = self._current()
        lock = locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            locks[user_id] = lock
        return lock

    def __len__(self) -> int:
        return len(self._current())


payout_locks = UserLocks()


async def total_earned(session: AsyncSession, user_id: int) -> Decimal:
    value = await session.scalar(
        select(func.coalesce(func.sum(Conversion.commission), 0))
        .join(AffiliateLink, AffiliateLink.id == Conversion.link_id)
        .where(AffiliateLink.user_id == user_id)
    )
    return to_money(value)


async def total_committed(session: AsyncSession, user_id: int) -> Decimal:
    value = await session.scalar(
        select(func.coalesce(func.sum(Payout.amount), 0)).where(
            Payout.user_id == user_id,
            Payout.status.in_(COUNTED_PAYOUT_STATUSES),
        )
    )
    return to_money(value)


async def get_balance(session: AsyncSession, user_id: int) -> Balance:
    return Balance(
        total_earned=await total_earned(session, user_id),
        total_committed=await total_committed(session, user_id),
    )


async def available_balance(session: AsyncSession, user_id: int) -> Decimal:
    return (await get_balance(session, user_id)).available


async def _lock_user_ledger(session: AsyncSession, user_id: int) -> None:
    """Take a transaction-scoped lock on the user's ledger where the DB has one.

    Covers several API processes sharing one PostgreSQL database; released on
    commit or rollback.
    """
    if session.get_bind().dialect.name == "postgresql":
        await session.execute(
            text("SELECT pg_advisory_xact_lock(:namespace, :user_id)"),
            {"namespace": PAYOUT_LOCK_NAMESPACE, "user_id": int(user_id)},
        )


async def request_payout(
    session: AsyncSession,
    user_id: int,
    amount,
    payment_method: str | None = None,
    payment_details: str | None = None,
) -> Payout:
    """Create a pending payout if the user's balance covers it.

    Raises:
        InvalidAmountError: amount is not positive or below the minimum payout.
        InsufficientBalanceError: amount exceeds the available balance.
    """
    amount = to_money(amount)
    if amount <= 0:
        raise InvalidAmountError("Payout amount must be positive.")
    minimum = to_money(get_settings().min_payout_amount)
    if amount < minimum:
        raise InvalidAmountError(
            f"Minimum payout amount is {minimum}.", details={"minimum": str(minimum)}
        )

    async with payout_locks.lock_for(user_id):
        try:
            await _lock_user_ledger(session, user_id)
            # Re-derived inside the lock so concurrent requests see each other's rows
            available = await available_balance(session, user_id)
            if amount > available:
                raise InsufficientBalanceError(
                    details={"available": str(available), "requested": str(amount)}
                )
            payout = Payout(
                user_id=user_id,
                amount=amount,
                status=PAYOUT_PENDING,
                payment_method=payment_method,
                payment_details=payment_details,
            )
            session.add(payout)
            await session.commit()
        except Exception:
            await session.rollback()
            raise

    await session.refresh(payout)
    logger.info(
        "Payout requested",
        extra={
            "user_id": user_id,
            "payout_id": payout.id,
            "amount": amount,
            "available": available - amount,
        },
    )
    return payout


async def get_payout(session: AsyncSession, payout_id: int) -> Payout:
    payout = await session.get(Payout, payout_id)
    if payout is None:
        raise NotFoundError("Payout not found.")
    return payout


async def set_payout_status(session: AsyncSession, payout_id: int, new_status: str) -> Payout:
    """Move a payout along its lifecycle (admin only at the API).

    Raises:
        NotFoundError: no such payout.
        ConflictError: unknown status or a transition the lifecycle forbids.
    """
    if new_status not in PAYOUT_STATUSES:
        raise ConflictError(f"Unknown payout status: {new_status!r}.")

    payout = await session.get(Payout, payout_id, with_for_update=True)
    if payout is None:
        raise NotFoundError("Payout not found.")

    previous = payout.status
    if new_status not in PAYOUT_TRANSITIONS[previous]:
        await session.rollback()
        raise ConflictError(
            f"Cannot move payout from {previous!r} to {new_status!r}.",
            details={"status": previous, "requested": new_status},
        )

    payout.status = new_status
    payout.processed_at = utcnow()
    await session.commit()
    await session.refresh(payout)

    logger.info(
        "Payout status changed",
        extra={
            "payout_id": payout.id,
            "user_id": payout.user_id,
            "previous_status": previous,
            "status": new_status,
            "amount": payout.amount,
        },
    )
    return payout


async def list_user_payouts(session: AsyncSession, user_id: int) -> list[Payout]:
    result = await session.execute(
        select(Payout)
        .where(Payout.user_id == user_id)
        .order_by(Payout.requested_at.desc(), Payout.id.desc())
    )
    return list(result.scalars().all())


async def list_payouts(
    session: AsyncSession, status: str | None = None, user_id: int | None = None
) -> list[dict[str, Any]]:
    """All payout requests with the requesting user's name and email."""
    stmt = (
        select(Payout, User.name, User.email)
        .join(User, User.id == Payout.user_id)
        .order_by(Payout.requested_at.desc(), Payout.id.desc())
    )
    if status:
        stmt = stmt.where(Payout.status == status)
    if user_id:
        stmt = stmt.where(Payout.user_id == user_id)

    rows = (await session.execute(stmt)).all()
    return [
        {
            "id": payout.id,
            "user_id": payout.user_id,
            "amount": payout.amount,
            "status": payout.status,
            "payment_method": payout.payment_method,
            "payment_details": payout.payment_details,
            "requested_at": payout.requested_at,
            "processed_at": payout.processed_at,
            "name": name,
            "email": email,
        }
        for payout, name, email in rows
    ]
