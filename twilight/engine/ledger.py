"""
twilight.engine.ledger — Staged Balance Plans
==============================================

Every operation that moves more than one balance (trade settlement,
streak day-transition with milestone payout, quest claims, respect
transfers) stages its legs in a :class:`LedgerPlan` first.  Every
balance the plan debits must cover those debits on its own, before any
credit in the same plan is counted.  The plan is then applied in a
single session by :func:`twilight.services.ledger_service.commit_plan`.
Either every leg lands or none do.

Pure calculation — no database I/O.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from twilight.constants import TRADEABLE_CURRENCIES
from twilight.errors import InsufficientBalance

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LedgerLeg:
    user_id: int
    currency: str
    amount: int  # signed


@dataclass(frozen=True, slots=True)
class LedgerRecord:
    """A ``transactions`` row to append when the plan commits."""

    user_id: int
    transaction_type: str
    currency: str
    amount: int
    description: str | None = None


class LedgerPlan:
    """Ordered set of balance legs plus the audit rows that describe them.

    ``credit``/``debit`` record a matching transaction row by default.
    Pass ``transaction_type=None`` to stage a leg whose audit row is
    written separately with :meth:`record` (trades log one row per side).
    """

    def __init__(self) -> None:
        self.legs: list[LedgerLeg] = []
        self.records: list[LedgerRecord] = []

    def __len__(self) -> int:
        return len(self.legs)

    # -------------------------------------------------------------------
    # Staging
    # -------------------------------------------------------------------
    def credit(
        self,
        user_id: int,
        currency: str,
        amount: int,
        transaction_type: str | None = None,
        description: str | None = None,
    ) -> LedgerPlan:
        return self._stage(user_id, currency, amount, transaction_type, description)

    def debit(
        self,
        user_id: int,
        currency: str,
        amount: int,
        transaction_type: str | None = None,
        description: str | None = None,
    ) -> LedgerPlan:
        return self._stage(user_id, currency, -amount, transaction_type, description)

    def record(
        self,
        user_id: int,
        transaction_type: str,
        currency: str,
        amount: int,
        description: str | None = None,
    ) -> LedgerPlan:
        self.records.append(LedgerRecord(user_id, transaction_type, currency, amount, description))
        return self

    def _stage(
        self,
        user_id: int,
        currency: str,
        signed_amount: int,
        transaction_type: str | None,
        description: str | None,
    ) -> LedgerPlan:
        if currency not in TRADEABLE_CURRENCIES:
            raise ValueError(f"Unknown currency: {currency!r}")
        if signed_amount == 0:
            return self
        self.legs.append(LedgerLeg(user_id, currency, signed_amount))
        if transaction_type is not None:
            self.record(user_id, transaction_type, currency, signed_amount, description)
        return self

    # -------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------
    def deltas(self) -> dict[tuple[int, str], int]:
        """Net change per ``(user_id, currency)``, in first-staged order."""
        net: dict[tuple[int, str], int] = {}
        for leg in self.legs:
            key = (leg.user_id, leg.currency)
            net[key] = net.get(key, 0) + leg.amount
        return net

    def user_ids(self) -> list[int]:
        seen: dict[int, None] = {}
        for leg in self.legs:
            seen.setdefault(leg.user_id, None)
        for rec in self.records:
            seen.setdefault(rec.user_id, None)
        return list(seen)

    def debits(self) -> dict[tuple[int, str], int]:
        """Total debited per ``(user_id, currency)``, ignoring credits."""
        owed: dict[tuple[int, str], int] = {}
        for leg in self.legs:
            if leg.amount < 0:
                key = (leg.user_id, leg.currency)
                owed[key] = owed.get(key, 0) - leg.amount
        return owed

    def validate(self, balances: Mapping[tuple[int, str], int]) -> None:
        """Raise :class:`InsufficientBalance` for the first balance that
        cannot cover its debits.

        Credits staged in the same plan never offset a debit: a same-currency
        trade still requires each side to hold what it gives up.
        """
        for (user_id, currency), owed in self.debits().items():
            if balances.get((user_id, currency), 0) < owed:
                raise InsufficientBalance(user_id, currency)
