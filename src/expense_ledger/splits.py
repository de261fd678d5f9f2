"""Split expense resolution.

A split expense is paid by the user and divided among several people,
one of whom is always the user ("Self"). Each non-Self share is tracked
separately for money-to-collect purposes.
"""

from collections.abc import Iterable, Sequence
from dataclasses import replace
from decimal import ROUND_DOWN, Decimal

from expense_ledger.exceptions import InvalidSplit
from expense_ledger.models import SELF, SPLIT_TOLERANCE, SplitShare, Transaction

PAISA = Decimal("0.01")


def normalize_person(name: str) -> str:
    """Trim a counterparty name and canonicalize any casing of "self"."""
    name = name.strip()
    if name.lower() == SELF.lower():
        return SELF
    return name


def resolve_splits(shares: Sequence[SplitShare], total: Decimal) -> tuple[SplitShare, ...]:
    """
    Validate split shares against a transaction total.

    Args:
        shares: Candidate shares, in display order
        total: Transaction amount the shares must add up to

    Returns:
        Shares with canonical person names; the Self share never carries
        payment-received flags

    Raises:
        InvalidSplit: If any split invariant is violated
    """
    if len(shares) < 2:
        raise InvalidSplit("A split needs at least two people")

    resolved: list[SplitShare] = []
    seen: set[str] = set()
    self_count = 0

    for share in shares:
        person = normalize_person(share.person)
        if not person:
            raise InvalidSplit("Every split share needs a person")

        key = person.lower()
        if key in seen:
            raise InvalidSplit(f"Duplicate person in split: {person}")
        seen.add(key)

        if share.amount < 0:
            raise InvalidSplit(f"Share for {person} cannot be negative")

        if person == SELF:
            self_count += 1
            resolved.append(SplitShare(person=SELF, amount=share.amount))
        else:
            resolved.append(
                replace(
                    share,
                    person=person,
                    payment_received_date=(
                        share.payment_received_date if share.payment_received else None
                    ),
                )
            )

    if self_count != 1:
        raise InvalidSplit('A split must include "Self" exactly once')

    share_total = sum((share.amount for share in resolved), Decimal(0))
    if abs(total - share_total) > SPLIT_TOLERANCE:
        raise InvalidSplit(
            f"Split amounts add up to {share_total}, expected {total}"
        )

    return tuple(resolved)


def autofill_last_share(other_amounts: Iterable[Decimal], total: Decimal) -> Decimal:
    """Suggest the last share as whatever is left of the total, floored at 0.

    This is an entry convenience; the result still has to pass
    ``resolve_splits``.
    """
    remainder = total - sum(other_amounts, Decimal(0))
    return max(remainder, Decimal(0))


def split_equally(total: Decimal, people: Sequence[str]) -> list[SplitShare]:
    """
    Divide a total evenly among people, to the paisa.

    Any rounding remainder is put on the Self share so the others owe
    round amounts. "Self" is added at the front if it is not listed.
    """
    names = [normalize_person(p) for p in people]
    if SELF not in names:
        names.insert(0, SELF)

    each = (total / len(names)).quantize(PAISA, rounding=ROUND_DOWN)
    remainder = total - each * len(names)

    return [
        SplitShare(person=name, amount=each + remainder if name == SELF else each)
        for name in names
    ]


def self_share(tx: Transaction) -> Decimal:
    """Return the user's own part of a split transaction."""
    for share in tx.split_details:
        if share.is_self:
            return share.amount
    return Decimal(0)


def expand_split(tx: Transaction) -> list[Transaction]:
    """
    Expand a split transaction into one pseudo-transaction per non-Self share.

    Each pseudo-transaction carries the share's amount and payment status
    and inherits the parent's id, title, date, payment mode and type.
    """
    return [
        replace(
            tx,
            amount=share.amount,
            for_whom=share.person,
            payment_received=share.payment_received,
            payment_received_date=share.payment_received_date,
            split_details=(),
        )
        for share in tx.split_details
        if not share.is_self
    ]
