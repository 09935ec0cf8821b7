"""Balance arithmetic shared by both ledger flavors.

All quantities are fixed two-decimal values. Inputs are quantized with
ROUND_HALF_UP before they are compared or stored, so the stored balance
and the sum of its movements can never drift apart.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, Protocol

from models.stock_movement import MovementKind
from services.exceptions import ValidationError

QUANTUM = Decimal("0.01")
ZERO = Decimal("0.00")


class MovementLike(Protocol):
    """Anything with a kind, positive amount and before/after snapshot."""

    kind: str
    amount: Decimal
    balance_before: Decimal
    balance_after: Decimal


def quantize(value, field: str = "amount") -> Decimal:
    """Convert ``value`` to a two-decimal Decimal.

    Raises:
        ValidationError: if the value is not a finite number.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", field=field)
    try:
        dec = value if isinstance(value, Decimal) else Decimal(str(value))
        if not dec.is_finite():
            raise InvalidOperation
        return dec.quantize(QUANTUM, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"{field} must be a number", field=field)


def require_positive(value, field: str = "amount") -> Decimal:
    """Quantize ``value`` and reject anything that is not > 0."""
    amount = quantize(value, field)
    if amount <= ZERO:
        raise ValidationError(f"{field} must be greater than 0", field=field, value=str(amount))
    return amount


def require_non_negative(value, field: str = "amount") -> Decimal:
    """Quantize ``value`` and reject anything below 0."""
    amount = quantize(value, field)
    if amount < ZERO:
        raise ValidationError(f"{field} must be 0 or greater", field=field, value=str(amount))
    return amount


def signed_amount(movement: MovementLike) -> Decimal:
    """The movement's effect on the balance, with sign.

    Adjustments store ``|delta|``; their direction is recovered from the
    snapshot pair.
    """
    kind = MovementKind(movement.kind)
    if kind is MovementKind.INGRESS:
        return movement.amount
    if kind is MovementKind.EGRESS:
        return -movement.amount
    if movement.balance_after < movement.balance_before:
        return -movement.amount
    return movement.amount


def is_below_threshold(current: Decimal, minimum: Decimal) -> bool:
    """True when a minimum is configured and the balance is at or below it."""
    return minimum > ZERO and current <= minimum


@dataclass
class ReplayResult:
    """Outcome of replaying a movement log against a stored balance."""

    opening_balance: Decimal
    replayed_balance: Decimal
    stored_balance: Decimal
    movement_count: int
    broken_links: list[int]

    @property
    def is_consistent(self) -> bool:
        return self.replayed_balance == self.stored_balance and not self.broken_links


def replay(
    opening_balance: Decimal,
    movements: Iterable[MovementLike],
    stored_balance: Decimal,
) -> ReplayResult:
    """Recompute a balance from ``opening_balance`` and an ordered log.

    Each record's ``balance_before`` must equal the running balance and
    its ``balance_after`` must equal the running balance plus its signed
    amount; the 1-based positions of records that break the chain are
    returned in ``broken_links``.
    """
    running = quantize(opening_balance)
    broken: list[int] = []
    count = 0
    for position, movement in enumerate(movements, start=1):
        count = position
        expected_after = running + signed_amount(movement)
        if movement.balance_before != running or movement.balance_after != expected_after:
            broken.append(position)
        running = expected_after
    return ReplayResult(
        opening_balance=quantize(opening_balance),
        replayed_balance=running,
        stored_balance=quantize(stored_balance),
        movement_count=count,
        broken_links=broken,
    )
