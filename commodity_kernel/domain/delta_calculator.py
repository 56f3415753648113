"""
Delta Calculator -- turn a product-list edit into ledger movements.

Responsibility:
    Given the stored and the incoming product breakdown of a validated
    transfer, produce the two disjoint lists of unsigned movements
    (``to_add`` / ``to_subtract``) that re-base the ledger onto the new
    composition without a full subtract-then-add round trip.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Policies:
    How weight and bag deltas of a quality present on both sides are signed
    is delegated to a DeltaPolicy:

    coupled (default)
        If either delta is positive, the absolute values of BOTH go to
        ``to_add``; otherwise if either is negative, both go to
        ``to_subtract``.  A quality whose weight rises while its bag count
        falls is therefore recorded as an addition of both magnitudes.
        Kept for compatibility with the ledgers already in production.

    independent
        Weight and bags are signed separately.  The same quality can then
        appear in both lists, one entry per measure.

Ordering:
    ``to_add`` follows the order of the new list.  ``to_subtract`` holds
    modified qualities in new-list order, then removed qualities in
    old-list order.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Protocol

from commodity_kernel.domain.ledger_keys import LedgerDelta
from commodity_kernel.domain.transfers import ProductLine

_ZERO = Decimal("0")


@dataclass(frozen=True)
class QualityDelta:
    """Unsigned movement for one quality."""

    quality: str
    delta: LedgerDelta

    @classmethod
    def of(cls, quality: str, weight: Decimal, bags: int) -> QualityDelta:
        return cls(quality=quality, delta=LedgerDelta(weight=weight, bags=bags))


@dataclass(frozen=True)
class ProductDifferences:
    to_add: tuple[QualityDelta, ...] = ()
    to_subtract: tuple[QualityDelta, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.to_add and not self.to_subtract


class DeltaPolicy(Protocol):
    """Signs the change of a quality present in both product lists."""

    name: str

    def split(
        self, old: ProductLine, new: ProductLine
    ) -> tuple[QualityDelta | None, QualityDelta | None]:
        """Return (addition, subtraction); either may be None."""
        ...


class CoupledDeltaPolicy:
    """One directional decision for both measures."""

    name = "coupled"

    def split(self, old, new):
        d_weight = new.weight - old.weight
        d_bags = new.number_of_bags - old.number_of_bags
        movement = QualityDelta.of(new.quality, abs(d_weight), abs(d_bags))
        if d_weight > 0 or d_bags > 0:
            return movement, None
        if d_weight < 0 or d_bags < 0:
            return None, movement
        return None, None


class IndependentDeltaPolicy:
    """Separate signs for weight and bags."""

    name = "independent"

    def split(self, old, new):
        d_weight = new.weight - old.weight
        d_bags = new.number_of_bags - old.number_of_bags
        addition = subtraction = None
        if d_weight > 0 or d_bags > 0:
            addition = QualityDelta.of(
                new.quality, max(d_weight, _ZERO), max(d_bags, 0)
            )
        if d_weight < 0 or d_bags < 0:
            subtraction = QualityDelta.of(
                new.quality, max(-d_weight, _ZERO), max(-d_bags, 0)
            )
        return addition, subtraction


COUPLED = CoupledDeltaPolicy()
INDEPENDENT = IndependentDeltaPolicy()

_POLICIES: dict[str, DeltaPolicy] = {
    COUPLED.name: COUPLED,
    INDEPENDENT.name: INDEPENDENT,
}


def get_delta_policy(name: str) -> DeltaPolicy:
    """Look up a policy by its configured name."""
    try:
        return _POLICIES[name]
    except KeyError:
        raise ValueError(
            f"Unknown delta policy '{name}', expected one of {sorted(_POLICIES)}"
        ) from None


def calculate_product_differences(
    old: Sequence[ProductLine],
    new: Sequence[ProductLine],
    policy: DeltaPolicy = COUPLED,
) -> ProductDifferences:
    """
    Compute the movements that turn ``old`` into ``new``.

    Preconditions: qualities are unique within each list.
    Postconditions: every emitted magnitude is non-negative; unchanged
        qualities emit nothing.
    """
    old_by_quality = {line.quality: line for line in old}
    new_qualities = {line.quality for line in new}

    to_add: list[QualityDelta] = []
    to_subtract: list[QualityDelta] = []

    for line in new:
        previous = old_by_quality.get(line.quality)
        if previous is None:
            to_add.append(QualityDelta(line.quality, line.as_delta()))
            continue
        addition, subtraction = policy.split(previous, line)
        if addition is not None:
            to_add.append(addition)
        if subtraction is not None:
            to_subtract.append(subtraction)

    for line in old:
        if line.quality not in new_qualities:
            to_subtract.append(QualityDelta(line.quality, line.as_delta()))

    return ProductDifferences(to_add=tuple(to_add), to_subtract=tuple(to_subtract))


def describe_product_changes(
    old: Sequence[ProductLine], new: Sequence[ProductLine]
) -> list[dict[str, Any]]:
    """Audit view of a product edit: one entry per added/removed/modified quality."""
    old_by_quality = {line.quality: line for line in old}
    new_qualities = {line.quality for line in new}
    changes: list[dict[str, Any]] = []

    for line in new:
        previous = old_by_quality.get(line.quality)
        if previous is None:
            changes.append(
                {"quality": line.quality, "type": "added", "old": None, "new": line.to_dict()}
            )
        elif previous != line:
            changes.append(
                {
                    "quality": line.quality,
                    "type": "modified",
                    "old": previous.to_dict(),
                    "new": line.to_dict(),
                }
            )

    for line in old:
        if line.quality not in new_qualities:
            changes.append(
                {"quality": line.quality, "type": "removed", "old": line.to_dict(), "new": None}
            )
    return changes
