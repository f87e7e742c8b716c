from __future__ import annotations

"""Integer proportional distribution with exact conservation."""

from typing import Sequence


def distribute_proportionally(amount: int, capacities: Sequence[int]) -> list[int]:
    """Split ``amount`` across ``capacities`` in proportion to each capacity.

    Every share is floored; the leftover units go, one pass at a time, to the
    earliest entries that still have room. The result always sums to
    ``amount`` and no share exceeds its capacity.
    """
    if amount < 0:
        raise ValueError("amount cannot be negative")
    if any(c < 0 for c in capacities):
        raise ValueError("capacities cannot be negative")
    total = sum(capacities)
    if amount > total:
        raise ValueError(f"cannot distribute {amount} over a total capacity of {total}")
    if amount == 0:
        return [0] * len(capacities)

    shares = [amount * c // total for c in capacities]
    remainder = amount - sum(shares)
    while remainder > 0:
        for i, cap in enumerate(capacities):
            if remainder == 0:
                break
            if shares[i] < cap:
                shares[i] += 1
                remainder -= 1
    return shares


__all__ = ["distribute_proportionally"]
