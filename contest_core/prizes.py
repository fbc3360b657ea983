"""
Prize distribution validation and payout allocation

Validation runs at contest-authoring time and reports every problem at
once. Allocation pairs a final ranking with the configured places; actual
settlement (wallets, ledgers) belongs to the payment collaborator.
"""

import logging
import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, List, Mapping, Optional, Sequence, Union

from .errors import ValidationError
from .ranking import ContestRanking
from .validation import DEFAULT_CURRENCY, DEFAULT_PRIZE_PERCENTAGES, Currency, PrizePlace

logger = logging.getLogger(__name__)

PrizeEntry = Union[PrizePlace, Mapping[str, Any]]


@dataclass(frozen=True)
class PrizeAward:
    place: int
    submission_id: str
    user_id: str
    amount: float
    currency: Currency


def _read_entry(entry: PrizeEntry) -> tuple[Any, Any]:
    if isinstance(entry, PrizePlace):
        return entry.place, entry.value
    if isinstance(entry, Mapping):
        return entry.get("place"), entry.get("value")
    return None, None


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def validate_prize_distribution(
    distribution: Sequence[PrizeEntry],
    pool_total: float,
) -> List[ValidationError]:
    """
    Validate a prize breakdown against the prize pool.

    Rules (all reported together):
    - distribution is non-empty
    - places are exactly 1..N: no duplicates, no gaps
    - every value >= 0
    - sum(values) <= pool_total (an unallocated remainder is allowed)

    Returns:
        List of ValidationError; empty when the distribution is valid
    """
    errors: List[ValidationError] = []
    if not distribution:
        return [ValidationError(kind="empty_distribution", message="Prize distribution cannot be empty")]

    pool = _as_number(pool_total)
    if pool is None or pool < 0:
        errors.append(
            ValidationError(kind="invalid_pool", message="Prize pool must be a non-negative number")
        )

    places: List[int] = []
    total = 0.0
    for idx, entry in enumerate(distribution):
        raw_place, raw_value = _read_entry(entry)
        if isinstance(raw_place, bool) or not isinstance(raw_place, int) or raw_place < 1:
            errors.append(
                ValidationError(
                    kind="invalid_place",
                    message=f"Prize {idx + 1}: place must be a positive integer",
                    field=f"prizeDistribution.{idx}.place",
                )
            )
        else:
            places.append(raw_place)

        value = _as_number(raw_value)
        if value is None:
            errors.append(
                ValidationError(
                    kind="invalid_value",
                    message=f"Prize {idx + 1}: value must be a number",
                    field=f"prizeDistribution.{idx}.value",
                )
            )
        elif value < 0:
            errors.append(
                ValidationError(
                    kind="negative_value",
                    message=f"Prize {idx + 1}: value cannot be negative",
                    field=f"prizeDistribution.{idx}.value",
                )
            )
        else:
            total += value

    duplicates = sorted({p for p in places if places.count(p) > 1})
    if duplicates:
        errors.append(
            ValidationError(
                kind="duplicate_place",
                message=f"Duplicate prize places: {', '.join(str(p) for p in duplicates)}",
            )
        )
    expected = set(range(1, len(distribution) + 1))
    missing = sorted(expected - set(places))
    if places and missing:
        errors.append(
            ValidationError(
                kind="non_contiguous_places",
                message=f"Prize places must run from 1 to {len(distribution)} without gaps "
                f"(missing {', '.join(str(p) for p in missing)})",
            )
        )

    if pool is not None and pool >= 0 and total > pool:
        errors.append(
            ValidationError(
                kind="exceeds_pool",
                message=f"Prize total {total:g} exceeds prize pool {pool:g}",
            )
        )

    if errors:
        logger.debug(f"Prize distribution rejected: {[e.kind for e in errors]}")
    return errors


def default_prize_distribution(
    pool_total: int,
    percentages: Sequence[float] = DEFAULT_PRIZE_PERCENTAGES,
) -> List[PrizePlace]:
    """Split a pool over the default places (40/25/15/10/10 %).

    Amounts are floored to whole units; the rounding remainder goes to
    first place so the whole pool is distributed.
    """
    pool = max(0, int(pool_total))
    amounts = [int(Decimal(pool) * Decimal(str(pct)) // 1) for pct in percentages]
    if amounts:
        remainder = pool - sum(amounts)
        if remainder > 0:
            amounts[0] += remainder
    return [PrizePlace(place=idx + 1, value=amount) for idx, amount in enumerate(amounts)]


def allocate_prizes(
    ranking: ContestRanking,
    distribution: Sequence[PrizePlace],
    currency: Currency = DEFAULT_CURRENCY,
) -> List[PrizeAward]:
    """Pair ranked submissions with funded places.

    Places without a submission and zero-value places produce no award.
    """
    by_place = {prize.place: prize.value for prize in distribution}
    awards: List[PrizeAward] = []
    for row in ranking.rows:
        value = by_place.get(row.rank)
        if value is None or value <= 0:
            continue
        awards.append(
            PrizeAward(
                place=row.rank,
                submission_id=row.submission_id,
                user_id=row.user_id,
                amount=value,
                currency=currency,
            )
        )
    if not ranking.is_final:
        logger.warning("Allocating prizes from a ranking that is not final")
    return awards


__all__ = [
    "Currency",
    "PrizeAward",
    "allocate_prizes",
    "default_prize_distribution",
    "validate_prize_distribution",
]
