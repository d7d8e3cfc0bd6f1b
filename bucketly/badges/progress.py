"""Pure badge progress calculation."""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from bucketly.constants import UNRANKED

from .models import BadgeProgress, CriteriaType


def _number(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if not math.isfinite(value):
        return 0
    return value


def _criteria_target(criteria: Mapping[str, Any], default: float = 0) -> float:
    target = criteria.get("target")
    if target is None:
        target = criteria.get("threshold")
    if target is None:
        return default
    return _number(target)


def calculate_progress(
    badge_id: str,
    criteria: Mapping[str, Any] | None,
    profile: Mapping[str, Any],
    is_earned: bool = False,
) -> BadgeProgress:
    """Compute a profile's progress towards a badge.

    Missing or unrecognized criteria produce all-zero progress, as do
    criteria with a non-positive target. Rank criteria are a step function:
    the profile either holds a rank at or better than the target
    (current == target) or it does not (current == 0). A profile without a
    rank never satisfies a rank criterion. Rank criteria without a target
    default to first place.
    """
    criteria = criteria or {}
    criteria_type = CriteriaType.parse(criteria.get("type"))

    if criteria_type is None:
        return BadgeProgress(badge_id, 0, 0, 0, is_earned)

    if criteria_type is CriteriaType.GLOBAL_RANK:
        target = _criteria_target(criteria, default=1)
        rank = _number(profile.get("global_rank")) or UNRANKED
        current = target if rank <= target else 0
    else:
        target = _criteria_target(criteria)
        current = _number(profile.get(criteria_type.value))

    if target <= 0:
        return BadgeProgress(badge_id, 0, target, 0, is_earned)

    percentage = min(max(current / target * 100, 0), 100)

    return BadgeProgress(badge_id, current, target, percentage, is_earned)


def calculate_progress_map(
    badges: list[dict[str, Any]],
    profile: Mapping[str, Any],
    earned_badge_ids: set[str],
) -> dict[str, BadgeProgress]:
    """Compute progress for every badge, keyed by badge id."""
    return {
        badge["id"]: calculate_progress(
            badge["id"],
            badge.get("criteria"),
            profile,
            is_earned=badge["id"] in earned_badge_ids,
        )
        for badge in badges
    }
