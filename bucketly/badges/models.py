"""Badge criteria types and progress records."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any


class CriteriaType(str, Enum):
    """Profile counters a badge can be earned against."""

    ITEMS_COMPLETED = "items_completed"
    LISTS_CREATED = "lists_created"
    LISTS_FOLLOWING = "lists_following"
    TOTAL_POINTS = "total_points"
    GLOBAL_RANK = "global_rank"

    @classmethod
    def parse(cls, value: Any) -> CriteriaType | None:
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass(frozen=True)
class BadgeProgress:
    """Derived progress of a profile towards one badge. Never persisted."""

    badge_id: str
    current: float
    target: float
    percentage: float
    is_earned: bool = False

    @property
    def is_complete(self) -> bool:
        return self.percentage >= 100

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
