from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class TowerType(StrEnum):
    basic = "basic"
    fast = "fast"
    strong = "strong"


@dataclass(frozen=True, slots=True)
class TowerStats:
    cost: int
    damage: int
    range: float
    # Minimum milliseconds between two shots.
    fire_rate: int


TOWER_STATS: dict[TowerType, TowerStats] = {
    TowerType.basic: TowerStats(cost=100, damage=15, range=100, fire_rate=800),
    TowerType.fast: TowerStats(cost=150, damage=10, range=100, fire_rate=300),
    TowerType.strong: TowerStats(cost=200, damage=30, range=120, fire_rate=1500),
}


def stats_for(tower_type: str) -> TowerStats | None:
    """Return the stats for `tower_type`, or None when the type is unknown."""

    try:
        return TOWER_STATS[TowerType(tower_type)]
    except ValueError:
        return None
