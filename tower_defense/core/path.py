from __future__ import annotations

from typing import NamedTuple


class Waypoint(NamedTuple):
    x: float
    y: float


# Shared with the browser client, which draws the same polyline. Never sent over the wire.
ENEMY_PATH: tuple[Waypoint, ...] = (
    Waypoint(0, 300),
    Waypoint(200, 300),
    Waypoint(200, 100),
    Waypoint(400, 100),
    Waypoint(400, 400),
    Waypoint(600, 400),
    Waypoint(600, 200),
    Waypoint(800, 200),
)

# An enemy closer than this to its target waypoint moves on to the next one.
WAYPOINT_RADIUS = 5.0
