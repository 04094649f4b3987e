from __future__ import annotations

import asyncio
import itertools
import logging
import math
import time
from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass
from uuid import uuid4

from tower_defense.api.models import (
    EnemyState,
    GameState,
    PlayerState,
    SessionPhase,
    SessionSummary,
    TowerState,
)
from tower_defense.core.path import ENEMY_PATH, WAYPOINT_RADIUS, Waypoint
from tower_defense.core.towers import stats_for
from tower_defense.fsm import SessionFSM

logger = logging.getLogger(__name__)

STARTING_HEALTH = 100
STARTING_GOLD = 500
DEFAULT_SPAWN_STAGGER_MS = 1000

# Enemy speed is expressed in units per frame of this many milliseconds.
FRAME_MS = 16

ENEMY_DAMAGE = 5
ENEMY_REWARD = 25


def now_ms() -> float:
    return time.monotonic() * 1000


@dataclass(frozen=True, slots=True)
class PendingSpawn:
    due_at: float
    enemy: EnemyState


class Session:
    """Authoritative state of one game: players, towers, enemies and the economy.

    Contract:
      - every mutation of players/towers/enemies happens while holding `lock`
        (callers own the locking; the methods themselves never await).
      - `tick(now)` is deterministic: same prior state + same `now` => same result.
      - `gold` and `health` never go below zero.
    """

    def __init__(
        self,
        session_id: str,
        *,
        now: float,
        spawn_stagger_ms: float = DEFAULT_SPAWN_STAGGER_MS,
        path: Sequence[Waypoint] = ENEMY_PATH,
    ) -> None:
        self.id = session_id
        self.players: list[PlayerState] = []
        self.towers: list[TowerState] = []
        self.enemies: list[EnemyState] = []
        self.pending_spawns: deque[PendingSpawn] = deque()
        self.wave = 0
        self.health = STARTING_HEALTH
        self.gold = STARTING_GOLD
        self.phase = SessionPhase.lobby
        self.last_tick = now
        self.spawn_stagger_ms = spawn_stagger_ms
        self.path = tuple(path)
        self.lock = asyncio.Lock()
        # Towers and enemies share one id sequence per session.
        self._ids = itertools.count(1)

    def __repr__(self) -> str:
        return f"Session(id={self.id!r}, phase={self.phase.value}, players={len(self.players)}, wave={self.wave})"

    @property
    def started(self) -> bool:
        return self.phase == SessionPhase.active

    @property
    def is_empty(self) -> bool:
        return not self.players

    @property
    def all_ready(self) -> bool:
        return bool(self.players) and all(p.ready for p in self.players)

    @property
    def wave_in_progress(self) -> bool:
        return bool(self.enemies) or bool(self.pending_spawns)

    # ---- players ----

    def get_player(self, player_id: str) -> PlayerState | None:
        return next((p for p in self.players if p.id == player_id), None)

    def add_player(self, name: str) -> str:
        player = PlayerState(id=str(uuid4()), name=name)
        self.players.append(player)
        logger.info("session %s: player %s (%s) joined", self.id, player.id, name)
        return player.id

    def remove_player(self, player_id: str) -> bool:
        player = self.get_player(player_id)
        if player is None:
            return False
        self.players.remove(player)
        logger.info("session %s: player %s left, %d remaining", self.id, player_id, len(self.players))

        # Leaving never starts the game, even if everyone remaining is ready: the next "ready" does.
        if self.phase == SessionPhase.ready_check and not any(p.ready for p in self.players):
            fsm = SessionFSM(self)
            fsm.readiness_lost()
            fsm.sync_phase_to_model()
        return True

    def mark_ready(self, player_id: str, *, now: float) -> bool:
        """Mark a player ready.

        Returns True only when this call moved the session into the active phase.
        """

        player = self.get_player(player_id)
        if player is None:
            return False
        player.ready = True

        if self.started:
            return False

        fsm = SessionFSM(self)
        if self.all_ready:
            fsm.all_ready()
            fsm.sync_phase_to_model()
            # Time spent in the lobby is not simulated.
            self.last_tick = now
            logger.info("session %s: all %d players ready, game started", self.id, len(self.players))
            return True

        if fsm.current_state == fsm.lobby:
            fsm.player_readied()
            fsm.sync_phase_to_model()
        return False

    # ---- economy ----

    def place_tower(self, x: float, y: float, tower_type: str, player_id: str) -> bool:
        stats = stats_for(tower_type)
        if stats is None:
            logger.info("session %s: rejected unknown tower type %r", self.id, tower_type)
            return False
        if self.gold < stats.cost:
            logger.info(
                "session %s: rejected %s tower for %s (gold=%d, cost=%d)",
                self.id,
                tower_type,
                player_id,
                self.gold,
                stats.cost,
            )
            return False

        self.towers.append(
            TowerState(
                id=next(self._ids),
                x=x,
                y=y,
                type=tower_type,
                player_id=player_id,
                damage=stats.damage,
                range=stats.range,
                fire_rate=stats.fire_rate,
            )
        )
        self.gold -= stats.cost
        return True

    # ---- waves ----

    def spawn_wave(self, now: float) -> int:
        """Start the next wave and queue its enemies at a fixed stagger.

        Enemy stats are fixed from the wave number at scheduling time. Queued
        enemies enter the field from `tick()` once their due time has passed.
        """

        self.wave += 1
        count = 5 + self.wave * 2
        health = 50 + self.wave * 10
        speed = 1 + self.wave * 0.1
        start = self.path[0]

        for i in range(count):
            enemy = EnemyState(
                id=next(self._ids),
                x=start.x,
                y=start.y,
                health=health,
                max_health=health,
                speed=speed,
                damage=ENEMY_DAMAGE,
                reward=ENEMY_REWARD,
            )
            self.pending_spawns.append(PendingSpawn(due_at=now + i * self.spawn_stagger_ms, enemy=enemy))

        logger.info("session %s: wave %d spawning %d enemies", self.id, self.wave, count)
        return count

    def _release_due_spawns(self, now: float) -> None:
        while self.pending_spawns and self.pending_spawns[0].due_at <= now:
            self.enemies.append(self.pending_spawns.popleft().enemy)

    # ---- simulation ----

    def tick(self, now: float) -> None:
        """Advance the simulation to `now`: release due spawns, move, fire, clean up.

        Spawns are released before movement on purpose. A fresh enemy sits on the
        first waypoint, so its first movement step only advances `path_index`;
        it starts walking on the following tick whatever its due time was.
        """

        elapsed = max(0.0, now - self.last_tick)
        self.last_tick = now

        self._release_due_spawns(now)
        self._move_enemies(elapsed)
        self._fire_towers(now)

        end = len(self.path)
        self.enemies = [e for e in self.enemies if e.health > 0 and e.path_index < end]

    def _move_enemies(self, elapsed: float) -> None:
        step_scale = elapsed / FRAME_MS
        end = len(self.path)

        for enemy in self.enemies:
            if enemy.health <= 0:
                continue

            target = self.path[enemy.path_index]
            dx = target.x - enemy.x
            dy = target.y - enemy.y
            dist = math.hypot(dx, dy)

            if dist < WAYPOINT_RADIUS:
                enemy.path_index += 1
                if enemy.path_index >= end:
                    self.health = max(0, self.health - enemy.damage)
                    enemy.health = 0
            else:
                enemy.x += (dx / dist) * enemy.speed * step_scale
                enemy.y += (dy / dist) * enemy.speed * step_scale

    def _fire_towers(self, now: float) -> None:
        for tower in self.towers:
            if tower.last_fire is not None and now - tower.last_fire < tower.fire_rate:
                continue

            # First living enemy in session order, not the nearest one.
            target = next(
                (
                    e
                    for e in self.enemies
                    if e.health > 0 and math.hypot(e.x - tower.x, e.y - tower.y) <= tower.range
                ),
                None,
            )
            if target is None:
                continue

            target.health -= tower.damage
            tower.last_fire = now
            if target.health <= 0:
                self.gold += target.reward

    # ---- projections ----

    def snapshot(self) -> GameState:
        return GameState(
            players=[p.model_copy() for p in self.players],
            towers=[t.model_copy() for t in self.towers],
            enemies=[e.model_copy() for e in self.enemies],
            wave=self.wave,
            health=self.health,
            gold=self.gold,
            game_started=self.started,
        )

    def summary(self) -> SessionSummary:
        return SessionSummary(
            id=self.id,
            phase=self.phase,
            players=len(self.players),
            wave=self.wave,
            health=self.health,
            gold=self.gold,
            enemies=len(self.enemies),
        )
