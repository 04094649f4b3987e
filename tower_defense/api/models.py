from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from tower_defense.core.towers import TowerType


class WireModel(BaseModel):
    # snake_case in Python, camelCase on the wire (the browser client's naming).
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class SessionPhase(StrEnum):
    lobby = "lobby"
    ready_check = "ready_check"
    active = "active"


class PlayerState(WireModel):
    id: str
    name: str
    ready: bool = False


class TowerState(WireModel):
    """A placed tower.

    Stats come from the tower table and are frozen; only `last_fire` changes
    after placement. `last_fire` is None until the first shot.
    """

    id: int = Field(frozen=True)
    x: float = Field(frozen=True)
    y: float = Field(frozen=True)
    type: TowerType = Field(frozen=True)
    player_id: str = Field(frozen=True)
    damage: int = Field(frozen=True)
    range: float = Field(frozen=True)
    fire_rate: int = Field(frozen=True)
    last_fire: float | None = None


class EnemyState(WireModel):
    id: int
    x: float
    y: float
    path_index: int = 0
    health: int
    max_health: int
    # Units moved per 16 ms reference frame.
    speed: float
    damage: int
    reward: int


class GameState(WireModel):
    players: list[PlayerState] = Field(default_factory=list)
    towers: list[TowerState] = Field(default_factory=list)
    enemies: list[EnemyState] = Field(default_factory=list)
    wave: int
    health: int
    gold: int
    game_started: bool


# ---- Client -> server ----


class JoinMessage(WireModel):
    type: Literal["join"]
    player_name: str = "Anonymous"
    game_id: str | None = None


class ReadyMessage(WireModel):
    type: Literal["ready"]


class PlaceTowerMessage(WireModel):
    type: Literal["placeTower"]
    x: float
    y: float
    # Left as a plain string: an unknown type is a rejected placement, not a protocol error.
    tower_type: str


class StartWaveMessage(WireModel):
    type: Literal["startWave"]


ClientMessage = Annotated[
    Union[JoinMessage, ReadyMessage, PlaceTowerMessage, StartWaveMessage],
    Field(discriminator="type"),
]

CLIENT_MESSAGE_ADAPTER: TypeAdapter[ClientMessage] = TypeAdapter(ClientMessage)

CLIENT_MESSAGE_TYPES = frozenset({"join", "ready", "placeTower", "startWave"})


# ---- Server -> client ----


class PlayerSummary(WireModel):
    id: str
    name: str


class JoinedMessage(WireModel):
    type: Literal["joined"] = "joined"
    player_id: str
    game_state: GameState


class PlayerJoinedMessage(WireModel):
    type: Literal["playerJoined"] = "playerJoined"
    player: PlayerSummary


class GameStateMessage(WireModel):
    type: Literal["gameState"] = "gameState"
    state: GameState


class GameStartedMessage(WireModel):
    type: Literal["gameStarted"] = "gameStarted"


class PlayerLeftMessage(WireModel):
    type: Literal["playerLeft"] = "playerLeft"
    player_id: str


# ---- HTTP ----


class SessionSummary(BaseModel):
    id: str
    phase: SessionPhase
    players: int
    wave: int
    health: int
    gold: int
    enemies: int


class SessionListResponse(BaseModel):
    sessions: list[SessionSummary]
