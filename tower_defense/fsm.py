from __future__ import annotations

from typing import TYPE_CHECKING

from statemachine import State, StateMachine

from tower_defense.api.models import SessionPhase

if TYPE_CHECKING:
    from tower_defense.core.session import Session


class SessionFSM(StateMachine):
    """FSM wrapper around a Session's phase.

    - phases: lobby -> ready check (someone is ready) -> active (everyone is ready)
    - the session mutates its players itself; the FSM only guards transitions.
    """

    lobby = State(SessionPhase.lobby.value, value=SessionPhase.lobby.value, initial=True)
    ready_check = State(SessionPhase.ready_check.value, value=SessionPhase.ready_check.value)
    active = State(SessionPhase.active.value, value=SessionPhase.active.value, final=True)

    player_readied = lobby.to(ready_check)
    readiness_lost = ready_check.to(lobby)
    all_ready = lobby.to(active) | ready_check.to(active)

    def __init__(self, session: Session):
        self.session = session
        super().__init__(start_value=session.phase.value)

    def sync_phase_to_model(self) -> None:
        self.session.phase = SessionPhase(str(self.current_state.value))
