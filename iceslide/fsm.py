from __future__ import annotations

from statemachine import State, StateMachine

from iceslide.api.models import SessionPhase


class SessionFSM(StateMachine):
    """Phase graph for one play session.

    - phases: idle -> loading -> ready -> won, with loading -> failed on gateway errors
    - any phase may start a new level request; the session owns all other state.
    """

    idle = State(SessionPhase.idle.value, value=SessionPhase.idle.value, initial=True)
    loading = State(SessionPhase.loading.value, value=SessionPhase.loading.value)
    ready = State(SessionPhase.ready.value, value=SessionPhase.ready.value)
    won = State(SessionPhase.won.value, value=SessionPhase.won.value)
    failed = State(SessionPhase.failed.value, value=SessionPhase.failed.value)

    request_level = (
        idle.to(loading)
        | loading.to.itself()
        | ready.to(loading)
        | won.to(loading)
        | failed.to(loading)
    )
    level_loaded = loading.to(ready)
    level_failed = loading.to(failed)
    goal_reached = ready.to(won)

    def __init__(self, phase: SessionPhase = SessionPhase.idle):
        super().__init__(start_value=phase.value)

    @property
    def phase(self) -> SessionPhase:
        return SessionPhase(str(self.current_state.value))
