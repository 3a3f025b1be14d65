from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from iceslide.api.models import Difficulty, SessionSnapshot
from iceslide.core.board import Direction
from iceslide.session import Session


CommandName = Literal["move", "reset", "difficulty"]

COMMAND_NAMES: frozenset[str] = frozenset({"move", "reset", "difficulty"})


@dataclass(frozen=True, slots=True)
class CommandResult:
    snapshot: SessionSnapshot
    # Request id allocated by this command, if it started a level request.
    request_id: int | None = None


def _parse_difficulty(raw: Any) -> Difficulty:
    try:
        return Difficulty(str(raw).strip().lower())
    except ValueError as e:
        allowed = ",".join(d.value for d in Difficulty)
        raise ValueError(f"Unknown difficulty '{raw}' (allowed: {allowed})") from e


def dispatch_command(*, session: Session, command: CommandName, payload: dict[str, Any]) -> CommandResult:
    """Entry point for the generic command endpoint.

    Payload problems (unknown command, unknown direction/difficulty) raise
    `ValueError`. A well-formed command the session cannot act on right now is
    not an error; the session simply ignores it and the snapshot is unchanged.
    """

    if command not in COMMAND_NAMES:
        raise ValueError(f"Unknown command: {command}")

    before = session.pending_request_id

    if command == "move":
        raw = payload.get("direction")
        if not raw:
            raise ValueError("direction is required")
        session.move(Direction.parse(str(raw)))

    elif command == "reset":
        session.reset()

    elif command == "difficulty":
        raw = payload.get("difficulty")
        if not raw:
            raise ValueError("difficulty is required")
        session.change_difficulty(_parse_difficulty(raw))

    after = session.pending_request_id
    return CommandResult(snapshot=session.snapshot(), request_id=after if after != before else None)
