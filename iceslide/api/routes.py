from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, status

from iceslide.actions import COMMAND_NAMES, CommandName, dispatch_command
from iceslide.api.deps import get_registry
from iceslide.api.models import (
    DIFFICULTIES,
    DifficultyListResponse,
    DifficultyRequest,
    MoveRequest,
    SessionCreateRequest,
    SessionListResponse,
    SessionSnapshot,
)
from iceslide.core.board import Direction
from iceslide.session import Session
from iceslide.session_store import SessionRegistry
from iceslide.websocket_hub import hub

router = APIRouter()


def _require(registry: SessionRegistry, session_id: str) -> Session:
    try:
        return registry.require_session(session_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


@router.websocket("/ws/sessions/{session_id}")
async def session_updates_ws(
    websocket: WebSocket,
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
) -> None:
    if registry.get_session(session_id) is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await hub.connect(session_id, websocket)

    try:
        # Keep the socket open; client can optionally send pings.
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        await hub.disconnect(session_id, websocket)
    except Exception:
        await hub.disconnect(session_id, websocket)
        raise


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/difficulties", response_model=DifficultyListResponse)
async def list_difficulties_route() -> DifficultyListResponse:
    return DifficultyListResponse(difficulties=list(DIFFICULTIES))


@router.post("/sessions", response_model=SessionSnapshot, status_code=status.HTTP_201_CREATED)
async def create_session_route(
    payload: SessionCreateRequest | None = None,
    registry: SessionRegistry = Depends(get_registry),
) -> SessionSnapshot:
    req = payload or SessionCreateRequest()
    session = registry.create_session(difficulty=req.difficulty)
    registry.watch(session.session_id, hub.publisher(session.session_id))

    if req.wait:
        await session.wait_for_level()
    return session.snapshot()


@router.get("/sessions", response_model=SessionListResponse)
async def list_sessions_route(registry: SessionRegistry = Depends(get_registry)) -> SessionListResponse:
    return SessionListResponse(sessions=[s.snapshot() for s in registry.list_sessions()])


@router.get("/sessions/{session_id}", response_model=SessionSnapshot)
async def get_session_route(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> SessionSnapshot:
    return _require(registry, session_id).snapshot()


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session_route(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> None:
    try:
        registry.remove_session(session_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


@router.post("/sessions/{session_id}/move", response_model=SessionSnapshot)
async def move_route(
    session_id: str,
    payload: MoveRequest,
    registry: SessionRegistry = Depends(get_registry),
) -> SessionSnapshot:
    session = _require(registry, session_id)
    try:
        direction = Direction.parse(payload.direction)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e

    session.move(direction)
    return session.snapshot()


@router.post("/sessions/{session_id}/reset", response_model=SessionSnapshot)
async def reset_route(
    session_id: str,
    wait: bool = False,
    registry: SessionRegistry = Depends(get_registry),
) -> SessionSnapshot:
    session = _require(registry, session_id)
    session.reset()
    if wait:
        await session.wait_for_level()
    return session.snapshot()


@router.post("/sessions/{session_id}/difficulty", response_model=SessionSnapshot)
async def difficulty_route(
    session_id: str,
    payload: DifficultyRequest,
    registry: SessionRegistry = Depends(get_registry),
) -> SessionSnapshot:
    session = _require(registry, session_id)
    session.change_difficulty(payload.difficulty)
    if payload.wait:
        await session.wait_for_level()
    return session.snapshot()


@router.post("/sessions/{session_id}/commands/{command}", response_model=SessionSnapshot)
async def generic_command_route(
    session_id: str,
    command: str,
    body: dict[str, Any] | None = None,
    registry: SessionRegistry = Depends(get_registry),
) -> SessionSnapshot:
    session = _require(registry, session_id)
    payload = body or {}
    try:
        if command not in COMMAND_NAMES:
            raise ValueError(f"Unknown command: {command}")
        cmd: CommandName = command  # type: ignore[assignment]
        result = dispatch_command(session=session, command=cmd, payload=payload)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e

    if payload.get("wait") and result.request_id is not None:
        await session.wait_for_level()
        return session.snapshot()
    return result.snapshot
