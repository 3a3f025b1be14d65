from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Protocol

import httpx
from pydantic import ValidationError

from iceslide.api.models import Difficulty, LevelPayload
from iceslide.core.board import BoardModel

logger = logging.getLogger(__name__)


class LevelProviderError(Exception):
    """A level request failed; `str(exc)` is safe to show to the player."""


class LevelProvider(Protocol):
    async def get_level(self, difficulty: Difficulty, *, request_id: int) -> BoardModel:  # pragma: no cover
        ...


@dataclass(frozen=True, slots=True)
class LevelApiSettings:
    base_url: str
    timeout_seconds: float


def settings_from_env() -> LevelApiSettings:
    return LevelApiSettings(
        base_url=os.environ.get("ICESLIDE_LEVEL_API_URL", "http://localhost:3000"),
        timeout_seconds=float(os.environ.get("ICESLIDE_LEVEL_API_TIMEOUT", "10")),
    )


class HttpLevelProvider:
    """Fetch boards from the external level service.

    Contract:
      - `GET {base_url}/api/level?difficulty=<d>&requestId=<n>` returns board JSON.
      - transport errors, non-2xx responses and malformed boards raise `LevelProviderError`.

    The client is owned by the provider unless one is passed in (tests inject a
    client backed by `httpx.MockTransport`).
    """

    def __init__(self, *, settings: LevelApiSettings | None = None, client: httpx.AsyncClient | None = None) -> None:
        self.settings = settings or settings_from_env()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.settings.base_url,
            timeout=self.settings.timeout_seconds,
        )

    async def get_level(self, difficulty: Difficulty, *, request_id: int) -> BoardModel:
        params = {"difficulty": difficulty.value, "requestId": str(request_id)}
        try:
            resp = await self._client.get("/api/level", params=params)
        except httpx.HTTPError as e:
            logger.warning("Level request %s (%s) failed: %r", request_id, difficulty.value, e)
            raise LevelProviderError("Could not reach the level service") from e

        if resp.status_code >= 400:
            raise LevelProviderError(f"Level service returned HTTP {resp.status_code}")

        try:
            payload = LevelPayload.model_validate_json(resp.content)
        except ValidationError as e:
            logger.warning("Level request %s (%s) returned an invalid board: %s", request_id, difficulty.value, e)
            raise LevelProviderError("Level service returned an invalid board") from e

        return payload.to_board(fallback_level_id=f"{difficulty.value}-{request_id}")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def create_level_provider() -> HttpLevelProvider:
    return HttpLevelProvider(settings=settings_from_env())
