from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class RequestGuard:
    """Latest-request-wins token source.

    Every async operation captures the token returned by `issue()` and checks
    `is_current(token)` at the single point where its result would be applied.
    Anything older than the latest issued token is stale and must be dropped.
    """

    _latest: int = 0

    @property
    def latest(self) -> int:
        return self._latest

    def issue(self) -> int:
        self._latest += 1
        return self._latest

    def is_current(self, token: int) -> bool:
        return token == self._latest
