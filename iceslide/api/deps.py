from __future__ import annotations

from iceslide.infra.level_client import create_level_provider
from iceslide.session_store import SessionRegistry


_REGISTRY: SessionRegistry | None = None


def init_registry(registry: SessionRegistry | None = None) -> SessionRegistry:
    """Install the process-wide registry.

    Safe to call multiple times; subsequent calls return the already installed instance.
    """

    global _REGISTRY
    if _REGISTRY is None:
        _REGISTRY = registry or SessionRegistry(provider=create_level_provider())
    return _REGISTRY


def reset_registry_for_tests() -> None:
    global _REGISTRY
    _REGISTRY = None


def get_registry() -> SessionRegistry:
    return init_registry()


async def close_registry() -> None:
    global _REGISTRY
    if _REGISTRY is None:
        return
    aclose = getattr(_REGISTRY.provider, "aclose", None)
    if aclose is not None:
        await aclose()
    _REGISTRY = None
