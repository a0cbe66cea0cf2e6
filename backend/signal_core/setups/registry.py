"""Name -> class registry for setup evaluators.

The engine builds its setups from `EngineConfig.setups`, in order:

    @register_setup("scalp")
    class ScalpSetup(BaseSetup):
        ...

    setups = [create_setup(name, config=config) for name in config.setups]
"""

from __future__ import annotations

import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)

_SETUPS: dict[str, type] = {}


def register_setup(name: str) -> Callable[[type], type]:
    """Class decorator registering a setup under `name`.

    Raises:
        ValueError: If `name` is taken.
    """

    def decorator(cls: type) -> type:
        existing = _SETUPS.get(name)
        if existing is not None:
            raise ValueError(f"Setup '{name}' is already registered by {existing.__name__}")
        _SETUPS[name] = cls
        logger.debug("Registered setup %s (%s)", name, cls.__name__)
        return cls

    return decorator


def get_setup_class(name: str) -> type:
    """Look up a registered setup class.

    Raises:
        KeyError: Unknown setup name; the message lists the known ones.
    """
    try:
        return _SETUPS[name]
    except KeyError:
        known = ", ".join(list_setups()) or "(none)"
        raise KeyError(f"Unknown setup '{name}'. Available: {known}") from None


def create_setup(name: str, **kwargs: Any):
    """Instantiate the setup registered as `name`."""
    return get_setup_class(name)(**kwargs)


def list_setups() -> list[str]:
    return sorted(_SETUPS)
