"""Display payloads for the dashboard."""

from typing import Any

import orjson
from pydantic import BaseModel

from signal_core.models.signal import SignalResult


def _orjson_dumps(obj: Any) -> str:
    """Serialize object to JSON string using orjson."""
    return orjson.dumps(obj, default=str).decode("utf-8")


class SignalMessage(BaseModel):
    """Message pushed to display clients."""

    type: str  # "signal", "status"
    symbol: str
    data: dict[str, Any]

    def to_json(self) -> str:
        return _orjson_dumps(self.model_dump(mode="json"))


def signal_payload(result: SignalResult) -> dict[str, Any]:
    """Convert a SignalResult to plain JSON-compatible data."""
    return result.model_dump(mode="json")


def dumps_signal(result: SignalResult, symbol: str = "R_50") -> str:
    """Serialize a SignalResult as a 'signal' message."""
    return SignalMessage(type="signal", symbol=symbol, data=signal_payload(result)).to_json()


def loads_message(text: str | bytes) -> dict[str, Any]:
    """Parse a message produced by `dumps_signal`.

    Raises:
        orjson.JSONDecodeError: If the text is not valid JSON.
    """
    return orjson.loads(text)
