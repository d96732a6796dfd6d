"""Builder for positional JSON-RPC parameters."""

from __future__ import annotations

import json
import math
from typing import Any


def _sanitize(value: Any) -> Any:
    # Non-finite floats become null, as JSON has no representation for them.
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {key: _sanitize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_sanitize(item) for item in value]
    return value


def _serialize(value: Any) -> str:
    return json.dumps(_sanitize(value), separators=(",", ":"), ensure_ascii=False)


class RpcParams:
    """Collects values and renders them as a JSON array of positional parameters."""

    def __init__(self) -> None:
        self._items: list[str] = []

    def insert(self, value: Any) -> None:
        """Serialise ``value`` and append it; raises ``TypeError`` if it is not JSON serialisable."""
        self._items.append(_serialize(value))

    def insert_with_allocation(self, value: Any) -> None:
        """Same as :meth:`insert`."""
        self.insert(value)

    def build(self) -> str | None:
        """The JSON array text, or ``None`` when nothing was inserted."""
        if not self._items:
            return None
        return "[" + ",".join(self._items) + "]"

    def to_json_value(self) -> list[Any]:
        """The parameters as parsed JSON; ``[None]`` when nothing was inserted."""
        built = self.build()
        if built is None:
            return [None]
        return json.loads(built)