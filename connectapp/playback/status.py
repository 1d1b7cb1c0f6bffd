from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Union


@dataclass(frozen=True)
class Unloaded:
    error: str | None = None
    is_loaded: Literal[False] = False


@dataclass(frozen=True)
class Loaded:
    position_millis: int
    duration_millis: int
    did_just_finish: bool = False
    is_loaded: Literal[True] = True

    @property
    def progress(self) -> float:
        if self.duration_millis <= 0:
            return 0.
        return min(1., max(0., self.position_millis / self.duration_millis))


PlaybackStatus = Union[Unloaded, Loaded]


def parse_status(payload: dict[str, Any]) -> PlaybackStatus:
    """Converts a raw player status payload (camelCase keys, tagged by `isLoaded`)."""
    if not payload.get("isLoaded"):
        return Unloaded(error=payload.get("error"))

    return Loaded(
        position_millis=int(payload.get("positionMillis") or 0),
        duration_millis=int(payload.get("durationMillis") or 0),
        did_just_finish=bool(payload.get("didJustFinish", False)),
    )
