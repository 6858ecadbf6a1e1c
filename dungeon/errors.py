"""Exception types raised by the dungeon core."""

from __future__ import annotations

from typing import Any


class GenerationError(RuntimeError):
    """Base class for failures while building a map.

    ``stage`` names the generator stage that failed.  The builder fills it in
    when the error escapes a stage so callers can report which step of the
    pipeline aborted.
    """

    def __init__(self, message: str, *, stage: str | None = None) -> None:
        super().__init__(message)
        self.stage = stage

    def __str__(self) -> str:
        message = super().__str__()
        if self.stage:
            return f"[{self.stage}] {message}"
        return message


class InvalidDimensionsError(GenerationError, ValueError):
    """Raised when a map is created with a non-positive width or height."""

    def __init__(self, width: int, height: int) -> None:
        super().__init__(
            f"Map width and height must be positive integers (got {width}x{height})."
        )
        self.width = width
        self.height = height


class NoCandidateTilesError(GenerationError):
    """Raised when a stage needs to sample a tile kind the map does not contain."""

    def __init__(self, tile: Any, *, stage: str | None = None) -> None:
        name = getattr(tile, "name", str(tile))
        super().__init__(f"No tiles of kind {name} to choose from.", stage=stage)
        self.tile = tile


class ConfigError(ValueError):
    """Raised for malformed generation configuration."""


__all__ = [
    "ConfigError",
    "GenerationError",
    "InvalidDimensionsError",
    "NoCandidateTilesError",
]
