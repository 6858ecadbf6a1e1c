"""Deterministic GameRNG module.

Every random decision made during dungeon generation goes through an explicit
:class:`GameRNG` handle.  The generator is a thin layer over
``numpy.random.default_rng`` so that a fixed seed reproduces the same map,
spawn point and snapshot history on every run.

Two integer range flavours are provided because the generation code needs
both:

* ``get_randrange(start, stop)`` samples ``[start, stop)``.
* ``get_int(a, b)`` samples ``[a, b]``.
"""

from __future__ import annotations

import json
import random
from typing import Any, Dict, List, Optional, Sequence, TypeVar

import numpy as np

T = TypeVar("T")


class GameRNG:
    def __init__(self, seed: Optional[int] = None) -> None:
        self.initial_seed = seed if seed is not None else random.randint(0, 2**32 - 1)
        self.rng = np.random.default_rng(self.initial_seed)

    # ------------------------------------------------------------------
    # basic random helpers
    # ------------------------------------------------------------------
    def get_int(self, a: int, b: int) -> int:
        if a > b:
            raise ValueError("a <= b")
        return int(self.rng.integers(a, b + 1))

    def get_ints(self, a: int, b: int, count: int) -> List[int]:
        return [self.get_int(a, b) for _ in range(count)]

    def get_randrange(
        self, start: int, stop: Optional[int] = None, step: int = 1
    ) -> int:
        if step == 0:
            raise ValueError("step must not be zero")
        if stop is None:
            stop = start
            start = 0
        width = stop - start
        if step > 0:
            if width <= 0:
                raise ValueError("empty range")
            n = (width + step - 1) // step
        else:
            if width >= 0:
                raise ValueError("empty range")
            n = (abs(width) + abs(step) - 1) // abs(step)
        idx = self.get_int(0, n - 1)
        return start + idx * step

    def get_float(self, a: float = 0.0, b: float = 1.0) -> float:
        if a > b:
            raise ValueError("a <= b")
        return a + (b - a) * float(self.rng.random())

    # ------------------------------------------------------------------
    # sequence utilities
    # ------------------------------------------------------------------
    def choice(self, seq: Sequence[T]) -> T:
        """Return a uniformly chosen element of *seq*."""
        if not seq:
            raise ValueError("cannot choose from an empty sequence")
        return seq[self.get_randrange(0, len(seq))]

    def shuffle(self, seq: List[Any]) -> None:
        self.rng.shuffle(seq)

    # ------------------------------------------------------------------
    # misc helpers
    # ------------------------------------------------------------------
    def roll_dice(
        self, num_dice: int = 1, sides: int = 6, modifier: int = 0
    ) -> Dict[str, Any]:
        if sides < 1 or num_dice < 0:
            raise ValueError("invalid dice")
        rolls = self.get_ints(1, sides, num_dice) if num_dice > 0 else []
        total = sum(rolls) + modifier
        return {"total": total, "rolls": rolls, "modifier": modifier}

    # ------------------------------------------------------------------
    # state management
    # ------------------------------------------------------------------
    def get_state(self) -> Dict[str, Any]:
        return {
            "random_state": self.rng.bit_generator.state,
            "initial_seed": self.initial_seed,
        }

    def set_state(self, state: Dict[str, Any]) -> None:
        if "random_state" in state:
            self.rng.bit_generator.state = state["random_state"]
        if "initial_seed" in state:
            self.initial_seed = state["initial_seed"]

    def save_state_to_file(self, filename: str) -> None:
        with open(filename, "w", encoding="utf-8") as f:
            json.dump(self.get_state(), f, indent=2)

    def load_state_from_file(self, filename: str) -> None:
        with open(filename, "r", encoding="utf-8") as f:
            state = json.load(f)
        self.set_state(state)

    def reset(self, seed: Optional[int] = None) -> None:
        self.initial_seed = seed if seed is not None else random.randint(0, 2**32 - 1)
        self.rng = np.random.default_rng(self.initial_seed)


__all__ = ["GameRNG"]
