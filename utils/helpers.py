# utils/helpers.py
from __future__ import annotations

import re

import structlog

from game_rng import GameRNG

log = structlog.get_logger(__name__)

# --- Dice Rolling Utility ---
DICE_PATTERN = re.compile(r"(\d+)?d(\d+)(?:([+-])(\d+))?")


def roll_dice(dice_str: str | None, rng: GameRNG | None) -> int:
    """
    Rolls dice based on a string format (e.g., "d10", "1d6", "2d4+1", "3d6-2").
    Requires a :class:`GameRNG` instance and raises ``ValueError`` if ``rng`` is
    ``None`` or the string is neither dice notation nor a plain integer.
    """
    if not dice_str:
        return 0
    if rng is None:
        log.error("Dice roll attempted without RNG instance!")
        raise ValueError("RNG instance is required for roll_dice.")

    match = DICE_PATTERN.fullmatch(dice_str.strip())
    if match:
        num_dice_str, sides_str, operator, bonus_str = match.groups()
        num_dice = int(num_dice_str) if num_dice_str else 1
        sides = int(sides_str)
        bonus = int(f"{operator}{bonus_str}") if operator and bonus_str else 0
        if sides <= 0 or num_dice <= 0:
            return bonus
        roll_total = sum(rng.get_int(1, sides) for _ in range(num_dice))
        return roll_total + bonus

    try:
        return int(dice_str)  # Allow plain numbers
    except ValueError:
        log.error("Invalid dice string format", dice_str=dice_str)
        raise ValueError(f"Invalid dice string: {dice_str!r}") from None
