"""Level thresholds and character names.

These values MUST match the frontend profile card exactly.
"""

from __future__ import annotations

LEVEL_THRESHOLDS: list[dict] = [
    {"level": 1, "character": "Rookie Hero", "min_points": 0},
    {"level": 2, "character": "Fitness Apprentice", "min_points": 100},
    {"level": 3, "character": "Health Guardian", "min_points": 300},
    {"level": 4, "character": "Wellness Warrior", "min_points": 600},
    {"level": 5, "character": "Ultimate Hero", "min_points": 1000},
]

MIN_LEVEL = LEVEL_THRESHOLDS[0]["level"]
MAX_LEVEL = LEVEL_THRESHOLDS[-1]["level"]

CHARACTERS: dict[int, str] = {t["level"]: t["character"] for t in LEVEL_THRESHOLDS}


def level_for_points(points: int) -> int:
    """Map a point balance to a level (1-5). Negative balances map to level 1."""
    level = MIN_LEVEL
    for threshold in LEVEL_THRESHOLDS:
        if points >= threshold["min_points"]:
            level = threshold["level"]
    return level


def character_for_level(level: int) -> str:
    """Display character for a level; unknown levels fall back to the level-1 name."""
    return CHARACTERS.get(level, CHARACTERS[MIN_LEVEL])


def min_points_for_level(level: int) -> int:
    """Lowest balance that reaches ``level``."""
    for threshold in LEVEL_THRESHOLDS:
        if threshold["level"] == level:
            return threshold["min_points"]
    msg = f"Unknown level: {level}"
    raise ValueError(msg)


def compute_level(points: int) -> dict:
    """Compute level info from a point balance."""
    level = level_for_points(points)
    current = LEVEL_THRESHOLDS[level - 1]
    next_level = LEVEL_THRESHOLDS[min(level, len(LEVEL_THRESHOLDS) - 1)]

    points_into_level = max(points, 0) - current["min_points"]
    points_for_level = next_level["min_points"] - current["min_points"]

    # At max level, avoid division by zero in progress bars
    if points_for_level == 0:
        points_for_level = 1

    return {
        "level": level,
        "character": current["character"],
        "points_into_level": points_into_level,
        "points_for_level": points_for_level,
        "next_level": next_level["level"],
        "next_character": next_level["character"],
    }
