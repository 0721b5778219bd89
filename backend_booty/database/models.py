"""
Stored record vocabulary: collection names, status lifecycles and derived fields.

Records themselves are camelCase JSON documents (the shape the game frontend
reads); this module holds what the repositories validate them against.
"""

from __future__ import annotations

from enum import Enum

TREASURES_COLLECTION = "hidden-treasures"
SEARCHES_COLLECTION = "map_searches"
CLUES_COLLECTION = "clue_requests"


class TreasureStatus(str, Enum):
    ACTIVE = "active"
    CLAIMED = "claimed"
    EXPIRED = "expired"


class SearchStatus(str, Enum):
    NOT_FOUND = "not_found"
    FOUND = "found"


class ClueStatus(str, Enum):
    PENDING = "pending"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


TREASURE_TRANSITIONS: dict[TreasureStatus, frozenset[TreasureStatus]] = {
    TreasureStatus.ACTIVE: frozenset({TreasureStatus.CLAIMED, TreasureStatus.EXPIRED}),
    TreasureStatus.CLAIMED: frozenset(),
    TreasureStatus.EXPIRED: frozenset(),
}

SEARCH_TRANSITIONS: dict[SearchStatus, frozenset[SearchStatus]] = {
    SearchStatus.NOT_FOUND: frozenset({SearchStatus.FOUND}),
    SearchStatus.FOUND: frozenset(),
}

CLUE_TRANSITIONS: dict[ClueStatus, frozenset[ClueStatus]] = {
    ClueStatus.PENDING: frozenset({ClueStatus.GENERATING, ClueStatus.FAILED}),
    ClueStatus.GENERATING: frozenset({ClueStatus.COMPLETED, ClueStatus.FAILED}),
    ClueStatus.COMPLETED: frozenset(),
    ClueStatus.FAILED: frozenset(),
}


class MonsterType(str, Enum):
    """Guardian shown on the map; bigger deposits get bigger monsters."""

    DRAGON = "dragon"
    OGRE = "ogre"
    GOBLIN = "goblin"
    SLIME = "slime"


def monster_for_amount(amount: float) -> MonsterType:
    if amount >= 10:
        return MonsterType.DRAGON
    if amount >= 5:
        return MonsterType.OGRE
    if amount >= 1:
        return MonsterType.GOBLIN
    return MonsterType.SLIME
