"""Bingo card rules: card generation, marking and win detection.

Rule of thumb (same as the rest of the domain layer):
- OK: shuffling, validation, grid lookups, pattern checks.
- Not OK: sockets, wire formats, clocks other than what callers pass in.
"""

import random
from typing import Dict, List, Optional, Tuple

import numpy as np
from uuid6 import uuid7

from wordbingo.domain.errors import ValidationError

GRID_SIZE = 5
CENTER = (2, 2)
FREE_SPACE = "FREE"
WORDS_PER_CARD = GRID_SIZE * GRID_SIZE - 1


def _build_win_patterns() -> List[Tuple[Dict, Tuple[Tuple[int, ...], Tuple[int, ...]]]]:
    """Return (pattern, (rows, cols)) pairs in the order they are checked.

    The order is the tie-break when several patterns complete at once:
    rows, columns, main diagonal, anti-diagonal, four corners plus center.
    """
    patterns = []
    for row in range(GRID_SIZE):
        patterns.append(
            ({"type": "horizontal", "row": row}, ((row,) * GRID_SIZE, tuple(range(GRID_SIZE))))
        )
    for col in range(GRID_SIZE):
        patterns.append(
            ({"type": "vertical", "col": col}, (tuple(range(GRID_SIZE)), (col,) * GRID_SIZE))
        )
    patterns.append(
        (
            {"type": "diagonal", "direction": "tl-br"},
            (tuple(range(GRID_SIZE)), tuple(range(GRID_SIZE))),
        )
    )
    patterns.append(
        (
            {"type": "diagonal", "direction": "tr-bl"},
            (tuple(range(GRID_SIZE)), tuple(reversed(range(GRID_SIZE)))),
        )
    )
    patterns.append(({"type": "corners"}, ((0, 0, 4, 4, 2), (0, 4, 0, 4, 2))))
    return patterns


WIN_PATTERNS = _build_win_patterns()


def clean_word_list(word_list: List[str]) -> List[str]:
    """Trim words, drop blanks and remove case-insensitive duplicates.

    The first spelling of a duplicated word is kept.

    Args:
        word_list (List[str]): Words as entered by the admin

    Raises:
        ValidationError: Fewer than 24 unique words remain

    Returns:
        List[str]: Usable words in their original order
    """
    seen = set()
    cleaned: List[str] = []
    for word in word_list:
        trimmed = word.strip()
        if not trimmed:
            continue
        lowered = trimmed.lower()
        if lowered in seen:
            continue
        seen.add(lowered)
        cleaned.append(trimmed)

    if len(cleaned) < WORDS_PER_CARD:
        raise ValidationError(
            f"Word list must contain at least {WORDS_PER_CARD} unique words, got {len(cleaned)}"
        )
    return cleaned


class Card:
    """One player's 5x5 grid and its mark state."""

    def __init__(self, card_id: str, player_id: str, grid: List[List[str]], marked: np.ndarray):
        self.id = card_id
        self.player_id = player_id
        self._grid = grid
        self._marked = marked

    @classmethod
    def generate(
        cls, player_id: str, word_list: List[str], rng: Optional[random.Random] = None
    ) -> "Card":
        """Deal a new card from a shuffled copy of the cleaned word list.

        Args:
            player_id (str): Owner of the card
            word_list (List[str]): Session word list, cleaned here
            rng (Optional[random.Random]): Source of randomness, module random if None

        Returns:
            Card: A card with a fresh id, only the center pre-marked
        """
        pool = clean_word_list(word_list)
        (rng or random).shuffle(pool)
        words = iter(pool[:WORDS_PER_CARD])

        grid = [
            [FREE_SPACE if (row, col) == CENTER else next(words) for col in range(GRID_SIZE)]
            for row in range(GRID_SIZE)
        ]
        marked = np.zeros((GRID_SIZE, GRID_SIZE), dtype=bool)
        marked[CENTER] = True
        return cls(str(uuid7()), player_id, grid, marked)

    def mark_word(self, word: str) -> bool:
        """Mark the first cell (row-major) matching the word, ignoring case and padding.

        Returns:
            bool: True if a cell matched, already-marked cells included
        """
        normalized = word.strip().lower()
        for row in range(GRID_SIZE):
            for col in range(GRID_SIZE):
                if self._grid[row][col].lower() == normalized:
                    self._marked[row, col] = True
                    return True
        return False

    def mark_position(self, row: int, col: int) -> bool:
        if not (0 <= row < GRID_SIZE and 0 <= col < GRID_SIZE):
            return False
        self._marked[row, col] = True
        return True

    def get_winning_pattern(self) -> Optional[Dict]:
        """Return the first completed pattern in check order, or None."""
        for pattern, (rows, cols) in WIN_PATTERNS:
            if self._marked[rows, cols].all():
                return dict(pattern)
        return None

    def has_won(self) -> bool:
        return self.get_winning_pattern() is not None

    def get_grid(self) -> List[List[str]]:
        return [list(row) for row in self._grid]

    def get_marked(self) -> List[List[bool]]:
        return self._marked.tolist()
