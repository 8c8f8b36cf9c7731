"""Round lifecycle for one session.

waiting --start()--> active --winning mark--> finished --start_new_round()--> active ...
"""

import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from wordbingo.domain.card import Card, clean_word_list
from wordbingo.domain.errors import GameStateError

WIN_POINTS = 100

WAITING = "waiting"
ACTIVE = "active"
FINISHED = "finished"


@dataclass
class Winner:
    player_id: str
    pattern: Dict
    round_number: int
    timestamp: datetime
    points: int = WIN_POINTS


@dataclass
class MarkResult:
    success: bool
    bingo: bool = False
    round_over: bool = False
    pattern: Optional[Dict] = None
    winner_id: Optional[str] = None
    winner_name: Optional[str] = None


@dataclass
class Game:
    session_id: str
    word_list: List[str]
    rng: Optional[random.Random] = None
    status: str = WAITING
    current_round: int = 0
    cards: Dict[str, Card] = field(default_factory=dict)
    current_winner: Optional[Winner] = None
    archived_winners: List[Winner] = field(default_factory=list)

    def __post_init__(self):
        clean_word_list(self.word_list)

    def start(self) -> None:
        if self.status != WAITING:
            raise GameStateError("Game can only be started from waiting status")
        self.status = ACTIVE
        self.current_round = 1

    def start_new_round(self) -> None:
        """Archive the finished round and deal a clean slate for the next one.

        Raises:
            GameStateError: The current round has no winner yet
        """
        if self.status != FINISHED:
            raise GameStateError("Can only start a new round after the current round is finished")

        if self.current_winner is not None:
            self.archived_winners.append(self.current_winner)
        self.current_winner = None
        self.cards.clear()
        self.current_round += 1
        self.status = ACTIVE

    def generate_card_for_player(self, player_id: str) -> Card:
        if self.status == WAITING:
            raise GameStateError("Cannot generate cards before game starts")
        card = Card.generate(player_id, self.word_list, self.rng)
        self.cards[player_id] = card
        return card

    def get_card_for_player(self, player_id: str) -> Optional[Card]:
        return self.cards.get(player_id)

    def mark_word(self, player_id: str, word: str) -> MarkResult:
        """Mark a word on the player's card and detect the round winner.

        Only the first winning mark of a round counts: once the round is
        finished every further mark is rejected.

        Args:
            player_id (str): Player marking the word
            word (str): Word as typed or clicked by the player

        Raises:
            GameStateError: The game has not been started

        Returns:
            MarkResult: Outcome of the mark, with winner details on bingo
        """
        if self.status == WAITING:
            raise GameStateError("Cannot mark words before game starts")
        if self.status == FINISHED:
            return MarkResult(success=False, round_over=True)

        card = self.cards.get(player_id)
        if card is None or not card.mark_word(word):
            return MarkResult(success=False)

        pattern = card.get_winning_pattern()
        if pattern is None:
            return MarkResult(success=True)

        self.current_winner = Winner(
            player_id=player_id,
            pattern=pattern,
            round_number=self.current_round,
            timestamp=datetime.now(),
        )
        self.status = FINISHED
        return MarkResult(
            success=True,
            bingo=True,
            round_over=True,
            pattern=pattern,
            winner_id=player_id,
            winner_name=player_id,
        )

    @property
    def round_winners(self) -> List[Winner]:
        if self.current_winner is not None:
            return [*self.archived_winners, self.current_winner]
        return list(self.archived_winners)
