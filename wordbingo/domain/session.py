import random
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from uuid6 import uuid7

from wordbingo.domain.card import Card, clean_word_list
from wordbingo.domain.errors import GameStateError, ValidationError
from wordbingo.domain.events import (
    EventBus,
    EventListener,
    GameEvent,
    GameStarted,
    NewRoundStarted,
    PlayerJoined,
    PlayerLeft,
    PlayerWon,
)
from wordbingo.domain.game import ACTIVE, WIN_POINTS, Game, MarkResult

NO_GAME = "no_game"


@dataclass
class Player:
    id: str
    screen_name: str
    joined_at: datetime


@dataclass
class Score:
    total_points: int = 0
    rounds_won: int = 0
    last_win_round: Optional[int] = None


@dataclass
class PlayerScore:
    player_id: str
    screen_name: str
    total_points: int
    rounds_won: int
    last_win_round: Optional[int] = None


class Session:
    """Players, cumulative scores and the current game of one bingo session."""

    def __init__(self, word_list: List[str], rng: Optional[random.Random] = None):
        clean_word_list(word_list)
        self.id = str(uuid7())
        self.word_list = list(word_list)
        self.rng = rng
        self.players: Dict[str, Player] = {}
        self.scores: Dict[str, Score] = {}
        self.game: Optional[Game] = None
        self.events = EventBus()

    def subscribe(self, listener: EventListener) -> None:
        self.events.subscribe(listener)

    def unsubscribe(self, listener: EventListener) -> None:
        self.events.unsubscribe(listener)

    def _emit(self, event: GameEvent) -> None:
        self.events.publish(event)

    def add_player(self, screen_name: str) -> Player:
        """Add a player, dealing them in immediately if a round is running.

        Args:
            screen_name (str): Requested name, trimmed here

        Raises:
            ValidationError: The name is blank or taken by a current player

        Returns:
            Player: The new player
        """
        trimmed = screen_name.strip()
        if not trimmed:
            raise ValidationError("Screen name cannot be blank")

        lowered = trimmed.lower()
        if any(player.screen_name.lower() == lowered for player in self.players.values()):
            raise ValidationError(f'Screen name "{trimmed}" is already taken')

        player = Player(id=str(uuid7()), screen_name=trimmed, joined_at=datetime.now())
        self.players[player.id] = player
        self.scores[player.id] = Score()
        self._emit(PlayerJoined(player_id=player.id, screen_name=trimmed))

        # Late joiner: deal a card for the round already in progress.
        if self.game is not None and self.game.status == ACTIVE:
            card = self.game.generate_card_for_player(player.id)
            self._emit(
                GameStarted(
                    round_number=self.game.current_round,
                    player_id=player.id,
                    player_card=card,
                )
            )
        return player

    def remove_player(self, player_id: str) -> None:
        player = self.players.pop(player_id, None)
        if player is None:
            return
        self.scores.pop(player_id, None)
        self._emit(PlayerLeft(player_id=player_id, screen_name=player.screen_name))

    def get_player(self, player_id: str) -> Optional[Player]:
        return self.players.get(player_id)

    def get_players(self) -> List[Player]:
        return list(self.players.values())

    def start_game(self) -> None:
        if not self.players:
            raise GameStateError("Cannot start game: at least 1 player required")

        self.game = Game(self.id, self.word_list, rng=self.rng)
        self.game.start()
        for player in self.get_players():
            card = self.game.generate_card_for_player(player.id)
            self._emit(
                GameStarted(
                    round_number=self.game.current_round,
                    player_id=player.id,
                    player_card=card,
                )
            )

    def start_new_round(self) -> None:
        if self.game is None:
            raise GameStateError("No game to start a new round for")

        self.game.start_new_round()
        for player in self.get_players():
            card = self.game.generate_card_for_player(player.id)
            self._emit(
                NewRoundStarted(
                    round_number=self.game.current_round,
                    player_id=player.id,
                    player_card=card,
                )
            )

    def mark_word(self, player_id: str, word: str) -> MarkResult:
        """Mark a word for a player and credit the round win.

        Args:
            player_id (str): Player marking the word
            word (str): Word to mark

        Raises:
            GameStateError: No game exists or it has not started

        Returns:
            MarkResult: Game result with the winner's screen name resolved
        """
        if self.game is None:
            raise GameStateError("No game is active")

        result = self.game.mark_word(player_id, word)
        if not (result.bingo and result.winner_id):
            return result

        winner = self.players.get(result.winner_id)
        winner_name = winner.screen_name if winner is not None else result.winner_id
        result.winner_name = winner_name

        score = self.scores.get(result.winner_id)
        if score is not None:
            score.total_points += WIN_POINTS
            score.rounds_won += 1
            score.last_win_round = self.game.current_round

        self._emit(
            PlayerWon(
                winner_id=result.winner_id,
                winner_name=winner_name,
                pattern=result.pattern,
                round_number=self.game.current_round,
                timestamp=datetime.now(),
            )
        )
        return result

    def get_game_status(self) -> str:
        if self.game is None:
            return NO_GAME
        return self.game.status

    def get_current_round(self) -> int:
        if self.game is None:
            return 0
        return self.game.current_round

    def get_card_for_player(self, player_id: str) -> Optional[Card]:
        if self.game is None:
            return None
        return self.game.get_card_for_player(player_id)

    def get_current_winner(self) -> Optional[Dict]:
        if self.game is None or self.game.current_winner is None:
            return None
        winner = self.game.current_winner
        player = self.players.get(winner.player_id)
        return {
            "player_id": winner.player_id,
            "screen_name": player.screen_name if player is not None else winner.player_id,
            "pattern": winner.pattern,
            "round_number": winner.round_number,
        }

    def get_leaderboard(self) -> List[PlayerScore]:
        """Current players by total points, highest first; ties keep join order."""
        board = []
        for player in self.get_players():
            score = self.scores.get(player.id, Score())
            board.append(
                PlayerScore(
                    player_id=player.id,
                    screen_name=player.screen_name,
                    total_points=score.total_points,
                    rounds_won=score.rounds_won,
                    last_win_round=score.last_win_round,
                )
            )
        return sorted(board, key=lambda entry: entry.total_points, reverse=True)
