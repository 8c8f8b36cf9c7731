from typing import List

from wordbingo.domain.card import Card
from wordbingo.domain.session import PlayerScore, Session
from wordbingo.models.protocol import (
    CardDealtEvent,
    GameStatusEvent,
    LeaderboardEntryModel,
    LeaderboardEvent,
    PlayerWonEvent,
    win_pattern_adapter,
)


class DataConverter:
    """This class is used to convert domain objects into wire events."""

    def convert_card_to_card_dealt(self, round_number: int, card: Card) -> CardDealtEvent:
        """Convert a freshly dealt card to the event sent to its owner

        Args:
            round_number (int): Round the card was dealt for
            card (Card): The player's card

        Returns:
            CardDealtEvent: Grid and mark state of the card
        """
        return CardDealtEvent(
            round_number=round_number, grid=card.get_grid(), marked=card.get_marked()
        )

    def convert_scores_to_leaderboard(self, scores: List[PlayerScore]) -> LeaderboardEvent:
        return LeaderboardEvent(
            entries=[
                LeaderboardEntryModel(
                    player_id=score.player_id,
                    screen_name=score.screen_name,
                    total_points=score.total_points,
                    rounds_won=score.rounds_won,
                    last_win_round=score.last_win_round,
                )
                for score in scores
            ]
        )

    def convert_session_to_game_status(self, session: Session) -> GameStatusEvent:
        return GameStatusEvent(
            status=session.get_game_status(), round=session.get_current_round()
        )

    def convert_win_to_player_won(
        self, winner_name: str, pattern: dict, round_number: int
    ) -> PlayerWonEvent:
        """Convert a round win to the broadcast announcement

        Args:
            winner_name (str): Screen name of the winner (or id if they left)
            pattern (dict): Winning pattern as reported by the card
            round_number (int): Round that was won

        Returns:
            PlayerWonEvent: Event carrying a validated win pattern
        """
        return PlayerWonEvent(
            winner_name=winner_name,
            pattern=win_pattern_adapter.validate_python(pattern),
            round_number=round_number,
        )
