import logging
from typing import Dict, List, Optional

from wordbingo.converter import DataConverter
from wordbingo.domain.events import (
    GameEvent,
    GameStarted,
    NewRoundStarted,
    PlayerJoined,
    PlayerLeft,
    PlayerWon,
)
from wordbingo.domain.session import Session
from wordbingo.models.protocol import (
    ErrorEvent,
    JoinedEvent,
    MarkResultEvent,
    PlayerJoinedEvent,
    PlayerLeftEvent,
    WireModel,
)

INVALID_COMMAND = "Invalid command"
NO_SESSION = "No session exists"
SESSION_EXISTS = "Session already exists"
NOT_JOINED = "Not joined as a player"
ALREADY_JOINED = "Already joined as a player"


class SessionHandler:
    """Command handling and event routing shared by the unified and admin handlers.

    Subclasses decide how an event reaches one player connection
    (``_send``) and how it reaches everybody (``_broadcast``). Connection ids
    are opaque strings issued by the transport.
    """

    def __init__(self):
        self.session: Optional[Session] = None
        self.connection_to_player: Dict[str, str] = {}
        self.player_to_connection: Dict[str, str] = {}
        # Connection whose join is in progress; session events raised inside
        # add_player arrive before the mapping above exists.
        self.pending_join_connection_id: Optional[str] = None
        self.data_converter = DataConverter()

    def _send(self, connection_id: str, event: WireModel) -> None:
        raise NotImplementedError

    def _broadcast(self, event: WireModel) -> None:
        raise NotImplementedError

    def _send_error(self, connection_id: str, message: str) -> None:
        self._send(connection_id, ErrorEvent(message=message))

    def _create_session(self, words: List[str]) -> Session:
        session = Session(words)
        session.subscribe(self.handle_session_event)
        self.session = session
        logging.info(f"Session created: {session.id}")
        return session

    def handle_session_event(self, event: GameEvent) -> None:
        """Translate a session event into wire events for the right connections

        Args:
            event (GameEvent): Event published by the session
        """
        session = self.session
        if isinstance(event, (GameStarted, NewRoundStarted)):
            connection_id = self.player_to_connection.get(
                event.player_id, self.pending_join_connection_id
            )
            if connection_id is not None:
                self._send(
                    connection_id,
                    self.data_converter.convert_card_to_card_dealt(
                        event.round_number, event.player_card
                    ),
                )
            self._broadcast(self.data_converter.convert_session_to_game_status(session))
            self._broadcast(
                self.data_converter.convert_scores_to_leaderboard(session.get_leaderboard())
            )
        elif isinstance(event, PlayerWon):
            self._broadcast(
                self.data_converter.convert_win_to_player_won(
                    event.winner_name, event.pattern, event.round_number
                )
            )
            self._broadcast(
                self.data_converter.convert_scores_to_leaderboard(session.get_leaderboard())
            )
            self._broadcast(self.data_converter.convert_session_to_game_status(session))
        elif isinstance(event, PlayerJoined):
            self._broadcast(
                PlayerJoinedEvent(
                    player_id=event.player_id,
                    screen_name=event.screen_name,
                    player_count=len(session.get_players()),
                )
            )
        elif isinstance(event, PlayerLeft):
            self._broadcast(
                PlayerLeftEvent(
                    player_id=event.player_id,
                    screen_name=event.screen_name,
                    player_count=len(session.get_players()),
                )
            )

    def _join(self, connection_id: str, screen_name: str) -> None:
        if self.session is None:
            self._send_error(connection_id, NO_SESSION)
            return
        if connection_id in self.connection_to_player:
            self._send_error(connection_id, ALREADY_JOINED)
            return

        self.pending_join_connection_id = connection_id
        try:
            player = self.session.add_player(screen_name)
        finally:
            self.pending_join_connection_id = None

        self.connection_to_player[connection_id] = player.id
        self.player_to_connection[player.id] = connection_id
        logging.info(f"Player joined: {player.screen_name} on {connection_id}")
        self._send(
            connection_id,
            JoinedEvent(
                player_id=player.id,
                screen_name=player.screen_name,
                game_status=self.session.get_game_status(),
                round=self.session.get_current_round(),
            ),
        )

    def _mark_word(self, connection_id: str, word: str) -> None:
        if self.session is None:
            self._send_error(connection_id, NO_SESSION)
            return
        player_id = self.connection_to_player.get(connection_id)
        if player_id is None:
            self._send_error(connection_id, NOT_JOINED)
            return

        result = self.session.mark_word(player_id, word)
        self._send(
            connection_id,
            MarkResultEvent(
                success=result.success,
                word=word,
                bingo=result.bingo,
                round_over=result.round_over,
            ),
        )

    def _forget_connection(self, connection_id: str) -> None:
        """Drop the connection's player mapping and remove the player from the session."""
        player_id = self.connection_to_player.pop(connection_id, None)
        if player_id is None:
            return
        self.player_to_connection.pop(player_id, None)
        if self.session is not None:
            self.session.remove_player(player_id)
