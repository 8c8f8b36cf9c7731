import logging
from typing import List, Optional, Protocol

from wordbingo.domain.errors import BingoError
from wordbingo.manager import ConnectionManager
from wordbingo.models.protocol import (
    CreateSessionCommand,
    ErrorEvent,
    JoinCommand,
    MarkWordCommand,
    RelayStatusEvent,
    SessionCreatedEvent,
    StartGameCommand,
    StartNewRoundCommand,
    WireModel,
    parse_command,
    serialize_event,
)
from wordbingo.services.session_handler import (
    INVALID_COMMAND,
    NO_SESSION,
    SESSION_EXISTS,
    SessionHandler,
)


class RelayTransport(Protocol):
    def send_to_player(self, connection_id: str, event: str) -> None: ...

    def broadcast_to_players(self, event: str) -> None: ...


class AdminHandler(SessionHandler):
    """Admin process in distributed mode.

    The admin UI is a local websocket; players are reached only through the
    relay transport, addressed by the relay's connection ids.
    """

    def __init__(self, relay: RelayTransport, manager: ConnectionManager):
        super().__init__()
        self.relay = relay
        self.manager = manager
        self.admin_connection_id: Optional[str] = None

    def _send(self, connection_id: str, event: WireModel) -> None:
        self.relay.send_to_player(connection_id, serialize_event(event))

    def _send_to_admin(self, event: WireModel) -> None:
        if self.admin_connection_id is not None:
            self.manager.send_personal_message(serialize_event(event), self.admin_connection_id)

    def _broadcast(self, event: WireModel) -> None:
        self.relay.broadcast_to_players(serialize_event(event))
        self._send_to_admin(event)

    # ==== Admin UI socket =====================================================

    def handle_admin_connection(self, connection_id: str) -> None:
        if self.admin_connection_id is not None:
            logging.info(f"Admin connection {self.admin_connection_id} replaced by {connection_id}")
        self.admin_connection_id = connection_id

    def handle_admin_disconnect(self, connection_id: str) -> None:
        if connection_id == self.admin_connection_id:
            self.admin_connection_id = None

    def handle_admin_message(self, connection_id: str, raw: str) -> None:
        """Handle a frame from the admin UI

        Args:
            connection_id (str): Local admin connection the frame came from
            raw (str): Raw JSON text of the command
        """
        if connection_id != self.admin_connection_id:
            logging.debug(f"Ignoring frame from replaced admin connection {connection_id}")
            return

        command = parse_command(raw)
        if command is None:
            self._send_to_admin_error(INVALID_COMMAND)
            return

        try:
            if isinstance(command, CreateSessionCommand):
                if self.session is not None:
                    self._send_to_admin_error(SESSION_EXISTS)
                    return
                session = self._create_session(command.words)
                self._send_to_admin(SessionCreatedEvent(session_id=session.id))
            elif isinstance(command, StartGameCommand):
                if self.session is None:
                    self._send_to_admin_error(NO_SESSION)
                    return
                self.session.start_game()
            elif isinstance(command, StartNewRoundCommand):
                if self.session is None:
                    self._send_to_admin_error(NO_SESSION)
                    return
                self.session.start_new_round()
            else:
                self._send_to_admin_error("Admin cannot send player commands")
        except BingoError as exc:
            logging.info(f"Rejected admin {command.type}: {exc}")
            self._send_to_admin_error(str(exc))

    def _send_to_admin_error(self, message: str) -> None:
        self._send_to_admin(ErrorEvent(message=message))

    def handle_relay_status(self, status: str) -> None:
        self._send_to_admin(RelayStatusEvent(status=status))

    # ==== Relayed players =====================================================

    def handle_player_command(self, connection_id: str, raw_command: str) -> None:
        """Handle a player's command forwarded by the relay

        Args:
            connection_id (str): Relay-issued id of the player's socket
            raw_command (str): Raw JSON text of the command
        """
        command = parse_command(raw_command)
        if command is None:
            self._send_error(connection_id, INVALID_COMMAND)
            return

        try:
            if isinstance(command, JoinCommand):
                self._join(connection_id, command.screen_name)
            elif isinstance(command, MarkWordCommand):
                self._mark_word(connection_id, command.word)
            else:
                self._send_error(connection_id, "Players can only join or mark words")
        except BingoError as exc:
            logging.info(f"Rejected {command.type} from {connection_id}: {exc}")
            self._send_error(connection_id, str(exc))

    def handle_player_connected(self, connection_id: str) -> None:
        # The player is not part of the session until it sends join.
        logging.debug(f"Relayed player connected: {connection_id}")

    def handle_player_disconnected(self, connection_id: str) -> None:
        self._forget_connection(connection_id)

    def handle_player_roster(self, connections: List[str]) -> None:
        """Reconcile joined players with the relay's live connections.

        Players whose socket closed while the relay link was down never got a
        player_disconnected; the roster is the only way to notice.
        """
        live = set(connections)
        stale = [
            connection_id for connection_id in self.connection_to_player if connection_id not in live
        ]
        for connection_id in stale:
            self._forget_connection(connection_id)
        logging.info(
            f"Relay roster: {len(connections)} connection(s), {len(stale)} stale player(s) removed"
        )
