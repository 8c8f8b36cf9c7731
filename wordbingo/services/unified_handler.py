import logging
from typing import Optional

from wordbingo.domain.errors import BingoError
from wordbingo.manager import ConnectionManager
from wordbingo.models.protocol import (
    CreateSessionCommand,
    JoinCommand,
    MarkWordCommand,
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


class UnifiedHandler(SessionHandler):
    """Single-process server: admin and players share one websocket endpoint.

    The connection that creates the session becomes the admin. Admin-only
    commands from any other connection are rejected.
    """

    def __init__(self, manager: ConnectionManager):
        super().__init__()
        self.manager = manager
        self.admin_connection_id: Optional[str] = None

    def _send(self, connection_id: str, event: WireModel) -> None:
        self.manager.send_personal_message(serialize_event(event), connection_id)

    def _broadcast(self, event: WireModel) -> None:
        targets = list(self.connection_to_player)
        if self.admin_connection_id is not None and self.admin_connection_id not in targets:
            targets.append(self.admin_connection_id)
        self.manager.broadcast(serialize_event(event), targets)

    def handle_message(self, connection_id: str, raw: str) -> None:
        """Handle one raw frame from a connection

        Args:
            connection_id (str): Connection the frame came from
            raw (str): Raw JSON text of the command
        """
        command = parse_command(raw)
        if command is None:
            self._send_error(connection_id, INVALID_COMMAND)
            return

        try:
            if isinstance(command, CreateSessionCommand):
                self._handle_create_session(connection_id, command)
            elif isinstance(command, StartGameCommand):
                if self._check_admin(connection_id, "Only admin can start the game"):
                    self.session.start_game()
            elif isinstance(command, StartNewRoundCommand):
                if self._check_admin(connection_id, "Only admin can start a new round"):
                    self.session.start_new_round()
            elif isinstance(command, JoinCommand):
                self._join(connection_id, command.screen_name)
            elif isinstance(command, MarkWordCommand):
                self._mark_word(connection_id, command.word)
        except BingoError as exc:
            logging.info(f"Rejected {command.type} from {connection_id}: {exc}")
            self._send_error(connection_id, str(exc))

    def _handle_create_session(self, connection_id: str, command: CreateSessionCommand) -> None:
        if self.session is not None:
            self._send_error(connection_id, SESSION_EXISTS)
            return
        session = self._create_session(command.words)
        self.admin_connection_id = connection_id
        self._send(connection_id, SessionCreatedEvent(session_id=session.id))

    def _check_admin(self, connection_id: str, denied_message: str) -> bool:
        if self.session is None:
            self._send_error(connection_id, NO_SESSION)
            return False
        if connection_id != self.admin_connection_id:
            self._send_error(connection_id, denied_message)
            return False
        return True

    def handle_close(self, connection_id: str) -> None:
        """Remove the connection's player; a closing admin only loses the admin role."""
        self._forget_connection(connection_id)
        if connection_id == self.admin_connection_id:
            logging.info("Admin connection closed; session kept")
            self.admin_connection_id = None
