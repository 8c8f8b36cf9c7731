"""Relay multiplexer: many player sockets, one registered admin socket.

Player frames go upstream to the admin verbatim, wrapped with the player's
connection id; the admin sends events back as downstream or broadcast
envelopes. Player sockets outlive admin outages, so a re-registering admin
is sent a roster of the connections that are still open.
"""

import logging
import secrets
from datetime import datetime
from typing import Dict, Optional

from wordbingo.manager import ConnectionManager
from wordbingo.models.protocol import ErrorEvent, serialize_event
from wordbingo.models.relay_protocol import (
    AdminErrorMessage,
    AdminRegisteredMessage,
    AdminRegisterMessage,
    BroadcastMessage,
    DownstreamMessage,
    PlayerConnectedMessage,
    PlayerDisconnectedMessage,
    PlayerRosterMessage,
    UpstreamMessage,
    parse_relay_message,
    serialize_relay_message,
)

HOST_DISCONNECTED = "Game host disconnected. Reconnecting..."
SESSION_UNAVAILABLE = "Game session not available yet. Please try again shortly."


class RelayHandler:
    def __init__(self, secret: str, manager: ConnectionManager):
        self.secret = secret
        self.manager = manager
        self.admin_connection_id: Optional[str] = None
        self.admin_registered = False
        self.player_connections: Dict[str, datetime] = {}
        self.dropped_downstream = 0
        self.dropped_upstream = 0

    def _send_to_admin(self, message) -> None:
        if self.admin_connection_id is not None:
            self.manager.send_personal_message(
                serialize_relay_message(message), self.admin_connection_id
            )

    def _send_admin_error(self, connection_id: str, message: str) -> None:
        self.manager.send_personal_message(
            serialize_relay_message(AdminErrorMessage(message=message)), connection_id
        )

    # ==== Admin socket ========================================================

    def handle_admin_connection(self, connection_id: str) -> bool:
        """Claim the admin slot for a new connection on /admin

        Args:
            connection_id (str): The new admin-path connection

        Returns:
            bool: False if a registered admin is already connected; the new
                connection is told so and its frames are ignored
        """
        if self.admin_connection_id is not None and self.admin_registered:
            logging.warning(f"Rejected second admin connection {connection_id}")
            self._send_admin_error(connection_id, "Admin already connected")
            return False

        self.admin_connection_id = connection_id
        self.admin_registered = False
        return True

    def handle_admin_message(self, connection_id: str, raw: str) -> None:
        if connection_id != self.admin_connection_id:
            return
        message = parse_relay_message(raw)
        if message is None:
            logging.debug("Ignoring malformed envelope from admin")
            return

        if not self.admin_registered:
            self._register_admin(connection_id, message)
            return

        if isinstance(message, DownstreamMessage):
            if message.target in self.player_connections:
                self.manager.send_personal_message(message.event, message.target)
            else:
                self.dropped_downstream += 1
                logging.debug(
                    f"Dropped downstream for unknown connection {message.target} "
                    f"(dropped so far: {self.dropped_downstream})"
                )
        elif isinstance(message, BroadcastMessage):
            self.manager.broadcast(message.event, list(self.player_connections))

    def _register_admin(self, connection_id: str, message) -> None:
        if not isinstance(message, AdminRegisterMessage):
            self._send_admin_error(connection_id, "Must register first")
            return
        if not secrets.compare_digest(message.secret.encode(), self.secret.encode()):
            logging.warning("Admin registration failed: invalid secret")
            self._send_admin_error(connection_id, "Invalid secret")
            return

        self.admin_registered = True
        logging.info(f"Admin registered for session {message.session_id}")
        self._send_to_admin(AdminRegisteredMessage(session_id=message.session_id))
        if self.player_connections:
            self._send_to_admin(PlayerRosterMessage(connections=list(self.player_connections)))

    def handle_admin_close(self, connection_id: str) -> None:
        if connection_id != self.admin_connection_id:
            return
        self.admin_connection_id = None
        self.admin_registered = False
        logging.info(f"Admin disconnected; notifying {len(self.player_connections)} player(s)")
        self.manager.broadcast(
            serialize_event(ErrorEvent(message=HOST_DISCONNECTED)), list(self.player_connections)
        )

    # ==== Player sockets ======================================================

    def handle_player_connection(self, connection_id: str) -> bool:
        """Announce a new player socket to the admin

        Args:
            connection_id (str): Connection id issued for the player socket

        Returns:
            bool: False if no admin is registered; the player is told to retry
        """
        if self.admin_connection_id is None or not self.admin_registered:
            self.manager.send_personal_message(
                serialize_event(ErrorEvent(message=SESSION_UNAVAILABLE)), connection_id
            )
            return False

        self.player_connections[connection_id] = datetime.now()
        self._send_to_admin(PlayerConnectedMessage(connection_id=connection_id))
        return True

    def handle_player_message(self, connection_id: str, raw: str) -> None:
        if connection_id not in self.player_connections:
            return
        if not self.admin_registered:
            self.dropped_upstream += 1
            logging.debug(
                f"Dropped upstream from {connection_id}: no admin "
                f"(dropped so far: {self.dropped_upstream})"
            )
            return
        self._send_to_admin(UpstreamMessage(connection_id=connection_id, command=raw))

    def handle_player_close(self, connection_id: str) -> None:
        if self.player_connections.pop(connection_id, None) is None:
            return
        if self.admin_registered:
            self._send_to_admin(PlayerDisconnectedMessage(connection_id=connection_id))
