import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional

import websockets
from apscheduler.jobstores.base import JobLookupError
from websockets.exceptions import WebSocketException

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

DISCONNECTED = "disconnected"
CONNECTING = "connecting"
CONNECTED = "connected"

RECONNECT_DELAY = 3.0


class AdminRelayClient:
    """The admin process's single outbound connection to the relay.

    disconnected -> connecting -> connected (after admin_registered) -> disconnected
    -> reconnect after a fixed delay, until disconnect() is called.

    Player-directed sends are best effort: while the socket is not open they
    are dropped and counted, never queued for later.
    """

    def __init__(
        self,
        scheduler,
        on_player_command: Callable[[str, str], None],
        on_player_connected: Callable[[str], None],
        on_player_disconnected: Callable[[str], None],
        on_player_roster: Callable[[List[str]], None],
        on_status_change: Callable[[str], None],
        reconnect_delay: float = RECONNECT_DELAY,
        connect_factory=websockets.connect,
    ):
        self.scheduler = scheduler
        self.on_player_command = on_player_command
        self.on_player_connected = on_player_connected
        self.on_player_disconnected = on_player_disconnected
        self.on_player_roster = on_player_roster
        self.on_status_change = on_status_change
        self.reconnect_delay = reconnect_delay
        self.connect_factory = connect_factory

        self.status = DISCONNECTED
        self.dropped_messages = 0
        self._relay_url: Optional[str] = None
        self._session_id: Optional[str] = None
        self._secret: Optional[str] = None
        self._should_reconnect = False
        self._task: Optional[asyncio.Task] = None
        self._reconnect_job = None
        self._outbox: Optional[asyncio.Queue] = None

    def _set_status(self, status: str) -> None:
        if status == self.status:
            return
        self.status = status
        logging.info(f"Relay status: {status}")
        self.on_status_change(status)

    def connect(self, relay_url: str, session_id: str, secret: str) -> None:
        """Open the relay connection and keep it open until disconnect()

        Args:
            relay_url (str): Admin endpoint of the relay, e.g. wss://host/admin
            session_id (str): Session id announced in admin_register
            secret (str): Shared relay secret
        """
        self._relay_url = relay_url
        self._session_id = session_id
        self._secret = secret
        self._should_reconnect = True
        self._start()

    def _start(self) -> None:
        if self._task is not None and not self._task.done():
            logging.debug("Relay connection already running")
            return
        self._set_status(CONNECTING)
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        try:
            async with self.connect_factory(self._relay_url) as websocket:
                outbox: asyncio.Queue = asyncio.Queue()
                writer = asyncio.create_task(self._pump(websocket, outbox))
                self._outbox = outbox
                try:
                    outbox.put_nowait(
                        serialize_relay_message(
                            AdminRegisterMessage(session_id=self._session_id, secret=self._secret)
                        )
                    )
                    async for raw in websocket:
                        self._handle_envelope(raw)
                finally:
                    self._outbox = None
                    writer.cancel()
        except (OSError, asyncio.TimeoutError, WebSocketException) as exc:
            logging.warning(f"Relay connection lost: {exc!r}")
        finally:
            # A task cancelled by disconnect() is no longer current and must not reconnect.
            if self._task is asyncio.current_task():
                self._task = None
                self._set_status(DISCONNECTED)
                if self._should_reconnect:
                    self._schedule_reconnect()

    async def _pump(self, websocket, outbox: asyncio.Queue) -> None:
        while True:
            message = await outbox.get()
            try:
                await websocket.send(message)
            except WebSocketException as exc:
                logging.debug(f"Stopped writing to relay: {exc!r}")
                return

    def _handle_envelope(self, raw) -> None:
        if isinstance(raw, bytes):
            try:
                raw = raw.decode("utf-8")
            except UnicodeDecodeError:
                logging.debug("Ignoring binary envelope from relay that is not UTF-8")
                return
        message = parse_relay_message(raw)
        if message is None:
            logging.debug("Ignoring malformed envelope from relay")
            return

        if isinstance(message, AdminRegisteredMessage):
            self._set_status(CONNECTED)
        elif isinstance(message, AdminErrorMessage):
            logging.warning(f"Relay rejected admin: {message.message}")
        elif isinstance(message, UpstreamMessage):
            self.on_player_command(message.connection_id, message.command)
        elif isinstance(message, PlayerConnectedMessage):
            self.on_player_connected(message.connection_id)
        elif isinstance(message, PlayerDisconnectedMessage):
            self.on_player_disconnected(message.connection_id)
        elif isinstance(message, PlayerRosterMessage):
            self.on_player_roster(message.connections)

    def _schedule_reconnect(self) -> None:
        run_date = datetime.now() + timedelta(seconds=self.reconnect_delay)
        self._reconnect_job = self.scheduler.add_job(self._reconnect, "date", run_date=run_date)
        logging.info(f"Relay reconnect scheduled in {self.reconnect_delay}s")

    async def _reconnect(self) -> None:
        self._reconnect_job = None
        if self._should_reconnect:
            self._start()

    def disconnect(self) -> None:
        """Close the relay connection and stop reconnecting."""
        self._should_reconnect = False
        if self._reconnect_job is not None:
            try:
                self._reconnect_job.remove()
            except JobLookupError:
                logging.debug("Reconnect job already ran")
            self._reconnect_job = None
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self._set_status(DISCONNECTED)

    def _send(self, message) -> None:
        if self._outbox is None:
            self.dropped_messages += 1
            logging.debug(
                f"Relay not open; dropped {message.envelope} "
                f"(dropped so far: {self.dropped_messages})"
            )
            return
        self._outbox.put_nowait(serialize_relay_message(message))

    def send_to_player(self, connection_id: str, event: str) -> None:
        self._send(DownstreamMessage(target=connection_id, event=event))

    def broadcast_to_players(self, event: str) -> None:
        self._send(BroadcastMessage(event=event))
