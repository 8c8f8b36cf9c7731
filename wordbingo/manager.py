import asyncio
import logging
from typing import Callable, Dict, Iterable, Optional

from fastapi import WebSocket, WebSocketDisconnect
from uuid6 import uuid7


class ConnectionManager:
    """Registry of live sockets keyed by an opaque connection id.

    Sends are synchronous: they enqueue onto the socket's outbox and a
    per-socket writer (``pump``) delivers them in order. Messages for an
    unknown connection are dropped and counted.
    """

    def __init__(self):
        self.active_connections: Dict[str, WebSocket] = {}
        self.outboxes: Dict[str, asyncio.Queue] = {}
        self.dropped_messages = 0

    async def connect(self, websocket: WebSocket) -> str:
        """Accept a websocket and issue its connection id

        Args:
            websocket (WebSocket): The socket to accept

        Returns:
            str: Connection id used everywhere else to address this socket
        """
        await websocket.accept()
        connection_id = str(uuid7())
        self.active_connections[connection_id] = websocket
        self.outboxes[connection_id] = asyncio.Queue()
        logging.info(f"Connection opened: {connection_id}")
        return connection_id

    def disconnect(self, connection_id: str):
        """Forget a connection and stop its writer once the outbox drains

        Args:
            connection_id (str): Connection to forget
        """
        self.active_connections.pop(connection_id, None)
        outbox = self.outboxes.pop(connection_id, None)
        if outbox is not None:
            outbox.put_nowait(None)
        logging.info(f"Connection closed: {connection_id}")

    def send_personal_message(self, message: str, connection_id: str):
        outbox = self.outboxes.get(connection_id)
        if outbox is None:
            self.dropped_messages += 1
            logging.debug(
                f"Dropped message for unknown connection {connection_id} "
                f"(dropped so far: {self.dropped_messages})"
            )
            return
        outbox.put_nowait(message)

    def broadcast(self, message: str, connection_ids: Optional[Iterable[str]] = None):
        targets = list(self.outboxes) if connection_ids is None else list(connection_ids)
        for connection_id in targets:
            self.send_personal_message(message, connection_id)

    async def pump(self, connection_id: str, websocket: WebSocket, outbox: asyncio.Queue):
        """Write queued messages to the socket until the None sentinel

        Messages queued before disconnect() are still written after the id
        is forgotten.

        Args:
            connection_id (str): Connection whose outbox is drained
            websocket (WebSocket): The socket to write to
            outbox (asyncio.Queue): Messages queued for the socket
        """
        while True:
            message = await outbox.get()
            if message is None:
                break
            try:
                await websocket.send_text(message)
            except (WebSocketDisconnect, RuntimeError, OSError) as exc:
                logging.debug(f"Stopped writing to {connection_id}: {exc!r}")
                break

    async def receive_frame(self, websocket: WebSocket) -> str:
        """Wait for the next frame and return it as text

        Binary frames are decoded as UTF-8; one that does not decode becomes
        an empty string, which no codec accepts.

        Raises:
            WebSocketDisconnect: The peer closed the socket
        """
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
        if message.get("text") is not None:
            return message["text"]
        data = message.get("bytes") or b""
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError:
            logging.debug("Received binary frame that is not UTF-8")
            return ""

    async def serve(
        self,
        websocket: WebSocket,
        on_message: Callable[[str, str], None],
        on_close: Optional[Callable[[str], None]] = None,
        on_open: Optional[Callable[[str], bool]] = None,
        reject_code: int = 1013,
    ):
        """Run one socket: register it, feed frames to the handler, clean up on close

        Args:
            websocket (WebSocket): The incoming socket
            on_message (Callable[[str, str], None]): Called with (connection_id, raw) per frame
            on_close (Optional[Callable[[str], None]]): Called once the socket closes
            on_open (Optional[Callable[[str], bool]]): Called after accept; returning False
                flushes pending messages and closes the socket with reject_code
            reject_code (int): Close code used when on_open rejects the socket
        """
        connection_id = await self.connect(websocket)
        writer = asyncio.create_task(
            self.pump(connection_id, websocket, self.outboxes[connection_id])
        )
        accepted = True
        try:
            if on_open is not None:
                accepted = on_open(connection_id) is not False
            while accepted:
                raw = await self.receive_frame(websocket)
                on_message(connection_id, raw)
        except WebSocketDisconnect as exc:
            logging.info(f"Socket {connection_id} disconnected with code {exc.code}")
        finally:
            if accepted and on_close is not None:
                on_close(connection_id)
            self.disconnect(connection_id)
            await writer

        if not accepted:
            await websocket.close(code=reject_code)
