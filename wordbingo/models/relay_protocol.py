"""Relay envelope protocol for admin <-> relay websocket multiplexing.

Envelopes are discriminated by their ``envelope`` field. The ``command`` and
``event`` payloads are raw protocol frames and are never decoded by the relay.
"""

import logging
from typing import Annotated, List, Literal, Optional, Union

from pydantic import Field, TypeAdapter, ValidationError

from wordbingo.models.protocol import WireModel


# Admin -> relay: registration handshake
class AdminRegisterMessage(WireModel):
    envelope: Literal["admin_register"] = "admin_register"
    session_id: str
    secret: str


class AdminRegisteredMessage(WireModel):
    envelope: Literal["admin_registered"] = "admin_registered"
    session_id: str


class AdminErrorMessage(WireModel):
    envelope: Literal["admin_error"] = "admin_error"
    message: str


# Relay -> admin: player connection lifecycle
class PlayerConnectedMessage(WireModel):
    envelope: Literal["player_connected"] = "player_connected"
    connection_id: str


class PlayerDisconnectedMessage(WireModel):
    envelope: Literal["player_disconnected"] = "player_disconnected"
    connection_id: str


class PlayerRosterMessage(WireModel):
    envelope: Literal["player_roster"] = "player_roster"
    connections: List[str]


# Relay -> admin: a player's raw command
class UpstreamMessage(WireModel):
    envelope: Literal["upstream"] = "upstream"
    connection_id: str
    command: str


# Admin -> relay: raw events for one player or all of them
class DownstreamMessage(WireModel):
    envelope: Literal["downstream"] = "downstream"
    target: str
    event: str


class BroadcastMessage(WireModel):
    envelope: Literal["broadcast"] = "broadcast"
    event: str


RelayMessage = Annotated[
    Union[
        AdminRegisterMessage,
        AdminRegisteredMessage,
        AdminErrorMessage,
        PlayerConnectedMessage,
        PlayerDisconnectedMessage,
        PlayerRosterMessage,
        UpstreamMessage,
        DownstreamMessage,
        BroadcastMessage,
    ],
    Field(discriminator="envelope"),
]

relay_message_adapter = TypeAdapter(RelayMessage)


def parse_relay_message(raw: Union[str, bytes]) -> Optional[RelayMessage]:
    try:
        return relay_message_adapter.validate_json(raw)
    except ValidationError as exc:
        logging.debug(f"Rejected relay envelope: {exc.error_count()} error(s)")
        return None


def serialize_relay_message(message: WireModel) -> str:
    return message.model_dump_json(by_alias=True, exclude_none=True)
