"""Client <-> server wire protocol.

Every message is a JSON object discriminated by its ``type`` field. Models are
strict: a field of the wrong JSON type is rejected, never coerced.
"""

import logging
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    class Config:
        strict = True
        alias_generator = to_camel
        populate_by_name = True


# ==============================================================================
# ==== Client -> server commands ===============================================
# ==============================================================================


class CreateSessionCommand(WireModel):
    type: Literal["create_session"] = "create_session"
    words: List[str]


class StartGameCommand(WireModel):
    type: Literal["start_game"] = "start_game"


class StartNewRoundCommand(WireModel):
    type: Literal["start_new_round"] = "start_new_round"


class JoinCommand(WireModel):
    type: Literal["join"] = "join"
    screen_name: str


class MarkWordCommand(WireModel):
    type: Literal["mark_word"] = "mark_word"
    word: str


Command = Annotated[
    Union[
        CreateSessionCommand,
        StartGameCommand,
        StartNewRoundCommand,
        JoinCommand,
        MarkWordCommand,
    ],
    Field(discriminator="type"),
]


# ==============================================================================
# ==== Win patterns and leaderboard ============================================
# ==============================================================================


class HorizontalPattern(WireModel):
    type: Literal["horizontal"] = "horizontal"
    row: int


class VerticalPattern(WireModel):
    type: Literal["vertical"] = "vertical"
    col: int


class DiagonalPattern(WireModel):
    type: Literal["diagonal"] = "diagonal"
    direction: Literal["tl-br", "tr-bl"]


class CornersPattern(WireModel):
    type: Literal["corners"] = "corners"


WinPatternModel = Annotated[
    Union[HorizontalPattern, VerticalPattern, DiagonalPattern, CornersPattern],
    Field(discriminator="type"),
]


class LeaderboardEntryModel(WireModel):
    player_id: str
    screen_name: str
    total_points: int
    rounds_won: int
    last_win_round: Optional[int] = None


# ==============================================================================
# ==== Server -> client events =================================================
# ==============================================================================


class SessionCreatedEvent(WireModel):
    type: Literal["session_created"] = "session_created"
    session_id: str


class JoinedEvent(WireModel):
    type: Literal["joined"] = "joined"
    player_id: str
    screen_name: str
    game_status: str
    round: int


class CardDealtEvent(WireModel):
    type: Literal["card_dealt"] = "card_dealt"
    round_number: int
    grid: List[List[str]]
    marked: List[List[bool]]


class PlayerJoinedEvent(WireModel):
    type: Literal["player_joined"] = "player_joined"
    player_id: str
    screen_name: str
    player_count: int


class PlayerLeftEvent(WireModel):
    type: Literal["player_left"] = "player_left"
    player_id: str
    screen_name: str
    player_count: int


class MarkResultEvent(WireModel):
    type: Literal["mark_result"] = "mark_result"
    success: bool
    word: str
    bingo: bool
    round_over: bool


class PlayerWonEvent(WireModel):
    type: Literal["player_won"] = "player_won"
    winner_name: str
    pattern: WinPatternModel
    round_number: int


class GameStatusEvent(WireModel):
    type: Literal["game_status"] = "game_status"
    status: str
    round: int


class LeaderboardEvent(WireModel):
    type: Literal["leaderboard"] = "leaderboard"
    entries: List[LeaderboardEntryModel]


class ErrorEvent(WireModel):
    type: Literal["error"] = "error"
    message: str


class RelayStatusEvent(WireModel):
    type: Literal["relay_status"] = "relay_status"
    status: Literal["disconnected", "connecting", "connected"]


ServerEvent = Annotated[
    Union[
        SessionCreatedEvent,
        JoinedEvent,
        CardDealtEvent,
        PlayerJoinedEvent,
        PlayerLeftEvent,
        MarkResultEvent,
        PlayerWonEvent,
        GameStatusEvent,
        LeaderboardEvent,
        ErrorEvent,
        RelayStatusEvent,
    ],
    Field(discriminator="type"),
]

command_adapter = TypeAdapter(Command)
event_adapter = TypeAdapter(ServerEvent)
win_pattern_adapter = TypeAdapter(WinPatternModel)


def parse_command(raw: Union[str, bytes]) -> Optional[Command]:
    """Parse a client command.

    Args:
        raw (Union[str, bytes]): Text frame received from a player or admin socket

    Returns:
        Optional[Command]: The command, or None if the frame is not a valid command
    """
    try:
        return command_adapter.validate_json(raw)
    except ValidationError as exc:
        logging.debug(f"Rejected command: {exc.error_count()} error(s)")
        return None


def parse_event(raw: Union[str, bytes]) -> Optional[ServerEvent]:
    try:
        return event_adapter.validate_json(raw)
    except ValidationError as exc:
        logging.debug(f"Rejected event: {exc.error_count()} error(s)")
        return None


def serialize_command(command: WireModel) -> str:
    return command.model_dump_json(by_alias=True, exclude_none=True)


def serialize_event(event: WireModel) -> str:
    return event.model_dump_json(by_alias=True, exclude_none=True)
