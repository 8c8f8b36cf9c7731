import json

import pytest

from conftest import build_card
from wordbingo.converter import DataConverter
from wordbingo.domain.session import PlayerScore
from wordbingo.models.protocol import (
    CardDealtEvent,
    CornersPattern,
    CreateSessionCommand,
    DiagonalPattern,
    ErrorEvent,
    GameStatusEvent,
    HorizontalPattern,
    JoinCommand,
    JoinedEvent,
    LeaderboardEntryModel,
    LeaderboardEvent,
    MarkResultEvent,
    MarkWordCommand,
    PlayerJoinedEvent,
    PlayerLeftEvent,
    PlayerWonEvent,
    RelayStatusEvent,
    SessionCreatedEvent,
    StartGameCommand,
    StartNewRoundCommand,
    VerticalPattern,
    parse_command,
    parse_event,
    serialize_command,
    serialize_event,
)
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


def test_parse_join_command_uses_camel_case_keys():
    command = parse_command('{"type": "join", "screenName": "Alice"}')
    assert isinstance(command, JoinCommand)
    assert command.screen_name == "Alice"


def test_parse_create_session_command():
    command = parse_command(json.dumps({"type": "create_session", "words": ["a", "b"]}))
    assert isinstance(command, CreateSessionCommand)
    assert command.words == ["a", "b"]


def test_parse_command_accepts_bytes():
    assert isinstance(parse_command(b'{"type": "start_game"}'), StartGameCommand)


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        "[1, 2, 3]",
        '"join"',
        "{}",
        '{"type": "fly_away"}',
        '{"type": "join"}',
        '{"type": "join", "screenName": 42}',
        '{"type": "mark_word", "word": null}',
        '{"type": "create_session", "words": "synergy"}',
        '{"type": "create_session", "words": [1, 2]}',
    ],
)
def test_parse_command_rejects_invalid_frames(raw):
    assert parse_command(raw) is None


def test_serialize_command_writes_camel_case():
    assert json.loads(serialize_command(JoinCommand(screen_name="Bob"))) == {
        "type": "join",
        "screenName": "Bob",
    }
    assert json.loads(serialize_command(MarkWordCommand(word="pivot"))) == {
        "type": "mark_word",
        "word": "pivot",
    }


def test_joined_event_round_trips():
    event = JoinedEvent(player_id="p1", screen_name="Alice", game_status="waiting", round=0)
    payload = json.loads(serialize_event(event))
    assert payload == {
        "type": "joined",
        "playerId": "p1",
        "screenName": "Alice",
        "gameStatus": "waiting",
        "round": 0,
    }
    assert parse_event(serialize_event(event)) == event


def test_leaderboard_omits_missing_last_win_round():
    event = LeaderboardEvent(
        entries=[
            LeaderboardEntryModel(
                player_id="p1", screen_name="Alice", total_points=100, rounds_won=1, last_win_round=1
            ),
            LeaderboardEntryModel(player_id="p2", screen_name="Bob", total_points=0, rounds_won=0),
        ]
    )
    entries = json.loads(serialize_event(event))["entries"]
    assert entries[0]["lastWinRound"] == 1
    assert "lastWinRound" not in entries[1]


def test_parse_event_rejects_unknown_type_and_bad_fields():
    assert parse_event('{"type": "weather", "message": "sunny"}') is None
    assert parse_event('{"type": "error"}') is None
    assert parse_event('{"type": "game_status", "status": "active", "round": "1"}') is None
    assert parse_event('{"type": "relay_status", "status": "sleepy"}') is None


def test_parse_event_reads_player_won_pattern():
    event = parse_event(
        '{"type": "player_won", "winnerName": "Alice", '
        '"pattern": {"type": "diagonal", "direction": "tr-bl"}, "roundNumber": 3}'
    )
    assert event.pattern.direction == "tr-bl"
    assert event.round_number == 3


def test_relay_envelopes_round_trip():
    register = AdminRegisterMessage(session_id="s1", secret="hunter2")
    assert json.loads(serialize_relay_message(register)) == {
        "envelope": "admin_register",
        "sessionId": "s1",
        "secret": "hunter2",
    }
    assert parse_relay_message(serialize_relay_message(register)) == register

    upstream = parse_relay_message(
        '{"envelope": "upstream", "connectionId": "c1", "command": "{\\"type\\": \\"start_game\\"}"}'
    )
    assert isinstance(upstream, UpstreamMessage)
    assert json.loads(upstream.command) == {"type": "start_game"}


def test_relay_envelope_payloads_stay_opaque():
    event = serialize_event(ErrorEvent(message="boom"))
    downstream = DownstreamMessage(target="c1", event=event)
    parsed = parse_relay_message(serialize_relay_message(downstream))
    assert parsed.event == event


@pytest.mark.parametrize(
    "raw",
    [
        "nope",
        '{"type": "upstream"}',
        '{"envelope": "teleport"}',
        '{"envelope": "player_roster", "connections": "c1"}',
        '{"envelope": "downstream", "target": "c1"}',
    ],
)
def test_parse_relay_message_rejects_invalid_envelopes(raw):
    assert parse_relay_message(raw) is None


def test_roster_envelope_keeps_order():
    roster = parse_relay_message('{"envelope": "player_roster", "connections": ["b", "a"]}')
    assert isinstance(roster, PlayerRosterMessage)
    assert roster.connections == ["b", "a"]


def test_converter_builds_card_dealt_and_leaderboard():
    converter = DataConverter()
    card = build_card()
    dealt = json.loads(serialize_event(converter.convert_card_to_card_dealt(2, card)))
    assert dealt["type"] == "card_dealt"
    assert dealt["roundNumber"] == 2
    assert dealt["grid"] == card.get_grid()
    assert dealt["marked"][2][2] is True

    board = converter.convert_scores_to_leaderboard(
        [PlayerScore(player_id="p1", screen_name="Alice", total_points=0, rounds_won=0)]
    )
    assert board.entries[0].last_win_round is None


def test_converter_validates_win_pattern():
    won = DataConverter().convert_win_to_player_won("Alice", {"type": "corners"}, 1)
    assert json.loads(serialize_event(won)) == {
        "type": "player_won",
        "winnerName": "Alice",
        "pattern": {"type": "corners"},
        "roundNumber": 1,
    }
    assert won.pattern.type == "corners"


COMMANDS = [
    CreateSessionCommand(words=["alpha", "beta"]),
    StartGameCommand(),
    StartNewRoundCommand(),
    JoinCommand(screen_name="Alice"),
    MarkWordCommand(word="pivot"),
]

EVENTS = [
    SessionCreatedEvent(session_id="s1"),
    JoinedEvent(player_id="p1", screen_name="Alice", game_status="active", round=2),
    CardDealtEvent(round_number=1, grid=[["a", "FREE"]], marked=[[False, True]]),
    PlayerJoinedEvent(player_id="p1", screen_name="Alice", player_count=1),
    PlayerLeftEvent(player_id="p1", screen_name="Alice", player_count=0),
    MarkResultEvent(success=True, word="pivot", bingo=False, round_over=False),
    PlayerWonEvent(winner_name="Alice", pattern=HorizontalPattern(row=0), round_number=1),
    PlayerWonEvent(winner_name="Alice", pattern=VerticalPattern(col=4), round_number=1),
    PlayerWonEvent(winner_name="Alice", pattern=DiagonalPattern(direction="tl-br"), round_number=2),
    PlayerWonEvent(winner_name="Alice", pattern=CornersPattern(), round_number=3),
    GameStatusEvent(status="finished", round=1),
    LeaderboardEvent(
        entries=[
            LeaderboardEntryModel(
                player_id="p1", screen_name="Alice", total_points=100, rounds_won=1, last_win_round=1
            )
        ]
    ),
    ErrorEvent(message="nope"),
    RelayStatusEvent(status="connected"),
]

ENVELOPES = [
    AdminRegisterMessage(session_id="s1", secret="x"),
    AdminRegisteredMessage(session_id="s1"),
    AdminErrorMessage(message="Invalid secret"),
    PlayerConnectedMessage(connection_id="c1"),
    PlayerDisconnectedMessage(connection_id="c1"),
    PlayerRosterMessage(connections=["c1", "c2"]),
    UpstreamMessage(connection_id="c1", command='{"type":"start_game"}'),
    DownstreamMessage(target="c1", event='{"type":"error","message":"x"}'),
    BroadcastMessage(event='{"type":"game_status","status":"active","round":1}'),
]


@pytest.mark.parametrize("command", COMMANDS, ids=lambda command: command.type)
def test_every_command_survives_serialize_and_parse(command):
    assert parse_command(serialize_command(command)) == command


@pytest.mark.parametrize("event", EVENTS, ids=lambda event: event.type)
def test_every_event_survives_serialize_and_parse(event):
    assert parse_event(serialize_event(event)) == event


@pytest.mark.parametrize("envelope", ENVELOPES, ids=lambda envelope: envelope.envelope)
def test_every_envelope_survives_serialize_and_parse(envelope):
    assert parse_relay_message(serialize_relay_message(envelope)) == envelope
