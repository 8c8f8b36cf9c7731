import json

import pytest

from wordbingo.services.relay_handler import HOST_DISCONNECTED, SESSION_UNAVAILABLE, RelayHandler

SECRET = "correct horse"
ADMIN = "admin-1"
P1 = "player-1"
P2 = "player-2"


def register(relay, connection_id=ADMIN, secret=SECRET):
    relay.handle_admin_message(
        connection_id,
        json.dumps({"envelope": "admin_register", "sessionId": "s1", "secret": secret}),
    )


@pytest.fixture()
def relay(manager):
    return RelayHandler(SECRET, manager)


@pytest.fixture()
def live_relay(relay, manager):
    assert relay.handle_admin_connection(ADMIN) is True
    register(relay)
    manager.clear()
    return relay


def test_admin_registers_with_secret(relay, manager):
    relay.handle_admin_connection(ADMIN)
    register(relay)
    assert relay.admin_registered is True
    assert manager.of_type(ADMIN, "admin_registered") == [
        {"envelope": "admin_registered", "sessionId": "s1"}
    ]
    assert manager.of_type(ADMIN, "player_roster") == []


def test_wrong_secret_is_rejected(relay, manager):
    relay.handle_admin_connection(ADMIN)
    register(relay, secret="guess")
    assert relay.admin_registered is False
    assert manager.of_type(ADMIN, "admin_error")[0]["message"] == "Invalid secret"


def test_admin_must_register_first(relay, manager):
    relay.handle_admin_connection(ADMIN)
    relay.handle_admin_message(ADMIN, json.dumps({"envelope": "broadcast", "event": "{}"}))
    assert manager.of_type(ADMIN, "admin_error")[0]["message"] == "Must register first"


def test_malformed_admin_envelope_is_ignored(relay, manager):
    relay.handle_admin_connection(ADMIN)
    relay.handle_admin_message(ADMIN, "not an envelope")
    assert manager.sent == []


def test_second_admin_is_rejected_while_first_is_registered(live_relay, manager):
    assert live_relay.handle_admin_connection("admin-2") is False
    error = manager.of_type("admin-2", "admin_error")[0]
    assert "already" in error["message"]
    assert live_relay.admin_connection_id == ADMIN

    # Frames from the rejected socket go nowhere.
    register(live_relay, connection_id="admin-2")
    assert manager.of_type("admin-2", "admin_registered") == []


def test_unregistered_admin_slot_can_be_taken_over(relay):
    relay.handle_admin_connection(ADMIN)
    assert relay.handle_admin_connection("admin-2") is True
    assert relay.admin_connection_id == "admin-2"


def test_player_without_admin_is_told_to_retry(relay, manager):
    assert relay.handle_player_connection(P1) is False
    assert manager.of_type(P1, "error") == [{"type": "error", "message": SESSION_UNAVAILABLE}]
    assert P1 not in relay.player_connections


def test_player_connect_and_upstream(live_relay, manager):
    assert live_relay.handle_player_connection(P1) is True
    assert manager.of_type(ADMIN, "player_connected") == [
        {"envelope": "player_connected", "connectionId": P1}
    ]

    raw = '{"type": "join", "screenName": "Alice"}'
    live_relay.handle_player_message(P1, raw)
    upstream = manager.of_type(ADMIN, "upstream")[0]
    assert upstream["connectionId"] == P1
    assert upstream["command"] == raw


def test_invalid_player_frames_are_forwarded_untouched(live_relay, manager):
    live_relay.handle_player_connection(P1)
    live_relay.handle_player_message(P1, "definitely not json")
    assert manager.of_type(ADMIN, "upstream")[0]["command"] == "definitely not json"


def test_downstream_reaches_only_its_target(live_relay, manager):
    live_relay.handle_player_connection(P1)
    live_relay.handle_player_connection(P2)
    event = '{"type":"error","message":"hi"}'

    live_relay.handle_admin_message(
        ADMIN, json.dumps({"envelope": "downstream", "target": P2, "event": event})
    )

    assert manager.messages_for(P2) == [{"type": "error", "message": "hi"}]
    assert manager.messages_for(P1) == []


def test_downstream_to_unknown_target_is_dropped(live_relay, manager):
    live_relay.handle_admin_message(
        ADMIN, json.dumps({"envelope": "downstream", "target": "gone", "event": "{}"})
    )
    assert live_relay.dropped_downstream == 1
    assert manager.sent == []


def test_broadcast_reaches_every_player(live_relay, manager):
    live_relay.handle_player_connection(P1)
    live_relay.handle_player_connection(P2)
    manager.clear()

    live_relay.handle_admin_message(
        ADMIN,
        json.dumps({"envelope": "broadcast", "event": '{"type":"game_status","status":"active","round":1}'}),
    )

    assert manager.of_type(P1, "game_status") == manager.of_type(P2, "game_status")
    assert len(manager.of_type(P1, "game_status")) == 1
    assert manager.messages_for(ADMIN) == []


def test_player_close_notifies_admin(live_relay, manager):
    live_relay.handle_player_connection(P1)
    live_relay.handle_player_close(P1)
    assert manager.of_type(ADMIN, "player_disconnected") == [
        {"envelope": "player_disconnected", "connectionId": P1}
    ]
    assert P1 not in live_relay.player_connections

    live_relay.handle_player_close(P1)
    assert len(manager.of_type(ADMIN, "player_disconnected")) == 1


def test_admin_close_warns_players_and_keeps_their_sockets(live_relay, manager):
    live_relay.handle_player_connection(P1)
    live_relay.handle_admin_close(ADMIN)

    assert manager.of_type(P1, "error") == [{"type": "error", "message": HOST_DISCONNECTED}]
    assert live_relay.admin_connection_id is None
    assert P1 in live_relay.player_connections

    live_relay.handle_player_message(P1, '{"type": "mark_word", "word": "pivot"}')
    assert live_relay.dropped_upstream == 1


def test_reconnecting_admin_gets_roster_of_open_players(live_relay, manager):
    live_relay.handle_player_connection(P1)
    live_relay.handle_player_connection(P2)
    live_relay.handle_admin_close(ADMIN)
    live_relay.handle_player_close(P1)
    manager.clear()

    live_relay.handle_admin_connection("admin-2")
    register(live_relay, connection_id="admin-2")

    types = [message["envelope"] for message in manager.messages_for("admin-2")]
    assert types == ["admin_registered", "player_roster"]
    assert manager.of_type("admin-2", "player_roster")[0]["connections"] == [P2]


def test_close_of_rejected_admin_keeps_registered_admin(live_relay):
    live_relay.handle_admin_connection("admin-2")
    live_relay.handle_admin_close("admin-2")
    assert live_relay.admin_connection_id == ADMIN
    assert live_relay.admin_registered is True
