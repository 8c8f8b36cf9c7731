import json
import os
import sys

import numpy as np
import pytest

# Ensure the repository root (containing the `wordbingo` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
REPO_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from wordbingo.domain.card import Card  # noqa: E402

WORDS = [
    "synergy", "leverage", "bandwidth", "pivot", "disrupt", "paradigm",
    "roadmap", "stakeholder", "deliverable", "alignment", "scalable", "agile",
    "holistic", "ecosystem", "touch base", "circle back", "deep dive", "low-hanging fruit",
    "move the needle", "best practice", "win-win", "bottom line", "game changer", "quick win",
    "value add", "core competency", "thought leader", "actionable", "mindshare", "offline",
]


class RecordingManager:
    """Stands in for ConnectionManager: records every frame per connection."""

    def __init__(self):
        self.sent = []

    def send_personal_message(self, message, connection_id):
        self.sent.append((connection_id, json.loads(message)))

    def broadcast(self, message, connection_ids=None):
        for connection_id in connection_ids or []:
            self.send_personal_message(message, connection_id)

    def messages_for(self, connection_id):
        return [message for target, message in self.sent if target == connection_id]

    def of_type(self, connection_id, message_type):
        return [
            message
            for message in self.messages_for(connection_id)
            if message.get("type", message.get("envelope")) == message_type
        ]

    def last(self, connection_id):
        messages = self.messages_for(connection_id)
        return messages[-1] if messages else None

    def clear(self):
        self.sent = []


class RecordingTransport:
    """Stands in for the admin relay client on the admin side."""

    def __init__(self):
        self.direct = []
        self.broadcasts = []

    def send_to_player(self, connection_id, event):
        self.direct.append((connection_id, json.loads(event)))

    def broadcast_to_players(self, event):
        self.broadcasts.append(json.loads(event))

    def messages_for(self, connection_id):
        return [event for target, event in self.direct if target == connection_id]

    def of_type(self, connection_id, event_type):
        return [event for event in self.messages_for(connection_id) if event["type"] == event_type]

    def broadcasts_of_type(self, event_type):
        return [event for event in self.broadcasts if event["type"] == event_type]


def build_card(words=WORDS, player_id="player-1"):
    words = iter(words)
    grid = [["FREE" if (row, col) == (2, 2) else next(words) for col in range(5)] for row in range(5)]
    marked = np.zeros((5, 5), dtype=bool)
    marked[2, 2] = True
    return Card("card-1", player_id, grid, marked)


@pytest.fixture()
def words():
    return list(WORDS)


@pytest.fixture()
def card():
    return build_card()


@pytest.fixture()
def manager():
    return RecordingManager()


@pytest.fixture()
def transport():
    return RecordingTransport()
