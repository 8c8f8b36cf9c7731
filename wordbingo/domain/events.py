import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Union

from wordbingo.domain.card import Card


@dataclass
class GameStarted:
    round_number: int
    player_id: str
    player_card: Card
    type: str = "game_started"


@dataclass
class NewRoundStarted:
    round_number: int
    player_id: str
    player_card: Card
    type: str = "new_round_started"


@dataclass
class PlayerWon:
    winner_id: str
    winner_name: str
    pattern: Dict
    round_number: int
    timestamp: datetime
    type: str = "player_won"


@dataclass
class PlayerJoined:
    player_id: str
    screen_name: str
    type: str = "player_joined"


@dataclass
class PlayerLeft:
    player_id: str
    screen_name: str
    type: str = "player_left"


GameEvent = Union[GameStarted, NewRoundStarted, PlayerWon, PlayerJoined, PlayerLeft]
EventListener = Callable[[GameEvent], None]


class EventBus:
    """Synchronous fan-out of session events.

    Subscribers run in subscription order. A subscriber that raises is
    logged and skipped; later subscribers and the publisher are unaffected.
    """

    def __init__(self):
        self.listeners: List[EventListener] = []

    def subscribe(self, listener: EventListener) -> None:
        self.listeners.append(listener)

    def unsubscribe(self, listener: EventListener) -> None:
        self.listeners = [registered for registered in self.listeners if registered != listener]

    def publish(self, event: GameEvent) -> None:
        for listener in list(self.listeners):
            try:
                listener(event)
            except Exception:
                logging.exception(f"Event listener failed on {event.type}")
