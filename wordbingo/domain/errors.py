class BingoError(Exception):
    """Base class for errors raised by the game rules."""


class ValidationError(BingoError):
    """Input was rejected: word list too small, blank or duplicate screen name."""


class GameStateError(BingoError):
    """The operation is not allowed in the current game or session state."""
