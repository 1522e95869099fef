"""Errors raised by the game core.

Trade errors are shown to the player and abort the trade untouched.
PersistenceCorrupt never leaves the persistence layer.
"""


class GameError(Exception):
    pass


class TradeError(GameError):
    """A rejected user action. The message is shown as-is."""


class InvalidAmount(TradeError):
    def __init__(self, message='Please enter a valid amount'):
        super().__init__(message)


class InsufficientFunds(TradeError):
    def __init__(self, needed, available):
        self.needed = needed
        self.available = available
        super().__init__(
            f'Not enough credits. You need {needed:.2f} but only have {available:.2f}'
        )


class InsufficientShares(TradeError):
    def __init__(self, message="You don't have that many shares"):
        super().__init__(message)


class PersistenceCorrupt(GameError):
    """A stored record could not be decoded."""

    def __init__(self, key, reason):
        self.key = key
        self.reason = reason
        super().__init__(f'Stored record {key!r} is corrupt: {reason}')
