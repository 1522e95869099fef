"""Shared test doubles."""


class ScriptedRandom:
    """Stand-in for a numpy Generator that replays fixed draws from [0, 1)."""

    def __init__(self, *draws):
        self.draws = list(draws)

    def random(self):
        return self.draws.pop(0)


def set_price(session, price):
    """Pin the live price for a trade."""
    session.process.current_value = price
