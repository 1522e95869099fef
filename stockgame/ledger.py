import logging
import math

from . import config

logger = logging.getLogger(__name__)


class Ledger:
    """Credit balance kept in the host wallet as two-decimal text."""

    def __init__(self, store, key=config.CREDITS_KEY, starting_balance=config.STARTING_CREDITS):
        self.store = store
        self.key = key
        self.starting_balance = starting_balance

    def get_balance(self):
        raw = self.store.get(self.key)
        try:
            balance = float(raw)
        except (TypeError, ValueError):
            balance = math.nan
        if math.isnan(balance):
            if raw is not None:
                logger.warning("Unreadable credit balance %r, resetting to %.2f", raw, self.starting_balance)
            balance = self.starting_balance
            self.set_balance(balance)
        return balance

    def set_balance(self, amount):
        amount = round(float(amount), 2)
        self.store.set(self.key, f'{amount:.2f}')
        return amount
