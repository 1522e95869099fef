"""Game session: the price series, the player's position and settings.

Every user-facing operation lives here and takes its target explicitly.
Trades validate first and only then touch the ledger, the portfolio, the
markers and the lifetime stats, so a rejected trade changes nothing.
"""

import logging

from . import config
from . import portfolio as trading
from .chart import ChartRenderer
from .errors import InvalidAmount, InsufficientShares
from .portfolio import Portfolio
from .price import PriceProcess
from .series import TimeSeriesStore

logger = logging.getLogger(__name__)


def parse_period(value):
    try:
        period = int(value)
    except (TypeError, ValueError):
        raise InvalidAmount('Update interval must be a whole number of milliseconds')
    if period <= 0:
        raise InvalidAmount('Update interval must be positive')
    return period


def parse_window(value):
    if value == 'all':
        return value
    try:
        window = int(value)
    except (TypeError, ValueError):
        raise InvalidAmount("Time window must be a number of seconds or 'all'")
    if window <= 0:
        raise InvalidAmount('Time window must be positive')
    return window


class GameSession:

    def __init__(self, gateway, ledger, renderer=None, rng=None):
        self.gateway = gateway
        self.ledger = ledger
        self.renderer = renderer if renderer is not None else ChartRenderer()
        self.store = TimeSeriesStore()
        self.process = PriceProcess(rng=rng)
        self.portfolio = Portfolio()
        self.stats = gateway.load_stats()
        self.tick_period = config.DEFAULT_TICK_PERIOD
        self.time_window = config.DEFAULT_TIME_WINDOW
        self.buy_amount = config.DEFAULT_BUY_AMOUNT
        self.sell_amount = config.DEFAULT_SELL_AMOUNT

    @classmethod
    def load(cls, gateway, ledger, renderer=None, rng=None):
        """Session restored from the saved snapshot, or a fresh one."""
        session = cls(gateway, ledger, renderer=renderer, rng=rng)
        session.restore(gateway.load_session())
        return session

    @property
    def current_value(self):
        return self.process.current_value

    @property
    def time_conversion(self):
        """In-game seconds that pass per real second."""
        return round(1000 / self.tick_period, 1)

    # ── State ──

    def restore(self, data):
        if data:
            self.store = TimeSeriesStore(data['samples'], data['buy_markers'], data['sell_markers'])
            self.process.current_value = data['current_value']
            self.process.tick_counter = data['time']
            self.time_window = data['time_window']
            self.tick_period = data['tick_period']
            self.portfolio = data['portfolio']
            self.buy_amount = data['buy_amount']
            self.sell_amount = data['sell_amount']
            if self.store.samples:
                # The counter always runs ahead of the newest sample
                self.process.tick_counter = max(self.process.tick_counter, self.store.current_tick + 1)
            logger.info("Loaded session: %d samples, %.2f shares", len(self.store), self.portfolio.shares_owned)
        if not self.store.samples:
            self.process.seed(self.store)
        self.render()

    def snapshot(self):
        data = self.store.to_dict()
        data.update({
            'current_value': self.current_value,
            'time': self.process.tick_counter,
            'time_window': self.time_window,
            'tick_period': self.tick_period,
            'portfolio': self.portfolio.to_dict(),
            'buy_amount': self.buy_amount,
            'sell_amount': self.sell_amount,
        })
        return data

    def save(self):
        self.gateway.save_session(self.snapshot())

    def reset(self):
        """Fresh series and empty position. Lifetime stats are kept."""
        self.store.clear()
        self.portfolio = Portfolio()
        self.time_window = config.DEFAULT_TIME_WINDOW
        self.process.seed(self.store)
        self.gateway.clear_session()
        logger.info("Session reset, opening price %.2f", self.current_value)
        self.render()

    # ── Tick / render ──

    def tick(self):
        sample = self.process.step(self.store)
        self.render()
        return sample

    def render(self):
        return self.renderer.draw(self.store, self.time_window, self.current_value)

    # ── Trading ──

    def buy_shares(self, amount):
        price = self.current_value
        result = trading.buy(self.portfolio, amount, price, self.ledger.get_balance())

        self.ledger.set_balance(result.credits)
        self.portfolio = result.portfolio
        # Both marker lists start over on the first buy after being flat
        self.store.mark_buy(price, self.store.current_tick, fresh=result.fresh_position)
        self.stats.record_buy(result)
        self.gateway.save_stats(self.stats)
        self.buy_amount = config.DEFAULT_BUY_AMOUNT
        self.render()
        return result

    def _commit_sell(self, result):
        self.ledger.set_balance(result.credits)
        self.portfolio = result.portfolio
        self.store.mark_sell(result.price, self.store.current_tick)
        self.stats.record_sell(result)
        self.gateway.save_stats(self.stats)
        self.render()
        return result

    def sell_all(self):
        result = trading.sell_all(self.portfolio, self.current_value, self.ledger.get_balance())
        return self._commit_sell(result)

    def sell_amount_of(self, amount):
        result = trading.sell(self.portfolio, amount, self.current_value, self.ledger.get_balance())
        self.sell_amount = config.DEFAULT_SELL_AMOUNT
        return self._commit_sell(result)

    def sell_percentage(self, percentage):
        if self.portfolio.is_empty:
            raise InsufficientShares("You don't own any shares")
        amount = trading.percentage_amount(self.portfolio, percentage)
        return self.sell_amount_of(amount)

    def buy_quote(self, amount):
        amount = trading.parse_amount(amount)
        return {'amount': amount, 'cost': round(amount * self.current_value, 2)}

    def max_buy(self):
        amount = trading.max_affordable(self.ledger.get_balance(), self.current_value)
        self.buy_amount = amount
        return {'amount': amount, 'cost': round(amount * self.current_value, 2)}

    # ── Settings ──

    def set_tick_period(self, period):
        self.tick_period = parse_period(period)
        return self.tick_period

    def set_time_window(self, window):
        self.time_window = parse_window(window)
        self.render()
        return self.time_window

    # ── Read models ──

    def dashboard(self):
        price = self.current_value
        position = self.portfolio
        profit_loss = position.unrealized(price)
        return {
            'credits': self.ledger.get_balance(),
            'current_price': round(price, 2),
            'shares_owned': round(position.shares_owned, 2),
            'average_cost': round(position.average_cost, 2),
            'total_value': round(position.market_value(price), 2),
            'profit_loss': round(profit_loss, 2),
            'profit_loss_color': config.PROFIT_COLOR if profit_loss >= 0 else config.LOSS_COLOR,
            'change_pct': round(self.store.change_since_start(price), 2),
            'buy_amount': self.buy_amount,
            'buy_cost': round(float(self.buy_amount or 0) * price, 2),
            'sell_amount': self.sell_amount,
            'can_sell': not position.is_empty,
            'tick': self.store.current_tick,
            'tick_period': self.tick_period,
            'time_conversion': f'1 real-time second = {self.time_conversion:.1f} in-game seconds',
            'time_window': self.time_window,
            'time_window_options': config.TIME_WINDOW_OPTIONS,
        }
