import math
from dataclasses import dataclass, field, asdict, replace

import pandas as pd

from . import config
from .errors import InvalidAmount, InsufficientFunds, InsufficientShares


@dataclass(frozen=True)
class Portfolio:
    shares_owned: float = 0.0
    average_cost: float = 0.0

    @property
    def is_empty(self):
        return self.shares_owned == 0

    def cost_basis(self):
        return self.shares_owned * self.average_cost

    def market_value(self, price):
        return self.shares_owned * price

    def unrealized(self, price):
        return self.market_value(price) - self.cost_basis()

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class TradeResult:
    side: str
    credits: float
    portfolio: Portfolio
    amount: float
    price: float
    cost: float = 0.0
    profit: float = 0.0
    cost_basis: float = 0.0
    fresh_position: bool = False


def parse_amount(value):
    """Coerce user input to a positive share amount or raise InvalidAmount."""
    if isinstance(value, bool):
        raise InvalidAmount()
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise InvalidAmount()
    if math.isnan(amount) or math.isinf(amount) or amount <= 0:
        raise InvalidAmount()
    return amount


def buy(portfolio, amount, price, credits):
    amount = parse_amount(amount)
    cost = amount * price
    if cost > credits:
        raise InsufficientFunds(cost, credits)

    if portfolio.is_empty:
        # First buy after being flat starts a new position
        average_cost = price
    else:
        total_cost = portfolio.cost_basis() + cost
        average_cost = total_cost / (portfolio.shares_owned + amount)

    updated = Portfolio(portfolio.shares_owned + amount, average_cost)
    return TradeResult(
        side='buy',
        credits=credits - cost,
        portfolio=updated,
        amount=amount,
        price=price,
        cost=cost,
        fresh_position=portfolio.is_empty,
    )


def sell(portfolio, amount, price, credits):
    amount = parse_amount(amount)
    if amount > portfolio.shares_owned:
        raise InsufficientShares()

    proceeds = amount * price
    cost_basis = amount * portfolio.average_cost
    profit = proceeds - cost_basis

    remaining = portfolio.shares_owned - amount
    if remaining < config.SHARE_EPSILON:
        # Account for floating point precision
        updated = Portfolio()
    else:
        updated = replace(portfolio, shares_owned=remaining)

    return TradeResult(
        side='sell',
        credits=credits + proceeds,
        portfolio=updated,
        amount=amount,
        price=price,
        cost=proceeds,
        profit=profit,
        cost_basis=cost_basis,
    )


def sell_all(portfolio, price, credits):
    if portfolio.shares_owned <= 0:
        raise InsufficientShares("You don't own any shares")
    return sell(portfolio, portfolio.shares_owned, price, credits)


def percentage_amount(portfolio, percentage):
    """Share amount for a percentage of current holdings, rounded to 2 decimals."""
    try:
        percentage = float(percentage)
    except (TypeError, ValueError):
        raise InvalidAmount('Percentage must be a number')
    if math.isnan(percentage) or percentage <= 0 or percentage > 100:
        raise InvalidAmount('Percentage must be between 0 and 100')
    return min(round(portfolio.shares_owned * percentage / 100, 2), portfolio.shares_owned)


def max_affordable(credits, price):
    """Largest share amount the balance covers, rounded down to 2 decimals."""
    if price <= 0 or credits <= 0:
        return 0.0
    return math.floor(credits / price * 100) / 100


@dataclass
class TradeStats:
    total_profit: float = 0.0
    total_invested: float = 0.0
    shares_bought: float = 0.0
    shares_sold: float = 0.0
    total_trades: int = 0
    profitable_trades: int = 0
    biggest_win: float = 0.0
    biggest_loss: float = 0.0
    trade_history: list = field(default_factory=list)

    def record_buy(self, result):
        self.total_invested += result.cost
        self.shares_bought += result.amount

    def record_sell(self, result):
        profit = result.profit
        self.shares_sold += result.amount
        self.total_profit += profit
        self.total_trades += 1
        if profit > 0:
            self.profitable_trades += 1
        # Bounds start at 0, so a losing-only history reports a 0 win
        if profit > self.biggest_win:
            self.biggest_win = profit
        if profit < self.biggest_loss:
            self.biggest_loss = profit
        self.trade_history.append({'profit': profit, 'cost_basis': result.cost_basis})

    @property
    def win_rate(self):
        if not self.total_trades:
            return 0.0
        return round(self.profitable_trades / self.total_trades * 100, 1)

    @property
    def average_profit(self):
        if not self.total_trades:
            return 0.0
        return round(self.total_profit / self.total_trades, 2)

    def history_frame(self):
        """Trade log as a DataFrame with running profit and return per trade."""
        df = pd.DataFrame(self.trade_history, columns=['profit', 'cost_basis'])
        df['cumulative_profit'] = df['profit'].cumsum()
        basis = df['cost_basis'].where(df['cost_basis'] != 0)
        df['return_pct'] = (df['profit'] / basis * 100).fillna(0.0)
        df.index.name = 'trade'
        return df

    def summary(self):
        data = asdict(self)
        data.pop('trade_history')
        data['win_rate'] = self.win_rate
        data['average_profit'] = self.average_profit
        return data

    def to_dict(self):
        return asdict(self)
