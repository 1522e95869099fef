"""Session snapshot and lifetime stats records.

Both records are JSON text in the key-value store. Loading is best
effort: a record that does not parse is logged and dropped, and fields
that are missing or malformed fall back to their defaults one by one.
"""

import json
import logging
import math

from . import config
from .errors import PersistenceCorrupt
from .portfolio import Portfolio, TradeStats
from .series import Marker, Sample

logger = logging.getLogger(__name__)


def _number(data, key, default, minimum=None, maximum=None):
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if not math.isfinite(value):
        return default
    if minimum is not None and value < minimum:
        return default
    if maximum is not None and value > maximum:
        return default
    return value


def _valid_price(value):
    return math.isfinite(value) and 0 < value <= config.PRICE_CEILING


def _samples(raw):
    if not isinstance(raw, list):
        return []
    samples = []
    try:
        for item in raw:
            sample = Sample(int(item['time']), float(item['value']))
            if not _valid_price(sample.value) or (samples and sample.time <= samples[-1].time):
                raise ValueError(f'bad sample {item!r}')
            samples.append(sample)
    except (KeyError, TypeError, ValueError) as e:
        logger.warning("Discarding stored price series: %s", e)
        return []
    return samples


def _markers(raw):
    if not isinstance(raw, list):
        return []
    markers = []
    for item in raw:
        try:
            marker = Marker(float(item['price']), int(item['time']))
            if not math.isfinite(marker.price) or marker.price <= 0:
                raise ValueError(f'bad marker price {marker.price}')
            markers.append(marker)
        except (KeyError, TypeError, ValueError):
            logger.warning("Skipping malformed marker %r", item)
    return markers


def _portfolio(raw):
    if not isinstance(raw, dict):
        return Portfolio()
    shares = float(_number(raw, 'shares_owned', 0.0, minimum=0))
    average = float(_number(raw, 'average_cost', 0.0, minimum=0))
    if shares == 0:
        average = 0.0
    return Portfolio(shares, average)


def _time_window(raw):
    if raw == 'all':
        return raw
    if isinstance(raw, int) and not isinstance(raw, bool) and raw > 0:
        return raw
    return config.DEFAULT_TIME_WINDOW


def _parse(key, text):
    try:
        data = json.loads(text)
    except ValueError as e:
        raise PersistenceCorrupt(key, str(e))
    if not isinstance(data, dict):
        raise PersistenceCorrupt(key, f'expected an object, got {type(data).__name__}')
    return data


def decode_session(text):
    data = _parse(config.SESSION_KEY, text)
    samples = _samples(data.get('series'))
    # Without a stored price, carry on from the newest sample
    fallback = samples[-1].value if samples else config.FALLBACK_VALUE
    return {
        'samples': samples,
        'current_value': float(_number(
            data, 'current_value', fallback, minimum=config.PRICE_FLOOR, maximum=config.PRICE_CEILING,
        )),
        'time': int(_number(data, 'time', 0, minimum=0)),
        'time_window': _time_window(data.get('time_window')),
        'tick_period': int(_number(data, 'tick_period', config.DEFAULT_TICK_PERIOD, minimum=1)),
        'portfolio': _portfolio(data.get('portfolio')),
        'buy_markers': _markers(data.get('buy_markers')),
        'sell_markers': _markers(data.get('sell_markers')),
        'buy_amount': _number(data, 'buy_amount', config.DEFAULT_BUY_AMOUNT, minimum=0),
        'sell_amount': _number(data, 'sell_amount', config.DEFAULT_SELL_AMOUNT, minimum=0),
    }


def decode_stats(text):
    data = _parse(config.STATS_KEY, text)
    history = data.get('trade_history')
    if not isinstance(history, list):
        history = []
    return TradeStats(
        total_profit=float(_number(data, 'total_profit', 0.0)),
        total_invested=float(_number(data, 'total_invested', 0.0, minimum=0)),
        shares_bought=float(_number(data, 'shares_bought', 0.0, minimum=0)),
        shares_sold=float(_number(data, 'shares_sold', 0.0, minimum=0)),
        total_trades=int(_number(data, 'total_trades', 0, minimum=0)),
        profitable_trades=int(_number(data, 'profitable_trades', 0, minimum=0)),
        biggest_win=float(_number(data, 'biggest_win', 0.0)),
        biggest_loss=float(_number(data, 'biggest_loss', 0.0)),
        trade_history=[t for t in history if isinstance(t, dict)],
    )


class PersistenceGateway:

    def __init__(self, store):
        self.store = store

    def save_session(self, snapshot):
        self.store.set(config.SESSION_KEY, json.dumps(snapshot))

    def load_session(self):
        """Decoded snapshot fields, or None when absent or unreadable."""
        text = self.store.get(config.SESSION_KEY)
        if text is None:
            return None
        try:
            return decode_session(text)
        except PersistenceCorrupt as e:
            logger.warning("Failed to load saved state: %s", e)
            return None

    def clear_session(self):
        self.store.remove(config.SESSION_KEY)

    def save_stats(self, stats):
        self.store.set(config.STATS_KEY, json.dumps(stats.to_dict()))

    def load_stats(self):
        text = self.store.get(config.STATS_KEY)
        if text is None:
            return TradeStats()
        try:
            return decode_stats(text)
        except PersistenceCorrupt as e:
            logger.warning("Failed to load lifetime stats: %s", e)
            return TradeStats()
