from dataclasses import dataclass, field, asdict

import numpy as np

from . import config


@dataclass(frozen=True)
class Sample:
    time: int
    value: float


@dataclass(frozen=True)
class Marker:
    """Price level of a trade, drawn as a horizontal line until cleared."""
    price: float
    time: int


def price_range(samples):
    """Padded [low, high] value range used to scale the chart.

    5% of the span is added on each side, the low end never drops below
    zero, and a flat series gets a span of 1.
    """
    if not samples:
        return 0.0, config.PRICE_CEILING
    values = np.array([s.value for s in samples], dtype=float)
    data_min = float(values.min())
    data_max = float(values.max())
    span = (data_max - data_min) or 1.0
    pad = span * config.RANGE_PADDING
    return max(0.0, data_min - pad), data_max + pad


@dataclass
class TimeSeriesStore:
    samples: list = field(default_factory=list)
    buy_markers: list = field(default_factory=list)
    sell_markers: list = field(default_factory=list)

    def __len__(self):
        return len(self.samples)

    @property
    def current_tick(self):
        return self.samples[-1].time if self.samples else 0

    @property
    def last_value(self):
        return self.samples[-1].value if self.samples else None

    def append(self, sample):
        if self.samples and sample.time <= self.samples[-1].time:
            raise ValueError(
                f'sample time {sample.time} does not follow {self.samples[-1].time}'
            )
        self.samples.append(sample)

    def tail(self, count):
        return self.samples[-count:] if count else []

    def filter(self, window, current_tick=None):
        """Samples inside the trailing window of ticks, or all of them."""
        if window == 'all':
            return list(self.samples)
        if current_tick is None:
            current_tick = self.current_tick
        start = current_tick - window
        # time is increasing, so the match is a suffix
        for i, sample in enumerate(self.samples):
            if sample.time >= start:
                return self.samples[i:]
        return []

    def mark_buy(self, price, time, fresh=False):
        if fresh:
            self.buy_markers = []
            self.sell_markers = []
        self.buy_markers.append(Marker(price, time))

    def mark_sell(self, price, time):
        self.sell_markers.append(Marker(price, time))

    def change_since_start(self, current_value):
        """Percent change of current_value against the first sample."""
        if not self.samples or self.samples[0].value == 0:
            return 0.0
        first = self.samples[0].value
        return (current_value - first) / first * 100

    def clear(self):
        self.samples = []
        self.buy_markers = []
        self.sell_markers = []

    def to_dict(self):
        return {
            'series': [asdict(s) for s in self.samples],
            'buy_markers': [asdict(m) for m in self.buy_markers],
            'sell_markers': [asdict(m) for m in self.sell_markers],
        }
