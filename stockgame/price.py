"""Synthetic price generator.

A bounded random walk with one step of momentum memory. The bounds are
soft: a value that leaves [0.01, 100] is re-drawn just inside the bound
instead of being clipped, so the line never sits flat on an edge.
"""

import numpy as np

from . import config
from .series import Sample


class PriceProcess:

    def __init__(self, current_value=config.FALLBACK_VALUE, tick_counter=0, rng=None):
        self.current_value = current_value
        # time stamp handed to the next sample
        self.tick_counter = tick_counter
        self.rng = rng if rng is not None else np.random.default_rng()

    def momentum(self, history):
        if len(history) < 2:
            return 0.0
        previous_delta = history[-1].value - history[-2].value
        # 60% chance to continue in the same direction, 40% to reverse
        if self.rng.random() < config.CONTINUATION_PROBABILITY:
            return previous_delta * config.CONTINUATION_FACTOR
        return previous_delta * config.REVERSAL_FACTOR

    def next(self, history):
        """Advance current_value one step given the samples so far."""
        momentum = self.momentum(history)
        random_component = (self.rng.random() - 0.5) * 2
        value = self.current_value + momentum + random_component

        if value < config.PRICE_FLOOR:
            value = config.PRICE_FLOOR + self.rng.random() * config.FLOOR_JITTER
        if value > config.PRICE_CEILING:
            value = config.PRICE_CEILING - self.rng.random() * config.CEILING_JITTER

        self.current_value = float(value)
        return self.current_value

    def step(self, store):
        """Generate the next value and append it to the store as a new sample."""
        value = self.next(store.tail(2))
        sample = Sample(self.tick_counter, value)
        store.append(sample)
        self.tick_counter += 1
        return sample

    def seed(self, store):
        """Start a fresh series with two opening samples at ticks 0 and 1."""
        first = config.SEED_BASE + self.rng.random() * config.SEED_SPREAD
        second = first + (self.rng.random() - 0.5) * config.SEED_STEP
        store.append(Sample(0, float(first)))
        store.append(Sample(1, float(second)))
        self.current_value = float(second)
        self.tick_counter = 2
