"""Chart geometry for the browser canvas.

The service does the windowing and scaling math and hands the page a draw
list; the page only strokes what it is given.
"""

import math
from dataclasses import dataclass

from . import config
from .series import price_range


@dataclass(frozen=True)
class ChartView:
    width: int
    height: int
    samples: list
    low: float
    high: float
    buy_markers: list
    sell_markers: list
    current_value: float
    padding: int = config.CHART_PADDING

    @property
    def graph_width(self):
        return self.width - self.padding * 2

    @property
    def graph_height(self):
        return self.height - self.padding * 2

    def x_at(self, index):
        return self.padding + (index / max(1, len(self.samples) - 1)) * self.graph_width

    def y_at(self, value):
        value_range = self.high - self.low
        return self.padding + self.graph_height - ((value - self.low) / value_range) * self.graph_height


def make_view(store, window, current_value, width=config.DEFAULT_CHART_WIDTH, height=config.DEFAULT_CHART_HEIGHT):
    samples = store.filter(window)
    low, high = price_range(samples)
    return ChartView(
        width=width,
        height=height,
        samples=samples,
        low=low,
        high=high,
        buy_markers=list(store.buy_markers),
        sell_markers=list(store.sell_markers),
        current_value=current_value,
    )


def _js_exponential(value):
    # Match the page's toExponential(1): 1.0e-3, not 1.0e-03
    mantissa, exponent = f'{value:.1e}'.split('e')
    return f'{mantissa}e{int(exponent):+d}'


def format_price(value, reference=None):
    """Adaptive label: more decimals for small prices, exponential below 0.01."""
    if value < 0.01:
        return _js_exponential(value)
    reference = value if reference is None else reference
    if reference < 1:
        decimals = 4
    elif reference < 10:
        decimals = 3
    else:
        decimals = 2
    return f'{value:.{decimals}f}'


def format_seconds(seconds):
    if seconds < 60:
        return f'{seconds:.1f}s' if seconds < 10 else f'{math.floor(seconds)}s'
    return f'{math.floor(seconds / 60)}m'


def grid_lines(view):
    lines = []
    for i in range(config.CHART_DIVISIONS + 1):
        x = view.padding + (view.graph_width / config.CHART_DIVISIONS) * i
        y = view.padding + (view.graph_height / config.CHART_DIVISIONS) * i
        lines.append({'x1': x, 'y1': view.padding, 'x2': x, 'y2': view.padding + view.graph_height})
        lines.append({'x1': view.padding, 'y1': y, 'x2': view.padding + view.graph_width, 'y2': y})
    return lines


def axis_labels(view):
    divisions = config.CHART_DIVISIONS
    y_labels = []
    for i in range(divisions + 1):
        value = view.high - ((view.high - view.low) / divisions) * i
        y = view.padding + (view.graph_height / divisions) * i
        y_labels.append({'y': y, 'text': format_price(value, reference=view.high)})

    x_labels = []
    if view.samples:
        start = view.samples[0].time
        span = view.samples[-1].time - start
        for i in range(divisions + 1):
            x = view.padding + (view.graph_width / divisions) * i
            seconds = max(0, start + span / divisions * i)
            x_labels.append({'x': x, 'text': format_seconds(seconds)})
    return {'x': x_labels, 'y': y_labels}


def line_segments(view):
    """Consecutive segments, green when the value held or rose, red when it fell."""
    segments = []
    samples = view.samples
    for i in range(1, len(samples)):
        color = config.UP_COLOR if samples[i].value >= samples[i - 1].value else config.DOWN_COLOR
        segments.append({
            'x1': view.x_at(i - 1), 'y1': view.y_at(samples[i - 1].value),
            'x2': view.x_at(i), 'y2': view.y_at(samples[i].value),
            'color': color,
        })
    return segments


def marker_lines(view, markers, label, color):
    lines = []
    for marker in markers:
        y = view.y_at(marker.price)
        lines.append({
            'x1': view.padding, 'x2': view.padding + view.graph_width, 'y': y,
            'price': marker.price, 'time': marker.time,
            'label': f'{label}: {format_price(marker.price)}¢',
            'color': color,
        })
    return lines


def draw(view):
    """Full draw list for one frame."""
    segments = line_segments(view)
    indicator = None
    if view.samples:
        last = view.samples[-1]
        indicator = {
            'x': view.x_at(len(view.samples) - 1),
            'y': view.y_at(last.value),
            'color': segments[-1]['color'] if segments else config.UP_COLOR,
            'label': f'{format_price(last.value)}¢',
        }
    return {
        'width': view.width,
        'height': view.height,
        'padding': view.padding,
        'range': {'low': view.low, 'high': view.high},
        'grid': grid_lines(view),
        'axes': axis_labels(view),
        'segments': segments,
        'indicator': indicator,
        'buy_markers': marker_lines(view, view.buy_markers, 'BUY', config.BUY_MARKER_COLOR),
        'sell_markers': marker_lines(view, view.sell_markers, 'SELL', config.SELL_MARKER_COLOR),
    }


class ChartRenderer:
    """Keeps the most recent frame for the page to poll."""

    def __init__(self, width=config.DEFAULT_CHART_WIDTH, height=config.DEFAULT_CHART_HEIGHT):
        self.width = width
        self.height = height
        self.frame = None
        self.frames_drawn = 0

    def draw(self, store, window, current_value):
        view = make_view(store, window, current_value, self.width, self.height)
        self.frame = draw(view)
        self.frames_drawn += 1
        return self.frame
