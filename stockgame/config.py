import os

# Server
PORT = int(os.environ.get('PORT', 5000))
DATA_FILE = os.environ.get(
    'STOCKGAME_DATA_FILE',
    os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'stockgame_data.json'),
)
LOG_LEVEL = os.environ.get('STOCKGAME_LOG_LEVEL', 'INFO')

# Timing (milliseconds)
DEFAULT_TICK_PERIOD = int(os.environ.get('STOCKGAME_TICK_PERIOD', 200))
SAVE_PERIOD = 1000
SLOW_TICK_PERIOD = 1000

# Chart window: trailing ticks shown, or 'all'
DEFAULT_TIME_WINDOW = 10
TIME_WINDOW_OPTIONS = [10, 60, 600, 3600, 86400, 'all']

# Wallet
STARTING_CREDITS = 100.0
DEFAULT_BUY_AMOUNT = 1
DEFAULT_SELL_AMOUNT = 0

# Price process
PRICE_FLOOR = 0.01
PRICE_CEILING = 100.0
FLOOR_JITTER = 0.1
CEILING_JITTER = 5.0
CONTINUATION_PROBABILITY = 0.6
CONTINUATION_FACTOR = 0.7
REVERSAL_FACTOR = -0.3
SEED_BASE = 50.0
SEED_SPREAD = 20.0
SEED_STEP = 3.0
FALLBACK_VALUE = 50.0

# Holdings below this are float residue and snap to zero
SHARE_EPSILON = 0.01

# Chart geometry
CHART_PADDING = 40
CHART_DIVISIONS = 10
RANGE_PADDING = 0.05
DEFAULT_CHART_WIDTH = 800
DEFAULT_CHART_HEIGHT = 400

# Colors
UP_COLOR = '#00ff00'
DOWN_COLOR = '#ff0000'
BUY_MARKER_COLOR = '#3b82f6'
SELL_MARKER_COLOR = '#ef4444'
PROFIT_COLOR = '#10b981'
LOSS_COLOR = '#ef4444'

# Storage keys
SESSION_KEY = 'stockMarketState'
STATS_KEY = 'stockMarketLifetimeStats'
CREDITS_KEY = 'credits'
