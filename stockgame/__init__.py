"""Stock market mini-game: synthetic prices, a one-stock portfolio, lifetime stats."""

from .errors import (
    GameError,
    InsufficientFunds,
    InsufficientShares,
    InvalidAmount,
    PersistenceCorrupt,
    TradeError,
)
from .ledger import Ledger
from .persistence import PersistenceGateway
from .portfolio import Portfolio, TradeStats
from .price import PriceProcess
from .scheduler import PeriodicTask, Scheduler
from .series import Marker, Sample, TimeSeriesStore
from .session import GameSession
from .storage import JsonFileStore

__version__ = '0.1.0'

__all__ = [
    'GameError',
    'GameSession',
    'InsufficientFunds',
    'InsufficientShares',
    'InvalidAmount',
    'JsonFileStore',
    'Ledger',
    'Marker',
    'PeriodicTask',
    'PersistenceCorrupt',
    'PersistenceGateway',
    'Portfolio',
    'PriceProcess',
    'Sample',
    'Scheduler',
    'TimeSeriesStore',
    'TradeError',
    'TradeStats',
]
