import numpy as np
import pytest

from stockgame.ledger import Ledger
from stockgame.persistence import PersistenceGateway
from stockgame.session import GameSession
from stockgame.storage import JsonFileStore


@pytest.fixture
def data_file(tmp_path):
    return str(tmp_path / 'stockgame_data.json')


@pytest.fixture
def store(data_file):
    return JsonFileStore(data_file)


@pytest.fixture
def gateway(store):
    return PersistenceGateway(store)


@pytest.fixture
def ledger(store):
    return Ledger(store)


@pytest.fixture
def session(gateway, ledger):
    return GameSession.load(gateway, ledger, rng=np.random.default_rng(7))
