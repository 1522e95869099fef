import json
import os

import numpy as np
import pytest

from stockgame import config
from stockgame.ledger import Ledger
from stockgame.persistence import PersistenceGateway, decode_session
from stockgame.portfolio import Portfolio, TradeStats
from stockgame.series import Marker, Sample
from stockgame.session import GameSession
from stockgame.storage import JsonFileStore

from helpers import set_price


def test_snapshot_round_trip(session, gateway, ledger) -> None:
    for _ in range(25):
        session.tick()
    set_price(session, 5.0)
    session.buy_shares(4)
    session.sell_amount_of(1)
    session.set_time_window('all')
    session.save()

    restored = GameSession.load(gateway, ledger, rng=np.random.default_rng(0))
    assert restored.store.samples == session.store.samples
    assert restored.store.buy_markers == session.store.buy_markers
    assert restored.store.sell_markers == session.store.sell_markers
    assert restored.portfolio == session.portfolio
    assert restored.current_value == session.current_value
    assert restored.process.tick_counter == session.process.tick_counter
    assert restored.time_window == 'all'


def test_snapshot_survives_a_new_store_instance(session, data_file, ledger) -> None:
    session.tick()
    session.save()
    reopened = PersistenceGateway(JsonFileStore(data_file))
    data = reopened.load_session()
    assert data['samples'] == session.store.samples


def test_absent_snapshot_starts_fresh(gateway, ledger) -> None:
    session = GameSession.load(gateway, ledger, rng=np.random.default_rng(3))
    assert [s.time for s in session.store.samples] == [0, 1]
    assert session.process.tick_counter == 2
    assert session.portfolio == Portfolio()


def test_corrupt_snapshot_starts_fresh(store, gateway, ledger, caplog) -> None:
    store.set(config.SESSION_KEY, '{not json')
    session = GameSession.load(gateway, ledger, rng=np.random.default_rng(3))
    assert len(session.store) == 2
    assert 'Failed to load saved state' in caplog.text


def test_missing_fields_default_individually() -> None:
    data = decode_session(json.dumps({
        'series': [{'time': 0, 'value': 12.5}, {'time': 1, 'value': 13.0}],
        'portfolio': {'shares_owned': 3},
        'time_window': 'bogus',
    }))
    assert data['samples'] == [Sample(0, 12.5), Sample(1, 13.0)]
    # no stored price, so the newest sample carries over
    assert data['current_value'] == 13.0
    assert data['tick_period'] == config.DEFAULT_TICK_PERIOD
    assert data['time_window'] == config.DEFAULT_TIME_WINDOW
    assert data['portfolio'] == Portfolio(3.0, 0.0)
    assert data['buy_markers'] == []
    assert data['buy_amount'] == config.DEFAULT_BUY_AMOUNT


def test_flat_portfolio_has_zero_average_cost() -> None:
    data = decode_session(json.dumps({'portfolio': {'shares_owned': 0, 'average_cost': 9.5}}))
    assert data['portfolio'] == Portfolio()


def test_malformed_series_is_discarded() -> None:
    data = decode_session(json.dumps({
        'series': [{'time': 0, 'value': 1.0}, {'time': 0, 'value': 2.0}],
        'buy_markers': [{'price': 3.0, 'time': 1}, {'price': 'x'}],
    }))
    assert data['samples'] == []
    assert data['buy_markers'] == [Marker(3.0, 1)]


def test_missing_price_without_series_uses_fallback() -> None:
    data = decode_session(json.dumps({'series': []}))
    assert data['current_value'] == config.FALLBACK_VALUE


def test_non_finite_sample_discards_series(store, gateway, ledger) -> None:
    # json accepts the bare NaN token
    store.set(config.SESSION_KEY, '{"series": [{"time": 0, "value": 10.0}, {"time": 1, "value": NaN}]}')
    assert decode_session(store.get(config.SESSION_KEY))['samples'] == []

    session = GameSession.load(gateway, ledger, rng=np.random.default_rng(3))
    for _ in range(20):
        session.tick()
    values = np.array([s.value for s in session.store.samples])
    assert np.isfinite(values).all()
    assert (values > 0).all()
    assert (values <= config.PRICE_CEILING).all()


@pytest.mark.parametrize('value', [5000.0, 0.0, -3.0, float('inf')])
def test_out_of_range_sample_discards_series(value) -> None:
    text = json.dumps({'series': [{'time': 0, 'value': 10.0}, {'time': 1, 'value': value}]})
    assert decode_session(text)['samples'] == []


@pytest.mark.parametrize('value', [5000.0, 0.0, float('nan')])
def test_out_of_range_current_value_falls_back(value) -> None:
    data = decode_session(json.dumps({
        'series': [{'time': 0, 'value': 20.0}],
        'current_value': value,
    }))
    assert data['current_value'] == 20.0


def test_tick_counter_runs_ahead_of_loaded_series(store, gateway, ledger) -> None:
    store.set(config.SESSION_KEY, json.dumps({
        'series': [{'time': 0, 'value': 10.0}, {'time': 1, 'value': 11.0}],
        'time': 0,
    }))
    session = GameSession.load(gateway, ledger, rng=np.random.default_rng(3))
    assert session.tick().time == 2


def test_stats_round_trip(gateway) -> None:
    stats = TradeStats(total_profit=-3.5, total_trades=2, biggest_loss=-4.0,
                       trade_history=[{'profit': -4.0, 'cost_basis': 10.0}])
    gateway.save_stats(stats)
    assert gateway.load_stats() == stats


def test_corrupt_stats_fall_back_to_zero(store, gateway, caplog) -> None:
    store.set(config.STATS_KEY, '[1, 2')
    assert gateway.load_stats() == TradeStats()
    assert 'Failed to load lifetime stats' in caplog.text


def test_clear_session_keeps_stats(store, gateway) -> None:
    gateway.save_session({'series': []})
    gateway.save_stats(TradeStats(total_trades=4))
    gateway.clear_session()
    assert gateway.load_session() is None
    assert gateway.load_stats().total_trades == 4


def test_unreadable_store_file_starts_empty(data_file, caplog) -> None:
    with open(data_file, 'w') as f:
        f.write('garbage')
    store = JsonFileStore(data_file)
    assert store.get(config.SESSION_KEY) is None
    assert 'starting empty' in caplog.text


def test_ledger_defaults_and_rounds(store) -> None:
    ledger = Ledger(store)
    assert ledger.get_balance() == 100.0
    assert store.get(config.CREDITS_KEY) == '100.00'
    ledger.set_balance(12.3456)
    assert store.get(config.CREDITS_KEY) == '12.35'
    assert ledger.get_balance() == pytest.approx(12.35)


def test_ledger_resets_unreadable_balance(store) -> None:
    store.set(config.CREDITS_KEY, 'lots')
    assert Ledger(store).get_balance() == 100.0


def test_failed_write_keeps_previous_file(data_file, monkeypatch, caplog) -> None:
    store = JsonFileStore(data_file)
    gateway = PersistenceGateway(store)
    gateway.save_stats(TradeStats(total_trades=3, total_profit=7.5))
    Ledger(store).set_balance(42.0)

    def torn_dump(obj, f, **kwargs):
        f.write('{"stockMarketSta')
        raise OSError('disk full')

    monkeypatch.setattr('stockgame.storage.json.dump', torn_dump)
    gateway.save_session({'series': []})
    monkeypatch.undo()
    assert 'Could not save' in caplog.text

    reopened = JsonFileStore(data_file)
    assert PersistenceGateway(reopened).load_stats().total_trades == 3
    assert Ledger(reopened).get_balance() == 42.0
    assert not [name for name in os.listdir(os.path.dirname(data_file)) if name.endswith('.tmp')]
