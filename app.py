from flask import Blueprint, Flask, current_app, jsonify, request
from werkzeug.exceptions import HTTPException
import logging
import os

import numpy as np

from stockgame import config
from stockgame.errors import TradeError
from stockgame.ledger import Ledger
from stockgame.persistence import PersistenceGateway
from stockgame.scheduler import Scheduler
from stockgame.session import GameSession
from stockgame.storage import JsonFileStore

logger = logging.getLogger(__name__)

# Suppress noisy per-request server logs
logging.getLogger('waitress').setLevel(logging.WARNING)

api = Blueprint('api', __name__)


def get_scheduler():
    return current_app.extensions['stockgame']


def run(fn, *args):
    """Run a session operation on the game loop."""
    return get_scheduler().call(fn, *args)


def get_session():
    return get_scheduler().session


def request_data():
    return request.get_json(silent=True) or {}


def trade_payload(result):
    payload = {
        'success': True,
        'side': result.side,
        'amount': round(result.amount, 2),
        'price': round(result.price, 2),
        'total': round(result.cost, 2),
        'state': run(get_session().dashboard),
    }
    if result.side == 'sell':
        payload['profit'] = round(result.profit, 2)
        payload['cost_basis'] = round(result.cost_basis, 2)
    return payload


def handle_trade_error(e):
    """Rejected trades and settings come back as a notification for the player."""
    return jsonify({'error': str(e)}), 400


def handle_error(e):
    """Catch all errors so the server never crashes."""
    if isinstance(e, HTTPException):
        return jsonify({'error': e.description}), e.code
    logger.exception("Unhandled error")
    return jsonify({'error': str(e)}), 500


# ─── Routes ────────────────────────────────────────────────────────

@api.route('/api/state')
def get_state():
    return jsonify(run(get_session().dashboard))


@api.route('/api/chart')
def get_chart():
    width = request.args.get('width', type=int)
    height = request.args.get('height', type=int)

    def draw():
        session = get_session()
        renderer = session.renderer
        # Ignore sizes too small to hold the padded plot area
        if width and width > config.CHART_PADDING * 2:
            renderer.width = width
        if height and height > config.CHART_PADDING * 2:
            renderer.height = height
        return session.render()

    return jsonify(run(draw))


@api.route('/api/stats')
def get_stats():
    return jsonify(run(get_session().stats.summary))


@api.route('/api/stats/history')
def get_stats_history():
    df = run(get_session().stats.history_frame)
    return jsonify(df.reset_index().round(2).to_dict(orient='records'))


@api.route('/api/buy/quote')
def get_buy_quote():
    return jsonify(run(get_session().buy_quote, request.args.get('amount')))


@api.route('/api/buy/max', methods=['POST'])
def post_max_buy():
    return jsonify(run(get_session().max_buy))


@api.route('/api/buy', methods=['POST'])
def post_buy():
    data = request_data()
    result = run(get_session().buy_shares, data.get('amount'))
    return jsonify(trade_payload(result))


@api.route('/api/sell', methods=['POST'])
def post_sell():
    data = request_data()
    result = run(get_session().sell_amount_of, data.get('amount'))
    return jsonify(trade_payload(result))


@api.route('/api/sell/all', methods=['POST'])
def post_sell_all():
    result = run(get_session().sell_all)
    return jsonify(trade_payload(result))


@api.route('/api/sell/percentage', methods=['POST'])
def post_sell_percentage():
    data = request_data()
    result = run(get_session().sell_percentage, data.get('percentage'))
    return jsonify(trade_payload(result))


@api.route('/api/settings/tick-period', methods=['POST'])
def post_tick_period():
    data = request_data()
    get_scheduler().set_tick_period(data.get('period'))
    return jsonify({'success': True, 'state': run(get_session().dashboard)})


@api.route('/api/settings/slow-time', methods=['POST'])
def post_slow_time():
    get_scheduler().slow_time()
    return jsonify({'success': True, 'state': run(get_session().dashboard)})


@api.route('/api/settings/time-window', methods=['POST'])
def post_time_window():
    data = request_data()
    run(get_session().set_time_window, data.get('window'))
    return jsonify({'success': True, 'state': run(get_session().dashboard)})


@api.route('/api/reset', methods=['POST'])
def post_reset():
    get_scheduler().reset()
    return jsonify({'success': True, 'state': run(get_session().dashboard)})


def create_app(data_file=None, autostart=True, seed=None):
    """Build the app around one game session loaded from data_file."""
    app = Flask(__name__)
    store = JsonFileStore(data_file or config.DATA_FILE)
    gateway = PersistenceGateway(store)
    session = GameSession.load(gateway, Ledger(store), rng=np.random.default_rng(seed))
    scheduler = Scheduler(session)

    app.extensions['stockgame'] = scheduler
    app.register_blueprint(api)
    app.register_error_handler(TradeError, handle_trade_error)
    app.register_error_handler(Exception, handle_error)

    if autostart:
        scheduler.start()
    return app


if __name__ == '__main__':
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    port = int(os.environ.get('PORT', config.PORT))
    app = create_app()
    print("=" * 50)
    print("  STOCK MARKET — Simulated Trading Mini-Game")
    print(f"  Open http://localhost:{port} in your browser")
    print("=" * 50)
    # Use waitress (production server) - much more stable than Flask dev server
    from waitress import serve
    try:
        serve(app, host='0.0.0.0', port=port, threads=4)
    finally:
        app.extensions['stockgame'].stop()
