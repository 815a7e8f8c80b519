from flask import Blueprint, jsonify
from tuttifrutti.services.game.identity import identity_from_request

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'status': 'ok'})

@main.route('/api/session', methods=['GET', 'OPTIONS'])
def current_session():
    """Which player this browser is acting as (query param beats cookie)."""
    identity = identity_from_request()
    return jsonify({'player_id': identity.player_id, 'source': identity.source})
