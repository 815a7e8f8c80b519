from flask import Blueprint, jsonify, request, current_app
from tuttifrutti.services.game import lifecycle, ranking
from tuttifrutti.services.game.errors import GameError
from tuttifrutti.services.game.identity import identity_from_request, remember_player


rooms = Blueprint('rooms', __name__)
change_letter = Blueprint('change_letter', __name__)


def _error_response(exc: GameError):
    if exc.status_code >= 500:
        current_app.logger.warning(f"[request-failed] path={request.path} error={exc.message}")
    return jsonify({'success': False, 'error': exc.message}), exc.status_code


rooms.register_error_handler(GameError, _error_response)


def _payload() -> dict:
    return request.get_json(silent=True) or {}


@rooms.route('/create', methods=['POST'])
def create_room():
    data = _payload()
    created = lifecycle.create_room(data.get('name') or 'Organizer')
    remember_player(created['player']['id'])
    return jsonify(created), 201


@rooms.route('/code/<string:code>', methods=['GET'])
def lookup_room(code):
    room = lifecycle.lookup_room_by_code(code)
    return jsonify({'id': room.id, 'state': room.state, 'invitation_code': room.invitation_code})


@rooms.route('/join', methods=['POST'])
def join_room():
    data = _payload()
    player = lifecycle.join_room(data.get('invitation_code'), data.get('name'))
    remember_player(player.id)
    return jsonify(player.to_dict()), 201


@rooms.route('/<string:room_id>/state', methods=['GET'])
def get_room_state(room_id):
    identity = identity_from_request()
    return jsonify(lifecycle.describe_state(room_id, identity.player_id))


@rooms.route('/<string:room_id>/start', methods=['POST'])
def start_game(room_id):
    data = _payload()
    identity = identity_from_request(data)
    rnd = lifecycle.start_game(room_id, data.get('categories'), identity.player_id)
    return jsonify(rnd.to_dict()), 201


@rooms.route('/<string:room_id>/rounds/<string:round_id>/answers', methods=['POST'])
def submit_answers(room_id, round_id):
    data = _payload()
    identity = identity_from_request(data)
    saved = lifecycle.submit_answers(
        room_id, round_id, identity.player_id, data.get('answers'), data.get('categories'),
    )
    return jsonify({'success': True, 'answers': [a.to_dict() for a in saved]})


@rooms.route('/<string:room_id>/rounds/<string:round_id>/letter', methods=['POST'])
def reroll_letter(room_id, round_id):
    identity = identity_from_request(_payload())
    rnd = lifecycle.reroll_letter(room_id, round_id, identity.player_id)
    return jsonify(rnd.to_dict())


@rooms.route('/<string:room_id>/rounds/<string:round_id>/end', methods=['POST'])
def end_round(room_id, round_id):
    identity = identity_from_request(_payload())
    # The round must belong to the room in the URL
    lifecycle.get_round(round_id, room_id)
    rnd = lifecycle.end_round(round_id, identity.player_id)
    return jsonify(rnd.to_dict())


@rooms.route('/<string:room_id>/rounds/<string:round_id>/scores', methods=['POST'])
def assign_scores(room_id, round_id):
    data = _payload()
    identity = identity_from_request(data)
    scores = data.get('scores') or []
    if not isinstance(scores, list) or not all(isinstance(s, dict) for s in scores):
        return jsonify({'success': False, 'error': 'scores must be a list'}), 400
    assignments = [
        {
            'answer_id': s.get('answer_id'),
            'points': s.get('points'),
            'player_id': s.get('player_id') or identity.player_id,
        }
        for s in scores
    ]
    saved = lifecycle.assign_scores(assignments)
    return jsonify({'success': True, 'answers': [a.to_dict() for a in saved]})


@rooms.route('/<string:room_id>/rounds/<string:round_id>/finalize', methods=['POST'])
def finalize_scoring(room_id, round_id):
    identity = identity_from_request(_payload())
    room = lifecycle.finalize_scoring(room_id, round_id, identity.player_id)
    return jsonify(room.to_dict())


@rooms.route('/<string:room_id>/rounds/<string:round_id>/results', methods=['GET'])
def round_results(room_id, round_id):
    lifecycle.get_round(round_id, room_id)
    return jsonify(ranking.round_result(round_id))


@rooms.route('/<string:room_id>/rounds', methods=['POST'])
def start_new_round(room_id):
    identity = identity_from_request(_payload())
    rnd = lifecycle.start_new_round(room_id, identity.player_id)
    return jsonify(rnd.to_dict()), 201


@rooms.route('/<string:room_id>/finish', methods=['POST'])
def finish_game(room_id):
    identity = identity_from_request(_payload())
    room = lifecycle.finish_game(room_id, identity.player_id)
    return jsonify(room.to_dict())


@rooms.route('/<string:room_id>/ranking', methods=['GET'])
def cumulative_ranking(room_id):
    return jsonify({'room_id': room_id, 'ranking': ranking.cumulative_ranking(room_id)})


@change_letter.route('/change-letter', methods=['POST'])
def change_letter_endpoint():
    data = _payload()
    room_id = data.get('roomId')
    round_id = data.get('roundId')
    player_id = data.get('playerId')
    if not all([room_id, round_id, player_id]):
        return jsonify({'success': False, 'error': 'Incomplete data'}), 400
    try:
        lifecycle.reroll_letter(room_id, round_id, player_id)
    except GameError as exc:
        return jsonify({'success': False, 'error': exc.message}), 403
    return jsonify({'success': True})
