"""Scores computed from the answer ledger.

Nothing here keeps a running total: every figure is re-summed from
``Answer.points`` on each call.
"""

from typing import Dict, List

from tuttifrutti.models import Room, Round, Player, Answer
from .constants import CATEGORIES_COUNT, TIE_POLICY_SEQUENTIAL, TIE_POLICY_SHARED, setting
from .errors import RoomNotFound, RoundNotFound


def _players_in_join_order(room_id: str) -> List[Player]:
    return Player.query.filter_by(room_id=room_id).order_by(Player.created_at, Player.id).all()


def player_totals(room_id: str) -> Dict[str, int]:
    """Accumulated points per player id across every round of the room."""
    totals = {p.id: 0 for p in _players_in_join_order(room_id)}
    rows = (
        Answer.query.join(Round, Answer.round_id == Round.id)
        .filter(Round.room_id == room_id)
        .with_entities(Answer.player_id, Answer.points)
        .all()
    )
    for player_id, points in rows:
        if player_id in totals:
            totals[player_id] += points or 0
    return totals


def round_result(round_id: str) -> dict:
    """Per-player answers and total for one round, zero-scorers included."""
    rnd = Round.query.get(round_id)
    if not rnd:
        raise RoundNotFound()
    room = Room.query.get(rnd.room_id)
    categories = room.categories if room else []
    slots = max(len(categories), int(setting('CATEGORIES_COUNT', CATEGORIES_COUNT)))

    def label(idx):
        return categories[idx] if idx < len(categories) else f"Cat {idx + 1}"

    results = {}
    for p in _players_in_join_order(rnd.room_id):
        results[p.id] = {
            'player_id': p.id,
            'name': p.name,
            'answers': [
                {'category_index': idx, 'category': label(idx), 'text': '', 'points': 0, 'answer_id': None}
                for idx in range(slots)
            ],
            'total': 0,
        }

    answers = (
        Answer.query.filter_by(round_id=round_id)
        .order_by(Answer.category_index, Answer.id)
        .all()
    )
    for a in answers:
        entry = results.get(a.player_id)
        if entry is None or not 0 <= a.category_index < slots:
            continue
        entry['answers'][a.category_index] = {
            'category_index': a.category_index,
            'category': a.category or label(a.category_index),
            'text': a.text or '',
            'points': a.points or 0,
            'answer_id': a.id,
        }
        entry['total'] += a.points or 0

    return {
        'round': rnd.to_dict(),
        'results': list(results.values()),
    }


def assign_positions(entries: List[dict], tie_policy: str) -> List[dict]:
    """Stable sort by ``total`` descending and number the places.

    ``sequential`` gives every entry its own place even on a tie;
    ``shared`` gives tied entries the same place and skips the next ones.
    """
    ordered = sorted(entries, key=lambda e: e['total'], reverse=True)
    previous_total = None
    previous_position = 0
    for idx, entry in enumerate(ordered, start=1):
        if tie_policy == TIE_POLICY_SHARED and entry['total'] == previous_total:
            entry['position'] = previous_position
        else:
            entry['position'] = idx
        previous_total = entry['total']
        previous_position = entry['position']
    return ordered


def cumulative_ranking(room_id: str) -> List[dict]:
    if not Room.query.get(room_id):
        raise RoomNotFound()
    totals = player_totals(room_id)
    entries = [
        {'player_id': p.id, 'name': p.name, 'total': totals.get(p.id, 0)}
        for p in _players_in_join_order(room_id)
    ]
    return assign_positions(entries, setting('RANKING_TIE_POLICY', TIE_POLICY_SEQUENTIAL))
