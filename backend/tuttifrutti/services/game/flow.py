"""Where a client should be, given the room and round state.

``next_view`` is a pure function: callers re-read the rows (after a change
notification or on page load), feed the states in, and navigate only when a
``Transition`` comes back. ``None`` means "stay put", which is also what
happens while identifiers needed to build the target are still loading.
"""

from typing import NamedTuple, Optional

from .constants import (
    ROOM_LOBBY, ROOM_PLAYING, ROOM_RESULT_SCREEN, ROOM_FINISHED,
    ROUND_WRITING, ROUND_SCORING,
)

VIEW_LOBBY = 'lobby'
VIEW_ANSWERS = 'answers'
VIEW_SCORING = 'scoring'
VIEW_ROUND_RESULTS = 'round_results'
VIEW_FINAL_RANKING = 'final_ranking'


class Transition(NamedTuple):
    view: str
    path: str

    def to_dict(self):
        return {'view': self.view, 'path': self.path}


def _results(room_id: str, round_id: Optional[str], player_id: Optional[str]) -> Optional[Transition]:
    if not (round_id and player_id):
        return None
    return Transition(VIEW_ROUND_RESULTS, f"/results/{room_id}/{round_id}?player_id={player_id}")


def next_view(
    room_state: Optional[str],
    round_state: Optional[str],
    is_organizer: bool,
    room_id: str,
    round_id: Optional[str] = None,
    player_id: Optional[str] = None,
) -> Optional[Transition]:
    if room_state == ROOM_LOBBY:
        suffix = f"?player_id={player_id}" if player_id else ''
        return Transition(VIEW_LOBBY, f"/lobby/{room_id}{suffix}")

    if room_state == ROOM_PLAYING:
        if round_state == ROUND_WRITING:
            return Transition(VIEW_ANSWERS, f"/play/{room_id}")
        if round_state == ROUND_SCORING:
            if is_organizer:
                if not round_id:
                    return None
                return Transition(VIEW_SCORING, f"/score/{room_id}/{round_id}")
            return _results(room_id, round_id, player_id)
        return None

    if room_state == ROOM_RESULT_SCREEN:
        return _results(room_id, round_id, player_id)

    if room_state == ROOM_FINISHED:
        return Transition(VIEW_FINAL_RANKING, f"/ranking/{room_id}")

    return None
