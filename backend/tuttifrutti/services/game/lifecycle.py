"""Round lifecycle: every state-changing game operation.

Each operation re-reads the rows it authorises against, checks, writes and
commits. Checks and writes are separate steps (no row locks), so two
concurrent calls can both pass a check; the game tolerates that. The
organizer has the final word on progression: readiness is reported but
never waited for.
"""

from typing import List, Optional, Sequence

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from tuttifrutti import db
from tuttifrutti.models import Room, Player, Round, Answer, random_letter, utcnow
from . import notify
from .constants import (
    ROOM_CODE_CHARS, ROOM_CODE_LENGTH, CATEGORIES_COUNT, NAME_MIN, NAME_MAX,
    ANSWER_MAX, CATEGORY_MAX, MIN_PLAYERS, LETTER_REROLL_WINDOW_SEC, NULL_ID,
    ROOM_LOBBY, ROOM_PLAYING, ROOM_RESULT_SCREEN, ROOM_FINISHED,
    ROUND_WRITING, ROUND_SCORING, ROUND_COMPLETED, REROLL_POLICY_CLIENT, REROLL_POLICY_SERVER,
    setting,
)
from .errors import (
    ValidationError, InvalidCategories, RoomNotFound, RoundNotFound,
    PlayerNotFound, AnswerNotFound, Forbidden, InsufficientPlayers,
    RoomNotJoinable, InvalidState, StoreError, CreationError,
)
from .flow import next_view
from .ranking import player_totals


def _commit(action: str, error_cls=StoreError) -> None:
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error(f"[store-error] action={action} error={exc}")
        raise error_cls() from exc


# ---- lookups ----

def get_room(room_id) -> Room:
    room = Room.query.get(room_id) if room_id else None
    if not room:
        raise RoomNotFound()
    return room


def get_player(player_id) -> Player:
    player = Player.query.get(player_id) if player_id else None
    if not player:
        raise PlayerNotFound()
    return player


def get_round(round_id, room_id=None) -> Round:
    rnd = Round.query.get(round_id) if round_id else None
    if not rnd or (room_id is not None and rnd.room_id != room_id):
        raise RoundNotFound()
    return rnd


def require_playing(room) -> None:
    if room.state != ROOM_PLAYING:
        raise InvalidState('The game is not in progress')


def current_round(room_id) -> Optional[Round]:
    """The round with the highest number, or None before the game starts."""
    return Round.query.filter_by(room_id=room_id).order_by(Round.round_number.desc()).first()


def require_organizer(player_id, room_id) -> Player:
    player = get_player(player_id)
    if not player.is_organizer or player.room_id != room_id:
        raise Forbidden()
    return player


# ---- validation ----

def normalize_code(code) -> str:
    normalized = (code or '').strip().upper()
    length = int(setting('ROOM_CODE_LENGTH', ROOM_CODE_LENGTH))
    if len(normalized) != length or any(ch not in ROOM_CODE_CHARS for ch in normalized):
        raise ValidationError('Invalid room code')
    return normalized


def _validate_name(name) -> str:
    cleaned = (name or '').strip()
    lo = int(setting('NAME_MIN', NAME_MIN))
    hi = int(setting('NAME_MAX', NAME_MAX))
    if not lo <= len(cleaned) <= hi:
        raise ValidationError(f'Name must be between {lo} and {hi} characters')
    return cleaned


def _validate_categories(categories) -> List[str]:
    expected = int(setting('CATEGORIES_COUNT', CATEGORIES_COUNT))
    limit = int(setting('CATEGORY_MAX', CATEGORY_MAX))
    if not isinstance(categories, (list, tuple)) or len(categories) != expected:
        raise InvalidCategories(f'Exactly {expected} categories are required')
    cleaned = []
    for cat in categories:
        if not isinstance(cat, str) or not cat.strip():
            raise InvalidCategories('Categories cannot be empty')
        if len(cat.strip()) > limit:
            raise InvalidCategories(f'Categories can have at most {limit} characters')
        cleaned.append(cat.strip())
    return cleaned


def _validate_answers(answers) -> List[str]:
    expected = int(setting('CATEGORIES_COUNT', CATEGORIES_COUNT))
    limit = int(setting('ANSWER_MAX', ANSWER_MAX))
    if not isinstance(answers, (list, tuple)) or len(answers) != expected:
        raise ValidationError(f'Exactly {expected} answers are required')
    cleaned = []
    for text in answers:
        text = '' if text is None else text
        if not isinstance(text, str):
            raise ValidationError('Answers must be text')
        if len(text.strip()) > limit:
            raise ValidationError(f'Answers can have at most {limit} characters')
        cleaned.append(text.strip())
    return cleaned


def _reset_ready(room_id) -> List[Player]:
    players = Player.query.filter_by(room_id=room_id).all()
    for p in players:
        p.is_ready = False
        db.session.add(p)
    return players


# ---- operations ----

def create_room(organizer_name) -> dict:
    """Create a lobby and its organizer.

    Room and player reference each other, so the room is inserted with a
    placeholder organizer id and patched once the player row exists. All
    three writes share one transaction: if any fails nothing is kept.
    """
    name = _validate_name(organizer_name)
    try:
        room = Room(organizer_id=NULL_ID, state=ROOM_LOBBY)
        room.categories = []
        db.session.add(room)
        db.session.flush()

        organizer = Player(room_id=room.id, name=name, is_organizer=True)
        db.session.add(organizer)
        db.session.flush()

        room.organizer_id = organizer.id
        db.session.add(room)
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error(f"[store-error] action=create_room error={exc}")
        raise CreationError() from exc
    _commit('create_room', CreationError)

    current_app.logger.info(f"[create_room] room={room.id} code={room.invitation_code} organizer={organizer.id}")
    notify.publish('rooms', room, 'insert')
    notify.publish('players', organizer, 'insert')
    return {'room': room.to_dict(), 'player': organizer.to_dict()}


def lookup_room_by_code(code) -> Room:
    normalized = normalize_code(code)
    room = Room.query.filter_by(invitation_code=normalized).first()
    if not room:
        raise RoomNotFound()
    return room


def join_room(invitation_code, player_name) -> Player:
    normalized = normalize_code(invitation_code)
    name = _validate_name(player_name)
    room = Room.query.filter_by(invitation_code=normalized).first()
    if not room:
        raise RoomNotFound()
    if room.state != ROOM_LOBBY:
        raise RoomNotJoinable()

    player = Player(room_id=room.id, name=name, is_organizer=False)
    db.session.add(player)
    _commit('join_room')

    current_app.logger.info(f"[join_room] room={room.id} player={player.id}")
    notify.publish('players', player, 'insert')
    return player


def start_game(room_id, categories, player_id=None) -> Round:
    cleaned = _validate_categories(categories)
    room = get_room(room_id)
    if player_id is not None:
        require_organizer(player_id, room.id)
    if room.state != ROOM_LOBBY:
        raise InvalidState('The game has already started')

    min_players = int(setting('MIN_PLAYERS', MIN_PLAYERS))
    count = Player.query.filter_by(room_id=room.id).count()
    if count < min_players:
        raise InsufficientPlayers(f'At least {min_players} players are required')

    room.categories = cleaned
    room.state = ROOM_PLAYING
    db.session.add(room)
    rnd = Round(room_id=room.id, round_number=1, letter=random_letter(), state=ROUND_WRITING)
    db.session.add(rnd)
    _reset_ready(room.id)
    _commit('start_game')

    current_app.logger.info(f"[start_game] room={room.id} round={rnd.id} letter={rnd.letter} players={count}")
    notify.publish('rooms', room)
    notify.publish('rounds', rnd, 'insert')
    return rnd


def submit_answers(room_id, round_id, player_id, answers, categories=None) -> List[Answer]:
    """Upsert the player's answers for the round and mark them ready.

    Calling again before the round closes overwrites the previous texts.
    """
    texts = _validate_answers(answers)
    rnd = get_round(round_id, room_id)
    player = get_player(player_id)
    if player.room_id != rnd.room_id:
        raise Forbidden('Player is not part of this room')
    require_playing(get_room(rnd.room_id))
    if rnd.state != ROUND_WRITING:
        raise InvalidState('Answers are closed for this round')

    labels = list(categories) if categories else get_room(rnd.room_id).categories
    saved = []
    for idx, text in enumerate(texts):
        answer = Answer.query.filter_by(round_id=rnd.id, player_id=player.id, category_index=idx).first()
        if answer is None:
            answer = Answer(round_id=rnd.id, player_id=player.id, category_index=idx, points=0)
        answer.text = text
        answer.category = labels[idx] if idx < len(labels) else ''
        db.session.add(answer)
        saved.append(answer)
    player.is_ready = True
    db.session.add(player)
    _commit('submit_answers')

    current_app.logger.info(f"[submit_answers] round={rnd.id} player={player.id}")
    notify.publish_many('answers', saved)
    notify.publish('players', player)
    return saved


def reroll_letter(room_id, round_id, player_id) -> Round:
    room = get_room(room_id)
    require_organizer(player_id, room.id)
    require_playing(room)
    rnd = get_round(round_id, room.id)
    if rnd.state != ROUND_WRITING:
        raise InvalidState('The letter can only change while writing')
    if rnd.letter_rerolled:
        raise InvalidState('The letter has already been changed this round')
    if setting('LETTER_REROLL_POLICY', REROLL_POLICY_CLIENT) == REROLL_POLICY_SERVER:
        window = float(setting('LETTER_REROLL_WINDOW_SEC', LETTER_REROLL_WINDOW_SEC))
        elapsed = (utcnow() - rnd.created_at).total_seconds()
        if elapsed > window:
            raise InvalidState('The time to change the letter is over')

    previous = rnd.letter
    rnd.letter = random_letter()
    rnd.letter_rerolled = True
    db.session.add(rnd)
    _commit('reroll_letter')

    current_app.logger.info(f"[reroll_letter] round={rnd.id} {previous} -> {rnd.letter}")
    notify.publish('rounds', rnd)
    return rnd


def end_round(round_id, player_id) -> Round:
    rnd = get_round(round_id)
    player = get_player(player_id)
    if not player.is_organizer or player.room_id != rnd.room_id:
        raise Forbidden()
    require_playing(get_room(rnd.room_id))
    if rnd.state != ROUND_WRITING:
        raise InvalidState('The round is not accepting answers')

    rnd.state = ROUND_SCORING
    db.session.add(rnd)
    _commit('end_round')

    ready = Player.query.filter_by(room_id=rnd.room_id, is_ready=True).count()
    current_app.logger.info(f"[end_round] round={rnd.id} ready_players={ready}")
    notify.publish('rounds', rnd)
    return rnd


def assign_scores(assignments: Sequence[dict]) -> List[Answer]:
    """Write points for a batch of answers.

    Authorization is checked once, with the first entry's ``player_id``.
    The batch is validated up front and committed as one unit.
    """
    if not assignments:
        raise ValidationError('No scores to assign')
    organizer = get_player(assignments[0].get('player_id'))
    if not organizer.is_organizer:
        raise Forbidden()
    require_playing(get_room(organizer.room_id))

    updates = []
    for item in assignments:
        points = item.get('points')
        if isinstance(points, bool) or not isinstance(points, int) or points < 0:
            raise ValidationError('Points must be a whole number of at least 0')
        answer = Answer.query.get(item.get('answer_id')) if item.get('answer_id') else None
        if not answer:
            raise AnswerNotFound()
        rnd = Round.query.get(answer.round_id)
        if rnd.room_id != organizer.room_id:
            raise Forbidden()
        if rnd.state != ROUND_SCORING:
            raise InvalidState('Points can only be assigned while scoring')
        updates.append((answer, points))

    for answer, points in updates:
        answer.points = points
        db.session.add(answer)
    _commit('assign_scores')

    current_app.logger.info(f"[assign_scores] room={organizer.room_id} answers={len(updates)}")
    notify.publish_many('answers', [a for a, _ in updates])
    return [a for a, _ in updates]


def finalize_scoring(room_id, round_id, player_id) -> Room:
    room = get_room(room_id)
    require_organizer(player_id, room.id)
    require_playing(room)
    rnd = get_round(round_id, room.id)
    if rnd.state != ROUND_SCORING:
        raise InvalidState('The round is not being scored')

    rnd.state = ROUND_COMPLETED
    room.state = ROOM_RESULT_SCREEN
    db.session.add(rnd)
    db.session.add(room)
    players = _reset_ready(room.id)
    _commit('finalize_scoring')

    current_app.logger.info(f"[finalize_scoring] room={room.id} round={rnd.id}")
    notify.publish('rounds', rnd)
    notify.publish('rooms', room)
    notify.publish_many('players', players)
    return room


def start_new_round(room_id, player_id) -> Round:
    room = get_room(room_id)
    require_organizer(player_id, room.id)
    latest = current_round(room.id)
    if room.state != ROOM_RESULT_SCREEN or (latest and latest.state != ROUND_COMPLETED):
        raise InvalidState('The current round has not finished')

    number = (latest.round_number if latest else 0) + 1
    rnd = Round(room_id=room.id, round_number=number, letter=random_letter(), state=ROUND_WRITING)
    db.session.add(rnd)
    room.state = ROOM_PLAYING
    db.session.add(room)
    players = _reset_ready(room.id)
    _commit('start_new_round')

    current_app.logger.info(f"[next_round] room={room.id} round={number} letter={rnd.letter}")
    notify.publish('rounds', rnd, 'insert')
    notify.publish('rooms', room)
    notify.publish_many('players', players)
    return rnd


def finish_game(room_id, player_id) -> Room:
    room = get_room(room_id)
    require_organizer(player_id, room.id)
    if room.state == ROOM_FINISHED:
        return room
    if room.state == ROOM_LOBBY:
        raise InvalidState('The game has not started')

    room.state = ROOM_FINISHED
    db.session.add(room)
    _commit('finish_game')

    current_app.logger.info(f"[finish] room={room.id}")
    notify.publish('rooms', room)
    return room


# ---- reads ----

def readiness(room_id) -> dict:
    total = Player.query.filter_by(room_id=room_id).count()
    ready = Player.query.filter_by(room_id=room_id, is_ready=True).count()
    return {'ready': ready, 'total': total}


def describe_state(room_id, player_id=None) -> dict:
    """Fresh snapshot of a room plus where ``player_id`` should be."""
    room = get_room(room_id)
    rnd = current_round(room.id)
    players = Player.query.filter_by(room_id=room.id).order_by(Player.created_at, Player.id).all()
    totals = player_totals(room.id)
    me = next((p for p in players if p.id == player_id), None)

    serialized = []
    for p in players:
        pd = p.to_dict()
        pd['accumulated_score'] = totals.get(p.id, 0)
        serialized.append(pd)

    transition = next_view(
        room.state,
        rnd.state if rnd else None,
        bool(me and me.is_organizer),
        room.id,
        rnd.id if rnd else None,
        me.id if me else None,
    )
    return {
        'room': room.to_dict(),
        'round': rnd.to_dict() if rnd else None,
        'players': serialized,
        'readiness': readiness(room.id),
        'player': me.to_dict() if me else None,
        'next': transition.to_dict() if transition else None,
    }
