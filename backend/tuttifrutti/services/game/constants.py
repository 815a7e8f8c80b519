"""Fixed game vocabulary: alphabets, state names and default limits.

Limits that an operator may want to tune (minimum players, reroll window,
name/answer lengths) are read from the Flask config at call time; the values
here are the defaults used when no app config is available.
"""

import string

from flask import current_app

ROOM_CODE_CHARS = string.ascii_uppercase + string.digits
ROOM_CODE_LENGTH = 6

# K and W (and Ñ, absent from ASCII) are left out: too few usable words.
ROUND_LETTERS = 'ABCDEFGHIJLMNOPQRSTUVXYZ'

CATEGORIES_COUNT = 5
NAME_MIN = 2
NAME_MAX = 20
ANSWER_MAX = 30
CATEGORY_MAX = 30
MIN_PLAYERS = 2
LETTER_REROLL_WINDOW_SEC = 3.0

NULL_ID = '00000000-0000-0000-0000-000000000000'

# Room states
ROOM_LOBBY = 'lobby'
ROOM_PLAYING = 'playing'
ROOM_RESULT_SCREEN = 'result_screen'
ROOM_FINISHED = 'finished'

# Round states
ROUND_WRITING = 'writing'
ROUND_SCORING = 'scoring'
ROUND_COMPLETED = 'completed'

REROLL_POLICY_CLIENT = 'client'
REROLL_POLICY_SERVER = 'server'

TIE_POLICY_SEQUENTIAL = 'sequential'
TIE_POLICY_SHARED = 'shared'


def setting(key, default):
    """App config value, or ``default`` outside an app context."""
    try:
        value = current_app.config.get(key, default)
    except RuntimeError:
        return default
    return default if value is None else value
