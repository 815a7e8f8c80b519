"""Who is acting: resolve the player id for a client session.

There are no credentials. A player id is an opaque bearer token handed out
at create/join time; the client passes it along explicitly on navigation and
we remember the last one in the signed session cookie.
"""

from typing import NamedTuple, Optional

from flask import request, session

SESSION_KEY = 'player_id'

SOURCE_PARAM = 'param'
SOURCE_STORED = 'stored'
SOURCE_NONE = 'none'


class IdentityContext(NamedTuple):
    player_id: Optional[str]
    source: str

    @property
    def is_known(self) -> bool:
        return self.player_id is not None


def resolve_identity(param: Optional[str], stored: Optional[str]) -> IdentityContext:
    """Incoming parameter wins over the persisted value; otherwise unknown."""
    if param:
        return IdentityContext(str(param), SOURCE_PARAM)
    if stored:
        return IdentityContext(str(stored), SOURCE_STORED)
    return IdentityContext(None, SOURCE_NONE)


def identity_from_request(data: Optional[dict] = None) -> IdentityContext:
    """Resolve the identity for the current request and persist it.

    The explicit parameter is ``player_id`` in the JSON body or the query
    string; the stored value lives in the session cookie.
    """
    param = (data or {}).get('player_id') or request.args.get('player_id')
    ctx = resolve_identity(param, session.get(SESSION_KEY))
    if ctx.source == SOURCE_PARAM:
        session[SESSION_KEY] = ctx.player_id
    return ctx


def remember_player(player_id: str) -> None:
    session[SESSION_KEY] = player_id
