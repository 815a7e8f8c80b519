"""Row-change notifications over Socket.IO.

Clients subscribe to ``table`` + ``column=value`` channels and receive
``row_change`` events carrying only identifiers. They are expected to
re-read state over HTTP rather than trust the payload.
"""

from typing import Dict, Iterable, Optional, Tuple

from flask import current_app

from tuttifrutti import socketio

NAMESPACE = '/ws'
EVENT = 'row_change'

# table -> columns a subscription may filter on
SUBSCRIBABLE: Dict[str, Tuple[str, ...]] = {
    'rooms': ('id',),
    'players': ('room_id',),
    'rounds': ('room_id', 'id'),
    'answers': ('round_id',),
}


def channel_name(table: str, column: str, value) -> str:
    return f"{table}:{column}={value}"


def is_subscribable(table: Optional[str], column: Optional[str]) -> bool:
    return column in SUBSCRIBABLE.get(table or '', ())


def publish(table: str, row, event: str = 'update') -> None:
    """Emit a change for ``row`` on every channel its columns match."""
    for column in SUBSCRIBABLE.get(table, ()):
        value = getattr(row, column, None)
        if value is None:
            continue
        socketio.emit(
            EVENT,
            {'table': table, 'event': event, 'id': row.id, 'column': column, 'value': value},
            to=channel_name(table, column, value),
            namespace=NAMESPACE,
        )
    current_app.logger.debug(f"[row-change] table={table} event={event} id={row.id}")


def publish_many(table: str, rows: Iterable, event: str = 'update') -> None:
    for row in rows:
        publish(table, row, event)
