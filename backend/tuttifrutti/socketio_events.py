from flask_socketio import join_room, leave_room, emit
from tuttifrutti import socketio
from tuttifrutti.services.game.notify import NAMESPACE, channel_name, is_subscribable


def handle_connect():
    emit('connected', {'message': f'Connected to {NAMESPACE}'})


def _channel_from(data):
    data = data or {}
    table = data.get('table')
    column = data.get('column')
    value = data.get('value')
    if not (table and column and value):
        emit('error', {'message': 'table, column and value are required'})
        return None
    if not is_subscribable(table, column):
        emit('error', {'message': f'Cannot subscribe to {table} by {column}'})
        return None
    return channel_name(table, column, value)


def handle_subscribe(data):
    channel = _channel_from(data)
    if channel is None:
        return
    join_room(channel)
    emit('subscribed', {'channel': channel})


def handle_unsubscribe(data):
    channel = _channel_from(data)
    if channel is None:
        return
    leave_room(channel)
    emit('unsubscribed', {'channel': channel})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    namespaces = [NAMESPACE, '/'] if testing else [NAMESPACE]
    for ns in namespaces:
        socketio.on_event('connect', handle_connect, namespace=ns)
        socketio.on_event('subscribe', handle_subscribe, namespace=ns)
        socketio.on_event('unsubscribe', handle_unsubscribe, namespace=ns)
        socketio.on_event('ping', handle_ping, namespace=ns)
