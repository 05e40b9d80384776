from flask_socketio import join_room, leave_room, emit
from giftswap import socketio
from giftswap.store import COLLECTIONS, room_for


def handle_connect():
    emit('connected', {'message': 'Connected to /ws', 'collections': list(COLLECTIONS)})


def _collection_from(data):
    collection = (data or {}).get('collection')
    if collection not in COLLECTIONS:
        emit('error', {'message': f"Unknown collection {collection!r}", 'collections': list(COLLECTIONS)})
        return None
    return collection


def handle_subscribe(data):
    collection = _collection_from(data)
    if not collection:
        return
    join_room(room_for(collection))
    emit('subscribed', {'collection': collection})


def handle_unsubscribe(data):
    collection = _collection_from(data)
    if not collection:
        return
    leave_room(room_for(collection))
    emit('unsubscribed', {'collection': collection})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on namespace '/ws'."""
    socketio.on_event('connect', handle_connect, namespace='/ws')
    socketio.on_event('subscribe', handle_subscribe, namespace='/ws')
    socketio.on_event('unsubscribe', handle_unsubscribe, namespace='/ws')
    socketio.on_event('ping', handle_ping, namespace='/ws')
