"""Commit-and-notify seam over the shared database.

Every write in the voting services goes through :func:`commit`, which
persists the SQLAlchemy session and then tells subscribers which
collections changed: in-process callbacks registered with
:func:`subscribe`, and Socket.IO clients in the ``store:<collection>``
rooms on ``/ws``.
"""

from collections import defaultdict
from typing import Callable, Dict, List

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from giftswap import db, socketio
from giftswap.exceptions import StoreError


PARTICIPANTS = 'participants'
VOTES = 'votes'
VOTING_SESSIONS = 'voting_sessions'
HISTORY_ENTRIES = 'history_entries'
COLLECTIONS = (PARTICIPANTS, VOTES, VOTING_SESSIONS, HISTORY_ENTRIES)

_listeners: Dict[str, List[Callable[[str], None]]] = defaultdict(list)


def room_for(collection: str) -> str:
    return f"store:{collection}"


def subscribe(collection: str, callback: Callable[[str], None]) -> None:
    if collection not in COLLECTIONS:
        raise ValueError(f"Unknown collection {collection!r}")
    _listeners[collection].append(callback)


def unsubscribe(collection: str, callback: Callable[[str], None]) -> None:
    try:
        _listeners[collection].remove(callback)
    except ValueError:
        pass


def notify(*collections: str) -> None:
    for collection in dict.fromkeys(collections):
        for callback in list(_listeners.get(collection, ())):
            callback(collection)
        socketio.emit('store_update', {'collection': collection}, to=room_for(collection), namespace='/ws')


def commit(*collections: str) -> None:
    """Commit pending changes, then notify ``collections``.

    On failure the session is rolled back, so the store is left as it was
    before the call, and :class:`StoreError` is raised for the caller to retry.
    """
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error(f"[store-error] collections={','.join(collections)} error={exc}")
        raise StoreError() from exc
    notify(*collections)
