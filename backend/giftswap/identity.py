"""Per-device voter identity.

The token and display name live in the signed session cookie, so each
browser keeps the same anonymous identity for the whole party.
"""

import uuid

from flask import current_app, session

from giftswap.exceptions import InvalidVoterName

_TOKEN_KEY = 'voter_token'
_NAME_KEY = 'voter_name'


def get_or_create_voter_token() -> str:
    token = session.get(_TOKEN_KEY)
    if not token:
        token = str(uuid.uuid4())
        session[_TOKEN_KEY] = token
        session.permanent = True
    return token


def get_voter_name():
    return session.get(_NAME_KEY)


def set_voter_name(name) -> str:
    cleaned = (name or '').strip() if isinstance(name, str) else ''
    max_len = int(current_app.config.get('MAX_VOTER_NAME_LENGTH', 64))
    if not cleaned:
        raise InvalidVoterName()
    if len(cleaned) > max_len:
        raise InvalidVoterName(f"Voter name must be at most {max_len} characters")
    session[_NAME_KEY] = cleaned
    get_or_create_voter_token()
    return cleaned
