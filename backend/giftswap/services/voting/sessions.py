"""Round lifecycle: at most one active voting session at a time."""

import json
from typing import Iterable, Optional

from flask import current_app

from giftswap import db, store
from giftswap.exceptions import GiftSwapError, InvalidVoteTarget, NoActiveRound
from giftswap.models import Vote, VotingSession
from .roster import get_participant


def get_active_session() -> Optional[VotingSession]:
    return VotingSession.query.filter_by(is_active=True).order_by(VotingSession.id.desc()).first()


def require_active_session() -> VotingSession:
    session = get_active_session()
    if not session:
        raise NoActiveRound()
    return session


def _discard_active_sessions() -> None:
    for session in VotingSession.query.filter_by(is_active=True).all():
        Vote.query.filter_by(session_id=session.id).delete(synchronize_session=False)
        session.is_active = False


def start_round(participant_id, candidate_ids: Optional[Iterable[int]] = None) -> VotingSession:
    """Deactivate any active round, drop its votes and open a new one on ``participant_id``."""
    subject = get_participant(participant_id)
    _discard_active_sessions()
    session = VotingSession(
        current_participant_id=subject.id,
        is_active=True,
        candidate_restriction=json.dumps(list(candidate_ids)) if candidate_ids is not None else None,
    )
    db.session.add(session)
    store.commit(store.VOTING_SESSIONS, store.VOTES)
    current_app.logger.info(
        f"[round-start] session={session.id} subject={subject.id} candidates={session.candidate_ids}"
    )
    return session


def start_tiebreaker_round(participant_id, candidate_ids) -> VotingSession:
    """Start a round on the same subject restricted to ``candidate_ids``."""
    candidates = []
    for cid in candidate_ids or []:
        candidate = get_participant(cid)
        if candidate.is_locked:
            raise InvalidVoteTarget(f"{candidate.name} is locked and cannot be a tiebreaker candidate")
        if candidate.id not in candidates:
            candidates.append(candidate.id)
    if len(candidates) < 2:
        raise InvalidVoteTarget('A tiebreaker needs at least two candidates')
    return start_round(participant_id, candidate_ids=candidates)


def close_round() -> VotingSession:
    """Clear the active round's votes, keeping its subject. Writes no history."""
    session = require_active_session()
    removed = Vote.query.filter_by(session_id=session.id).delete(synchronize_session=False)
    store.commit(store.VOTES)
    current_app.logger.info(f"[round-reset] session={session.id} votes_removed={removed}")
    return session


def end_round(commit_to_history: bool = False, winner_id=None):
    """Close the active round; optionally resolve it into the history ledger first.

    Returns the new history entry, or None when nothing was committed.
    """
    from .resolution import resolve_round

    session = require_active_session()
    entry = None
    if commit_to_history:
        try:
            entry = resolve_round(session, winner_id)
        except GiftSwapError:
            db.session.rollback()
            raise
    Vote.query.filter_by(session_id=session.id).delete(synchronize_session=False)
    session.is_active = False
    collections = [store.VOTES, store.VOTING_SESSIONS]
    if entry is not None:
        collections += [store.HISTORY_ENTRIES, store.PARTICIPANTS]
    store.commit(*collections)
    current_app.logger.info(
        f"[round-end] session={session.id} committed={entry is not None} "
        f"history={entry.id if entry is not None else None}"
    )
    return entry


def detach_participant(participant_id: int) -> None:
    """Unlink a participant who is about to be deleted from every round. Does not commit."""
    for session in VotingSession.query.filter_by(current_participant_id=participant_id).all():
        if session.is_active:
            Vote.query.filter_by(session_id=session.id).delete(synchronize_session=False)
            session.is_active = False
        session.current_participant_id = None
