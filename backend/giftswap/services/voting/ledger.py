"""Vote ledger: one vote per voter per round, and live tallies."""

from collections import Counter
from typing import Dict, List, Optional

from flask import current_app

from giftswap import db, identity, store
from giftswap.exceptions import InvalidVoteTarget, VoterNameRequired
from giftswap.models import Participant, Vote, VotingSession
from .sessions import get_active_session, require_active_session


def session_votes(session: Optional[VotingSession]) -> List[Vote]:
    if session is None:
        return []
    return Vote.query.filter_by(session_id=session.id).order_by(Vote.id.asc()).all()


def cast_vote(participant_id, voter_token: Optional[str] = None, voter_name: Optional[str] = None) -> Vote:
    """Record the caller's vote, replacing any earlier vote in the same round.

    The voter defaults to the identity stored on the calling device.
    """
    session = require_active_session()
    voter_name = voter_name or identity.get_voter_name()
    if not voter_name:
        raise VoterNameRequired()
    voter_token = voter_token or identity.get_or_create_voter_token()

    try:
        target = db.session.get(Participant, int(participant_id))
    except (TypeError, ValueError):
        target = None
    if target is None:
        raise InvalidVoteTarget(f"Participant {participant_id} cannot be voted for")
    if target.is_locked:
        raise InvalidVoteTarget(f"{target.name} is already locked")
    candidates = session.candidate_ids
    if candidates is not None and target.id not in candidates:
        raise InvalidVoteTarget('Tiebreaker round: vote for one of the tied participants', candidate_ids=candidates)

    vote = Vote.query.filter_by(session_id=session.id, voter_token=voter_token).first()
    if vote:
        vote.voted_for_participant_id = target.id
        vote.voter_name = voter_name
    else:
        vote = Vote(
            session_id=session.id,
            voted_for_participant_id=target.id,
            voter_token=voter_token,
            voter_name=voter_name,
        )
        db.session.add(vote)
    store.commit(store.VOTES)
    current_app.logger.info(f"[vote] session={session.id} vote={vote.id} target={target.id}")
    return vote


def tally(session: Optional[VotingSession] = None) -> List[Dict]:
    """Vote counts for every unlocked participant, highest first.

    Equal counts keep roster order; callers must treat them as tied.
    """
    if session is None:
        session = get_active_session()
    counts = Counter(v.voted_for_participant_id for v in session_votes(session))
    rows = [
        {'participant_id': p.id, 'name': p.name, 'count': counts.get(p.id, 0)}
        for p in Participant.ordered().filter_by(is_locked=False).all()
    ]
    rows.sort(key=lambda row: row['count'], reverse=True)
    return rows


def find_tie(rows: List[Dict]) -> List[int]:
    """Ids sharing the top nonzero count when two or more do, else []."""
    if not rows:
        return []
    top = max(row['count'] for row in rows)
    if top <= 0:
        return []
    leaders = [row['participant_id'] for row in rows if row['count'] == top]
    return leaders if len(leaders) > 1 else []


def current_vote(voter_token: Optional[str] = None) -> Optional[Vote]:
    session = get_active_session()
    if session is None:
        return None
    voter_token = voter_token or identity.get_or_create_voter_token()
    return Vote.query.filter_by(session_id=session.id, voter_token=voter_token).first()


def has_voted(voter_token: Optional[str] = None) -> bool:
    return current_vote(voter_token) is not None
