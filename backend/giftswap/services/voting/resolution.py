"""Round resolution and the append-only history ledger.

This module is the only writer of history entries and of the
``is_locked`` / ``has_received_package`` participant flags.
"""

import json
from typing import List, Tuple

from flask import current_app

from giftswap import db, store
from giftswap.exceptions import HistoryEntryNotFound, ParticipantNotFound, RoundAlreadyResolved, RoundTied
from giftswap.models import HistoryEntry, Participant, VotingSession, utcnow
from .ledger import find_tie, session_votes, tally
from .roster import get_participant


def compute_move_count(package_owner_id: int, subject_id: int, winner_id: int) -> int:
    """Moves so far for this package lineage, plus one if it changes hands now."""
    prior = (
        HistoryEntry.query.filter_by(package_owner_id=package_owner_id)
        .order_by(HistoryEntry.created_at.desc(), HistoryEntry.id.desc())
        .first()
    )
    prior_count = (prior.move_count or 0) if prior else 0
    if winner_id != subject_id:
        return prior_count + 1
    return prior_count


def mark_voting_complete(subject: Participant, winner: Participant) -> None:
    """Move the package to ``winner`` if it differs from ``subject``. Does not commit."""
    if winner.id != subject.id:
        winner.has_received_package = True
        subject.has_received_package = False
    subject.last_voted_at = utcnow()


def _claim_round(session: VotingSession) -> None:
    # Atomic check-and-set so two hosts closing the same round cannot both write history
    now = utcnow()
    claimed = (
        VotingSession.query
        .filter(VotingSession.id == session.id, VotingSession.resolved_at.is_(None))
        .update({'resolved_at': now}, synchronize_session=False)
    )
    if claimed != 1:
        raise RoundAlreadyResolved(session.id)
    session.resolved_at = now


def resolve_round(session: VotingSession, winner_id=None) -> HistoryEntry:
    """Write the round's history entry and move the package. Does not commit.

    A tied tally raises :class:`RoundTied` even when ``winner_id`` is
    given; ties are settled by a tiebreaker round. Otherwise the top of
    the tally wins unless the host names the winner, and a round with no
    votes keeps the package with its subject.
    """
    subject = db.session.get(Participant, session.current_participant_id) if session.current_participant_id else None
    if subject is None:
        raise ParticipantNotFound(session.current_participant_id)

    results = tally(session)
    leading_id = results[0]['participant_id'] if results and results[0]['count'] > 0 else None
    tied = find_tie(results)
    if tied:
        raise RoundTied(tied)
    if winner_id is None:
        winner_id = leading_id if leading_id is not None else subject.id
    winner = get_participant(winner_id)

    _claim_round(session)

    correct_voters = {}
    for vote in session_votes(session):
        correct_voters[vote.voter_name or vote.voter_token] = vote.voted_for_participant_id

    entry = HistoryEntry(
        participant_id=subject.id,
        package_owner_id=subject.id,
        winner_id=winner.id,
        leading_participant_id=leading_id,
        results=json.dumps(results),
        move_count=compute_move_count(subject.id, subject.id, winner.id),
        correct_voters=json.dumps(correct_voters),
    )
    db.session.add(entry)
    mark_voting_complete(subject, winner)
    current_app.logger.info(
        f"[round-resolved] session={session.id} subject={subject.id} winner={winner.id} "
        f"move_count={entry.move_count} voters={len(correct_voters)}"
    )
    return entry


def lock_participant(participant_id) -> Tuple[Participant, int]:
    """Finalize a participant and stamp the pending history entries they settle.

    Entries already stamped are never touched, so locking twice is harmless.
    Returns the participant and how many entries were stamped.
    """
    participant = get_participant(participant_id)
    participant.is_locked = True
    pending = HistoryEntry.query.filter(
        HistoryEntry.locked_participant_id.is_(None),
        db.or_(
            HistoryEntry.participant_id == participant.id,
            HistoryEntry.leading_participant_id == participant.id,
        ),
    ).all()
    for entry in pending:
        entry.locked_participant_id = participant.id
    store.commit(store.PARTICIPANTS, store.HISTORY_ENTRIES)
    current_app.logger.info(f"[lock-backfill] participant={participant.id} stamped={len(pending)}")
    return participant, len(pending)


def unlock_participant(participant_id) -> Participant:
    participant = get_participant(participant_id)
    participant.is_locked = False
    store.commit(store.PARTICIPANTS)
    current_app.logger.info(f"[unlock] participant={participant.id}")
    return participant


def set_has_received_package(participant_id, value: bool) -> Participant:
    participant = get_participant(participant_id)
    participant.has_received_package = bool(value)
    store.commit(store.PARTICIPANTS)
    current_app.logger.info(f"[package] participant={participant.id} has_received_package={participant.has_received_package}")
    return participant


def list_history() -> List[dict]:
    """History entries, newest first, with the subject's name attached."""
    names = {p.id: p.name for p in Participant.query.all()}
    entries = HistoryEntry.query.order_by(HistoryEntry.created_at.desc(), HistoryEntry.id.desc()).all()
    rows = []
    for entry in entries:
        row = entry.to_dict()
        row['participant_name'] = names.get(entry.participant_id, 'Unknown')
        rows.append(row)
    return rows


def delete_history_entry(entry_id) -> None:
    entry = db.session.get(HistoryEntry, entry_id)
    if not entry:
        raise HistoryEntryNotFound(entry_id)
    db.session.delete(entry)
    store.commit(store.HISTORY_ENTRIES)
    current_app.logger.info(f"[history-delete] entry={entry_id}")
