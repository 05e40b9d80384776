"""Participant roster and game reset."""

from flask import current_app

from giftswap import db, store
from giftswap.exceptions import ParticipantNotFound, InvalidParticipantOrder, GiftSwapError
from giftswap.models import Participant, Vote, VotingSession, HistoryEntry


def get_participant(participant_id) -> Participant:
    try:
        pid = int(participant_id)
    except (TypeError, ValueError):
        raise ParticipantNotFound(participant_id)
    participant = db.session.get(Participant, pid)
    if not participant:
        raise ParticipantNotFound(participant_id)
    return participant


def list_participants():
    return Participant.ordered().all()


def add_participant(name) -> Participant:
    cleaned = (name or '').strip() if isinstance(name, str) else ''
    if not cleaned:
        raise GiftSwapError('Participant name is required')
    highest = db.session.query(db.func.max(Participant.sort_order)).scalar()
    participant = Participant(name=cleaned[:64], sort_order=0 if highest is None else highest + 1)
    db.session.add(participant)
    store.commit(store.PARTICIPANTS)
    current_app.logger.info(f"[participant-add] id={participant.id} sort_order={participant.sort_order}")
    return participant


def remove_participant(participant_id) -> None:
    """Delete a participant, the votes cast for them and any round on their package."""
    from giftswap.services.voting.sessions import detach_participant

    participant = get_participant(participant_id)
    Vote.query.filter_by(voted_for_participant_id=participant.id).delete(synchronize_session=False)
    detach_participant(participant.id)
    db.session.delete(participant)
    store.commit(store.PARTICIPANTS, store.VOTES, store.VOTING_SESSIONS)
    current_app.logger.info(f"[participant-remove] id={participant_id}")


def reorder_participants(participant_ids) -> list:
    """Set sort_order from an ordered list that names every participant once."""
    try:
        ordered_ids = [int(pid) for pid in participant_ids or []]
    except (TypeError, ValueError):
        raise InvalidParticipantOrder()
    participants = {p.id: p for p in Participant.query.all()}
    if len(ordered_ids) != len(set(ordered_ids)) or set(ordered_ids) != set(participants):
        raise InvalidParticipantOrder()
    for position, pid in enumerate(ordered_ids):
        participants[pid].sort_order = position
    store.commit(store.PARTICIPANTS)
    return [participants[pid] for pid in ordered_ids]


def reset_game() -> None:
    """Clear votes, rounds and history; keep participants with default flags."""
    Vote.query.delete(synchronize_session=False)
    VotingSession.query.delete(synchronize_session=False)
    HistoryEntry.query.delete(synchronize_session=False)
    for participant in Participant.query.all():
        participant.is_locked = False
        participant.has_received_package = False
        participant.last_voted_at = None
    store.commit(*store.COLLECTIONS)
    current_app.logger.info("[game-reset] votes, rounds and history cleared")
