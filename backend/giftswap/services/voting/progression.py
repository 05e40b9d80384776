"""Choosing whose package goes up for vote next."""

from typing import List, Optional

from flask import current_app

from giftswap.exceptions import NoEligibleParticipant
from giftswap.models import Participant
from .resolution import set_has_received_package
from .sessions import end_round, require_active_session, start_round


def eligible_participants() -> List[Participant]:
    """Unlocked participants without a voted-in package, in roster order."""
    return Participant.ordered().filter_by(is_locked=False, has_received_package=False).all()


def next_eligible(exclude_id=None) -> Optional[Participant]:
    eligible = eligible_participants()
    for participant in eligible:
        if participant.id != exclude_id:
            return participant
    # Only the excluded participant is left
    return eligible[0] if eligible else None


def start_next_round():
    participant = next_eligible()
    if participant is None:
        raise NoEligibleParticipant()
    return start_round(participant.id)


def advance(winner_id=None) -> dict:
    """Resolve the active round and move the game on.

    With one eligible participant left their package is marked received
    and no round is opened; with more, a round opens on the next one,
    skipping the subject that was just voted on.
    """
    subject_id = require_active_session().current_participant_id
    entry = end_round(commit_to_history=True, winner_id=winner_id)

    remaining = eligible_participants()
    result = {'history_entry': entry, 'session': None, 'auto_completed': None}
    if len(remaining) == 1:
        result['auto_completed'] = set_has_received_package(remaining[0].id, True)
    elif len(remaining) > 1:
        result['session'] = start_round(next_eligible(exclude_id=subject_id).id)
    current_app.logger.info(
        f"[advance] subject={subject_id} remaining={len(remaining)} "
        f"next={result['session'].current_participant_id if result['session'] else None}"
    )
    return result
