"""Domain exceptions.

Services raise these; the app-level error handler turns them into
``{"error": ..., "code": ...}`` JSON responses.
"""


class GiftSwapError(Exception):
    """Base class for every recoverable game error."""
    code = 'giftswap_error'
    status_code = 400

    def __init__(self, message=None, **extra):
        self.message = message or self.__doc__
        self.extra = extra
        super().__init__(self.message)

    def to_dict(self):
        payload = {'error': self.message, 'code': self.code}
        payload.update(self.extra)
        return payload


# ============ Round errors ============

class NoActiveRound(GiftSwapError):
    """No voting round is active"""
    code = 'no_active_round'
    status_code = 409


class RoundTied(GiftSwapError):
    """The vote is tied; start a tiebreaker before closing the round"""
    code = 'round_tied'
    status_code = 409

    def __init__(self, tied_ids):
        self.tied_ids = list(tied_ids)
        super().__init__(tied_ids=self.tied_ids)


class RoundAlreadyResolved(GiftSwapError):
    """This round has already been resolved"""
    code = 'round_already_resolved'
    status_code = 409

    def __init__(self, session_id):
        self.session_id = session_id
        super().__init__(f"Round {session_id} has already been resolved", session_id=session_id)


class NoEligibleParticipant(GiftSwapError):
    """No participant is left to vote on"""
    code = 'no_eligible_participant'
    status_code = 404


# ============ Participant errors ============

class ParticipantNotFound(GiftSwapError):
    """Participant does not exist"""
    code = 'participant_not_found'
    status_code = 404

    def __init__(self, participant_id):
        self.participant_id = participant_id
        super().__init__(f"Participant {participant_id} not found", participant_id=participant_id)


class InvalidParticipantOrder(GiftSwapError):
    """The new order must list existing participants exactly once"""
    code = 'invalid_participant_order'


# ============ Vote errors ============

class InvalidVoteTarget(GiftSwapError):
    """That participant cannot be voted for in this round"""
    code = 'invalid_vote_target'


class VoterNameRequired(GiftSwapError):
    """Set a voter name before voting"""
    code = 'voter_name_required'


class InvalidVoterName(GiftSwapError):
    """Voter name must not be empty"""
    code = 'invalid_voter_name'


# ============ History errors ============

class HistoryEntryNotFound(GiftSwapError):
    """History entry does not exist"""
    code = 'history_entry_not_found'
    status_code = 404

    def __init__(self, entry_id):
        self.entry_id = entry_id
        super().__init__(f"History entry {entry_id} not found", entry_id=entry_id)


# ============ Store errors ============

class StoreError(GiftSwapError):
    """The shared store rejected the operation; try again"""
    code = 'store_failure'
    status_code = 503
