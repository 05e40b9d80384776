import json
import logging

import pytest
from sqlalchemy.exc import OperationalError

from giftswap import db, store
from giftswap.exceptions import RoundAlreadyResolved, RoundTied, StoreError
from giftswap.models import HistoryEntry, Participant, Vote
from giftswap.services.voting import ledger, resolution, sessions


def _vote_round(subject, votes):
    """Open a round on ``subject`` and cast ``votes`` as (voter_name, target)."""
    session = sessions.start_round(subject.id)
    for voter_name, target in votes:
        ledger.cast_vote(target.id, voter_token=f"token-{voter_name}", voter_name=voter_name)
    return session


def test_package_moves_to_winner_and_move_count_increments(participants):
    alice, bob, cara = participants
    _vote_round(alice, [('Bob', bob), ('Cara', bob)])

    entry = sessions.end_round(commit_to_history=True, winner_id=bob.id)

    assert entry.participant_id == alice.id
    assert entry.package_owner_id == alice.id
    assert entry.winner_id == bob.id
    assert entry.move_count == 1
    assert db.session.get(Participant, alice.id).has_received_package is False
    assert db.session.get(Participant, bob.id).has_received_package is True
    assert db.session.get(Participant, alice.id).last_voted_at is not None
    assert sessions.get_active_session() is None
    assert Vote.query.count() == 0


def test_move_count_follows_the_package_lineage(participants):
    alice, bob, cara = participants
    _vote_round(alice, [('Bob', bob)])
    assert sessions.end_round(commit_to_history=True, winner_id=bob.id).move_count == 1

    _vote_round(alice, [('Bob', cara)])
    assert sessions.end_round(commit_to_history=True, winner_id=cara.id).move_count == 2

    # Package stays with its subject: count carries forward unchanged
    _vote_round(alice, [('Bob', alice)])
    stayed = sessions.end_round(commit_to_history=True, winner_id=alice.id)
    assert stayed.move_count == 2

    # A different lineage starts from zero
    _vote_round(bob, [('Alice', bob)])
    assert sessions.end_round(commit_to_history=True).move_count == 0


def test_winner_equal_to_subject_leaves_package_flags(participants):
    alice, bob, _ = participants
    bob.has_received_package = True
    db.session.commit()
    _vote_round(bob, [('Alice', bob)])

    sessions.end_round(commit_to_history=True)

    assert db.session.get(Participant, bob.id).has_received_package is True
    assert db.session.get(Participant, bob.id).last_voted_at is not None


def test_history_records_full_tally_and_every_voter_choice(participants):
    alice, bob, cara = participants
    _vote_round(alice, [('Alice', alice), ('Bob', alice), ('Cara', bob)])

    entry = sessions.end_round(commit_to_history=True)

    assert entry.winner_id == alice.id
    assert entry.leading_participant_id == alice.id
    assert [(r['participant_id'], r['count']) for r in entry.parsed_results] == [
        (alice.id, 2), (bob.id, 1), (cara.id, 0),
    ]
    assert entry.parsed_correct_voters == {'Alice': alice.id, 'Bob': alice.id, 'Cara': bob.id}


def test_round_without_votes_keeps_package_with_subject(participants):
    alice, _, _ = participants
    sessions.start_round(alice.id)

    entry = sessions.end_round(commit_to_history=True)

    assert entry.winner_id == alice.id
    assert entry.leading_participant_id is None
    assert entry.move_count == 0


def test_tied_round_cannot_be_closed_even_with_a_winner(participants):
    alice, bob, cara = participants
    session = _vote_round(alice, [('Bob', alice), ('Cara', bob)])

    with pytest.raises(RoundTied) as excinfo:
        sessions.end_round(commit_to_history=True)

    assert excinfo.value.tied_ids == [alice.id, bob.id]
    assert sessions.get_active_session().id == session.id
    assert len(ledger.session_votes(session)) == 2
    assert HistoryEntry.query.count() == 0

    # Naming a winner does not bypass the tie
    with pytest.raises(RoundTied):
        sessions.end_round(commit_to_history=True, winner_id=bob.id)

    session = sessions.get_active_session()
    assert session is not None
    assert session.resolved_at is None
    assert len(ledger.session_votes(session)) == 2
    assert HistoryEntry.query.count() == 0
    assert db.session.get(Participant, bob.id).has_received_package is False


def test_failed_commit_leaves_round_untouched_and_can_be_retried(participants, monkeypatch):
    alice, bob, _ = participants
    session_id = _vote_round(alice, [('Bob', bob), ('Cara', bob)]).id

    def failing_commit():
        raise OperationalError('COMMIT', {}, Exception('database is locked'))

    monkeypatch.setattr(db.session, 'commit', failing_commit)
    with pytest.raises(StoreError) as excinfo:
        sessions.end_round(commit_to_history=True, winner_id=bob.id)
    monkeypatch.undo()

    assert excinfo.value.code == 'store_failure'
    assert HistoryEntry.query.count() == 0
    assert db.session.get(Participant, bob.id).has_received_package is False
    session = sessions.get_active_session()
    assert session.id == session_id
    assert session.resolved_at is None
    assert len(ledger.session_votes(session)) == 2

    entry = sessions.end_round(commit_to_history=True, winner_id=bob.id)
    assert entry.winner_id == bob.id
    assert HistoryEntry.query.count() == 1
    assert sessions.get_active_session() is None


def test_round_is_resolved_at_most_once(participants):
    alice, bob, _ = participants
    session = _vote_round(alice, [('Bob', bob)])
    resolution.resolve_round(session, bob.id)
    store.commit(store.HISTORY_ENTRIES, store.PARTICIPANTS)

    with pytest.raises(RoundAlreadyResolved):
        resolution.resolve_round(session, bob.id)
    db.session.rollback()

    assert HistoryEntry.query.count() == 1


def test_lock_backfill_stamps_subject_and_leader_entries_once(participants):
    alice, bob, cara = participants
    _vote_round(alice, [('Bob', bob), ('Cara', bob)])
    leader_entry = sessions.end_round(commit_to_history=True, winner_id=bob.id)
    _vote_round(bob, [('Alice', cara)])
    subject_entry = sessions.end_round(commit_to_history=True, winner_id=cara.id)
    _vote_round(cara, [('Alice', cara)])
    unrelated = sessions.end_round(commit_to_history=True)

    participant, stamped = resolution.lock_participant(bob.id)
    assert participant.is_locked
    assert stamped == 2
    assert db.session.get(HistoryEntry, leader_entry.id).locked_participant_id == bob.id
    assert db.session.get(HistoryEntry, subject_entry.id).locked_participant_id == bob.id
    assert db.session.get(HistoryEntry, unrelated.id).locked_participant_id is None

    _, stamped_again = resolution.lock_participant(bob.id)
    assert stamped_again == 0

    # Cara led the Bob round too, but stamped entries are never overwritten
    _, cara_stamped = resolution.lock_participant(cara.id)
    assert cara_stamped == 1
    assert db.session.get(HistoryEntry, subject_entry.id).locked_participant_id == bob.id
    assert db.session.get(HistoryEntry, unrelated.id).locked_participant_id == cara.id


def test_unlock_keeps_backfilled_stamps(participants):
    alice, bob, _ = participants
    _vote_round(alice, [('Bob', alice)])
    entry = sessions.end_round(commit_to_history=True)
    resolution.lock_participant(alice.id)

    unlocked = resolution.unlock_participant(alice.id)

    assert unlocked.is_locked is False
    assert db.session.get(HistoryEntry, entry.id).locked_participant_id == alice.id


def test_history_listing_and_deletion(participants):
    alice, bob, _ = participants
    _vote_round(alice, [('Bob', alice)])
    first = sessions.end_round(commit_to_history=True)
    _vote_round(bob, [('Alice', bob)])
    second = sessions.end_round(commit_to_history=True)

    rows = resolution.list_history()
    assert [row['id'] for row in rows] == [second.id, first.id]
    assert rows[0]['participant_name'] == 'Bob'

    resolution.delete_history_entry(first.id)
    assert [row['id'] for row in resolution.list_history()] == [second.id]


def test_malformed_history_payloads_parse_as_empty(flask_app, caplog):
    entry = HistoryEntry(participant_id=1, package_owner_id=1, results='not json',
                         correct_voters=json.dumps(['wrong', 'shape']), move_count=0)
    db.session.add(entry)
    db.session.commit()

    with caplog.at_level(logging.WARNING):
        assert entry.parsed_results == []
        assert entry.parsed_correct_voters == {}
    warnings = [r.getMessage() for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 2
    assert all('[history-malformed]' in message for message in warnings)

    caplog.clear()
    entry.results = json.dumps(['stray', {'participantId': 1, 'count': 2}])
    with caplog.at_level(logging.WARNING):
        assert entry.parsed_results == [{'participant_id': 1, 'name': None, 'count': 2}]
    assert 'skipped result row' in caplog.text
    assert resolution.list_history()[0]['participant_name'] == 'Unknown'
