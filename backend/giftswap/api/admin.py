from flask import Blueprint, jsonify, request
from flask_login import login_required
from giftswap.services.voting import ledger, progression, resolution, roster, sessions


admin = Blueprint('admin', __name__)


def _history_payload(entry):
    return entry.to_dict() if entry is not None else None


@admin.route('/participants', methods=['GET'])
@login_required
def list_participants():
    return jsonify([p.to_dict() for p in roster.list_participants()])


@admin.route('/participants', methods=['POST'])
@login_required
def add_participant():
    data = request.get_json(silent=True) or {}
    participant = roster.add_participant(data.get('name'))
    return jsonify(participant.to_dict()), 201


@admin.route('/participants/<int:participant_id>', methods=['DELETE'])
@login_required
def remove_participant(participant_id):
    roster.remove_participant(participant_id)
    return jsonify({'message': 'Participant removed'})


@admin.route('/participants/order', methods=['POST'])
@login_required
def reorder_participants():
    data = request.get_json(silent=True) or {}
    participants = roster.reorder_participants(data.get('participant_ids'))
    return jsonify([p.to_dict() for p in participants])


@admin.route('/participants/<int:participant_id>/lock', methods=['POST'])
@login_required
def lock_participant(participant_id):
    participant, stamped = resolution.lock_participant(participant_id)
    return jsonify({'participant': participant.to_dict(), 'history_entries_stamped': stamped})


@admin.route('/participants/<int:participant_id>/unlock', methods=['POST'])
@login_required
def unlock_participant(participant_id):
    return jsonify(resolution.unlock_participant(participant_id).to_dict())


@admin.route('/participants/<int:participant_id>/package', methods=['POST'])
@login_required
def set_package(participant_id):
    data = request.get_json(silent=True) or {}
    participant = resolution.set_has_received_package(participant_id, bool(data.get('has_received_package')))
    return jsonify(participant.to_dict())


@admin.route('/rounds/start', methods=['POST'])
@login_required
def start_round():
    data = request.get_json(silent=True) or {}
    session = sessions.start_round(data.get('participant_id'))
    return jsonify(session.to_dict()), 201


@admin.route('/rounds/tiebreaker', methods=['POST'])
@login_required
def start_tiebreaker():
    """Restart the current subject's round limited to the tied participants.

    Defaults to the active round's subject and its current tie.
    """
    data = request.get_json(silent=True) or {}
    participant_id = data.get('participant_id')
    candidate_ids = data.get('candidate_ids')
    if participant_id is None or candidate_ids is None:
        active = sessions.require_active_session()
        if participant_id is None:
            participant_id = active.current_participant_id
        if candidate_ids is None:
            candidate_ids = ledger.find_tie(ledger.tally(active))
    session = sessions.start_tiebreaker_round(participant_id, candidate_ids)
    return jsonify(session.to_dict()), 201


@admin.route('/rounds/next', methods=['POST'])
@login_required
def start_next_round():
    session = progression.start_next_round()
    return jsonify(session.to_dict()), 201


@admin.route('/rounds/reset', methods=['POST'])
@login_required
def reset_round():
    session = sessions.close_round()
    return jsonify(session.to_dict())


@admin.route('/rounds/end', methods=['POST'])
@login_required
def end_round():
    data = request.get_json(silent=True) or {}
    entry = sessions.end_round(
        commit_to_history=bool(data.get('commit', True)),
        winner_id=data.get('winner_id'),
    )
    return jsonify({'history_entry': _history_payload(entry)})


@admin.route('/rounds/advance', methods=['POST'])
@login_required
def advance():
    data = request.get_json(silent=True) or {}
    result = progression.advance(data.get('winner_id'))
    return jsonify({
        'history_entry': _history_payload(result['history_entry']),
        'session': result['session'].to_dict() if result['session'] else None,
        'auto_completed': result['auto_completed'].to_dict() if result['auto_completed'] else None,
    })


@admin.route('/history', methods=['GET'])
@login_required
def list_history():
    return jsonify(resolution.list_history())


@admin.route('/history/<int:entry_id>', methods=['DELETE'])
@login_required
def delete_history_entry(entry_id):
    resolution.delete_history_entry(entry_id)
    return jsonify({'message': 'History entry deleted'})


@admin.route('/game/reset', methods=['POST'])
@login_required
def reset_game():
    roster.reset_game()
    return jsonify({'message': 'Game has been reset'})
