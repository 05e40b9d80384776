from flask import Blueprint, jsonify, request
from giftswap import identity
from giftswap.models import Participant
from giftswap.services.voting import ledger, sessions
from giftswap.services.voting.statistics import game_summary


voting = Blueprint('voting', __name__)


@voting.route('/voter', methods=['GET'])
def get_voter():
    return jsonify({
        'voter_token': identity.get_or_create_voter_token(),
        'voter_name': identity.get_voter_name(),
    })


@voting.route('/voter', methods=['POST'])
def set_voter():
    data = request.get_json(silent=True) or {}
    name = identity.set_voter_name(data.get('name'))
    return jsonify({
        'voter_token': identity.get_or_create_voter_token(),
        'voter_name': name,
    })


@voting.route('/state', methods=['GET'])
def get_state():
    session = sessions.get_active_session()
    rows = ledger.tally(session)
    vote = ledger.current_vote()
    subject = session.current_participant if session else None
    return jsonify({
        'participants': [p.to_dict() for p in Participant.ordered().all()],
        'session': session.to_dict() if session else None,
        'current_participant': subject.to_dict() if subject else None,
        'tally': rows,
        'tie': ledger.find_tie(rows),
        'total_votes': len(ledger.session_votes(session)),
        'has_voted': vote is not None,
        'current_vote': vote.to_dict() if vote else None,
    })


@voting.route('/votes', methods=['POST'])
def cast_vote():
    data = request.get_json(silent=True) or {}
    vote = ledger.cast_vote(data.get('participant_id'))
    return jsonify(vote.to_dict())


@voting.route('/tally', methods=['GET'])
def get_tally():
    rows = ledger.tally()
    return jsonify({'tally': rows, 'tie': ledger.find_tie(rows)})


@voting.route('/summary', methods=['GET'])
def get_summary():
    return jsonify(game_summary())
