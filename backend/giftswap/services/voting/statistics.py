"""End-of-game statistics, replayed from the full history ledger.

Everything here is a pure function of the history entries and the
participant list; malformed ``results`` / ``correct_voters`` payloads
count as empty.
"""

from typing import Dict, Iterable, List, Optional

from giftswap.models import HistoryEntry, Participant

UNKNOWN_NAME = 'Unknown'


def participant_stats(history: Iterable[HistoryEntry], names: Dict[int, str]) -> List[dict]:
    """Per-subject vote totals: all votes, votes for someone else, rounds."""
    stats: Dict[int, dict] = {}
    for entry in history:
        subject_id = entry.participant_id
        if subject_id is None:
            continue
        results = entry.parsed_results
        total = sum(row['count'] for row in results)
        correct = next((row['count'] for row in results if row['participant_id'] == subject_id), 0)
        stat = stats.setdefault(subject_id, {
            'participant_id': subject_id,
            'name': names.get(subject_id, UNKNOWN_NAME),
            'total_votes': 0,
            'wrong_votes': 0,
            'round_count': 0,
        })
        stat['total_votes'] += total
        stat['wrong_votes'] += total - correct
        stat['round_count'] += 1
    return list(stats.values())


def easiest_to_guess(stats: List[dict]) -> Optional[dict]:
    if not stats:
        return None
    return sorted(stats, key=lambda s: (s['wrong_votes'], s['round_count']))[0]


def hardest_to_guess(stats: List[dict]) -> Optional[dict]:
    if not stats:
        return None
    return sorted(stats, key=lambda s: (-s['wrong_votes'], -s['round_count']))[0]


def most_moved_package(history: Iterable[HistoryEntry], names: Dict[int, str]) -> Optional[dict]:
    """The package lineage with the highest move count, or None if nothing moved."""
    packages: Dict[int, dict] = {}
    for entry in history:
        owner_id = entry.package_owner_id if entry.package_owner_id is not None else entry.participant_id
        if owner_id is None:
            continue
        move_count = entry.move_count or 0
        package = packages.get(owner_id)
        if package is None:
            packages[owner_id] = {
                'owner_id': owner_id,
                'owner_name': names.get(owner_id, UNKNOWN_NAME),
                'move_count': move_count,
            }
        elif move_count > package['move_count']:
            package['move_count'] = move_count
    if not packages:
        return None
    top = sorted(packages.values(), key=lambda p: p['move_count'], reverse=True)[0]
    return top if top['move_count'] > 0 else None


def voter_stats(history: Iterable[HistoryEntry], names: Dict[int, str]) -> List[dict]:
    """Correct votes per voter across rounds whose owner has been locked.

    A voter's votes in the round on their own package are not counted.
    """
    correct: Dict[str, int] = {}
    total: Dict[str, int] = {}
    for entry in history:
        locked_id = entry.locked_participant_id
        if locked_id is None:
            continue
        owner_name = names.get(entry.package_owner_id) if entry.package_owner_id is not None else None
        for voter_name, voted_for in entry.parsed_correct_voters.items():
            if voter_name == owner_name:
                continue
            total[voter_name] = total.get(voter_name, 0) + 1
            if _same_id(voted_for, locked_id):
                correct[voter_name] = correct.get(voter_name, 0) + 1

    stats = []
    for voter_name, voted in total.items():
        hits = correct.get(voter_name, 0)
        stats.append({
            'name': voter_name,
            'correct_votes': hits,
            'total_votes': voted,
            'percentage': int(hits * 100 / voted + 0.5),
        })
    return stats


def best_voter(stats: List[dict]) -> Optional[dict]:
    if not stats:
        return None
    return sorted(stats, key=lambda s: (-s['percentage'], -s['correct_votes']))[0]


def _same_id(left, right) -> bool:
    try:
        return int(left) == int(right)
    except (TypeError, ValueError):
        return False


def summarize(history: List[HistoryEntry], participants: List[Participant]) -> dict:
    names = {p.id: p.name for p in participants}
    subjects = participant_stats(history, names)
    return {
        'easiest': easiest_to_guess(subjects),
        'hardest': hardest_to_guess(subjects),
        'most_moved_package': most_moved_package(history, names),
        'best_voter': best_voter(voter_stats(history, names)),
        'rounds': len(history),
    }


def game_summary() -> dict:
    history = HistoryEntry.query.order_by(HistoryEntry.created_at.asc(), HistoryEntry.id.asc()).all()
    return summarize(history, Participant.query.all())
