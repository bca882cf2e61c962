"""
Single elimination bracket generation and winner advancement.
"""
import logging
import math
from typing import Dict, List, Optional

from .errors import InvalidWinner, MatchNotFound
from .models import Match, STATUS_BYE, STATUS_COMPLETED, STATUS_PENDING
from .seeding import arrange_with_club_separation, get_seed_positions

logger = logging.getLogger(__name__)

MATCH_FIELDS = (
    'slot_a_id', 'slot_b_id', 'winner_id', 'status',
    'sequence_number', 'area_index', 'start_time',
)


def get_round_name(round_num: int, total_rounds: int) -> str:
    """Get the label of a round counted from the first round."""
    if round_num == total_rounds:
        return "Final"
    elif round_num == total_rounds - 1:
        return "Semifinal"
    elif round_num == total_rounds - 2:
        return "Quarterfinal"
    else:
        return f"Round {round_num}"


def calculate_bracket_size(num_participants: int) -> int:
    """Calculate the bracket size (next power of 2)."""
    if num_participants <= 0:
        return 0
    return 2 ** math.ceil(math.log2(num_participants))


def calculate_byes(num_participants: int) -> int:
    """Calculate number of empty first round slots."""
    bracket_size = calculate_bracket_size(num_participants)
    return bracket_size - num_participants


def get_round_count(num_participants: int) -> int:
    """Number of rounds needed for a roster of this size."""
    if num_participants < 2:
        return 0
    return int(math.log2(calculate_bracket_size(num_participants)))


def get_total_rounds(matches: List[Match]) -> int:
    return max((m.round for m in matches), default=0)


def match_code(round_num: int, match_number: int) -> str:
    return f"R{round_num}-M{match_number}"


def _next_position(match: Match):
    """Round, match number and slot field the winner of a match moves into."""
    field = 'slot_a_id' if match.match_number % 2 == 1 else 'slot_b_id'
    return match.round + 1, (match.match_number + 1) // 2, field


def _other_slot(field: str) -> str:
    return 'slot_b_id' if field == 'slot_a_id' else 'slot_a_id'


def _record_change(changes: Dict[str, Dict], match: Match, fields: Dict):
    changes.setdefault(match.id, {}).update(fields)


def generate_bracket(participants: List, rng=None) -> List[Match]:
    """
    Generate all matches of a single elimination bracket.

    Round 1 gets the participants placed by seed position, later rounds get
    empty placeholders. Byes are resolved before returning, so an entrant
    facing only empty slots is already carried forward, possibly through
    several rounds.

    Returns an empty list for fewer than two participants.
    """
    num_participants = len(participants)
    if num_participants < 2:
        logger.info("Not generating a bracket for %d participant(s)", num_participants)
        return []

    bracket_size = calculate_bracket_size(num_participants)
    total_rounds = int(math.log2(bracket_size))

    seeded = sorted((p for p in participants if p.is_seeded), key=lambda p: p.seed_number)
    unseeded = [p for p in participants if not p.is_seeded]
    ordered = arrange_with_club_separation(seeded, unseeded, bracket_size, rng=rng)

    slots = [None] * bracket_size
    seed_positions = get_seed_positions(bracket_size)
    for i, participant in enumerate(ordered):
        slots[seed_positions[i]] = participant

    matches = []
    for i in range(bracket_size // 2):
        p1 = slots[i * 2]
        p2 = slots[i * 2 + 1]
        is_bye = p1 is None or p2 is None
        if is_bye:
            winner = p1 or p2
            winner_id = winner.id if winner else None
        else:
            winner_id = None
        matches.append(Match(
            id=match_code(1, i + 1),
            round=1,
            match_number=i + 1,
            slot_a_id=p1.id if p1 else None,
            slot_b_id=p2.id if p2 else None,
            winner_id=winner_id,
            status=STATUS_BYE if is_bye else STATUS_PENDING,
        ))

    matches_in_round = bracket_size // 4
    for round_num in range(2, total_rounds + 1):
        for i in range(matches_in_round):
            matches.append(Match(
                id=match_code(round_num, i + 1),
                round=round_num,
                match_number=i + 1,
            ))
        matches_in_round //= 2

    cascade_byes(matches)
    logger.info("Generated bracket: %d participants, %d slots, %d rounds, %d matches",
                num_participants, bracket_size, total_rounds, len(matches))
    return matches


def cascade_byes(matches: List[Match]) -> List[Dict]:
    """
    Carry bye winners forward round by round, in place.

    A match in the next round whose feeders are both settled becomes a bye
    when only one entrant reached it, or a vacant bye when nobody did.
    Matches still waiting on a pending feeder are left pending.

    Returns the changes as a list of {'match_id', 'fields'} updates.
    """
    by_position = {(m.round, m.match_number): m for m in matches}
    total_rounds = get_total_rounds(matches)
    changes = {}

    for round_num in range(1, total_rounds):
        round_matches = sorted((m for m in matches if m.round == round_num),
                               key=lambda m: m.match_number)

        for match in round_matches:
            if match.status == STATUS_PENDING or not match.winner_id:
                continue
            next_round, next_number, field = _next_position(match)
            next_match = by_position.get((next_round, next_number))
            if next_match is None or getattr(next_match, field) == match.winner_id:
                continue
            setattr(next_match, field, match.winner_id)
            _record_change(changes, next_match, {field: match.winner_id})

        next_matches = sorted((m for m in matches if m.round == round_num + 1),
                              key=lambda m: m.match_number)
        for next_match in next_matches:
            if next_match.status != STATUS_PENDING:
                continue
            feeders = [by_position.get((round_num, next_match.match_number * 2 - 1)),
                       by_position.get((round_num, next_match.match_number * 2))]
            if any(f is None or f.status == STATUS_PENDING for f in feeders):
                continue
            occupants = next_match.occupants
            if len(occupants) == 2:
                continue
            winner_id = occupants[0] if occupants else None
            next_match.status = STATUS_BYE
            next_match.winner_id = winner_id
            _record_change(changes, next_match, {'status': STATUS_BYE, 'winner_id': winner_id})
            if winner_id:
                logger.debug("Walkover for %s in %s", winner_id, next_match.id)

    return [{'match_id': match_id, 'fields': fields} for match_id, fields in changes.items()]


def record_winner(matches: List[Match], match_id: str, winner_id: str) -> List[Dict]:
    """
    Complete a match and move its winner into the next round.

    The input matches are not modified; the returned list of
    {'match_id', 'fields'} updates is meant to be applied by the caller.
    When the winner lands in a next-round match whose other slot is empty,
    that match turns into a bye with the winner already set, so one more
    selection advances it. Recording the same winner again gives the same
    updates.

    Raises MatchNotFound for an unknown match id and InvalidWinner when the
    winner does not occupy either slot.
    """
    by_id = {m.id: m for m in matches}
    match = by_id.get(match_id)
    if match is None:
        raise MatchNotFound(f"Match {match_id} not found")
    if not winner_id or winner_id not in match.occupants:
        raise InvalidWinner(f"Participant {winner_id} is not playing in match {match_id}")

    updates = [{'match_id': match.id,
                'fields': {'winner_id': winner_id, 'status': STATUS_COMPLETED}}]

    total_rounds = get_total_rounds(matches)
    if match.round >= total_rounds:
        logger.info("Final %s won by %s", match.id, winner_id)
        return updates

    next_round, next_number, field = _next_position(match)
    next_match = next((m for m in matches
                       if m.round == next_round and m.match_number == next_number), None)
    if next_match is None:
        logger.warning("No match %s in round %d to advance %s into",
                       next_number, next_round, winner_id)
        return updates

    fields = {field: winner_id}
    if next_match.status != STATUS_COMPLETED:
        if not getattr(next_match, _other_slot(field)):
            fields['status'] = STATUS_BYE
            fields['winner_id'] = winner_id
        elif next_match.status == STATUS_BYE:
            # Opponent has arrived, the provisional bye is a real match again
            fields['status'] = STATUS_PENDING
            fields['winner_id'] = None
    updates.append({'match_id': next_match.id, 'fields': fields})

    logger.debug("Advanced %s from %s to %s (%s)", winner_id, match.id, next_match.id, field)
    return updates


def apply_updates(matches: List[Match], updates: List[Dict]) -> List[Match]:
    """Return copies of the matches with the updates applied."""
    result = [m.copy() for m in matches]
    by_id = {m.id: m for m in result}
    for update in updates:
        match = by_id.get(update['match_id'])
        if match is None:
            raise MatchNotFound(f"Match {update['match_id']} not found")
        for field, value in update['fields'].items():
            if field not in MATCH_FIELDS:
                raise ValueError(f"Cannot update match field: {field}")
            setattr(match, field, value)
    return result


def get_bracket_display(matches: List[Match], participants: Optional[List] = None) -> Dict:
    """
    Get bracket data formatted for UI display.
    """
    names = {p.id: p.name for p in participants or []}
    total_rounds = get_total_rounds(matches)

    rounds = {}
    for round_num in range(1, total_rounds + 1):
        round_name = get_round_name(round_num, total_rounds)
        round_matches = sorted((m for m in matches if m.round == round_num),
                               key=lambda m: m.match_number)
        rounds[round_name] = []
        for match in round_matches:
            match_data = match.to_dict()
            match_data['round_name'] = round_name
            match_data['slot_a_name'] = names.get(match.slot_a_id, match.slot_a_id)
            match_data['slot_b_name'] = names.get(match.slot_b_id, match.slot_b_id)
            match_data['winner_name'] = names.get(match.winner_id, match.winner_id)
            rounds[round_name].append(match_data)

    first_round = rounds.get(get_round_name(1, total_rounds), [])
    # Empty first round slots, the same count as calculate_byes()
    first_round_byes = sum(
        (m['slot_a_id'] is None) + (m['slot_b_id'] is None) for m in first_round
    )

    matches_per_round = {}
    for round_name, round_matches in rounds.items():
        matches_per_round[round_name] = sum(1 for m in round_matches if m['status'] != STATUS_BYE)

    champion = None
    final_matches = rounds.get("Final", [])
    if final_matches and final_matches[0]['status'] == STATUS_COMPLETED:
        champion = final_matches[0]['winner_id']

    return {
        'rounds': rounds,
        'bracket_size': len(first_round) * 2,
        'total_rounds': total_rounds,
        'total_participants': len(participants) if participants is not None else None,
        'byes': first_round_byes,
        'matches_per_round': matches_per_round,
        'champion': champion,
        'champion_name': names.get(champion, champion),
    }
