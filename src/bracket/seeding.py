"""
Slot placement for seeded entrants and club separation for the unseeded ones.
"""
import random
from typing import List, Optional


def get_seed_positions(bracket_size: int) -> List[int]:
    """
    Return 0-indexed bracket slots ordered by seed priority.

    The i-th element is the slot for the (i+1)-th ranked entrant. Each pass
    doubles the bracket, mirroring every existing position into the other
    half, so seeds 1 and 2 end up in opposite halves.

    For 8 slots: [0, 7, 6, 1, 4, 3, 2, 5]
    """
    if bracket_size <= 1:
        return [0]

    positions = [0, 1]
    size = 2
    while size < bracket_size:
        new_positions = []
        for pos in positions:
            new_positions.append(pos * 2)
            new_positions.append(size * 2 - 1 - pos * 2)
        positions = new_positions
        size *= 2
    return positions


def affiliation_key(participant) -> str:
    """Club and training unit of a participant, used to group team mates."""
    return f"{participant.club or ''}|{participant.unit or ''}"


def arrange_with_club_separation(seeded: List, unseeded: List, bracket_size: int,
                                 rng: Optional[random.Random] = None) -> List:
    """
    Order entrants so members of the same club are spread apart.

    Seeded entrants keep their seed order at the front. Unseeded entrants are
    shuffled, grouped by affiliation, and then picked one per group in turn,
    largest group first. This lowers the chance of team mates meeting in the
    first round but does not rule it out: a roster where everyone shares one
    club stays in shuffled order.

    bracket_size is accepted for symmetry with the generator; the ordering
    itself does not depend on it.
    """
    rng = rng or random
    shuffled = list(unseeded)
    rng.shuffle(shuffled)

    club_groups = {}
    for participant in shuffled:
        club_groups.setdefault(affiliation_key(participant), []).append(participant)

    # sorted() is stable, so equal-sized groups keep first-seen order
    groups = sorted(club_groups.values(), key=len, reverse=True)

    result = []
    group_idx = 0
    for _ in range(len(shuffled)):
        attempts = 0
        while not groups[group_idx] and attempts < len(groups):
            group_idx = (group_idx + 1) % len(groups)
            attempts += 1
        if groups[group_idx]:
            result.append(groups[group_idx].pop(0))
        group_idx = (group_idx + 1) % len(groups)

    return list(seeded) + result
