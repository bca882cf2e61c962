"""
Unit tests for single elimination bracket generation.
"""
import pytest
import sys
import os
import random

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from bracket.elimination import (
    get_round_name,
    calculate_bracket_size,
    calculate_byes,
    get_round_count,
    generate_bracket,
    cascade_byes,
    get_bracket_display,
)
from bracket.models import Match, STATUS_BYE, STATUS_PENDING, STATUS_COMPLETED
from conftest import make_participants


def by_position(matches):
    return {(m.round, m.match_number): m for m in matches}


class TestBracketHelpers:
    """Tests for bracket helper functions."""

    def test_get_round_name_final(self):
        """Test the last round is the Final."""
        assert get_round_name(3, 3) == "Final"

    def test_get_round_name_semifinal(self):
        """Test the round before the final."""
        assert get_round_name(2, 3) == "Semifinal"

    def test_get_round_name_quarterfinal(self):
        """Test two rounds before the final."""
        assert get_round_name(2, 4) == "Quarterfinal"

    def test_get_round_name_early_round(self):
        """Test early rounds are numbered."""
        assert get_round_name(1, 5) == "Round 1"
        assert get_round_name(2, 5) == "Round 2"

    def test_calculate_bracket_size(self):
        """Test bracket size rounds up to next power of 2."""
        assert calculate_bracket_size(2) == 2
        assert calculate_bracket_size(3) == 4
        assert calculate_bracket_size(5) == 8
        assert calculate_bracket_size(8) == 8
        assert calculate_bracket_size(9) == 16

    def test_calculate_bracket_size_zero(self):
        """Test bracket size for zero participants."""
        assert calculate_bracket_size(0) == 0

    def test_calculate_byes(self):
        """Test byes calculation."""
        assert calculate_byes(5) == 3
        assert calculate_byes(8) == 0
        assert calculate_byes(12) == 4

    def test_get_round_count(self):
        """Test number of rounds."""
        assert get_round_count(1) == 0
        assert get_round_count(2) == 1
        assert get_round_count(5) == 3
        assert get_round_count(16) == 4


class TestGenerateBracket:
    """Tests for generating the full bracket."""

    @pytest.mark.parametrize("count", [0, 1])
    def test_too_few_participants(self, count):
        """Test that no bracket is drawn for fewer than 2 participants."""
        assert generate_bracket(make_participants(count)) == []

    @pytest.mark.parametrize("count", [2, 3, 5, 7, 8, 9, 13, 16, 17, 33])
    def test_round_and_match_counts(self, count, rng):
        """Test each round r holds bracket_size / 2**r matches numbered 1..N."""
        matches = generate_bracket(make_participants(count), rng=rng)
        bracket_size = calculate_bracket_size(count)
        total_rounds = get_round_count(count)

        assert max(m.round for m in matches) == total_rounds
        for round_num in range(1, total_rounds + 1):
            numbers = sorted(m.match_number for m in matches if m.round == round_num)
            assert numbers == list(range(1, bracket_size // 2 ** round_num + 1))

    @pytest.mark.parametrize("count", [2, 3, 5, 6, 7, 9, 12, 20])
    def test_empty_first_round_slots_equal_byes(self, count, rng):
        """Test the number of empty round 1 slots."""
        matches = generate_bracket(make_participants(count), rng=rng)
        first_round = [m for m in matches if m.round == 1]
        empty_slots = sum(2 - len(m.occupants) for m in first_round)
        assert empty_slots == calculate_byes(count)

    @pytest.mark.parametrize("count", [4, 5, 8, 11, 16, 27])
    def test_seed_1_and_2_only_meet_in_final(self, count, rng):
        """Test top two seeds are placed in opposite halves."""
        participants = make_participants(count, seeds={0: 1, 1: 2})
        matches = generate_bracket(participants, rng=rng)
        first_round = sorted((m for m in matches if m.round == 1), key=lambda m: m.match_number)
        half = len(first_round) // 2
        top = {pid for m in first_round[:half] for pid in m.occupants}
        bottom = {pid for m in first_round[half:] for pid in m.occupants}
        assert ("P1" in top and "P2" in bottom) or ("P1" in bottom and "P2" in top)

    def test_every_participant_placed_once(self, rng):
        """Test all participants appear exactly once in round 1."""
        participants = make_participants(13, clubs=['Alpha', 'Beta', 'Gamma'])
        matches = generate_bracket(participants, rng=rng)
        placed = [pid for m in matches if m.round == 1 for pid in m.occupants]
        assert sorted(placed) == sorted(p.id for p in participants)

    def test_seeded_slots_for_full_bracket(self, seeded_participants):
        """Test seeded placement for eight seeds."""
        matches = generate_bracket(seeded_participants)
        pairs = [(m.slot_a_id, m.slot_b_id) for m in sorted(
            (m for m in matches if m.round == 1), key=lambda m: m.match_number)]
        # slots [0, 7, 6, 1, 4, 3, 2, 5] for seeds 1..8
        assert pairs == [("P1", "P4"), ("P7", "P6"), ("P5", "P8"), ("P3", "P2")]

    def test_seed_zero_treated_as_unseeded(self):
        """Test seed 0 does not take a seed position."""
        participants = make_participants(4, seeds={0: 0, 3: 1})
        matches = generate_bracket(participants, rng=random.Random(1))
        assert by_position(matches)[(1, 1)].slot_a_id == "P4"

    def test_match_ids_are_unique_codes(self, rng):
        """Test generated match ids."""
        matches = generate_bracket(make_participants(6), rng=rng)
        ids = [m.id for m in matches]
        assert len(ids) == len(set(ids))
        assert "R1-M1" in ids
        assert "R3-M1" in ids

    def test_same_rng_seed_same_bracket(self):
        """Test reproducible draws with an injected random source."""
        participants = make_participants(11, clubs=['Alpha', 'Beta'])
        first = generate_bracket(participants, rng=random.Random(99))
        second = generate_bracket(participants, rng=random.Random(99))
        assert [m.to_dict() for m in first] == [m.to_dict() for m in second]

    def test_two_participants(self, rng):
        """Test the smallest bracket is a single pending final."""
        matches = generate_bracket(make_participants(2), rng=rng)
        assert len(matches) == 1
        assert matches[0].status == STATUS_PENDING
        assert set(matches[0].occupants) == {"P1", "P2"}

    def test_full_bracket_has_no_byes(self, rng):
        """Test a power of two roster."""
        matches = generate_bracket(make_participants(8), rng=rng)
        assert all(m.status == STATUS_PENDING for m in matches)


class TestByeCascade:
    """Tests for carrying byes forward at generation time."""

    def test_three_participants_bye_advances(self):
        """Test the round 1 bye is already in round 2."""
        participants = make_participants(3, seeds={0: 1, 1: 2, 2: 3})
        matches = generate_bracket(participants)
        positions = by_position(matches)

        bye = positions[(1, 1)]
        assert bye.status == STATUS_BYE
        assert bye.winner_id == "P1"
        assert positions[(1, 2)].status == STATUS_PENDING
        final = positions[(2, 1)]
        assert final.slot_a_id == "P1"
        assert final.slot_b_id is None
        assert final.status == STATUS_PENDING

    def test_five_participants(self):
        """Test five entrants drawn into eight slots."""
        participants = make_participants(5, seeds={i: i + 1 for i in range(5)})
        matches = generate_bracket(participants)
        positions = by_position(matches)

        first_round = [positions[(1, n)] for n in range(1, 5)]
        assert [m.status for m in first_round] == [STATUS_PENDING, STATUS_BYE, STATUS_BYE, STATUS_PENDING]
        assert first_round[1].is_vacant
        assert first_round[2].winner_id == "P5"

        # Seed 5 walks into the bottom semifinal, the top one waits on match 1
        assert positions[(2, 2)].slot_a_id == "P5"
        assert positions[(2, 2)].status == STATUS_PENDING
        assert positions[(2, 1)].occupants == []
        assert positions[(2, 1)].status == STATUS_PENDING

    def test_walkover_through_two_rounds(self):
        """Test a participant facing only empty slots passes two rounds."""
        participants = make_participants(9, seeds={i: i + 1 for i in range(9)})
        matches = generate_bracket(participants)
        positions = by_position(matches)

        assert positions[(1, 5)].status == STATUS_BYE
        assert positions[(1, 5)].winner_id == "P9"
        assert positions[(1, 6)].is_vacant
        assert positions[(2, 3)].status == STATUS_BYE
        assert positions[(2, 3)].winner_id == "P9"
        assert positions[(3, 2)].slot_a_id == "P9"
        assert positions[(3, 2)].status == STATUS_PENDING

    def test_vacant_feeders_make_vacant_match(self):
        """Test two vacant feeders leave a vacant next-round match."""
        participants = make_participants(9, seeds={i: i + 1 for i in range(9)})
        positions = by_position(generate_bracket(participants))
        assert positions[(1, 3)].is_vacant
        assert positions[(1, 4)].is_vacant
        assert positions[(2, 2)].is_vacant

    def test_cascade_returns_updates(self):
        """Test cascade_byes reports what it changed."""
        matches = [
            Match(id="R1-M1", round=1, match_number=1, slot_a_id="A", winner_id="A", status=STATUS_BYE),
            Match(id="R1-M2", round=1, match_number=2, slot_a_id="B", winner_id="B", status=STATUS_BYE),
            Match(id="R2-M1", round=2, match_number=1),
        ]
        updates = cascade_byes(matches)
        assert updates == [{'match_id': 'R2-M1', 'fields': {'slot_a_id': 'A', 'slot_b_id': 'B'}}]
        assert matches[2].status == STATUS_PENDING

    def test_cascade_is_idempotent(self):
        """Test running the cascade again changes nothing."""
        participants = make_participants(9, seeds={i: i + 1 for i in range(9)})
        matches = generate_bracket(participants)
        assert cascade_byes(matches) == []


class TestBracketDisplay:
    """Tests for bracket display data."""

    def test_display_structure(self, rng):
        """Test rounds, labels and statistics."""
        participants = make_participants(6)
        display = get_bracket_display(generate_bracket(participants, rng=rng), participants)

        assert list(display['rounds'].keys()) == ["Quarterfinal", "Semifinal", "Final"]
        assert display['bracket_size'] == 8
        assert display['total_rounds'] == 3
        assert display['total_participants'] == 6
        assert display['byes'] == 2
        assert display['matches_per_round']['Quarterfinal'] == 2
        assert display['champion'] is None

    def test_display_byes_count_empty_slots(self):
        """Test byes counts empty first round slots, not bye matches."""
        participants = make_participants(5, seeds={i: i + 1 for i in range(5)})
        display = get_bracket_display(generate_bracket(participants), participants)
        assert display['byes'] == calculate_byes(5) == 3

    def test_display_resolves_names(self):
        """Test participant names are looked up."""
        participants = make_participants(2)
        display = get_bracket_display(generate_bracket(participants, rng=random.Random(0)), participants)
        final = display['rounds']['Final'][0]
        assert {final['slot_a_name'], final['slot_b_name']} == {"Fighter 1", "Fighter 2"}

    def test_display_champion(self):
        """Test the winner of a completed final is the champion."""
        final = Match(id="R1-M1", round=1, match_number=1, slot_a_id="P1", slot_b_id="P2",
                      winner_id="P2", status=STATUS_COMPLETED)
        display = get_bracket_display([final], make_participants(2))
        assert display['champion'] == "P2"
        assert display['champion_name'] == "Fighter 2"

    def test_display_empty(self):
        """Test display for a category without a bracket."""
        display = get_bracket_display([])
        assert display['rounds'] == {}
        assert display['total_rounds'] == 0
        assert display['champion'] is None
