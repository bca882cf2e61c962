# Command line entry point: draw and schedule a bracket from a roster file

import argparse
import logging
import random
import sys
from datetime import date

import yaml

from bracket.allocation import AllocationManager
from bracket.elimination import generate_bracket, get_bracket_display
from bracket.models import Participant


def load_roster(file_path):
    with open(file_path, mode='r', encoding='utf-8') as file:
        data = yaml.safe_load(file) or []
    if isinstance(data, dict):
        data = data.get('participants') or []
    return [Participant.from_dict(record) for record in data]


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Draw a single elimination bracket and schedule it.')
    parser.add_argument('roster', help='YAML file with the participants of one category')
    parser.add_argument('--areas', type=int, default=1, help='Number of concurrent playing areas')
    parser.add_argument('--duration', type=int, default=20, help='Minutes per match')
    parser.add_argument('--date', default=date.today().isoformat(), help='Competition date (YYYY-MM-DD)')
    parser.add_argument('--start-time', default='08:00', help='First match start time (HH:MM)')
    parser.add_argument('--seed', type=int, default=None, help='Random seed for the unseeded draw')
    parser.add_argument('--verbose', action='store_true')
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')

    participants = load_roster(args.roster)
    if len(participants) < 2:
        print(f"Need at least 2 participants, {args.roster} has {len(participants)}.", file=sys.stderr)
        return 1

    rng = random.Random(args.seed) if args.seed is not None else None
    matches = generate_bracket(participants, rng=rng)
    display = get_bracket_display(matches, participants)

    print(f"# Bracket: {len(participants)} participants, {display['bracket_size']} slots, "
          f"{display['total_rounds']} rounds")
    for round_name, round_matches in display['rounds'].items():
        print(f"\n## {round_name}")
        for match in round_matches:
            slot_a = match['slot_a_name'] or '-'
            slot_b = match['slot_b_name'] or '-'
            line = f"  {match['id']}: {slot_a} vs {slot_b} [{match['status']}]"
            if match['status'] == 'bye' and match['winner_name']:
                line += f" -> {match['winner_name']}"
            print(line)

    try:
        manager = AllocationManager(args.areas, args.duration, args.date, args.start_time)
        manager.allocate(matches)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    names = {p.id: p.name for p in participants}
    print("\n# Schedule")
    for area_schedule in manager.get_schedule_output():
        print(f"\nArea {area_schedule['area']}")
        if not area_schedule['matches']:
            print("  No matches scheduled.")
        for match in area_schedule['matches']:
            slot_a, slot_b = (names.get(pid, 'TBD') for pid in match['participants'])
            print(f"  {match['start_time']} - {match['end_time']}: {match['match_id']} {slot_a} vs {slot_b}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
