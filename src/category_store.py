"""
YAML record store for competition categories.

Each category lives in its own directory under <data_dir>/categories/<slug>/:
participants.yaml is maintained by the roster manager, matches.yaml is owned
by the bracket operations below. Every read-modify-write of a category holds
that category's file lock.
"""
import os
import re
import logging
import tempfile
from datetime import date

import yaml
from filelock import FileLock

from bracket.allocation import schedule_matches
from bracket.elimination import apply_updates, generate_bracket, record_winner
from bracket.errors import InsufficientParticipants
from bracket.models import Match, Participant

logger = logging.getLogger(__name__)

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DATA_DIR = os.environ.get('TOURNAMENT_DATA_DIR', os.path.join(BASE_DIR, 'data'))
LOCK_TIMEOUT = 10

PARTICIPANTS_FILE = 'participants.yaml'
MATCHES_FILE = 'matches.yaml'
SETTINGS_FILE = 'settings.yaml'


def get_default_settings():
    """Return default competition settings."""
    return {
        'competition_name': 'Competition',
        'area_count': 1,
        'match_duration_minutes': 20,
        'start_date': date.today().isoformat(),
        'start_time': '08:00',
    }


def load_settings(data_dir: str = None) -> dict:
    """Load settings from YAML file, merging with defaults."""
    defaults = get_default_settings()
    path = os.path.join(data_dir or DATA_DIR, SETTINGS_FILE)
    if not os.path.exists(path):
        return defaults
    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)
    if not data:
        return defaults
    return {**defaults, **data}


def save_settings(settings: dict, data_dir: str = None):
    data_dir = data_dir or DATA_DIR
    os.makedirs(data_dir, exist_ok=True)
    with open(os.path.join(data_dir, SETTINGS_FILE), 'w', encoding='utf-8') as f:
        yaml.dump(settings, f, default_flow_style=False)


def category_dir(data_dir: str, slug: str) -> str:
    """Return the directory of a category, rejecting unsafe slugs."""
    if not slug or not re.match(r'^[a-z0-9][a-z0-9_-]*$', slug):
        raise ValueError(f"Invalid category slug: {slug!r}")
    return os.path.join(data_dir or DATA_DIR, 'categories', slug)


def category_lock(data_dir: str, slug: str) -> FileLock:
    path = category_dir(data_dir, slug)
    os.makedirs(path, exist_ok=True)
    return FileLock(os.path.join(path, '.lock'), timeout=LOCK_TIMEOUT)


def _read_yaml(path):
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.warning(f'Failed to parse {path}: {e}')
        raise


def load_participants(data_dir: str, slug: str) -> list:
    """Load the roster of a category. Accepts a bare list or {'participants': [...]}."""
    path = os.path.join(category_dir(data_dir, slug), PARTICIPANTS_FILE)
    if not os.path.exists(path):
        return []
    data = _read_yaml(path)
    if not data:
        return []
    if isinstance(data, dict):
        data = data.get('participants') or []
    return [Participant.from_dict(record) for record in data]


def load_matches(data_dir: str, slug: str) -> list:
    """Load the stored matches of a category, ordered by round and match number."""
    path = os.path.join(category_dir(data_dir, slug), MATCHES_FILE)
    if not os.path.exists(path):
        return []
    data = _read_yaml(path)
    if not data:
        return []
    matches = [Match.from_dict(record) for record in data.get('matches', [])]
    matches.sort(key=lambda m: (m.round, m.match_number))
    return matches


def _write_matches(data_dir: str, slug: str, matches: list):
    """Replace matches.yaml in one step: write a temp file, then rename it over."""
    directory = category_dir(data_dir, slug)
    os.makedirs(directory, exist_ok=True)
    payload = {'matches': [m.to_dict() for m in matches]}
    fd, tmp_path = tempfile.mkstemp(dir=directory, prefix='.matches-', suffix='.yaml')
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            yaml.dump(payload, f, default_flow_style=False, sort_keys=False)
        os.replace(tmp_path, os.path.join(directory, MATCHES_FILE))
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise


def save_matches(data_dir: str, slug: str, matches: list):
    with category_lock(data_dir, slug):
        _write_matches(data_dir, slug, matches)


def apply_match_updates(data_dir: str, slug: str, updates: list) -> list:
    """Apply {'match_id', 'fields'} point updates and return the new match set."""
    with category_lock(data_dir, slug):
        matches = apply_updates(load_matches(data_dir, slug), updates)
        _write_matches(data_dir, slug, matches)
    return matches


def regenerate_bracket(data_dir: str, slug: str, rng=None) -> list:
    """
    Draw a new bracket for a category, replacing any existing one.

    Raises InsufficientParticipants before touching the stored matches when
    the roster has fewer than two entrants.
    """
    with category_lock(data_dir, slug):
        participants = load_participants(data_dir, slug)
        if len(participants) < 2:
            raise InsufficientParticipants(
                f"Category {slug} needs at least 2 participants, has {len(participants)}")
        matches = generate_bracket(participants, rng=rng)
        _write_matches(data_dir, slug, matches)
    logger.info(f'Regenerated bracket for {slug}: {len(matches)} matches')
    return matches


def select_winner(data_dir: str, slug: str, match_id: str, winner_id: str) -> list:
    """Record a match winner and advance it. Returns the applied updates."""
    with category_lock(data_dir, slug):
        matches = load_matches(data_dir, slug)
        updates = record_winner(matches, match_id, winner_id)
        _write_matches(data_dir, slug, apply_updates(matches, updates))
    return updates


def auto_schedule(data_dir: str, slug: str, settings: dict = None) -> list:
    """Number, place and time every playable match of a category."""
    settings = settings or load_settings(data_dir)
    with category_lock(data_dir, slug):
        matches = load_matches(data_dir, slug)
        schedule = schedule_matches(
            matches,
            area_count=settings['area_count'],
            match_duration_minutes=settings['match_duration_minutes'],
            start_date=settings['start_date'],
            start_time=str(settings.get('start_time', '08:00')),
        )
        updates = [{
            'match_id': entry['match_id'],
            'fields': {
                'sequence_number': entry['sequence_number'],
                'area_index': entry['area_index'],
                'start_time': entry['start_time'],
            },
        } for entry in schedule]
        _write_matches(data_dir, slug, apply_updates(matches, updates))
    return schedule
