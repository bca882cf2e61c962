"""
Flask JSON API for competition brackets.
"""
import os
import hmac
import random
from datetime import date, datetime
from functools import wraps

from filelock import Timeout
from flask import Flask, request, jsonify

from bracket.elimination import get_bracket_display
from bracket.errors import InsufficientParticipants, InvalidWinner, MatchNotFound
from category_store import (
    auto_schedule,
    load_matches,
    load_participants,
    load_settings,
    regenerate_bracket,
    select_winner,
)

app = Flask(__name__)

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DATA_DIR = os.environ.get('TOURNAMENT_DATA_DIR', os.path.join(BASE_DIR, 'data'))

SCHEDULE_SETTING_KEYS = ('area_count', 'match_duration_minutes', 'start_date', 'start_time')


def require_edit_key(f):
    """Require valid EDIT_API_KEY in Authorization header."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        expected_key = os.environ.get('EDIT_API_KEY')
        if not expected_key:
            return jsonify({'error': 'Server not configured for bracket editing'}), 500

        auth_header = request.headers.get('Authorization', '')
        if not auth_header.startswith('Bearer '):
            return jsonify({'error': 'Missing or invalid Authorization header'}), 401

        provided_key = auth_header[7:]  # Strip "Bearer "
        if not hmac.compare_digest(expected_key, provided_key):
            return jsonify({'error': 'Invalid API key'}), 401

        return f(*args, **kwargs)
    return decorated_function


def _convert_to_serializable(obj):
    """Convert dates and tuples recursively for JSON responses."""
    if isinstance(obj, dict):
        return {k: _convert_to_serializable(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [_convert_to_serializable(item) for item in obj]
    elif isinstance(obj, (date, datetime)):
        return obj.isoformat()
    else:
        return obj


@app.route('/api/settings', methods=['GET'])
def api_settings():
    """Current competition settings."""
    return jsonify(_convert_to_serializable(load_settings(DATA_DIR)))


@app.route('/api/categories/<slug>/bracket', methods=['GET'])
def api_get_bracket(slug):
    """Bracket of a category, grouped by round."""
    try:
        matches = load_matches(DATA_DIR, slug)
        participants = load_participants(DATA_DIR, slug)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    return jsonify(get_bracket_display(matches, participants))


@app.route('/api/categories/<slug>/bracket', methods=['POST'])
@require_edit_key
def api_generate_bracket(slug):
    """Draw a new bracket, replacing the existing one."""
    data = request.get_json(silent=True) or {}
    seed = data.get('seed')
    rng = random.Random(seed) if seed is not None else None

    try:
        matches = regenerate_bracket(DATA_DIR, slug, rng=rng)
    except InsufficientParticipants as e:
        return jsonify({'error': str(e)}), 400
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Timeout:
        return jsonify({'error': f'Category {slug} is being edited, try again'}), 409

    app.logger.info(f'Bracket generated for {slug}: {len(matches)} matches')
    return jsonify({
        'success': True,
        'matches': [m.to_dict() for m in matches]
    })


@app.route('/api/categories/<slug>/matches/<match_id>/winner', methods=['POST'])
@require_edit_key
def api_select_winner(slug, match_id):
    """Set the winner of a match and move them on."""
    data = request.get_json(silent=True) or {}
    winner_id = data.get('winner_id')
    if not winner_id:
        return jsonify({'error': 'Missing winner_id'}), 400

    try:
        updates = select_winner(DATA_DIR, slug, match_id, str(winner_id))
    except MatchNotFound as e:
        return jsonify({'error': str(e)}), 404
    except (InvalidWinner, ValueError) as e:
        return jsonify({'error': str(e)}), 400
    except Timeout:
        return jsonify({'error': f'Category {slug} is being edited, try again'}), 409

    app.logger.info(f'Winner {winner_id} recorded for {slug} {match_id}')
    return jsonify({
        'success': True,
        'updates': _convert_to_serializable(updates)
    })


@app.route('/api/categories/<slug>/schedule', methods=['POST'])
@require_edit_key
def api_auto_schedule(slug):
    """Assign match numbers, areas and start times to all playable matches."""
    data = request.get_json(silent=True) or {}
    settings = load_settings(DATA_DIR)
    for key in SCHEDULE_SETTING_KEYS:
        if data.get(key) is not None:
            settings[key] = data[key]

    try:
        schedule = auto_schedule(DATA_DIR, slug, settings)
    except (ValueError, TypeError) as e:
        return jsonify({'error': f'Invalid schedule settings: {e}'}), 400
    except Timeout:
        return jsonify({'error': f'Category {slug} is being edited, try again'}), 409

    app.logger.info(f'Scheduled {len(schedule)} matches for {slug}')
    return jsonify({
        'success': True,
        'schedule': _convert_to_serializable(schedule)
    })


if __name__ == '__main__':
    app.run(debug=os.environ.get('FLASK_DEBUG') == '1')
