"""
Shared pytest fixtures for bracket allocator tests.
"""
import pytest
import sys
import os
import random
import yaml

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from bracket.models import Participant


def make_participants(count, clubs=None, seeds=None):
    """Build participants P1..Pn; clubs cycle over the given list, seeds map index -> seed."""
    clubs = clubs or [None]
    seeds = seeds or {}
    return [
        Participant(
            id=f"P{i + 1}",
            name=f"Fighter {i + 1}",
            club=clubs[i % len(clubs)],
            unit=None,
            seed_number=seeds.get(i),
        )
        for i in range(count)
    ]


@pytest.fixture
def rng():
    """Deterministic random source for the unseeded draw."""
    return random.Random(42)


@pytest.fixture
def five_participants():
    return make_participants(5)


@pytest.fixture
def seeded_participants():
    """Eight participants, all seeded 1..8 in roster order."""
    return make_participants(8, seeds={i: i + 1 for i in range(8)})


@pytest.fixture
def temp_data_dir(tmp_path):
    """Data directory with settings and a 'putra-a' category of six participants."""
    data_dir = tmp_path / "data"
    category = data_dir / "categories" / "putra-a"
    category.mkdir(parents=True)

    (data_dir / "settings.yaml").write_text(yaml.dump({
        'competition_name': 'Kejuaraan Test',
        'area_count': 2,
        'match_duration_minutes': 20,
        'start_date': '2026-07-01',
        'start_time': '08:00',
    }, default_flow_style=False))

    roster = [p.to_dict() for p in make_participants(6, clubs=['Alpha', 'Beta', 'Gamma'])]
    (category / "participants.yaml").write_text(yaml.dump(roster, default_flow_style=False))

    return str(data_dir)


@pytest.fixture
def client(temp_data_dir, monkeypatch):
    """Flask test client pointed at the temporary data directory."""
    import app as app_module
    monkeypatch.setattr(app_module, 'DATA_DIR', temp_data_dir)
    monkeypatch.setenv('EDIT_API_KEY', 'test-edit-key')
    app_module.app.config['TESTING'] = True
    with app_module.app.test_client() as client:
        yield client


@pytest.fixture
def edit_headers():
    return {'Authorization': 'Bearer test-edit-key'}
