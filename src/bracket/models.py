from datetime import datetime

STATUS_PENDING = 'pending'
STATUS_BYE = 'bye'
STATUS_COMPLETED = 'completed'

MATCH_STATUSES = (STATUS_PENDING, STATUS_BYE, STATUS_COMPLETED)


class Participant:
    def __init__(self, id, name, club=None, unit=None, seed_number=None):
        self.id = id
        self.name = name
        self.club = club
        self.unit = unit
        self.seed_number = seed_number

    @property
    def is_seeded(self):
        return self.seed_number is not None and self.seed_number > 0

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'club': self.club,
            'unit': self.unit,
            'seed_number': self.seed_number,
        }

    @classmethod
    def from_dict(cls, data):
        seed_number = data.get('seed_number')
        return cls(
            id=str(data['id']),
            name=data.get('name') or str(data['id']),
            club=data.get('club'),
            unit=data.get('unit'),
            seed_number=int(seed_number) if seed_number not in (None, '') else None,
        )

    def __repr__(self):
        return f"Participant(id={self.id}, name={self.name}, club={self.club}, unit={self.unit}, seed_number={self.seed_number})"


class Match:
    def __init__(self, id, round, match_number, slot_a_id=None, slot_b_id=None,
                 winner_id=None, status=STATUS_PENDING, sequence_number=None,
                 area_index=None, start_time=None):
        self.id = id
        self.round = round
        self.match_number = match_number
        self.slot_a_id = slot_a_id
        self.slot_b_id = slot_b_id
        self.winner_id = winner_id
        self.status = status
        # Filled in by the scheduler
        self.sequence_number = sequence_number
        self.area_index = area_index
        self.start_time = start_time

    @property
    def occupants(self):
        """Participant ids currently sitting in the two slots."""
        return [pid for pid in (self.slot_a_id, self.slot_b_id) if pid]

    @property
    def is_vacant(self):
        """A bye nobody can ever come out of."""
        return self.status == STATUS_BYE and not self.occupants and self.winner_id is None

    def copy(self):
        return Match(**self.to_dict(serialize=False))

    def to_dict(self, serialize=True):
        start_time = self.start_time
        if serialize and isinstance(start_time, datetime):
            start_time = start_time.isoformat()
        return {
            'id': self.id,
            'round': self.round,
            'match_number': self.match_number,
            'slot_a_id': self.slot_a_id,
            'slot_b_id': self.slot_b_id,
            'winner_id': self.winner_id,
            'status': self.status,
            'sequence_number': self.sequence_number,
            'area_index': self.area_index,
            'start_time': start_time,
        }

    @classmethod
    def from_dict(cls, data):
        start_time = data.get('start_time')
        if isinstance(start_time, str):
            start_time = datetime.fromisoformat(start_time)
        status = data.get('status', STATUS_PENDING)
        if status not in MATCH_STATUSES:
            raise ValueError(f"Unknown match status: {status}")
        return cls(
            id=str(data['id']),
            round=int(data['round']),
            match_number=int(data['match_number']),
            slot_a_id=data.get('slot_a_id'),
            slot_b_id=data.get('slot_b_id'),
            winner_id=data.get('winner_id'),
            status=status,
            sequence_number=data.get('sequence_number'),
            area_index=data.get('area_index'),
            start_time=start_time,
        )

    def __repr__(self):
        return (f"Match(id={self.id}, round={self.round}, match_number={self.match_number}, "
                f"slot_a_id={self.slot_a_id}, slot_b_id={self.slot_b_id}, "
                f"winner_id={self.winner_id}, status={self.status})")
