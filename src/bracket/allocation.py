import datetime
import logging

from .models import STATUS_PENDING

logger = logging.getLogger(__name__)


def _is_contested(match):
    """Pending matches may still get an opponent; settled ones need two participants."""
    return match.status == STATUS_PENDING or len(match.occupants) == 2


class AllocationManager:
    """
    Spread the playable matches of a bracket over a fixed number of areas.

    Matches are taken in (round, match_number) order and dealt to areas
    1..area_count in turn; every full pass over the areas starts a new time
    slot of match_duration_minutes. Round dependencies are not modelled, so a
    later round can share a time slot with the end of an earlier one.
    """

    def __init__(self, area_count, match_duration_minutes, start_date, start_time='08:00'):
        if area_count is None or int(area_count) < 1:
            raise ValueError(f"area_count must be at least 1, got {area_count}")
        if match_duration_minutes is None or match_duration_minutes <= 0:
            raise ValueError(f"match_duration_minutes must be positive, got {match_duration_minutes}")
        self.area_count = int(area_count)
        self.match_duration = datetime.timedelta(minutes=match_duration_minutes)
        self.start_date = self._parse_date(start_date)
        self.start_time = start_time
        self.schedule = {area: [] for area in range(1, self.area_count + 1)}  # area: [(start, end, match)]

    def _parse_date(self, value):
        if isinstance(value, datetime.datetime):
            return value.date()
        if isinstance(value, datetime.date):
            return value
        return datetime.date.fromisoformat(str(value))

    def _parse_time(self, time_str):
        return datetime.datetime.strptime(time_str, '%H:%M').time()

    def _datetime_from_time(self, time_obj, base_date=None):
        base_date = base_date or datetime.date.today()
        return datetime.datetime.combine(base_date, time_obj)

    def allocate(self, matches):
        """
        Assign sequence numbers, areas and start times.

        Byes are skipped, nothing is played there. A walkover whose winner
        has already been selected is skipped too: it is completed but only
        ever had one participant. Returns a list of
        {'match_id', 'sequence_number', 'area_index', 'start_time'} updates.
        """
        self.schedule = {area: [] for area in range(1, self.area_count + 1)}
        day_start = self._datetime_from_time(self._parse_time(self.start_time), self.start_date)

        playable = [m for m in matches if _is_contested(m)]
        playable.sort(key=lambda m: (m.round, m.match_number))

        updates = []
        for k, match in enumerate(playable):
            area_index = (k % self.area_count) + 1
            time_slot = k // self.area_count
            start = day_start + time_slot * self.match_duration
            self.schedule[area_index].append((start, start + self.match_duration, match))
            updates.append({
                'match_id': match.id,
                'sequence_number': k + 1,
                'area_index': area_index,
                'start_time': start,
            })

        logger.info("Scheduled %d matches on %d area(s), skipped %d walkovers",
                    len(updates), self.area_count, len(matches) - len(playable))
        return updates

    def get_schedule_output(self):
        output = []
        for area_index, matches_in_area in self.schedule.items():
            area_info = {"area": area_index, "matches": []}
            for start_dt, end_dt, match in matches_in_area:
                area_info["matches"].append({
                    "match_id": match.id,
                    "round": match.round,
                    "match_number": match.match_number,
                    "start_time": start_dt.strftime('%H:%M'),
                    "end_time": end_dt.strftime('%H:%M'),
                    "participants": (match.slot_a_id, match.slot_b_id),
                })
            output.append(area_info)
        return output


def schedule_matches(matches, area_count, match_duration_minutes, start_date, start_time='08:00'):
    """Schedule matches with a throwaway AllocationManager."""
    manager = AllocationManager(area_count, match_duration_minutes, start_date, start_time)
    return manager.allocate(matches)
