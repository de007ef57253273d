"""Weekly availability grid for a counselor.

A grid is a ``days x times`` matrix of :class:`TimeBlock` cells. A cell is
either open, closed, or booked by a client; a booked cell is never open and
cannot be toggled.
"""
import random
from dataclasses import asdict, dataclass
from datetime import date, timedelta

WEEK_DAYS = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday']
SESSION_TIMES = ['09:00', '10:00', '11:00', '13:00', '14:00', '15:00', '16:00', '17:00']

MOCK_BOOKED_RATIO = 0.2
MOCK_OPEN_RATIO = 0.7
MOCK_CLIENT_NAME = 'Mock client'


@dataclass
class TimeBlock:
    day: str
    time: str
    available: bool = False
    booked_by: str | None = None
    client_name: str | None = None

    @property
    def is_booked(self) -> bool:
        return self.booked_by is not None

    def as_dict(self) -> dict:
        return asdict(self)


def mock_case_code(rng: random.Random) -> str:
    return f'CASE-{rng.randint(1000, 9999)}'


class WeeklySchedule:
    def __init__(self, blocks: list[TimeBlock]):
        self.blocks = blocks

    @classmethod
    def generate(
        cls,
        days: list[str] | None = None,
        times: list[str] | None = None,
        rng: random.Random | None = None,
    ) -> 'WeeklySchedule':
        """Build a grid of randomized mock blocks.

        Each block is drawn independently: booked with probability 0.2,
        otherwise open with probability 0.7. There is no bound on the number
        of booked blocks.
        """
        rng = rng or random.Random()
        blocks = []
        for day in days or WEEK_DAYS:
            for slot_time in times or SESSION_TIMES:
                is_booked = rng.random() < MOCK_BOOKED_RATIO
                available = not is_booked and rng.random() < MOCK_OPEN_RATIO
                blocks.append(
                    TimeBlock(
                        day=day,
                        time=slot_time,
                        available=available,
                        booked_by=mock_case_code(rng) if is_booked else None,
                        client_name=MOCK_CLIENT_NAME if is_booked else None,
                    )
                )
        return cls(blocks)

    @classmethod
    def closed(cls, days: list[str] | None = None, times: list[str] | None = None) -> 'WeeklySchedule':
        return cls([TimeBlock(day=day, time=slot_time) for day in days or WEEK_DAYS for slot_time in times or SESSION_TIMES])

    def find(self, day: str, time: str) -> TimeBlock | None:
        for block in self.blocks:
            if block.day == day and block.time == time:
                return block
        return None

    def toggle(self, day: str, time: str) -> bool:
        """Flip availability of a free block. Booked or unknown blocks are left alone."""
        block = self.find(day, time)
        if block is None or block.is_booked:
            return False
        block.available = not block.available
        return True

    def set_all(self, available: bool) -> int:
        changed = 0
        for block in self.blocks:
            if block.is_booked:
                continue
            if block.available != available:
                changed += 1
            block.available = available
        return changed

    def release(self, day: str, time: str) -> bool:
        """Cancel the booking on a block and reopen it."""
        block = self.find(day, time)
        if block is None or not block.is_booked:
            return False
        block.booked_by = None
        block.client_name = None
        block.available = True
        return True

    def summary(self) -> dict[str, int]:
        booked = sum(1 for block in self.blocks if block.is_booked)
        available = sum(1 for block in self.blocks if block.available)
        return {
            'available': available,
            'closed': len(self.blocks) - booked - available,
            'booked': booked,
        }

    def is_consistent(self) -> bool:
        return all(not (block.is_booked and block.available) for block in self.blocks)


def week_start_for(value: date) -> date:
    return value - timedelta(days=value.weekday())


def date_for_day(week_start: date, day: str) -> date:
    return week_start + timedelta(days=WEEK_DAYS.index(day))
