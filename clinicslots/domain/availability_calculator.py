"""
Core business logic for enumerating bookable start times of a day.

Pure domain logic: the caller fetches existing bookings, the calculator only
looks at the values it is given. Same inputs always give the same sequence.
"""

from dataclasses import dataclass, field
from typing import Iterator, List, Sequence

from pendulum import DateTime

from .conflict_detector import add_buffer_time, find_conflicts
from .models import TimeSlot
from .schedule import AvailabilityConfig, DateLike

NOON_HOUR = 12


class AvailabilityCalculator:
    """
    Calculates the open appointment starts of one provider on one day.

    Algorithm:
    1. Resolve the opening window for the weekday (closed day -> nothing)
    2. Step through candidate starts every ``appointment_duration_minutes``
    3. Drop candidates that touch the lunch break (no buffer on lunch)
    4. Drop candidates whose buffered window runs past closing time
    5. Drop candidates whose buffered window conflicts with a booking
    """

    def __init__(self, config: AvailabilityConfig):
        self.config = config

    def iter_available_slots(
        self,
        date: DateLike,
        existing: Sequence[TimeSlot],
    ) -> Iterator[DateTime]:
        """Yield open start times for ``date`` in chronological order."""
        working_hours = self.config.working_hours
        window = working_hours.window_for(date)

        if window is None:
            return

        opens_at, closes_at = window
        lunch = working_hours.lunch_for(date)
        duration = self.config.appointment_duration_minutes

        current = opens_at
        while current.add(minutes=duration) <= closes_at:
            candidate = TimeSlot(
                provider_id=self.config.provider_id,
                start=current,
                end=current.add(minutes=duration),
            )

            if self._is_open(candidate, closes_at, lunch, existing):
                yield current

            current = current.add(minutes=duration)

    def _is_open(self, candidate, closes_at, lunch, existing) -> bool:
        if lunch is not None:
            lunch_start, lunch_end = lunch
            if candidate.start < lunch_end and lunch_start < candidate.end:
                return False

        buffered = add_buffer_time(candidate, self.config.buffer_minutes)

        # Buffer consumes calendar space, so it must fit before closing too
        if buffered.end > closes_at:
            return False

        return not find_conflicts(buffered, existing)


@dataclass(frozen=True)
class AvailableSlots:
    """
    Lazy, finite and restartable sequence of open start times.

    Every iteration recomputes from the captured inputs.
    """
    date: DateLike
    config: AvailabilityConfig
    existing: tuple = field(default_factory=tuple)

    def __iter__(self) -> Iterator[DateTime]:
        calculator = AvailabilityCalculator(self.config)
        return calculator.iter_available_slots(self.date, self.existing)

    def to_list(self) -> List[DateTime]:
        return list(self)


def calculate_available_slots(
    date: DateLike,
    config: AvailabilityConfig,
    existing: Sequence[TimeSlot],
) -> AvailableSlots:
    """
    Return the open start times of ``config.provider_id`` on ``date``.

    Args:
        date: Day to enumerate (only year, month and day are used)
        config: Working hours, duration and buffer for the provider
        existing: Bookings of that provider/day (other providers are ignored)

    Returns:
        An iterable that can be consumed more than once
    """
    return AvailableSlots(date=date, config=config, existing=tuple(existing))


@dataclass
class SlotSearchResult:
    """
    Presentation-ready availability: ``HH:mm`` strings split into periods.
    """
    date: str
    slots: List[str]
    morning: List[str]
    afternoon: List[str]

    @property
    def total_available(self) -> int:
        return len(self.slots)

    @classmethod
    def from_slots(cls, date: DateLike, starts) -> "SlotSearchResult":
        """Split starts into morning (< 12:00 local) and afternoon (>= 12:00)."""
        slots: List[str] = []
        morning: List[str] = []
        afternoon: List[str] = []

        for start in starts:
            label = start.format("HH:mm")
            slots.append(label)
            if start.hour < NOON_HOUR:
                morning.append(label)
            else:
                afternoon.append(label)

        return cls(
            date=f"{date.year:04d}-{date.month:02d}-{date.day:02d}",
            slots=slots,
            morning=morning,
            afternoon=afternoon,
        )

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "slots": self.slots,
            "totalAvailable": self.total_available,
            "period": {"morning": self.morning, "afternoon": self.afternoon},
        }
