"""
Phase timeline derivations for an active trip.

Everything here is a pure function of the start time, the stored phase and
the current time. Nothing in this module advances ``current_phase``: the
stored phase only changes through explicit calls on the session, so the
derived ``expected_phase`` may disagree with it once a session overruns.
"""
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Mapping, Optional

from tripjournal.config.settings import SessionSettings
from tripjournal.schemas.trip import PHASES, Phase

PHASE_DURATIONS: Dict[Phase, int] = {
    Phase.COME_UP: 60,
    Phase.PEAK: 240,
    Phase.COMEDOWN: 120,
}


@dataclass(frozen=True)
class PhaseProgress:
    """Derived progress values for one tick of an active trip"""
    elapsed_minutes: int
    current_phase: Optional[Phase]
    expected_phase: Phase
    time_to_next_phase: Optional[int]
    progress_percent: float
    total_duration: int

    @property
    def elapsed_text(self) -> str:
        return format_elapsed(self.elapsed_minutes)

    @property
    def time_to_next_phase_text(self) -> Optional[str]:
        if self.time_to_next_phase is None or self.time_to_next_phase <= 0:
            return None
        return format_phase_time_remaining(self.time_to_next_phase)

    @property
    def phase_is_stale(self) -> bool:
        """True when the stored phase lags behind where the timeline puts the user."""
        return self.current_phase is not None and self.current_phase != self.expected_phase


class PhaseTimeline:
    """Fixed-duration phase schedule"""

    def __init__(self, durations: Optional[Mapping[Phase, int]] = None, early_end_threshold: int = 60):
        durations = durations or PHASE_DURATIONS
        self.durations: Dict[Phase, int] = {phase: int(durations[phase]) for phase in PHASES}
        self.early_end_threshold = early_end_threshold

    @classmethod
    def from_settings(cls, session_settings: SessionSettings) -> "PhaseTimeline":
        durations = {Phase(name): minutes for name, minutes in session_settings.phase_durations().items()}
        return cls(durations, early_end_threshold=session_settings.early_end_threshold_minutes)

    @property
    def total_duration(self) -> int:
        return sum(self.durations.values())

    def phase_start_offset(self, phase_index: int) -> int:
        """Minutes from trip start to the beginning of the phase at phase_index."""
        return sum(self.durations[phase] for phase in PHASES[:phase_index])

    @staticmethod
    def elapsed_minutes(start_time: datetime, now: datetime) -> int:
        return math.floor((now - start_time).total_seconds() / 60)

    def time_to_next_phase(self, phase: Optional[Phase], elapsed: int) -> Optional[int]:
        """
        Minutes left in the stored phase before the next one is due.

        Returns None without a phase or in the last phase. May go negative
        when the stored phase was not advanced in time.
        """
        if phase is None:
            return None
        index = PHASES.index(phase)
        if index + 1 >= len(PHASES):
            return None
        time_in_phase = elapsed - self.phase_start_offset(index)
        return self.durations[phase] - time_in_phase

    def progress_percent(self, elapsed: int) -> float:
        """Share of the nominal duration elapsed. Not clamped; display code clamps."""
        return 100 * elapsed / self.total_duration

    def expected_phase(self, elapsed: int) -> Phase:
        for index, phase in enumerate(PHASES):
            if elapsed < self.phase_start_offset(index + 1):
                return phase
        return PHASES[-1]

    def is_ending_early(self, elapsed: int) -> bool:
        """True when ending now leaves more than the threshold of the nominal duration unused."""
        return self.total_duration - elapsed > self.early_end_threshold

    def progress(self, start_time: datetime, current_phase: Optional[Phase], now: datetime) -> PhaseProgress:
        elapsed = self.elapsed_minutes(start_time, now)
        return PhaseProgress(
            elapsed_minutes=elapsed,
            current_phase=current_phase,
            expected_phase=self.expected_phase(elapsed),
            time_to_next_phase=self.time_to_next_phase(current_phase, elapsed),
            progress_percent=self.progress_percent(elapsed),
            total_duration=self.total_duration,
        )


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def format_time_remaining(minutes: int) -> str:
    """Coarse whole-trip duration text, e.g. 'About 7 hours'."""
    hours = minutes // 60
    remaining_minutes = minutes % 60

    if hours == 0:
        return "Less than an hour"
    if remaining_minutes < 30:
        return f"About {_plural(hours, 'hour')}"
    return f"A little under {_plural(hours + 1, 'hour')}"


def format_phase_time_remaining(minutes: int) -> str:
    """Phase countdown text, rounded to the nearest 5 minutes."""
    rounded = math.floor(minutes / 5 + 0.5) * 5

    if rounded < 5:
        return "Less than 5 minutes"
    if rounded < 60:
        return f"About {rounded} minutes"

    hours = rounded // 60
    remaining_minutes = rounded % 60
    if remaining_minutes == 0:
        return f"About {_plural(hours, 'hour')}"
    return f"About {_plural(hours, 'hour')} and {remaining_minutes} minutes"


def format_elapsed(minutes: int) -> str:
    return f"{minutes // 60}h {minutes % 60}m elapsed"
