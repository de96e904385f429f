"""Fixed-interval step timing and speed control."""

from dataclasses import dataclass, field
from enum import Enum

from config.constants import MAX_SPEED, MAX_STEPS_PER_UPDATE


class SimulationSpeed(Enum):
    """Preset simulation speeds."""
    PAUSED = 0.0
    SLOW = 0.5
    NORMAL = 1.0
    FAST = 2.0
    VERY_FAST = 5.0
    MAX = 10.0


@dataclass
class SimulationClock:
    """
    Converts real elapsed time into a number of simulation steps.

    One step is due every ``step_interval`` seconds at 1x speed.
    """

    step_interval: float = 0.3
    speed: float = 1.0

    # Internal state
    _tick: int = field(default=0, init=False)
    _accumulated_time: float = field(default=0.0, init=False)
    _elapsed: float = field(default=0.0, init=False)
    _paused: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        if self.step_interval < 0:
            raise ValueError(f"step_interval must be non-negative, got {self.step_interval}")

    @property
    def tick(self) -> int:
        """Steps released so far."""
        return self._tick

    @property
    def elapsed(self) -> float:
        """Scaled time accumulated while running, in seconds."""
        return self._elapsed

    @property
    def is_paused(self) -> bool:
        return self._paused

    def update(self, real_dt: float) -> int:
        """
        Advance the clock and return the number of steps to run.

        Args:
            real_dt: Real elapsed time since last update in seconds

        Returns:
            Steps due this frame, at most MAX_STEPS_PER_UPDATE
        """
        if self._paused or self.speed <= 0:
            return 0

        scaled_dt = real_dt * self.speed
        self._elapsed += scaled_dt

        if self.step_interval == 0:
            steps = MAX_STEPS_PER_UPDATE
        else:
            self._accumulated_time += scaled_dt
            steps = min(int(self._accumulated_time / self.step_interval), MAX_STEPS_PER_UPDATE)
            self._accumulated_time -= steps * self.step_interval
            # Drop backlog beyond the cap instead of bursting later
            self._accumulated_time = min(self._accumulated_time, self.step_interval)

        self._tick += steps
        return steps

    def pause(self) -> None:
        self._paused = True

    def resume(self) -> None:
        self._paused = False
        # Reset accumulated time to prevent time jump
        self._accumulated_time = 0.0

    def toggle_pause(self) -> bool:
        """Toggle pause state. Returns new pause state."""
        if self._paused:
            self.resume()
        else:
            self.pause()
        return self._paused

    def set_speed(self, speed: float | SimulationSpeed) -> None:
        """Set simulation speed multiplier."""
        if isinstance(speed, SimulationSpeed):
            self.speed = speed.value
        else:
            self.speed = max(0.0, min(speed, MAX_SPEED))

    def reset(self) -> None:
        self._tick = 0
        self._accumulated_time = 0.0
        self._elapsed = 0.0
        self._paused = False
