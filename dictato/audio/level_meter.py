"""RMS level meter with noise gate and EMA smoothing."""

import math
from typing import Optional

import numpy as np


class LevelMeter:
    """Accumulates squared samples and emits a smoothed level at a fixed rate.

    Only the audio callback mutates a meter, so it holds no lock.
    """

    def __init__(self,
                 interval_seconds: float = 0.033,
                 alpha: float = 0.35,
                 gain: float = 1.5,
                 noise_gate: float = 0.02):
        self.interval_seconds = interval_seconds
        self.alpha = alpha
        self.gain = gain
        self.noise_gate = noise_gate

        self.sum_squares = 0.0
        self.sample_count = 0
        self.ema_level = 0.0
        self.last_emit: Optional[float] = None

    def reset(self, now: float) -> None:
        self.sum_squares = 0.0
        self.sample_count = 0
        self.ema_level = 0.0
        self.last_emit = now

    def accumulate(self, samples: np.ndarray) -> None:
        if samples.size == 0:
            return
        self.sum_squares += float(np.dot(samples, samples))
        self.sample_count += int(samples.size)

    def poll(self, now: float) -> Optional[float]:
        """Return a level if the throttle window elapsed, else ``None``.

        An empty window reports 0.0 without touching the EMA.
        """
        if self.last_emit is None:
            self.last_emit = now
        if now - self.last_emit < self.interval_seconds:
            return None
        self.last_emit = now

        if self.sample_count == 0:
            return 0.0

        rms = math.sqrt(self.sum_squares / self.sample_count)
        level = min(rms * self.gain, 1.0)
        if level < self.noise_gate:
            level = 0.0
        self.ema_level = self.alpha * level + (1.0 - self.alpha) * self.ema_level
        self.sum_squares = 0.0
        self.sample_count = 0
        return min(max(self.ema_level, 0.0), 1.0)
