import math

import numpy as np
from scipy.signal import lfilter

from .base import SR, Effect, EffectKind

MIN_CUTOFF_HZ = 200.0
MAX_CUTOFF_HZ = 18000.0
CUTOFF_STEPS = 7          # steps 0..7, 7 = fully open


def clamp_cutoff_step(step: int) -> int:
    return max(0, min(CUTOFF_STEPS, int(step)))


def cutoff_hz(step: int) -> float:
    """Exponential map of the stepped cutoff control to Hz."""
    frac = clamp_cutoff_step(step) / CUTOFF_STEPS
    return MIN_CUTOFF_HZ * (MAX_CUTOFF_HZ / MIN_CUTOFF_HZ) ** frac


class LowPass(Effect):
    """One-pole low-pass, y[n] = (1 - a) x[n] + a y[n-1]."""
    kind = EffectKind.LOWPASS

    def __init__(self, sr: int = SR, step: int = CUTOFF_STEPS, enabled: bool = False):
        super().__init__(sr, enabled)
        self._zi = np.zeros(1, dtype=np.float64)
        self._step = -1
        self.step = step

    @property
    def step(self) -> int:
        return self._step

    @step.setter
    def step(self, step: int) -> None:
        step = clamp_cutoff_step(step)
        if step == self._step:
            return
        self._step = step
        fc = min(cutoff_hz(step), 0.45 * self.sr)
        a = math.exp(-2.0 * math.pi * fc / self.sr)
        self._b = np.array([1.0 - a])
        self._a = np.array([1.0, -a])

    @property
    def cutoff(self) -> float:
        return cutoff_hz(self._step)

    def _process(self, x: np.ndarray) -> np.ndarray:
        y, self._zi = lfilter(self._b, self._a, x, zi=self._zi)
        return y

    def reset(self) -> None:
        super().reset()
        self._zi = np.zeros(1, dtype=np.float64)
