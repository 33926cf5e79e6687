from typing import List, Sequence

import numpy as np

from .base import SR, DelayLine, Effect, EffectKind

# Schroeder's classic tunings
COMB_MS = (29.7, 37.1, 41.1, 43.7)
ALLPASS_MS = (5.0, 1.7)
ALLPASS_GAIN = 0.7
MAX_COMB_FEEDBACK = 0.98

DEFAULT_DECAY = 1.5     # RT60, seconds
DEFAULT_MIX = 0.3


def _is_prime(n: int) -> bool:
    if n < 2:
        return False
    if n % 2 == 0:
        return n == 2
    f = 3
    while f * f <= n:
        if n % f == 0:
            return False
        f += 2
    return True


def prime_length(ms: float, sr: int) -> int:
    """Smallest prime number of samples covering `ms` milliseconds."""
    n = max(2, int(round(ms * sr / 1000.0)))
    while not _is_prime(n):
        n += 1
    return n


class CombFilter:
    """Feedback comb: v[n] = x[n] + g v[n-L], output v[n-L]."""

    def __init__(self, length: int, feedback: float):
        self.line = DelayLine(length)
        self.feedback = float(min(abs(feedback), MAX_COMB_FEEDBACK))

    def process(self, x: np.ndarray) -> np.ndarray:
        g = self.feedback
        return self.line.run(x, lambda chunk, d: (d, chunk + g * d))


class AllpassFilter:
    """Schroeder allpass: w[n] = x[n] + g w[n-L], y[n] = -g w[n] + w[n-L]."""

    def __init__(self, length: int, gain: float = ALLPASS_GAIN):
        self.line = DelayLine(length)
        self.gain = float(min(abs(gain), MAX_COMB_FEEDBACK))

    def process(self, x: np.ndarray) -> np.ndarray:
        g = self.gain

        def step(chunk, d):
            w = chunk + g * d
            return -g * w + d, w

        return self.line.run(x, step)


class Reverb(Effect):
    """
    Schroeder reverb: parallel combs (prime lengths, so their echoes rarely
    line up) averaged, then two allpass diffusers in series. Every loop gain
    stays below one.
    """
    kind = EffectKind.REVERB

    def __init__(self, sr: int = SR, decay: float = DEFAULT_DECAY, mix: float = DEFAULT_MIX,
                 comb_ms: Sequence[float] = COMB_MS, allpass_ms: Sequence[float] = ALLPASS_MS,
                 enabled: bool = False):
        super().__init__(sr, enabled)
        self.decay = max(0.1, float(decay))
        self.mix = float(np.clip(mix, 0.0, 1.0))

        self.combs: List[CombFilter] = []
        for ms in comb_ms:
            L = prime_length(ms, self.sr)
            # gain giving -60 dB after `decay` seconds
            g = 10.0 ** (-3.0 * (L / self.sr) / self.decay)
            self.combs.append(CombFilter(L, g))
        self.allpasses = [AllpassFilter(prime_length(ms, self.sr)) for ms in allpass_ms]

    def _process(self, x: np.ndarray) -> np.ndarray:
        wet = np.zeros(x.shape[0], dtype=np.float64)
        for c in self.combs:
            wet += c.process(x)
        wet /= max(1, len(self.combs))
        for ap in self.allpasses:
            wet = ap.process(wet)
        return (1.0 - self.mix) * x + self.mix * wet

    def reset(self) -> None:
        super().reset()
        for f in (*self.combs, *self.allpasses):
            f.line.clear()
