from enum import Enum
from typing import Callable, Tuple

import numpy as np

SR = 44100
MAX_FRAMES = 4096


class EffectKind(Enum):
    LOWPASS = "lowpass"
    DELAY = "delay"
    REVERB = "reverb"
    FLANGER = "flanger"

    @classmethod
    def parse(cls, kind: "str | EffectKind") -> "EffectKind":
        if isinstance(kind, EffectKind):
            return kind
        try:
            return cls(str(kind).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown effect: {kind!r}") from None


class DelayLine:
    """
    Circular buffer read exactly `length` samples behind its write head.
    Blocks are walked in chunks of at most `length` samples, so a chunk
    never reads what it writes.
    """

    def __init__(self, length: int):
        self.length = max(1, int(length))
        self.buf = np.zeros(self.length, dtype=np.float64)
        self.pos = 0
        self._ramp = np.arange(self.length)

    def run(self, x: np.ndarray,
            step: Callable[[np.ndarray, np.ndarray], Tuple[np.ndarray, np.ndarray]]) -> np.ndarray:
        """
        `step(chunk, delayed) -> (output, stored)`: `delayed` holds the samples
        stored `length` samples ago, `stored` replaces them.
        """
        n = x.shape[0]
        out = np.empty(n, dtype=np.float64)
        L = self.length
        for start in range(0, n, L):
            chunk = x[start:start + L]
            m = chunk.shape[0]
            idx = self._ramp[:m] + self.pos
            idx[idx >= L] -= L
            y, stored = step(chunk, self.buf[idx])
            self.buf[idx] = stored
            self.pos = (self.pos + m) % L
            out[start:start + m] = y
        return out

    def peak(self) -> float:
        return float(np.max(np.abs(self.buf)))

    def clear(self) -> None:
        self.buf.fill(0.0)
        self.pos = 0


class Effect:
    """
    Stateful mono block processor with a click-free bypass.

    `enabled` is only a target: the wet amount ramps linearly to it over one
    block. Once fully bypassed the input passes through untouched and the
    effect is fed silence, so delay lines and filters decay on their own
    instead of being frozen or wiped.
    """
    kind: EffectKind

    def __init__(self, sr: int = SR, enabled: bool = False, max_frames: int = MAX_FRAMES):
        self.sr = int(sr)
        self.enabled = bool(enabled)
        self._wet = 1.0 if self.enabled else 0.0
        self._silence = np.zeros(max_frames, dtype=np.float64)

    @property
    def bypassed(self) -> bool:
        return not self.enabled and self._wet == 0.0

    def _process(self, x: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def _idle(self, frames: int) -> None:
        if frames > self._silence.shape[0]:
            self._silence = np.zeros(frames, dtype=np.float64)
        self._process(self._silence[:frames])

    def process(self, x: np.ndarray) -> np.ndarray:
        n = x.shape[0]
        target = 1.0 if self.enabled else 0.0
        if n == 0:
            return x
        if self._wet == 0.0 and target == 0.0:
            self._idle(n)
            return x

        y = self._process(x)
        if self._wet == 1.0 and target == 1.0:
            return y

        ramp = np.linspace(self._wet, target, n + 1)[1:]
        self._wet = target
        return x + ramp * (y - x)

    def reset(self) -> None:
        self._wet = 1.0 if self.enabled else 0.0
