import math

import numpy as np

from .base import SR, Effect, EffectKind

BASE_DELAY_MS = 3.0
DEPTH_MS = 2.5
RATE_HZ = 0.25
DEFAULT_MIX = 0.5
CHUNK = 512


class Flanger(Effect):
    """
    Short delay swept by a sine LFO, mixed with the dry signal.

    The LFO phase only moves while the effect is audible: bypassing freezes
    it and re-enabling resumes the same sweep. The delay line keeps being
    fed (silence while bypassed) so no stale audio comes back.
    """
    kind = EffectKind.FLANGER

    def __init__(self, sr: int = SR, base_ms: float = BASE_DELAY_MS, depth_ms: float = DEPTH_MS,
                 rate_hz: float = RATE_HZ, mix: float = DEFAULT_MIX, enabled: bool = False):
        super().__init__(sr, enabled)
        self.base = max(1.0, base_ms * self.sr / 1000.0)      # samples
        self.depth = max(0.0, depth_ms * self.sr / 1000.0)    # samples
        self.rate = float(rate_hz)
        self.mix = float(np.clip(mix, 0.0, 1.0))
        self.lfo_phase = 0.0                                  # cycles, [0, 1)

        self._size = int(math.ceil(self.base + self.depth)) + 2 + CHUNK
        self._buf = np.zeros(self._size, dtype=np.float64)
        self._w = 0
        self._ramp = np.arange(CHUNK, dtype=np.float64)

    def _delays(self, m: int, advance: bool) -> np.ndarray:
        inc = self.rate / self.sr
        phases = np.mod(self.lfo_phase + inc * self._ramp[:m], 1.0)
        if advance:
            self.lfo_phase = float(np.mod(self.lfo_phase + inc * m, 1.0))
        return self.base + self.depth * 0.5 * (1.0 + np.sin(2.0 * np.pi * phases))

    def _run(self, x: np.ndarray, advance: bool) -> np.ndarray:
        n = x.shape[0]
        out = np.empty(n, dtype=np.float64)
        N = self._size
        for start in range(0, n, CHUNK):
            chunk = x[start:start + CHUNK]
            m = chunk.shape[0]
            widx = (self._w + self._ramp[:m].astype(np.int64)) % N
            self._buf[widx] = chunk

            read = np.mod(widx - self._delays(m, advance), N)
            i0 = np.floor(read).astype(np.int64)
            frac = read - i0
            i1 = (i0 + 1) % N
            delayed = (1.0 - frac) * self._buf[i0] + frac * self._buf[i1]

            out[start:start + m] = (1.0 - self.mix) * chunk + self.mix * delayed
            self._w = (self._w + m) % N
        return out

    def _process(self, x: np.ndarray) -> np.ndarray:
        return self._run(x, advance=True)

    def _idle(self, frames: int) -> None:
        if frames > self._silence.shape[0]:
            self._silence = np.zeros(frames, dtype=np.float64)
        self._run(self._silence[:frames], advance=False)

    def reset(self) -> None:
        super().reset()
        self._buf.fill(0.0)
        self._w = 0
