from enum import Enum, auto
from typing import Union

import numpy as np
from .base import Signal

SR = 44100

Phase = Union[float, np.ndarray]


class Waveform(Enum):
    SINE = auto()
    SQUARE = auto()
    TRIANGLE = auto()
    SAWTOOTH = auto()

    def next(self) -> "Waveform":
        members = list(Waveform)
        return members[(members.index(self) + 1) % len(members)]

    @classmethod
    def parse(cls, kind: "str | Waveform") -> "Waveform":
        if isinstance(kind, Waveform):
            return kind
        try:
            return cls[str(kind).strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown waveform: {kind!r}") from None


def _sine(phase):
    return np.sin(2.0 * np.pi * phase)


def _square(phase):
    # naive, aliases above a few kHz
    return np.where(phase < 0.5, 1.0, -1.0)


def _triangle(phase):
    return 1.0 - 4.0 * np.abs(phase - 0.5)


def _sawtooth(phase):
    # naive, discontinuous reset at the wrap
    return 2.0 * phase - 1.0


_SHAPES = {
    Waveform.SINE: _sine,
    Waveform.SQUARE: _square,
    Waveform.TRIANGLE: _triangle,
    Waveform.SAWTOOTH: _sawtooth,
}


def sample(waveform: Waveform, phase: Phase) -> Phase:
    """
    Amplitude in [-1, 1] of `waveform` at `phase` in [0, 1).
    Works on scalars and on numpy arrays of phases.
    """
    out = _SHAPES[waveform](phase)
    if np.ndim(out) == 0:
        return float(out)
    return out


def wrap_phase(phase: Phase) -> Phase:
    wrapped = np.mod(phase, 1.0)
    # np.mod can round up to exactly 1.0 for tiny negative inputs
    if np.ndim(wrapped):
        return np.where(wrapped >= 1.0, 0.0, wrapped)
    return 0.0 if wrapped >= 1.0 else float(wrapped)


class Oscillator(Signal):
    """
    Phase accumulator driving one of the four waveforms.
    Phase lives in [0, 1) and is re-wrapped at the end of every block,
    so long sustained notes never accumulate an unbounded phase.
    """

    def __init__(self, waveform: Waveform = Waveform.SINE, sr: int = SR, phase: float = 0.0,
                 max_frames: int = 4096):
        self.sr = int(sr)
        self.waveform = waveform
        self.phase = wrap_phase(float(phase))
        self._ramp = np.arange(max_frames, dtype=np.float64)

    def increment(self, freq: float) -> float:
        return float(freq) / self.sr

    def render(self, freq: float, frames: int) -> np.ndarray:
        if frames > self._ramp.shape[0]:
            self._ramp = np.arange(frames, dtype=np.float64)
        inc = self.increment(freq)
        phases = wrap_phase(self.phase + inc * self._ramp[:frames])
        self.phase = wrap_phase(self.phase + inc * frames)
        return sample(self.waveform, phases).astype(np.float32)

    def reset(self) -> None:
        self.phase = 0.0
