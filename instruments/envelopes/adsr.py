import math
from dataclasses import dataclass, replace
from enum import Enum, auto
from typing import Dict, Optional, Tuple

import numpy as np
from .base import Envelope

SR = 44100

PARAM_MIN = 0
PARAM_MAX = 99

# stage durations for parameter 0 and 99
MIN_STAGE_SECONDS = 0.005
MAX_STAGE_SECONDS = 2.0

# fade length used by kill(), shorter than a render block
KILL_SAMPLES = 64


def clamp_param(value: int) -> int:
    return max(PARAM_MIN, min(PARAM_MAX, int(value)))


class ADSRField(Enum):
    ATTACK = "attack"
    DECAY = "decay"
    SUSTAIN = "sustain"
    RELEASE = "release"

    @classmethod
    def parse(cls, field: "str | ADSRField") -> "ADSRField":
        if isinstance(field, ADSRField):
            return field
        try:
            return cls(str(field).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown ADSR field: {field!r}") from None


@dataclass(frozen=True)
class ADSRParams:
    """
    The four 0..99 envelope controls shared by every voice.
    Attack, decay and release are durations, sustain is a level.
    Values are clamped on construction, never rejected.
    """
    attack: int = 0
    decay: int = 0
    sustain: int = 99
    release: int = 20

    def __post_init__(self):
        for f in ADSRField:
            object.__setattr__(self, f.value, clamp_param(getattr(self, f.value)))

    def get(self, field: ADSRField) -> int:
        return getattr(self, ADSRField.parse(field).value)

    def with_value(self, field: ADSRField, value: int) -> "ADSRParams":
        return replace(self, **{ADSRField.parse(field).value: clamp_param(value)})

    def adjusted(self, field: ADSRField, delta: int) -> "ADSRParams":
        return self.with_value(field, self.get(field) + int(delta))

    @staticmethod
    def stage_seconds(value: int) -> float:
        return MIN_STAGE_SECONDS + (clamp_param(value) / PARAM_MAX) * (MAX_STAGE_SECONDS - MIN_STAGE_SECONDS)

    @property
    def attack_seconds(self) -> float:
        return self.stage_seconds(self.attack)

    @property
    def decay_seconds(self) -> float:
        return self.stage_seconds(self.decay)

    @property
    def release_seconds(self) -> float:
        return self.stage_seconds(self.release)

    @property
    def sustain_level(self) -> float:
        return self.sustain / PARAM_MAX


class ADSRState(Enum):
    IDLE = auto()      # No sound
    ATTACK = auto()    # Attack phase
    DECAY = auto()     # Decay phase
    SUSTAIN = auto()   # Sustain phase
    RELEASE = auto()   # Release phase


class Trigger(Enum):
    GATE_ON = auto()
    GATE_OFF = auto()
    PEAK_REACHED = auto()
    SUSTAIN_REACHED = auto()
    SILENCE_REACHED = auto()
    KILL = auto()


S, T = ADSRState, Trigger

TRANSITIONS: Dict[Tuple[ADSRState, Trigger], ADSRState] = {
    (S.IDLE, T.GATE_ON): S.ATTACK,
    (S.ATTACK, T.GATE_ON): S.ATTACK,
    (S.DECAY, T.GATE_ON): S.ATTACK,
    (S.SUSTAIN, T.GATE_ON): S.ATTACK,
    (S.RELEASE, T.GATE_ON): S.ATTACK,

    (S.ATTACK, T.PEAK_REACHED): S.DECAY,
    (S.DECAY, T.SUSTAIN_REACHED): S.SUSTAIN,

    (S.ATTACK, T.GATE_OFF): S.RELEASE,
    (S.DECAY, T.GATE_OFF): S.RELEASE,
    (S.SUSTAIN, T.GATE_OFF): S.RELEASE,

    (S.ATTACK, T.KILL): S.RELEASE,
    (S.DECAY, T.KILL): S.RELEASE,
    (S.SUSTAIN, T.KILL): S.RELEASE,
    (S.RELEASE, T.KILL): S.RELEASE,

    (S.RELEASE, T.SILENCE_REACHED): S.IDLE,
}

del S, T


def next_state(state: ADSRState, trigger: Trigger) -> Optional[ADSRState]:
    """Target of `trigger` fired in `state`, or None when the pair is not a legal transition."""
    return TRANSITIONS.get((state, trigger))


class ADSR(Envelope):
    """
    Attack/Decay/Sustain/Release envelope (block-by-block).

    Every stage is a linear ramp that starts from the current level, so
    retriggers, early gate-offs and kills never produce a jump. Stage
    lengths are read from `params` on every render, letting the shared
    0..99 controls act on voices that are already sounding.
    """

    def __init__(self, params: Optional[ADSRParams] = None, sr: int = SR):
        self.params = params if params is not None else ADSRParams()
        self.sr = int(sr)

        self._state = ADSRState.IDLE
        self._y = 0.0              # current output level (last sample written)
        self._rel_start = 0.0      # level when release began
        self._killed = False
        self._slew = 1.0 / self._samples(MIN_STAGE_SECONDS)

    @property
    def state(self) -> ADSRState:
        return self._state

    @property
    def level(self) -> float:
        return self._y

    def _fire(self, trigger: Trigger) -> bool:
        nxt = next_state(self._state, trigger)
        if nxt is None:
            return False
        self._state = nxt
        return True

    def _samples(self, seconds: float) -> int:
        return max(1, int(round(seconds * self.sr)))

    # ---- control ----
    def gate_on(self) -> None:
        self._killed = False
        self._fire(Trigger.GATE_ON)

    def gate_off(self) -> None:
        if self._fire(Trigger.GATE_OFF):
            self._rel_start = self._y

    def kill(self) -> None:
        if self._fire(Trigger.KILL):
            self._killed = True
            self._rel_start = self._y

    def finished(self) -> bool:
        return self._state == ADSRState.IDLE

    # ---- stages ----
    def _ramp(self, target: float, rate: float, remain: int) -> np.ndarray:
        """Linear segment from the current level toward `target`, never overshooting."""
        dist = abs(target - self._y)
        n = min(remain, max(1, math.ceil(dist / rate - 1e-9)))
        steps = np.arange(1, n + 1, dtype=np.float64) * rate
        if target >= self._y:
            seg = np.minimum(self._y + steps, target)
        else:
            seg = np.maximum(self._y - steps, target)
        self._y = float(seg[-1])
        return seg

    def _render_stage(self, remain: int) -> Optional[np.ndarray]:
        p = self.params
        st = self._state

        if st == ADSRState.ATTACK:
            if self._y >= 1.0:
                self._y = 1.0
                self._fire(Trigger.PEAK_REACHED)
                return None
            return self._ramp(1.0, 1.0 / self._samples(p.attack_seconds), remain)

        if st == ADSRState.DECAY:
            s = p.sustain_level
            if self._y <= s:
                self._fire(Trigger.SUSTAIN_REACHED)
                return None
            rate = (1.0 - s) / self._samples(p.decay_seconds)
            return self._ramp(s, rate, remain)

        if st == ADSRState.SUSTAIN:
            s = p.sustain_level
            if self._y == s:
                return np.full(remain, s, dtype=np.float64)
            # sustain control moved: glide instead of jumping
            return self._ramp(s, self._slew, remain)

        if st == ADSRState.RELEASE:
            if self._y <= 0.0 or self._rel_start <= 0.0:
                self._y = 0.0
                self._fire(Trigger.SILENCE_REACHED)
                return None
            length = KILL_SAMPLES if self._killed else self._samples(p.release_seconds)
            return self._ramp(0.0, self._rel_start / length, remain)

        return None

    # ---- render ----
    def render(self, frames: int) -> np.ndarray:
        out = np.zeros(frames, dtype=np.float32)

        idx = 0
        while idx < frames and self._state != ADSRState.IDLE:
            seg = self._render_stage(frames - idx)
            if seg is None:
                continue
            n = seg.shape[0]
            out[idx:idx + n] = seg
            idx += n

        return out
