from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from .base import Voice
from .envelopes.adsr import ADSR, ADSRParams, ADSRState
from .notes import Note
from .signals.osc import Oscillator, Waveform


@dataclass
class SynthVoice(Voice):
    """
    One pool slot: an oscillator and its envelope, bound to a note while sounding.
    Slots are created once and reassigned, never thrown away.
    """
    osc: Oscillator
    env: ADSR
    gain: float = 0.25
    note: Optional[Note] = None
    started_at: int = 0            # sample clock of the last (re)trigger
    released_at: Optional[int] = None
    _freq: float = field(default=0.0, repr=False)

    @classmethod
    def create(cls, sr: int, gain: float = 0.25) -> "SynthVoice":
        return cls(osc=Oscillator(sr=sr), env=ADSR(sr=sr), gain=gain)

    @property
    def state(self) -> ADSRState:
        return self.env.state

    def trigger(self, note: Note, waveform: Waveform, now: int) -> None:
        # the phase carries over, only the pitch and latched waveform change
        self.note = note
        self._freq = note.frequency
        self.osc.waveform = waveform
        self.started_at = int(now)
        self.released_at = None
        self.env.gate_on()

    def note_off(self, now: int = 0) -> None:
        if self.released_at is None and not self.env.finished():
            self.released_at = int(now)
        self.env.gate_off()

    def detach(self, now: int = 0) -> None:
        """Release and let the tail ring out; the voice no longer answers to its note."""
        self.note_off(now)
        self.note = None

    def kill(self, now: int = 0) -> None:
        if self.released_at is None:
            self.released_at = int(now)
        self.env.kill()

    def finished(self) -> bool:
        return self.env.finished()

    def render(self, frames: int, params: Optional[ADSRParams] = None) -> np.ndarray:
        if params is not None:
            self.env.params = params
        env = self.env.render(frames)
        raw = self.osc.render(self._freq, frames)
        if self.env.finished():
            self.note = None
        return raw * env * np.float32(self.gain)
