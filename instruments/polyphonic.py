from typing import List, Optional

import numpy as np

from .base import Instrument
from .envelopes.adsr import ADSRParams, ADSRState
from .notes import Note
from .signals.osc import Waveform
from .voices import SynthVoice


SR = 44100
MAX_VOICES = 16


class VoicePool(Instrument):
    """
    Fixed set of pre-allocated voices, one voice per sounding pitch.

    - A note that is already sounding (even in its release tail) is
      retriggered in place, from its current level. If the waveform changed
      since, it gets a fresh slot and the old tail rings out on its own.
    - When every slot is busy, the oldest released voice is stolen; if none
      is releasing, the voice held the longest is.
    Only the render thread touches the pool.
    """

    def __init__(self, max_voices: int = MAX_VOICES, sr: int = SR, voice_gain: float = 0.25,
                 max_frames: int = 4096):
        if max_voices < 1:
            raise ValueError("VoicePool needs at least one voice.")
        self.sr = int(sr)
        self.max_voices = int(max_voices)
        self._voices: List[SynthVoice] = [SynthVoice.create(self.sr, voice_gain)
                                          for _ in range(self.max_voices)]
        self._mix = np.zeros(max_frames, dtype=np.float32)
        self.steals = 0

    @property
    def voices(self) -> List[SynthVoice]:
        return self._voices

    def voice_for(self, note: Note) -> Optional[SynthVoice]:
        for v in self._voices:
            if v.note == note and not v.finished():
                return v
        return None

    def _steal(self, keep: Optional[SynthVoice] = None) -> Optional[SynthVoice]:
        candidates = [v for v in self._voices if v is not keep]
        if not candidates:
            return None
        releasing = [v for v in candidates if v.state == ADSRState.RELEASE]
        if releasing:
            victim = min(releasing, key=lambda v: v.released_at if v.released_at is not None else v.started_at)
        else:
            victim = min(candidates, key=lambda v: v.started_at)
        self.steals += 1
        return victim

    def _allocate(self, keep: Optional[SynthVoice] = None) -> Optional[SynthVoice]:
        free = next((s for s in self._voices if s.finished() and s is not keep), None)
        return free if free is not None else self._steal(keep)

    def note_on(self, note: Note, waveform: Waveform = Waveform.SINE, now: int = 0) -> SynthVoice:
        v = self.voice_for(note)
        if v is not None and v.osc.waveform is not waveform:
            # the old tail keeps its own waveform and fades out in its slot
            fresh = self._allocate(keep=v)
            if fresh is not None:
                v.detach(now)
                v = fresh
        if v is None:
            v = self._allocate()
        v.trigger(note, waveform, now)
        return v

    def note_off(self, note: Note, now: int = 0) -> None:
        v = self.voice_for(note)
        if v is not None and v.released_at is None:
            v.note_off(now)

    def kill_all(self, now: int = 0) -> None:
        for v in self._voices:
            if not v.finished():
                v.kill(now)

    def render(self, frames: int, params: Optional[ADSRParams] = None) -> np.ndarray:
        if frames > self._mix.shape[0]:
            self._mix = np.zeros(frames, dtype=np.float32)
        mix = self._mix[:frames]
        mix.fill(0.0)
        for v in self._voices:
            if v.finished():
                continue
            mix += v.render(frames, params)
        return mix

    def num_active_voices(self) -> int:
        return sum(1 for v in self._voices if not v.finished())
