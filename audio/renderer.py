from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable

import numpy as np

from audio.dsp import db_to_lin, hard_clip, peak, soft_clip
from control.params import ParamStore
from effects.chain import EffectsChain
from instruments.polyphonic import VoicePool
from routing.bus import EventBus
from routing.messages import CutoffChange, EffectToggle, NoteOff, NoteOn, ParamChange, StopAll, WaveformChange
from sequencing.looper import Looper

SR = 44100
MAX_FRAMES = 4096


@dataclass
class BlockStats:
    """Written once per block by the render path, read by the meter."""
    pre_peak: float = 0.0
    post_peak: float = 0.0
    limited: bool = False
    voices: int = 0


class Renderer:
    """
    The real-time side of the synth. Each block it:
      1. applies note events drained from the bus at the block start,
      2. renders the voice pool, split at the exact sample offset of every
         looper replay event,
      3. soft-limits the sum with tanh, runs the effects chain and
         hard-clips the result.
    It never blocks on the control path and does no I/O.
    """

    def __init__(self, pool: VoicePool, chain: EffectsChain, store: ParamStore, bus: EventBus,
                 looper: Looper, sr: int = SR, master_db: float = 0.0, limiter_drive: float = 1.3,
                 max_frames: int = MAX_FRAMES):
        self.pool = pool
        self.chain = chain
        self.store = store
        self.bus = bus
        self.looper = looper
        self.sr = int(sr)
        self.master = db_to_lin(master_db)
        self.limiter_drive = float(limiter_drive)

        self.frames_rendered = 0
        self.stats = BlockStats()
        self._buf = np.zeros(max_frames, dtype=np.float64)

    ###########################################################################
    ##                          EVENT ROUTING                                ##
    ###########################################################################

    def route_event(self, e: object, now: int) -> None:
        if isinstance(e, NoteOn):
            self.pool.note_on(e.note, self.store.snapshot.waveform, now)
        elif isinstance(e, NoteOff):
            self.pool.note_off(e.note, now)
        elif isinstance(e, StopAll):
            self.pool.kill_all(now)
        # replayed control changes
        elif isinstance(e, ParamChange):
            self.store.set_adsr(e.field, e.value)
        elif isinstance(e, WaveformChange):
            self.store.set_waveform(e.kind)
        elif isinstance(e, EffectToggle):
            self.store.set_effect(e.kind, e.enabled)
        elif isinstance(e, CutoffChange):
            self.store.set_cutoff(e.step)

    def route_events(self, events: Iterable[object], now: int) -> None:
        for e in events:
            self.route_event(e, now)

    ###########################################################################
    ##                             RENDERING                                 ##
    ###########################################################################

    def render(self, frames: int) -> np.ndarray:
        """Next `frames` mono samples, float32 in [-1, 1]."""
        now = self.frames_rendered
        self.route_events(self.bus.drain(), now)

        if frames > self._buf.shape[0]:
            self._buf = np.zeros(frames, dtype=np.float64)
        buf = self._buf[:frames]

        pos = 0
        for offset, ev in self.looper.pull(frames):
            if offset > pos:
                buf[pos:offset] = self.pool.render(offset - pos, self.store.snapshot.adsr)
                pos = offset
            self.route_event(ev, now + offset)
        if pos < frames:
            buf[pos:] = self.pool.render(frames - pos, self.store.snapshot.adsr)

        buf *= self.master
        pre = peak(buf)
        mix = soft_clip(buf, drive=self.limiter_drive)

        snap = self.store.snapshot
        self.chain.apply_params(snap.effect_flags, snap.cutoff_step)
        out = hard_clip(self.chain.process(mix)).astype(np.float32)

        limited = bool(np.any(np.abs(mix - buf) > 1e-7))
        self.stats = BlockStats(pre_peak=pre, post_peak=peak(out), limited=limited,
                                voices=self.pool.num_active_voices())
        self.frames_rendered = now + frames
        return out

    def num_active_voices(self) -> int:
        return self.pool.num_active_voices()
