import logging
from typing import Optional

import numpy as np

from audio.renderer import BlockStats, Renderer
from control.params import ParamStore, SynthParams
from effects.base import EffectKind
from effects.chain import EffectsChain
from instruments.envelopes.adsr import ADSRField
from instruments.notes import Note, PitchClass
from instruments.polyphonic import MAX_VOICES, VoicePool
from instruments.signals.osc import Waveform
from routing.bus import EventBus
from routing.messages import CutoffChange, EffectToggle, Event, NoteOff, NoteOn, ParamChange, StopAll, WaveformChange
from sequencing.looper import MAX_EVENTS, MAX_SECONDS, Looper, Recording

logger = logging.getLogger(__name__)

SR = 44100


class Synthesizer:
    """
    Control surface of the synth, called by keyboard/mouse/MIDI collaborators.

    Every method here runs on the control path: parameters are published as
    new ParamStore snapshots, notes are posted to the EventBus, and while the
    looper records each event is stamped with the render clock and appended.
    `render()` is the only method meant for the audio thread.
    """

    def __init__(self, sr: int = SR, max_voices: int = MAX_VOICES, params: Optional[SynthParams] = None,
                 master_db: float = 0.0, limiter_drive: float = 1.3, bus_size: int = 1024,
                 max_record_events: int = MAX_EVENTS, max_record_seconds: float = MAX_SECONDS):
        self.sr = int(sr)
        self.store = ParamStore(params)
        self.bus = EventBus(maxsize=bus_size)
        self.pool = VoicePool(max_voices=max_voices, sr=self.sr)
        self.chain = EffectsChain.default(self.sr)
        self.looper = Looper(self.sr, max_events=max_record_events, max_seconds=max_record_seconds)
        self.renderer = Renderer(self.pool, self.chain, self.store, self.bus, self.looper,
                                 sr=self.sr, master_db=master_db, limiter_drive=limiter_drive)

    @property
    def params(self) -> SynthParams:
        return self.store.snapshot

    @property
    def now(self) -> int:
        """Render clock, in samples."""
        return self.renderer.frames_rendered

    @property
    def stats(self) -> BlockStats:
        return self.renderer.stats

    def _record(self, event: Event) -> None:
        if self.looper.is_recording:
            self.looper.record(event, self.now)

    ###########################################################################
    ##                                NOTES                                  ##
    ###########################################################################

    def _note(self, pitch_class, octave: Optional[int]) -> Note:
        if isinstance(pitch_class, Note):
            return pitch_class
        return Note.of(PitchClass.parse(pitch_class), self.params.octave if octave is None else octave)

    def note_on(self, pitch_class, octave: Optional[int] = None) -> Note:
        note = self._note(pitch_class, octave)
        self.bus.post(NoteOn(note))
        self._record(NoteOn(note))
        logger.debug("note on %s (%.2f Hz)", note, note.frequency)
        return note

    def note_off(self, pitch_class, octave: Optional[int] = None) -> Note:
        note = self._note(pitch_class, octave)
        self.bus.post(NoteOff(note))
        self._record(NoteOff(note))
        return note

    ###########################################################################
    ##                              PARAMETERS                               ##
    ###########################################################################

    def set_waveform(self, kind) -> Waveform:
        wf = self.store.set_waveform(kind).waveform
        self._record(WaveformChange(wf))
        return wf

    def cycle_waveform(self) -> Waveform:
        wf = self.store.cycle_waveform().waveform
        self._record(WaveformChange(wf))
        return wf

    def adjust_adsr(self, field, delta: int) -> int:
        field = ADSRField.parse(field)
        value = self.store.adjust_adsr(field, delta).adsr.get(field)
        self._record(ParamChange(field, value))
        return value

    def set_octave(self, delta: int) -> int:
        return self.store.shift_octave(delta).octave

    def toggle_effect(self, kind) -> bool:
        kind = EffectKind.parse(kind)
        enabled = self.store.toggle_effect(kind).effect_enabled(kind)
        self._record(EffectToggle(kind, enabled))
        logger.info("[Synth] %s %s", kind.value, "on" if enabled else "off")
        return enabled

    def adjust_filter_cutoff(self, delta: int) -> int:
        step = self.store.adjust_cutoff(delta).cutoff_step
        self._record(CutoffChange(step))
        return step

    ###########################################################################
    ##                            RECORDER/LOOPER                            ##
    ###########################################################################

    def start_recording(self) -> None:
        self.looper.start_recording(self.now)

    def stop_recording(self) -> Optional[Recording]:
        return self.looper.stop_recording(self.now)

    def start_playback(self) -> bool:
        return self.looper.start_playback()

    def stop_playback(self) -> None:
        self.looper.stop_playback()

    def stop_all(self) -> None:
        """STOP button: silence every voice within one block and bypass all effects."""
        self.looper.stop_playback()
        if self.looper.is_recording:
            self.looper.stop_recording(self.now)
        self.store.disable_effects()
        self.bus.post(StopAll())
        logger.info("[Synth] stop all")

    ###########################################################################
    ##                                 AUDIO                                 ##
    ###########################################################################

    def render(self, frames: int) -> np.ndarray:
        return self.renderer.render(frames)

    def num_active_voices(self) -> int:
        return self.renderer.num_active_voices()
