import threading
from dataclasses import dataclass, replace
from typing import Callable, Dict, FrozenSet

from effects.base import EffectKind
from effects.lowpass import CUTOFF_STEPS, clamp_cutoff_step
from instruments.envelopes.adsr import ADSRField, ADSRParams
from instruments.notes import clamp_octave
from instruments.signals.osc import Waveform

DEFAULT_OCTAVE = 4


@dataclass(frozen=True)
class SynthParams:
    """Immutable snapshot of every control the render path reads."""
    waveform: Waveform = Waveform.SINE
    adsr: ADSRParams = ADSRParams()
    octave: int = DEFAULT_OCTAVE
    effects: FrozenSet[EffectKind] = frozenset()
    cutoff_step: int = CUTOFF_STEPS

    def effect_enabled(self, kind: EffectKind) -> bool:
        return EffectKind.parse(kind) in self.effects

    @property
    def effect_flags(self) -> Dict[EffectKind, bool]:
        return {k: (k in self.effects) for k in EffectKind}


class ParamStore:
    """
    Publishes SynthParams snapshots.

    Writers (control path) serialise on a lock that is held only while a new
    frozen snapshot is built and swapped in. Readers take `snapshot` without
    locking: the reference swap is atomic, so a half-updated value can
    never be observed.
    """

    def __init__(self, initial: SynthParams = None):
        self._snap = initial if initial is not None else SynthParams()
        self._lock = threading.Lock()

    @property
    def snapshot(self) -> SynthParams:
        return self._snap

    def update(self, fn: Callable[[SynthParams], SynthParams]) -> SynthParams:
        with self._lock:
            self._snap = fn(self._snap)
            return self._snap

    # ---- control helpers ----
    def set_waveform(self, kind: Waveform) -> SynthParams:
        kind = Waveform.parse(kind)
        return self.update(lambda p: replace(p, waveform=kind))

    def cycle_waveform(self) -> SynthParams:
        return self.update(lambda p: replace(p, waveform=p.waveform.next()))

    def adjust_adsr(self, field: ADSRField, delta: int) -> SynthParams:
        field = ADSRField.parse(field)
        return self.update(lambda p: replace(p, adsr=p.adsr.adjusted(field, delta)))

    def set_adsr(self, field: ADSRField, value: int) -> SynthParams:
        field = ADSRField.parse(field)
        return self.update(lambda p: replace(p, adsr=p.adsr.with_value(field, value)))

    def shift_octave(self, delta: int) -> SynthParams:
        return self.update(lambda p: replace(p, octave=clamp_octave(p.octave + int(delta))))

    def set_effect(self, kind: EffectKind, enabled: bool) -> SynthParams:
        kind = EffectKind.parse(kind)

        def apply(p: SynthParams) -> SynthParams:
            fx = p.effects | {kind} if enabled else p.effects - {kind}
            return replace(p, effects=frozenset(fx))

        return self.update(apply)

    def toggle_effect(self, kind: EffectKind) -> SynthParams:
        kind = EffectKind.parse(kind)
        return self.update(lambda p: replace(p, effects=p.effects ^ {kind}))

    def disable_effects(self) -> SynthParams:
        return self.update(lambda p: replace(p, effects=frozenset()))

    def adjust_cutoff(self, delta: int) -> SynthParams:
        return self.update(lambda p: replace(p, cutoff_step=clamp_cutoff_step(p.cutoff_step + int(delta))))

    def set_cutoff(self, step: int) -> SynthParams:
        return self.update(lambda p: replace(p, cutoff_step=clamp_cutoff_step(int(step))))
