from dataclasses import dataclass
from typing import Union

from effects.base import EffectKind
from instruments.envelopes.adsr import ADSRField
from instruments.notes import Note
from instruments.signals.osc import Waveform


@dataclass(frozen=True)
class NoteOn:
    note: Note


@dataclass(frozen=True)
class NoteOff:
    note: Note


@dataclass(frozen=True)
class ParamChange:
    field: ADSRField
    value: int          # resulting 0..99 value, not the delta


@dataclass(frozen=True)
class WaveformChange:
    kind: Waveform


@dataclass(frozen=True)
class EffectToggle:
    kind: EffectKind
    enabled: bool


@dataclass(frozen=True)
class CutoffChange:
    step: int           # resulting low-pass step, not the delta


@dataclass(frozen=True)
class StopAll:
    pass


# what a recording stores
Event = Union[NoteOn, NoteOff, ParamChange, WaveformChange, EffectToggle, CutoffChange]

# what crosses the bus into the render path
BusEvent = Union[NoteOn, NoteOff, StopAll]
