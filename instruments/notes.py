from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np

OCTAVE_MIN = 0
OCTAVE_MAX = 6

A4_FREQ = 440.0
A4_MIDI = 69


class PitchClass(Enum):
    C = 0
    C_SHARP = 1
    D = 2
    D_SHARP = 3
    E = 4
    F = 5
    F_SHARP = 6
    G = 7
    G_SHARP = 8
    A = 9
    A_SHARP = 10
    B = 11

    @property
    def semitone(self) -> int:
        return self.value

    @property
    def label(self) -> str:
        return self.name.replace("_SHARP", "#")

    @classmethod
    def parse(cls, name: "str | PitchClass") -> "PitchClass":
        """
        Accepts "C", "c#", "Db", "A_SHARP" or an existing PitchClass.
        """
        if isinstance(name, PitchClass):
            return name
        key = str(name).strip().upper()
        if key in cls.__members__:
            return cls[key]
        if not key or key[0] not in "ABCDEFG":
            raise ValueError(f"Unknown pitch class: {name!r}")
        base = "CDEFGAB".index(key[0])
        semis = (0, 2, 4, 5, 7, 9, 11)[base]
        accidental = key[1:]
        if accidental in ("#", "_SHARP", "SHARP"):
            semis += 1
        elif accidental == "B":
            semis -= 1
        elif accidental:
            raise ValueError(f"Unknown pitch class: {name!r}")
        return cls(semis % 12)


def equal_tempered(semitones_from_a4: int, base_freq: float = A4_FREQ, n_tones: int = 12) -> float:
    """
    Equal-tempered tuning
    """
    return base_freq * (2 ** (int(semitones_from_a4) / n_tones))


def _build_table() -> np.ndarray:
    table = np.empty((OCTAVE_MAX - OCTAVE_MIN + 1, 12), dtype=np.float64)
    for octave in range(OCTAVE_MIN, OCTAVE_MAX + 1):
        for semi in range(12):
            # C4 sits 9 semitones below A4
            table[octave - OCTAVE_MIN, semi] = equal_tempered(12 * (octave - 4) + semi - 9)
    table.setflags(write=False)
    return table


# (octave, semitone) -> Hz, octaves 0..6
FREQUENCY_TABLE = _build_table()


def clamp_octave(octave: int) -> int:
    return max(OCTAVE_MIN, min(OCTAVE_MAX, int(octave)))


@dataclass(frozen=True)
class Note:
    pitch: PitchClass
    octave: int

    def __post_init__(self):
        if not OCTAVE_MIN <= self.octave <= OCTAVE_MAX:
            raise ValueError(f"Octave {self.octave} outside [{OCTAVE_MIN}, {OCTAVE_MAX}]")

    @classmethod
    def of(cls, pitch: "str | PitchClass", octave: int) -> "Note":
        return cls(PitchClass.parse(pitch), clamp_octave(octave))

    @property
    def frequency(self) -> float:
        return float(FREQUENCY_TABLE[self.octave - OCTAVE_MIN, self.pitch.semitone])

    @property
    def midi(self) -> int:
        # MIDI 60 = C4
        return 12 * (self.octave + 1) + self.pitch.semitone

    @classmethod
    def from_midi(cls, number: int) -> Optional["Note"]:
        octave, semi = divmod(int(number), 12)
        octave -= 1
        if not OCTAVE_MIN <= octave <= OCTAVE_MAX:
            return None
        return cls(PitchClass(semi), octave)

    def __str__(self) -> str:
        return f"{self.pitch.label}{self.octave}"
