from typing import Protocol
import numpy as np

from .notes import Note


class Voice(Protocol):
    def note_off(self, now: int = 0) -> None: ...
    def finished(self) -> bool: ...
    def render(self, frames: int) -> np.ndarray: ...


class Instrument(Protocol):
    """Anything the renderer can drive with notes and pull audio from."""
    def note_on(self, note: Note, *args) -> object: ...
    def note_off(self, note: Note) -> None: ...
    def render(self, frames: int, *args) -> np.ndarray: ...
    def num_active_voices(self) -> int: ...
