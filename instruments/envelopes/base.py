from typing import Protocol
import matplotlib.pyplot as plt
import numpy as np


class Envelope(Protocol):
    sr: int

    def gate_on(self) -> None: ...
    def gate_off(self) -> None: ...
    def kill(self) -> None:
        """Fade out within a few samples, ignoring the release setting."""
        ...
    def render(self, frames: int) -> np.ndarray:
        """Level for the next `frames` samples (float32, 0..1)."""
        ...
    def finished(self) -> bool:
        """True once the envelope is silent and its voice can be reused."""
        ...

    def plot(self, hold: float, tail: float = 1.0, block: int = 256):
        """
        Gate on for `hold` seconds, gate off, then keep rendering for `tail`
        seconds. Rendered block by block, as the audio thread would.
        """
        n_hold = int(hold * self.sr)
        n_tail = int(tail * self.sr)

        self.gate_on()
        chunks = [self.render(min(block, n_hold - i)) for i in range(0, n_hold, block)]
        self.gate_off()
        chunks += [self.render(min(block, n_tail - i)) for i in range(0, n_tail, block)]
        y = np.concatenate(chunks) if chunks else np.zeros(0, dtype=np.float32)

        t = np.arange(y.shape[0]) / self.sr
        fig, ax = plt.subplots(figsize=(8, 3))
        ax.plot(t, y, lw=1.2)
        ax.axvline(hold, color="grey", ls="--", lw=0.8)
        ax.set_ylim(-0.05, 1.05)
        ax.set_xlabel("Time [s]")
        ax.set_ylabel("Level")
        ax.set_title(f"{self.__class__.__name__} (gate-off @{hold:.3f}s, {self.sr} Hz)")
        ax.grid(True, alpha=0.3)
        fig.tight_layout()
        return fig, ax
