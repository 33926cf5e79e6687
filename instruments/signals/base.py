from typing import Protocol
import numpy as np
import matplotlib.pyplot as plt


class Signal(Protocol):
    """Stateful generator of an endless periodic signal."""
    sr: int

    def render(self, freq: float, frames: int) -> np.ndarray:
        """Next `frames` samples at `freq` (float32), continuing from the previous call."""
        ...

    def reset(self) -> None: ...

    def plot(self, freq: float, periods: float = 3.0):
        """Draw a few periods of the signal at `freq`."""
        frames = max(2, int(round(periods * self.sr / freq)))
        y = self.render(freq, frames)
        t_ms = np.arange(frames) * 1000.0 / self.sr

        fig, ax = plt.subplots(figsize=(8, 3))
        ax.plot(t_ms, y, lw=1.2)
        ax.set_ylim(-1.1, 1.1)
        ax.set_xlabel("Time [ms]")
        ax.set_ylabel("Amplitude")
        waveform = getattr(self, "waveform", None)
        name = waveform.name.lower() if waveform is not None else self.__class__.__name__
        ax.set_title(f"{name} @ {freq:.1f} Hz")
        ax.grid(True, alpha=0.3)
        fig.tight_layout()
        return fig, ax
