import threading
from dataclasses import dataclass

from audio.dsp import lin_to_dbfs
from audio.renderer import BlockStats


@dataclass(frozen=True)
class MeterReading:
    """Levels accumulated over one metering window."""
    pre_peak: float
    post_peak: float
    rms: float
    limited_blocks: int
    max_voices: int
    xruns: int
    frames: int

    @property
    def pre_peak_db(self) -> float:
        return lin_to_dbfs(self.pre_peak)

    @property
    def post_peak_db(self) -> float:
        return lin_to_dbfs(self.post_peak)

    @property
    def rms_db(self) -> float:
        return lin_to_dbfs(self.rms)


class AudioMeter:
    """
    Accumulates per-block statistics between two reads.
    `update` runs in the audio callback, `read` in the meter logging thread.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._clear()

    def _clear(self):
        self.frames = 0
        self._energy = 0.0
        self.pre_peak = 0.0
        self.post_peak = 0.0
        self.limited_blocks = 0
        self.max_voices = 0
        self.xruns = 0

    def update(self, stats: BlockStats, block_rms: float, frames: int, xrun: bool = False):
        # held for a handful of additions only
        with self._lock:
            self.frames += frames
            self._energy += block_rms * block_rms * frames
            self.pre_peak = max(self.pre_peak, stats.pre_peak)
            self.post_peak = max(self.post_peak, stats.post_peak)
            self.max_voices = max(self.max_voices, stats.voices)
            self.limited_blocks += int(stats.limited)
            self.xruns += int(xrun)

    def read(self) -> MeterReading:
        """Reading since the previous call. Starts a new window."""
        with self._lock:
            reading = MeterReading(
                pre_peak=self.pre_peak,
                post_peak=self.post_peak,
                rms=(self._energy / self.frames) ** 0.5 if self.frames else 0.0,
                limited_blocks=self.limited_blocks,
                max_voices=self.max_voices,
                xruns=self.xruns,
                frames=self.frames,
            )
            self._clear()
        return reading
