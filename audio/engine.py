# audio/engine.py
import logging
import threading
from typing import Optional, Protocol

import numpy as np
import sounddevice as sd

from audio.dsp import rms
from audio.meter import AudioMeter
from audio.renderer import BlockStats

logger = logging.getLogger(__name__)

SR = 44100
BLOCK = 256


class AudioBackendError(RuntimeError):
    """The audio device could not be opened or started. Fatal, never retried."""


class BlockSource(Protocol):
    stats: BlockStats

    def render(self, frames: int) -> np.ndarray: ...


class AudioEngine:
    def __init__(self, source: BlockSource, sr=SR, blocksize=BLOCK, channels=1,
                 meter_period=1.0, latency='low', device=None):
        self.source = source
        self.sr = int(sr)
        self.blocksize = int(blocksize)
        self.channels = int(channels)
        if self.channels not in (1, 2):
            raise ValueError("Only mono or stereo output supported currently.")

        # metering
        self.meter = AudioMeter()
        self._meter_period = float(meter_period)
        self._meter_thread: Optional[threading.Thread] = None

        # coordinated shutdown
        self._stop_evt = threading.Event()

        # audio stream
        try:
            self.stream = sd.OutputStream(
                channels=self.channels,
                samplerate=self.sr,
                blocksize=self.blocksize,
                callback=self._cb,
                latency=latency,
                device=device,
                dtype='float32',
            )
        except (sd.PortAudioError, ValueError, OSError) as e:
            raise AudioBackendError(f"cannot open output stream: {e}") from e

    ###########################################################################
    ##                              LIFECYCLE                                ##
    ###########################################################################
    def start(self):
        self._stop_evt.clear()
        try:
            self.stream.start()
        except sd.PortAudioError as e:
            raise AudioBackendError(f"cannot start output stream: {e}") from e

        # meter thread (non-daemon: we join it)
        self._meter_thread = threading.Thread(target=self._meter_logger, name="AudioMeterThread")
        self._meter_thread.start()
        logger.info("[Engine] started: %d Hz, block %d, %d ch", self.sr, self.blocksize, self.channels)

    def stop(self):
        # tell threads to stop
        self._stop_evt.set()

        # abort() is immediate; stop() drains. Errors here mean the stream is already gone.
        for action in (self.stream.abort, self.stream.stop, self.stream.close):
            try:
                action()
            except sd.PortAudioError as e:
                logger.debug("[Engine] %s: %s", action.__name__, e)

        # join meter
        if self._meter_thread:
            self._meter_thread.join(timeout=2.0)
            if self._meter_thread.is_alive():
                logger.warning("[Engine] meter thread still alive after join()")
            self._meter_thread = None
        logger.info("[Engine] stopped")

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *exc):
        self.stop()

    ###########################################################################
    ##                           AUDIO CALL BACK                             ##
    ###########################################################################

    def _cb(self, outdata, frames, time_info, status):
        # shutting down: silence, no rendering
        if self._stop_evt.is_set():
            outdata.fill(0)
            return

        block = self.source.render(frames)
        self.meter.update(self.source.stats, rms(block), frames, xrun=bool(status))

        # write to device
        outdata[:, 0] = block
        if outdata.shape[1] > 1:
            outdata[:, 1] = block

    ###########################################################################
    ##                           METERING THREAD                             ##
    ###########################################################################
    def _meter_logger(self):
        period = self._meter_period

        while True:
            if self._stop_evt.wait(timeout=period):
                break

            r = self.meter.read()
            lim = " LIM" if r.limited_blocks else ""
            logger.info("[Audio] peak(pre/post): %+6.1f dBFS / %+6.1f dBFS | rms: %+6.1f dBFS | "
                        "voices:%3d | frames:%6d | xruns:%2d | blocks_limited:%2d%s%s",
                        r.pre_peak_db, r.post_peak_db, r.rms_db, r.max_voices,
                        r.frames, r.xruns, r.limited_blocks, self._bar(r.post_peak_db), lim)

    @staticmethod
    def _bar(db, floor=-60.0, ceil=0.0, width=20):
        db = max(floor, min(ceil, db))
        fill = int((db - floor) / (ceil - floor) * width + 0.5)
        return " [" + ("#" * fill).ljust(width, ".") + "]"
