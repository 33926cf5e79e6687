import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Dict, List, Optional, Tuple

from instruments.notes import Note
from routing.messages import Event, NoteOff, NoteOn

logger = logging.getLogger(__name__)

SR = 44100
MAX_EVENTS = 100_000
MAX_SECONDS = 600.0
MIN_LOOP_SECONDS = 0.01


class RecorderState(Enum):
    IDLE = auto()
    RECORDING = auto()


class PlaybackState(Enum):
    IDLE = auto()
    PLAYING = auto()


class LooperCommand(Enum):
    START_RECORDING = auto()
    STOP_RECORDING = auto()
    START_PLAYBACK = auto()
    STOP_PLAYBACK = auto()


RECORDER_TRANSITIONS: Dict[Tuple[RecorderState, LooperCommand], RecorderState] = {
    (RecorderState.IDLE, LooperCommand.START_RECORDING): RecorderState.RECORDING,
    # restarting discards the take in progress
    (RecorderState.RECORDING, LooperCommand.START_RECORDING): RecorderState.RECORDING,
    (RecorderState.RECORDING, LooperCommand.STOP_RECORDING): RecorderState.IDLE,
}

PLAYBACK_TRANSITIONS: Dict[Tuple[PlaybackState, LooperCommand], PlaybackState] = {
    (PlaybackState.IDLE, LooperCommand.START_PLAYBACK): PlaybackState.PLAYING,
    # restarting rewinds to the top of the loop
    (PlaybackState.PLAYING, LooperCommand.START_PLAYBACK): PlaybackState.PLAYING,
    (PlaybackState.PLAYING, LooperCommand.STOP_PLAYBACK): PlaybackState.IDLE,
}


@dataclass(frozen=True)
class Recording:
    """A frozen take: events stamped in samples from the start of the take."""
    length: int
    events: Tuple[Tuple[int, Event], ...]
    sr: int = SR

    @property
    def seconds(self) -> float:
        return self.length / self.sr

    def __len__(self) -> int:
        return len(self.events)


class Looper:
    """
    Records control events and replays them in a seamless loop.

    Control-path methods (start/stop recording, record, start/stop playback)
    only ever append to the take in progress or swap a frozen Recording
    into `_handoff`. The render path calls `pull()` once per block and owns
    the playback cursor.
    """

    def __init__(self, sr: int = SR, max_events: int = MAX_EVENTS, max_seconds: float = MAX_SECONDS,
                 min_loop_seconds: float = MIN_LOOP_SECONDS):
        self.sr = int(sr)
        self.max_events = int(max_events)
        self.max_samples = int(max_seconds * self.sr)
        self.min_loop_samples = max(1, int(min_loop_seconds * self.sr))

        self.recorder_state = RecorderState.IDLE
        self.playback_state = PlaybackState.IDLE
        self.recording: Optional[Recording] = None

        # take in progress (control path)
        self._take: List[Tuple[int, Event]] = []
        self._rec_start = 0
        self._capped = False

        # (generation, recording) published to the render path
        self._handoff: Tuple[int, Optional[Recording]] = (0, None)

        # render-path state
        self._gen_seen = 0
        self._playing: Optional[Recording] = None
        self._cursor = 0
        self._next = 0
        self._held: Dict[Note, None] = {}
        self._out: List[Tuple[int, Event]] = []

    @property
    def is_recording(self) -> bool:
        return self.recorder_state == RecorderState.RECORDING

    @property
    def is_playing(self) -> bool:
        return self.playback_state == PlaybackState.PLAYING

    @property
    def position(self) -> int:
        """Playback cursor in samples within the loop."""
        return self._cursor

    def _move_recorder(self, cmd: LooperCommand) -> bool:
        nxt = RECORDER_TRANSITIONS.get((self.recorder_state, cmd))
        if nxt is None:
            return False
        self.recorder_state = nxt
        return True

    def _move_playback(self, cmd: LooperCommand) -> bool:
        nxt = PLAYBACK_TRANSITIONS.get((self.playback_state, cmd))
        if nxt is None:
            return False
        self.playback_state = nxt
        return True

    ###########################################################################
    ##                           RECORDING (control)                         ##
    ###########################################################################

    def start_recording(self, now: int) -> None:
        self._move_recorder(LooperCommand.START_RECORDING)
        self._take = []
        self._rec_start = int(now)
        self._capped = False
        logger.info("[Looper] recording started")

    def record(self, event: Event, now: int) -> bool:
        if not self.is_recording:
            return False
        t = int(now) - self._rec_start
        if len(self._take) >= self.max_events or t > self.max_samples:
            if not self._capped:
                self._capped = True
                logger.warning("[Looper] recording capped at %d events / %.0f s",
                               len(self._take), self.max_samples / self.sr)
            return False
        self._take.append((max(0, t), event))
        return True

    def stop_recording(self, now: int) -> Optional[Recording]:
        if not self._move_recorder(LooperCommand.STOP_RECORDING):
            return None
        length = max(1, min(int(now) - self._rec_start, self.max_samples))
        events = sorted(((min(t, length - 1), e) for t, e in self._take), key=lambda te: te[0])
        self.recording = Recording(length=length, events=tuple(events), sr=self.sr)
        self._take = []
        logger.info("[Looper] recorded %d events over %.2f s", len(self.recording), self.recording.seconds)
        return self.recording

    ###########################################################################
    ##                           PLAYBACK (control)                          ##
    ###########################################################################

    def start_playback(self) -> bool:
        if self.recording is None or not self.recording.events:
            logger.info("[Looper] nothing to play")
            return False
        if self.recording.length < self.min_loop_samples:
            # e.g. stopped before the render clock moved
            logger.info("[Looper] take too short to loop (%d samples)", self.recording.length)
            return False
        self._move_playback(LooperCommand.START_PLAYBACK)
        self._handoff = (self._handoff[0] + 1, self.recording)
        return True

    def stop_playback(self) -> None:
        if self._move_playback(LooperCommand.STOP_PLAYBACK):
            self._handoff = (self._handoff[0] + 1, None)

    ###########################################################################
    ##                              RENDER SIDE                              ##
    ###########################################################################

    def _release_held(self, offset: int, out: List[Tuple[int, Event]]) -> None:
        for note in self._held:
            out.append((offset, NoteOff(note)))
        self._held.clear()

    def _track(self, event: Event) -> None:
        if isinstance(event, NoteOn):
            self._held[event.note] = None
        elif isinstance(event, NoteOff):
            self._held.pop(event.note, None)

    def pull(self, frames: int) -> List[Tuple[int, Event]]:
        """
        Events due in the next `frames` samples as (offset, event), offsets in
        [0, frames]. At the loop end every note still held by the replay is
        released before the cursor wraps. The returned list is reused by the
        next call.
        """
        out = self._out
        out.clear()

        gen, rec = self._handoff
        if gen != self._gen_seen:
            self._gen_seen = gen
            self._release_held(0, out)
            self._playing = rec
            self._cursor = 0
            self._next = 0

        rec = self._playing
        if rec is None:
            return out

        events = rec.events
        n_events = len(events)
        length = rec.length
        pos = 0
        while pos < frames:
            span = min(frames - pos, length - self._cursor)
            end = self._cursor + span
            while self._next < n_events and events[self._next][0] < end:
                t, ev = events[self._next]
                out.append((pos + t - self._cursor, ev))
                self._track(ev)
                self._next += 1
            pos += span
            self._cursor = end
            if self._cursor >= length:
                self._release_held(pos, out)
                self._cursor = 0
                self._next = 0
        return out
