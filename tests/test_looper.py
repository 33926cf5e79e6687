from dataclasses import FrozenInstanceError

import pytest

from instruments.envelopes.adsr import ADSRField
from instruments.notes import Note
from routing.messages import NoteOff, NoteOn, ParamChange
from sequencing.looper import Looper, Recording

SR = 44100
BLOCK = 256

C4 = Note.of("C", 4)
E4 = Note.of("E", 4)


def play(looper, total, block=BLOCK):
    """Pull `total` samples and return (absolute time, event) pairs."""
    seen = []
    for start in range(0, total, block):
        for offset, ev in looper.pull(min(block, total - start)):
            seen.append((start + offset, ev))
    return seen


def times(seen, kind):
    return [t for t, ev in seen if isinstance(ev, kind)]


def test_records_relative_timestamps():
    lp = Looper(SR)
    lp.start_recording(1000)
    assert lp.is_recording
    lp.record(NoteOn(C4), 1000 + 4410)
    lp.record(NoteOff(C4), 1000 + 17640)
    rec = lp.stop_recording(1000 + 44100)
    assert not lp.is_recording
    assert rec.length == 44100
    assert rec.events == ((4410, NoteOn(C4)), (17640, NoteOff(C4)))
    assert rec.seconds == 1.0
    assert len(rec) == 2


def test_record_ignored_when_not_recording():
    lp = Looper(SR)
    assert lp.record(NoteOn(C4), 10) is False
    assert lp.stop_recording(20) is None


def test_loops_three_times_sample_accurate():
    lp = Looper(SR)
    lp.start_recording(0)
    lp.record(NoteOn(C4), 4410)
    lp.record(NoteOff(C4), 17640)
    lp.stop_recording(44100)
    assert lp.start_playback()
    assert lp.is_playing

    seen = play(lp, 3 * 44100)
    assert times(seen, NoteOn) == [4410, 48510, 92610]
    assert times(seen, NoteOff) == [17640, 61740, 105840]


def test_held_note_released_at_loop_end():
    lp = Looper(SR)
    lp.start_recording(0)
    lp.record(NoteOn(E4), 100)
    lp.stop_recording(1000)
    lp.start_playback()

    seen = play(lp, 2000)
    assert times(seen, NoteOn) == [100, 1100]
    assert times(seen, NoteOff) == [1000, 2000]


def test_replays_control_changes():
    lp = Looper(SR)
    lp.start_recording(0)
    lp.record(ParamChange(ADSRField.ATTACK, 40), 300)
    lp.stop_recording(600)
    lp.start_playback()
    seen = play(lp, 600)
    assert seen == [(300, ParamChange(ADSRField.ATTACK, 40))]


def test_playback_needs_a_non_empty_recording():
    lp = Looper(SR)
    assert lp.start_playback() is False
    lp.start_recording(0)
    lp.stop_recording(5000)
    assert lp.start_playback() is False
    assert not lp.is_playing
    assert lp.pull(BLOCK) == []


def test_take_shorter_than_min_loop_does_not_play():
    lp = Looper(SR)
    assert lp.min_loop_samples == 441
    lp.start_recording(2560)
    lp.record(NoteOn(C4), 2560)
    rec = lp.stop_recording(2560)
    assert rec.length == 1
    assert rec.events == ((0, NoteOn(C4)),)
    assert lp.start_playback() is False
    assert not lp.is_playing
    assert lp.pull(BLOCK) == []


def test_take_at_min_loop_length_plays():
    lp = Looper(SR, min_loop_seconds=0.0)
    lp.start_recording(0)
    lp.record(NoteOn(C4), 0)
    lp.stop_recording(4)
    assert lp.start_playback()
    assert times(play(lp, 8, block=8), NoteOn) == [0, 4]


def test_stop_playback_releases_held_notes():
    lp = Looper(SR)
    lp.start_recording(0)
    lp.record(NoteOn(C4), 0)
    lp.stop_recording(10000)
    lp.start_playback()

    assert lp.pull(BLOCK) == [(0, NoteOn(C4))]
    lp.stop_playback()
    assert not lp.is_playing
    assert lp.pull(BLOCK) == [(0, NoteOff(C4))]
    assert lp.pull(BLOCK) == []


def test_restart_rewinds():
    lp = Looper(SR)
    lp.start_recording(0)
    lp.record(NoteOn(C4), 10)
    lp.record(NoteOff(C4), 20)
    lp.stop_recording(5000)
    lp.start_playback()
    lp.pull(BLOCK)
    lp.pull(BLOCK)
    assert lp.position == 2 * BLOCK

    lp.start_playback()
    assert lp.pull(BLOCK) == [(10, NoteOn(C4)), (20, NoteOff(C4))]
    assert lp.position == BLOCK


def test_recording_is_capped():
    lp = Looper(SR, max_events=3)
    lp.start_recording(0)
    accepted = [lp.record(NoteOn(C4), t) for t in range(5)]
    assert accepted == [True, True, True, False, False]
    rec = lp.stop_recording(100)
    assert len(rec) == 3


def test_recording_length_is_capped():
    lp = Looper(SR, max_seconds=1.0)
    lp.start_recording(0)
    assert lp.record(NoteOn(C4), SR + 1) is False
    rec = lp.stop_recording(SR * 5)
    assert rec.length == SR


def test_new_take_replaces_old_one():
    lp = Looper(SR)
    lp.start_recording(0)
    lp.record(NoteOn(C4), 5)
    first = lp.stop_recording(100)
    lp.start_recording(200)
    lp.record(NoteOn(E4), 210)
    second = lp.stop_recording(300)
    assert lp.recording is second
    assert second.events == ((10, NoteOn(E4)),)
    assert first.events == ((5, NoteOn(C4)),)


def test_recording_dataclass_is_frozen():
    rec = Recording(length=10, events=())
    with pytest.raises(FrozenInstanceError):
        rec.length = 20
