import numpy as np
import pytest

try:
    import sounddevice as sd
except (ImportError, OSError):
    pytest.skip("sounddevice / PortAudio not available", allow_module_level=True)

from audio import engine as engine_mod
from audio.engine import AudioBackendError, AudioEngine
from audio.meter import AudioMeter
from audio.renderer import BlockStats
from control.synthesizer import Synthesizer

BLOCK = 256


class FakeStream:
    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.callback = kwargs["callback"]
        self.calls = []

    def start(self):
        self.calls.append("start")

    def abort(self):
        self.calls.append("abort")

    def stop(self):
        self.calls.append("stop")

    def close(self):
        self.calls.append("close")


class BrokenStream(FakeStream):
    def start(self):
        raise sd.PortAudioError("device unavailable")


@pytest.fixture
def fake_stream(monkeypatch):
    monkeypatch.setattr(engine_mod.sd, "OutputStream", FakeStream)


def test_open_failure_is_fatal(monkeypatch):
    def refuse(**kwargs):
        raise sd.PortAudioError("no default output device")

    monkeypatch.setattr(engine_mod.sd, "OutputStream", refuse)
    with pytest.raises(AudioBackendError):
        AudioEngine(Synthesizer())


def test_start_failure_is_fatal(monkeypatch):
    monkeypatch.setattr(engine_mod.sd, "OutputStream", BrokenStream)
    eng = AudioEngine(Synthesizer())
    with pytest.raises(AudioBackendError):
        eng.start()


def test_rejects_channel_counts(fake_stream):
    with pytest.raises(ValueError):
        AudioEngine(Synthesizer(), channels=3)


def test_stream_configuration(fake_stream):
    eng = AudioEngine(Synthesizer(), sr=48000, blocksize=128, channels=2)
    kw = eng.stream.kwargs
    assert kw["samplerate"] == 48000
    assert kw["blocksize"] == 128
    assert kw["channels"] == 2
    assert kw["dtype"] == "float32"


def test_callback_fills_both_channels(fake_stream):
    synth = Synthesizer()
    synth.set_waveform("square")
    synth.note_on("A")
    eng = AudioEngine(synth, channels=2)

    out = np.zeros((BLOCK, 2), dtype=np.float32)
    eng._cb(out, BLOCK, None, None)
    assert np.any(out[:, 0])
    assert np.array_equal(out[:, 0], out[:, 1])
    assert eng.meter.frames == BLOCK
    assert eng.meter.max_voices == 1


def test_callback_outputs_silence_when_stopping(fake_stream):
    synth = Synthesizer()
    synth.note_on("A")
    eng = AudioEngine(synth)
    eng._stop_evt.set()
    out = np.ones((BLOCK, 1), dtype=np.float32)
    eng._cb(out, BLOCK, None, None)
    assert not np.any(out)
    assert synth.now == 0


def test_start_and_stop(fake_stream):
    eng = AudioEngine(Synthesizer(), meter_period=0.01)
    with eng:
        assert eng._meter_thread.is_alive()
    assert eng._meter_thread is None
    assert eng.stream.calls == ["start", "abort", "stop", "close"]


def test_meter_window():
    m = AudioMeter()
    m.update(BlockStats(pre_peak=1.5, post_peak=0.9, limited=True, voices=3), 0.5, 256)
    m.update(BlockStats(pre_peak=0.2, post_peak=0.1, limited=False, voices=1), 0.5, 256, xrun=True)
    r = m.read()
    assert r.pre_peak == 1.5
    assert r.post_peak == 0.9
    assert r.rms == pytest.approx(0.5)
    assert r.post_peak_db == pytest.approx(20 * np.log10(0.9))
    assert r.limited_blocks == 1
    assert r.max_voices == 3
    assert r.xruns == 1
    assert r.frames == 512
    assert m.read().frames == 0


def test_bar():
    assert AudioEngine._bar(0.0) == " [" + "#" * 20 + "]"
    assert AudioEngine._bar(-100.0) == " [" + "." * 20 + "]"
