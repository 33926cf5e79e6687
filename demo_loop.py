import logging
import time

from audio.engine import AudioEngine
from control.synthesizer import Synthesizer

SR = 44100
BLOCK = 256

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    synth = Synthesizer(sr=SR)
    for _ in range(10):
        synth.adjust_adsr("attack", +1)
        synth.adjust_adsr("release", +1)
    synth.toggle_effect("delay")

    engine = AudioEngine(synth, sr=SR, blocksize=BLOCK, channels=1)
    engine.start()

    # play a one-bar arpeggio while recording it
    synth.start_recording()
    for pitch in ("C", "E", "G", "B"):
        synth.note_on(pitch, 4)
        time.sleep(0.3)
        synth.note_off(pitch, 4)
        time.sleep(0.2)
    synth.cycle_waveform()
    synth.stop_recording()

    synth.start_playback()
    print("Loop running. Ctrl+C to quit.")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        synth.stop_all()
        engine.stop()
