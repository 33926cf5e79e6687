import logging
import time

from audio.engine import AudioEngine, AudioBackendError
from control.synthesizer import Synthesizer
from midi.input import start_midi_listener

SR = 44100
BLOCK = 256


def main():
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    synth = Synthesizer(sr=SR, max_voices=16)
    synth.set_waveform("sawtooth")
    synth.toggle_effect("reverb")

    try:
        engine = AudioEngine(synth, sr=SR, blocksize=BLOCK, channels=1, meter_period=1.0)
        engine.start()
    except AudioBackendError as e:
        logging.error("[Engine] %s", e)
        raise SystemExit(1)

    # MIDI input from Roland (or whatever is plugged in)
    start_midi_listener(synth, port_name_substr="Roland")

    print("Play your keyboard! (Ctrl+C to quit)")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        print("\nStopping…")
    finally:
        synth.stop_all()
        engine.stop()


if __name__ == "__main__":
    main()
