import logging
import threading

import mido

from control.synthesizer import Synthesizer
from effects.lowpass import CUTOFF_STEPS
from instruments.notes import Note

logger = logging.getLogger(__name__)

# sustain pedal is not modelled; CC 1 steps the filter cutoff instead
CC_CUTOFF = 1


def dispatch_message(synth: Synthesizer, msg: mido.Message) -> bool:
    """Forward one MIDI message to the synth. Returns True if it was used."""
    if msg.type in ('note_on', 'note_off'):
        note = Note.from_midi(msg.note)
        if note is None:
            logger.debug("[MIDI] note %d outside the keyboard range", msg.note)
            return False
        if msg.type == 'note_on' and msg.velocity > 0:
            synth.note_on(note)
        else:
            synth.note_off(note)
        return True
    if msg.type == 'control_change' and msg.control == CC_CUTOFF:
        target = round(msg.value / 127 * CUTOFF_STEPS)
        synth.adjust_filter_cutoff(target - synth.params.cutoff_step)
        return True
    return False


def start_midi_listener(synth: Synthesizer, port_name_substr="Roland"):
    def run():
        names = mido.get_input_names()
        inp = next((n for n in names if port_name_substr in n or "MIDI" in n), None)
        if not inp and names:
            inp = names[0]
        if not inp:
            logger.warning("[MIDI] No MIDI inputs found.")
            return
        logger.info("[MIDI] in: %s", inp)

        with mido.open_input(inp) as port:
            for msg in port:
                dispatch_message(synth, msg)

    th = threading.Thread(target=run, name="MidiListener", daemon=True)
    th.start()
    return th
