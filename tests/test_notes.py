import pytest

from instruments.notes import FREQUENCY_TABLE, OCTAVE_MAX, OCTAVE_MIN, Note, PitchClass, clamp_octave


def test_a4_is_440():
    assert Note.of("A", 4).frequency == pytest.approx(440.0)


def test_octave_doubles_frequency():
    for pc in PitchClass:
        lo = Note(pc, 2).frequency
        hi = Note(pc, 3).frequency
        assert hi == pytest.approx(2 * lo)


def test_frequency_table_shape_and_read_only():
    assert FREQUENCY_TABLE.shape == (OCTAVE_MAX - OCTAVE_MIN + 1, 12)
    with pytest.raises(ValueError):
        FREQUENCY_TABLE[0, 0] = 1.0


@pytest.mark.parametrize("name, expected", [
    ("C", PitchClass.C),
    ("c#", PitchClass.C_SHARP),
    ("Db", PitchClass.C_SHARP),
    ("A_SHARP", PitchClass.A_SHARP),
    ("Cb", PitchClass.B),
    (PitchClass.G, PitchClass.G),
])
def test_parse_pitch_class(name, expected):
    assert PitchClass.parse(name) is expected


@pytest.mark.parametrize("bad", ["H", "", "C##", "Cx"])
def test_parse_rejects_unknown_names(bad):
    with pytest.raises(ValueError):
        PitchClass.parse(bad)


def test_midi_numbers():
    assert Note.of("C", 4).midi == 60
    assert Note.from_midi(60) == Note(PitchClass.C, 4)
    assert Note.from_midi(69) == Note(PitchClass.A, 4)


def test_from_midi_out_of_range():
    assert Note.from_midi(11) is None       # octave -1
    assert Note.from_midi(96) is None       # C7
    assert Note.from_midi(95) == Note(PitchClass.B, 6)


def test_octave_bounds():
    assert clamp_octave(-3) == OCTAVE_MIN
    assert clamp_octave(12) == OCTAVE_MAX
    assert Note.of("E", 40).octave == OCTAVE_MAX
    with pytest.raises(ValueError):
        Note(PitchClass.C, OCTAVE_MAX + 1)


def test_str():
    assert str(Note.of("F#", 3)) == "F#3"
