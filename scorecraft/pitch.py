"""Pitch names, MIDI note numbers and frequencies.

Pitches are written as a letter, an optional accidental and a signed octave
(``"C4"``, ``"F#3"``, ``"Bb-1"``). Middle C (``"C4"``) is MIDI note 60 and
``"A4"`` is tuned to 440 Hz.

Module-level constants:
- `NOTE_NAME_TO_PC`: Maps note names (e.g., `"C"`, `"F#"`, `"Bb"`) to pitch classes (0-11)
- `PC_TO_NOTE_NAME`: Maps pitch classes to sharp note names
- `PC_TO_NOTE_NAME_FLAT`: Maps pitch classes to flat note names
"""

import math
import re
import typing


NOTE_NAME_TO_PC: typing.Dict[str, int] = {
	"C": 0,
	"C#": 1,
	"Db": 1,
	"D": 2,
	"D#": 3,
	"Eb": 3,
	"E": 4,
	"Fb": 4,
	"E#": 5,
	"F": 5,
	"F#": 6,
	"Gb": 6,
	"G": 7,
	"G#": 8,
	"Ab": 8,
	"A": 9,
	"A#": 10,
	"Bb": 10,
	"B": 11,
	"Cb": 11,
	"B#": 0,
}

LETTER_TO_PC: typing.Dict[str, int] = {
	"C": 0,
	"D": 2,
	"E": 4,
	"F": 5,
	"G": 7,
	"A": 9,
	"B": 11,
}

PC_TO_NOTE_NAME: typing.List[str] = [
	"C",
	"C#",
	"D",
	"D#",
	"E",
	"F",
	"F#",
	"G",
	"G#",
	"A",
	"A#",
	"B",
]

PC_TO_NOTE_NAME_FLAT: typing.List[str] = [
	"C",
	"Db",
	"D",
	"Eb",
	"E",
	"F",
	"Gb",
	"G",
	"Ab",
	"A",
	"Bb",
	"B",
]

SEMITONES_PER_OCTAVE = 12
A4_MIDI = 69
A4_FREQUENCY = 440.0

_PITCH_RE = re.compile(r"^([A-G])([#b]?)(-?\d+)$")


def key_name_to_pc (key_name: str) -> int:

	"""Validate a key name and return its pitch class (0–11).

	Parameters:
		key_name: Note name (e.g. ``"C"``, ``"F#"``, ``"Bb"``).

	Returns:
		Pitch class integer (0–11).

	Raises:
		ValueError: If the key name is not recognised.

	Example:
		```python
		key_name_to_pc("C")   # → 0
		key_name_to_pc("F#")  # → 6
		key_name_to_pc("Bb")  # → 10
		```
	"""

	if key_name not in NOTE_NAME_TO_PC:
		raise ValueError(
			f"Unknown key name: {key_name!r}. Expected e.g. 'C', 'F#', 'Bb'."
		)

	return NOTE_NAME_TO_PC[key_name]


def parse_pitch (pitch: str) -> typing.Optional[typing.Tuple[str, str, int]]:

	"""
	Split a pitch string into ``(letter, accidental, octave)``, or ``None`` if malformed.
	"""

	match = _PITCH_RE.match(pitch)

	if match is None:
		return None

	return match.group(1), match.group(2), int(match.group(3))


def is_valid_pitch (pitch: str) -> bool:

	"""
	Return True if ``pitch`` looks like ``"C4"``, ``"F#3"`` or ``"Bb-1"``.
	"""

	return _PITCH_RE.match(pitch) is not None


def pitch_to_midi (pitch: str) -> int:

	"""Convert a pitch string to a MIDI note number.

	Parameters:
		pitch: Pitch string (e.g., ``"C4"``, ``"F#3"``, ``"Bb2"``).

	Returns:
		MIDI note number, where ``"C4"`` is 60.

	Raises:
		ValueError: If the pitch is not in letter/accidental/octave form.

	Example:
		```python
		pitch_to_midi("C4")   # → 60
		pitch_to_midi("A4")   # → 69
		pitch_to_midi("Db4")  # → 61
		```
	"""

	parts = parse_pitch(pitch)

	if parts is None:
		raise ValueError(f"Invalid pitch: {pitch!r}. Expected format like 'C4', 'F#3', 'Bb2'")

	letter, accidental, octave = parts
	value = LETTER_TO_PC[letter]

	if accidental == "#":
		value += 1
	elif accidental == "b":
		value -= 1

	return (octave + 1) * SEMITONES_PER_OCTAVE + value


def midi_to_pitch (midi: int) -> str:

	"""
	Convert a MIDI note number to a pitch string using sharps (61 → ``"C#4"``).
	"""

	octave = math.floor(midi / SEMITONES_PER_OCTAVE) - 1

	return f"{PC_TO_NOTE_NAME[midi % SEMITONES_PER_OCTAVE]}{octave}"


def midi_to_pitch_flat (midi: int) -> str:

	"""
	Convert a MIDI note number to a pitch string using flats (61 → ``"Db4"``).
	"""

	octave = math.floor(midi / SEMITONES_PER_OCTAVE) - 1

	return f"{PC_TO_NOTE_NAME_FLAT[midi % SEMITONES_PER_OCTAVE]}{octave}"


def transpose_pitch (pitch: str, semitones: int) -> str:

	"""Transpose a pitch string by a number of semitones.

	Drum tokens (``"drum:kick"``) and rests (``"r"``, ``"r:q"``) are returned
	unchanged so that callers can transpose whole event lists blindly.

	Example:
		```python
		transpose_pitch("C4", 7)     # → "G4"
		transpose_pitch("C4", -12)   # → "C3"
		transpose_pitch("drum:kick", 5)  # → "drum:kick"
		```
	"""

	if pitch.startswith("drum:") or pitch == "r" or pitch.startswith("r:"):
		return pitch

	return midi_to_pitch(pitch_to_midi(pitch) + semitones)


def midi_to_frequency (midi: float) -> float:

	"""
	Return the equal-tempered frequency in Hz of a (possibly fractional) MIDI note.
	"""

	return A4_FREQUENCY * 2.0 ** ((midi - A4_MIDI) / SEMITONES_PER_OCTAVE)


def frequency_to_midi (frequency: float) -> float:

	"""
	Return the fractional MIDI note number of a frequency in Hz.
	"""

	if frequency <= 0:
		raise ValueError("frequency must be positive")

	return A4_MIDI + SEMITONES_PER_OCTAVE * math.log2(frequency / A4_FREQUENCY)


def pitch_to_frequency (pitch: str) -> float:

	"""
	Return the frequency in Hz of a pitch string.
	"""

	return midi_to_frequency(pitch_to_midi(pitch))


def beats_to_seconds (beats: float, tempo: float) -> float:

	"""
	Convert a duration in beats to seconds at ``tempo`` BPM.
	"""

	if tempo <= 0:
		raise ValueError("tempo must be positive")

	return beats * 60.0 / tempo


def seconds_to_beats (seconds: float, tempo: float) -> float:

	"""
	Convert a duration in seconds to beats at ``tempo`` BPM.
	"""

	if tempo <= 0:
		raise ValueError("tempo must be positive")

	return seconds * tempo / 60.0
