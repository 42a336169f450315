import dataclasses
import re
import types
import typing

import scorecraft.pitch


SCALE_INTERVALS: typing.Mapping[str, typing.Tuple[int, ...]] = types.MappingProxyType({
	# Diatonic modes
	"major": (0, 2, 4, 5, 7, 9, 11),
	"ionian": (0, 2, 4, 5, 7, 9, 11),
	"dorian": (0, 2, 3, 5, 7, 9, 10),
	"phrygian": (0, 1, 3, 5, 7, 8, 10),
	"lydian": (0, 2, 4, 6, 7, 9, 11),
	"mixolydian": (0, 2, 4, 5, 7, 9, 10),
	"minor": (0, 2, 3, 5, 7, 8, 10),
	"aeolian": (0, 2, 3, 5, 7, 8, 10),
	"locrian": (0, 1, 3, 5, 6, 8, 10),
	"harmonic_minor": (0, 2, 3, 5, 7, 8, 11),
	"melodic_minor": (0, 2, 3, 5, 7, 9, 11),
	# Pentatonic and blues
	"pentatonic_major": (0, 2, 4, 7, 9),
	"pentatonic_minor": (0, 3, 5, 7, 10),
	"blues": (0, 3, 5, 6, 7, 10),
	"blues_major": (0, 2, 3, 4, 7, 9),
	# Symmetric
	"whole_tone": (0, 2, 4, 6, 8, 10),
	"diminished": (0, 2, 3, 5, 6, 8, 9, 11),
	"diminished_half_whole": (0, 1, 3, 4, 6, 7, 9, 10),
	"chromatic": (0, 1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11),
	# Jazz
	"bebop_dominant": (0, 2, 4, 5, 7, 9, 10, 11),
	"bebop_major": (0, 2, 4, 5, 7, 8, 9, 11),
	"altered": (0, 1, 3, 4, 6, 8, 10),
})

SCALE_ALIASES: typing.Mapping[str, str] = types.MappingProxyType({
	"maj": "major",
	"min": "minor",
	"m": "minor",
	"nat_minor": "minor",
	"natural_minor": "minor",
	"harm_minor": "harmonic_minor",
	"mel_minor": "melodic_minor",
	"pent": "pentatonic_major",
	"pent_major": "pentatonic_major",
	"pent_minor": "pentatonic_minor",
})

# Modes usable as a key: every one has seven degrees, so scale-degree
# arithmetic (degree 9 = degree 2 an octave up) holds.
KEY_MODES: typing.FrozenSet[str] = frozenset({
	"major", "ionian", "dorian", "phrygian", "lydian", "mixolydian",
	"minor", "aeolian", "locrian", "harmonic_minor", "melodic_minor",
})

_KEY_RE = re.compile(r"^\s*([A-Ga-g])([#b]?)\s*(.*?)\s*$")


@dataclasses.dataclass(frozen=True)
class Key:

	"""
	A tonal centre: a root note name and a seven-degree mode.
	"""

	root: str
	mode: str = "major"


	@property
	def root_pc (self) -> int:

		"""
		Pitch class (0–11) of the root.
		"""

		return scorecraft.pitch.key_name_to_pc(self.root)


	def intervals (self) -> typing.Tuple[int, ...]:

		"""
		Semitone offsets of the mode's seven degrees.
		"""

		return SCALE_INTERVALS[self.mode]


	def pitch_classes (self) -> typing.List[int]:

		"""
		Pitch classes belonging to this key.
		"""

		return scale_pitch_classes(self.root_pc, self.mode)


	def __str__ (self) -> str:

		return f"{self.root} {self.mode}"


def normalize_scale_name (name: str) -> str:

	"""
	Lower-case a scale name, join words with underscores and resolve aliases.
	"""

	normalized = re.sub(r"[\s-]+", "_", name.strip().lower())

	return SCALE_ALIASES.get(normalized, normalized)


def get_scale_intervals (name: str) -> typing.List[int]:

	"""
	Return a named scale's intervals as a new list.

	Raises:
		ValueError: If the scale is unknown.
	"""

	normalized = normalize_scale_name(name)

	if normalized not in SCALE_INTERVALS:
		raise ValueError(f"Unknown scale: {name!r}. Available: {sorted(SCALE_INTERVALS)}")

	return list(SCALE_INTERVALS[normalized])


def parse_key (text: str) -> Key:

	"""Parse a free-text key such as ``"C major"``, ``"Am"`` or ``"Bb dorian"``.

	The root may carry a ``#`` or ``b``. The mode is optional and defaults to
	major. ``"M"`` and ``"maj"`` mean major, ``"m"`` and ``"min"`` mean minor;
	any of the seven-degree modes in ``KEY_MODES`` may be spelled out.

	Raises:
		ValueError: If the root or the mode is not recognised.

	Example:
		```python
		parse_key("C major")    # → Key(root="C", mode="major")
		parse_key("F#m")        # → Key(root="F#", mode="minor")
		parse_key("Bb Dorian")  # → Key(root="Bb", mode="dorian")
		```
	"""

	match = _KEY_RE.match(text)

	if match is None:
		raise ValueError(f"Invalid key: {text!r}. Expected e.g. 'C major', 'Am', 'Bb dorian'")

	letter, accidental, mode_text = match.groups()
	root = letter.upper() + accidental

	# "M" is the only case-sensitive spelling: upper-case means major.
	if mode_text == "M" or mode_text == "":
		mode = "major"
	else:
		mode = normalize_scale_name(mode_text)

	if mode not in KEY_MODES:
		raise ValueError(f"Unknown mode {mode_text!r} in key {text!r}. Available: {sorted(KEY_MODES)}")

	scorecraft.pitch.key_name_to_pc(root)

	return Key(root=root, mode=mode)


def scale_pitch_classes (key_pc: int, mode: str = "major") -> typing.List[int]:

	"""
	Return the pitch classes (0–11) that belong to a key and mode.

	Parameters:
		key_pc: Root pitch class (0 = C, 1 = C#/Db, …, 11 = B).
		mode: Any scale name accepted by :func:`get_scale_intervals`.

	Example:
		```python
		scale_pitch_classes(0, "major")  # → [0, 2, 4, 5, 7, 9, 11]
		scale_pitch_classes(9, "minor")  # → [9, 11, 0, 2, 4, 5, 7]
		```
	"""

	return [(key_pc + i) % 12 for i in get_scale_intervals(mode)]


def is_in_scale (midi: int, key_pc: int, mode: str = "major") -> bool:

	"""
	Return True if a MIDI note's pitch class belongs to the key.
	"""

	return midi % 12 in scale_pitch_classes(key_pc, mode)


def quantize_pitch (pitch: int, scale_pcs: typing.Sequence[int], max_offset: int = 6) -> int:

	"""
	Snap a MIDI pitch to the nearest note in the given scale.

	Searches outward in semitone steps from the input pitch, trying the upper
	neighbour before the lower one at each distance.  If no scale tone lies
	within ``max_offset`` semitones the pitch is returned unchanged.

	Parameters:
		pitch: MIDI note number to quantize.
		scale_pcs: Pitch classes accepted by the scale (0–11). Typically
		           the output of :func:`scale_pitch_classes`.
		max_offset: Widest search distance in semitones.

	Example:
		```python
		scale = scale_pitch_classes(0, "major")
		quantize_pitch(61, scale)  # → 62  (C# snaps up to D)
		```
	"""

	pc = pitch % 12

	if pc in scale_pcs:
		return pitch

	for offset in range(1, max_offset + 1):
		if (pc + offset) % 12 in scale_pcs:
			return pitch + offset
		if (pc - offset) % 12 in scale_pcs:
			return pitch - offset

	return pitch


def degree_to_midi (degree: int, key: Key, octave: int, accidental: str = "") -> int:

	"""Resolve a 1-based scale degree to a MIDI note.

	Degrees above 7 are compound: degree 9 is degree 2 one octave higher,
	degree 15 is the root two octaves up. ``accidental`` (``"#"`` or ``"b"``)
	raises or lowers the result by a semitone.

	Example:
		```python
		degree_to_midi(1, Key("C", "major"), 4)        # → 60
		degree_to_midi(3, Key("A", "minor"), 4)        # → 72 (C5)
		degree_to_midi(3, Key("C", "major"), 4, "b")   # → 63 (Eb4)
		```
	"""

	if degree < 1:
		raise ValueError(f"Scale degree must be >= 1, got {degree}")

	intervals = key.intervals()
	octave_add = (degree - 1) // 7
	interval = intervals[(degree - 1) % 7]

	if accidental == "#":
		interval += 1
	elif accidental == "b":
		interval -= 1

	root_midi = scorecraft.pitch.pitch_to_midi(f"{key.root}{octave}")

	return root_midi + interval + octave_add * scorecraft.pitch.SEMITONES_PER_OCTAVE
