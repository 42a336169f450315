"""Chord symbols, qualities and voicings.

This module turns chord symbols such as ``"Cmaj7"``, ``"F#m7b5"``, ``"Bb/D"``
or ``"Am9@drop2"`` into concrete pitches.

Module-level constants:
- `CHORD_INTERVALS`: Maps chord quality suffixes to intervals (semitones from root)
- `CHORD_VOICINGS`: Alternative interval layouts per quality (``close``, ``drop2``, ``drop3``,
  ``shell``, ``open``, ``rootless_a``)
- `CHORD_SCALE_MAP`: Maps a chord quality to the mode that fits over it
- `DEGREE_TO_SEMITONE`: Chord-tone degrees that alteration suffixes (``b5``, ``#9``) refer to

All tables are read-only mappings built once at import time.

Qualities that are not in the table but end in alterations are decomposed: the
alterations are stripped to find a base quality (major when unknown) and each
``b``/``#`` degree lowers or raises the matching chord tone, or adds it when
the chord does not contain that degree.
"""

import dataclasses
import logging
import re
import types
import typing

import scorecraft.intervals
import scorecraft.pitch


logger = logging.getLogger(__name__)


DEFAULT_CHORD_OCTAVE = 3

CHORD_INTERVALS: typing.Mapping[str, typing.Tuple[int, ...]] = types.MappingProxyType({
	# Triads
	"": (0, 4, 7),
	"maj": (0, 4, 7),
	"M": (0, 4, 7),
	"m": (0, 3, 7),
	"min": (0, 3, 7),
	"dim": (0, 3, 6),
	"aug": (0, 4, 8),
	"sus2": (0, 2, 7),
	"sus4": (0, 5, 7),
	"sus": (0, 5, 7),
	# Sevenths
	"7": (0, 4, 7, 10),
	"maj7": (0, 4, 7, 11),
	"M7": (0, 4, 7, 11),
	"m7": (0, 3, 7, 10),
	"min7": (0, 3, 7, 10),
	"dim7": (0, 3, 6, 9),
	"m7b5": (0, 3, 6, 10),
	"aug7": (0, 4, 8, 10),
	# Extended
	"9": (0, 4, 7, 10, 14),
	"maj9": (0, 4, 7, 11, 14),
	"m9": (0, 3, 7, 10, 14),
	"11": (0, 4, 7, 10, 14, 17),
	"13": (0, 4, 7, 10, 14, 21),
	# Added tones and sixths
	"add9": (0, 4, 7, 14),
	"add11": (0, 4, 7, 17),
	"add13": (0, 4, 7, 21),
	"madd9": (0, 3, 7, 14),
	"madd11": (0, 3, 7, 17),
	"6": (0, 4, 7, 9),
	"m6": (0, 3, 7, 9),
	# Sevenths with added tones
	"7add11": (0, 4, 7, 10, 17),
	"7add13": (0, 4, 7, 10, 21),
	"maj7add11": (0, 4, 7, 11, 17),
	"maj7add13": (0, 4, 7, 11, 21),
	"m7add11": (0, 3, 7, 10, 17),
	"m7add13": (0, 3, 7, 10, 21),
	# Altered dominants
	"7alt": (0, 4, 6, 10, 13),
	"7b5": (0, 4, 6, 10),
	"7#5": (0, 4, 8, 10),
	"7b9": (0, 4, 7, 10, 13),
	"7#9": (0, 4, 7, 10, 15),
})

CHORD_VOICINGS: typing.Mapping[str, typing.Mapping[str, typing.Tuple[int, ...]]] = types.MappingProxyType({
	"maj7": types.MappingProxyType({
		"close": (0, 4, 7, 11),
		"drop2": (0, 7, 11, 16),
		"drop3": (0, 11, 16, 19),
		"shell": (0, 11, 16),
		"open": (-12, 0, 7, 16),
	}),
	"m7": types.MappingProxyType({
		"close": (0, 3, 7, 10),
		"drop2": (0, 7, 10, 15),
		"shell": (0, 10, 15),
		"open": (-12, 0, 7, 15),
		"rootless_a": (3, 7, 10, 14),
	}),
	"7": types.MappingProxyType({
		"close": (0, 4, 7, 10),
		"drop2": (0, 7, 10, 16),
		"shell": (0, 10, 16),
		"open": (-12, 0, 7, 16),
	}),
	"m9": types.MappingProxyType({
		"close": (0, 3, 7, 10, 14),
		"drop2": (0, 7, 10, 14, 15),
		"shell": (0, 10, 14, 15),
		"open": (-12, 0, 10, 14, 15),
	}),
	"maj9": types.MappingProxyType({
		"close": (0, 4, 7, 11, 14),
		"drop2": (0, 7, 11, 14, 16),
		"shell": (0, 11, 14, 16),
		"open": (-12, 0, 11, 14, 16),
	}),
	"9": types.MappingProxyType({
		"close": (0, 4, 7, 10, 14),
		"drop2": (0, 7, 10, 14, 16),
		"shell": (0, 10, 14, 16),
		"open": (-12, 0, 10, 14, 16),
	}),
	"m": types.MappingProxyType({
		"close": (0, 3, 7),
		"open": (-12, 0, 7, 15),
	}),
	"maj": types.MappingProxyType({
		"close": (0, 4, 7),
		"open": (-12, 0, 7, 16),
	}),
	"": types.MappingProxyType({
		"close": (0, 4, 7),
		"open": (-12, 0, 7, 16),
	}),
})

CHORD_SCALE_MAP: typing.Mapping[str, str] = types.MappingProxyType({
	# Major family
	"maj": "major",
	"maj7": "major",
	"maj9": "major",
	"maj6": "major",
	"6": "major",
	"6/9": "major",
	"add9": "major",
	"sus2": "major",
	"sus4": "major",
	"aug": "major",
	"+": "major",
	# Minor family
	"m": "minor",
	"min": "minor",
	"m7": "dorian",
	"min7": "dorian",
	"m9": "dorian",
	"m6": "dorian",
	"m11": "dorian",
	# Dominant family
	"7": "mixolydian",
	"dom7": "mixolydian",
	"9": "mixolydian",
	"11": "mixolydian",
	"13": "mixolydian",
	"7sus4": "mixolydian",
	"7#9": "mixolydian",
	"7b9": "phrygian",
	# Half-diminished and diminished
	"m7b5": "locrian",
	"half-dim": "locrian",
	"dim": "locrian",
	"dim7": "locrian",
})

DEGREE_TO_SEMITONE: typing.Mapping[int, int] = types.MappingProxyType({
	5: 7,
	9: 14,
	11: 17,
	13: 21,
})

QUALITY_PATTERN = r"(?:maj|min|m|M|dim|aug|sus[24]?)?(?:\d+)?(?:add\d+)?(?:alt)?(?:b\d+|#\d+)*"

_SYMBOL_RE = re.compile(r"^([A-G][#b]?)(" + QUALITY_PATTERN + r")(?:@(\w+))?(?:/([A-G][#b]?))?$")
_ALTERATION_RE = re.compile(r"([b#])(\d+)")


def chord_intervals (quality: str) -> typing.List[int]:

	"""Return the intervals (semitones from the root) of a chord quality.

	Known qualities are looked up directly. Otherwise every ``b``/``#`` degree
	suffix is stripped to find the base quality (major if unknown), and each
	alteration moves the matching chord tone by a semitone, or adds it when
	the chord lacks that degree. Degrees other than 5, 9, 11 and 13 are
	ignored. The result is sorted.

	Example:
		```python
		chord_intervals("m7")     # → [0, 3, 7, 10]
		chord_intervals("9#11")   # → [0, 4, 7, 10, 14, 18]
		chord_intervals("7#5b9")  # → [0, 4, 8, 10, 13]
		```
	"""

	if quality in CHORD_INTERVALS:
		return list(CHORD_INTERVALS[quality])

	base_quality = quality
	alterations: typing.List[typing.Tuple[int, int]] = []

	for match in _ALTERATION_RE.finditer(quality):
		base_quality = base_quality.replace(match.group(0), "", 1)
		delta = 1 if match.group(1) == "#" else -1
		alterations.append((int(match.group(2)), delta))

	result = list(CHORD_INTERVALS.get(base_quality, CHORD_INTERVALS[""]))

	for degree, delta in alterations:

		semitone = DEGREE_TO_SEMITONE.get(degree)

		if semitone is None:
			continue

		if semitone in result:
			result[result.index(semitone)] += delta
		else:
			result.append(semitone + delta)

	return sorted(result)


def voicing_intervals (quality: str, voicing: str) -> typing.Optional[typing.List[int]]:

	"""
	Return the intervals of a named voicing, or ``None`` if the quality has no such voicing.
	"""

	layouts = CHORD_VOICINGS.get(quality)

	if layouts is None or voicing not in layouts:
		return None

	return list(layouts[voicing])


@dataclasses.dataclass(frozen=True)
class Chord:

	"""
	A chord symbol: root name, quality suffix, optional slash bass and optional voicing.

	``quality`` is the suffix exactly as written, so a plain major triad has
	quality ``""``.
	"""

	root: str
	quality: str = ""
	bass: typing.Optional[str] = None
	voicing: typing.Optional[str] = None


	@classmethod
	def from_symbol (cls, symbol: str) -> "Chord":

		"""Parse a chord symbol without a duration.

		Raises:
			ValueError: If the symbol does not match ``{root}{quality}[@voicing][/bass]``.

		Example:
			```python
			Chord.from_symbol("Cmaj7")      # → Chord(root="C", quality="maj7")
			Chord.from_symbol("Bb/D")       # → Chord(root="Bb", quality="", bass="D")
			Chord.from_symbol("Am9@drop2")  # → Chord(root="A", quality="m9", voicing="drop2")
			```
		"""

		match = _SYMBOL_RE.match(symbol.strip())

		if match is None:
			raise ValueError(
				f"Invalid chord symbol: {symbol!r}. Expected e.g. 'Cmaj7', 'Dm', 'Bb/D', 'Am9@drop2'"
			)

		root, quality, voicing, bass = match.groups()

		return cls(root=root, quality=quality, bass=bass, voicing=voicing)


	def intervals (self) -> typing.List[int]:

		"""
		Return this chord's intervals, honouring the voicing when the quality defines it.
		"""

		if self.voicing:

			layout = voicing_intervals(self.quality, self.voicing)

			if layout is not None:
				return layout

			logger.warning(
				f"Voicing {self.voicing!r} not found for quality {self.quality or 'maj'!r}, using standard voicing"
			)

		return chord_intervals(self.quality)


	def midi_notes (self, octave: int = DEFAULT_CHORD_OCTAVE) -> typing.List[int]:

		"""Return the chord as MIDI note numbers with the root in ``octave``.

		A slash bass is prepended one octave lower. It is not deduplicated
		against the chord tones.

		Example:
			```python
			Chord.from_symbol("C").midi_notes()     # → [48, 52, 55]
			Chord.from_symbol("C/E").midi_notes()   # → [40, 48, 52, 55]
			```
		"""

		root_midi = scorecraft.pitch.pitch_to_midi(f"{self.root}{octave}")
		notes = [root_midi + interval for interval in self.intervals()]

		if self.bass:
			notes.insert(0, scorecraft.pitch.pitch_to_midi(f"{self.bass}{octave - 1}"))

		return notes


	def notes (self, octave: int = DEFAULT_CHORD_OCTAVE) -> typing.List[str]:

		"""
		Return the chord as pitch strings. Chord tones are spelled with sharps; the slash bass keeps its spelling.
		"""

		root_midi = scorecraft.pitch.pitch_to_midi(f"{self.root}{octave}")
		notes = [scorecraft.pitch.midi_to_pitch(root_midi + interval) for interval in self.intervals()]

		if self.bass:
			notes.insert(0, f"{self.bass}{octave - 1}")

		return notes


	def pitch_classes (self, octave: int = DEFAULT_CHORD_OCTAVE) -> typing.List[int]:

		"""
		Return the distinct pitch classes of the chord in sounding order (bass first).
		"""

		seen: typing.List[int] = []

		for midi in self.midi_notes(octave):
			if midi % 12 not in seen:
				seen.append(midi % 12)

		return seen


	def name (self) -> str:

		"""
		Return the chord symbol.
		"""

		text = f"{self.root}{self.quality}"

		if self.voicing:
			text += f"@{self.voicing}"

		if self.bass:
			text += f"/{self.bass}"

		return text


def get_chord_notes (symbol: str, octave: int = DEFAULT_CHORD_OCTAVE) -> typing.List[str]:

	"""
	Return the pitch strings of a chord symbol (e.g. ``"Am7"`` → ``["A3", "C4", "E4", "G4"]``).
	"""

	return Chord.from_symbol(symbol).notes(octave)


def chord_scale (symbol: str) -> scorecraft.intervals.Key:

	"""Return the key (root and mode) that fits over a chord symbol.

	The quality is looked up in `CHORD_SCALE_MAP`; anything not listed there
	(including a plain major triad) maps to major. Voicing and slash-bass
	suffixes are ignored.

	Raises:
		ValueError: If the symbol does not start with a note name.

	Example:
		```python
		chord_scale("Dm7")    # → Key(root="D", mode="dorian")
		chord_scale("G7")     # → Key(root="G", mode="mixolydian")
		chord_scale("Bm7b5")  # → Key(root="B", mode="locrian")
		```
	"""

	match = re.match(r"^([A-G][#b]?)(.*)$", symbol.strip())

	if match is None:
		raise ValueError(f"Invalid chord symbol: {symbol!r}")

	root, quality = match.groups()

	# "6/9" is a quality, not a slash chord.
	if quality.startswith("6/9"):
		quality = "6/9"
	else:
		quality = re.split(r"[@/]", quality, maxsplit=1)[0]

	return scorecraft.intervals.Key(root=root, mode=CHORD_SCALE_MAP.get(quality, "major"))


def supported_qualities () -> typing.List[str]:

	"""
	Return every chord quality with a direct interval definition.
	"""

	return list(CHORD_INTERVALS)
