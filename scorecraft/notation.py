"""Compact text notation for notes, rests and chords.

A note token is a pitch, a duration code and a run of optional modifiers,
always in this order:

- pitch letter ``A``–``G`` (either case), optional ``#``/``b``, optional signed
  single-digit octave (default 4), then ``:``
- duration code: ``w``, ``h``, ``q``, ``8``, ``16``, ``32`` (``2`` and ``4`` are
  aliases for ``h`` and ``q``)
- ``.`` dotted (x1.5)
- ``tN`` tuplet, N from 2 to 9
- one of ``*`` staccato, ``>`` accent, ``^`` marcato, ``~>`` portamento, ``~`` legato
- ``.fall``, ``.doit``, ``.scoop`` or ``.bend+N`` (N from 1 to 12 semitones)
- ``.tr``, ``.mord`` or ``.turn`` ornament
- ``@0.8`` velocity (0–1) or ``@mf`` dynamics marking
- ``+12ms`` / ``-5ms`` timing offset
- ``?0.5`` play probability (0–1)
- ``~>`` portamento (same meaning as in the articulation position)

Rests are ``r:`` plus a duration and an optional dot. Chords are a chord symbol
(see :mod:`scorecraft.chords`), ``:``, a duration, an optional dot and an
optional articulation marker.

Each grammar element is a small rule that advances a cursor over the token, so
the rules run in the order listed above. Any mismatch or out-of-range value
raises :class:`NotationError`, naming the offending text.

Example:
	```python
	parse_note("F#3:8.t3>@mf?0.5")
	parse_chord("Am7@drop2:h")
	parse_notes(["C4:q E4:q | G4:h", "r:q"])
	```
"""

import dataclasses
import re
import typing

import scorecraft.chords
import scorecraft.constants.durations
import scorecraft.constants.dynamics
import scorecraft.pitch


NOTE_FORMAT = (
	"{pitch}{octave}:{duration}[.][tN][articulation][.fall|.doit|.scoop|.bend+N]"
	"[.tr|.mord|.turn][@velocity][+/-Nms][?probability][~>] (e.g. 'C4:q', 'C4:8t3', 'C4:q*@0.8?0.5')"
)
REST_FORMAT = "r:{duration}[.] (e.g. 'r:q', 'r:h.')"
CHORD_FORMAT = "{root}{quality}[@voicing][/bass]:{duration}[.][articulation] (e.g. 'Cmaj7:w', 'Bb/D:h', 'Am9@drop2:q*')"

JAZZ_ARTICULATIONS = ("fall", "doit", "scoop", "bend")
ORNAMENT_NAMES = {"tr": "trill", "mord": "mordent", "turn": "turn"}

_PITCH_RE = re.compile(r"([A-Ga-g])([#b]?)(-?\d)?")
_COLON_RE = re.compile(r":")
_DURATION_RE = re.compile(r"(\d+|[whq])")
_DOT_RE = re.compile(r"\.")
_TUPLET_RE = re.compile(r"t(\d+)")
_ARTICULATION_RE = re.compile(r"([*>^])|(~>)|(~)")
# A bend amount must not swallow the digits of a following "+Nms" offset.
_JAZZ_RE = re.compile(r"\.(fall|doit|scoop|bend)(?:(?<=bend)\+(\d+)(?![\dm]))?")
_ORNAMENT_RE = re.compile(r"\.(tr|mord|turn)")
_VELOCITY_RE = re.compile(r"@(ppp|pp|p|mp|mf|fff|ff|f|(?:0|1)?\.?\d+)")
_TIMING_RE = re.compile(r"([+-]\d+)ms")
_PROBABILITY_RE = re.compile(r"\?((?:0|1)?\.?\d+)")
_PORTAMENTO_RE = re.compile(r"~>")
_CHORD_ARTICULATION_RE = re.compile(r"[*~>^]")
_REST_RE = re.compile(r"^[rR]:(\d+|[whq])(\.?)$")


class NotationError (ValueError):

	"""
	A notation token did not match the grammar or carried an out-of-range value.

	Attributes:
		text: The whole token being parsed.
		offending: The part of the token that could not be accepted.
		expected: A hint describing the expected format.
	"""

	def __init__ (self, message: str, text: str, offending: str, expected: str) -> None:

		super().__init__(f"{message} in {text!r} (at {offending!r}). Expected format: {expected}")

		self.text = text
		self.offending = offending
		self.expected = expected


class ArticulationModifiers (typing.NamedTuple):

	"""
	How an articulation changes a note: gate scales its sounding length, velocity_boost adds to its velocity.
	"""

	gate: float
	velocity_boost: float


@dataclasses.dataclass(frozen=True)
class ParsedNote:

	"""
	A single note token.

	``articulation`` is ``None`` or one of ``"staccato"``, ``"legato"``,
	``"accent"``, ``"marcato"``. Modifiers that were not written are ``None``
	(or ``False`` for the flags).
	"""

	pitch: str
	note_name: str
	accidental: str
	octave: int
	duration: str
	duration_beats: float
	dotted: bool = False
	tuplet_ratio: typing.Optional[int] = None
	articulation: typing.Optional[str] = None
	velocity: typing.Optional[float] = None
	dynamics: typing.Optional[str] = None
	probability: typing.Optional[float] = None
	timing_offset_ms: typing.Optional[int] = None
	portamento: bool = False
	jazz_articulation: typing.Optional[str] = None
	bend_amount: typing.Optional[int] = None
	ornament: typing.Optional[str] = None


	@property
	def midi (self) -> int:

		"""
		MIDI note number of the pitch.
		"""

		return scorecraft.pitch.pitch_to_midi(self.pitch)


@dataclasses.dataclass(frozen=True)
class ParsedRest:

	"""
	A rest token.
	"""

	duration: str
	duration_beats: float
	dotted: bool = False


@dataclasses.dataclass(frozen=True)
class ParsedChord:

	"""
	A chord token with its resolved pitches.

	A rest inside a chord list (``"r:q"``) is a chord with root ``"r"`` and no notes.
	An empty quality is reported as ``"maj"``.
	"""

	root: str
	quality: str
	duration: str
	duration_beats: float
	notes: typing.Tuple[str, ...]
	bass: typing.Optional[str] = None
	voicing: typing.Optional[str] = None
	dotted: bool = False
	articulation: typing.Optional[str] = None


	@property
	def is_rest (self) -> bool:

		return self.root == "r"


	@property
	def midi_notes (self) -> typing.List[int]:

		"""
		MIDI note numbers of the resolved pitches.
		"""

		return [scorecraft.pitch.pitch_to_midi(note) for note in self.notes]


NoteOrRest = typing.Union[ParsedNote, ParsedRest]


class _Cursor:

	"""
	Read position within a token plus the fields collected so far.
	"""

	def __init__ (self, text: str, expected: str, pos: int = 0) -> None:

		self.text = text
		self.expected = expected
		self.pos = pos
		self.fields: typing.Dict[str, typing.Any] = {}


	def peek (self, pattern: re.Pattern) -> bool:

		return pattern.match(self.text, self.pos) is not None


	def take (self, pattern: re.Pattern) -> typing.Optional[re.Match]:

		"""
		Consume ``pattern`` at the current position, or return ``None`` without moving.
		"""

		match = pattern.match(self.text, self.pos)

		if match is not None:
			self.pos = match.end()

		return match


	def error (self, message: str, offending: typing.Optional[str] = None) -> NotationError:

		if offending is None:
			offending = self.text[self.pos:] or self.text

		return NotationError(message, self.text, offending, self.expected)


	def expect_end (self) -> None:

		if self.pos != len(self.text):
			raise self.error("Unexpected text")


def _rule_pitch (cursor: _Cursor) -> None:

	match = cursor.take(_PITCH_RE)

	if match is None:
		raise cursor.error("Expected a pitch letter A-G")

	letter, accidental, octave = match.groups()

	cursor.fields["note_name"] = letter.upper()
	cursor.fields["accidental"] = accidental
	cursor.fields["octave"] = int(octave) if octave is not None else 4

	if cursor.take(_COLON_RE) is None:
		raise cursor.error("Expected ':' before the duration")


def _rule_duration (cursor: _Cursor) -> None:

	match = cursor.take(_DURATION_RE)

	if match is None:
		raise cursor.error("Expected a duration code")

	code = match.group(1)

	if code not in scorecraft.constants.durations.DURATION_CODES:
		raise cursor.error(f"Invalid duration code {code!r}", code)

	cursor.fields["duration"] = code


def _rule_dot (cursor: _Cursor) -> None:

	# ".fall" or ".tr" directly after the duration is a suffix, not a dot.
	if cursor.peek(_JAZZ_RE) or cursor.peek(_ORNAMENT_RE):
		return

	if cursor.take(_DOT_RE) is not None:
		cursor.fields["dotted"] = True


def _rule_tuplet (cursor: _Cursor) -> None:

	match = cursor.take(_TUPLET_RE)

	if match is None:
		return

	ratio = int(match.group(1))

	if not scorecraft.constants.durations.MIN_TUPLET <= ratio <= scorecraft.constants.durations.MAX_TUPLET:
		raise cursor.error(f"Invalid tuplet ratio {ratio}, must be 2-9", match.group(0))

	cursor.fields["tuplet_ratio"] = ratio


def _rule_articulation (cursor: _Cursor) -> None:

	match = cursor.take(_ARTICULATION_RE)

	if match is None:
		return

	marker, portamento, legato = match.groups()

	if marker:
		cursor.fields["articulation"] = scorecraft.constants.dynamics.ARTICULATION_MARKERS[marker]
	elif portamento:
		cursor.fields["portamento"] = True
	elif legato:
		cursor.fields["articulation"] = "legato"


def _rule_jazz_articulation (cursor: _Cursor) -> None:

	match = cursor.take(_JAZZ_RE)

	if match is None:
		return

	cursor.fields["jazz_articulation"] = match.group(1)

	if match.group(2) is not None:

		amount = int(match.group(2))

		if not scorecraft.constants.dynamics.MIN_BEND <= amount <= scorecraft.constants.dynamics.MAX_BEND:
			raise cursor.error(f"Invalid bend amount {amount}, must be 1-12 semitones", match.group(0))

		cursor.fields["bend_amount"] = amount


def _rule_ornament (cursor: _Cursor) -> None:

	match = cursor.take(_ORNAMENT_RE)

	if match is not None:
		cursor.fields["ornament"] = ORNAMENT_NAMES[match.group(1)]


def _rule_velocity (cursor: _Cursor) -> None:

	match = cursor.take(_VELOCITY_RE)

	if match is None:
		return

	raw = match.group(1)

	if raw in scorecraft.constants.dynamics.DYNAMICS:
		cursor.fields["dynamics"] = raw
		cursor.fields["velocity"] = scorecraft.constants.dynamics.DYNAMICS[raw]
		return

	velocity = float(raw)

	if not 0.0 <= velocity <= 1.0:
		raise cursor.error(f"Invalid velocity {velocity}, must be 0.0-1.0", match.group(0))

	cursor.fields["velocity"] = velocity


def _rule_timing (cursor: _Cursor) -> None:

	match = cursor.take(_TIMING_RE)

	if match is not None:
		cursor.fields["timing_offset_ms"] = int(match.group(1))


def _rule_probability (cursor: _Cursor) -> None:

	match = cursor.take(_PROBABILITY_RE)

	if match is None:
		return

	probability = float(match.group(1))

	if not 0.0 <= probability <= 1.0:
		raise cursor.error(f"Invalid probability {probability}, must be 0.0-1.0", match.group(0))

	cursor.fields["probability"] = probability


def _rule_trailing_portamento (cursor: _Cursor) -> None:

	if cursor.take(_PORTAMENTO_RE) is not None:
		cursor.fields["portamento"] = True


def _rule_chord_dot (cursor: _Cursor) -> None:

	if cursor.take(_DOT_RE) is not None:
		cursor.fields["dotted"] = True


def _rule_chord_articulation (cursor: _Cursor) -> None:

	match = cursor.take(_CHORD_ARTICULATION_RE)

	if match is not None:
		cursor.fields["articulation"] = scorecraft.constants.dynamics.ARTICULATION_MARKERS[match.group(0)]


_NOTE_RULES: typing.Tuple[typing.Callable[[_Cursor], None], ...] = (
	_rule_pitch,
	_rule_duration,
	_rule_dot,
	_rule_tuplet,
	_rule_articulation,
	_rule_jazz_articulation,
	_rule_ornament,
	_rule_velocity,
	_rule_timing,
	_rule_probability,
	_rule_trailing_portamento,
)

_CHORD_DURATION_RULES: typing.Tuple[typing.Callable[[_Cursor], None], ...] = (
	_rule_duration,
	_rule_chord_dot,
	_rule_chord_articulation,
)


def tuplet_scale (ratio: int) -> float:

	"""Return the duration multiplier for an N-tuplet.

	N notes take the time of N/2 notes when N is even, and of ⌈N/2⌉ notes
	when N is odd: a triplet (3) scales by 2/3, a quintuplet (5) by 3/5.

	Raises:
		ValueError: If ``ratio`` is outside 2–9.
	"""

	if not scorecraft.constants.durations.MIN_TUPLET <= ratio <= scorecraft.constants.durations.MAX_TUPLET:
		raise ValueError(f"Tuplet ratio must be 2-9, got {ratio}")

	base = ratio // 2 if ratio % 2 == 0 else ratio // 2 + 1

	return base / ratio


def parse_duration (code: str, dotted: bool = False) -> float:

	"""Convert a duration code to beats.

	A trailing ``.`` in ``code`` (``"q."``) means dotted, as does ``dotted=True``.

	Example:
		```python
		parse_duration("q")        # → 1.0
		parse_duration("8", True)  # → 0.75
		parse_duration("h.")       # → 3.0
		```
	"""

	if code.endswith("."):
		code = code[:-1]
		dotted = True

	if code not in scorecraft.constants.durations.DURATION_CODES:
		raise NotationError(
			f"Invalid duration code {code!r}",
			code,
			code,
			f"one of {', '.join(scorecraft.constants.durations.DURATION_CODES)}"
		)

	beats = scorecraft.constants.durations.DURATION_CODES[code]

	return beats * scorecraft.constants.durations.DOTTED_MULTIPLIER if dotted else beats


def parse_note (text: str) -> ParsedNote:

	"""Parse one note token.

	Raises:
		NotationError: If the token does not match the grammar, or a velocity,
			probability, tuplet ratio or bend amount is out of range.

	Example:
		```python
		note = parse_note("Eb3:8.>@0.9")
		note.pitch           # → "Eb3"
		note.duration_beats  # → 0.75
		note.articulation    # → "accent"
		```
	"""

	cursor = _Cursor(text.strip(), NOTE_FORMAT)

	for rule in _NOTE_RULES:
		rule(cursor)

	cursor.expect_end()

	fields = cursor.fields
	duration_beats = parse_duration(fields["duration"], fields.get("dotted", False))

	if "tuplet_ratio" in fields:
		duration_beats *= tuplet_scale(fields["tuplet_ratio"])

	return ParsedNote(
		pitch=f"{fields['note_name']}{fields['accidental']}{fields['octave']}",
		duration_beats=duration_beats,
		**fields
	)


def is_rest (text: str) -> bool:

	"""
	Return True if a token is written as a rest (``r:...``).
	"""

	return text.strip().lower().startswith("r:")


def parse_rest (text: str) -> ParsedRest:

	"""
	Parse a rest token such as ``"r:q"`` or ``"r:h."``.
	"""

	stripped = text.strip()
	match = _REST_RE.match(stripped)

	if match is None:
		raise NotationError("Invalid rest", stripped, stripped, REST_FORMAT)

	code, dot = match.groups()

	return ParsedRest(duration=code, duration_beats=parse_duration(code, dot == "."), dotted=dot == ".")


def parse_chord (text: str, octave: int = scorecraft.chords.DEFAULT_CHORD_OCTAVE) -> ParsedChord:

	"""Parse one chord token and resolve its pitches.

	Parameters:
		text: Chord token, e.g. ``"Cmaj7:w"``, ``"Bb/D:h."``, ``"Am9@drop2:q*"``
		      or a rest ``"r:q"``.
		octave: Octave of the chord root. A slash bass sits one octave lower.

	Raises:
		NotationError: If the token does not match the chord grammar.

	Example:
		```python
		chord = parse_chord("Dm7:h")
		chord.notes           # → ("D3", "F3", "A3", "C4")
		chord.duration_beats  # → 2.0
		```
	"""

	stripped = text.strip()

	if is_rest(stripped):
		rest = parse_rest(stripped)
		return ParsedChord(
			root="r",
			quality="",
			duration=rest.duration,
			duration_beats=rest.duration_beats,
			notes=(),
			dotted=rest.dotted,
		)

	symbol, separator, _ = stripped.partition(":")

	if not separator:
		raise NotationError("Expected ':' before the duration", stripped, stripped, CHORD_FORMAT)

	try:
		chord = scorecraft.chords.Chord.from_symbol(symbol)
	except ValueError as exc:
		raise NotationError("Invalid chord symbol", stripped, symbol, CHORD_FORMAT) from exc

	cursor = _Cursor(stripped, CHORD_FORMAT, pos=len(symbol) + 1)

	for rule in _CHORD_DURATION_RULES:
		rule(cursor)

	cursor.expect_end()

	dotted = cursor.fields.get("dotted", False)

	return ParsedChord(
		root=chord.root,
		quality=chord.quality or "maj",
		duration=cursor.fields["duration"],
		duration_beats=parse_duration(cursor.fields["duration"], dotted),
		notes=tuple(chord.notes(octave)),
		bass=chord.bass,
		voicing=chord.voicing,
		dotted=dotted,
		articulation=cursor.fields.get("articulation"),
	)


def expand_note_strings (items: typing.Iterable[str]) -> typing.List[str]:

	"""Split compact strings into single tokens.

	Tokens are separated by whitespace; ``|`` marks a bar line and is dropped.

	Example:
		```python
		expand_note_strings(["C4:q", "D4:q E4:q | F4:h"])
		# → ["C4:q", "D4:q", "E4:q", "F4:h"]
		```
	"""

	tokens: typing.List[str] = []

	for item in items:
		tokens.extend(item.replace("|", " ").split())

	return tokens


def parse_notes (items: typing.Iterable[str]) -> typing.List[NoteOrRest]:

	"""
	Parse a list of note and rest tokens, expanding compact strings first.

	One malformed token fails the whole list.
	"""

	return [parse_rest(token) if is_rest(token) else parse_note(token) for token in expand_note_strings(items)]


def parse_chords (items: typing.Iterable[str], octave: int = scorecraft.chords.DEFAULT_CHORD_OCTAVE) -> typing.List[ParsedChord]:

	"""
	Parse a list of chord tokens (compact strings allowed).
	"""

	return [parse_chord(token, octave) for token in expand_note_strings(items)]


def get_articulation_modifiers (articulation: typing.Optional[str]) -> ArticulationModifiers:

	"""Return the gate and velocity boost for an articulation.

	Accepts a name (``"staccato"``) or its marker (``"*"``). ``None``, an empty
	string or an unknown value give the neutral modifiers (1.0, 0.0).

	Example:
		```python
		get_articulation_modifiers("staccato")  # → ArticulationModifiers(gate=0.3, velocity_boost=0.0)
		get_articulation_modifiers("^")         # → ArticulationModifiers(gate=0.3, velocity_boost=0.2)
		```
	"""

	name = scorecraft.constants.dynamics.ARTICULATION_MARKERS.get(articulation or "", articulation)

	gate, boost = scorecraft.constants.dynamics.ARTICULATIONS.get(
		name or "normal",
		scorecraft.constants.dynamics.ARTICULATIONS["normal"]
	)

	return ArticulationModifiers(gate=gate, velocity_boost=boost)


def dynamics_velocity (marking: str) -> float:

	"""
	Return the velocity (0–1) of a dynamics marking; unknown markings give forte (0.8).
	"""

	return scorecraft.constants.dynamics.DYNAMICS.get(marking, scorecraft.constants.dynamics.DEFAULT_DYNAMICS_VELOCITY)
