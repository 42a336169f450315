"""Constraint-based voice leading.

Assigns one pitch per voice to every chord of a progression so that the
voices move smoothly and, depending on the style, obey a subset of
common-practice rules.

Voices are ordered bass to soprano. Each chord's candidate voicings are every
combination of in-range chord tones (at most ``MAX_CANDIDATES``) that contains
the chord's first three pitch classes. A beam search of width ``BEAM_WIDTH``
then picks the best-scoring path through the candidates.

Transitions between two voicings are scored as a union of two tiers:

- admissible transitions carry the soft scores (motion, outer-voice motion,
  tendency-tone resolution);
- every transition also has a relaxed score of ``RELAXED_PENALTY``, used only
  when no admissible transition exists at that step.

So a step that breaks the hard rules widens the search rather than ending it,
and a warning is recorded. Only a chord with no candidates at all stops the
search, in which case :func:`generate_voice_leading` falls back to root-position
chords.

Example:
	```python
	config = VoiceLeadConfig(progression=("Dm7", "G7", "Cmaj7"), voices=4, style="bach")
	result = generate_voice_leading(config)
	[v.notes for v in result.voicings]
	```
"""

import dataclasses
import logging
import types
import typing

import numpy

import scorecraft.chords
import scorecraft.pitch


logger = logging.getLogger(__name__)


MAX_CANDIDATES = 1000
BEAM_WIDTH = 50
REQUIRED_TONES = 3

RELAXED_PENALTY = -100.0
CONTRARY_MOTION_PENALTY = -10.0
UNRESOLVED_TENDENCY_PENALTY = -5.0

MIN_VOICES = 2
MAX_VOICES = 6

NO_PARALLEL_FIFTHS = "no_parallel_fifths"
NO_PARALLEL_OCTAVES = "no_parallel_octaves"
RESOLVE_LEADING_TONES = "resolve_leading_tones"
RESOLVE_SEVENTHS = "resolve_sevenths"
SMOOTH_MOTION = "smooth_motion"
CONTRARY_OUTER_MOTION = "contrary_outer_motion"
AVOID_VOICE_CROSSING = "avoid_voice_crossing"

CONSTRAINTS: typing.FrozenSet[str] = frozenset({
	NO_PARALLEL_FIFTHS,
	NO_PARALLEL_OCTAVES,
	RESOLVE_LEADING_TONES,
	RESOLVE_SEVENTHS,
	SMOOTH_MOTION,
	CONTRARY_OUTER_MOTION,
	AVOID_VOICE_CROSSING,
})

STYLE_CONSTRAINTS: typing.Mapping[str, typing.Tuple[str, ...]] = types.MappingProxyType({
	"bach": (
		NO_PARALLEL_FIFTHS,
		NO_PARALLEL_OCTAVES,
		RESOLVE_LEADING_TONES,
		RESOLVE_SEVENTHS,
		SMOOTH_MOTION,
		CONTRARY_OUTER_MOTION,
		AVOID_VOICE_CROSSING,
	),
	"jazz": (SMOOTH_MOTION, AVOID_VOICE_CROSSING),
	"pop": (SMOOTH_MOTION,),
	"custom": (),
})

# MIDI note ranges, inclusive.
DEFAULT_VOICE_RANGES: typing.Mapping[str, typing.Tuple[int, int]] = types.MappingProxyType({
	"bass": (28, 48),
	"baritone": (33, 52),
	"tenor": (36, 55),
	"alto": (43, 62),
	"mezzo": (45, 70),
	"soprano": (48, 79),
})

VOICE_LAYOUTS: typing.Mapping[int, typing.Tuple[str, ...]] = types.MappingProxyType({
	2: ("bass", "soprano"),
	3: ("bass", "alto", "soprano"),
	4: ("bass", "tenor", "alto", "soprano"),
	5: ("bass", "tenor", "alto", "mezzo", "soprano"),
	6: ("bass", "baritone", "tenor", "alto", "mezzo", "soprano"),
})

RangeValue = typing.Union[int, str]


def _range_midi (value: RangeValue) -> int:

	if isinstance(value, str):
		return scorecraft.pitch.pitch_to_midi(value)

	return int(value)


@dataclasses.dataclass(frozen=True)
class VoiceLeadConfig:

	"""
	Settings for voicing a chord progression.

	Parameters:
		progression: Chord symbols, e.g. ``("Dm7", "G7", "Cmaj7")``.
		voices: Number of voices, 2 to 6.
		style: ``"bach"``, ``"jazz"``, ``"pop"`` or ``"custom"``.
		constraints: Extra rule names, added to the style's own rules.
		voice_ranges: Per-voice ``(low, high)`` overrides, as pitch strings
			(``("E2", "C4")``) or MIDI numbers, keyed by voice name.
	"""

	progression: typing.Sequence[str]
	voices: int = 4
	style: str = "jazz"
	constraints: typing.Sequence[str] = ()
	voice_ranges: typing.Optional[typing.Mapping[str, typing.Tuple[RangeValue, RangeValue]]] = None


	@classmethod
	def from_dict (cls, data: typing.Mapping[str, typing.Any]) -> "VoiceLeadConfig":

		"""
		Build a config from a mapping. ``voice_ranges`` may also be spelled ``voiceRanges``.
		"""

		return cls(
			progression=tuple(data.get("progression", ())),
			voices=int(data.get("voices", 4)),
			style=data.get("style", "jazz"),
			constraints=tuple(data.get("constraints", ())),
			voice_ranges=data.get("voice_ranges", data.get("voiceRanges")),
		)


	def effective_constraints (self) -> typing.Tuple[str, ...]:

		"""
		Return the style's rules followed by the extra ones, without duplicates.
		"""

		combined = list(STYLE_CONSTRAINTS.get(self.style, ())) + list(self.constraints)

		return tuple(dict.fromkeys(combined))


	def voice_names (self) -> typing.Tuple[str, ...]:

		return VOICE_LAYOUTS[self.voices]


	def ranges (self) -> typing.List[typing.Tuple[int, int]]:

		"""
		Return the inclusive MIDI range of each voice, bass first.
		"""

		overrides = self.voice_ranges or {}
		ranges: typing.List[typing.Tuple[int, int]] = []

		for name in self.voice_names():
			if name in overrides:
				low, high = overrides[name]
				ranges.append((_range_midi(low), _range_midi(high)))
			else:
				ranges.append(DEFAULT_VOICE_RANGES[name])

		return ranges


@dataclasses.dataclass(frozen=True)
class Voicing:

	"""
	One chord with a pitch for every voice, bass first.
	"""

	chord: str
	notes: typing.Tuple[str, ...]


	@property
	def midi (self) -> typing.List[int]:

		return [scorecraft.pitch.pitch_to_midi(note) for note in self.notes]


@dataclasses.dataclass(frozen=True)
class VoiceLeadingResult:

	"""
	The solved voicings plus any warnings.

	``voiced`` is False when the progression could not be voiced and
	``voicings`` holds plain root-position chords instead.
	"""

	voicings: typing.Tuple[Voicing, ...]
	warnings: typing.Tuple[str, ...] = ()
	voiced: bool = True


def enumerate_voicings (
	chord: typing.Union[str, scorecraft.chords.Chord],
	ranges: typing.Sequence[typing.Tuple[int, int]],
	forbid_crossing: bool = False,
	limit: int = MAX_CANDIDATES
) -> numpy.ndarray:

	"""Return candidate voicings of a chord as an ``(n, voices)`` integer array.

	Each voice may take any chord tone within its range. Combinations are
	produced bass-first in ascending order and kept only if they contain the
	chord's first three pitch classes. When ``forbid_crossing`` is set, every
	voice must be strictly above the one below it. At most ``limit`` voicings
	are returned.

	Example:
		```python
		enumerate_voicings("C", [(48, 60), (60, 72), (64, 76)])[0]  # → array([48, 64, 67])
		```
	"""

	if isinstance(chord, str):
		chord = scorecraft.chords.Chord.from_symbol(chord)

	pitch_classes = chord.pitch_classes()
	allowed = set(pitch_classes)
	required = pitch_classes[:REQUIRED_TONES]
	options = [[midi for midi in range(low, high + 1) if midi % 12 in allowed] for low, high in ranges]
	voice_count = len(options)

	found: typing.List[typing.Tuple[int, ...]] = []
	current: typing.List[int] = []

	def search (voice: int) -> None:

		used = {midi % 12 for midi in current}
		missing = sum(1 for pc in required if pc not in used)

		# Not enough voices left to cover the required tones.
		if missing > voice_count - voice:
			return

		if voice == voice_count:
			found.append(tuple(current))
			return

		for midi in options[voice]:

			if forbid_crossing and current and midi <= current[-1]:
				continue

			current.append(midi)
			search(voice + 1)
			current.pop()

			if len(found) >= limit:
				return

	search(0)

	return numpy.array(found, dtype=numpy.int32).reshape(-1, voice_count)


def tendency_tones (chord: scorecraft.chords.Chord) -> typing.Tuple[typing.Optional[int], typing.Optional[int]]:

	"""Return the pitch classes of a chord's leading tone and seventh.

	The leading tone is the major third of a dominant-type chord (major third
	plus minor seventh) and should rise a semitone. The seventh is a minor or
	major seventh above the root and should fall by step. Either is ``None``
	when the chord has no such tone.
	"""

	root_pc = scorecraft.pitch.key_name_to_pc(chord.root)
	intervals = {interval % 12 for interval in chord.intervals()}

	leading = (root_pc + 4) % 12 if 4 in intervals and 10 in intervals else None
	seventh = None

	for interval in (10, 11):
		if interval in intervals:
			seventh = (root_pc + interval) % 12
			break

	return leading, seventh


def score_transitions (
	previous: numpy.ndarray,
	candidates: numpy.ndarray,
	constraints: typing.Collection[str],
	previous_chord: typing.Optional[scorecraft.chords.Chord] = None
) -> typing.Tuple[numpy.ndarray, numpy.ndarray]:

	"""Score every move from each previous voicing to each candidate.

	Parameters:
		previous: ``(b, voices)`` voicings of the earlier chord.
		candidates: ``(c, voices)`` voicings of the next chord.
		constraints: Active rule names.
		previous_chord: The earlier chord, needed for tendency-tone resolution.

	Returns:
		``(admissible, score)``, both of shape ``(b, c)``. ``admissible`` is False
		where a hard rule (parallel fifths, parallel octaves, voice crossing) is
		broken; ``score`` holds the soft penalties (0 or less).
	"""

	b, voices = previous.shape
	c = candidates.shape[0]

	motion = candidates[numpy.newaxis, :, :] - previous[:, numpy.newaxis, :]
	direction = numpy.sign(motion)

	admissible = numpy.ones((b, c), dtype=bool)
	score = numpy.zeros((b, c), dtype=numpy.float64)

	check_fifths = NO_PARALLEL_FIFTHS in constraints
	check_octaves = NO_PARALLEL_OCTAVES in constraints

	if check_fifths or check_octaves:

		for i in range(voices):
			for j in range(i + 1, voices):

				before = (numpy.abs(previous[:, j] - previous[:, i]) % 12)[:, numpy.newaxis]
				after = (numpy.abs(candidates[:, j] - candidates[:, i]) % 12)[numpy.newaxis, :]
				same_direction = (direction[:, :, i] != 0) & (direction[:, :, i] == direction[:, :, j])

				if check_fifths:
					admissible &= ~((before == 7) & (after == 7) & same_direction)

				if check_octaves:
					admissible &= ~((before == 0) & (after == 0) & same_direction)

	if AVOID_VOICE_CROSSING in constraints and voices > 1:
		crossing = numpy.any(candidates[:, :-1] >= candidates[:, 1:], axis=1)
		admissible &= ~crossing[numpy.newaxis, :]

	if SMOOTH_MOTION in constraints:
		score -= numpy.abs(motion).sum(axis=2)

	if CONTRARY_OUTER_MOTION in constraints and voices > 1:
		bass = direction[:, :, 0]
		soprano = direction[:, :, -1]
		score += numpy.where((bass != 0) & (bass == soprano), CONTRARY_MOTION_PENALTY, 0.0)

	if previous_chord is not None and (RESOLVE_LEADING_TONES in constraints or RESOLVE_SEVENTHS in constraints):

		leading, seventh = tendency_tones(previous_chord)
		pitch_classes = previous % 12

		if RESOLVE_LEADING_TONES in constraints and leading is not None:
			holds = (pitch_classes == leading)[:, numpy.newaxis, :]
			unresolved = holds & (motion != 1)
			score += UNRESOLVED_TENDENCY_PENALTY * unresolved.sum(axis=2)

		if RESOLVE_SEVENTHS in constraints and seventh is not None:
			holds = (pitch_classes == seventh)[:, numpy.newaxis, :]
			unresolved = holds & (motion != -1) & (motion != -2)
			score += UNRESOLVED_TENDENCY_PENALTY * unresolved.sum(axis=2)

	return admissible, score


def find_best_voicing_sequence (
	chords: typing.Sequence[scorecraft.chords.Chord],
	ranges: typing.Sequence[typing.Tuple[int, int]],
	constraints: typing.Collection[str]
) -> typing.Tuple[typing.Optional[numpy.ndarray], typing.List[str]]:

	"""Beam-search the best voicing path through a progression.

	Returns:
		``(path, warnings)``. ``path`` is a ``(len(chords), voices)`` array of
		MIDI notes, or ``None`` if some chord has no candidate voicings.
	"""

	warnings: typing.List[str] = []

	if not chords:
		return numpy.zeros((0, len(ranges)), dtype=numpy.int32), warnings

	forbid_crossing = AVOID_VOICE_CROSSING in constraints
	candidates: typing.List[numpy.ndarray] = []

	for chord in chords:

		options = enumerate_voicings(chord, ranges, forbid_crossing)

		# Ranges that force crossing keep every voicing; the transition rule then relaxes.
		if forbid_crossing and len(options) == 0:
			options = enumerate_voicings(chord, ranges)

		candidates.append(options)

	for chord, options in zip(chords, candidates):
		if len(options) == 0:
			message = f"No valid voicings for chord: {chord.name()}"
			logger.warning(message)
			warnings.append(message)
			return None, warnings

	# The first chord seeds the beam with every candidate at score 0.
	beam_scores = numpy.zeros(len(candidates[0]), dtype=numpy.float64)
	beam_rows = numpy.arange(len(candidates[0]))
	rows_per_step = [beam_rows]
	parents_per_step: typing.List[numpy.ndarray] = []

	for step in range(1, len(chords)):

		options = candidates[step]
		admissible, score = score_transitions(candidates[step - 1][beam_rows], options, constraints, chords[step - 1])

		if admissible.any():
			totals = numpy.where(admissible, beam_scores[:, numpy.newaxis] + score, -numpy.inf)
		else:
			message = f"No valid voicings satisfy all constraints at chord {step}"
			logger.warning(message)
			warnings.append(message)
			totals = numpy.broadcast_to(beam_scores[:, numpy.newaxis] + RELAXED_PENALTY, admissible.shape)

		flat = totals.ravel()
		order = numpy.argsort(-flat, kind="stable")
		order = order[numpy.isfinite(flat[order])][:BEAM_WIDTH]

		parents, beam_rows = numpy.divmod(order, len(options))
		beam_scores = flat[order]

		parents_per_step.append(parents)
		rows_per_step.append(beam_rows)

	# Walk back from the best entry of the final beam.
	entry = 0
	path: typing.List[numpy.ndarray] = []

	for step in range(len(chords) - 1, -1, -1):
		path.append(candidates[step][rows_per_step[step][entry]])
		if step > 0:
			entry = int(parents_per_step[step - 1][entry])

	return numpy.array(path[::-1]), warnings


def generate_voice_leading (config: VoiceLeadConfig) -> VoiceLeadingResult:

	"""Voice a chord progression.

	Raises:
		ValueError: If the voice count is outside 2–6, the style is unknown or a
			chord symbol cannot be parsed.

	Returns:
		A :class:`VoiceLeadingResult`. If some chord cannot be voiced at all,
		the result holds root-position chord notes, ``voiced=False`` and a warning.
	"""

	if not MIN_VOICES <= config.voices <= MAX_VOICES:
		raise ValueError(f"Voice count must be between {MIN_VOICES} and {MAX_VOICES}, got {config.voices}")

	if config.style not in STYLE_CONSTRAINTS:
		raise ValueError(f"Unknown voice-leading style: {config.style!r}. Available: {sorted(STYLE_CONSTRAINTS)}")

	chords = [scorecraft.chords.Chord.from_symbol(symbol) for symbol in config.progression]
	constraints = config.effective_constraints()

	path, warnings = find_best_voicing_sequence(chords, config.ranges(), constraints)

	if path is None:

		message = "Could not find valid voicing sequence for all chords"
		logger.warning(message)
		warnings.append(message)

		fallback = tuple(
			Voicing(chord=symbol, notes=tuple(chord.notes()))
			for symbol, chord in zip(config.progression, chords)
		)

		return VoiceLeadingResult(voicings=fallback, warnings=tuple(warnings), voiced=False)

	voicings = tuple(
		Voicing(chord=symbol, notes=tuple(scorecraft.pitch.midi_to_pitch(int(midi)) for midi in row))
		for symbol, row in zip(config.progression, path)
	)

	logger.debug(f"Voiced {len(voicings)} chords with {len(constraints)} constraints")

	return VoiceLeadingResult(voicings=voicings, warnings=tuple(warnings))


def validate_voice_lead_config (config: VoiceLeadConfig) -> typing.List[str]:

	"""
	Return warnings for an empty progression, a voice count outside 2–6, an unknown style or unknown constraint names.
	"""

	warnings: typing.List[str] = []

	if not config.progression:
		warnings.append("Voice leading must have a chord progression")

	if not MIN_VOICES <= config.voices <= MAX_VOICES:
		warnings.append(f"Voice count {config.voices} should be between {MIN_VOICES} and {MAX_VOICES}")

	if config.style not in STYLE_CONSTRAINTS:
		warnings.append(f"Unknown style: {config.style}. Valid: {', '.join(STYLE_CONSTRAINTS)}")

	for name in config.constraints:
		if name not in CONSTRAINTS:
			warnings.append(f"Unknown constraint: {name}. Valid: {', '.join(sorted(CONSTRAINTS))}")

	return warnings
