"""Pattern length queries.

A pattern is a mapping with any of these keys, each contributing beats:

- ``notes``: note and rest tokens (compact strings allowed).
- ``chords``: chord tokens.
- ``markov``: a Markov configuration mapping. The pattern is generated in the
  context key and measured to the end of its last sounding note, so trailing
  rests and silent approach steps do not count.
- ``voice_lead``: a voice-leading configuration mapping; 4 beats per chord.
- ``rest``: a duration code (``"h"``) or a number of beats.

The queries use the same grammar and generator as rendering but produce no
audio. Seeded Markov patterns always measure the same; unseeded ones may not.
"""

import dataclasses
import logging
import typing

import scorecraft.markov_chain
import scorecraft.notation
import scorecraft.pitch


logger = logging.getLogger(__name__)


BEATS_PER_VOICE_LEAD_CHORD = 4.0

# Floating point slack when checking bar alignment.
ALIGNMENT_TOLERANCE = 1e-6


@dataclasses.dataclass(frozen=True)
class PatternContext:

	"""
	Score-level settings a pattern is measured against.
	"""

	key: str = "C major"
	tempo: float = 120.0
	beats_per_bar: int = 4


def _rest_beats (value: typing.Union[str, float, int]) -> float:

	if isinstance(value, str):
		return scorecraft.notation.parse_duration(value)

	return float(value)


def _markov_beats (
	data: typing.Union[typing.Mapping[str, typing.Any], scorecraft.markov_chain.MarkovConfig],
	context: PatternContext,
) -> float:

	config = data if isinstance(data, scorecraft.markov_chain.MarkovConfig) else scorecraft.markov_chain.MarkovConfig.from_dict(data)
	notes = scorecraft.markov_chain.generate_markov_pattern(config, context.key)

	return max((note.start_beat + note.duration_beats for note in notes), default=0.0)


def pattern_length (pattern: typing.Mapping[str, typing.Any], context: typing.Optional[PatternContext] = None) -> float:

	"""Return the total length of a pattern in beats.

	Contributions are summed in the order notes, chords, markov, voice_lead, rest.

	Raises:
		NotationError: If a note, chord or duration token does not parse.
		ValueError: If a Markov pattern cannot be generated (no steps, unknown key).

	Example:
		```python
		pattern_length({"notes": ["C4:q D4:q E4:h"]})  # → 4.0
		pattern_length({"markov": {"states": ["1", "5"], "steps": 8, "duration": "8"}})  # → 4.0
		```
	"""

	if context is None:
		context = PatternContext()

	beats = 0.0

	if pattern.get("notes"):
		beats += sum(item.duration_beats for item in scorecraft.notation.parse_notes(pattern["notes"]))

	if pattern.get("chords"):
		beats += sum(chord.duration_beats for chord in scorecraft.notation.parse_chords(pattern["chords"]))

	if pattern.get("markov"):
		beats += _markov_beats(pattern["markov"], context)

	if pattern.get("voice_lead"):
		progression = pattern["voice_lead"].get("progression", ())
		beats += BEATS_PER_VOICE_LEAD_CHORD * len(progression)

	if pattern.get("rest") is not None:
		beats += _rest_beats(pattern["rest"])

	return beats


def pattern_seconds (pattern: typing.Mapping[str, typing.Any], context: typing.Optional[PatternContext] = None) -> float:

	"""
	Return the length of a pattern in seconds at the context tempo.
	"""

	if context is None:
		context = PatternContext()

	return scorecraft.pitch.beats_to_seconds(pattern_length(pattern, context), context.tempo)


def is_bar_aligned (beats: float, beats_per_bar: int = 4) -> bool:

	"""
	True if ``beats`` is a whole number of bars.
	"""

	remainder = beats % beats_per_bar

	return remainder < ALIGNMENT_TOLERANCE or beats_per_bar - remainder < ALIGNMENT_TOLERANCE


def bar_alignment_warning (
	name: str,
	pattern: typing.Mapping[str, typing.Any],
	context: typing.Optional[PatternContext] = None,
) -> typing.Optional[str]:

	"""
	Return a warning if the pattern does not fill a whole number of bars, otherwise None.

	A pattern that does not parse is reported as having no measurable length.
	"""

	if context is None:
		context = PatternContext()

	try:
		beats = pattern_length(pattern, context)
	except ValueError as exc:
		logger.warning(f"Pattern {name!r} could not be measured: {exc}")
		return f"Pattern '{name}' could not be measured: {exc}"

	if beats <= 0 or is_bar_aligned(beats, context.beats_per_bar):
		return None

	bars = beats / context.beats_per_bar

	return f"Pattern '{name}' is {beats:g} beats ({bars:.2f} bars of {context.beats_per_bar}), not a whole number of bars"
