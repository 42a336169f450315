"""Seeded Markov-chain melody generator.

States are strings:

- scale degrees, optionally altered: ``"1"``, ``"5"``, ``"b3"``, ``"#4"``, ``"9"``
  (degrees above 7 climb into the next octave)
- absolute pitches: ``"C4"``, ``"Bb3"``
- ``"rest"``: a silent step
- ``"approach"``: one semitone below whatever the next step resolves to

Generation runs in two phases. First the chain walks the transition table to
produce a :class:`StateSequence` of exactly ``steps`` states. Then every state
is resolved to a pitch against the key; because the whole sequence already
exists, an ``approach`` step can always see the step after it.

The same seed always gives the same notes.

Example:
	```python
	config = MarkovConfig(
		states=("1", "3", "5", "approach"),
		preset="walking_bass",
		steps=16,
		duration="q",
		seed=7,
	)
	notes = generate_markov_pattern(config, key="F major")
	```
"""

import dataclasses
import logging
import random
import re
import typing

import scorecraft.chords
import scorecraft.intervals
import scorecraft.notation
import scorecraft.pitch


logger = logging.getLogger(__name__)


StateType = typing.TypeVar("StateType")

Transitions = typing.Mapping[str, typing.Mapping[str, float]]
DurationValue = typing.Union[str, float]

REST_STATE = "rest"
APPROACH_STATE = "approach"

DEFAULT_MARKOV_OCTAVE = 3

# Velocities are 0.7 plus up to 0.2 of jitter.
BASE_VELOCITY = 0.7
VELOCITY_JITTER = 0.2

# Out-of-scale pitches snap at most this far when constrained to the scale.
SCALE_SNAP_DISTANCE = 2

# Rows may be off by this much before validation complains.
PROBABILITY_TOLERANCE = 0.01

_MASK_32 = 0xFFFFFFFF
_DEGREE_RE = re.compile(r"^([#b]?)([1-9]\d*)$")
_ABSOLUTE_PITCH_RE = re.compile(r"^[A-G][#b]?\d+$")


def _imul (a: int, b: int) -> int:

	return (a * b) & _MASK_32


class SeededRandom:

	"""
	A small 32-bit pseudo-random stream (Mulberry32).

	Each call to :meth:`next` adds a fixed odd constant to the state and mixes
	it with two xorshift/multiply rounds. Without a seed, one is drawn from the
	system random source and kept on ``self.seed`` so the run can be repeated.
	"""

	def __init__ (self, seed: typing.Optional[int] = None) -> None:

		if seed is None:
			seed = random.randrange(2147483647)

		self.seed = seed
		self.state = seed & _MASK_32


	def next (self) -> float:

		"""
		Return the next value in [0, 1).
		"""

		self.state = (self.state + 0x6D2B79F5) & _MASK_32

		t = self.state
		t = _imul(t ^ (t >> 15), t | 1)
		t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK_32

		return ((t ^ (t >> 14)) & _MASK_32) / 4294967296.0


def choose_cumulative (options: typing.Sequence[typing.Tuple[StateType, float]], roll: float) -> StateType:

	"""
	Walk ``options`` in order and return the first whose running total exceeds ``roll``.

	If the probabilities never get past ``roll``, the first option is returned.
	"""

	if not options:
		raise ValueError("Options cannot be empty")

	cumulative = 0.0

	for option, probability in options:
		cumulative += probability
		if roll < cumulative:
			return option

	return options[0][0]


class MarkovChain (typing.Generic[StateType]):

	"""
	A Markov chain over arbitrary states driven by a :class:`SeededRandom`.

	A state with no outgoing transitions stays where it is.
	"""

	def __init__ (
		self,
		transitions: typing.Mapping[StateType, typing.Sequence[typing.Tuple[StateType, float]]],
		initial_state: StateType,
		rng: typing.Optional[SeededRandom] = None
	) -> None:

		"""
		Initialize the chain with transitions, a starting state and a random stream.
		"""

		self.transitions = transitions
		self.rng = rng or SeededRandom()
		self.state = initial_state


	def step (self) -> StateType:

		"""
		Advance to the next state and return it.
		"""

		options = self.transitions.get(self.state)

		if not options:
			return self.state

		self.state = choose_cumulative(options, self.rng.next())

		return self.state


	def get_state (self) -> StateType:

		"""
		Return the current state.
		"""

		return self.state


@dataclasses.dataclass(frozen=True)
class MarkovConfig:

	"""
	Settings for one generated Markov pattern.

	Parameters:
		states: The state alphabet, in order. Presets use this order to decide
			which states are neighbours.
		transitions: ``{state: {next_state: probability}}``. Takes precedence
			over ``preset``.
		preset: Name of a built-in transition table (see :func:`available_presets`).
		initial_state: Starting state; defaults to the first state.
		steps: Number of states to generate (at least 1).
		duration: One duration for every step, or a list cycled round-robin.
			Each value is a notation code (``"q"``, ``"8."``) or a number of beats.
		octave: Octave that scale degree 1 sits in.
		seed: Seed for reproducible output.
		constrain_to_scale: Snap out-of-scale pitches to the nearest scale tone.
		chord_scale: Chord symbol whose scale replaces the key for this pattern.
	"""

	states: typing.Sequence[str]
	transitions: typing.Optional[Transitions] = None
	preset: typing.Optional[str] = None
	initial_state: typing.Optional[str] = None
	steps: int = 16
	duration: typing.Union[DurationValue, typing.Sequence[DurationValue]] = "q"
	octave: int = DEFAULT_MARKOV_OCTAVE
	seed: typing.Optional[int] = None
	constrain_to_scale: bool = False
	chord_scale: typing.Optional[str] = None


	@classmethod
	def from_dict (cls, data: typing.Mapping[str, typing.Any]) -> "MarkovConfig":

		"""
		Build a config from a mapping. Both ``initial_state`` and ``initialState`` spellings are accepted.
		"""

		def get (name: str, camel: str, default: typing.Any = None) -> typing.Any:
			return data.get(name, data.get(camel, default))

		return cls(
			states=tuple(data.get("states", ())),
			transitions=data.get("transitions"),
			preset=data.get("preset"),
			initial_state=get("initial_state", "initialState"),
			steps=int(data.get("steps", 16)),
			duration=data.get("duration", "q"),
			octave=int(data.get("octave", DEFAULT_MARKOV_OCTAVE)),
			seed=data.get("seed"),
			constrain_to_scale=bool(get("constrain_to_scale", "constrainToScale", False)),
			chord_scale=get("chord_scale", "chordScale"),
		)


	def duration_cycle (self) -> typing.List[float]:

		"""
		Return the configured durations in beats, in cycling order.
		"""

		values = self.duration if isinstance(self.duration, (list, tuple)) else [self.duration]

		if not values:
			raise ValueError("Markov duration list cannot be empty")

		return [_duration_beats(value) for value in values]


	def step_durations (self) -> typing.List[float]:

		"""
		Return one duration per step, cycling the configured durations.
		"""

		cycle = self.duration_cycle()

		return [cycle[i % len(cycle)] for i in range(self.steps)]


@dataclasses.dataclass(frozen=True)
class GeneratedNote:

	"""
	One generated note. Rest steps produce no note but still take up time.
	"""

	pitch: str
	duration_beats: float
	start_beat: float
	velocity: float


	@property
	def midi (self) -> int:

		return scorecraft.pitch.pitch_to_midi(self.pitch)


@dataclasses.dataclass(frozen=True)
class StateSequence:

	"""
	The abstract output of the chain: one state and one duration per step, before any pitch is resolved.
	"""

	states: typing.Tuple[str, ...]
	durations: typing.Tuple[float, ...]


	def __len__ (self) -> int:

		return len(self.states)


	def start_beats (self) -> typing.List[float]:

		"""
		Return the start beat of every step.
		"""

		starts: typing.List[float] = []
		beat = 0.0

		for duration in self.durations:
			starts.append(beat)
			beat += duration

		return starts


	def total_beats (self) -> float:

		return float(sum(self.durations))


def _duration_beats (value: DurationValue) -> float:

	if isinstance(value, str):
		return scorecraft.notation.parse_duration(value)

	beats = float(value)

	if beats <= 0:
		raise ValueError(f"Markov durations must be positive, got {value!r}")

	return beats


# ---------------------------------------------------------------------------
# Presets
# ---------------------------------------------------------------------------

def _normalize (transitions: typing.Dict[str, typing.Dict[str, float]]) -> typing.Dict[str, typing.Dict[str, float]]:

	"""
	Scale every row to sum to 1.0; an all-zero row becomes uniform.
	"""

	normalized: typing.Dict[str, typing.Dict[str, float]] = {}

	for state, row in transitions.items():

		total = sum(row.values())

		if total == 0:
			normalized[state] = {target: 1.0 / len(row) for target in row}
		else:
			normalized[state] = {target: probability / total for target, probability in row.items()}

	return normalized


def _uniform (states: typing.Sequence[str]) -> typing.Dict[str, typing.Dict[str, float]]:

	"""
	Every state is equally likely from every state.
	"""

	probability = 1.0 / len(states)

	return {state: {target: probability for target in states} for state in states}


def _neighbor_weighted (states: typing.Sequence[str]) -> typing.Dict[str, typing.Dict[str, float]]:

	"""
	Weight 1 / (distance + 1) by position in the state list, so neighbours are favoured.
	"""

	transitions: typing.Dict[str, typing.Dict[str, float]] = {}

	for i, state in enumerate(states):
		transitions[state] = {target: 1.0 / (abs(i - j) + 1) for j, target in enumerate(states)}

	return _normalize(transitions)


def _walking_bass (states: typing.Sequence[str]) -> typing.Dict[str, typing.Dict[str, float]]:

	"""
	Strong pull back to the root, a preference for the fifth, and approach tones leading into both.
	"""

	has_approach = APPROACH_STATE in states
	spread = max(1, len(states) - 2)
	transitions: typing.Dict[str, typing.Dict[str, float]] = {}

	for state in states:

		row: typing.Dict[str, float] = {}

		if state == "1":

			others = [s for s in states if s != "1" and s != REST_STATE]
			each = 0.85 / len(others) if others else 0.0

			for target in states:
				if target == "1":
					row[target] = 0.1
				elif target == "5":
					row[target] = each + 0.05
				elif target == REST_STATE:
					row[target] = 0.05
				else:
					row[target] = each

		elif state == APPROACH_STATE:

			for target in states:
				if target == "1":
					row[target] = 0.6
				elif target == "5":
					row[target] = 0.3
				else:
					row[target] = 0.1 / spread

		elif state == REST_STATE:

			for target in states:
				if target == "1":
					row[target] = 0.5
				elif target == REST_STATE:
					row[target] = 0.1
				else:
					row[target] = 0.4 / spread

		else:

			remaining = 0.4 if has_approach else 0.6
			other_count = len([s for s in states if s not in ("1", APPROACH_STATE, state)])

			for target in states:
				if target == "1":
					row[target] = 0.35
				elif target == APPROACH_STATE:
					row[target] = 0.2
				elif target == state:
					row[target] = 0.05
				else:
					row[target] = remaining / max(1, other_count)

		transitions[state] = row

	return _normalize(transitions)


def _melody_stepwise (states: typing.Sequence[str]) -> typing.Dict[str, typing.Dict[str, float]]:

	"""
	Steps are most likely, skips less so, leaps rare; repeating a note is discouraged.
	"""

	transitions: typing.Dict[str, typing.Dict[str, float]] = {}

	for i, state in enumerate(states):

		row: typing.Dict[str, float] = {}

		for j, target in enumerate(states):

			distance = abs(i - j)

			if distance == 0:
				row[target] = 0.05
			elif distance == 1:
				row[target] = 0.35
			elif distance == 2:
				row[target] = 0.15
			else:
				row[target] = 0.05 / distance

		transitions[state] = row

	return _normalize(transitions)


def _root_heavy (states: typing.Sequence[str]) -> typing.Dict[str, typing.Dict[str, float]]:

	"""
	The root stays or moves to the fifth; everything else is pulled back to the root.
	"""

	spread = max(1, len(states) - 2)
	transitions: typing.Dict[str, typing.Dict[str, float]] = {}

	for state in states:

		row: typing.Dict[str, float] = {}

		for target in states:
			if state == "1":
				if target == "1":
					row[target] = 0.3
				elif target == "5":
					row[target] = 0.25
				else:
					row[target] = 0.45 / spread
			else:
				if target == "1":
					row[target] = 0.5
				elif target == state:
					row[target] = 0.1
				else:
					row[target] = 0.4 / spread

		transitions[state] = row

	return _normalize(transitions)


PRESETS: typing.Dict[str, typing.Callable[[typing.Sequence[str]], typing.Dict[str, typing.Dict[str, float]]]] = {
	"uniform": _uniform,
	"neighbor_weighted": _neighbor_weighted,
	"walking_bass": _walking_bass,
	"melody_stepwise": _melody_stepwise,
	"root_heavy": _root_heavy,
}


def available_presets () -> typing.List[str]:

	"""
	Return the names of the built-in transition presets.
	"""

	return list(PRESETS)


def is_valid_preset (name: str) -> bool:

	return name in PRESETS


def preset_transitions (name: str, states: typing.Sequence[str]) -> typing.Dict[str, typing.Dict[str, float]]:

	"""Build a preset's transition table for a list of states.

	Every row sums to 1.0. An unknown preset name falls back to ``uniform``
	with a warning.

	Example:
		```python
		table = preset_transitions("neighbor_weighted", ["1", "2", "3"])
		table["1"]["2"] > table["1"]["3"]  # → True
		```
	"""

	if not states:
		return {}

	generator = PRESETS.get(name)

	if generator is None:
		logger.warning(f"Unknown Markov preset {name!r}, using uniform")
		generator = _uniform

	return generator(states)


def resolve_transitions (config: MarkovConfig) -> typing.Dict[str, typing.Dict[str, float]]:

	"""
	Return the explicit transition table if there is one, otherwise the preset's, otherwise uniform.
	"""

	if config.transitions is not None:
		return {state: dict(row) for state, row in config.transitions.items()}

	if config.preset is not None and is_valid_preset(config.preset):
		return preset_transitions(config.preset, config.states)

	logger.warning("Markov config has no transitions or valid preset, using uniform distribution")

	return preset_transitions("uniform", config.states)


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

def generate_state_sequence (config: MarkovConfig, transitions: Transitions, rng: SeededRandom) -> StateSequence:

	"""Walk the chain and return exactly ``config.steps`` states.

	The first state is ``config.initial_state`` (or the first declared state).
	Each later state is chosen by :func:`choose_cumulative` over the current
	state's transitions in declared order.

	Raises:
		ValueError: If ``config.steps`` is less than 1 or there are no states.
	"""

	if config.steps < 1:
		raise ValueError(f"Markov steps must be at least 1, got {config.steps}")

	if not config.states:
		raise ValueError("Markov config has no states")

	table = {state: list(row.items()) for state, row in transitions.items()}
	chain: MarkovChain[str] = MarkovChain(table, config.initial_state or config.states[0], rng)

	states = [chain.get_state()]

	for _ in range(1, config.steps):
		states.append(chain.step())

	return StateSequence(states=tuple(states), durations=tuple(config.step_durations()))


def resolve_state (state: str, key: scorecraft.intervals.Key, octave: int) -> typing.Optional[str]:

	"""Resolve a single non-approach state to a pitch string.

	Returns ``None`` for ``"rest"`` and for unknown states (with a warning).
	Scale degrees are spelled with sharps; absolute pitches are returned as written.
	"""

	if state == REST_STATE or state == APPROACH_STATE:
		return None

	if _ABSOLUTE_PITCH_RE.match(state):
		return state

	match = _DEGREE_RE.match(state)

	if match is None:
		logger.warning(f"Unknown Markov state: {state!r}")
		return None

	accidental, degree = match.groups()
	midi = scorecraft.intervals.degree_to_midi(int(degree), key, octave, accidental)

	return scorecraft.pitch.midi_to_pitch(midi)


def constrain_pitch (pitch: str, key: scorecraft.intervals.Key) -> str:

	"""
	Snap a pitch into the key's scale, trying +1, -1, +2 and -2 semitones. Pitches already in the scale, or with no scale tone that close, are unchanged.
	"""

	midi = scorecraft.pitch.pitch_to_midi(pitch)
	snapped = scorecraft.intervals.quantize_pitch(midi, key.pitch_classes(), max_offset=SCALE_SNAP_DISTANCE)

	if snapped == midi:
		return pitch

	return scorecraft.pitch.midi_to_pitch(snapped)


def resolve_state_sequence (
	sequence: StateSequence,
	key: scorecraft.intervals.Key,
	octave: int = DEFAULT_MARKOV_OCTAVE,
	constrain_to_scale: bool = False,
	rng: typing.Optional[SeededRandom] = None
) -> typing.List[GeneratedNote]:

	"""Turn a state sequence into timed notes.

	Every state except ``approach`` is resolved first. An ``approach`` state then
	takes the pitch one semitone below the following step's pitch, or becomes a
	rest when there is no following pitch. Rests advance time without producing
	a note. Velocity jitter is drawn from ``rng`` once per emitted note, in order.
	"""

	rng = rng or SeededRandom()
	base = [resolve_state(state, key, octave) for state in sequence.states]
	starts = sequence.start_beats()
	notes: typing.List[GeneratedNote] = []

	for i, state in enumerate(sequence.states):

		pitch = base[i]

		if state == APPROACH_STATE:
			following = base[i + 1] if i + 1 < len(base) else None
			if following is not None:
				pitch = scorecraft.pitch.midi_to_pitch(scorecraft.pitch.pitch_to_midi(following) - 1)

		if pitch is None:
			continue

		if constrain_to_scale:
			pitch = constrain_pitch(pitch, key)

		notes.append(GeneratedNote(
			pitch=pitch,
			duration_beats=sequence.durations[i],
			start_beat=starts[i],
			velocity=BASE_VELOCITY + rng.next() * VELOCITY_JITTER,
		))

	return notes


def effective_key (config: MarkovConfig, key: typing.Union[str, scorecraft.intervals.Key]) -> scorecraft.intervals.Key:

	"""
	Return the chord scale when ``config.chord_scale`` is set, otherwise the given key.
	"""

	if config.chord_scale:
		return scorecraft.chords.chord_scale(config.chord_scale)

	if isinstance(key, scorecraft.intervals.Key):
		return key

	return scorecraft.intervals.parse_key(key)


def generate_markov_pattern (config: MarkovConfig, key: typing.Union[str, scorecraft.intervals.Key] = "C major") -> typing.List[GeneratedNote]:

	"""Generate a note sequence from a Markov configuration.

	Parameters:
		config: The chain, durations and options.
		key: Key used to resolve scale degrees, as text (``"A minor"``) or a
			:class:`~scorecraft.intervals.Key`. ``config.chord_scale`` overrides it.

	Returns:
		Notes in time order. Rest steps are skipped, so there may be fewer
		notes than steps.

	Example:
		```python
		config = MarkovConfig(states=("1",), transitions={"1": {"1": 1.0}}, steps=4, octave=4, seed=1)
		[n.pitch for n in generate_markov_pattern(config, "A minor")]  # → ["A4", "A4", "A4", "A4"]
		```
	"""

	if not config.states:
		logger.warning("Markov config has no states")
		return []

	scale_key = effective_key(config, key)
	rng = SeededRandom(config.seed)
	transitions = resolve_transitions(config)
	sequence = generate_state_sequence(config, transitions, rng)

	return resolve_state_sequence(sequence, scale_key, config.octave, config.constrain_to_scale, rng)


def validate_markov_config (config: MarkovConfig) -> typing.List[str]:

	"""Check a Markov configuration and return human-readable warnings.

	Nothing here is fatal; generation degrades on its own (dead-end states
	repeat, short rows fall back to their first target). The checks are:
	no states, neither transitions nor preset, unknown preset, rows not summing
	to 1.0, transitions into undeclared states, states without transitions and
	a step count below 1.
	"""

	warnings: typing.List[str] = []

	if not config.states:
		warnings.append("Markov config must have at least one state")

	if config.transitions is None and config.preset is None:
		warnings.append("Markov config must have transitions or preset")
		return warnings

	if config.preset is not None and not is_valid_preset(config.preset):
		warnings.append(
			f"Unknown Markov preset: {config.preset!r}. Valid presets: {', '.join(available_presets())}"
		)

	if config.transitions is not None:

		for state, row in config.transitions.items():

			total = sum(row.values())

			if abs(total - 1.0) > PROBABILITY_TOLERANCE:
				warnings.append(f"Transitions from state {state!r} sum to {total:.3f}, should be 1.0")

			for target in row:
				if target not in config.states and target not in (REST_STATE, APPROACH_STATE):
					warnings.append(f"State {state!r} has transition to unknown state {target!r}")

		for state in config.states:
			if state not in config.transitions:
				warnings.append(f"State {state!r} has no outgoing transitions")

	if config.steps < 1:
		warnings.append("Markov config must have at least 1 step")

	return warnings
