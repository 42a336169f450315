"""Offline sample synthesis.

Pitched notes are an additive tone (a fundamental plus three harmonics) under
an ADSR envelope. Drum tokens (``drum:<name>`` or ``drum:<name>@<kit>``) are
routed to small dedicated generators built from two primitives: a pitched
membrane with an exponential pitch glide, and an enveloped white noise burst.

All generators return float64 numpy arrays. Nothing here can fail on musical
input: unknown drums become a short noise burst, durations are clamped to a
minimum and velocities to 0.0–1.0.

Noise uses a ``numpy.random.Generator``. Pass a seeded one for repeatable drum
renders; without one each call draws fresh noise.
"""

import dataclasses
import functools
import logging
import math
import re
import types
import typing

import numpy

import scorecraft.config
import scorecraft.pitch


logger = logging.getLogger(__name__)


DEFAULT_SAMPLE_RATE = 44100
DEFAULT_VELOCITY = 0.8

# Shortest note that will be rendered, in seconds.
MIN_DURATION = 0.01

# Relative amplitudes of harmonics 1..4 and the overall scale of the sum.
HARMONIC_AMPLITUDES = (1.0, 0.3, 0.15, 0.08)
TONE_GAIN = 0.4

DRUM_PREFIX = "drum:"
DEFAULT_KIT = "909"

# Decay of the noise burst used for drums with no generator.
FALLBACK_NOISE_DECAY = 0.08

# Played in place of a pitch that cannot be read.
FALLBACK_MIDI = 60

_DRUM_TOKEN_RE = re.compile(r"^drum:([^@\s]+)(?:@(\S+))?$")


@dataclasses.dataclass(frozen=True)
class DrumToken:

	"""
	A parsed ``drum:<name>[@<kit>]`` token. ``name`` is already alias-normalised.
	"""

	name: str
	kit: str = DEFAULT_KIT


def _as_rng (rng: typing.Optional[numpy.random.Generator]) -> numpy.random.Generator:

	return rng if rng is not None else numpy.random.default_rng()


def _num_samples (duration: float, sample_rate: int) -> int:

	return max(0, int(math.floor(duration * sample_rate)))


def _clamp_velocity (velocity: float) -> float:

	velocity = float(velocity)

	if not math.isfinite(velocity):
		return 0.0

	return min(1.0, max(0.0, velocity))


def _clamp_duration (duration: float) -> float:

	if not math.isfinite(duration) or duration < MIN_DURATION:
		logger.debug(f"Clamping duration {duration} to {MIN_DURATION}")
		return MIN_DURATION

	return float(duration)


# ---------------------------------------------------------------------------
# Pitched tones
# ---------------------------------------------------------------------------

def _tone_midi (pitch: typing.Union[str, int]) -> int:

	try:
		return scorecraft.pitch.pitch_to_midi(pitch) if isinstance(pitch, str) else int(pitch)
	except (TypeError, ValueError, OverflowError):
		logger.warning(f"Unreadable pitch {pitch!r}, playing MIDI {FALLBACK_MIDI} instead")
		return FALLBACK_MIDI


def adsr_envelope (
	num_samples: int,
	envelope: scorecraft.config.Envelope,
	sample_rate: int = DEFAULT_SAMPLE_RATE,
	release_start: typing.Optional[int] = None,
) -> numpy.ndarray:

	"""
	Build a linear ADSR amplitude curve of ``num_samples`` values.

	Attack ramps 0 → 1, decay falls to the sustain level, sustain holds, and
	release falls linearly to 0 over ``envelope.release`` seconds. The release
	begins at ``release_start`` (a sample index); by default it is placed so
	that it finishes exactly at the end of the buffer. The sustain segment
	shrinks to nothing when the note is shorter than attack + decay.
	"""

	attack = int(math.floor(envelope.attack * sample_rate))
	decay = int(math.floor(envelope.decay * sample_rate))
	release = int(math.floor(envelope.release * sample_rate))

	if release_start is None:
		release_start = num_samples - release

	sustain_end = max(attack + decay, release_start)

	index = numpy.arange(num_samples, dtype=numpy.float64)
	curve = numpy.full(num_samples, envelope.sustain, dtype=numpy.float64)

	if attack > 0:
		in_attack = index < attack
		curve[in_attack] = index[in_attack] / attack

	if decay > 0:
		in_decay = (index >= attack) & (index < attack + decay)
		progress = (index[in_decay] - attack) / decay
		curve[in_decay] = 1.0 - (1.0 - envelope.sustain) * progress

	in_release = index >= sustain_end

	if release > 0:
		progress = (index[in_release] - sustain_end) / release
		curve[in_release] = envelope.sustain * numpy.clip(1.0 - progress, 0.0, 1.0)
	else:
		curve[in_release] = 0.0

	return curve


def render_tone (
	pitch: typing.Union[str, int],
	duration: float,
	velocity: float = DEFAULT_VELOCITY,
	envelope: typing.Optional[scorecraft.config.Envelope] = None,
	sample_rate: int = DEFAULT_SAMPLE_RATE,
) -> numpy.ndarray:

	"""Render one pitched note.

	The buffer is ``duration + release`` seconds long (rounded to the nearest
	sample) so the release always completes after the nominal end of the note.

	Parameters:
		pitch: A pitch name such as ``"C4"`` or a MIDI note number. Unreadable
			pitches are logged and played as middle C.
		duration: Nominal note length in seconds (clamped to at least 10 ms).
		velocity: Amplitude scale, clamped to 0.0–1.0.
		envelope: ADSR settings; the default envelope if omitted.
		sample_rate: Samples per second.

	Example:
		```python
		samples = render_tone("A4", 0.5)
		len(samples)  # → round((0.5 + 0.1) * 44100) = 26460
		```
	"""

	if envelope is None:
		envelope = scorecraft.config.Envelope()

	midi = _tone_midi(pitch)
	frequency = scorecraft.pitch.midi_to_frequency(midi)

	duration = _clamp_duration(duration)
	velocity = _clamp_velocity(velocity)

	num_samples = int(round((duration + envelope.release) * sample_rate))
	t = numpy.arange(num_samples, dtype=numpy.float64) / sample_rate

	wave = numpy.zeros(num_samples, dtype=numpy.float64)

	for harmonic, amplitude in enumerate(HARMONIC_AMPLITUDES, start=1):
		wave += amplitude * numpy.sin(2.0 * numpy.pi * frequency * harmonic * t)

	curve = adsr_envelope(
		num_samples,
		envelope,
		sample_rate,
		release_start=int(round(duration * sample_rate)),
	)

	return wave * TONE_GAIN * curve * velocity


# ---------------------------------------------------------------------------
# Percussion primitives
# ---------------------------------------------------------------------------

def _percussive_envelope (t: numpy.ndarray, attack: float, decay: float) -> numpy.ndarray:

	"""
	Linear attack then exponential decay, both in seconds.
	"""

	tail = numpy.exp(-(t - attack) / decay)

	if attack <= 0:
		return tail

	return numpy.where(t < attack, t / attack, tail)


def membrane (
	num_samples: int,
	velocity: float,
	sample_rate: int = DEFAULT_SAMPLE_RATE,
	pitch: str = "C2",
	pitch_decay: float = 0.05,
	octaves: float = 4.0,
	attack: float = 0.001,
	decay: float = 0.4,
) -> numpy.ndarray:

	"""
	A sine whose pitch starts ``octaves`` above ``pitch`` and glides down to it.

	The glide follows ``2 ** (octaves * exp(-t / pitch_decay))`` and the phase is
	accumulated sample by sample so the glide stays continuous.
	"""

	base = scorecraft.pitch.pitch_to_frequency(pitch)
	t = numpy.arange(num_samples, dtype=numpy.float64) / sample_rate

	frequency = base * numpy.power(2.0, octaves * numpy.exp(-t / pitch_decay))
	phase = numpy.cumsum(2.0 * numpy.pi * frequency / sample_rate)

	return numpy.sin(phase) * _percussive_envelope(t, attack, decay) * velocity


def noise_burst (
	num_samples: int,
	velocity: float,
	sample_rate: int = DEFAULT_SAMPLE_RATE,
	rng: typing.Optional[numpy.random.Generator] = None,
	attack: float = 0.001,
	decay: float = 0.2,
) -> numpy.ndarray:

	"""
	White noise under a fast attack and exponential decay.
	"""

	t = numpy.arange(num_samples, dtype=numpy.float64) / sample_rate
	white = _as_rng(rng).uniform(-1.0, 1.0, num_samples)

	return white * _percussive_envelope(t, attack, decay) * velocity


# ---------------------------------------------------------------------------
# Drum generators
# ---------------------------------------------------------------------------

DrumGenerator = typing.Callable[[int, float, int, numpy.random.Generator], numpy.ndarray]


def _kick (num_samples: int, velocity: float, sample_rate: int, rng: numpy.random.Generator) -> numpy.ndarray:

	return membrane(num_samples, velocity, sample_rate, pitch="C2", pitch_decay=0.015, octaves=3.0, decay=0.3)


def _snare (num_samples: int, velocity: float, sample_rate: int, rng: numpy.random.Generator) -> numpy.ndarray:

	body = membrane(num_samples, velocity, sample_rate, pitch="E3", pitch_decay=0.01, octaves=1.0, decay=0.1)
	rattle = noise_burst(num_samples, velocity, sample_rate, rng, decay=0.12)

	return 0.4 * body + 0.6 * rattle


def _hihat (num_samples: int, velocity: float, sample_rate: int, rng: numpy.random.Generator, decay: float = 0.04) -> numpy.ndarray:

	return 0.6 * noise_burst(num_samples, velocity, sample_rate, rng, attack=0.0005, decay=decay)


def _clap (num_samples: int, velocity: float, sample_rate: int, rng: numpy.random.Generator) -> numpy.ndarray:

	"""
	Three quick noise bursts 10 ms apart, the last one left to ring.
	"""

	t = numpy.arange(num_samples, dtype=numpy.float64) / sample_rate
	offsets = (0.0, 0.01, 0.02)

	curve = numpy.zeros(num_samples, dtype=numpy.float64)

	for i, offset in enumerate(offsets):
		decay = 0.15 if i == len(offsets) - 1 else 0.008
		started = t >= offset
		curve[started] += numpy.exp(-(t[started] - offset) / decay)

	curve = numpy.minimum(curve, 1.0)
	white = rng.uniform(-1.0, 1.0, num_samples)

	return 0.8 * white * curve * velocity


def _tom (num_samples: int, velocity: float, sample_rate: int, rng: numpy.random.Generator, pitch: str = "G2") -> numpy.ndarray:

	return membrane(num_samples, velocity, sample_rate, pitch=pitch, pitch_decay=0.02, octaves=1.5, decay=0.3)


def _fallback (num_samples: int, velocity: float, sample_rate: int, rng: numpy.random.Generator) -> numpy.ndarray:

	return noise_burst(num_samples, velocity, sample_rate, rng, decay=FALLBACK_NOISE_DECAY)


DRUM_GENERATORS: typing.Mapping[str, DrumGenerator] = types.MappingProxyType({
	"kick": _kick,
	"snare": _snare,
	"hihat": _hihat,
	"hihat_open": functools.partial(_hihat, decay=0.3),
	"clap": _clap,
	"tom": _tom,
	"tom_mid": functools.partial(_tom, pitch="B2"),
	"tom_hi": functools.partial(_tom, pitch="D3"),
})

DRUM_ALIASES: typing.Mapping[str, str] = types.MappingProxyType({
	"bd": "kick",
	"bassdrum": "kick",
	"bass_drum": "kick",
	"sd": "snare",
	"hh": "hihat",
	"ch": "hihat",
	"closedhat": "hihat",
	"closed_hat": "hihat",
	"closed_hihat": "hihat",
	"oh": "hihat_open",
	"openhat": "hihat_open",
	"open_hat": "hihat_open",
	"open_hihat": "hihat_open",
	"cp": "clap",
	"tom_lo": "tom",
	"tom_low": "tom",
	"tomlo": "tom",
	"tommid": "tom_mid",
	"tomhi": "tom_hi",
	"tom_high": "tom_hi",
})


def normalize_drum_name (name: str) -> str:

	"""
	Lower-case a drum name and resolve aliases (``"BD"`` → ``"kick"``).
	"""

	lower = name.lower()

	return DRUM_ALIASES.get(lower, lower)


def is_drum_token (pitch: str) -> bool:

	return pitch.startswith(DRUM_PREFIX)


def parse_drum_token (token: str) -> typing.Optional[DrumToken]:

	"""
	Parse ``drum:<name>[@<kit>]``. Returns None if the token is not of that form.
	"""

	match = _DRUM_TOKEN_RE.match(token)

	if match is None:
		return None

	name, kit = match.groups()

	return DrumToken(name=normalize_drum_name(name), kit=kit or DEFAULT_KIT)


def render_drum (
	token: str,
	duration: float,
	velocity: float = DEFAULT_VELOCITY,
	sample_rate: int = DEFAULT_SAMPLE_RATE,
	rng: typing.Optional[numpy.random.Generator] = None,
) -> numpy.ndarray:

	"""
	Render a drum token for ``duration`` seconds.

	Malformed tokens and drums without a generator render as a short noise
	burst and log a warning. The kit name is accepted but every kit shares the
	same generators.
	"""

	duration = _clamp_duration(duration)
	velocity = _clamp_velocity(velocity)
	num_samples = _num_samples(duration, sample_rate)
	rng = _as_rng(rng)

	drum = parse_drum_token(token)

	if drum is None:
		logger.warning(f"Malformed drum token {token!r}, using a noise burst")
		return _fallback(num_samples, velocity, sample_rate, rng)

	generator = DRUM_GENERATORS.get(drum.name)

	if generator is None:
		logger.warning(f"Unknown drum {drum.name!r} in kit {drum.kit!r}, using a noise burst")
		return _fallback(num_samples, velocity, sample_rate, rng)

	return generator(num_samples, velocity, sample_rate, rng)
