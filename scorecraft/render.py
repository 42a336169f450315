"""Mix a timeline of note events into a single audio buffer.

Each event is rendered on its own (a tone or a drum hit) and added into a
master buffer at its start sample. The master buffer covers the timeline plus
a tail so releases can ring out. After mixing, the whole buffer is scaled down
if its peak is above the headroom level, then short linear fades are applied
at both ends to avoid clicks.
"""

import dataclasses
import logging
import math
import typing

import numpy

import scorecraft.config
import scorecraft.notation
import scorecraft.pitch
import scorecraft.synth


logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class NoteEvent:

	"""
	One sounding event on the absolute timeline.

	Parameters:
		pitch: A pitch name (``"C4"``) or a drum token (``"drum:kick@909"``).
		time: Start time in seconds.
		duration: Length in seconds.
		velocity: 0.0–1.0.
		instrument: Instrument id, used to look up per-instrument mix settings.
	"""

	pitch: str
	time: float
	duration: float
	velocity: float = scorecraft.synth.DEFAULT_VELOCITY
	instrument: str = "default"


	@property
	def end (self) -> float:

		return self.time + self.duration


def events_from_notes (
	notes: typing.Sequence[scorecraft.notation.NoteOrRest],
	tempo: float,
	start: float = 0.0,
	instrument: str = "default",
	rng: typing.Optional[numpy.random.Generator] = None,
) -> typing.List[NoteEvent]:

	"""Place parsed notes and rests end to end on the timeline.

	Articulation gates shorten or lengthen the sounding note and add their
	velocity boost; timing offsets shift the start. A note with a play
	probability is only dropped when ``rng`` is given and the roll fails, so
	renders without a generator always contain every note.

	Parameters:
		notes: Output of :func:`scorecraft.notation.parse_notes`.
		tempo: Beats per minute.
		start: Time of the first note in seconds.
		instrument: Instrument id for every event.
		rng: Generator for probability rolls.
	"""

	events: typing.List[NoteEvent] = []
	time = start

	for note in notes:

		length = scorecraft.pitch.beats_to_seconds(note.duration_beats, tempo)

		if isinstance(note, scorecraft.notation.ParsedNote):

			skipped = note.probability is not None and rng is not None and rng.random() >= note.probability

			if not skipped:
				gate, boost = scorecraft.notation.get_articulation_modifiers(note.articulation)
				velocity = scorecraft.synth.DEFAULT_VELOCITY if note.velocity is None else note.velocity
				offset = (note.timing_offset_ms or 0) / 1000.0

				events.append(NoteEvent(
					pitch=note.pitch,
					time=time + offset,
					duration=length * gate,
					velocity=min(1.0, velocity + boost),
					instrument=instrument,
				))

		time += length

	return events


def render_event (
	event: NoteEvent,
	config: scorecraft.config.RenderConfig,
	rng: typing.Optional[numpy.random.Generator] = None,
) -> numpy.ndarray:

	"""
	Render a single event, including its instrument gain.
	"""

	if scorecraft.synth.is_drum_token(event.pitch):
		samples = scorecraft.synth.render_drum(
			event.pitch,
			event.duration,
			event.velocity,
			config.sample_rate,
			rng,
		)
	else:
		samples = scorecraft.synth.render_tone(
			event.pitch,
			event.duration,
			event.velocity,
			config.envelope_for(event.instrument),
			config.sample_rate,
		)

	return samples * config.instrument_gain(event.instrument)


def timeline_duration (events: typing.Iterable[NoteEvent]) -> float:

	"""
	Return the end time of the last event, or 0.0 for an empty timeline.

	Events with a non-finite end are ignored.
	"""

	return max((event.end for event in events if math.isfinite(event.end)), default=0.0)


def mix_into (buffer: numpy.ndarray, samples: numpy.ndarray, start: int) -> None:

	"""
	Add ``samples`` into ``buffer`` starting at sample ``start``, in place.

	Anything that falls before sample 0 or after the end of the buffer is dropped.
	"""

	if start < 0:
		samples = samples[-start:]
		start = 0

	end = min(len(buffer), start + len(samples))

	if end <= start:
		return

	buffer[start:end] += samples[:end - start]


def limit_peak (buffer: numpy.ndarray, headroom: float = 0.9) -> numpy.ndarray:

	"""
	Scale the whole buffer by ``headroom / peak`` if its peak exceeds ``headroom``.
	"""

	if buffer.size == 0:
		return buffer

	peak = float(numpy.max(numpy.abs(buffer)))

	if peak > headroom:
		logger.debug(f"Limiting peak {peak:.3f} to {headroom}")
		return buffer * (headroom / peak)

	return buffer


def apply_fades (
	buffer: numpy.ndarray,
	fade_in: float = 0.01,
	fade_out: float = 0.05,
	sample_rate: int = scorecraft.synth.DEFAULT_SAMPLE_RATE,
) -> numpy.ndarray:

	"""
	Apply linear fades of ``fade_in`` / ``fade_out`` seconds to a copy of ``buffer``.
	"""

	result = numpy.array(buffer, dtype=numpy.float64, copy=True)

	fade_in_samples = min(len(result), int(fade_in * sample_rate))
	fade_out_samples = min(len(result), int(fade_out * sample_rate))

	if fade_in_samples > 0:
		result[:fade_in_samples] *= numpy.linspace(0.0, 1.0, fade_in_samples, endpoint=False)

	if fade_out_samples > 0:
		result[-fade_out_samples:] *= numpy.linspace(1.0, 0.0, fade_out_samples)

	return result


def render_timeline (
	events: typing.Sequence[NoteEvent],
	config: typing.Optional[scorecraft.config.RenderConfig] = None,
	total_seconds: typing.Optional[float] = None,
	rng: typing.Optional[numpy.random.Generator] = None,
) -> numpy.ndarray:

	"""Render and mix a list of events into one mono float32 buffer.

	Parameters:
		events: Events with absolute times in seconds, in any order.
		config: Render settings; the defaults if omitted.
		total_seconds: Timeline length. Defaults to the end of the last event.
		rng: Noise source for drums. Pass a seeded generator for repeatable renders.

	Returns:
		``(total_seconds + config.tail_seconds) * sample_rate`` samples, peak-limited
		to ``config.headroom`` and faded in and out.

	Example:
		```python
		events = [NoteEvent("C4", 0.0, 0.5), NoteEvent("drum:kick", 0.0, 0.25)]
		buffer = render_timeline(events, rng=numpy.random.default_rng(1))
		```
	"""

	if config is None:
		config = scorecraft.config.RenderConfig()

	if total_seconds is None:
		total_seconds = timeline_duration(events)

	length = int(math.ceil((total_seconds + config.tail_seconds) * config.sample_rate))
	master = numpy.zeros(length, dtype=numpy.float64)

	for event in events:

		if not math.isfinite(event.time):
			logger.warning(f"Skipping {event.pitch!r} event with start time {event.time}")
			continue

		samples = render_event(event, config, rng)
		mix_into(master, samples, int(math.floor(event.time * config.sample_rate)))

	master *= scorecraft.config.db_to_gain(config.master_volume_db)

	master = limit_peak(master, config.headroom)
	master = apply_fades(master, config.fade_in, config.fade_out, config.sample_rate)

	logger.info(f"Rendered {len(events)} events into {length} samples ({length / config.sample_rate:.2f}s)")

	return master.astype(numpy.float32)
