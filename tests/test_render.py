import logging
import math

import numpy
import pytest

import scorecraft.config
import scorecraft.notation
import scorecraft.render


class _FixedRoll:

	"""Stands in for a generator whose every roll is the same value."""

	def __init__ (self, value: float) -> None:
		self.value = value

	def random (self) -> float:
		return self.value


def test_buffer_length_covers_timeline_and_tail (render_config: scorecraft.config.RenderConfig) -> None:

	"""The master buffer is ceil((total + tail) x sample rate) samples."""

	events = [scorecraft.render.NoteEvent("C4", 0.0, 0.5), scorecraft.render.NoteEvent("E4", 0.5, 0.5)]

	buffer = scorecraft.render.render_timeline(events, render_config)
	assert len(buffer) == math.ceil((1.0 + 0.5) * render_config.sample_rate)

	padded = scorecraft.render.render_timeline(events, render_config, total_seconds=1.25)
	assert len(padded) == math.ceil((1.25 + 0.5) * render_config.sample_rate)


def test_empty_timeline_is_silent_tail (render_config: scorecraft.config.RenderConfig) -> None:

	"""No events gives just the tail, all zeros."""

	buffer = scorecraft.render.render_timeline([], render_config)

	assert len(buffer) == int(0.5 * render_config.sample_rate)
	assert not numpy.any(buffer)


def test_loud_mix_is_limited (render_config: scorecraft.config.RenderConfig, rng: numpy.random.Generator) -> None:

	"""Stacked full-velocity notes never peak above the headroom."""

	pitches = ["C3", "E3", "G3", "C4", "E4", "G4", "C5", "drum:kick", "drum:snare"]
	events = [scorecraft.render.NoteEvent(pitch, 0.0, 0.5, velocity=1.0) for pitch in pitches]

	buffer = scorecraft.render.render_timeline(events, render_config, rng=rng)

	assert buffer.dtype == numpy.float32
	assert numpy.max(numpy.abs(buffer)) <= render_config.headroom + 1e-6
	assert numpy.max(numpy.abs(buffer)) > 0.5


def test_seeded_renders_are_identical (render_config: scorecraft.config.RenderConfig) -> None:

	"""The same seed gives the same drums."""

	events = [scorecraft.render.NoteEvent("drum:hh", 0.25 * i, 0.2) for i in range(4)]

	first = scorecraft.render.render_timeline(events, render_config, rng=numpy.random.default_rng(3))
	second = scorecraft.render.render_timeline(events, render_config, rng=numpy.random.default_rng(3))

	numpy.testing.assert_array_equal(first, second)


def test_mix_into_truncates_at_the_end () -> None:

	"""Samples past the end of the buffer are dropped."""

	buffer = numpy.zeros(10)
	scorecraft.render.mix_into(buffer, numpy.ones(5), 8)

	assert list(buffer[8:]) == [1.0, 1.0]
	assert buffer.sum() == 2.0


def test_mix_into_drops_samples_before_zero () -> None:

	"""A negative start keeps only the part that lands in the buffer."""

	buffer = numpy.zeros(10)
	scorecraft.render.mix_into(buffer, numpy.arange(1.0, 6.0), -3)

	assert list(buffer[:3]) == [4.0, 5.0, 0.0]


def test_mix_into_adds () -> None:

	"""Overlapping events sum."""

	buffer = numpy.zeros(4)
	scorecraft.render.mix_into(buffer, numpy.ones(4), 0)
	scorecraft.render.mix_into(buffer, numpy.ones(2), 1)
	scorecraft.render.mix_into(buffer, numpy.ones(2), 20)

	assert list(buffer) == [1.0, 2.0, 2.0, 1.0]


def test_limit_peak () -> None:

	"""Only buffers above the headroom are scaled, and then as a whole."""

	quiet = numpy.array([0.1, -0.5])
	loud = numpy.array([0.5, -2.0])

	numpy.testing.assert_array_equal(scorecraft.render.limit_peak(quiet, 0.9), quiet)
	numpy.testing.assert_allclose(scorecraft.render.limit_peak(loud, 0.9), [0.225, -0.9])


def test_fades_zero_the_ends () -> None:

	"""Linear fades start at silence and end at silence without touching the input."""

	buffer = numpy.ones(1000)
	faded = scorecraft.render.apply_fades(buffer, 0.01, 0.05, 8000)

	assert faded[0] == 0.0
	assert faded[40] == pytest.approx(0.5)
	assert faded[500] == 1.0
	assert faded[-1] == 0.0
	assert buffer[0] == 1.0


def test_instrument_volume (render_config: scorecraft.config.RenderConfig) -> None:

	"""An instrument at -6 dB renders at about half amplitude."""

	config = scorecraft.config.config_from_dict({
		"sample_rate": render_config.sample_rate,
		"instruments": {"bass": {"volume_db": -6.0}},
	})

	full = scorecraft.render.render_event(scorecraft.render.NoteEvent("C2", 0.0, 0.2), config)
	quiet = scorecraft.render.render_event(scorecraft.render.NoteEvent("C2", 0.0, 0.2, instrument="bass"), config)

	numpy.testing.assert_allclose(quiet, full * scorecraft.config.db_to_gain(-6.0))
	assert scorecraft.config.db_to_gain(-6.0) == pytest.approx(0.501, abs=1e-3)


def test_events_from_notes_places_notes_end_to_end () -> None:

	"""Rests take time; articulations gate and boost; offsets shift."""

	notes = scorecraft.notation.parse_notes(["C4:q* r:q D4:q>@0.9 E4:q+10ms"])
	events = scorecraft.render.events_from_notes(notes, tempo=120, instrument="lead")

	assert [event.pitch for event in events] == ["C4", "D4", "E4"]
	assert [event.time for event in events] == pytest.approx([0.0, 1.0, 1.51])

	staccato, accent, plain = events

	assert staccato.duration == pytest.approx(0.15)
	assert staccato.velocity == pytest.approx(0.8)
	assert accent.duration == pytest.approx(0.5)
	assert accent.velocity == pytest.approx(1.0)
	assert plain.end == pytest.approx(2.01)
	assert all(event.instrument == "lead" for event in events)


def test_events_from_notes_start_offset () -> None:

	"""The whole line can start later."""

	notes = scorecraft.notation.parse_notes(["C4:h"])
	events = scorecraft.render.events_from_notes(notes, tempo=60, start=3.0)

	assert events[0].time == 3.0
	assert events[0].duration == pytest.approx(2.0)


def test_probability_needs_a_generator () -> None:

	"""Without a generator every note plays; with one, failed rolls are skipped."""

	notes = scorecraft.notation.parse_notes(["C4:q?0.5 D4:q"])

	assert len(scorecraft.render.events_from_notes(notes, 120)) == 2
	assert [e.pitch for e in scorecraft.render.events_from_notes(notes, 120, rng=_FixedRoll(0.9))] == ["D4"]
	assert len(scorecraft.render.events_from_notes(notes, 120, rng=_FixedRoll(0.1))) == 2


def test_timeline_duration () -> None:

	"""The latest end wins, whatever the order."""

	events = [scorecraft.render.NoteEvent("C4", 2.0, 0.5), scorecraft.render.NoteEvent("C4", 0.0, 3.0)]

	assert scorecraft.render.timeline_duration(events) == 3.0
	assert scorecraft.render.timeline_duration([]) == 0.0


def test_bad_pitch_does_not_stop_the_render (render_config: scorecraft.config.RenderConfig, caplog: pytest.LogCaptureFixture) -> None:

	"""An unreadable pitch is played as middle C and the rest of the timeline still renders."""

	events = [scorecraft.render.NoteEvent("C4", 0.0, 0.5), scorecraft.render.NoteEvent("H4", 0.5, 0.5)]

	with caplog.at_level(logging.WARNING):
		buffer = scorecraft.render.render_timeline(events, render_config)

	assert len(buffer) == math.ceil((1.0 + 0.5) * render_config.sample_rate)
	assert numpy.max(numpy.abs(buffer[int(0.6 * render_config.sample_rate):int(0.9 * render_config.sample_rate)])) > 0.0
	assert "H4" in caplog.text


def test_non_finite_event_values_do_not_stop_the_render (render_config: scorecraft.config.RenderConfig) -> None:

	"""NaN durations are clamped and NaN start times are skipped."""

	events = [
		scorecraft.render.NoteEvent("C4", 0.0, float("nan")),
		scorecraft.render.NoteEvent("E4", float("nan"), 0.5),
		scorecraft.render.NoteEvent("G4", 0.0, 0.5, velocity=float("nan")),
	]

	buffer = scorecraft.render.render_timeline(events, render_config)

	assert scorecraft.render.timeline_duration(events) == 0.5
	assert len(buffer) == math.ceil((0.5 + 0.5) * render_config.sample_rate)
	assert numpy.all(numpy.isfinite(buffer))
	assert numpy.max(numpy.abs(buffer)) > 0.0
