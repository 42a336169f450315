import numpy
import pytest

import scorecraft.chords
import scorecraft.voicings


def _intervals_hold (before: numpy.ndarray, after: numpy.ndarray, i: int, j: int, interval: int) -> bool:

	"""True if voices i and j hold ``interval`` (mod 12) across the move while moving the same way."""

	moving_i = numpy.sign(after[i] - before[i])
	moving_j = numpy.sign(after[j] - before[j])

	return (
		abs(int(before[j]) - int(before[i])) % 12 == interval
		and abs(int(after[j]) - int(after[i])) % 12 == interval
		and moving_i != 0
		and moving_i == moving_j
	)


def test_enumerate_voicings_covers_required_tones () -> None:

	"""The first candidate is the lowest voicing that contains root, third and fifth."""

	candidates = scorecraft.voicings.enumerate_voicings("C", [(48, 60), (60, 72), (64, 76)])

	assert candidates.shape[1] == 3
	assert list(candidates[0]) == [48, 64, 67]

	for row in candidates:
		assert {0, 4, 7} <= {int(midi) % 12 for midi in row}


def test_enumerate_voicings_limit_and_crossing () -> None:

	"""The cross product is capped, and crossing voicings can be excluded."""

	ranges = [scorecraft.voicings.DEFAULT_VOICE_RANGES[name] for name in scorecraft.voicings.VOICE_LAYOUTS[6]]

	capped = scorecraft.voicings.enumerate_voicings("Cmaj7", ranges)
	assert len(capped) == scorecraft.voicings.MAX_CANDIDATES

	ordered = scorecraft.voicings.enumerate_voicings("Cmaj7", ranges[:4], forbid_crossing=True)
	assert len(ordered) > 0
	assert numpy.all(ordered[:, :-1] < ordered[:, 1:])


def test_too_few_voices_gives_no_candidates () -> None:

	"""Two voices cannot hold the three required chord tones."""

	candidates = scorecraft.voicings.enumerate_voicings("C", [(48, 60), (60, 72)])

	assert candidates.shape == (0, 2)


def test_tendency_tones () -> None:

	"""Dominant sevenths have a leading tone and a seventh; major sevenths only a seventh."""

	assert scorecraft.voicings.tendency_tones(scorecraft.chords.Chord.from_symbol("G7")) == (11, 5)
	assert scorecraft.voicings.tendency_tones(scorecraft.chords.Chord.from_symbol("Cmaj7")) == (None, 11)
	assert scorecraft.voicings.tendency_tones(scorecraft.chords.Chord.from_symbol("C")) == (None, None)


def test_parallel_fifths_are_inadmissible () -> None:

	"""C-G moving up to D-A is a parallel fifth."""

	previous = numpy.array([[48, 55]])
	candidates = numpy.array([[50, 57], [50, 55]])

	admissible, score = scorecraft.voicings.score_transitions(
		previous,
		candidates,
		{scorecraft.voicings.NO_PARALLEL_FIFTHS, scorecraft.voicings.SMOOTH_MOTION},
	)

	assert admissible.shape == (1, 2)
	assert not admissible[0, 0]
	assert admissible[0, 1]
	assert score[0, 0] == -4.0
	assert score[0, 1] == -2.0


def test_parallel_octaves_are_inadmissible () -> None:

	"""C-C moving to D-D is a parallel octave; a static octave is not."""

	previous = numpy.array([[48, 60]])
	candidates = numpy.array([[50, 62], [48, 60]])

	admissible, _ = scorecraft.voicings.score_transitions(previous, candidates, {scorecraft.voicings.NO_PARALLEL_OCTAVES})

	assert list(admissible[0]) == [False, True]


def test_voice_crossing_is_inadmissible () -> None:

	"""A lower voice may not reach or pass the one above."""

	previous = numpy.array([[48, 60]])
	candidates = numpy.array([[60, 60], [52, 55]])

	admissible, _ = scorecraft.voicings.score_transitions(previous, candidates, {scorecraft.voicings.AVOID_VOICE_CROSSING})

	assert list(admissible[0]) == [False, True]


def test_similar_outer_motion_is_penalised () -> None:

	"""Bass and soprano moving the same way costs 10."""

	previous = numpy.array([[48, 64]])
	candidates = numpy.array([[50, 65], [50, 62]])

	_, score = scorecraft.voicings.score_transitions(previous, candidates, {scorecraft.voicings.CONTRARY_OUTER_MOTION})

	assert list(score[0]) == [-10.0, 0.0]


def test_unresolved_tendency_tones_are_penalised () -> None:

	"""After G7, B should rise to C and F should fall to E."""

	previous = numpy.array([[55, 59, 65]])
	candidates = numpy.array([[48, 60, 64], [48, 55, 67]])

	_, score = scorecraft.voicings.score_transitions(
		previous,
		candidates,
		{scorecraft.voicings.RESOLVE_LEADING_TONES, scorecraft.voicings.RESOLVE_SEVENTHS},
		scorecraft.chords.Chord.from_symbol("G7"),
	)

	assert list(score[0]) == [0.0, -10.0]


def test_bach_progression_avoids_parallels () -> None:

	"""A solved chorale-style progression has no parallel fifths or octaves."""

	config = scorecraft.voicings.VoiceLeadConfig(progression=("C", "F", "G", "C"), voices=4, style="bach")
	result = scorecraft.voicings.generate_voice_leading(config)

	assert result.voiced
	assert result.warnings == ()
	assert len(result.voicings) == 4

	midi = [numpy.array(voicing.midi) for voicing in result.voicings]

	for before, after in zip(midi, midi[1:]):
		for i in range(4):
			for j in range(i + 1, 4):
				assert not _intervals_hold(before, after, i, j, 7)
				assert not _intervals_hold(before, after, i, j, 0)


def test_voicings_do_not_cross () -> None:

	"""Every voice stays strictly above the one below it."""

	config = scorecraft.voicings.VoiceLeadConfig(progression=("Dm7", "G7", "Cmaj7"), voices=4, style="jazz")
	result = scorecraft.voicings.generate_voice_leading(config)

	assert result.voiced

	for voicing in result.voicings:
		assert voicing.midi == sorted(voicing.midi)
		assert len(set(voicing.midi)) == 4


def test_voices_stay_in_range () -> None:

	"""Each voice uses its own range, including overrides."""

	config = scorecraft.voicings.VoiceLeadConfig(
		progression=("Am", "Dm", "E7", "Am"),
		voices=3,
		style="pop",
		voice_ranges={"bass": ("A1", "A2")},
	)

	ranges = config.ranges()
	assert ranges[0] == (33, 45)

	result = scorecraft.voicings.generate_voice_leading(config)

	for voicing in result.voicings:
		for midi, (low, high) in zip(voicing.midi, ranges):
			assert low <= midi <= high


def test_unvoiceable_progression_falls_back () -> None:

	"""Two voices cannot voice a triad, so plain chords come back with a warning."""

	config = scorecraft.voicings.VoiceLeadConfig(progression=("C", "G"), voices=2, style="pop")
	result = scorecraft.voicings.generate_voice_leading(config)

	assert result.voiced is False
	assert result.voicings[0].notes == ("C3", "E3", "G3")
	assert any("Could not find" in w for w in result.warnings)


def test_style_constraints_are_unioned () -> None:

	"""Caller constraints add to the style's rules."""

	config = scorecraft.voicings.VoiceLeadConfig(
		progression=("C",),
		style="pop",
		constraints=(scorecraft.voicings.NO_PARALLEL_FIFTHS, scorecraft.voicings.SMOOTH_MOTION),
	)

	assert config.effective_constraints() == (scorecraft.voicings.SMOOTH_MOTION, scorecraft.voicings.NO_PARALLEL_FIFTHS)


def test_bad_config_raises () -> None:

	"""Voice count and style are validated."""

	with pytest.raises(ValueError):
		scorecraft.voicings.generate_voice_leading(scorecraft.voicings.VoiceLeadConfig(progression=("C",), voices=7))

	with pytest.raises(ValueError):
		scorecraft.voicings.generate_voice_leading(scorecraft.voicings.VoiceLeadConfig(progression=("C",), style="rock"))


def test_validate_voice_lead_config () -> None:

	"""Validation collects every problem."""

	config = scorecraft.voicings.VoiceLeadConfig(progression=(), voices=1, style="rock", constraints=("be_nice",))
	warnings = scorecraft.voicings.validate_voice_lead_config(config)

	assert len(warnings) == 4


def test_from_dict () -> None:

	"""Mappings build configs."""

	config = scorecraft.voicings.VoiceLeadConfig.from_dict({"progression": ["C", "G"], "voices": 3, "style": "bach"})

	assert config.progression == ("C", "G")
	assert config.voice_names() == ("bass", "alto", "soprano")


def test_forced_crossing_relaxes_instead_of_failing () -> None:

	"""When the ranges leave no uncrossed voicing, the progression is still voiced with a warning."""

	config = scorecraft.voicings.VoiceLeadConfig(
		progression=("C", "F"),
		voices=3,
		style="jazz",
		voice_ranges={"bass": (36, 48), "alto": (60, 72), "soprano": (48, 59)},
	)

	result = scorecraft.voicings.generate_voice_leading(config)

	assert result.voiced
	assert len(result.voicings) == 2
	assert "No valid voicings satisfy all constraints at chord 1" in result.warnings

	for voicing in result.voicings:
		for midi, (low, high) in zip(voicing.midi, config.ranges()):
			assert low <= midi <= high


def test_uncrossed_voicings_are_preferred_when_they_exist () -> None:

	"""Crossing voicings are only considered when nothing else fits."""

	ranges = [(48, 60), (52, 64), (55, 67)]
	path, warnings = scorecraft.voicings.find_best_voicing_sequence(
		[scorecraft.chords.Chord.from_symbol("C"), scorecraft.chords.Chord.from_symbol("F")],
		ranges,
		(scorecraft.voicings.AVOID_VOICE_CROSSING,),
	)

	assert warnings == []
	assert numpy.all(path[:, :-1] < path[:, 1:])


def test_unavoidable_parallel_fifths_are_relaxed () -> None:

	"""Tight ranges force C-E-G to D-F#-A; the move is taken with a penalty and a warning."""

	config = scorecraft.voicings.VoiceLeadConfig(
		progression=("C", "D"),
		voices=3,
		style="custom",
		constraints=(scorecraft.voicings.NO_PARALLEL_FIFTHS,),
		voice_ranges={"bass": (48, 50), "alto": (52, 54), "soprano": (55, 57)},
	)

	result = scorecraft.voicings.generate_voice_leading(config)

	assert result.voiced is True
	assert [voicing.notes for voicing in result.voicings] == [("C3", "E3", "G3"), ("D3", "F#3", "A3")]
	assert all(len(voicing.notes) == 3 for voicing in result.voicings)
	assert result.warnings == ("No valid voicings satisfy all constraints at chord 1",)
