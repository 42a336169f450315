import logging

import pytest

import scorecraft.markov_chain
import scorecraft.notation
import scorecraft.patterns


def test_note_pattern_length () -> None:

	"""Notes and rests add up, including dots and tuplets."""

	assert scorecraft.patterns.pattern_length({"notes": ["C4:q D4:q E4:h"]}) == 4.0
	assert scorecraft.patterns.pattern_length({"notes": ["C4:q.", "r:8", "E4:h"]}) == 4.0
	assert scorecraft.patterns.pattern_length({"notes": ["C4:8t3 D4:8t3 E4:8t3"]}) == pytest.approx(1.0)


def test_chord_pattern_length () -> None:

	"""Each chord contributes its own duration."""

	assert scorecraft.patterns.pattern_length({"chords": ["Dm7:w", "G7:h", "Cmaj7:h"]}) == 8.0


def test_markov_pattern_length () -> None:

	"""Markov patterns take one duration per step, cycled."""

	assert scorecraft.patterns.pattern_length({"markov": {"states": ["1", "5"], "steps": 8, "duration": "8"}}) == 4.0
	assert scorecraft.patterns.pattern_length({"markov": {"states": ["1"], "steps": 3, "duration": ["q", "8"]}}) == 2.5

	config = scorecraft.markov_chain.MarkovConfig(states=("1",), steps=4)
	assert scorecraft.patterns.pattern_length({"markov": config}) == 4.0


def test_markov_length_ends_at_the_last_note () -> None:

	"""Trailing rests and a silent final approach do not count."""

	rests = {
		"states": ["1", "rest"],
		"transitions": {"1": {"rest": 1.0}, "rest": {"1": 1.0}},
		"steps": 4,
		"seed": 1,
	}

	assert scorecraft.patterns.pattern_length({"markov": rests}) == 3.0

	approach = {
		"states": ["approach", "5"],
		"transitions": {"approach": {"5": 1.0}, "5": {"approach": 1.0}},
		"steps": 3,
		"seed": 1,
	}

	assert scorecraft.patterns.pattern_length({"markov": approach}) == 2.0


def test_markov_length_uses_the_context_key () -> None:

	"""The pattern is generated in the context key, so an unknown key is reported."""

	pattern = {"markov": {"states": ["1"], "steps": 4, "seed": 1}}

	assert scorecraft.patterns.pattern_length(pattern, scorecraft.patterns.PatternContext(key="F# minor")) == 4.0

	with pytest.raises(ValueError):
		scorecraft.patterns.pattern_length(pattern, scorecraft.patterns.PatternContext(key="Q lydian"))

	warning = scorecraft.patterns.bar_alignment_warning("odd", pattern, scorecraft.patterns.PatternContext(key="Q lydian"))
	assert warning is not None and "could not be measured" in warning


def test_voice_lead_pattern_length () -> None:

	"""Voice-led chords last a bar each."""

	assert scorecraft.patterns.pattern_length({"voice_lead": {"progression": ["C", "F", "G"]}}) == 12.0


def test_rest_pattern_length () -> None:

	"""A rest pattern is a duration code or a number of beats."""

	assert scorecraft.patterns.pattern_length({"rest": "h."}) == 3.0
	assert scorecraft.patterns.pattern_length({"rest": 8}) == 8.0


def test_contributions_are_summed () -> None:

	"""Every kind of content in one pattern counts."""

	pattern = {"notes": ["C4:w"], "chords": ["C:w"], "rest": "w"}

	assert scorecraft.patterns.pattern_length(pattern) == 12.0
	assert scorecraft.patterns.pattern_length({}) == 0.0


def test_pattern_seconds () -> None:

	"""Beats convert at the context tempo."""

	context = scorecraft.patterns.PatternContext(tempo=90)

	assert scorecraft.patterns.pattern_seconds({"notes": ["C4:w"]}, context) == pytest.approx(4 * 60 / 90)


def test_bad_tokens_raise () -> None:

	"""Length queries use the real grammar."""

	with pytest.raises(scorecraft.notation.NotationError):
		scorecraft.patterns.pattern_length({"notes": ["C4:q D4:x"]})


def test_is_bar_aligned () -> None:

	"""Whole bars, with a little floating point slack."""

	assert scorecraft.patterns.is_bar_aligned(8.0)
	assert scorecraft.patterns.is_bar_aligned(0.0)
	assert scorecraft.patterns.is_bar_aligned(6.0, beats_per_bar=3)
	assert scorecraft.patterns.is_bar_aligned(3 * (2 / 3) * 6)
	assert not scorecraft.patterns.is_bar_aligned(7.0)
	assert not scorecraft.patterns.is_bar_aligned(4.5)


def test_misaligned_pattern_warns () -> None:

	"""A pattern that stops mid-bar gets a warning naming it."""

	warning = scorecraft.patterns.bar_alignment_warning("verse", {"notes": ["C4:q D4:q E4:q"]})

	assert warning is not None
	assert "verse" in warning
	assert "3 beats" in warning


def test_aligned_and_empty_patterns_do_not_warn () -> None:

	"""Whole bars and empty patterns are fine."""

	assert scorecraft.patterns.bar_alignment_warning("chorus", {"chords": ["C:w", "G:w"]}) is None
	assert scorecraft.patterns.bar_alignment_warning("blank", {}) is None

	waltz = scorecraft.patterns.PatternContext(beats_per_bar=3)
	assert scorecraft.patterns.bar_alignment_warning("waltz", {"notes": ["C4:h. D4:h."]}, waltz) is None


def test_unparsable_pattern_is_reported (caplog: pytest.LogCaptureFixture) -> None:

	"""Parse errors become a warning instead of an exception."""

	with caplog.at_level(logging.WARNING):
		warning = scorecraft.patterns.bar_alignment_warning("broken", {"notes": ["C4:q Q9:q"]})

	assert warning is not None
	assert "could not be measured" in warning
	assert "broken" in caplog.text
