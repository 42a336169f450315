import numpy
import pytest

import scorecraft.config


# Short tail and a low sample rate keep render tests fast.
TEST_SAMPLE_RATE = 8000


@pytest.fixture
def rng () -> numpy.random.Generator:

	"""A seeded noise source so drum renders are repeatable."""

	return numpy.random.default_rng(1234)


@pytest.fixture
def render_config () -> scorecraft.config.RenderConfig:

	"""Render settings with a low sample rate and a short tail."""

	return scorecraft.config.RenderConfig(sample_rate=TEST_SAMPLE_RATE, tail_seconds=0.5)
