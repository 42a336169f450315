import numpy
import pytest

import scorecraft.config
import scorecraft.wav


@pytest.mark.parametrize("bit_depth", [16, 24, 32])
@pytest.mark.parametrize("channels", [1, 2])
def test_header_fields (bit_depth: int, channels: int) -> None:

	"""The header reports what was asked for, and the data size follows from it."""

	samples = numpy.linspace(-0.5, 0.5, 100)
	data = scorecraft.wav.encode_wav(samples, 8000, bit_depth, channels)

	info = scorecraft.wav.read_wav_info(data)

	assert info.sample_rate == 8000
	assert info.channels == channels
	assert info.bit_depth == bit_depth
	assert info.data_length == 100 * channels * bit_depth // 8
	assert info.duration == pytest.approx(100 / 8000)
	assert len(data) > info.data_length


def test_riff_container () -> None:

	"""Output is a RIFF/WAVE file."""

	data = scorecraft.wav.encode_wav([0.0] * 10)

	assert data[:4] == b"RIFF"
	assert data[8:12] == b"WAVE"
	assert b"fmt " in data
	assert b"data" in data


def test_decode_is_close_to_input () -> None:

	"""16-bit quantisation error stays within a couple of steps."""

	samples = numpy.array([0.0, 0.5, -0.5, 0.25, -0.999])
	decoded, sample_rate = scorecraft.wav.decode_wav(scorecraft.wav.encode_wav(samples, 22050))

	assert sample_rate == 22050
	assert decoded.shape == (5,)
	numpy.testing.assert_allclose(decoded, samples, atol=2.0 / 32768)


def test_stereo_duplicates_mono () -> None:

	"""Both channels carry the same mix."""

	decoded, _ = scorecraft.wav.decode_wav(scorecraft.wav.encode_wav([0.1, 0.2, 0.3], channels=2))

	assert decoded.shape == (3, 2)
	numpy.testing.assert_array_equal(decoded[:, 0], decoded[:, 1])


def test_out_of_range_samples_are_clipped () -> None:

	"""Values beyond full scale are clipped rather than wrapped."""

	decoded, _ = scorecraft.wav.decode_wav(scorecraft.wav.encode_wav([2.0, -2.0]))

	assert decoded[0] == pytest.approx(1.0, abs=1e-3)
	assert decoded[1] == pytest.approx(-1.0, abs=1e-3)


@pytest.mark.parametrize("bit_depth", [8, 12, 64])
def test_bad_bit_depth (bit_depth: int) -> None:

	"""Only 16, 24 and 32-bit PCM are written."""

	with pytest.raises(ValueError):
		scorecraft.wav.encode_wav([0.0], bit_depth=bit_depth)


def test_bad_channel_count () -> None:

	"""Mono or stereo only."""

	with pytest.raises(ValueError):
		scorecraft.wav.encode_wav([0.0], channels=6)


def test_garbage_is_not_a_wav () -> None:

	"""Unreadable bytes raise ValueError."""

	with pytest.raises(ValueError):
		scorecraft.wav.read_wav_info(b"not a wav file at all")


def test_write_wav (tmp_path) -> None:

	"""Files on disk match the in-memory encoding."""

	path = tmp_path / "out.wav"
	samples = numpy.zeros(4000, dtype=numpy.float32)

	info = scorecraft.wav.write_wav(path, samples, 8000, 24)

	assert path.read_bytes() == scorecraft.wav.encode_wav(samples, 8000, 24)
	assert info.duration == pytest.approx(0.5)
	assert info.bit_depth == 24


def test_write_render_uses_config (tmp_path) -> None:

	"""Sample rate, depth and channels come from the render config."""

	config = scorecraft.config.RenderConfig(sample_rate=8000, bit_depth=32, channels=2)
	info = scorecraft.wav.write_render(tmp_path / "render.wav", numpy.zeros(800), config)

	assert (info.sample_rate, info.bit_depth, info.channels) == (8000, 32, 2)
	assert info.data_length == 800 * 2 * 4
