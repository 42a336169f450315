"""PCM WAV encoding and inspection.

Audio is written as a standard little-endian RIFF/WAVE file (``fmt`` chunk
followed by a ``data`` chunk) through libsndfile, so the output opens in any
generic WAV reader. Stereo output duplicates the mono mix into both channels.
"""

import dataclasses
import io
import logging
import os
import typing

import numpy
import soundfile

import scorecraft.config


logger = logging.getLogger(__name__)


PCM_SUBTYPES: typing.Dict[int, str] = {
	16: "PCM_16",
	24: "PCM_24",
	32: "PCM_32",
}

_SUBTYPE_BITS = {subtype: bits for bits, subtype in PCM_SUBTYPES.items()}


@dataclasses.dataclass(frozen=True)
class WavInfo:

	"""
	Header fields of a PCM WAV file. ``data_length`` is the size of the data chunk in bytes.
	"""

	sample_rate: int
	channels: int
	bit_depth: int
	data_length: int
	duration: float


def _subtype (bit_depth: int) -> str:

	if bit_depth not in PCM_SUBTYPES:
		raise ValueError(f"Unsupported bit depth {bit_depth}; expected one of {sorted(PCM_SUBTYPES)}")

	return PCM_SUBTYPES[bit_depth]


def _frames (samples: typing.Union[numpy.ndarray, typing.Sequence[float]], channels: int) -> numpy.ndarray:

	"""
	Shape mono samples as ``(frames, channels)`` float32, clipped to -1.0–1.0.
	"""

	if channels not in scorecraft.config.SUPPORTED_CHANNELS:
		raise ValueError(f"Unsupported channel count {channels}; expected one of {scorecraft.config.SUPPORTED_CHANNELS}")

	mono = numpy.clip(numpy.asarray(samples, dtype=numpy.float32).reshape(-1), -1.0, 1.0)

	if channels == 1:
		return mono

	return numpy.repeat(mono[:, numpy.newaxis], channels, axis=1)


def encode_wav (
	samples: typing.Union[numpy.ndarray, typing.Sequence[float]],
	sample_rate: int = 44100,
	bit_depth: int = 16,
	channels: int = 1,
) -> bytes:

	"""
	Encode mono float samples (-1.0–1.0) as PCM WAV bytes.

	Raises:
		ValueError: For a bit depth other than 16, 24 or 32, or a channel count other than 1 or 2.
	"""

	subtype = _subtype(bit_depth)
	frames = _frames(samples, channels)

	buffer = io.BytesIO()
	soundfile.write(buffer, frames, sample_rate, format="WAV", subtype=subtype)

	return buffer.getvalue()


def read_wav_info (data: bytes) -> WavInfo:

	"""
	Read the header of PCM WAV bytes.

	Raises:
		ValueError: If the data is not a PCM WAV file.
	"""

	try:
		info = soundfile.info(io.BytesIO(data))
	except RuntimeError as exc:
		raise ValueError(f"Not a readable WAV file: {exc}") from exc

	if info.subtype not in _SUBTYPE_BITS:
		raise ValueError(f"Unsupported WAV subtype {info.subtype}")

	bit_depth = _SUBTYPE_BITS[info.subtype]

	return WavInfo(
		sample_rate=info.samplerate,
		channels=info.channels,
		bit_depth=bit_depth,
		data_length=info.frames * info.channels * (bit_depth // 8),
		duration=info.frames / info.samplerate,
	)


def decode_wav (data: bytes) -> typing.Tuple[numpy.ndarray, int]:

	"""
	Decode WAV bytes to ``(samples, sample_rate)``.

	Samples are float32; mono files give a 1-D array, stereo ``(frames, 2)``.
	"""

	samples, sample_rate = soundfile.read(io.BytesIO(data), dtype="float32")

	return samples, sample_rate


def write_wav (
	path: typing.Union[str, os.PathLike],
	samples: typing.Union[numpy.ndarray, typing.Sequence[float]],
	sample_rate: int = 44100,
	bit_depth: int = 16,
	channels: int = 1,
) -> WavInfo:

	"""
	Encode samples and write them to ``path``. Returns the written header.
	"""

	data = encode_wav(samples, sample_rate, bit_depth, channels)

	with open(path, "wb") as f:
		f.write(data)

	info = read_wav_info(data)
	logger.info(f"Wrote {path} ({info.duration:.2f}s, {info.sample_rate} Hz, {info.bit_depth}-bit, {info.channels} ch)")

	return info


def write_render (path: typing.Union[str, os.PathLike], samples: numpy.ndarray, config: scorecraft.config.RenderConfig) -> WavInfo:

	"""
	Write a rendered buffer using the sample rate, bit depth and channels in ``config``.
	"""

	return write_wav(path, samples, config.sample_rate, config.bit_depth, config.channels)
