"""Render configuration.

Rendering settings live in a YAML file (``config.yaml`` by default)::

	sample_rate: 44100
	bit_depth: 16
	channels: 1
	master_volume_db: -3.0
	envelope:
	  attack: 0.01
	  release: 0.2
	instruments:
	  bass:
	    volume_db: -6.0
	  pad:
	    envelope:
	      attack: 0.4
	      sustain: 0.8

Every key is optional. Unknown keys are logged and ignored; a missing file
gives the defaults.
"""

import dataclasses
import logging
import os
import typing

import yaml


logger = logging.getLogger(__name__)


DEFAULT_CONFIG_PATH = "config.yaml"

SUPPORTED_BIT_DEPTHS = (16, 24, 32)
SUPPORTED_CHANNELS = (1, 2)


@dataclasses.dataclass(frozen=True)
class Envelope:

	"""
	Attack/decay/release times in seconds and a sustain level (0–1).
	"""

	attack: float = 0.01
	decay: float = 0.1
	sustain: float = 0.7
	release: float = 0.1


	def __post_init__ (self) -> None:

		if self.attack < 0 or self.decay < 0 or self.release < 0:
			raise ValueError("Envelope times cannot be negative")

		if not 0.0 <= self.sustain <= 1.0:
			raise ValueError("Envelope sustain must be between 0.0 and 1.0")


	def merged (self, overrides: typing.Mapping[str, typing.Any]) -> "Envelope":

		"""
		Return a copy with any of attack/decay/sustain/release replaced.
		"""

		return dataclasses.replace(self, **_known_keys(overrides, Envelope, "envelope"))


@dataclasses.dataclass(frozen=True)
class InstrumentSettings:

	"""
	Per-instrument mix settings. ``envelope`` of ``None`` means the render default.
	"""

	volume_db: float = 0.0
	envelope: typing.Optional[Envelope] = None


@dataclasses.dataclass(frozen=True)
class RenderConfig:

	"""
	Everything the renderer needs to know besides the notes.

	Parameters:
		sample_rate: Samples per second.
		bit_depth: PCM sample size of the WAV output (16, 24 or 32).
		channels: 1 for mono, 2 for stereo (the mono mix is duplicated).
		tail_seconds: Silence added after the last event so releases can ring out.
		headroom: Peak level that the limiter scales the mix down to.
		fade_in: Fade-in length in seconds.
		fade_out: Fade-out length in seconds.
		master_volume_db: Gain applied to the whole mix.
		envelope: Default note envelope.
		instruments: Per-instrument settings keyed by instrument id.
	"""

	sample_rate: int = 44100
	bit_depth: int = 16
	channels: int = 1
	tail_seconds: float = 2.0
	headroom: float = 0.9
	fade_in: float = 0.01
	fade_out: float = 0.05
	master_volume_db: float = 0.0
	envelope: Envelope = dataclasses.field(default_factory=Envelope)
	instruments: typing.Mapping[str, InstrumentSettings] = dataclasses.field(default_factory=dict)


	def __post_init__ (self) -> None:

		if self.sample_rate <= 0:
			raise ValueError("sample_rate must be positive")

		if self.bit_depth not in SUPPORTED_BIT_DEPTHS:
			raise ValueError(f"bit_depth must be one of {SUPPORTED_BIT_DEPTHS}, got {self.bit_depth}")

		if self.channels not in SUPPORTED_CHANNELS:
			raise ValueError(f"channels must be one of {SUPPORTED_CHANNELS}, got {self.channels}")


	def instrument (self, name: typing.Optional[str]) -> InstrumentSettings:

		"""
		Return the settings for an instrument, or neutral settings if it has none.
		"""

		if name is None:
			return InstrumentSettings()

		return self.instruments.get(name, InstrumentSettings())


	def envelope_for (self, name: typing.Optional[str]) -> Envelope:

		"""
		Return the instrument's envelope, falling back to the default envelope.
		"""

		return self.instrument(name).envelope or self.envelope


	def instrument_gain (self, name: typing.Optional[str]) -> float:

		"""
		Return the instrument's volume as a linear gain.
		"""

		return db_to_gain(self.instrument(name).volume_db)


def db_to_gain (db: float) -> float:

	"""
	Convert decibels to a linear amplitude factor (0 dB → 1.0, -6 dB → ~0.5).
	"""

	return 10.0 ** (db / 20.0)


def _known_keys (data: typing.Mapping[str, typing.Any], cls: typing.Any, section: str) -> typing.Dict[str, typing.Any]:

	"""
	Keep the keys that name fields of ``cls`` and log the rest.
	"""

	names = {field.name for field in dataclasses.fields(cls)}
	known: typing.Dict[str, typing.Any] = {}

	for key, value in data.items():
		if key in names:
			known[key] = value
		else:
			logger.warning(f"Ignoring unknown {section} setting: {key!r}")

	return known


def config_from_dict (data: typing.Optional[typing.Mapping[str, typing.Any]]) -> RenderConfig:

	"""Build a :class:`RenderConfig` from parsed YAML (or any mapping).

	Raises:
		ValueError: If a value is out of range (bad bit depth, negative envelope time, ...).

	Example:
		```python
		config = config_from_dict({"sample_rate": 22050, "instruments": {"bass": {"volume_db": -6}}})
		config.instrument_gain("bass")  # → ~0.501
		```
	"""

	if not data:
		return RenderConfig()

	values = _known_keys(data, RenderConfig, "render")
	envelope = Envelope().merged(values.pop("envelope", None) or {})

	instruments: typing.Dict[str, InstrumentSettings] = {}

	for name, settings in (values.pop("instruments", None) or {}).items():

		settings = _known_keys(settings or {}, InstrumentSettings, f"instrument {name!r}")
		overrides = settings.get("envelope")

		instruments[name] = InstrumentSettings(
			volume_db=float(settings.get("volume_db", 0.0)),
			envelope=envelope.merged(overrides) if overrides else None,
		)

	return RenderConfig(envelope=envelope, instruments=instruments, **values)


def load_config (config_path: str = DEFAULT_CONFIG_PATH) -> RenderConfig:

	"""
	Load render settings from a YAML file, or the defaults if the file does not exist.
	"""

	if not os.path.exists(config_path):
		logger.warning(f"Config file {config_path} not found. Using defaults.")
		return RenderConfig()

	with open(config_path, "r") as f:
		data = yaml.safe_load(f)

	logger.info(f"Loaded render config from {config_path}")

	return config_from_dict(data)
