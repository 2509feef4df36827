"""Validated training and generation settings.

:class:`ImproviserConfig` gathers every parameter of a pipeline run and
rejects out-of-range values at construction, so nothing downstream ever sees
them.  Reinforcement values use the units of the interface controls;
:attr:`ImproviserConfig.boost_factor` and :attr:`ImproviserConfig.threshold`
give the values the model works with.

Settings can be loaded from YAML::

    predictability: 2
    boosting_steps: 4
    reinforcement: 150
    reinforcement_threshold: 50
    output_length: 800
    tempo: 110
    seed: 7
"""

import dataclasses
import logging
import os
import typing

import yaml

import improviser.constants
import improviser.errors
import improviser.reinforcement

if typing.TYPE_CHECKING:
	import improviser.store


logger = logging.getLogger(__name__)

SETTINGS_PREFIX = "settings."


@dataclasses.dataclass
class ImproviserConfig:

	"""
	All parameters of one train/boost/generate run.

	Parameters:
		predictability: Order of the base training pass (1-10).
		boosting_steps: Feedback iterations (0-15).
		reinforcement: Reinforcement factor in percent (100-200).
		reinforcement_threshold: Threshold in percent (0-100).
		output_length: Notes in the final pass (50-3000, multiple of 50).
		tempo: Output BPM (40-208).  Only the encoder uses it.
		intermediate_length: Notes generated at each boosting step.  ``None``
			uses ``output_length``.
		seed: Seed for the random number generator.  ``None`` is unseeded.
	"""

	predictability: int = improviser.constants.DEFAULT_PREDICTABILITY
	boosting_steps: int = improviser.constants.DEFAULT_BOOSTING_STEPS
	reinforcement: float = improviser.constants.DEFAULT_REINFORCEMENT
	reinforcement_threshold: float = improviser.constants.DEFAULT_REINFORCEMENT_THRESHOLD
	output_length: int = improviser.constants.DEFAULT_OUTPUT_LENGTH
	tempo: int = improviser.constants.DEFAULT_TEMPO
	intermediate_length: typing.Optional[int] = None
	seed: typing.Optional[int] = None

	def __post_init__ (self) -> None:

		if not _is_int(self.predictability) or not (
			improviser.constants.MIN_PREDICTABILITY <= self.predictability <= improviser.constants.MAX_PREDICTABILITY
		):
			raise improviser.errors.InvalidOrder(
				f"predictability must be an integer between {improviser.constants.MIN_PREDICTABILITY} "
				f"and {improviser.constants.MAX_PREDICTABILITY}, got {self.predictability!r}"
			)

		_check_int("boosting_steps", self.boosting_steps, improviser.constants.MIN_BOOSTING_STEPS, improviser.constants.MAX_BOOSTING_STEPS)
		_check_real("reinforcement", self.reinforcement, improviser.constants.MIN_REINFORCEMENT, improviser.constants.MAX_REINFORCEMENT)
		_check_real("reinforcement_threshold", self.reinforcement_threshold, improviser.constants.MIN_REINFORCEMENT_THRESHOLD, improviser.constants.MAX_REINFORCEMENT_THRESHOLD)
		_check_int("output_length", self.output_length, improviser.constants.MIN_OUTPUT_LENGTH, improviser.constants.MAX_OUTPUT_LENGTH)

		if self.output_length % improviser.constants.OUTPUT_LENGTH_STEP != 0:
			raise improviser.errors.InvalidConfig(
				f"output_length must be a multiple of {improviser.constants.OUTPUT_LENGTH_STEP}, got {self.output_length}"
			)

		_check_int("tempo", self.tempo, improviser.constants.MIN_TEMPO, improviser.constants.MAX_TEMPO)

		if self.intermediate_length is not None:

			if not _is_int(self.intermediate_length) or self.intermediate_length < 1:
				raise improviser.errors.InvalidConfig(f"intermediate_length must be a positive integer, got {self.intermediate_length!r}")

			# The last boosting step retrains at final_order, which needs final_order + 1 events.
			if self.boosting_steps > 0 and self.intermediate_length < self.final_order + 1:
				raise improviser.errors.InvalidConfig(
					f"intermediate_length must be at least {self.final_order + 1} to boost to order {self.final_order}, "
					f"got {self.intermediate_length}"
				)

		if self.seed is not None and not _is_int(self.seed):
			raise improviser.errors.InvalidConfig(f"seed must be an integer, got {self.seed!r}")

	@property
	def boost_factor (self) -> float:

		"""Reinforcement exponent, ``log2(reinforcement / 100)``."""

		return improviser.reinforcement.boost_factor_from_percent(self.reinforcement)

	@property
	def threshold (self) -> float:

		"""Reinforcement threshold as a probability."""

		return improviser.reinforcement.threshold_from_percent(self.reinforcement_threshold)

	@property
	def boosting_length (self) -> int:

		"""Length of each intermediate generation."""

		return self.intermediate_length if self.intermediate_length is not None else self.output_length

	@property
	def final_order (self) -> int:

		return self.predictability + self.boosting_steps

	def replace (self, **changes: typing.Any) -> "ImproviserConfig":

		"""Return a validated copy with some fields changed."""

		return dataclasses.replace(self, **changes)

	def to_dict (self) -> typing.Dict[str, typing.Any]:

		return dataclasses.asdict(self)

	@classmethod
	def from_dict (cls, data: typing.Optional[typing.Mapping[str, typing.Any]]) -> "ImproviserConfig":

		"""
		Build a config from a mapping, ignoring (and warning about) unknown keys.
		"""

		if not data:
			return cls()

		known = {field.name for field in dataclasses.fields(cls)}
		unknown = sorted(set(data) - known)

		if unknown:
			logger.warning(f"Ignoring unknown config keys: {unknown}")

		return cls(**{key: value for key, value in data.items() if key in known})

	@classmethod
	def from_store (cls, store: "improviser.store.KeyValueStore") -> "ImproviserConfig":

		"""
		Build a config from settings previously written by :meth:`save_to_store`.
		"""

		values = {}

		for field in dataclasses.fields(cls):
			value = store.get(SETTINGS_PREFIX + field.name)
			if value is not None:
				values[field.name] = value

		return cls(**values)

	def save_to_store (self, store: "improviser.store.KeyValueStore") -> None:

		"""
		Persist every setting to ``store``.
		"""

		with store.batch():
			for key, value in self.to_dict().items():
				store.set(SETTINGS_PREFIX + key, value)


def load_config (config_path: str = "improviser.yaml") -> ImproviserConfig:

	"""
	Load configuration from a YAML file.
	"""

	if not os.path.exists(config_path):
		logger.warning(f"Config file {config_path} not found. Using defaults.")
		return ImproviserConfig()

	with open(config_path, "r") as f:
		data = yaml.safe_load(f)

	if data is not None and not isinstance(data, dict):
		raise improviser.errors.InvalidConfig(f"Config file {config_path} must contain a mapping")

	return ImproviserConfig.from_dict(data)


def _is_int (value: typing.Any) -> bool:

	return isinstance(value, int) and not isinstance(value, bool)


def _check_int (name: str, value: typing.Any, low: int, high: int) -> None:

	if not _is_int(value) or not low <= value <= high:
		raise improviser.errors.InvalidConfig(f"{name} must be an integer between {low} and {high}, got {value!r}")


def _check_real (name: str, value: typing.Any, low: float, high: float) -> None:

	if isinstance(value, bool) or not isinstance(value, (int, float)) or not low <= value <= high:
		raise improviser.errors.InvalidConfig(f"{name} must be a number between {low} and {high}, got {value!r}")
