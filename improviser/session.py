"""Train/generate session over MIDI material.

:class:`Improviser` is the object an application (or the command line) talks
to.  It follows the flow of the web interface: train a base model on
some files, then generate as often as you like with different boosting and
reinforcement settings, then download the result.

Only one pipeline runs on a session at a time.  A second call made while one
is running raises :class:`~improviser.errors.PipelineBusy`.  Models are
committed only when a run succeeds, so any error (including cancellation)
leaves the previously trained model in place.
"""

import asyncio
import contextlib
import dataclasses
import logging
import random
import threading
import typing

import improviser.booster
import improviser.config
import improviser.errors
import improviser.events
import improviser.generator
import improviser.markov_model
import improviser.midi_io
import improviser.sampler

if typing.TYPE_CHECKING:
	import improviser.store


logger = logging.getLogger(__name__)

TokenModel = improviser.markov_model.MarkovModel[improviser.events.Token]


@dataclasses.dataclass
class GenerationResult:

	"""
	The output of one generation run.
	"""

	events: typing.List[improviser.events.Event]
	tempo: int
	order: int

	def to_midi (self) -> bytes:

		"""Encode the events as a standard MIDI file."""

		return improviser.midi_io.encode(self.events, self.tempo)

	def save (self, path: str) -> None:

		improviser.midi_io.save(self.events, self.tempo, path)


class Improviser:

	"""
	Holds the trained models and settings for one user session.
	"""

	def __init__ (
		self,
		config: typing.Optional[improviser.config.ImproviserConfig] = None,
		store: typing.Optional["improviser.store.KeyValueStore"] = None,
		rng: typing.Optional[random.Random] = None
	) -> None:

		"""Create a session.

		Parameters:
			config: Settings.  Defaults to :class:`~improviser.config.ImproviserConfig` defaults.
			store: Optional store for decoded-file memoization and settings.
			rng: Random number generator used when ``config.seed`` is None.
				A seeded config gets a fresh generator per run instead, so
				repeated runs with the same inputs give the same output.
		"""

		self._config = config if config is not None else improviser.config.ImproviserConfig()
		self.store = store
		self._rng = rng if rng is not None else random.Random()
		self._lock = threading.Lock()

		self._base_model: typing.Optional[TokenModel] = None
		self._model: typing.Optional[TokenModel] = None


	@property
	def config (self) -> improviser.config.ImproviserConfig:

		return self._config


	def configure (self, **changes: typing.Any) -> improviser.config.ImproviserConfig:

		"""Change settings.  Changing the predictability discards the trained models.

		Invalid values raise before anything changes.
		"""

		config = self._config.replace(**changes)

		with self._single_flight():

			if config.predictability != self._config.predictability and self._base_model is not None:
				logger.info(f"Predictability changed to {config.predictability}; retraining required")
				self._base_model = None
				self._model = None

			self._config = config

		return config


	@property
	def predictability (self) -> int:

		return self._config.predictability


	def set_predictability (self, predictability: int) -> None:

		self.configure(predictability=predictability)


	@property
	def is_trained (self) -> bool:

		return self._base_model is not None


	@property
	def base_model (self) -> typing.Optional[TokenModel]:

		return self._base_model


	@property
	def model (self) -> typing.Optional[TokenModel]:

		"""The most recently committed model: the boosted model after a generation, else the base model."""

		return self._model if self._model is not None else self._base_model


	def train_base (
		self,
		sequences: typing.Sequence[typing.Sequence[improviser.events.Event]],
		cancel: typing.Optional[improviser.errors.CancelToken] = None
	) -> TokenModel:

		"""
		Train and commit the base model at the configured predictability.
		"""

		with self._single_flight():

			improviser.errors.raise_if_cancelled(cancel)

			logger.info(f"Training base model at order {self._config.predictability} on {len(sequences)} sequence(s)")

			tokens = [improviser.events.tokenize(sequence) for sequence in sequences]
			model: TokenModel = improviser.markov_model.MarkovModel(self._config.predictability).train_base(tokens)

			improviser.errors.raise_if_cancelled(cancel)

			self._base_model = model
			self._model = None

			logger.info(f"Done training: {model!r}, {len(model.vocabulary)} distinct notes")

			return model


	def train_files (
		self,
		paths: typing.Sequence[str],
		cancel: typing.Optional[improviser.errors.CancelToken] = None
	) -> TokenModel:

		"""
		Decode MIDI files (memoized in the session store, if any) and train on them.
		"""

		sequences = improviser.midi_io.load_sequences(paths, store=self.store)

		return self.train_base(sequences, cancel=cancel)


	def generate (self, cancel: typing.Optional[improviser.errors.CancelToken] = None) -> GenerationResult:

		"""Boost the base model and generate the final sequence.

		Raises:
			NotTrained: If no base model has been trained.
			EmptyTrainingSet: If an intermediate generation is too short to retrain on.
			Cancelled: If ``cancel`` is set during the run.
		"""

		with self._single_flight():

			if self._base_model is None:
				raise improviser.errors.NotTrained("Train a base model before generating")

			config = self._config
			generator = improviser.generator.Generator(improviser.sampler.Sampler(rng=self._run_rng()))
			booster = improviser.booster.OrderBooster(generator)

			logger.info(f"Generating {config.output_length} notes at order {config.final_order} ({config.boosting_steps} boosting step(s))")

			model = booster.boost_model(
				self._base_model,
				config.boosting_steps,
				config.boosting_length,
				config.boost_factor,
				config.threshold,
				cancel = cancel
			)

			tokens = generator.run(model, config.output_length, config.boost_factor, config.threshold, cancel=cancel)

			self._model = model

			logger.info("Done generating")

			return GenerationResult(events=improviser.events.detokenize(tokens), tempo=config.tempo, order=model.order)


	def generate_midi (self, cancel: typing.Optional[improviser.errors.CancelToken] = None) -> bytes:

		"""
		Generate and return the result as MIDI file bytes.
		"""

		return self.generate(cancel=cancel).to_midi()


	async def train_base_async (
		self,
		sequences: typing.Sequence[typing.Sequence[improviser.events.Event]],
		cancel: typing.Optional[improviser.errors.CancelToken] = None
	) -> TokenModel:

		"""Run :meth:`train_base` in a worker thread."""

		return await asyncio.to_thread(self.train_base, sequences, cancel)


	async def generate_async (self, cancel: typing.Optional[improviser.errors.CancelToken] = None) -> GenerationResult:

		"""Run :meth:`generate` in a worker thread."""

		return await asyncio.to_thread(self.generate, cancel)


	def save_settings (self) -> None:

		"""
		Persist the current settings to the session store.
		"""

		if self.store is None:
			raise ValueError("Session has no store to save settings to")

		self._config.save_to_store(self.store)


	def _run_rng (self) -> random.Random:

		if self._config.seed is not None:
			return random.Random(self._config.seed)

		return self._rng


	@contextlib.contextmanager
	def _single_flight (self) -> typing.Iterator[None]:

		if not self._lock.acquire(blocking=False):
			raise improviser.errors.PipelineBusy("A pipeline is already running on this session")

		try:
			yield
		finally:
			self._lock.release()
