import logging
import random
import typing

import improviser.errors
import improviser.markov_model
import improviser.reinforcement


logger = logging.getLogger(__name__)

StateType = typing.TypeVar("StateType", bound=typing.Hashable)


def choose_weighted (options: typing.Sequence[typing.Tuple[StateType, float]], rng: random.Random) -> StateType:

	"""
	Choose one item from a list of weighted options.

	Weights are relative and need not sum to 1.0; zero weights are never chosen.
	"""

	if not options:
		raise ValueError("Options cannot be empty")

	total_weight = 0.0

	for _, weight in options:
		if weight < 0:
			raise ValueError("Weights must not be negative")
		total_weight += weight

	if total_weight <= 0:
		raise ValueError("Total weight must be positive")

	roll = rng.random() * total_weight
	accum = 0.0

	for option, weight in options:
		accum += weight
		if weight > 0 and roll < accum:
			return option

	# Floating point shortfall: fall back to the last option that can be chosen.
	for option, weight in reversed(options):
		if weight > 0:
			return option

	return options[-1][0]


class Sampler:

	"""
	Draws states from distributions using an injected random number generator.

	The generator is the only source of randomness, so a seeded sampler
	reproduces the same draws for the same inputs.
	"""

	def __init__ (self, rng: typing.Optional[random.Random] = None, seed: typing.Optional[int] = None) -> None:

		"""
		Use ``rng`` if given, otherwise a new generator seeded with ``seed``.
		"""

		if rng is not None and seed is not None:
			raise ValueError("Pass either rng or seed, not both")

		self.rng = rng if rng is not None else random.Random(seed)

		# Number of context shortenings needed by the most recent draw().
		self.last_fallback_depth: int = 0


	def sample (self, distribution: typing.Mapping[StateType, float]) -> StateType:

		"""
		Make one weighted draw.  Raises NoTrainingData when there is nothing to draw from.
		"""

		if not distribution:
			raise improviser.errors.NoTrainingData("Cannot sample from an empty distribution")

		return choose_weighted(list(distribution.items()), self.rng)


	def draw (
		self,
		model: improviser.markov_model.MarkovModel[StateType],
		context: typing.Sequence[StateType],
		boost_factor: float = 0.0,
		threshold: float = 0.0
	) -> StateType:

		"""Predict, reinforce, and sample the state that follows ``context``.

		When the model has never seen the context, the oldest state is dropped
		and the shorter suffix is tried against the same model, down to the
		empty context (a uniform choice over every state seen in training).
		This shortens the context at most ``model.order`` times.

		Raises:
			NoTrainingData: If the model has no states at all.
		"""

		order = model.order
		suffix = tuple(context)[-order:]

		# A context shorter than the order (e.g. no tail to seed from) counts as already shortened.
		depth = order - len(suffix)

		while True:

			if len(suffix) == order:
				distribution = model.predict(suffix)
			else:
				distribution = model.suffix_distribution(suffix)

			if distribution:
				break

			if not suffix:
				raise improviser.errors.NoTrainingData("Model has no training data to fall back on")

			suffix = suffix[1:]
			depth += 1

		self.last_fallback_depth = depth

		if depth:
			logger.debug(f"Fell back {depth} step(s) to a context of length {len(suffix)}")

		distribution = improviser.reinforcement.reinforce(distribution, boost_factor, threshold)

		return self.sample(distribution)
