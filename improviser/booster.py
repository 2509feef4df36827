"""Order boosting: the model's own output becomes the next model's training data.

Starting from a low-order model trained on the source material, each
boosting step generates a sequence and trains a model one order higher on
that sequence alone.  The low-order model's loose statistics are thereby
tightened step by step, without ever needing order-``k`` evidence in the
source material: it is synthesized by the previous step.

The loop is strictly sequential - each step consumes the previous model's
output - and runs as a plain counted loop so stack depth stays constant.
"""

import logging
import typing

import improviser.errors
import improviser.generator
import improviser.markov_model


logger = logging.getLogger(__name__)

StateType = typing.TypeVar("StateType", bound=typing.Hashable)


class OrderBooster:

	"""
	Runs the generate-then-retrain feedback loop.
	"""

	def __init__ (self, generator: typing.Optional[improviser.generator.Generator] = None) -> None:

		self.generator = generator if generator is not None else improviser.generator.Generator()

		# Length of every intermediate sequence generated by the most recent run.
		self.generations: typing.List[int] = []


	def boost (
		self,
		sequences: typing.Sequence[typing.Sequence[StateType]],
		predictability: int,
		boosting_steps: int,
		length: int,
		boost_factor: float = 0.0,
		threshold: float = 0.0,
		cancel: typing.Optional[improviser.errors.CancelToken] = None
	) -> improviser.markov_model.MarkovModel[StateType]:

		"""Train a base model and boost it ``boosting_steps`` times.

		Returns a model of order ``predictability + boosting_steps``.

		Raises:
			InvalidOrder: If ``predictability`` is below 1.
			EmptyTrainingSet: If the source material or any intermediate
				generation is too short for the order it must train.
			Cancelled: If ``cancel`` is set during the run.
		"""

		self.generations = []

		improviser.errors.raise_if_cancelled(cancel)

		model: improviser.markov_model.MarkovModel[StateType] = improviser.markov_model.MarkovModel.train(sequences, predictability)

		return self.boost_model(model, boosting_steps, length, boost_factor, threshold, cancel)


	def boost_model (
		self,
		model: improviser.markov_model.MarkovModel[StateType],
		boosting_steps: int,
		length: int,
		boost_factor: float = 0.0,
		threshold: float = 0.0,
		cancel: typing.Optional[improviser.errors.CancelToken] = None
	) -> improviser.markov_model.MarkovModel[StateType]:

		"""
		Boost an already trained model ``boosting_steps`` times.
		"""

		if boosting_steps < 0:
			raise ValueError(f"Boosting steps must be non-negative, got {boosting_steps}")

		if not model.is_trained:
			raise improviser.errors.NotTrained("Cannot boost an untrained model")

		self.generations = []

		for step in range(boosting_steps):

			improviser.errors.raise_if_cancelled(cancel)

			generated = self.generator.run(model, length, boost_factor, threshold, cancel=cancel)
			self.generations.append(len(generated))

			# A failed retrain aborts the loop; keeping the old model would misreport the order.
			model = model.retrain([generated], model.order + 1)

			logger.debug(f"Boosting step {step + 1}/{boosting_steps}: {len(generated)} states -> order {model.order}")

		return model
