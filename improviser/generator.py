import collections
import logging
import typing

import improviser.errors
import improviser.markov_model
import improviser.sampler


logger = logging.getLogger(__name__)

StateType = typing.TypeVar("StateType", bound=typing.Hashable)


class Generator:

	"""
	Samples sequences from a Markov model with a sliding context window.
	"""

	def __init__ (self, sampler: typing.Optional[improviser.sampler.Sampler] = None) -> None:

		"""
		Initialize with the sampler that supplies every random draw.
		"""

		self.sampler = sampler if sampler is not None else improviser.sampler.Sampler()


	def run (
		self,
		model: improviser.markov_model.MarkovModel[StateType],
		length: int,
		boost_factor: float = 0.0,
		threshold: float = 0.0,
		context: typing.Optional[typing.Sequence[StateType]] = None,
		cancel: typing.Optional[improviser.errors.CancelToken] = None
	) -> typing.List[StateType]:

		"""Generate ``length`` states.

		Parameters:
			model: The model to sample from.
			length: Number of states to generate.  0 returns an empty list.
			boost_factor: Reinforcement exponent, applied at every step.
			threshold: Reinforcement threshold probability.
			context: Initial context.  Defaults to the tail of the model's
				training data; an empty context relies on the sampler's fallback.
			cancel: Checked before every draw; raises Cancelled when set.
		"""

		if length < 0:
			raise ValueError(f"Length must be non-negative, got {length}")

		output: typing.List[StateType] = []

		if length == 0:
			return output

		initial = model.tail if context is None else tuple(context)
		window: typing.Deque[StateType] = collections.deque(initial, maxlen=model.order)

		for _ in range(length):

			improviser.errors.raise_if_cancelled(cancel)

			state = self.sampler.draw(model, tuple(window), boost_factor, threshold)

			output.append(state)
			window.append(state)

		logger.debug(f"Generated {len(output)} states at order {model.order}")

		return output
