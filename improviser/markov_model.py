"""Fixed-order Markov model over arbitrary hashable states.

A :class:`MarkovModel` wraps one :class:`~improviser.transition_table.TransitionTable`
and the order it was built at.  Models are immutable once trained: every
training call returns a brand-new model, so a table is never extended,
merged, or observed half-built.  This is what lets the order booster and the
session swap models in a single assignment.

Models serialize to plain JSON-compatible dicts::

    data = model.to_dict()
    restored = improviser.markov_model.MarkovModel.from_dict(data)
    assert restored.predict(context) == model.predict(context)
"""

import json
import logging
import typing

import improviser.errors
import improviser.events
import improviser.transition_table


logger = logging.getLogger(__name__)

StateType = typing.TypeVar("StateType", bound=typing.Hashable)

FORMAT_VERSION = 1


class MarkovModel (typing.Generic[StateType]):

	"""
	A trained (or empty) Markov model with a fixed order.
	"""

	def __init__ (
		self,
		predictability: int = 1,
		table: typing.Optional[improviser.transition_table.TransitionTable[StateType]] = None,
		tail: typing.Sequence[StateType] = ()
	) -> None:

		"""
		Create a model.  Without a table the model is empty and predicts nothing.

		Parameters:
			predictability: Order of the base (first, non-boosted) training pass.
			table: A transition table built at this model's order.
			tail: The most recent training states, used to seed generation.
		"""

		self._predictability = improviser.transition_table.check_order(predictability)
		self._table = table

		if table is None:
			self._tail: typing.Tuple[StateType, ...] = ()
		else:
			self._tail = tuple(tail)[-table.order:]


	@classmethod
	def train (
		cls,
		sequences: typing.Sequence[typing.Sequence[StateType]],
		order: int,
		predictability: typing.Optional[int] = None
	) -> "MarkovModel[StateType]":

		"""
		Build a new model of ``order`` from scratch.

		Nothing is carried over from any earlier model; training the same data
		twice yields identical tables.

		Raises:
			InvalidOrder: If ``order`` is below 1.
			EmptyTrainingSet: If there are no sequences or too few events.
		"""

		improviser.transition_table.check_order(order)

		if not sequences:
			raise improviser.errors.EmptyTrainingSet("No training sequences supplied")

		table: improviser.transition_table.TransitionTable[StateType] = improviser.transition_table.TransitionTable.build(sequences, order)

		tail: typing.Sequence[StateType] = ()
		for sequence in reversed(sequences):
			if len(sequence) > 0:
				tail = list(sequence)[-order:]
				break

		logger.debug(f"Trained order {order} model: {len(table)} contexts, {len(table.vocabulary)} states")

		return cls(
			predictability = predictability if predictability is not None else order,
			table = table,
			tail = tail
		)


	def train_base (self, sequences: typing.Sequence[typing.Sequence[StateType]]) -> "MarkovModel[StateType]":

		"""
		Train a new model at this model's predictability.
		"""

		return type(self).train(sequences, self._predictability, self._predictability)


	def retrain (self, sequences: typing.Sequence[typing.Sequence[StateType]], order: int) -> "MarkovModel[StateType]":

		"""
		Train a new model at ``order``, keeping this model's predictability.
		"""

		return type(self).train(sequences, order, self._predictability)


	@property
	def order (self) -> int:

		"""
		Context length.  An empty model reports its predictability.
		"""

		if self._table is None:
			return self._predictability

		return self._table.order


	@property
	def predictability (self) -> int:

		return self._predictability


	@property
	def table (self) -> typing.Optional[improviser.transition_table.TransitionTable[StateType]]:

		return self._table


	@property
	def tail (self) -> typing.Tuple[StateType, ...]:

		return self._tail


	@property
	def is_trained (self) -> bool:

		return self._table is not None


	@property
	def vocabulary (self) -> typing.List[StateType]:

		if self._table is None:
			return []

		return self._table.vocabulary


	def predict (self, context: typing.Sequence[StateType]) -> typing.Dict[StateType, float]:

		"""
		Return the normalized distribution for an exact context match.

		Unseen contexts (including contexts of the wrong length) give an empty
		dict; the sampler decides what to do about that.
		"""

		if self._table is None or len(context) != self._table.order:
			return {}

		return self._table.distribution(tuple(context))


	def suffix_distribution (self, suffix: typing.Sequence[StateType]) -> typing.Dict[StateType, float]:

		"""
		Return the normalized distribution over every context ending with ``suffix``.

		An empty suffix gives a uniform distribution over the vocabulary.
		"""

		if self._table is None:
			return {}

		if not suffix:
			vocabulary = self._table.vocabulary
			return {state: 1.0 / len(vocabulary) for state in vocabulary}

		options = self._table.suffix_transitions(tuple(suffix))
		total = sum(count for _, count in options)

		if total <= 0:
			return {}

		return {state: count / total for state, count in options}


	def to_dict (self) -> typing.Dict[str, typing.Any]:

		"""
		Return a JSON-compatible representation of the model.
		"""

		data: typing.Dict[str, typing.Any] = {
			"version": FORMAT_VERSION,
			"order": self.order,
			"predictability": self._predictability,
			"trained": self.is_trained,
			"vocabulary": [],
			"tail": [],
			"table": []
		}

		if self._table is None:
			return data

		data["vocabulary"] = [_encode_state(state) for state in self._table.vocabulary]
		data["tail"] = [_encode_state(state) for state in self._tail]
		data["table"] = [
			{
				"context": [_encode_state(state) for state in context],
				"targets": [[_encode_state(target), count] for target, count in targets.items()]
			}
			for context, targets in self._table.items()
		]

		return data


	@classmethod
	def from_dict (cls, data: typing.Dict[str, typing.Any]) -> "MarkovModel[typing.Any]":

		"""
		Rebuild a model from :meth:`to_dict` output.
		"""

		version = data.get("version", FORMAT_VERSION)
		if version != FORMAT_VERSION:
			raise ValueError(f"Unsupported model format version: {version}")

		predictability = data["predictability"]

		if not data.get("trained", True):
			return cls(predictability=predictability)

		table: improviser.transition_table.TransitionTable[typing.Any] = improviser.transition_table.TransitionTable(data["order"])

		for state in data["vocabulary"]:
			table.observe(_decode_state(state))

		for entry in data["table"]:
			context = tuple(_decode_state(state) for state in entry["context"])
			for target, count in entry["targets"]:
				table.add_transition(context, _decode_state(target), count)

		tail = [_decode_state(state) for state in data["tail"]]

		return cls(predictability=predictability, table=table, tail=tail)


	def dumps (self) -> str:

		return json.dumps(self.to_dict())


	@classmethod
	def loads (cls, text: str) -> "MarkovModel[typing.Any]":

		return cls.from_dict(json.loads(text))


	def save (self, path: str) -> None:

		"""
		Write the model to ``path`` as JSON.
		"""

		with open(path, "w") as f:
			f.write(self.dumps())

		logger.info(f"Saved order {self.order} model to {path}")


	@classmethod
	def load (cls, path: str) -> "MarkovModel[typing.Any]":

		"""
		Read a model written by :meth:`save`.
		"""

		with open(path, "r") as f:
			return cls.loads(f.read())


	def __eq__ (self, other: object) -> bool:

		if not isinstance(other, MarkovModel):
			return NotImplemented

		return (
			self._predictability == other._predictability
			and self._table == other._table
			and self._tail == other._tail
		)


	def __repr__ (self) -> str:

		contexts = len(self._table) if self._table is not None else 0

		return f"MarkovModel(order={self.order}, predictability={self._predictability}, contexts={contexts})"


def _encode_state (state: typing.Any) -> typing.Any:

	if isinstance(state, improviser.events.Token):
		return {"token": [state.pitch, state.velocity, state.duration, state.delta]}

	if isinstance(state, tuple):
		return {"tuple": [_encode_state(item) for item in state]}

	if state is None or isinstance(state, (bool, int, float, str)):
		return state

	raise TypeError(f"Cannot serialize state of type {type(state).__name__}")


def _decode_state (data: typing.Any) -> typing.Any:

	if isinstance(data, dict):

		if "token" in data:
			pitch, velocity, duration, delta = data["token"]
			return improviser.events.Token(pitch=pitch, velocity=velocity, duration=duration, delta=delta)

		if "tuple" in data:
			return tuple(_decode_state(item) for item in data["tuple"])

		raise ValueError(f"Unknown state encoding: {data!r}")

	return data
