import typing

import improviser.errors


StateType = typing.TypeVar("StateType", bound=typing.Hashable)
Context = typing.Tuple[typing.Any, ...]


def check_order (order: typing.Any) -> int:

	"""
	Return ``order`` if it is a usable Markov order, otherwise raise InvalidOrder.
	"""

	if isinstance(order, bool) or not isinstance(order, int):
		raise improviser.errors.InvalidOrder(f"Order must be an integer, got {order!r}")

	if order < 1:
		raise improviser.errors.InvalidOrder(f"Order must be at least 1, got {order}")

	return order


class TransitionTable (typing.Generic[StateType]):

	"""
	Counts of next states keyed by fixed-length contexts of previous states.
	"""

	def __init__ (self, order: int) -> None:

		"""
		Initialize an empty table whose contexts all have length ``order``.
		"""

		self.order = check_order(order)

		self._edges: typing.Dict[Context, typing.Dict[StateType, int]] = {}

		# Insertion-ordered so uniform fallback draws are reproducible.
		self._vocabulary: typing.Dict[StateType, None] = {}

		self._suffixes: typing.Optional[typing.Dict[Context, typing.Dict[StateType, int]]] = None


	@classmethod
	def build (cls, sequences: typing.Sequence[typing.Sequence[StateType]], order: int) -> "TransitionTable[StateType]":

		"""
		Slide a window of length ``order`` across each sequence and count the state that follows it.

		Windows never span two sequences.  Raises EmptyTrainingSet when there
		are fewer than ``order + 1`` events in total, or when no individual
		sequence is long enough to produce a single window.
		"""

		table: TransitionTable[StateType] = cls(order)

		total = sum(len(sequence) for sequence in sequences)

		if total < order + 1:
			raise improviser.errors.EmptyTrainingSet(
				f"Order {order} needs at least {order + 1} events, got {total} across {len(sequences)} sequence(s)"
			)

		for sequence in sequences:

			states = list(sequence)

			for state in states:
				table.observe(state)

			for i in range(len(states) - order):
				table.add_transition(tuple(states[i:i + order]), states[i + order])

		if not table._edges:
			raise improviser.errors.EmptyTrainingSet(
				f"No sequence is longer than order {order}; contexts cannot span sequence boundaries"
			)

		return table


	def observe (self, state: StateType) -> None:

		"""
		Record a state as part of the training vocabulary.
		"""

		self._vocabulary.setdefault(state, None)


	def add_transition (self, context: Context, target: StateType, weight: int = 1) -> None:

		"""
		Add a weighted transition from a context to a following state.
		"""

		if len(context) != self.order:
			raise ValueError(f"Context length {len(context)} does not match order {self.order}")

		if weight <= 0:
			raise ValueError("Weight must be positive")

		targets = self._edges.setdefault(tuple(context), {})

		# Repeated observations accumulate to strengthen the edge.
		targets[target] = targets.get(target, 0) + weight

		self.observe(target)
		for state in context:
			self.observe(state)

		self._suffixes = None


	def get_transitions (self, context: Context) -> typing.List[typing.Tuple[StateType, int]]:

		"""
		Return raw (state, count) pairs for an exact context, or an empty list.
		"""

		targets = self._edges.get(tuple(context))

		if targets is None:
			return []

		return list(targets.items())


	def distribution (self, context: Context) -> typing.Dict[StateType, float]:

		"""
		Return the normalized next-state distribution for an exact context.
		"""

		return _normalize(self.get_transitions(context))


	def suffix_transitions (self, suffix: Context) -> typing.List[typing.Tuple[StateType, int]]:

		"""
		Return counts summed over every stored context that ends with ``suffix``.

		A suffix of full length is an exact lookup.  The empty suffix is not
		handled here; callers fall back to the vocabulary instead.
		"""

		suffix = tuple(suffix)

		if len(suffix) == self.order:
			return self.get_transitions(suffix)

		if not suffix or len(suffix) > self.order:
			return []

		if self._suffixes is None:
			self._suffixes = self._index_suffixes()

		return list(self._suffixes.get(suffix, {}).items())


	def _index_suffixes (self) -> typing.Dict[Context, typing.Dict[StateType, int]]:

		index: typing.Dict[Context, typing.Dict[StateType, int]] = {}

		for context, targets in self._edges.items():
			for length in range(1, self.order):
				merged = index.setdefault(context[-length:], {})
				for target, count in targets.items():
					merged[target] = merged.get(target, 0) + count

		return index


	def contexts (self) -> typing.List[Context]:

		"""
		Return every stored context in insertion order.
		"""

		return list(self._edges)


	def items (self) -> typing.Iterator[typing.Tuple[Context, typing.Dict[StateType, int]]]:

		"""
		Iterate (context, counts) pairs; the counts are copies.
		"""

		for context, targets in self._edges.items():
			yield context, dict(targets)


	@property
	def vocabulary (self) -> typing.List[StateType]:

		"""
		Every state seen during training, in first-seen order.
		"""

		return list(self._vocabulary)


	def __len__ (self) -> int:

		return len(self._edges)


	def __contains__ (self, context: object) -> bool:

		return isinstance(context, tuple) and context in self._edges


	def __eq__ (self, other: object) -> bool:

		if not isinstance(other, TransitionTable):
			return NotImplemented

		return (
			self.order == other.order
			and self._edges == other._edges
			and list(self._vocabulary) == list(other._vocabulary)
		)


def _normalize (options: typing.List[typing.Tuple[StateType, int]]) -> typing.Dict[StateType, float]:

	total = sum(count for _, count in options)

	if total <= 0:
		return {}

	return {state: count / total for state, count in options}
