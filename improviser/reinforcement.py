"""Prediction reinforcement.

High-order chains trained on little data tend to lock into short loops,
because a handful of transitions dominate every distribution.  Reinforcement
lifts the unlikely candidates: any candidate whose probability is below the
threshold is multiplied by ``2 ** boost_factor`` before the distribution is
renormalized.  With the factor at 0 or the threshold at 0 nothing changes.

It is applied at every sampling step, because which candidates fall under the
threshold depends on the context being sampled.
"""

import math
import typing


StateType = typing.TypeVar("StateType", bound=typing.Hashable)


def reinforce (
	distribution: typing.Mapping[StateType, float],
	boost_factor: float,
	threshold: float
) -> typing.Dict[StateType, float]:

	"""Return a renormalized copy of ``distribution`` with low-probability candidates boosted.

	Parameters:
		distribution: Candidate weights.  They need not be normalized.
		boost_factor: Exponent; qualifying weights are multiplied by ``2 ** boost_factor``.
		threshold: Probability in [0, 1] below which a candidate qualifies.

	Example:
		```python
		reinforce({"a": 0.9, "b": 0.1}, boost_factor=1.0, threshold=0.5)
		# {"a": 0.818..., "b": 0.181...}
		```
	"""

	if not 0.0 <= threshold <= 1.0:
		raise ValueError(f"Reinforcement threshold must be between 0 and 1, got {threshold}")

	total = sum(distribution.values())

	if total <= 0:
		return {}

	multiplier = math.pow(2.0, boost_factor)
	adjusted: typing.Dict[StateType, float] = {}

	for state, weight in distribution.items():

		p = weight / total

		if p < threshold:
			p *= multiplier

		adjusted[state] = p

	adjusted_total = sum(adjusted.values())

	return {state: weight / adjusted_total for state, weight in adjusted.items()}


def boost_factor_from_percent (percent: float) -> float:

	"""
	Map a reinforcement control value (100-200) to an exponent (0-1).
	"""

	return math.log2(percent / 100.0)


def threshold_from_percent (percent: float) -> float:

	"""
	Map a threshold control value (0-100) to a probability (0-1).
	"""

	return percent / 100.0
