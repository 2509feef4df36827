import threading
import typing

import pytest

import improviser.booster
import improviser.errors
import improviser.generator
import improviser.markov_model
import improviser.sampler


class CountingGenerator (improviser.generator.Generator):

	"""Generator that records how often it runs."""

	def __init__ (self, seed: int = 1) -> None:
		super().__init__(improviser.sampler.Sampler(seed=seed))
		self.calls = 0

	def run (self, *args: typing.Any, **kwargs: typing.Any) -> typing.Any:
		self.calls += 1
		return super().run(*args, **kwargs)


def _booster (seed: int = 1) -> improviser.booster.OrderBooster:

	return improviser.booster.OrderBooster(CountingGenerator(seed))


def test_zero_steps_is_plain_training (melody: typing.List[int]) -> None:

	"""No boosting steps: the base model is returned and nothing is generated."""

	booster = _booster()
	model = booster.boost([melody], predictability=2, boosting_steps=0, length=100)

	assert model.order == 2
	assert booster.generations == []
	assert booster.generator.calls == 0
	assert model == improviser.markov_model.MarkovModel.train([melody], 2)


def test_two_steps_reach_order_three (melody: typing.List[int]) -> None:

	"""predictability=1 with two steps yields an order-3 model from two full-length generations."""

	booster = _booster()
	model = booster.boost([melody], predictability=1, boosting_steps=2, length=64, boost_factor=0.5, threshold=0.5)

	assert model.order == 3
	assert model.predictability == 1
	assert booster.generations == [64, 64]
	assert booster.generator.calls == 2


def test_boosted_model_learns_only_from_generated_material (melody: typing.List[int]) -> None:

	"""The boosted model only knows states from the training vocabulary."""

	model = _booster().boost([melody], predictability=1, boosting_steps=3, length=100)

	assert set(model.vocabulary) <= set(melody)
	assert len(model.tail) == model.order


def test_many_steps_use_a_loop (melody: typing.List[int]) -> None:

	"""The maximum step count runs without recursion."""

	model = _booster().boost([melody], predictability=1, boosting_steps=15, length=100)

	assert model.order == 16


def test_short_generation_aborts (melody: typing.List[int]) -> None:

	"""An intermediate sequence too short to retrain on surfaces EmptyTrainingSet."""

	with pytest.raises(improviser.errors.EmptyTrainingSet):
		_booster().boost([melody], predictability=1, boosting_steps=1, length=2)


def test_zero_length_generation_aborts (melody: typing.List[int]) -> None:

	"""An empty intermediate generation cannot train the next model."""

	with pytest.raises(improviser.errors.EmptyTrainingSet):
		_booster().boost([melody], predictability=1, boosting_steps=1, length=0)


def test_seeded_boosting_is_deterministic (melody: typing.List[int]) -> None:

	"""Identical seeds and inputs produce identical boosted models."""

	first = _booster(seed=3).boost([melody], 1, 3, 80, 0.8, 0.66)
	second = _booster(seed=3).boost([melody], 1, 3, 80, 0.8, 0.66)

	assert first.to_dict() == second.to_dict()


def test_invalid_predictability (melody: typing.List[int]) -> None:

	"""The base order is validated."""

	with pytest.raises(improviser.errors.InvalidOrder):
		_booster().boost([melody], predictability=0, boosting_steps=1, length=10)


def test_negative_steps (melody: typing.List[int]) -> None:

	"""Negative step counts are rejected."""

	with pytest.raises(ValueError):
		_booster().boost([melody], predictability=1, boosting_steps=-1, length=10)


def test_boost_untrained_model () -> None:

	"""Boosting needs a trained base."""

	model: improviser.markov_model.MarkovModel[int] = improviser.markov_model.MarkovModel(predictability=1)

	with pytest.raises(improviser.errors.NotTrained):
		_booster().boost_model(model, boosting_steps=1, length=10)


def test_cancelled (melody: typing.List[int]) -> None:

	"""A set cancellation token stops the loop."""

	cancel = threading.Event()
	cancel.set()

	with pytest.raises(improviser.errors.Cancelled):
		_booster().boost([melody], predictability=1, boosting_steps=2, length=50, cancel=cancel)
