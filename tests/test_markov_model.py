import json
import os
import typing

import pytest

import improviser.errors
import improviser.events
import improviser.markov_model


MarkovModel = improviser.markov_model.MarkovModel


# ---------------------------------------------------------------------------
# Training
# ---------------------------------------------------------------------------

class TestTrain:

	def test_alternating_scenario (self) -> None:
		"""Two alternating C4/D4 sequences give saturated order-1 contexts."""
		model = MarkovModel.train([[60, 62, 60, 62, 60, 62], [60, 62, 60, 62, 60, 62]], 1)

		assert model.order == 1
		assert model.predict((60,)) == {62: 1.0}
		assert model.predict((62,)) == {60: 1.0}

	def test_distributions_sum_to_one (self, melody: typing.List[int]) -> None:
		"""Every observed context predicts a normalized distribution."""
		for order in (1, 2, 3):
			model = MarkovModel.train([melody], order)
			assert model.table is not None

			for context in model.table.contexts():
				assert sum(model.predict(context).values()) == pytest.approx(1.0)

	def test_training_is_not_cumulative (self, melody: typing.List[int]) -> None:
		"""Training the same data twice yields the same table, not doubled counts."""
		first = MarkovModel.train([melody], 2)
		second = first.retrain([melody], 2)

		assert first.table == second.table
		for context in first.table.contexts():
			assert first.predict(context) == second.predict(context)

	def test_training_leaves_previous_model_untouched (self, melody: typing.List[int]) -> None:
		"""Retraining returns a new model and never modifies the old one."""
		model = MarkovModel.train([melody], 1)
		before = model.to_dict()

		retrained = model.retrain([[1, 2, 3, 1, 2, 3]], 2)

		assert model.to_dict() == before
		assert retrained.order == 2
		assert retrained is not model

	def test_invalid_order (self, melody: typing.List[int]) -> None:
		"""Order 0 raises InvalidOrder."""
		with pytest.raises(improviser.errors.InvalidOrder):
			MarkovModel.train([melody], 0)

	def test_no_sequences (self) -> None:
		"""An empty training set raises EmptyTrainingSet."""
		with pytest.raises(improviser.errors.EmptyTrainingSet):
			MarkovModel.train([], 1)

	def test_too_few_events (self) -> None:
		"""Fewer than order + 1 events raises EmptyTrainingSet."""
		with pytest.raises(improviser.errors.EmptyTrainingSet):
			MarkovModel.train([[1, 2, 3]], 3)

	def test_tail_is_end_of_last_sequence (self) -> None:
		"""The generation seed is the last ``order`` states of the last non-empty sequence."""
		model = MarkovModel.train([[1, 2, 3, 4], [5, 6, 7], []], 2)

		assert model.tail == (6, 7)

	def test_train_base_uses_predictability (self, melody: typing.List[int]) -> None:
		"""train_base trains at the empty model's predictability."""
		model = MarkovModel(predictability=3).train_base([melody])

		assert model.order == 3
		assert model.predictability == 3

	def test_retrain_keeps_predictability (self, melody: typing.List[int]) -> None:
		"""A boosted model remembers the base order it came from."""
		model = MarkovModel.train([melody], 1).retrain([melody], 4)

		assert model.order == 4
		assert model.predictability == 1


# ---------------------------------------------------------------------------
# Prediction
# ---------------------------------------------------------------------------

class TestPredict:

	def test_unseen_context_is_empty (self, melody: typing.List[int]) -> None:
		"""A context never observed predicts nothing."""
		model = MarkovModel.train([melody], 2)

		assert model.predict((0, 1)) == {}

	def test_wrong_length_context_is_empty (self, melody: typing.List[int]) -> None:
		"""Only exact-length contexts match."""
		model = MarkovModel.train([melody], 2)

		assert model.predict((60,)) == {}
		assert model.predict((60, 62, 64)) == {}

	def test_empty_model (self) -> None:
		"""An untrained model reports its predictability and predicts nothing."""
		model: MarkovModel[int] = MarkovModel(predictability=2)

		assert not model.is_trained
		assert model.order == 2
		assert model.predict((60, 62)) == {}
		assert model.vocabulary == []
		assert model.suffix_distribution(()) == {}

	def test_empty_suffix_is_uniform (self) -> None:
		"""The empty suffix spreads probability evenly over the vocabulary."""
		model = MarkovModel.train([[1, 2, 3, 1]], 1)

		assert model.suffix_distribution(()) == pytest.approx({1: 1 / 3, 2: 1 / 3, 3: 1 / 3})

	def test_suffix_distribution_normalized (self) -> None:
		"""Merged suffix counts are normalized."""
		model = MarkovModel.train([[1, 2, 3, 1, 2, 4, 2, 3]], 2)

		distribution = model.suffix_distribution((2,))

		assert distribution == pytest.approx({3: 2 / 3, 4: 1 / 3})

	def test_invalid_predictability (self) -> None:
		"""An empty model still needs a valid predictability."""
		with pytest.raises(improviser.errors.InvalidOrder):
			MarkovModel(predictability=0)


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

class TestSerialization:

	def test_round_trip_predicts_identically (self, melody: typing.List[int]) -> None:
		"""Serialize → deserialize → predict matches predict on the source model."""
		model = MarkovModel.train([melody], 2)
		restored = MarkovModel.loads(model.dumps())

		assert restored == model
		assert restored.tail == model.tail
		for context in model.table.contexts():
			assert restored.predict(context) == model.predict(context)

	def test_round_trip_tokens (self, melody_events: typing.List[improviser.events.Event]) -> None:
		"""Token states survive JSON exactly."""
		tokens = improviser.events.tokenize(melody_events)
		model = MarkovModel.train([tokens], 3)

		restored = MarkovModel.from_dict(json.loads(json.dumps(model.to_dict())))

		assert restored == model
		assert restored.vocabulary == model.vocabulary

	def test_round_trip_untrained (self) -> None:
		"""An empty model round-trips as empty."""
		restored = MarkovModel.loads(MarkovModel(predictability=4).dumps())

		assert not restored.is_trained
		assert restored.predictability == 4

	def test_save_and_load (self, tmp_path: typing.Any, melody: typing.List[int]) -> None:
		"""Models can be written to and read from disk."""
		path = os.path.join(str(tmp_path), "model.json")
		model = MarkovModel.train([melody], 1)

		model.save(path)

		assert MarkovModel.load(path) == model

	def test_unknown_version_raises (self, melody: typing.List[int]) -> None:
		"""Data from an unknown format version is refused."""
		data = MarkovModel.train([melody], 1).to_dict()
		data["version"] = 99

		with pytest.raises(ValueError):
			MarkovModel.from_dict(data)

	def test_unserializable_state_raises (self) -> None:
		"""States outside the supported types cannot be serialized."""
		model = MarkovModel.train([[frozenset([1]), frozenset([2]), frozenset([1])]], 1)

		with pytest.raises(TypeError):
			model.to_dict()
