"""Note events and the relative-time tokens the model learns from.

An :class:`Event` is what the MIDI decoder produces and the encoder consumes:
a note with an absolute start position in ticks.  Absolute positions are
useless as Markov states (no two notes share one), so training and generation
work on :class:`Token` values instead - the same note with its start replaced
by the distance from the previous note's start.  Pitch, velocity, and
duration are therefore learned and generated together as one unit.
"""

import dataclasses
import typing

import improviser.constants


@dataclasses.dataclass(frozen=True)
class Event:

	"""
	A single note at an absolute position (in ticks).
	"""

	pitch: int
	velocity: int
	duration: float
	start: float = 0

	def __post_init__ (self) -> None:
		_check_note(self.pitch, self.velocity, self.duration)
		if self.start < 0:
			raise ValueError(f"start must be non-negative, got {self.start}")


@dataclasses.dataclass(frozen=True)
class Token:

	"""
	A note positioned relative to the previous note: the state unit of the model.

	``delta`` is the distance in ticks from the previous note's start to this
	note's start (0 for chord tones and for the first note of a sequence).
	"""

	pitch: int
	velocity: int
	duration: float
	delta: float = 0

	def __post_init__ (self) -> None:
		_check_note(self.pitch, self.velocity, self.duration)
		if self.delta < 0:
			raise ValueError(f"delta must be non-negative, got {self.delta}")


Sequence = typing.List[Event]


def _check_note (pitch: int, velocity: int, duration: float) -> None:

	if not improviser.constants.MIN_PITCH <= pitch <= improviser.constants.MAX_PITCH:
		raise ValueError(f"pitch must be between 0 and 127, got {pitch}")

	if not improviser.constants.MIN_VELOCITY <= velocity <= improviser.constants.MAX_VELOCITY:
		raise ValueError(f"velocity must be between 0 and 127, got {velocity}")

	if duration <= 0:
		raise ValueError(f"duration must be positive, got {duration}")


def tokenize (sequence: typing.Iterable[Event]) -> typing.List[Token]:

	"""
	Convert absolute events into relative tokens.

	Events are ordered by start first (stable, so simultaneous notes keep
	their decoded order).
	"""

	ordered = sorted(sequence, key=lambda e: e.start)
	tokens: typing.List[Token] = []
	previous_start: typing.Optional[float] = None

	for event in ordered:
		delta = 0 if previous_start is None else event.start - previous_start
		tokens.append(Token(pitch=event.pitch, velocity=event.velocity, duration=event.duration, delta=delta))
		previous_start = event.start

	return tokens


def detokenize (tokens: typing.Iterable[Token], start: float = 0) -> typing.List[Event]:

	"""
	Lay relative tokens out on an absolute timeline beginning at ``start``.

	The first token's delta is ignored so the output always begins at
	``start``, regardless of where the token was sampled from.
	"""

	events: typing.List[Event] = []
	position = start

	for index, token in enumerate(tokens):
		if index > 0:
			position += token.delta
		events.append(Event(pitch=token.pitch, velocity=token.velocity, duration=token.duration, start=position))

	return events
