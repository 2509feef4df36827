"""Exceptions raised by the training, boosting, and generation pipeline.

Every error here is local to one pipeline invocation.  The session catches
nothing: it simply never commits a model until a run has fully succeeded, so
callers can report the error and keep using the previously trained model.
"""

import typing


class CancelToken (typing.Protocol):

	"""Anything that can report a cancellation request, such as ``threading.Event``."""

	def is_set (self) -> bool: ...


class ImproviserError (Exception):

	"""Base class for all improviser errors."""


class InvalidOrder (ImproviserError, ValueError):

	"""A Markov order (or predictability) below 1 or outside the allowed range."""


class EmptyTrainingSet (ImproviserError, ValueError):

	"""No sequences, or too few events to build a single context of the requested order."""


class NoTrainingData (ImproviserError, LookupError):

	"""The sampler fell back to an empty context and the model has never seen an event."""


class Cancelled (ImproviserError):

	"""A cooperative cancellation request was observed between sampling steps."""


class InvalidConfig (ImproviserError, ValueError):

	"""A configuration value outside its recognised range."""


class InvalidMidiFile (ImproviserError, ValueError):

	"""A MIDI file that is truncated or malformed and cannot be decoded."""


class PipelineBusy (ImproviserError, RuntimeError):

	"""A second pipeline was started on a session that is already running one."""


class NotTrained (ImproviserError, RuntimeError):

	"""Generation was requested before a base model was trained."""


def raise_if_cancelled (cancel: typing.Optional[CancelToken]) -> None:

	"""
	Raise Cancelled if ``cancel`` has been set.
	"""

	if cancel is not None and cancel.is_set():
		raise Cancelled("Pipeline cancelled")
