"""Injectable key-value stores.

The model and generation code never cache anything themselves.  Decoded-file
memoization and settings persistence go through one of these stores, which
the caller creates and passes in explicitly:

- :class:`MemoryStore` lives for the lifetime of the object (the equivalent
  of a per-session cache).
- :class:`YamlStore` writes every change through to a YAML file, so
  settings survive between runs.  Inside :meth:`~YamlStore.batch` the file
  is written once, when the outermost batch ends.
"""

import contextlib
import logging
import os
import typing

import yaml


logger = logging.getLogger(__name__)


class KeyValueStore (typing.Protocol):

	"""Minimal interface shared by all stores."""

	def get (self, key: str, default: typing.Any = None) -> typing.Any: ...

	def set (self, key: str, value: typing.Any) -> None: ...

	def batch (self) -> typing.ContextManager[None]: ...

	def __contains__ (self, key: object) -> bool: ...


class MemoryStore:

	"""
	A store that keeps values in a dict.
	"""

	def __init__ (self) -> None:

		self._data: typing.Dict[str, typing.Any] = {}


	def get (self, key: str, default: typing.Any = None) -> typing.Any:

		return self._data.get(key, default)


	def set (self, key: str, value: typing.Any) -> None:

		self._data[key] = value


	def delete (self, key: str) -> None:

		self._data.pop(key, None)


	def clear (self) -> None:

		self._data.clear()


	@contextlib.contextmanager
	def batch (self) -> typing.Iterator[None]:

		"""Group several changes.  A memory store has nothing to flush."""

		yield


	def __contains__ (self, key: object) -> bool:

		return key in self._data


	def __len__ (self) -> int:

		return len(self._data)


class YamlStore (MemoryStore):

	"""
	A store persisted to a YAML file.  Values must be plain YAML types.
	"""

	def __init__ (self, path: str) -> None:

		"""
		Load existing values from ``path`` if the file exists.
		"""

		super().__init__()

		self.path = path

		self._batch_depth = 0
		self._dirty = False

		if os.path.exists(path):

			with open(path, "r") as f:
				data = yaml.safe_load(f)

			if data is not None and not isinstance(data, dict):
				raise ValueError(f"Store file {path} must contain a mapping")

			self._data.update(data or {})
			logger.debug(f"Loaded {len(self._data)} values from {path}")


	def set (self, key: str, value: typing.Any) -> None:

		super().set(key, value)
		self._changed()


	def delete (self, key: str) -> None:

		super().delete(key)
		self._changed()


	def clear (self) -> None:

		super().clear()
		self._changed()


	@contextlib.contextmanager
	def batch (self) -> typing.Iterator[None]:

		"""Defer writes until the outermost batch exits, then write once.

		Changes made before an exception are still written.
		"""

		self._batch_depth += 1

		try:
			yield

		finally:
			self._batch_depth -= 1

			if self._batch_depth == 0 and self._dirty:
				self._write()


	def _changed (self) -> None:

		if self._batch_depth:
			self._dirty = True
			return

		self._write()


	def _write (self) -> None:

		with open(self.path, "w") as f:
			yaml.safe_dump(self._data, f, sort_keys=True)

		self._dirty = False
