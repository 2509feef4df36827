"""Standard MIDI file decoding and encoding.

The decoder flattens a file into one note sequence: every note of every track
and channel, ordered by start.  Timing is rescaled to
:data:`~improviser.constants.TICKS_PER_BEAT` so files recorded at different
resolutions produce comparable tokens.  The encoder writes a single-track
file at the same resolution with one tempo event.
"""

import contextlib
import io
import logging
import os
import typing

import mido

import improviser.constants
import improviser.errors
import improviser.events

if typing.TYPE_CHECKING:
	import improviser.store


logger = logging.getLogger(__name__)

CACHE_PREFIX = "midi:"

MidiSource = typing.Union[str, os.PathLike, typing.BinaryIO]


def read_events (source: MidiSource) -> typing.List[improviser.events.Event]:

	"""Decode a MIDI file (path or binary file object) into a flat list of events.

	Raises:
		InvalidMidiFile: If the data is truncated or malformed.
		OSError: If the file cannot be opened or has no MIDI header.
	"""

	try:
		if isinstance(source, (str, os.PathLike)):
			midi = mido.MidiFile(os.fspath(source))
		else:
			midi = mido.MidiFile(file=source)

	# mido reports a short read as EOFError and bad message data as ValueError or KeyError.
	except (EOFError, ValueError, KeyError) as e:
		raise improviser.errors.InvalidMidiFile(f"Cannot decode MIDI data from {_describe(source)}: {e!r}") from e

	scale = improviser.constants.TICKS_PER_BEAT / midi.ticks_per_beat
	events: typing.List[improviser.events.Event] = []

	for track in midi.tracks:

		position = 0

		# Overlapping notes of the same pitch are closed first-in, first-out.
		held: typing.Dict[typing.Tuple[int, int], typing.List[typing.Tuple[int, int]]] = {}

		for message in track:

			position += message.time

			if message.type == "note_on" and message.velocity > 0:
				held.setdefault((message.channel, message.note), []).append((position, message.velocity))

			elif message.type == "note_off" or (message.type == "note_on" and message.velocity == 0):

				starts = held.get((message.channel, message.note))

				if not starts:
					continue

				start, velocity = starts.pop(0)

				if position > start:
					events.append(improviser.events.Event(
						pitch = message.note,
						velocity = velocity,
						duration = _rescale(position - start, scale),
						start = _rescale(start, scale)
					))

	events.sort(key=lambda e: (e.start, e.pitch))

	return events


def load_sequences (
	paths: typing.Iterable[str],
	store: typing.Optional["improviser.store.KeyValueStore"] = None
) -> typing.List[typing.List[improviser.events.Event]]:

	"""Decode several files, one sequence per file.

	When ``store`` is given, decoded files are memoized in it under the file
	path: the store is filled on first decode and read on later lookups.  All
	new entries are written to the store in one batch.
	"""

	sequences: typing.List[typing.List[improviser.events.Event]] = []

	with store.batch() if store is not None else contextlib.nullcontext():

		for path in paths:

			key = CACHE_PREFIX + str(path)

			if store is not None and key in store:
				logger.debug(f"Using cached decode of {path}")
				events = [improviser.events.Event(*values) for values in store.get(key)]

			else:
				events = read_events(path)
				if store is not None:
					store.set(key, [[e.pitch, e.velocity, e.duration, e.start] for e in events])

			if not events:
				logger.warning(f"No notes found in {path}")

			logger.info(f"Loaded {len(events)} notes from {path}")
			sequences.append(events)

	return sequences


def encode (events: typing.Iterable[improviser.events.Event], tempo: float) -> bytes:

	"""
	Encode events as a standard MIDI file and return its bytes.
	"""

	if tempo <= 0:
		raise ValueError("Tempo must be positive")

	midi = mido.MidiFile(type=1, ticks_per_beat=improviser.constants.TICKS_PER_BEAT)
	track = mido.MidiTrack()
	midi.tracks.append(track)

	track.append(mido.MetaMessage("set_tempo", tempo=mido.bpm2tempo(tempo), time=0))

	# (tick, note-offs before note-ons at the same tick, message)
	timeline: typing.List[typing.Tuple[int, int, mido.Message]] = []

	for event in events:
		start = int(round(event.start))
		end = max(start + 1, int(round(event.start + event.duration)))
		# note_on at velocity 0 means note_off; velocity-0 events are written at velocity 1.
		velocity = max(1, event.velocity)
		timeline.append((start, 1, mido.Message("note_on", note=event.pitch, velocity=velocity)))
		timeline.append((end, 0, mido.Message("note_off", note=event.pitch, velocity=0)))

	timeline.sort(key=lambda item: (item[0], item[1]))

	last_tick = 0

	for tick, _, message in timeline:
		message.time = tick - last_tick
		track.append(message)
		last_tick = tick

	track.append(mido.MetaMessage("end_of_track", time=0))

	buffer = io.BytesIO()
	midi.save(file=buffer)

	return buffer.getvalue()


def save (events: typing.Iterable[improviser.events.Event], tempo: float, path: str) -> None:

	"""
	Encode events and write them to ``path``.
	"""

	data = encode(events, tempo)

	with open(path, "wb") as f:
		f.write(data)

	logger.info(f"Saved {path}")


def _describe (source: MidiSource) -> str:

	if isinstance(source, (str, os.PathLike)):
		return os.fspath(source)

	return getattr(source, "name", "file object")


def _rescale (ticks: int, scale: float) -> typing.Union[int, float]:

	value = ticks * scale

	if float(value).is_integer():
		return int(value)

	return value
