import os
import typing

import mido
import pytest

import improviser.events


# A short tune that revisits notes in different contexts, so models of
# every low order have branching distributions.
MELODY: typing.List[int] = [
	60, 62, 64, 65, 67, 65, 64, 62, 60, 64, 67, 72, 67, 64, 60, 62,
	64, 62, 60, 59, 60, 62, 64, 67, 69, 67, 65, 64, 62, 64, 60, 55,
	57, 59, 60, 64, 62, 60, 67, 65, 64, 65, 67, 69, 71, 72, 67, 60,
]

NoteSpec = typing.Tuple[int, int, int, int]	# (pitch, velocity, start, duration) in ticks


@pytest.fixture
def melody () -> typing.List[int]:

	"""A plain pitch sequence for model-level tests."""

	return list(MELODY)


@pytest.fixture
def melody_events () -> typing.List[improviser.events.Event]:

	"""The melody as eighth notes with alternating accents, at 480 PPQ."""

	return [
		improviser.events.Event(pitch=pitch, velocity=100 if i % 2 == 0 else 80, duration=240, start=i * 240)
		for i, pitch in enumerate(MELODY)
	]


def build_midi (
	tracks: typing.Sequence[typing.Sequence[NoteSpec]],
	ticks_per_beat: int = 480,
	zero_velocity_off: bool = False
) -> mido.MidiFile:

	"""
	Build a MIDI file with one track per list of notes.
	"""

	midi = mido.MidiFile(type=1, ticks_per_beat=ticks_per_beat)

	for notes in tracks:

		track = mido.MidiTrack()
		midi.tracks.append(track)

		timeline: typing.List[typing.Tuple[int, int, mido.Message]] = []

		for pitch, velocity, start, duration in notes:
			if zero_velocity_off:
				off = mido.Message("note_on", note=pitch, velocity=0)
			else:
				off = mido.Message("note_off", note=pitch, velocity=0)
			timeline.append((start, 1, mido.Message("note_on", note=pitch, velocity=velocity)))
			timeline.append((start + duration, 0, off))

		timeline.sort(key=lambda item: (item[0], item[1]))

		last = 0
		for tick, _, message in timeline:
			message.time = tick - last
			track.append(message)
			last = tick

	return midi


@pytest.fixture
def midi_file (tmp_path: typing.Any) -> typing.Callable[..., str]:

	"""Return a factory that writes a MIDI file into the test's temp directory and returns its path."""

	counter = {"n": 0}

	def _write (tracks: typing.Sequence[typing.Sequence[NoteSpec]], **kwargs: typing.Any) -> str:
		counter["n"] += 1
		path = os.path.join(str(tmp_path), f"input_{counter['n']}.mid")
		build_midi(tracks, **kwargs).save(path)
		return path

	return _write


@pytest.fixture
def melody_file (midi_file: typing.Callable[..., str]) -> str:

	"""The melody written to a single-track MIDI file."""

	notes = [(pitch, 100 if i % 2 == 0 else 80, i * 240, 240) for i, pitch in enumerate(MELODY)]

	return midi_file([notes])
