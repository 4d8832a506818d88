"""MIDI output for blink schedules.

The schedule is cut into segments at beat 0, at every chord change and at
the final beat. For each segment every role's notes are switched on just
after the boundary and off just before the next one, so the visual driver
sees a short dark gap - the blink - right at the change. Each active pitch
class is sounded in every octave of the fretboard range.

An "update" control change marks every boundary so the driver knows a new
frame is complete.

The same timed messages can be written to a Standard MIDI File or played in
real time through an open mido output port.
"""

import logging
import time
import typing

import mido

import chordblink.constants
import chordblink.patterns
import chordblink.scheduler


logger = logging.getLogger(__name__)

NotePattern = chordblink.patterns.NotePattern
TimedMessage = typing.Tuple[int, mido.Message]

# note_off sorts before control_change before note_on at the same tick
_MESSAGE_ORDER: typing.Dict[str, int] = {
	'note_off': 0,
	'control_change': 1,
	'note_on': 2,
}


def velocity_for (value: int) -> int:

	"""Map a pattern value to a note-on velocity."""

	if chordblink.patterns.is_bright(value):
		return chordblink.constants.BRIGHT_VELOCITY

	return chordblink.constants.DIM_VELOCITY


def pattern_notes (pattern: NotePattern) -> typing.List[typing.Tuple[int, int]]:

	"""Return ``(note, velocity)`` for every active pitch class in every octave."""

	notes: typing.List[typing.Tuple[int, int]] = []

	for octave in range(chordblink.constants.FIRST_OCTAVE, chordblink.constants.LAST_OCTAVE + 1):
		for pc in chordblink.patterns.active_pitch_classes(pattern):
			notes.append((octave * chordblink.constants.PITCH_CLASS_COUNT + pc, velocity_for(pattern[pc])))

	return notes


def note_on_messages (channel: int, pattern: NotePattern) -> typing.List[mido.Message]:

	return [
		mido.Message('note_on', channel=channel, note=note, velocity=velocity)
		for note, velocity in pattern_notes(pattern)
	]


def note_off_messages (channel: int, pattern: NotePattern) -> typing.List[mido.Message]:

	return [
		mido.Message('note_off', channel=channel, note=note, velocity=0)
		for note, _ in pattern_notes(pattern)
	]


def update_message (value: int = 0) -> mido.Message:

	return mido.Message(
		'control_change',
		channel = chordblink.constants.UPDATE_CHANNEL,
		control = chordblink.constants.UPDATE_CONTROLLER,
		value = value % 128
	)


def segment_boundaries (schedule: chordblink.scheduler.ChannelSchedule) -> typing.List[int]:

	"""Return sorted segment start beats followed by the final beat."""

	starts = sorted(set([0] + [beat for beat in schedule.chord_changes if beat < len(schedule)]))

	return starts + [len(schedule)]


def build_events (
	schedule: chordblink.scheduler.ChannelSchedule,
	ticks_per_beat: int = chordblink.constants.TICKS_PER_BEAT
) -> typing.List[TimedMessage]:

	"""Turn a schedule into ``(absolute_tick, message)`` pairs, sorted by time.

	Note-ons land ``NOTE_ON_DELAY_TICKS`` after a boundary and note-offs
	``NOTE_OFF_LEAD_TICKS`` before the next one, so no on/off pair for the
	same note ever shares a tick. After the final beat an all-notes-off is
	sent on every role channel.
	"""

	if ticks_per_beat <= chordblink.constants.NOTE_ON_DELAY_TICKS + chordblink.constants.NOTE_OFF_LEAD_TICKS:
		raise ValueError(f"ticks_per_beat must exceed the blink gap, got {ticks_per_beat}")

	events: typing.List[TimedMessage] = []
	boundaries = segment_boundaries(schedule)

	for index, (start, end) in enumerate(zip(boundaries, boundaries[1:])):

		start_tick = start * ticks_per_beat
		end_tick = end * ticks_per_beat

		events.append((start_tick, update_message(index)))

		for channel in chordblink.scheduler.Channel:

			pattern = schedule.pattern(channel, start)

			for message in note_on_messages(channel.midi_channel, pattern):
				events.append((start_tick + chordblink.constants.NOTE_ON_DELAY_TICKS, message))

			for message in note_off_messages(channel.midi_channel, pattern):
				events.append((end_tick - chordblink.constants.NOTE_OFF_LEAD_TICKS, message))

	final_tick = len(schedule) * ticks_per_beat

	for channel in chordblink.scheduler.Channel:
		events.append((final_tick, mido.Message(
			'control_change',
			channel = channel.midi_channel,
			control = chordblink.constants.ALL_NOTES_OFF_CONTROLLER,
			value = 0
		)))

	events.sort(key=lambda event: (event[0], _MESSAGE_ORDER.get(event[1].type, 1)))

	return events


def build_midi_file (
	schedule: chordblink.scheduler.ChannelSchedule,
	bpm: float,
	ticks_per_beat: int = chordblink.constants.TICKS_PER_BEAT
) -> mido.MidiFile:

	"""Render a schedule into a single-track type-1 ``mido.MidiFile``."""

	mid = mido.MidiFile(type=1, ticks_per_beat=ticks_per_beat)
	track = mido.MidiTrack()
	mid.tracks.append(track)

	track.append(mido.MetaMessage('track_name', name='chordblink', time=0))
	track.append(mido.MetaMessage('set_tempo', tempo=mido.bpm2tempo(bpm), time=0))

	last_tick = 0

	for tick, message in build_events(schedule, ticks_per_beat):
		track.append(message.copy(time=tick - last_tick))
		last_tick = tick

	track.append(mido.MetaMessage('end_of_track', time=0))

	return mid


def write_midi_file (
	schedule: chordblink.scheduler.ChannelSchedule,
	bpm: float,
	path: str,
	ticks_per_beat: int = chordblink.constants.TICKS_PER_BEAT
) -> mido.MidiFile:

	"""Write a schedule to ``path`` as a Standard MIDI File.

	Raises:
		OSError: If the file cannot be written.
	"""

	mid = build_midi_file(schedule, bpm, ticks_per_beat)

	logger.info(f"Writing {len(mid.tracks[0])} MIDI event(s) to {path}")
	mid.save(path)

	return mid


class LiveEmitter:

	"""Sends blink output straight to a mido output port.

	Any object with a ``send(message)`` method works as the port, which keeps
	the emitter usable with fake ports in tests.
	"""

	def __init__ (self, port: typing.Any) -> None:

		self.port = port


	def send (self, message: mido.Message) -> None:

		"""
		Send one message, logging (not raising) if the device has gone away.
		"""

		if self.port is None:
			return

		try:
			self.port.send(message)
		except Exception:
			logger.exception("MIDI send failed (device may be disconnected)")


	def show (self, channel: int, pattern: NotePattern) -> None:

		for message in note_on_messages(channel, pattern):
			self.send(message)


	def clear (self, channel: int, pattern: NotePattern) -> None:

		for message in note_off_messages(channel, pattern):
			self.send(message)


	def update (self, value: int = 0) -> None:

		self.send(update_message(value))


	def play (
		self,
		schedule: chordblink.scheduler.ChannelSchedule,
		bpm: float,
		repeats: int = 1,
		sleep: typing.Callable[[float], None] = time.sleep,
		ticks_per_beat: int = chordblink.constants.TICKS_PER_BEAT
	) -> None:

		"""Play a schedule in real time, ``repeats`` times over."""

		events = build_events(schedule, ticks_per_beat)
		tempo = mido.bpm2tempo(bpm)
		song_ticks = len(schedule) * ticks_per_beat

		logger.info(f"Playing {len(schedule)} beat(s) at {bpm} BPM")

		for _ in range(repeats):

			last_tick = 0

			for tick, message in events:

				if tick > last_tick:
					sleep(mido.tick2second(tick - last_tick, ticks_per_beat, tempo))
					last_tick = tick

				self.send(message)

			if song_ticks > last_tick:
				sleep(mido.tick2second(song_ticks - last_tick, ticks_per_beat, tempo))
