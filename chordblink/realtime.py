"""Realtime pedal tracking and scale suggestion.

:class:`RealtimeEngine` sits between a keyboard and the visual driver. It is
meant to be installed as a mido input callback and keeps, per MIDI channel:

- the notes currently sounding (a multiset - a note held both by a key and
  by a pedal is counted twice)
- the notes kept alive by the sustain pedal and by the sostenuto pedal
- whether realtime scale suggestion is active, and what it is showing

Pedals are resolved here so the driver never has to: releasing a pedal sends
one note-off per note it was holding.

The realtime controller asks for a scale suggestion. The held notes form a
fingerprint that is looked up in the :class:`ChordScaleTable`. Pressing the
controller again on the same chord steps to the next candidate and promotes
it to the front of the list, so the table learns the player's preferences.

All state is touched from the mido callback thread. The engine shares the
table's lock so a save from the foreground thread never interleaves with a
message being handled.
"""

import dataclasses
import logging
import typing

import mido

import chordblink.constants
import chordblink.emitter
import chordblink.patterns
import chordblink.tables


logger = logging.getLogger(__name__)

NotePattern = chordblink.patterns.NotePattern


@dataclasses.dataclass
class ChannelState:

	"""
	Note and pedal bookkeeping for one MIDI channel.
	"""

	active: typing.List[int] = dataclasses.field(default_factory=list)
	sustained: typing.List[int] = dataclasses.field(default_factory=list)
	sostenuto_held: typing.List[int] = dataclasses.field(default_factory=list)
	sustain: bool = False
	sostenuto: bool = False
	realtime: bool = False
	fingerprint: typing.Optional[NotePattern] = None
	suggestion: NotePattern = chordblink.patterns.EMPTY_PATTERN
	candidates: typing.List[NotePattern] = dataclasses.field(default_factory=list)


	def held_by_pedal (self, note: int) -> bool:

		return note in self.sustained or note in self.sostenuto_held


	def remove_one (self, note: int) -> bool:

		"""Remove a single occurrence of ``note`` from the active notes."""

		if note in self.active:
			self.active.remove(note)
			return True

		return False


class RealtimeEngine:

	"""
	Per-channel pedal state machine and scale suggester.
	"""

	def __init__ (
		self,
		table: chordblink.tables.ChordScaleTable,
		emitter: typing.Optional[chordblink.emitter.LiveEmitter] = None,
		scale_channel: int = chordblink.constants.SCALE_CHANNEL,
		forward_notes: bool = True
	) -> None:

		"""
		Parameters:
			table: Chord fingerprint to scale candidates. Mutated by promotions.
			emitter: Output for forwarded notes, pedal note-offs and suggestions.
				When omitted, output is discarded.
			scale_channel: MIDI channel that shows the suggested scale.
			forward_notes: When True, incoming note messages are passed through.
		"""

		self.table = table
		self.emitter = emitter if emitter is not None else chordblink.emitter.LiveEmitter(None)
		self.scale_channel = scale_channel
		self.forward_notes = forward_notes
		self.states: typing.List[ChannelState] = [
			ChannelState() for _ in range(chordblink.constants.MIDI_CHANNEL_COUNT)
		]
		self.lock = table.lock


	def state (self, channel: int) -> ChannelState:

		return self.states[channel]


	def handle (self, message: mido.Message) -> None:

		"""Process one incoming message. Installed as the mido input callback."""

		with self.lock:

			if message.type == 'note_on' and message.velocity > 0:
				self._note_on(message.channel, message.note, message.velocity)

			elif message.type == 'note_off' or message.type == 'note_on':
				self._note_off(message.channel, message.note)

			elif message.type == 'control_change':
				self._control_change(message.channel, message.control, message.value)

			else:
				logger.debug(f"Ignoring {message.type} message")


	def _note_on (self, channel: int, note: int, velocity: int) -> None:

		state = self.states[channel]
		state.active.append(note)

		if state.sustain:
			state.active.append(note)
			state.sustained.append(note)

		if self.forward_notes:
			self.emitter.send(mido.Message('note_on', channel=channel, note=note, velocity=velocity))


	def _note_off (self, channel: int, note: int) -> None:

		state = self.states[channel]

		if not state.remove_one(note):
			logger.warning(f"Channel {channel}: note-off for note {note} that is not active")
			return

		if self.forward_notes and not state.held_by_pedal(note):
			self.emitter.send(mido.Message('note_off', channel=channel, note=note, velocity=0))


	def _control_change (self, channel: int, control: int, value: int) -> None:

		down = value >= chordblink.constants.CONTROLLER_ON_THRESHOLD

		if control == chordblink.constants.SUSTAIN_CONTROLLER:
			self._set_sustain(channel, down)

		elif control == chordblink.constants.SOSTENUTO_CONTROLLER:
			self._set_sostenuto(channel, down)

		elif control == chordblink.constants.REALTIME_CONTROLLER:
			if down:
				self.activate_realtime(channel)
			else:
				self.deactivate_realtime(channel)

		else:
			logger.debug(f"Channel {channel}: ignoring controller {control}")


	def _release (self, channel: int, held: typing.List[int]) -> None:

		"""Send one note-off per held entry and drop it from the active notes."""

		state = self.states[channel]

		for note in held:
			state.remove_one(note)
			self.emitter.send(mido.Message('note_off', channel=channel, note=note, velocity=0))

		held.clear()


	def _set_sustain (self, channel: int, down: bool) -> None:

		state = self.states[channel]

		if down == state.sustain:
			logger.warning(f"Channel {channel}: sustain already {'on' if down else 'off'}")
			return

		state.sustain = down

		if down:
			for note in sorted(set(state.active)):
				state.active.append(note)
				state.sustained.append(note)
		else:
			self._release(channel, state.sustained)


	def _set_sostenuto (self, channel: int, down: bool) -> None:

		state = self.states[channel]

		if down == state.sostenuto:
			logger.warning(f"Channel {channel}: sostenuto already {'on' if down else 'off'}")
			return

		state.sostenuto = down

		if down:
			for note in sorted(set(state.active)):
				state.active.append(note)
				state.sostenuto_held.append(note)
		else:
			self._release(channel, state.sostenuto_held)


	def fingerprint (self, channel: int, bright: bool = False) -> NotePattern:

		"""Return the pattern of the pitch classes currently sounding on ``channel``."""

		value = chordblink.constants.BRIGHT if bright else chordblink.constants.DIM
		slots = [chordblink.constants.OFF] * chordblink.patterns.PATTERN_LENGTH

		for note in self.states[channel].active:
			slots[note % chordblink.patterns.PATTERN_LENGTH] = value

		return tuple(slots)


	def activate_realtime (self, channel: int) -> NotePattern:

		"""Suggest a scale for the held chord and show it.

		A fresh activation suggests the table's preferred scale. Activating
		again on the same chord moves to the next candidate and promotes it.

		Returns:
			The suggested scale (all-Off if the chord is not in the table).
		"""

		with self.lock:

			state = self.states[channel]
			was_active = state.realtime
			fingerprint = self.fingerprint(channel, bright=was_active)
			key = chordblink.patterns.normalize(fingerprint)

			same_chord = (
				was_active
				and state.fingerprint is not None
				and chordblink.patterns.normalize(state.fingerprint) == key
			)

			if same_chord and state.candidates:
				scale = self.table.next_after(fingerprint, state.suggestion, state.candidates)
			else:
				state.candidates = self.table.candidates(fingerprint)
				scale = self.table.best(fingerprint)

			state.fingerprint = fingerprint
			state.realtime = True

			if scale != state.suggestion:

				self.emitter.clear(self.scale_channel, state.suggestion)
				self.emitter.show(self.scale_channel, scale)
				self.emitter.update()
				state.suggestion = scale

				if was_active:
					self.table.promote(fingerprint, scale)

			logger.debug(
				f"Channel {channel}: chord {chordblink.patterns.format_pattern(fingerprint)}"
				f" -> scale {chordblink.patterns.format_pattern(scale)}"
			)

			return scale


	def deactivate_realtime (self, channel: int) -> None:

		"""Withdraw the suggested scale and forget the chord fingerprint."""

		with self.lock:

			state = self.states[channel]

			if not state.realtime:
				logger.warning(f"Channel {channel}: realtime suggestion already off")
				return

			self.emitter.clear(self.scale_channel, state.suggestion)
			self.emitter.update()

			state.realtime = False
			state.fingerprint = None
			state.suggestion = chordblink.patterns.EMPTY_PATTERN
			state.candidates = []


	def save_table (self, path: str) -> None:

		"""Persist the chord-scale table, excluding concurrent message handling."""

		with self.lock:
			self.table.save(path)


SAVE_COMMANDS = ("s", "save")
QUIT_COMMANDS = ("q", "quit", "exit")


def run_session (
	engine: RealtimeEngine,
	commands: typing.Iterable[str],
	mapping_path: typing.Optional[str] = None,
	prompt: typing.Optional[typing.Callable[[str], None]] = None
) -> None:

	"""Drive the foreground side of a realtime session.

	MIDI input reaches ``engine.handle`` on mido's callback thread; this loop
	only reads commands (``s`` to save the table, ``q`` to quit). The session
	ends on a quit command or when ``commands`` is exhausted (EOF). The table
	is saved on the way out whenever ``mapping_path`` is set.
	"""

	if prompt is not None:
		prompt("Realtime mode: 's' saves the chord-scale table, 'q' quits.")

	for raw in commands:

		command = raw.strip().lower()

		if not command:
			continue

		if command in QUIT_COMMANDS:
			break

		if command in SAVE_COMMANDS:
			if mapping_path is None:
				logger.warning("No mapping file given; nothing to save to")
			else:
				engine.save_table(mapping_path)
			continue

		logger.warning(f"Unknown command {command!r}")

	if mapping_path is not None:
		engine.save_table(mapping_path)
