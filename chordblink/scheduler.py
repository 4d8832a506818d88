"""Channel separation: turning a note progression into a blink schedule.

The progression is cut into runs - maximal spans of beats with the same
combined pattern (and, with bass indication, the same bass). Each run's
notes are spread over four output roles:

- ``MIXED`` - notes the run shares with the run that follows it; they keep
  their colour across the boundary (every role still blinks off briefly)
- ``ODD`` / ``EVEN`` - notes that end with the run; the two roles alternate
  from run to run, so the notes about to disappear blink in a different
  colour from the ones that replaced them last time
- ``BASS`` - the bass pitch class, when bass indication is on; it takes
  precedence over every other role

A progression without any chord change puts everything on ``ODD``. The final
run either wraps around to the first one (looping songs) or holds a static
colour.
"""

import dataclasses
import enum
import logging
import typing

import chordblink.config
import chordblink.constants
import chordblink.errors
import chordblink.patterns
import chordblink.transpose


logger = logging.getLogger(__name__)

NotePattern = chordblink.patterns.NotePattern


class Channel (enum.Enum):

	"""
	Output roles of the blink schedule.
	"""

	ODD = "odd"
	EVEN = "even"
	MIXED = "mixed"
	BASS = "bass"


	@property
	def midi_channel (self) -> int:

		"""
		The MIDI channel that carries this role.
		"""

		return MIDI_CHANNELS[self]


	def toggled (self) -> "Channel":

		"""
		Return the other parity role (only valid for ``ODD`` and ``EVEN``).
		"""

		if self is Channel.ODD:
			return Channel.EVEN

		if self is Channel.EVEN:
			return Channel.ODD

		raise ValueError(f"{self} has no parity")


MIDI_CHANNELS: typing.Dict[Channel, int] = {
	Channel.ODD: chordblink.constants.ODD_CHANNEL,
	Channel.EVEN: chordblink.constants.EVEN_CHANNEL,
	Channel.MIXED: chordblink.constants.MIXED_CHANNEL,
	Channel.BASS: chordblink.constants.BASS_CHANNEL,
}


@dataclasses.dataclass
class ChannelSchedule:

	"""
	Per-role patterns for every beat, plus the beats where the chord changes.
	"""

	channels: typing.Dict[Channel, typing.List[NotePattern]]
	chord_changes: typing.List[int]


	def __len__ (self) -> int:

		return len(self.channels[Channel.ODD])


	def pattern (self, channel: Channel, beat: int) -> NotePattern:

		return self.channels[channel][beat]


	def beat (self, beat: int) -> typing.Dict[Channel, NotePattern]:

		"""Return every role's pattern at ``beat``."""

		return {channel: patterns[beat] for channel, patterns in self.channels.items()}


def _same_run (note_progression: chordblink.transpose.NoteProgression, a: int, b: int, indicate_bass: bool) -> bool:

	if note_progression.patterns[a] != note_progression.patterns[b]:
		return False

	return not indicate_bass or note_progression.basses[a] == note_progression.basses[b]


def find_chord_changes (note_progression: chordblink.transpose.NoteProgression, indicate_bass: bool = False) -> typing.List[int]:

	"""Return the beats whose pattern (or bass, if indicated) differs from the beat before."""

	return [
		beat for beat in range(1, len(note_progression))
		if not _same_run(note_progression, beat - 1, beat, indicate_bass)
	]


def _empty_assignment () -> typing.Dict[Channel, typing.List[int]]:

	return {channel: [chordblink.constants.OFF] * chordblink.patterns.PATTERN_LENGTH for channel in Channel}


def _split (current: NotePattern, successor: NotePattern, parity: Channel) -> typing.Dict[Channel, typing.List[int]]:

	"""Shared notes go to MIXED, notes ending with the run go to ``parity``."""

	assignment = _empty_assignment()

	for pc in chordblink.patterns.active_pitch_classes(current):
		if successor[pc] != chordblink.constants.OFF:
			assignment[Channel.MIXED][pc] = current[pc]
		else:
			assignment[parity][pc] = current[pc]

	return assignment


def _static (current: NotePattern, parity: Channel) -> typing.Dict[Channel, typing.List[int]]:

	"""Every note on ``parity``: no blink."""

	assignment = _empty_assignment()

	for pc in chordblink.patterns.active_pitch_classes(current):
		assignment[parity][pc] = current[pc]

	return assignment


def _override_bass (assignment: typing.Dict[Channel, typing.List[int]], current: NotePattern, bass: typing.Optional[int]) -> None:

	if bass is None:
		return

	value = current[bass] if current[bass] != chordblink.constants.OFF else chordblink.constants.DIM

	for channel in Channel:
		assignment[channel][bass] = chordblink.constants.OFF

	assignment[Channel.BASS][bass] = value


def separate_channels (
	note_progression: chordblink.transpose.NoteProgression,
	options: typing.Optional[chordblink.config.Options] = None
) -> ChannelSchedule:

	"""Assign every active pitch of every beat to one output role.

	Parameters:
		note_progression: Combined patterns and basses per beat.
		options: Uses ``loop`` and ``indicate_bass``.

	Returns:
		The schedule. Its ``chord_changes`` lists run starts in order, with a
		trailing ``0`` when a looped song wraps back to a different first chord.

	Raises:
		EmptyProgression: If the progression has no beats.
	"""

	if options is None:
		options = chordblink.config.Options()

	length = len(note_progression)

	if length == 0:
		raise chordblink.errors.EmptyProgression("Cannot schedule an empty progression")

	patterns = note_progression.patterns
	basses = note_progression.basses
	chord_changes = find_chord_changes(note_progression, options.indicate_bass)
	channels: typing.Dict[Channel, typing.List[NotePattern]] = {
		channel: [chordblink.patterns.EMPTY_PATTERN] * length for channel in Channel
	}

	run_starts = [0] + chord_changes
	run_ends = chord_changes + [length]

	wraps_to_same = _same_run(note_progression, 0, length - 1, options.indicate_bass)
	parity = Channel.ODD

	for index, (start, end) in enumerate(zip(run_starts, run_ends)):

		current = patterns[start]
		is_last = index == len(run_starts) - 1

		if not chord_changes:
			assignment = _static(current, Channel.ODD)

		elif not is_last:
			assignment = _split(current, patterns[run_starts[index + 1]], parity)

		elif options.loop:
			if wraps_to_same:
				# The last run continues into the first one, so it leads into
				# whatever follows the first run.
				successor = patterns[chord_changes[0]]
			else:
				successor = patterns[0]
				chord_changes.append(0)
			assignment = _split(current, successor, parity)

		else:
			assignment = _static(current, parity)

		if options.indicate_bass:
			_override_bass(assignment, current, basses[start])

		for channel in Channel:
			frozen = tuple(assignment[channel])
			for beat in range(start, end):
				channels[channel][beat] = frozen

		logger.debug(f"Run {index}: beats {start}-{end - 1} on {parity.value}")

		parity = parity.toggled()

	logger.info(f"Scheduled {length} beat(s) with {len(chord_changes)} chord change(s)")

	return ChannelSchedule(channels=channels, chord_changes=chord_changes)
