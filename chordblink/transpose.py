"""Transposition and combination of note patterns.

Canonical patterns are stored relative to C. To show a chord, its type's
pattern is rotated up to the chord root, the slash-bass is injected, and the
result is summed with the (equally rotated) scale pattern:

```python
chord = transpose(parse_pattern("200200020020"), "C", "D")  # D m7
scale = transpose(parse_pattern("101101010110"), "C", "D")  # D dorian
combine(chord, scale)
```

:func:`build_note_progression` applies this to every beat. Unknown types do
not stop the walk: they are collected, and one :class:`UnknownChordType`
listing all of them is raised once every beat has been visited, so the user
can fix the whole file in one pass.
"""

import dataclasses
import logging
import typing

import chordblink.config
import chordblink.constants
import chordblink.errors
import chordblink.patterns
import chordblink.progression
import chordblink.symbols
import chordblink.tables


logger = logging.getLogger(__name__)

NotePattern = chordblink.patterns.NotePattern

PITCH_CLASSES: typing.Dict[str, int] = {
	"C": 0,
	"B#": 0,
	"C#": 1,
	"Db": 1,
	"D": 2,
	"D#": 3,
	"Eb": 3,
	"E": 4,
	"Fb": 4,
	"E#": 5,
	"F": 5,
	"F#": 6,
	"Gb": 6,
	"G": 7,
	"G#": 8,
	"Ab": 8,
	"A": 9,
	"A#": 10,
	"Bb": 10,
	"B": 11,
	"Cb": 11,
}


def pitch_index (name: str) -> int:

	"""Return the pitch class (0-11) of a root or bass name.

	Raises:
		UnknownPitchName: If the name is not A-G with an optional ``#``/``b``.
	"""

	if name not in PITCH_CLASSES:
		raise chordblink.errors.UnknownPitchName(
			f"Unknown pitch name: {name!r}. Expected e.g. 'C', 'F#', 'Bb'."
		)

	return PITCH_CLASSES[name]


def transpose (pattern: NotePattern, from_root: str, to_root: str) -> NotePattern:

	"""Rotate ``pattern`` from one root to another.

	Raises:
		UnknownPitchName: If either root is not recognised.
	"""

	steps = pitch_index(to_root) - pitch_index(from_root)

	return chordblink.patterns.rotate(pattern, steps)


def apply_bass (pattern: NotePattern, bass_root: str) -> NotePattern:

	"""Mark the bass pitch class ``DIM`` if it is not already active."""

	bass = pitch_index(bass_root)

	if pattern[bass] != chordblink.constants.OFF:
		return tuple(pattern)

	slots = list(pattern)
	slots[bass] = chordblink.constants.DIM

	return tuple(slots)


def combine (chord: NotePattern, scale: NotePattern) -> NotePattern:

	"""Sum two patterns slot by slot. The result is not clamped."""

	return tuple(c + s for c, s in zip(chord, scale))


def normalize_brightness (pattern: NotePattern) -> NotePattern:

	"""Promote an all-dim pattern to bright.

	If the pattern has at least one ``DIM`` slot and no bright slot, every
	``DIM`` slot becomes ``BRIGHT`` and every other slot ``OFF``. Any other
	pattern is returned unchanged. Dim should only ever show as an overlay
	on a bright chord, never as the chord itself.
	"""

	has_dim = chordblink.constants.DIM in pattern
	has_bright = any(chordblink.patterns.is_bright(value) for value in pattern)

	if not has_dim or has_bright:
		return tuple(pattern)

	return tuple(
		chordblink.constants.BRIGHT if value == chordblink.constants.DIM else chordblink.constants.OFF
		for value in pattern
	)


class PatternResolver:

	"""Resolves type names against the chord table, then the scale table.

	Misses are recorded rather than raised; call :meth:`raise_for_missing`
	once all lookups are done.
	"""

	def __init__ (self, chords: chordblink.tables.TypeTable, scales: chordblink.tables.TypeTable) -> None:

		self.chords = chords
		self.scales = scales
		self.missing: typing.Dict[str, typing.List[int]] = {}


	@classmethod
	def default (cls, options: typing.Optional[chordblink.config.Options] = None) -> "PatternResolver":

		"""Built-in tables, extended by any table files named in ``options``."""

		chords = chordblink.tables.default_chord_table()
		scales = chordblink.tables.default_scale_table()

		if options is not None:
			for path in options.chord_tables:
				chords.load_file(path)
			for path in options.scale_tables:
				scales.load_file(path)

		return cls(chords, scales)


	def lookup (self, type_name: str, beat: typing.Optional[int] = None) -> NotePattern:

		"""Return the canonical pattern for ``type_name``.

		Literal patterns are parsed directly. Unknown names are recorded and
		produce the all-Off pattern.
		"""

		pattern = self._find(type_name)

		if pattern is None:
			logger.debug(f"Unknown chord type {type_name!r}")
			beats = self.missing.setdefault(type_name, [])
			if beat is not None:
				beats.append(beat)
			return chordblink.patterns.EMPTY_PATTERN

		return pattern


	def resolve_symbol (self, text: str, default_root: str = chordblink.constants.DEFAULT_ROOT) -> NotePattern:

		"""Return the transposed pattern of a symbol such as ``"Dm7"``.

		Unlike :meth:`lookup`, an unknown type raises immediately; this is used
		for one-off lookups such as mapping files.
		"""

		if chordblink.patterns.is_canonical_pattern(text):
			return chordblink.patterns.parse_pattern(text)

		symbol = chordblink.symbols.parse_symbol(text, default_root)
		pattern = self._find(symbol.type)

		if pattern is None:
			raise chordblink.errors.UnknownChordType([symbol.type])

		return transpose(pattern, chordblink.constants.DEFAULT_ROOT, symbol.root)


	def _find (self, type_name: str) -> typing.Optional[NotePattern]:

		if chordblink.patterns.is_canonical_pattern(type_name):
			return chordblink.patterns.parse_pattern(type_name)

		pattern = self.chords.get(type_name)

		if pattern is None:
			pattern = self.scales.get(type_name)

		return pattern


	def raise_for_missing (self) -> None:

		"""Raise one :class:`UnknownChordType` covering every recorded miss."""

		if self.missing:
			raise chordblink.errors.UnknownChordType(list(self.missing), self.missing)


@dataclasses.dataclass(frozen=True)
class NoteProgression:

	"""
	Combined pattern and bass pitch class for every beat.
	"""

	patterns: typing.Tuple[NotePattern, ...]
	basses: typing.Tuple[typing.Optional[int], ...]
	chords: typing.Tuple[NotePattern, ...] = ()
	scales: typing.Tuple[NotePattern, ...] = ()


	def __len__ (self) -> int:

		return len(self.patterns)


def _transpose_or_keep (pattern: NotePattern, root: str, beat: int) -> NotePattern:

	try:
		return transpose(pattern, chordblink.constants.DEFAULT_ROOT, root)
	except chordblink.errors.UnknownPitchName as exc:
		logger.warning(f"Beat {beat + 1}: {exc}; pattern left untransposed")
		return tuple(pattern)


def build_note_progression (
	progression: chordblink.progression.Progression,
	resolver: PatternResolver,
	options: typing.Optional[chordblink.config.Options] = None
) -> NoteProgression:

	"""Turn each beat's chord and scale into one combined pattern.

	Raises:
		UnknownChordType: If any chord or scale type could not be found.
			Raised only after every beat has been processed.
	"""

	if options is None:
		options = chordblink.config.Options()

	patterns: typing.List[NotePattern] = []
	basses: typing.List[typing.Optional[int]] = []
	chords: typing.List[NotePattern] = []
	scales: typing.List[NotePattern] = []

	for beat_index, beat in enumerate(progression.beats):

		chord = _transpose_or_keep(resolver.lookup(beat.chord.type, beat_index), beat.chord.root, beat_index)

		bass: typing.Optional[int]

		try:
			bass = pitch_index(beat.chord.bass)
			chord = apply_bass(chord, beat.chord.bass)
		except chordblink.errors.UnknownPitchName as exc:
			logger.warning(f"Beat {beat_index + 1}: {exc}; bass ignored")
			bass = PITCH_CLASSES.get(beat.chord.root)

		if options.ignore_scales:
			scale = chordblink.patterns.EMPTY_PATTERN
		else:
			scale = _transpose_or_keep(resolver.lookup(beat.scale.type, beat_index), beat.scale.root, beat_index)

		combined = combine(chord, scale)

		if options.bright:
			combined = normalize_brightness(combined)

		patterns.append(combined)
		basses.append(bass)
		chords.append(chord)
		scales.append(scale)

	resolver.raise_for_missing()

	return NoteProgression(
		patterns=tuple(patterns),
		basses=tuple(basses),
		chords=tuple(chords),
		scales=tuple(scales),
	)
