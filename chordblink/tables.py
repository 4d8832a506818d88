"""Chord/scale type tables and the chord-to-scale candidate table.

Type tables map a type name (``"m7"``, ``"'dorian"``) to a canonical
C-rooted pattern. The built-in tables are generated from interval lists;
extra types can be loaded from tab-separated config files:

```text
M7	200020020002
maj7	.
m7	200200020020
```

A ``.`` in place of a pattern repeats the previous line's pattern, and a
blank line ends the table.

The chord-to-scale table maps a chord fingerprint (normalized pattern) to a
priority-ordered list of scale patterns and is persisted as one line per
chord:

```text
100010010000 : [ 101011010101 , 101011010110 ]
```
"""

import logging
import threading
import typing

import chordblink.constants
import chordblink.errors
import chordblink.patterns


logger = logging.getLogger(__name__)

NotePattern = chordblink.patterns.NotePattern

REPEAT_PREVIOUS = "."
EMPTY_TYPE = "empty"

CHORD_INTERVALS: typing.Dict[str, typing.List[int]] = {
	"M": [0, 4, 7],
	"maj": [0, 4, 7],
	"m": [0, 3, 7],
	"min": [0, 3, 7],
	"dim": [0, 3, 6],
	"aug": [0, 4, 8],
	"+": [0, 4, 8],
	"5": [0, 7],
	"sus2": [0, 2, 7],
	"sus4": [0, 5, 7],
	"6": [0, 4, 7, 9],
	"m6": [0, 3, 7, 9],
	"7": [0, 4, 7, 10],
	"M7": [0, 4, 7, 11],
	"maj7": [0, 4, 7, 11],
	"m7": [0, 3, 7, 10],
	"mM7": [0, 3, 7, 11],
	"m7b5": [0, 3, 6, 10],
	"dim7": [0, 3, 6, 9],
	"aug7": [0, 4, 8, 10],
	"7sus4": [0, 5, 7, 10],
	"add9": [0, 2, 4, 7],
	"9": [0, 2, 4, 7, 10],
	"M9": [0, 2, 4, 7, 11],
	"m9": [0, 2, 3, 7, 10],
}

SCALE_INTERVALS: typing.Dict[str, typing.List[int]] = {
	EMPTY_TYPE: [],
	"'ionian": [0, 2, 4, 5, 7, 9, 11],
	"'major": [0, 2, 4, 5, 7, 9, 11],
	"'dorian": [0, 2, 3, 5, 7, 9, 10],
	"'phrygian": [0, 1, 3, 5, 7, 8, 10],
	"'lydian": [0, 2, 4, 6, 7, 9, 11],
	"'mixolydian": [0, 2, 4, 5, 7, 9, 10],
	"'aeolian": [0, 2, 3, 5, 7, 8, 10],
	"'minor": [0, 2, 3, 5, 7, 8, 10],
	"'locrian": [0, 1, 3, 5, 6, 8, 10],
	"'harmonic_minor": [0, 2, 3, 5, 7, 8, 11],
	"'melodic_minor": [0, 2, 3, 5, 7, 9, 11],
	"'lydian_dominant": [0, 2, 4, 6, 7, 9, 10],
	"'superlocrian": [0, 1, 3, 4, 6, 8, 10],
	"'phrygian_dominant": [0, 1, 4, 5, 7, 8, 10],
	"'major_pentatonic": [0, 2, 4, 7, 9],
	"'minor_pentatonic": [0, 3, 5, 7, 10],
	"'blues": [0, 3, 5, 6, 7, 10],
	"'whole_tone": [0, 2, 4, 6, 8, 10],
	"'diminished": [0, 1, 3, 4, 6, 7, 9, 10],
	"'chromatic": [0, 1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11],
}


class TypeTable:

	"""
	Read-only mapping from type name to canonical C-rooted pattern.
	"""

	def __init__ (self, name: str, patterns: typing.Optional[typing.Dict[str, NotePattern]] = None) -> None:

		self.name = name
		self._patterns: typing.Dict[str, NotePattern] = dict(patterns or {})


	@classmethod
	def from_intervals (cls, name: str, definitions: typing.Dict[str, typing.List[int]], state: int) -> "TypeTable":

		"""Build a table from interval lists, marking every interval with ``state``."""

		return cls(name, {
			type_name: chordblink.patterns.pattern_from_intervals(intervals, state)
			for type_name, intervals in definitions.items()
		})


	def load (self, lines: typing.Iterable[str], source: str = "<config>") -> int:

		"""Add entries from tab-separated config lines.

		Leading ``#`` comment lines and leading blank lines are skipped; the
		first blank line after an entry ends the table.

		Returns:
			Number of entries loaded.

		Raises:
			InvalidPatternLiteral: On a malformed line or pattern, or a ``.``
				repeat with nothing to repeat.
		"""

		previous: typing.Optional[NotePattern] = None
		count = 0

		for line_number, raw in enumerate(lines, start=1):

			line = raw.rstrip("\r\n")

			if not line.strip():
				if count:
					break
				continue

			if line.lstrip().startswith("#"):
				continue

			type_name, separator, value = line.partition("\t")
			type_name = type_name.strip()
			value = value.strip()

			if not separator or not type_name:
				raise chordblink.errors.InvalidPatternLiteral(
					f"{source}:{line_number}: expected '<type>\\t<pattern>', got {line!r}"
				)

			if value == REPEAT_PREVIOUS:
				if previous is None:
					raise chordblink.errors.InvalidPatternLiteral(
						f"{source}:{line_number}: '{REPEAT_PREVIOUS}' has no previous pattern to repeat"
					)
				pattern = previous

			else:
				try:
					pattern = chordblink.patterns.parse_pattern(value)
				except chordblink.errors.InvalidPatternLiteral as exc:
					raise chordblink.errors.InvalidPatternLiteral(f"{source}:{line_number}: {exc}") from exc

			if type_name in self._patterns:
				logger.debug(f"{self.name} table: {type_name!r} redefined by {source}")

			self._patterns[type_name] = pattern
			previous = pattern
			count += 1

		logger.info(f"Loaded {count} {self.name} type(s) from {source}")

		return count


	def load_file (self, path: str) -> int:

		"""Load entries from a config file (see :meth:`load`)."""

		with open(path, "r", encoding="utf-8") as f:
			return self.load(f, source=path)


	def get (self, type_name: str) -> typing.Optional[NotePattern]:

		return self._patterns.get(type_name)


	def items (self) -> typing.List[typing.Tuple[str, NotePattern]]:

		return list(self._patterns.items())


	def __contains__ (self, type_name: object) -> bool:

		return type_name in self._patterns


	def __len__ (self) -> int:

		return len(self._patterns)


def default_chord_table () -> TypeTable:

	"""Return the built-in chord table (chord tones bright)."""

	return TypeTable.from_intervals("chord", CHORD_INTERVALS, chordblink.constants.BRIGHT)


def default_scale_table () -> TypeTable:

	"""Return the built-in scale table (scale tones dim)."""

	return TypeTable.from_intervals("scale", SCALE_INTERVALS, chordblink.constants.DIM)


class ChordScaleTable:

	"""Priority-ordered scale candidates per chord fingerprint.

	Keys are always normalized (brightness collapsed), so a chord looked up
	with dim or bright tones finds the same entry. The table carries its own
	re-entrant lock: the realtime engine holds it while handling a message
	and :meth:`save` takes it too, so a save never sees a half-applied
	promotion.
	"""

	def __init__ (self) -> None:

		self._entries: typing.Dict[NotePattern, typing.List[NotePattern]] = {}
		self.lock = threading.RLock()


	@classmethod
	def from_type_tables (cls, chords: TypeTable, scales: TypeTable) -> "ChordScaleTable":

		"""Seed candidates for every chord type at every root.

		A scale is a candidate for a chord when it contains every chord tone.
		Smaller scales come first, so the tightest fit is suggested before
		supersets like the chromatic scale.
		"""

		table = cls()

		scale_patterns: typing.List[NotePattern] = []
		for _, scale in scales.items():
			if any(scale) and scale not in scale_patterns:
				scale_patterns.append(scale)

		rotated_scales = [
			chordblink.patterns.rotate(scale, steps)
			for scale in scale_patterns
			for steps in range(chordblink.patterns.PATTERN_LENGTH)
		]
		rotated_scales.sort(key=lambda s: len(chordblink.patterns.active_pitch_classes(s)))

		for _, chord in chords.items():
			for steps in range(chordblink.patterns.PATTERN_LENGTH):
				rotated_chord = chordblink.patterns.rotate(chord, steps)
				for scale in rotated_scales:
					if chordblink.patterns.contains(scale, rotated_chord):
						table.add(rotated_chord, scale)

		return table


	def candidates (self, chord: NotePattern) -> typing.List[NotePattern]:

		"""Return a copy of the candidate list for ``chord`` (empty if unknown)."""

		with self.lock:
			return list(self._entries.get(chordblink.patterns.normalize(chord), []))


	def best (self, chord: NotePattern) -> NotePattern:

		"""Return the preferred scale for ``chord``, or the all-Off pattern."""

		found = self.candidates(chord)

		if not found:
			logger.debug(f"No scale candidates for chord {chordblink.patterns.format_pattern(chord)}")
			return chordblink.patterns.EMPTY_PATTERN

		return found[0]


	def next_after (
		self,
		chord: NotePattern,
		current: NotePattern,
		candidates: typing.Optional[typing.Sequence[NotePattern]] = None
	) -> NotePattern:

		"""Return the candidate following ``current``, wrapping to the front.

		Parameters:
			chord: Fingerprint whose candidates are stepped through.
			current: The scale shown now.
			candidates: A snapshot to step through instead of the live list,
				which promotions reorder.

		Returns the first candidate when ``current`` is not one of them, and
		the all-Off pattern when there are none.
		"""

		found = list(candidates) if candidates is not None else self.candidates(chord)

		if not found:
			return chordblink.patterns.EMPTY_PATTERN

		if current not in found:
			return found[0]

		return found[(found.index(current) + 1) % len(found)]


	def add (self, chord: NotePattern, scale: NotePattern) -> None:

		"""Append ``scale`` as the lowest-priority candidate if not already present."""

		key = chordblink.patterns.normalize(chord)

		with self.lock:
			found = self._entries.setdefault(key, [])
			if scale not in found:
				found.append(scale)


	def learn (self, chord: NotePattern, scale: NotePattern) -> None:

		"""Record a chord/scale pairing; an empty scale teaches nothing."""

		if any(scale) and any(chord):
			self.add(chord, scale)


	def promote (self, chord: NotePattern, scale: NotePattern) -> None:

		"""Move ``scale`` to the front of ``chord``'s candidates (adding it if new)."""

		key = chordblink.patterns.normalize(chord)

		with self.lock:
			found = self._entries.setdefault(key, [])
			if scale in found:
				found.remove(scale)
			found.insert(0, scale)

		logger.debug(
			f"Promoted {chordblink.patterns.format_pattern(scale)} for chord {chordblink.patterns.format_pattern(key)}"
		)


	def load (
		self,
		lines: typing.Iterable[str],
		resolve: typing.Optional[typing.Callable[[str], NotePattern]] = None,
		source: str = "<mapping>"
	) -> int:

		"""Merge entries from ``<chord> : [ <scale> , ... ]`` lines.

		Parameters:
			lines: Mapping lines; blank lines and ``#`` comments are skipped.
			resolve: Converts a symbol such as ``"CM7"`` into a pattern. When
				omitted only pattern literals are accepted.
			source: Name used in error messages.

		Returns:
			Number of chord entries read.
		"""

		count = 0

		for line_number, raw in enumerate(lines, start=1):

			line = raw.strip()

			if not line or line.startswith("#"):
				continue

			chord_text, separator, rest = line.partition(":")
			rest = rest.strip()

			if not separator or not rest.startswith("[") or not rest.endswith("]"):
				raise chordblink.errors.InvalidPatternLiteral(
					f"{source}:{line_number}: expected '<chord> : [ <scale> , ... ]', got {line!r}"
				)

			chord = self._resolve(chord_text.strip(), resolve, source, line_number)

			for item in rest[1:-1].split(","):
				item = item.strip()
				if item:
					self.add(chord, self._resolve(item, resolve, source, line_number))

			count += 1

		logger.info(f"Loaded {count} chord-scale mapping(s) from {source}")

		return count


	def load_file (self, path: str, resolve: typing.Optional[typing.Callable[[str], NotePattern]] = None) -> int:

		with open(path, "r", encoding="utf-8") as f:
			return self.load(f, resolve=resolve, source=path)


	@staticmethod
	def _resolve (
		text: str,
		resolve: typing.Optional[typing.Callable[[str], NotePattern]],
		source: str,
		line_number: int
	) -> NotePattern:

		if chordblink.patterns.is_canonical_pattern(text):
			return chordblink.patterns.parse_pattern(text)

		if resolve is None:
			raise chordblink.errors.InvalidPatternLiteral(f"{source}:{line_number}: {text!r} is not a pattern literal")

		return resolve(text)


	def dump (self) -> typing.List[str]:

		"""Return the table as mapping lines, most-preferred scale first."""

		with self.lock:
			return [
				f"{chordblink.patterns.format_pattern(chord)} : [ "
				+ " , ".join(chordblink.patterns.format_pattern(scale) for scale in scales)
				+ " ]"
				for chord, scales in self._entries.items()
				if scales
			]


	def save (self, path: str) -> None:

		"""Write the table to ``path`` in the mapping format."""

		with self.lock:
			lines = self.dump()

			with open(path, "w", encoding="utf-8") as f:
				for line in lines:
					f.write(line + "\n")

		logger.info(f"Saved {len(lines)} chord-scale mapping(s) to {path}")


	def __len__ (self) -> int:

		return len(self._entries)


	def __contains__ (self, chord: object) -> bool:

		if not isinstance(chord, tuple):
			return False

		return chordblink.patterns.normalize(chord) in self._entries
