"""Twelve-slot note patterns.

A note pattern is a tuple of 12 integers, one per pitch class starting at C.
Canonical patterns only hold the three states defined in
:mod:`chordblink.constants`:

- ``OFF`` (0) - the pitch class is not shown
- ``DIM`` (1) - shown at low intensity (scale tones, bass hints)
- ``BRIGHT`` (2) - shown at full intensity (chord tones)

Combining a chord and a scale sums the states slot by slot, so combined
patterns may hold values above ``BRIGHT``. Anything at or above ``BRIGHT``
is treated as bright when rendered.

Patterns are written as 12-character literals of ``0``, ``1`` and ``2``:

```python
parse_pattern("200020020000")  # → C major triad, all tones bright
format_pattern((1,) * 12)      # → "111111111111"
```
"""

import typing

import chordblink.constants
import chordblink.errors


NotePattern = typing.Tuple[int, ...]

PATTERN_LENGTH = chordblink.constants.PITCH_CLASS_COUNT

PATTERN_CHARACTERS: typing.Dict[str, int] = {
	"0": chordblink.constants.OFF,
	"1": chordblink.constants.DIM,
	"2": chordblink.constants.BRIGHT,
}

EMPTY_PATTERN: NotePattern = (chordblink.constants.OFF,) * PATTERN_LENGTH


def is_canonical_pattern (text: str) -> bool:

	"""Return True if ``text`` is a literal 12-slot pattern rather than a type name."""

	return len(text) == PATTERN_LENGTH and all(c in PATTERN_CHARACTERS for c in text)


def parse_pattern (text: str) -> NotePattern:

	"""Convert a 12-character literal into a pattern.

	Raises:
		InvalidPatternLiteral: If the text is not exactly 12 of ``0``, ``1`` or ``2``.
	"""

	if not is_canonical_pattern(text):
		raise chordblink.errors.InvalidPatternLiteral(
			f"Invalid pattern literal {text!r}: expected 12 characters of '0', '1' or '2'"
		)

	return tuple(PATTERN_CHARACTERS[c] for c in text)


def format_pattern (pattern: NotePattern) -> str:

	"""Render a pattern as a literal, clamping combined values to ``2``."""

	return "".join(str(min(value, chordblink.constants.BRIGHT)) for value in pattern)


def pattern_from_intervals (intervals: typing.Iterable[int], state: int = chordblink.constants.BRIGHT) -> NotePattern:

	"""Build a C-rooted pattern with ``state`` at each interval (mod 12)."""

	slots = [chordblink.constants.OFF] * PATTERN_LENGTH

	for interval in intervals:
		slots[interval % PATTERN_LENGTH] = state

	return tuple(slots)


def normalize (pattern: NotePattern) -> NotePattern:

	"""Collapse brightness: every active slot becomes ``DIM``.

	Used as the lookup key for chord fingerprints, where only membership matters.
	"""

	return tuple(
		chordblink.constants.DIM if value != chordblink.constants.OFF else chordblink.constants.OFF
		for value in pattern
	)


def active_pitch_classes (pattern: NotePattern) -> typing.List[int]:

	"""Return the pitch classes whose slot is not ``OFF``."""

	return [pc for pc, value in enumerate(pattern) if value != chordblink.constants.OFF]


def is_bright (value: int) -> bool:

	"""Return True for ``BRIGHT`` and for any combined value above it."""

	return value >= chordblink.constants.BRIGHT


def contains (outer: NotePattern, inner: NotePattern) -> bool:

	"""Return True if every active slot of ``inner`` is also active in ``outer``."""

	return all(outer[pc] != chordblink.constants.OFF for pc in active_pitch_classes(inner))


def rotate (pattern: NotePattern, steps: int) -> NotePattern:

	"""Rotate a pattern right by ``steps`` semitones (slot i moves to i + steps)."""

	steps %= PATTERN_LENGTH

	if steps == 0:
		return tuple(pattern)

	return tuple(pattern[-steps:]) + tuple(pattern[:-steps])
