"""Exception types raised by chordblink.

Every error derives from ``ChordBlinkError``, itself a ``ValueError``, so
callers that only care about "bad input" can catch either. The command-line
entry point turns any ``ChordBlinkError`` into a one-line message and a
non-zero exit status.
"""

import typing


class ChordBlinkError (ValueError):

	"""Base class for all chordblink input errors."""


class MalformedSymbol (ChordBlinkError):

	"""A chord or scale token could not be decomposed into root, bass and type."""


class UnknownPitchName (ChordBlinkError):

	"""A root or bass name is not a recognised pitch name."""


class UnknownChordType (ChordBlinkError):

	"""One or more chord/scale types are missing from both type tables.

	Carries every missing type found in a progression so they can be reported
	together rather than one per run.
	"""

	def __init__ (self, missing: typing.Sequence[str], locations: typing.Optional[typing.Dict[str, typing.List[int]]] = None) -> None:

		self.missing: typing.List[str] = sorted(set(missing))
		self.locations: typing.Dict[str, typing.List[int]] = locations or {}

		parts = []

		for name in self.missing:
			beats = self.locations.get(name)
			if beats:
				parts.append(f"{name!r} (beat {', '.join(str(b + 1) for b in beats)})")
			else:
				parts.append(repr(name))

		super().__init__(f"Unknown chord type(s): {', '.join(parts)}")


class MissingTempo (ChordBlinkError):

	"""The progression has chords but never declares a BPM."""


class EmptyProgression (ChordBlinkError):

	"""The progression contains no beats."""


class InvalidPatternLiteral (ChordBlinkError):

	"""A type table entry is not a well-formed 12-slot pattern."""


class UnsupportedInputType (ChordBlinkError):

	"""The input file type cannot be read."""
