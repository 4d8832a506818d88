"""Chord and scale symbol decomposition.

A symbol is a single token such as ``"CM7"``, ``"Am7/G"`` or ``"D'dorian"``.
It splits into three parts:

- ``root`` - a letter ``A``-``G`` plus an optional ``#`` or ``b``
- ``bass`` - the text after a ``/``, defaulting to the root
- ``type`` - everything after the root with the ``/bass`` suffix removed,
  defaulting to ``"M"`` (major) when empty

Chords and scales share the same grammar; scale type names conventionally
start with an apostrophe (``'ionian``) so they read naturally after a root.
"""

import dataclasses
import typing

import chordblink.errors


ROOT_LETTERS = "ABCDEFG"
ACCIDENTALS = "#b"
BASS_SEPARATOR = "/"
DEFAULT_TYPE = "M"


@dataclasses.dataclass(frozen=True)
class Symbol:

	"""
	A parsed chord or scale token.
	"""

	text: str
	root: str
	bass: str
	type: str


	def with_bass (self, bass: str) -> "Symbol":

		"""
		Return a copy with a different bass note.
		"""

		return dataclasses.replace(self, bass=bass)


def root_of (text: str) -> str:

	"""Return the leading root name of ``text``, or ``""`` if there is none.

	Example:
		```python
		root_of("CM7")    # → "C"
		root_of("Bbm7")   # → "Bb"
		root_of("m7")     # → ""
		```
	"""

	if not text or text[0] not in ROOT_LETTERS:
		return ""

	if len(text) > 1 and text[1] in ACCIDENTALS:
		return text[:2]

	return text[0]


def has_root (text: str) -> bool:

	"""Return True if ``text`` starts with a recognisable root."""

	return root_of(text) != ""


def has_bass (text: str) -> bool:

	"""Return True if ``text`` names its own bass note."""

	return BASS_SEPARATOR in text and text.rsplit(BASS_SEPARATOR, 1)[1] != ""


def bass_of (text: str) -> str:

	"""Return the slash-bass of ``text``, or its root when no bass is given."""

	if has_bass(text):
		return text.rsplit(BASS_SEPARATOR, 1)[1]

	return root_of(text)


def type_of (text: str) -> str:

	"""Return the type part of ``text`` with any ``/bass`` suffix stripped."""

	remainder = text[len(root_of(text)):]
	type_name = remainder.split(BASS_SEPARATOR, 1)[0]

	return type_name if type_name else DEFAULT_TYPE


def parse_symbol (text: str, default_root: typing.Optional[str] = None) -> Symbol:

	"""Decompose a token into a :class:`Symbol`.

	Parameters:
		text: The token, e.g. ``"Am7/G"``.
		default_root: Root to prefix when ``text`` has none. When omitted, a
			token without a root is an error.

	Raises:
		MalformedSymbol: If the token is empty, or has no root and no default.
	"""

	text = text.strip()

	if not text:
		raise chordblink.errors.MalformedSymbol("Empty chord/scale symbol")

	if not has_root(text):

		if default_root is None:
			raise chordblink.errors.MalformedSymbol(
				f"Symbol {text!r} does not start with a root (A-G)"
			)

		text = default_root + text

	return Symbol(text=text, root=root_of(text), bass=bass_of(text), type=type_of(text))
