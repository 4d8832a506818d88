"""Progression text parsing.

A progression file is line oriented:

```text
My Song
120 BPM
Chords:
CM7 . Dm7 . | G7_G'mixolydian . . . |
Am7/G_A'aeolian / Fmaj7 .
```

- A line whose last token is ``BPM`` sets the tempo from the token before it.
- ``Chords:`` opens the chord section. Everything before it except the tempo
  line is ignored.
- Each whitespace-separated token in the chord section is one beat:

  - ``|`` is a bar line and takes no beat
  - ``.`` or ``/`` repeats the previous beat's chord and scale
  - ``chord_scale`` sets both; the scale inherits the chord's bass unless
    it names its own
  - anything else is a chord with the ``empty`` scale

Symbols without a root get the default root (``C``).
"""

import dataclasses
import logging
import os
import typing

import chordblink.constants
import chordblink.errors
import chordblink.symbols
import chordblink.tables


logger = logging.getLogger(__name__)

TEMPO_MARKER = "BPM"
CHORDS_MARKER = "Chords:"
BAR_TOKEN = "|"
REPEAT_TOKENS = (".", "/")
SCALE_SEPARATOR = "_"

SUPPORTED_EXTENSIONS = (".txt",)
STUB_EXTENSIONS = (".mma",)


@dataclasses.dataclass(frozen=True)
class Beat:

	"""
	One beat of a progression: a chord and the scale shown alongside it.
	"""

	chord: chordblink.symbols.Symbol
	scale: chordblink.symbols.Symbol


@dataclasses.dataclass(frozen=True)
class Progression:

	"""
	A parsed progression: tempo plus one entry per beat.
	"""

	bpm: int
	beats: typing.Tuple[Beat, ...]


	def __len__ (self) -> int:

		return len(self.beats)


def _parse_tempo (tokens: typing.List[str], line_number: int) -> int:

	if len(tokens) < 2:
		raise chordblink.errors.MalformedSymbol(f"Line {line_number}: '{TEMPO_MARKER}' is not preceded by a tempo")

	try:
		bpm = int(tokens[-2])
	except ValueError as exc:
		raise chordblink.errors.MalformedSymbol(
			f"Line {line_number}: tempo {tokens[-2]!r} is not an integer"
		) from exc

	if bpm <= 0:
		raise chordblink.errors.MalformedSymbol(f"Line {line_number}: tempo must be positive, got {bpm}")

	return bpm


def parse_beat_token (token: str, default_root: str = chordblink.constants.DEFAULT_ROOT) -> Beat:

	"""Parse a single non-repeat, non-bar token into a :class:`Beat`.

	Example:
		```python
		beat = parse_beat_token("Am7/G_A'aeolian")
		beat.chord.type   # → "m7"
		beat.scale.bass   # → "G" (inherited from the chord)
		```
	"""

	if SCALE_SEPARATOR not in token:
		chord = chordblink.symbols.parse_symbol(token, default_root)
		scale = chordblink.symbols.parse_symbol(chordblink.tables.EMPTY_TYPE, default_root)
		return Beat(chord=chord, scale=scale)

	chord_text, _, scale_text = token.partition(SCALE_SEPARATOR)

	if not chord_text:
		raise chordblink.errors.MalformedSymbol(f"Token {token!r} has no chord before '{SCALE_SEPARATOR}'")

	chord = chordblink.symbols.parse_symbol(chord_text, default_root)

	if not scale_text:
		scale_text = chordblink.tables.EMPTY_TYPE

	scale = chordblink.symbols.parse_symbol(scale_text, default_root)

	if not chordblink.symbols.has_bass(scale_text):
		scale = scale.with_bass(chord.bass)

	return Beat(chord=chord, scale=scale)


def parse_progression (lines: typing.Iterable[str], default_root: str = chordblink.constants.DEFAULT_ROOT) -> Progression:

	"""Parse progression text into a :class:`Progression`.

	Raises:
		MalformedSymbol: On an unparseable token or tempo.
		MissingTempo: If beats were found but no tempo line.
		EmptyProgression: If no beats were found.
	"""

	bpm: typing.Optional[int] = None
	in_chords = False
	beats: typing.List[Beat] = []

	for line_number, raw in enumerate(lines, start=1):

		tokens = raw.split()

		if not tokens:
			continue

		if tokens[-1] == TEMPO_MARKER:
			bpm = _parse_tempo(tokens, line_number)
			logger.debug(f"Tempo {bpm} BPM (line {line_number})")
			continue

		if not in_chords:
			if tokens[0] == CHORDS_MARKER:
				in_chords = True
				tokens = tokens[1:]
			else:
				logger.debug(f"Skipping header line {line_number}: {raw.strip()!r}")
				continue

		for token in tokens:

			if token == BAR_TOKEN:
				continue

			if token in REPEAT_TOKENS:
				if not beats:
					raise chordblink.errors.MalformedSymbol(
						f"Line {line_number}: repeat {token!r} has no previous beat"
					)
				beats.append(beats[-1])
				continue

			try:
				beats.append(parse_beat_token(token, default_root))
			except chordblink.errors.MalformedSymbol as exc:
				raise chordblink.errors.MalformedSymbol(f"Line {line_number}: {exc}") from exc

	if not beats:
		raise chordblink.errors.EmptyProgression("No beats found in progression (is there a 'Chords:' line?)")

	if bpm is None:
		raise chordblink.errors.MissingTempo(f"No tempo found; add a line such as '120 {TEMPO_MARKER}'")

	logger.info(f"Parsed {len(beats)} beat(s) at {bpm} BPM")

	return Progression(bpm=bpm, beats=tuple(beats))


def load_progression (path: str, default_root: str = chordblink.constants.DEFAULT_ROOT) -> Progression:

	"""Read and parse a progression file, choosing the parser by extension.

	Raises:
		UnsupportedInputType: For accompaniment (``.mma``) files, which are
			not supported, and for unrecognised extensions.
	"""

	extension = os.path.splitext(path)[1].lower()

	if extension in STUB_EXTENSIONS:
		raise chordblink.errors.UnsupportedInputType(f"Unsupported input file type {extension!r}: {path}")

	if extension not in SUPPORTED_EXTENSIONS:
		raise chordblink.errors.UnsupportedInputType(
			f"Unrecognized input file type for input file: {path} (expected {', '.join(SUPPORTED_EXTENSIONS)})"
		)

	with open(path, "r", encoding="utf-8") as f:
		return parse_progression(f, default_root)
