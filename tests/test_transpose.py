import pytest

import chordblink.config
import chordblink.errors
import chordblink.patterns
import chordblink.progression
import chordblink.tables
import chordblink.transpose


P = chordblink.patterns.parse_pattern
F = chordblink.patterns.format_pattern


@pytest.mark.parametrize("name, index", [("C", 0), ("C#", 1), ("Db", 1), ("E#", 5), ("Cb", 11), ("B#", 0), ("Bb", 10)])
def test_pitch_index (name: str, index: int) -> None:

	"""Sharps, flats and enharmonic spellings resolve to pitch classes."""

	assert chordblink.transpose.pitch_index(name) == index


def test_pitch_index_rejects_unknown_names () -> None:

	"""Names outside A-G with one accidental are rejected."""

	with pytest.raises(chordblink.errors.UnknownPitchName):
		chordblink.transpose.pitch_index("H")


def test_transpose_c_to_d () -> None:

	"""C major triad up a tone is D major."""

	assert F(chordblink.transpose.transpose(P("200020020000"), "C", "D")) == "002000200200"


def test_transpose_identity_and_composition () -> None:

	"""Same-root transposition is identity and hops compose."""

	pattern = P("210020020001")

	for root in chordblink.transpose.PITCH_CLASSES:
		assert chordblink.transpose.transpose(pattern, root, root) == pattern

	via_e = chordblink.transpose.transpose(chordblink.transpose.transpose(pattern, "C", "E"), "E", "A")

	assert via_e == chordblink.transpose.transpose(pattern, "C", "A")


def test_apply_bass_only_fills_off_slot () -> None:

	"""An absent bass is added DIM; a bright chord tone is kept."""

	triad = P("200020020000")

	assert F(chordblink.transpose.apply_bass(triad, "D")) == "201020020000"
	assert chordblink.transpose.apply_bass(triad, "E") == triad


def test_combine_sums_slots () -> None:

	"""Chord and scale are summed without clamping."""

	combined = chordblink.transpose.combine(P("200020020000"), P("101011010101"))

	assert combined == (3, 0, 1, 0, 3, 1, 0, 3, 0, 1, 0, 1)


def test_normalize_brightness () -> None:

	"""All-dim patterns turn bright; anything with a bright slot is unchanged."""

	assert F(chordblink.transpose.normalize_brightness(P("100010010000"))) == "200020020000"
	assert chordblink.transpose.normalize_brightness(P("200010000000")) == P("200010000000")
	assert chordblink.transpose.normalize_brightness(chordblink.patterns.EMPTY_PATTERN) == chordblink.patterns.EMPTY_PATTERN


def test_normalize_brightness_is_idempotent () -> None:

	"""Applying twice is the same as applying once."""

	for literal in ["100010010000", "200010000000", "000000000000", "111111111111"]:
		once = chordblink.transpose.normalize_brightness(P(literal))
		assert chordblink.transpose.normalize_brightness(once) == once


def test_resolver_lookup_prefers_chords_then_scales (resolver: chordblink.transpose.PatternResolver) -> None:

	"""Chord names come from the chord table, scale names from the scale table."""

	assert F(resolver.lookup("m7")) == "200200020020"
	assert F(resolver.lookup("'dorian")) == "101101010110"
	assert resolver.lookup("200000000000") == P("200000000000")
	assert resolver.missing == {}


def test_resolver_records_misses (resolver: chordblink.transpose.PatternResolver) -> None:

	"""Unknown types give the empty pattern and are reported together later."""

	assert resolver.lookup("zz", 0) == chordblink.patterns.EMPTY_PATTERN
	resolver.lookup("zz", 4)
	resolver.lookup("qq", 2)

	with pytest.raises(chordblink.errors.UnknownChordType) as info:
		resolver.raise_for_missing()

	assert info.value.missing == ["qq", "zz"]
	assert info.value.locations["zz"] == [0, 4]
	assert "beat 1, 5" in str(info.value)


def test_resolve_symbol_transposes (resolver: chordblink.transpose.PatternResolver) -> None:

	"""Symbols resolve to their type rotated to the root."""

	assert F(resolver.resolve_symbol("Dm7")) == "202002000200"

	with pytest.raises(chordblink.errors.UnknownChordType):
		resolver.resolve_symbol("Czz")


def test_resolver_default_loads_table_files (tmp_path) -> None:

	"""Table files named in options extend the built-in tables."""

	path = tmp_path / "chords.txt"
	path.write_text("power\t200000020000\n")

	options = chordblink.config.Options(chord_tables=[str(path)])
	resolver = chordblink.transpose.PatternResolver.default(options)

	assert resolver.lookup("power") == P("200000020000")


def _progression (*lines: str) -> chordblink.progression.Progression:

	return chordblink.progression.parse_progression(["120 BPM", "Chords:", *lines])


def test_build_note_progression_combines_chord_and_scale (resolver: chordblink.transpose.PatternResolver) -> None:

	"""D minor seventh over D dorian: chord tones bright, other scale tones dim."""

	notes = chordblink.transpose.build_note_progression(_progression("Dm7_D'dorian"), resolver)

	assert F(notes.patterns[0]) == "202012010201"
	assert notes.basses == (2,)
	assert F(notes.chords[0]) == "202002000200"


def test_build_note_progression_slash_bass (resolver: chordblink.transpose.PatternResolver) -> None:

	"""A slash bass outside the chord is shown dim and recorded."""

	notes = chordblink.transpose.build_note_progression(_progression("C/D"), resolver)

	assert F(notes.patterns[0]) == "201020020000"
	assert notes.basses == (2,)


def test_build_note_progression_chords_only (resolver: chordblink.transpose.PatternResolver) -> None:

	"""Ignoring scales leaves only chord tones."""

	options = chordblink.config.Options(ignore_scales=True)
	notes = chordblink.transpose.build_note_progression(_progression("C_C'ionian"), resolver, options)

	assert F(notes.patterns[0]) == "200020020000"


def test_build_note_progression_bright (resolver: chordblink.transpose.PatternResolver) -> None:

	"""With bright, an all-dim beat is promoted."""

	table_resolver = chordblink.transpose.PatternResolver(
		chordblink.tables.TypeTable("chord", {"soft": P("100010010000")}),
		resolver.scales
	)
	options = chordblink.config.Options(bright=True)
	notes = chordblink.transpose.build_note_progression(_progression("Csoft"), table_resolver, options)

	assert F(notes.patterns[0]) == "200020020000"


def test_build_note_progression_reports_all_unknown_types (resolver: chordblink.transpose.PatternResolver) -> None:

	"""Every unknown type is reported once, with all its beats."""

	with pytest.raises(chordblink.errors.UnknownChordType) as info:
		chordblink.transpose.build_note_progression(_progression("Cfoo Dbar . Efoo"), resolver)

	assert info.value.missing == ["bar", "foo"]
	assert info.value.locations["foo"] == [0, 3]
	assert info.value.locations["bar"] == [1, 2]
