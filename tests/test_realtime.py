import logging

import mido
import pytest

import chordblink.constants
import chordblink.emitter
import chordblink.midi_utils
import chordblink.patterns
import chordblink.realtime
import chordblink.tables
import conftest


P = chordblink.patterns.parse_pattern

C_MAJOR = P("100010010000")
C_IONIAN = P("101011010101")
C_MIXOLYDIAN = P("101011010110")


def _note_on (note: int, channel: int = 0) -> mido.Message:

	return mido.Message('note_on', channel=channel, note=note, velocity=100)


def _note_off (note: int, channel: int = 0) -> mido.Message:

	return mido.Message('note_off', channel=channel, note=note, velocity=0)


def _cc (control: int, value: int, channel: int = 0) -> mido.Message:

	return mido.Message('control_change', channel=channel, control=control, value=value)


@pytest.fixture
def table () -> chordblink.tables.ChordScaleTable:

	"""C major triad with two scale candidates."""

	table = chordblink.tables.ChordScaleTable()
	table.add(C_MAJOR, C_IONIAN)
	table.add(C_MAJOR, C_MIXOLYDIAN)
	return table


@pytest.fixture
def engine (table: chordblink.tables.ChordScaleTable, fake_out: conftest.FakeMidiOut) -> chordblink.realtime.RealtimeEngine:

	"""An engine writing to a recording port."""

	return chordblink.realtime.RealtimeEngine(table, chordblink.emitter.LiveEmitter(fake_out))


def _play (engine: chordblink.realtime.RealtimeEngine, *notes: int) -> None:

	for note in notes:
		engine.handle(_note_on(note))


def test_fingerprint_of_held_notes (engine: chordblink.realtime.RealtimeEngine) -> None:

	"""Held notes fold to pitch classes."""

	_play(engine, 60, 64, 76)

	assert chordblink.patterns.format_pattern(engine.fingerprint(0)) == "100010000000"
	assert chordblink.patterns.format_pattern(engine.fingerprint(0, bright=True)) == "200020000000"


def test_notes_are_forwarded (engine: chordblink.realtime.RealtimeEngine, fake_out: conftest.FakeMidiOut) -> None:

	"""Key presses and releases pass straight through."""

	engine.handle(_note_on(60))
	engine.handle(_note_off(60))

	assert [message.type for message in fake_out.sent] == ['note_on', 'note_off']


def test_note_on_with_zero_velocity_is_a_release (engine: chordblink.realtime.RealtimeEngine) -> None:

	"""Running-status style releases are understood."""

	engine.handle(_note_on(60))
	engine.handle(mido.Message('note_on', channel=0, note=60, velocity=0))

	assert engine.state(0).active == []


def test_sustain_release_sends_one_note_off_per_note (engine: chordblink.realtime.RealtimeEngine, fake_out: conftest.FakeMidiOut) -> None:

	"""Keys released under the pedal stay on until the pedal comes up."""

	_play(engine, 60, 64, 67)
	engine.handle(_cc(chordblink.constants.SUSTAIN_CONTROLLER, 127))

	for note in (60, 64, 67):
		engine.handle(_note_off(note))

	assert fake_out.of_type('note_off') == []
	assert sorted(set(engine.state(0).active)) == [60, 64, 67]

	engine.handle(_cc(chordblink.constants.SUSTAIN_CONTROLLER, 0))

	assert sorted(message.note for message in fake_out.of_type('note_off')) == [60, 64, 67]
	assert engine.state(0).active == []


def test_notes_pressed_under_sustain_release_together (engine: chordblink.realtime.RealtimeEngine, fake_out: conftest.FakeMidiOut) -> None:

	"""Pedal down, three keys struck and released, pedal up: exactly three note-offs."""

	engine.handle(_cc(chordblink.constants.SUSTAIN_CONTROLLER, 127))
	_play(engine, 60, 64, 67)

	for note in (60, 64, 67):
		engine.handle(_note_off(note))

	assert fake_out.of_type('note_off') == []

	engine.handle(_cc(chordblink.constants.SUSTAIN_CONTROLLER, 0))

	assert sorted(message.note for message in fake_out.of_type('note_off')) == [60, 64, 67]
	assert engine.state(0).sustained == []
	assert engine.state(0).active == []


def test_note_played_during_sustain_is_held (engine: chordblink.realtime.RealtimeEngine, fake_out: conftest.FakeMidiOut) -> None:

	"""A key pressed while the pedal is down is also sustained."""

	engine.handle(_cc(chordblink.constants.SUSTAIN_CONTROLLER, 100))
	engine.handle(_note_on(62))
	engine.handle(_note_off(62))

	assert engine.state(0).active == [62]

	engine.handle(_cc(chordblink.constants.SUSTAIN_CONTROLLER, 10))

	assert engine.state(0).active == []
	assert len(fake_out.of_type('note_off')) == 1


def test_sostenuto_holds_only_notes_down_when_pressed (engine: chordblink.realtime.RealtimeEngine, fake_out: conftest.FakeMidiOut) -> None:

	"""Sostenuto captures the chord under it; later notes are not held."""

	engine.handle(_note_on(60))
	engine.handle(_cc(chordblink.constants.SOSTENUTO_CONTROLLER, 127))
	engine.handle(_note_on(64))
	engine.handle(_note_off(60))
	engine.handle(_note_off(64))

	assert [message.note for message in fake_out.of_type('note_off')] == [64]
	assert engine.state(0).active == [60]

	engine.handle(_cc(chordblink.constants.SOSTENUTO_CONTROLLER, 0))

	assert [message.note for message in fake_out.of_type('note_off')] == [64, 60]
	assert engine.state(0).active == []


def test_unmatched_note_off_is_ignored (engine: chordblink.realtime.RealtimeEngine, fake_out: conftest.FakeMidiOut) -> None:

	"""Releasing a note that was never pressed changes nothing."""

	engine.handle(_note_off(61))

	assert fake_out.sent == []


def test_channels_are_independent (engine: chordblink.realtime.RealtimeEngine) -> None:

	"""Pedals on one channel do not hold notes on another."""

	engine.handle(_cc(chordblink.constants.SUSTAIN_CONTROLLER, 127, channel=1))
	engine.handle(_note_on(60, channel=0))
	engine.handle(_note_off(60, channel=0))

	assert engine.state(0).active == []
	assert engine.state(1).sustain


def test_realtime_suggests_preferred_scale (engine: chordblink.realtime.RealtimeEngine, fake_out: conftest.FakeMidiOut) -> None:

	"""The realtime controller shows the table's first candidate on the scale channel."""

	_play(engine, 60, 64, 67)
	engine.handle(_cc(chordblink.constants.REALTIME_CONTROLLER, 127))

	assert engine.state(0).suggestion == C_IONIAN

	shown = [message for message in fake_out.of_type('note_on') if message.channel == chordblink.constants.SCALE_CHANNEL]

	assert len(shown) == 7 * 5
	assert all(message.velocity == chordblink.constants.DIM_VELOCITY for message in shown)


def test_realtime_release_clears_suggestion (engine: chordblink.realtime.RealtimeEngine, fake_out: conftest.FakeMidiOut) -> None:

	"""Releasing the controller withdraws the scale."""

	_play(engine, 60, 64, 67)
	engine.handle(_cc(chordblink.constants.REALTIME_CONTROLLER, 127))
	engine.handle(_cc(chordblink.constants.REALTIME_CONTROLLER, 0))

	cleared = [message for message in fake_out.of_type('note_off') if message.channel == chordblink.constants.SCALE_CHANNEL]

	assert len(cleared) == 7 * 5
	assert engine.state(0).suggestion == chordblink.patterns.EMPTY_PATTERN
	assert not engine.state(0).realtime


def test_reactivation_cycles_and_promotes (engine: chordblink.realtime.RealtimeEngine, table: chordblink.tables.ChordScaleTable) -> None:

	"""Each repeat activation on the same chord steps on and teaches the table."""

	_play(engine, 60, 64, 67)

	assert engine.activate_realtime(0) == C_IONIAN
	assert engine.activate_realtime(0) == C_MIXOLYDIAN
	assert table.best(C_MAJOR) == C_MIXOLYDIAN

	assert engine.activate_realtime(0) == C_IONIAN
	assert table.best(C_MAJOR) == C_IONIAN


def test_unknown_chord_suggests_nothing (engine: chordblink.realtime.RealtimeEngine, fake_out: conftest.FakeMidiOut) -> None:

	"""A chord missing from the table shows no scale."""

	_play(engine, 60, 61)

	assert engine.activate_realtime(0) == chordblink.patterns.EMPTY_PATTERN
	assert [message for message in fake_out.sent if message.channel == chordblink.constants.SCALE_CHANNEL] == []


def test_engine_as_input_callback (patch_midi: None, table: chordblink.tables.ChordScaleTable) -> None:

	"""Messages from the opened input reach the engine."""

	engine = chordblink.realtime.RealtimeEngine(table)
	name, midi_in = chordblink.midi_utils.select_input_device(None, callback=engine.handle)

	assert name == "Dummy MIDI"
	assert isinstance(midi_in, conftest.FakeMidiIn)

	midi_in.inject(_note_on(60))

	assert engine.state(0).active == [60]


def test_run_session_saves_and_quits (engine: chordblink.realtime.RealtimeEngine, tmp_path) -> None:

	"""'s' saves, 'q' stops reading and the table is saved on exit."""

	path = tmp_path / "mapping.txt"
	remaining = iter(["s\n", "bogus\n", "q\n", "never\n"])

	chordblink.realtime.run_session(engine, remaining, str(path))

	assert path.read_text().startswith("100010010000 : [ 101011010101")
	assert next(remaining) == "never\n"


def test_run_session_without_mapping (engine: chordblink.realtime.RealtimeEngine) -> None:

	"""Without a mapping file the session just ends at EOF."""

	prompts = []

	chordblink.realtime.run_session(engine, ["s\n", ""], prompt=prompts.append)

	assert len(prompts) == 1


@pytest.mark.parametrize("control", [
	chordblink.constants.SUSTAIN_CONTROLLER,
	chordblink.constants.SOSTENUTO_CONTROLLER,
])
def test_redundant_pedal_edges_are_ignored (engine: chordblink.realtime.RealtimeEngine, fake_out: conftest.FakeMidiOut, caplog: pytest.LogCaptureFixture, control: int) -> None:

	"""A second press or a release with the pedal already up changes nothing."""

	engine.handle(_cc(control, 0))

	assert fake_out.sent == []

	_play(engine, 60)
	engine.handle(_cc(control, 127))
	state = engine.state(0)
	before = (list(state.active), list(state.sustained), list(state.sostenuto_held))

	with caplog.at_level(logging.WARNING, logger="chordblink.realtime"):
		engine.handle(_cc(control, 100))

	assert (state.active, state.sustained, state.sostenuto_held) == before
	assert "already on" in caplog.text
	assert len(fake_out.sent) == 1


def test_redundant_realtime_release_is_ignored (engine: chordblink.realtime.RealtimeEngine, fake_out: conftest.FakeMidiOut, caplog: pytest.LogCaptureFixture) -> None:

	"""Releasing the realtime controller while it is off sends nothing."""

	_play(engine, 60, 64, 67)
	sent = len(fake_out.sent)

	with caplog.at_level(logging.WARNING, logger="chordblink.realtime"):
		engine.handle(_cc(chordblink.constants.REALTIME_CONTROLLER, 0))

	assert len(fake_out.sent) == sent
	assert not engine.state(0).realtime
	assert engine.state(0).suggestion == chordblink.patterns.EMPTY_PATTERN
	assert "already off" in caplog.text
