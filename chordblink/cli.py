"""Command-line entry point.

Usage::

    chordblink -i song.txt -o song.mid --loop --indicate-bass
    chordblink -i song.txt --live --output-device "LED Fretboard"
    chordblink --realtime mapping.txt --input-device "Keystation 49"

Batch mode parses a progression file and writes a MIDI file (or plays it
live). Realtime mode listens to a keyboard and suggests scales for the held
chord; ``mapping.txt`` is the chord-scale table, loaded if it exists and
saved on exit.
"""

import argparse
import logging
import os
import sys
import typing

import chordblink
import chordblink.config
import chordblink.emitter
import chordblink.errors
import chordblink.midi_utils
import chordblink.progression
import chordblink.realtime
import chordblink.scheduler
import chordblink.tables
import chordblink.transpose


logger = logging.getLogger(__name__)


def build_parser () -> argparse.ArgumentParser:

	"""Return the argument parser for the ``chordblink`` command."""

	parser = argparse.ArgumentParser(prog="chordblink", description="Chord progression to blinking-note MIDI")
	parser.add_argument("--version", action="version", version=f"%(prog)s {chordblink.__version__}")

	parser.add_argument("-i", "--input", metavar="PATH", help="Progression file (.txt)")
	parser.add_argument("-o", "--output", metavar="PATH", help="MIDI file to write (default: input name with .mid)")
	parser.add_argument("--config", metavar="PATH", help=f"YAML config file (default: {chordblink.config.DEFAULT_CONFIG_PATH} if present)")

	parser.add_argument("--loop", action="store_true", default=None, help="The song loops: the last chord leads back into the first")
	parser.add_argument("--bright", action="store_true", default=None, help="Show all-dim chords as bright")
	parser.add_argument("--indicate-bass", action="store_true", default=None, help="Put the bass note on its own channel")
	parser.add_argument("--chords-only", dest="ignore_scales", action="store_true", default=None, help="Ignore scales, show chords only")
	parser.add_argument("--debug", action="store_true", default=None, help="Debug logging")
	parser.add_argument("-v", "--verbose", action="store_true", help="Informational logging")

	parser.add_argument("--chord-table", action="append", default=[], metavar="PATH", help="Extra chord type table (repeatable)")
	parser.add_argument("--scale-table", action="append", default=[], metavar="PATH", help="Extra scale type table (repeatable)")
	parser.add_argument("--dump-mapping", metavar="PATH", help="Write the chord-scale pairs used by the progression")

	parser.add_argument("--live", action="store_true", help="Play the schedule on a MIDI output instead of writing a file")
	parser.add_argument("--repeats", type=int, default=1, help="Times to play in --live mode (default: 1)")
	parser.add_argument("--realtime", nargs="?", const="", default=None, metavar="MAPPING", help="Realtime scale suggestion, optionally with a chord-scale mapping file")
	parser.add_argument("--output-device", metavar="NAME", help="MIDI output device")
	parser.add_argument("--input-device", metavar="NAME", help="MIDI input device (realtime mode)")

	return parser


def log_level (debug: bool, verbose: bool) -> int:

	"""Recoverable problems stay silent unless verbose or debug output is asked for."""

	if debug:
		return logging.DEBUG

	if verbose:
		return logging.INFO

	return logging.ERROR


def configure_logging (level: int) -> None:

	logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
	logging.getLogger().setLevel(level)


def resolve_options (args: argparse.Namespace) -> chordblink.config.Options:

	"""Merge the config file with command-line flags (flags win)."""

	config_path = args.config

	if config_path is None and os.path.exists(chordblink.config.DEFAULT_CONFIG_PATH):
		config_path = chordblink.config.DEFAULT_CONFIG_PATH

	config = chordblink.config.load_config(config_path) if config_path else {}
	options = chordblink.config.Options.from_config(config)

	return options.override(
		loop = args.loop,
		bright = args.bright,
		indicate_bass = args.indicate_bass,
		ignore_scales = args.ignore_scales,
		debug = args.debug,
		chord_tables = options.chord_tables + args.chord_table,
		scale_tables = options.scale_tables + args.scale_table,
		output_device = args.output_device,
		input_device = args.input_device,
	)


def default_output_path (input_path: str) -> str:

	return os.path.splitext(input_path)[0] + ".mid"


def learn_mapping (note_progression: chordblink.transpose.NoteProgression) -> chordblink.tables.ChordScaleTable:

	"""Collect the chord-scale pairs of a progression into a table."""

	table = chordblink.tables.ChordScaleTable()

	for chord, scale in zip(note_progression.chords, note_progression.scales):
		table.learn(chord, scale)

	return table


def run_batch (args: argparse.Namespace, options: chordblink.config.Options, resolver: chordblink.transpose.PatternResolver) -> int:

	"""Progression file to MIDI file (or live playback)."""

	progression = chordblink.progression.load_progression(args.input, options.default_root)
	note_progression = chordblink.transpose.build_note_progression(progression, resolver, options)
	schedule = chordblink.scheduler.separate_channels(note_progression, options)

	if args.dump_mapping:
		learn_mapping(note_progression).save(args.dump_mapping)

	if args.live:

		_, midi_out = chordblink.midi_utils.select_output_device(options.output_device)

		if midi_out is None:
			print("error: no MIDI output available", file=sys.stderr)
			return 1

		try:
			chordblink.emitter.LiveEmitter(midi_out).play(schedule, progression.bpm, repeats=args.repeats)
		except KeyboardInterrupt:
			logger.info("Stopping...")
		finally:
			midi_out.close()

		return 0

	output = args.output or default_output_path(args.input)
	chordblink.emitter.write_midi_file(schedule, progression.bpm, output)
	print(f"Wrote {len(schedule)} beat(s), {len(schedule.chord_changes)} chord change(s) to {output}")

	return 0


def load_mapping (mapping_path: typing.Optional[str], resolver: chordblink.transpose.PatternResolver) -> chordblink.tables.ChordScaleTable:

	"""Load the chord-scale table, or seed one from the type tables."""

	if mapping_path and os.path.exists(mapping_path):
		table = chordblink.tables.ChordScaleTable()
		table.load_file(mapping_path, resolve=resolver.resolve_symbol)
		return table

	logger.info("No mapping file; seeding chord-scale table from the type tables")

	return chordblink.tables.ChordScaleTable.from_type_tables(resolver.chords, resolver.scales)


def run_realtime (args: argparse.Namespace, options: chordblink.config.Options, resolver: chordblink.transpose.PatternResolver) -> int:

	"""Listen to a keyboard and suggest scales until EOF or ``q``."""

	mapping_path = args.realtime or None
	table = load_mapping(mapping_path, resolver)

	_, midi_out = chordblink.midi_utils.select_output_device(options.output_device)
	engine = chordblink.realtime.RealtimeEngine(table, chordblink.emitter.LiveEmitter(midi_out))

	_, midi_in = chordblink.midi_utils.select_input_device(options.input_device, callback=engine.handle)

	if midi_in is None:
		print("error: no MIDI input available", file=sys.stderr)
		if midi_out is not None:
			midi_out.close()
		return 1

	try:
		chordblink.realtime.run_session(engine, sys.stdin, mapping_path, prompt=print)
	except KeyboardInterrupt:
		logger.info("Stopping...")
		if mapping_path:
			engine.save_table(mapping_path)
	finally:
		midi_in.close()
		if midi_out is not None:
			midi_out.close()

	return 0


def main (argv: typing.Optional[typing.Sequence[str]] = None) -> int:

	"""Run the command line and return the process exit status."""

	parser = build_parser()
	args = parser.parse_args(argv)

	if args.realtime is None and not args.input:
		parser.error("an input file (-i) is required unless --realtime is given")

	try:
		options = resolve_options(args)
		configure_logging(log_level(options.debug, args.verbose))

		resolver = chordblink.transpose.PatternResolver.default(options)

		if args.realtime is not None:
			return run_realtime(args, options, resolver)

		return run_batch(args, options, resolver)

	except chordblink.errors.ChordBlinkError as exc:
		print(f"error: {exc}", file=sys.stderr)
		return 1

	except OSError as exc:
		print(f"error: {exc}", file=sys.stderr)
		return 1
