"""
chordblink - render a progression from Python

Builds the same MIDI file as

    chordblink -i examples/autumn_leaves.txt -o autumn_leaves.mid --loop --indicate-bass

but step by step, printing what each stage produced.

Run: python examples/render_song.py
"""

import logging
import os

import chordblink
import chordblink.patterns
import chordblink.progression
import chordblink.scheduler

logging.basicConfig(level=logging.INFO)

HERE = os.path.dirname(os.path.abspath(__file__))

options = chordblink.Options(
	loop = True,
	indicate_bass = True,
	chord_tables = [os.path.join(HERE, "extra_chords.txt")]
)

progression = chordblink.progression.load_progression(os.path.join(HERE, "autumn_leaves.txt"))
resolver = chordblink.PatternResolver.default(options)
notes = chordblink.build_note_progression(progression, resolver, options)
schedule = chordblink.separate_channels(notes, options)

for beat in sorted(set([0] + schedule.chord_changes)):
	roles = schedule.beat(beat)
	print(
		f"beat {beat:3d}  {chordblink.patterns.format_pattern(notes.patterns[beat])}  "
		+ "  ".join(f"{channel.value}={chordblink.patterns.format_pattern(roles[channel])}" for channel in chordblink.scheduler.Channel)
	)

chordblink.write_midi_file(schedule, progression.bpm, "autumn_leaves.mid")
