"""
chordblink - chord progressions to blinking-note MIDI.

chordblink turns a chord/scale progression into MIDI that drives a note
display such as an LED fretboard. Every beat's chord and scale become a
12-slot pattern of dim and bright pitch classes; those patterns are spread
over four MIDI channels so the notes about to change blink just before a
chord change, and the notes that carry over stay lit.

Pipeline:

- **Parse.** ``chordblink.progression`` reads ``120 BPM`` / ``Chords:`` text
  with ``|`` bar lines, ``.`` repeats and ``Chord_Scale`` beats.
- **Resolve.** ``chordblink.transpose`` looks up each chord and scale type,
  rotates it to its root, injects the slash-bass and merges the two.
- **Schedule.** ``chordblink.scheduler`` splits the progression into runs and
  assigns every note to the odd, even, mixed or bass channel.
- **Emit.** ``chordblink.emitter`` writes a Standard MIDI File or plays the
  schedule on a live port.

Realtime mode (``chordblink.realtime``) listens to a keyboard instead,
resolves sustain and sostenuto pedals, and suggests a scale for the held
chord from a chord-scale table that learns from the player's choices.

Minimal example:

    ```python
    import chordblink

    progression = chordblink.parse_progression(["120 BPM", "Chords:", "CM7 . Dm7 ."])
    resolver = chordblink.PatternResolver.default()
    notes = chordblink.build_note_progression(progression, resolver)
    schedule = chordblink.separate_channels(notes, chordblink.Options(loop=True))
    chordblink.write_midi_file(schedule, progression.bpm, "song.mid")
    ```

Package-level exports: ``Options``, ``parse_progression``, ``PatternResolver``,
``build_note_progression``, ``separate_channels``, ``write_midi_file``,
``RealtimeEngine``.
"""

__version__ = "0.1.0"

import chordblink.config
import chordblink.emitter
import chordblink.progression
import chordblink.realtime
import chordblink.scheduler
import chordblink.transpose


Options = chordblink.config.Options
parse_progression = chordblink.progression.parse_progression
PatternResolver = chordblink.transpose.PatternResolver
build_note_progression = chordblink.transpose.build_note_progression
separate_channels = chordblink.scheduler.separate_channels
write_midi_file = chordblink.emitter.write_midi_file
RealtimeEngine = chordblink.realtime.RealtimeEngine
