"""
Scorecraft - a music-generation core for Python.

Scorecraft turns compact musical descriptions into audio. It covers the four
pieces that sit underneath a score compiler: reading note and chord notation,
generating melodic lines from Markov chains, voicing chord progressions under
counterpoint rules, and rendering the resulting notes to a WAV file.

What it does:

- **Notation.** ``parse_note("C4:8.*@mf+10ms~>")`` reads pitch, duration,
  dots, tuplets, articulation, dynamics, timing offset, probability,
  portamento, jazz articulations (fall, doit, scoop, bend) and ornaments
  from one token. Chords use symbols such as ``"Dm7@drop2/A:h"``. Malformed
  tokens raise ``NotationError`` naming the offending text and the
  expected format.
- **Markov melodies.** Transition tables over scale degrees (``"1"``,
  ``"b3"``, ``"5"``), absolute pitches, ``"rest"`` and ``"approach"`` (a
  chromatic lead-in to the next note). Built-in presets for walking bass,
  stepwise melody and more. Seeded generation is fully reproducible.
- **Voice leading.** Beam search over every voicing of every chord, with
  Bach, jazz and pop rule sets (parallel fifths and octaves, voice
  crossing, smooth motion, contrary outer voices, tendency tone
  resolution). Impossible steps relax instead of failing.
- **Offline rendering.** Additive tones under an ADSR envelope, synthesized
  drums (kick, snare, hi-hats, clap, toms), mixing with per-instrument
  volume, headroom limiting and click-free fades, written as PCM WAV.

Minimal example:

    ```python
    import scorecraft

    notes = scorecraft.parse_notes(["C4:q E4:q* G4:h@mf"])
    events = scorecraft.events_from_notes(notes, tempo=120)

    scorecraft.write_wav("arpeggio.wav", scorecraft.render_timeline(events))
    ```

Package-level exports: ``parse_note``, ``parse_notes``, ``parse_chord``,
``NotationError``, ``ParsedNote``, ``MarkovConfig``,
``generate_markov_pattern``, ``VoiceLeadConfig``, ``generate_voice_leading``,
``NoteEvent``, ``events_from_notes``, ``RenderConfig``, ``load_config``,
``render_timeline``, ``write_wav``, ``pattern_length``.
"""

import scorecraft.config
import scorecraft.markov_chain
import scorecraft.notation
import scorecraft.patterns
import scorecraft.render
import scorecraft.voicings
import scorecraft.wav


NotationError = scorecraft.notation.NotationError
ParsedNote = scorecraft.notation.ParsedNote
parse_note = scorecraft.notation.parse_note
parse_notes = scorecraft.notation.parse_notes
parse_chord = scorecraft.notation.parse_chord

MarkovConfig = scorecraft.markov_chain.MarkovConfig
generate_markov_pattern = scorecraft.markov_chain.generate_markov_pattern

VoiceLeadConfig = scorecraft.voicings.VoiceLeadConfig
generate_voice_leading = scorecraft.voicings.generate_voice_leading

NoteEvent = scorecraft.render.NoteEvent
events_from_notes = scorecraft.render.events_from_notes
RenderConfig = scorecraft.config.RenderConfig
load_config = scorecraft.config.load_config
render_timeline = scorecraft.render.render_timeline
write_wav = scorecraft.wav.write_wav

pattern_length = scorecraft.patterns.pattern_length
