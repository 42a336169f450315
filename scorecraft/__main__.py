import logging

import numpy

import scorecraft.config
import scorecraft.markov_chain
import scorecraft.notation
import scorecraft.pitch
import scorecraft.render
import scorecraft.voicings
import scorecraft.wav


# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


TEMPO = 100.0
KEY = "D minor"
BARS = 4
BEATS_PER_BAR = 4
OUTPUT_PATH = "scorecraft_demo.wav"

PROGRESSION = ("Dm7", "G7", "Cmaj7", "A7")

MELODY = [
	"D5:q F5:8 A5:8 C6:q. A5:8",
	"B5:8 A5:8 G5:q*@mf F5:h",
	"E5:q G5:q B5:q>@f C6:q",
	"C#5:q.~ E5:8 A4:h.fall",
]


def drum_events (seconds_per_beat: float, rng: numpy.random.Generator) -> list:

	"""
	A four-bar backbeat: kick on 1 and 3, snare on 2 and 4, eighth-note hats.
	"""

	events = []

	for bar in range(BARS):
		for step in range(BEATS_PER_BAR * 2):

			time = (bar * BEATS_PER_BAR + step / 2) * seconds_per_beat

			if step in (0, 4):
				events.append(scorecraft.render.NoteEvent("drum:kick", time, seconds_per_beat, 0.9, "drums"))

			if step in (2, 6):
				events.append(scorecraft.render.NoteEvent("drum:snare", time, seconds_per_beat, 0.8, "drums"))

			# Open hat on the last off-beat of every other bar
			hat = "drum:oh" if step == 7 and bar % 2 == 1 else "drum:hh"
			velocity = 0.5 + 0.2 * rng.random()
			events.append(scorecraft.render.NoteEvent(hat, time, seconds_per_beat / 2, velocity, "drums"))

	return events


def main () -> None:

	"""
	Render a short demo arrangement to a WAV file.
	"""

	logger.info("Scorecraft demo starting...")

	config = scorecraft.config.load_config()
	rng = numpy.random.default_rng(7)

	seconds_per_beat = scorecraft.pitch.beats_to_seconds(1, TEMPO)
	events = []

	# Pads: one voiced chord per bar
	result = scorecraft.voicings.generate_voice_leading(
		scorecraft.voicings.VoiceLeadConfig(progression=PROGRESSION, voices=4, style="bach")
	)

	for warning in result.warnings:
		logger.warning(f"Voice leading: {warning}")

	for bar, voicing in enumerate(result.voicings):
		for pitch in voicing.notes:
			events.append(scorecraft.render.NoteEvent(
				pitch,
				bar * BEATS_PER_BAR * seconds_per_beat,
				BEATS_PER_BAR * seconds_per_beat,
				0.35,
				"pad",
			))

	# Bass: a walking line from the Markov generator
	bass_config = scorecraft.markov_chain.MarkovConfig(
		states=("1", "2", "b3", "4", "5", "6", "b7", "approach"),
		preset="walking_bass",
		steps=BARS * BEATS_PER_BAR,
		duration="q",
		octave=2,
		seed=42,
		constrain_to_scale=True,
	)

	for note in scorecraft.markov_chain.generate_markov_pattern(bass_config, KEY):
		events.append(scorecraft.render.NoteEvent(
			note.pitch,
			note.start_beat * seconds_per_beat,
			note.duration_beats * seconds_per_beat * 0.9,
			note.velocity,
			"bass",
		))

	# Melody from notation
	melody = scorecraft.notation.parse_notes(MELODY)
	events.extend(scorecraft.render.events_from_notes(melody, TEMPO, instrument="lead", rng=rng))

	events.extend(drum_events(seconds_per_beat, rng))

	buffer = scorecraft.render.render_timeline(
		events,
		config,
		total_seconds=BARS * BEATS_PER_BAR * seconds_per_beat,
		rng=rng,
	)

	scorecraft.wav.write_render(OUTPUT_PATH, buffer, config)

	logger.info(f"Demo written to {OUTPUT_PATH}")


if __name__ == "__main__":
	main()
