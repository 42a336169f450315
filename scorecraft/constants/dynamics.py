"""Dynamics and articulation constants.

Velocity in Scorecraft is a float from 0.0 to 1.0. Dynamics markings map to
fixed points on that scale; articulations scale the sounding length of a note
(the gate) and add to its velocity.
"""

import types
import typing


DYNAMICS: typing.Mapping[str, float] = types.MappingProxyType({
	"ppp": 0.10,
	"pp": 0.20,
	"p": 0.35,
	"mp": 0.50,
	"mf": 0.65,
	"f": 0.80,
	"ff": 0.95,
	"fff": 1.0,
})

# Used when a marking is not in the table.
DEFAULT_DYNAMICS_VELOCITY = 0.80

# Articulation name -> (gate multiplier, velocity boost)
ARTICULATIONS: typing.Mapping[str, typing.Tuple[float, float]] = types.MappingProxyType({
	"staccato": (0.3, 0.0),
	"legato": (1.1, 0.0),
	"accent": (1.0, 0.2),
	"marcato": (0.3, 0.2),
	"normal": (1.0, 0.0),
})

ARTICULATION_MARKERS: typing.Mapping[str, str] = types.MappingProxyType({
	"*": "staccato",
	"~": "legato",
	">": "accent",
	"^": "marcato",
})

MIN_VELOCITY = 0.0
MAX_VELOCITY = 1.0

MIN_BEND = 1
MAX_BEND = 12
