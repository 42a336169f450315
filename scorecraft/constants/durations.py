"""Beat-based duration constants for notation duration codes.

All values are in **beats**, where 1.0 = one quarter note. The notation
grammar writes durations as single codes (``w``, ``h``, ``q``, ``8``, ``16``,
``32``); ``2`` and ``4`` are accepted as aliases for half and quarter::

    import scorecraft.constants.durations as dur

    dur.DURATION_CODES["8"]                      # 0.5 beats
    dur.DURATION_CODES["q"] * dur.DOTTED_MULTIPLIER  # 1.5 beats
"""

import types
import typing


THIRTYSECOND = 0.125
SIXTEENTH = 0.25
EIGHTH = 0.5
QUARTER = 1.0
HALF = 2.0
WHOLE = 4.0

DOTTED_MULTIPLIER = 1.5

DURATION_CODES: typing.Mapping[str, float] = types.MappingProxyType({
	"w": WHOLE,
	"h": HALF,
	"q": QUARTER,
	"8": EIGHTH,
	"16": SIXTEENTH,
	"32": THIRTYSECOND,
	"2": HALF,
	"4": QUARTER,
})

MIN_TUPLET = 2
MAX_TUPLET = 9
