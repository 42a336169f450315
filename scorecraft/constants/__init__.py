"""Constants for Scorecraft.

This package contains two sets of constants:

- ``scorecraft.constants.durations`` - Beat values of notation duration codes
- ``scorecraft.constants.dynamics`` - Dynamics markings and articulation modifiers
"""
