"""Utility constants for calrecur.

Time unit constants represent durations in seconds.
The remaining constants are the default safety ceilings of the engine;
see ``calrecur.config`` for overriding them.
"""

# Time unit constants (all values in seconds)
SECOND = 1
MINUTE = 60
HOUR = 3600
DAY = 86400
WEEK = 604800

# Candidate years the year generator may produce without an accepted instance
MAX_YEARS_BETWEEN_INSTANCES = 100

# Generator steps allowed while priming an iterator before giving up
MAX_PRIMING_STEPS = 1000
