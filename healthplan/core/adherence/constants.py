"""Adherence scoring and pattern thresholds.

All behavioural thresholds live here so the analyzer, the adjustment
brief and their tests agree on one set of numbers.
"""

from typing import Final

from healthplan.core.adherence.enums import AdherenceLevel

# Completion weight per adherence level. A partially eaten meal or a
# shortened session counts as half an item.
COMPLETION_WEIGHTS: Final[dict[AdherenceLevel, float]] = {
    AdherenceLevel.full: 1.0,
    AdherenceLevel.partial: 0.5,
    AdherenceLevel.skipped: 0.0,
}

# A meal type or session skipped on this many adjacent analyzed days is a
# pattern, and also triggers an adjustment suggestion on its own.
CONSECUTIVE_MISS_THRESHOLD: Final[int] = 3

# Miss rate above which an item is a pattern (exclusive: exactly 0.5 is not).
MISS_RATE_THRESHOLD: Final[float] = 0.5

# Timing drift: at least this many samples, a mean delay beyond
# TIMING_DELAY_THRESHOLD_MINUTES, and every sample closer than
# TIMING_CONSISTENCY_BAND_MINUTES to the mean.
MIN_TIMING_SAMPLES: Final[int] = 3
TIMING_DELAY_THRESHOLD_MINUTES: Final[int] = 30
TIMING_CONSISTENCY_BAND_MINUTES: Final[int] = 30

# A consistent drift beyond this many minutes triggers an adjustment.
TIMING_TRIGGER_MINUTES: Final[int] = 60

# Meal, training and overall adherence below this percentage is "low".
LOW_ADHERENCE_PERCENT: Final[int] = 60

# Number of most frequent deviation reasons reported per pattern.
TOP_REASONS: Final[int] = 3
