"""Library-wide defaults.

Engines and retry policies read these when the caller leaves an option unset,
so the values here are the documented defaults of the public API.
"""

from __future__ import annotations

# Pages are 1-based
DEFAULT_PAGE = 1

# Resident pages per engine before the oldest one is evicted (<= 0 disables eviction)
DEFAULT_MAX_PAGES_IN_MEMORY = 5

# Retry policy defaults (seconds)
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_INITIAL_DELAY = 1.0
DEFAULT_MAX_DELAY = 10.0
