"""Standardized Hypothesis settings profiles for property tests.

Provides consistent test intensity across all property test modules.
Import these instead of using inline @settings(max_examples=...).

Usage:
    from tests.property.settings import STANDARD_SETTINGS

    @given(frames=frame_sequences)
    @STANDARD_SETTINGS
    def test_something(frames):
        ...

Tiers:
- INTERLEAVING_SETTINGS: 200 examples - Collector runs over generated interleavings
- STANDARD_SETTINGS: 100 examples - Regular property tests
- QUICK_SETTINGS: 20 examples - Fast validation tests (simple input rejection)
"""

from hypothesis import settings

# Interleavings need enough examples to hit CLOSE-before-OPEN orderings
INTERLEAVING_SETTINGS = settings(max_examples=200)

STANDARD_SETTINGS = settings(max_examples=100)

QUICK_SETTINGS = settings(max_examples=20)
