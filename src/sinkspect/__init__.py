"""
sinkspect: Verify the output of parallel data pipelines.

Collects records from an unknown number of parallel producer instances,
feeds them to a pluggable verifier in arrival order, and decides when
verification is over and what the outcome is.
"""

__version__ = "0.1.0"
