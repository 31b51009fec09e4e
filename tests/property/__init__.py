"""Property-based tests for sinkspect using Hypothesis."""
