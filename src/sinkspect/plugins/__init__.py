"""Plugin implementations of the collector's collaborator protocols."""

from sinkspect.plugins.verifiers import CollectingVerifier, PredicateVerifier, RecordAssertionVerifier

__all__ = ["CollectingVerifier", "PredicateVerifier", "RecordAssertionVerifier"]
