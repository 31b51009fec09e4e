"""Stock early-stop triggers.

A trigger ends verification before every producer has closed. The
collector evaluates on_record(element) and on_record_count(n) after each
record the verifier accepted; either returning True stops the run with
TRIGGERED.

Trigger types:
- NeverTrigger: verification always runs to completion (default)
- CountTrigger: fires once N records were received
- MatchTrigger: fires on the first element matching a predicate
- AnyTrigger: combines triggers with OR logic (first to fire wins)
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from sinkspect.contracts.protocols import TriggerProtocol


def require_bool(result: object, source: str) -> bool:
    # Truthy coercion would hide a predicate that returns e.g. a match object
    if not isinstance(result, bool):
        raise TypeError(f"{source} must return bool, got {type(result).__name__}: {result!r}")
    return result


class NeverTrigger:
    """Never stops early."""

    def on_record(self, element: Any) -> bool:
        return False

    def on_record_count(self, count: int) -> bool:
        return False

    def __repr__(self) -> str:
        return "NeverTrigger()"


class CountTrigger:
    """Fires once the given number of records has been received.

    Example:
        trigger = CountTrigger(100)
        trigger.on_record_count(99)   # False
        trigger.on_record_count(100)  # True
    """

    def __init__(self, count: int) -> None:
        """Initialize with the record count to stop at.

        Raises:
            ValueError: If count < 1
        """
        if count < 1:
            raise ValueError(f"count must be >= 1, got {count}")
        self.count = count

    def on_record(self, element: Any) -> bool:
        return False

    def on_record_count(self, count: int) -> bool:
        return count >= self.count

    def __repr__(self) -> str:
        return f"CountTrigger({self.count})"


class MatchTrigger:
    """Fires on the first element for which the predicate returns True."""

    def __init__(self, predicate: Callable[[Any], bool]) -> None:
        self._predicate = predicate

    def on_record(self, element: Any) -> bool:
        return require_bool(self._predicate(element), "MatchTrigger predicate")

    def on_record_count(self, count: int) -> bool:
        return False

    def __repr__(self) -> str:
        return f"MatchTrigger({self._predicate!r})"


class AnyTrigger:
    """OR-combination of triggers.

    Children are evaluated in order; the first one to fire wins and is
    reported by which_triggered.

    Example:
        trigger = AnyTrigger(CountTrigger(1000), MatchTrigger(lambda e: e == "EOF"))
    """

    def __init__(self, *triggers: TriggerProtocol) -> None:
        """Initialize with at least one child trigger.

        Raises:
            ValueError: If no triggers are given
        """
        if not triggers:
            raise ValueError("AnyTrigger needs at least one trigger")
        self._triggers = triggers
        self._fired: TriggerProtocol | None = None

    @property
    def which_triggered(self) -> TriggerProtocol | None:
        """The child that fired, or None if none has fired yet."""
        return self._fired

    def on_record(self, element: Any) -> bool:
        for trigger in self._triggers:
            if require_bool(trigger.on_record(element), f"{trigger!r}.on_record"):
                self._fired = trigger
                return True
        return False

    def on_record_count(self, count: int) -> bool:
        for trigger in self._triggers:
            if require_bool(trigger.on_record_count(count), f"{trigger!r}.on_record_count"):
                self._fired = trigger
                return True
        return False

    def __repr__(self) -> str:
        return f"AnyTrigger({', '.join(repr(t) for t in self._triggers)})"
