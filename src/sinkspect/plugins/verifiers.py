"""Stock verifiers.

Verification logic proper (matchers, assertion DSLs) lives outside this
package. These adapters turn plain callables into VerifierProtocol
implementations:

- CollectingVerifier: buffer everything, judge the whole output in finish()
- PredicateVerifier: CollectingVerifier over a predicate on the full list
- RecordAssertionVerifier: judge each record as it arrives
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any


class CollectingVerifier(ABC):
    """Collects every received element and verifies the list in finish().

    Elements are kept in arrival order. With more than one producer that
    order is an arbitrary interleaving, so verify() should not depend on it
    unless the run uses a single producer.
    """

    def __init__(self) -> None:
        self._elements: list[Any] = []
        self._initialized = False

    @property
    def elements(self) -> list[Any]:
        """Elements received so far (copy)."""
        return list(self._elements)

    def init(self) -> None:
        self._elements = []
        self._initialized = True

    def receive(self, element: Any) -> None:
        if not self._initialized:
            raise RuntimeError("receive() called before init()")
        self._elements.append(element)

    def finish(self) -> None:
        self.verify(list(self._elements))

    @abstractmethod
    def verify(self, elements: list[Any]) -> None:
        """Raise (typically AssertionError) if the output is wrong."""
        ...


class PredicateVerifier(CollectingVerifier):
    """Asserts a predicate over the complete collected output.

    Example:
        PredicateVerifier(lambda xs: sorted(xs) == [1, 2, 3], "exactly 1, 2 and 3")
    """

    def __init__(self, predicate: Callable[[list[Any]], bool], description: str = "output predicate") -> None:
        super().__init__()
        self._predicate = predicate
        self.description = description

    def verify(self, elements: list[Any]) -> None:
        if not self._predicate(elements):
            raise AssertionError(f"Expected {self.description}, got {elements!r}")


class RecordAssertionVerifier:
    """Runs a check on every record as it arrives.

    The check signals rejection by raising or by returning False. An
    optional expected_count is asserted in finish().
    """

    def __init__(self, check: Callable[[Any], bool | None], *, expected_count: int | None = None) -> None:
        self._check = check
        self.expected_count = expected_count
        self.received = 0

    def init(self) -> None:
        self.received = 0

    def receive(self, element: Any) -> None:
        self.received += 1
        if self._check(element) is False:
            raise AssertionError(f"Record {self.received} failed check: {element!r}")

    def finish(self) -> None:
        if self.expected_count is not None and self.received != self.expected_count:
            raise AssertionError(f"Expected {self.expected_count} records, received {self.received}")
