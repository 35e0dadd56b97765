"""
Result Stream - replaying publish/subscribe channel for search results.
"""

from typing import Callable, List

from clinisearch.patients.schemas import Patient
from clinisearch.platform.logging import get_logger

logger = get_logger(__name__)

# Type alias for result subscribers
ResultHandler = Callable[[List[Patient]], None]


class ResultStream:
    """
    Holds the latest published result list and pushes every new list to
    subscribers. New subscribers receive the latest list immediately.
    """

    def __init__(self) -> None:
        self._latest: List[Patient] = []
        self._handlers: List[ResultHandler] = []

    @property
    def latest(self) -> List[Patient]:
        return list(self._latest)

    def subscribe(self, handler: ResultHandler) -> Callable[[], None]:
        """
        Register a handler and replay the latest list to it.

        Returns:
            A callable that removes the handler again
        """
        self._handlers.append(handler)
        self._deliver(handler, self.latest)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def publish(self, results: List[Patient]) -> None:
        self._latest = list(results)
        for handler in list(self._handlers):
            self._deliver(handler, self.latest)

    def _deliver(self, handler: ResultHandler, results: List[Patient]) -> None:
        try:
            handler(results)
        except Exception as e:
            logger.error("result_subscriber_failed", error=str(e), exc_info=True)

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers)
