"""Ordered record of completed tour stops for the current session."""

from __future__ import annotations

from collections.abc import Callable, Iterator

import structlog

from landmark_explorer.errors import LedgerIndexError
from landmark_explorer.models.contracts import LandmarkInfo, TourStop

logger = structlog.get_logger()


class TourLedger:
    """Insertion-ordered stops, unique by landmark name.

    The ledger owns the image resources of the stops it holds and releases
    them through ``release_image`` when cleared.
    """

    def __init__(self, release_image: Callable[[str], None] | None = None) -> None:
        self._stops: list[TourStop] = []
        self._names: set[str] = set()
        self._release_image = release_image

    def append(self, stop: TourStop) -> bool:
        """Add a stop; returns False (and changes nothing) for a known landmark."""
        name = stop.landmark.name
        if name in self._names:
            logger.info("ledger_duplicate_skipped", landmark=name)
            return False
        self._stops.append(stop)
        self._names.add(name)
        logger.info("stop_recorded", landmark=name, index=len(self._stops) - 1)
        return True

    def select_by_index(self, index: int) -> TourStop:
        if not 0 <= index < len(self._stops):
            raise LedgerIndexError(
                f"Stop {index} does not exist (ledger has {len(self._stops)} stops)"
            )
        return self._stops[index]

    def owns_image(self, image_ref: str) -> bool:
        return any(stop.image_ref == image_ref for stop in self._stops)

    def clear(self) -> None:
        if self._release_image is not None:
            for stop in self._stops:
                self._release_image(stop.image_ref)
        count = len(self._stops)
        self._stops.clear()
        self._names.clear()
        logger.info("ledger_cleared", stops=count)

    def summarize(self) -> list[LandmarkInfo]:
        return [stop.landmark for stop in self._stops]

    def __len__(self) -> int:
        return len(self._stops)

    def __iter__(self) -> Iterator[TourStop]:
        return iter(self._stops)
