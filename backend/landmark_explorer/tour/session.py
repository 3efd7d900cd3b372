"""Explicit per-process session context.

Everything the tour mutates lives here and is handed to the state machine and
routes, instead of being module-level state.
"""

from __future__ import annotations

import asyncio

import structlog

from landmark_explorer.capabilities.client import CapabilityClient
from landmark_explorer.features.context import WidgetContext
from landmark_explorer.features.result_view import ResultView
from landmark_explorer.models.contracts import TourStop
from landmark_explorer.tour.credentials import CredentialStore
from landmark_explorer.tour.images import ImageStore
from landmark_explorer.tour.ledger import TourLedger

logger = structlog.get_logger()


class TourSession:
    def __init__(
        self,
        capabilities: CapabilityClient,
        credentials: CredentialStore | None = None,
    ) -> None:
        self.capabilities = capabilities
        self.credentials = credentials or CredentialStore()
        self.images = ImageStore()
        self.ledger = TourLedger(release_image=self.images.revoke)
        self.tour_ended = False
        self.view: ResultView | None = None
        self.pending: asyncio.Task[None] | None = None
        self.widgets = WidgetContext(
            capabilities=capabilities,
            get_credential=self.credentials.get,
            on_invalid_credential=self.credentials.clear,
        )

    def show(self, stop: TourStop) -> ResultView:
        """Replace the result view with fresh widgets for ``stop``."""
        self.close_view()
        self.view = ResultView(stop, self.widgets)
        return self.view

    def close_view(self) -> None:
        if self.view is not None:
            self.view.close()
            self.view = None

    def track(self, task: asyncio.Task[None]) -> None:
        self.pending = task
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("tour_task_crashed", error=str(exc), error_type=type(exc).__name__)
