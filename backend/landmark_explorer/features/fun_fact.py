from __future__ import annotations

import structlog

from landmark_explorer.errors import CapabilityError
from landmark_explorer.features.context import WidgetContext
from landmark_explorer.models.contracts import AudienceLevel, FunFactResponse

logger = structlog.get_logger()


class FunFactWidget:
    """One fun fact about the displayed landmark, fetched on demand."""

    def __init__(self, ctx: WidgetContext, landmark_name: str, audience_level: AudienceLevel | str):
        self._ctx = ctx
        self.landmark_name = landmark_name
        self.audience_level = audience_level
        self.fact: str | None = None
        self.error: str | None = None
        self.loading = False

    async def fetch(self) -> FunFactResponse:
        credential = self._ctx.credential()
        self.loading = True
        self.error = None
        self.fact = None
        try:
            self.fact = await self._ctx.capabilities.fun_fact(
                credential, self.landmark_name, self.audience_level
            )
        except CapabilityError as exc:
            logger.warning("fun_fact_failed", landmark=self.landmark_name, kind=exc.kind.value)
            self.error = self._ctx.describe_failure(exc, "widget.fun_fact_failed")
        finally:
            self.loading = False
        return self.snapshot()

    async def retry(self) -> FunFactResponse:
        return await self.fetch()

    def snapshot(self) -> FunFactResponse:
        return FunFactResponse(fact=self.fact, error=self.error)
