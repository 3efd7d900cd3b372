"""Q&A chat with the AI docent about the displayed landmark.

The transcript is append-only and belongs to one result view; it is not
carried over when another stop is displayed.
"""

from __future__ import annotations

import structlog

from landmark_explorer.errors import CapabilityError, TourStateError, ValidationError
from landmark_explorer.features.context import WidgetContext
from landmark_explorer.messages import t
from landmark_explorer.models.contracts import AudienceLevel, ChatMessage, ChatResponse

logger = structlog.get_logger()


class QAChat:
    def __init__(
        self,
        ctx: WidgetContext,
        landmark_name: str,
        history: str,
        audience_level: AudienceLevel | str,
    ) -> None:
        self._ctx = ctx
        self.landmark_name = landmark_name
        self.history = history
        self.audience_level = audience_level
        self._messages: list[ChatMessage] = []
        self.error: str | None = None
        self.loading = False
        self._last_failed_question: str | None = None

    @property
    def messages(self) -> list[ChatMessage]:
        return list(self._messages)

    async def ask(self, question: str) -> ChatResponse:
        question = (question or "").strip()
        if not question:
            raise ValidationError(t("validation.question_required"))
        if self.loading:
            raise TourStateError("A question is already being answered")
        credential = self._ctx.credential()

        self.error = None
        self.loading = True
        self._messages.append(ChatMessage(role="user", content=question))
        try:
            reply = await self._ctx.capabilities.answer(
                credential, self.landmark_name, self.history, question, self.audience_level
            )
        except CapabilityError as exc:
            # The unanswered question is withdrawn and kept for retry_last().
            self._messages.pop()
            self._last_failed_question = question
            self.error = self._ctx.describe_failure(exc, "widget.chat_failed")
            logger.warning("chat_answer_failed", landmark=self.landmark_name, kind=exc.kind.value)
        else:
            self._messages.append(ChatMessage(role="model", content=reply))
            self._last_failed_question = None
        finally:
            self.loading = False
        return self.snapshot()

    async def retry_last(self) -> ChatResponse:
        if self._last_failed_question is None:
            raise TourStateError("There is no failed question to resend")
        return await self.ask(self._last_failed_question)

    def snapshot(self) -> ChatResponse:
        return ChatResponse(
            messages=self.messages,
            error=self.error,
            can_retry=self._last_failed_question is not None,
        )
