"""TourStepMachine: one photo through identify -> narrate -> speak.

Idle --(image)--> Identifying --> FetchingHistory --> GeneratingSpeech --> Done
any busy stage --(failure)--> Error{failed stage}
Error --(retry, retryable only)--> failed stage, reusing earlier outputs
Error|Done|busy --(reset)--> Idle
Idle|Done|Error --(select prior stop)--> Done

Each attempt is tagged with an id. Every await is followed by a check of that
id; results of an attempt that was reset or superseded are discarded
without touching the machine or the ledger.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from landmark_explorer.errors import (
    CapabilityError,
    CapabilityErrorKind,
    TourStateError,
    ValidationError,
)
from landmark_explorer.messages import QUOTA_HELP_LINKS, t
from landmark_explorer.models.contracts import (
    AudienceLevel,
    LandmarkInfo,
    Narration,
    PipelineStage,
    StageError,
    TourState,
    TourStop,
    TourStopView,
)
from landmark_explorer.tour.session import TourSession

logger = structlog.get_logger()

IMAGE_ROUTE = "/api/v1/tour/images/{ref}"


def image_url(ref: str) -> str:
    return IMAGE_ROUTE.format(ref=ref)


@dataclass
class _Attempt:
    """Attempt-local memory. Completed stage outputs survive a retry."""

    attempt_id: int
    image_ref: str
    image_data: bytes = field(repr=False)
    mime_type: str
    audience_level: AudienceLevel
    landmark: LandmarkInfo | None = None
    narration: Narration | None = None
    audio: str | None = field(default=None, repr=False)
    resume_from: PipelineStage = PipelineStage.IDENTIFYING
    promoted: bool = False


class TourStepMachine:
    def __init__(self, session: TourSession) -> None:
        self._session = session
        self.stage = PipelineStage.IDLE
        self.error: StageError | None = None
        self.current_stop: TourStop | None = None
        self._attempt: _Attempt | None = None
        self._attempt_id = 0

    @property
    def attempt_id(self) -> int:
        return self._attempt_id

    # --- Commands ---

    def begin_attempt(
        self, image_data: bytes, mime_type: str, audience_level: AudienceLevel | str | None
    ) -> int:
        """Validate inputs, drop the previous attempt and enter IDENTIFYING."""
        if not audience_level:
            raise ValidationError(t("validation.audience_level_required"))
        try:
            level = AudienceLevel(audience_level)
        except ValueError as exc:
            raise ValidationError(f"Unknown audience level: {audience_level}") from exc
        if not self._session.credentials.get():
            raise ValidationError(t("validation.credential_required"))

        self.reset()
        ref = self._session.images.create(image_data, mime_type)
        self._attempt_id += 1
        self._attempt = _Attempt(
            attempt_id=self._attempt_id,
            image_ref=ref,
            image_data=image_data,
            mime_type=mime_type,
            audience_level=level,
        )
        self._session.tour_ended = False
        self.stage = PipelineStage.IDENTIFYING
        logger.info(
            "attempt_started", attempt_id=self._attempt_id, audience_level=level.value
        )
        return self._attempt_id

    async def submit_image(
        self, image_data: bytes, mime_type: str, audience_level: AudienceLevel | str | None
    ) -> TourState:
        attempt_id = self.begin_attempt(image_data, mime_type, audience_level)
        await self.run_attempt(attempt_id)
        return self.state()

    def begin_retry(self) -> int:
        if self.stage is not PipelineStage.ERROR or self.error is None:
            raise TourStateError(f"Nothing to retry in stage '{self.stage.label}'")
        if not self.error.retryable or self._attempt is None:
            raise TourStateError("This failure cannot be retried; reset and start again")
        if not self._session.credentials.get():
            raise ValidationError(t("validation.credential_required"))

        failed_stage = self.error.failed_stage
        self._attempt_id += 1
        self._attempt.attempt_id = self._attempt_id
        self._attempt.resume_from = failed_stage
        self.error = None
        self.stage = failed_stage
        logger.info("attempt_retried", attempt_id=self._attempt_id, stage=failed_stage.label)
        return self._attempt_id

    async def retry(self) -> TourState:
        attempt_id = self.begin_retry()
        await self.run_attempt(attempt_id)
        return self.state()

    async def run_attempt(self, attempt_id: int) -> None:
        attempt = self._attempt
        if attempt is None or self._is_stale(attempt_id):
            return
        credential = self._session.credentials.get()
        capabilities = self._session.capabilities
        stage = attempt.resume_from

        try:
            if not credential:
                raise ValidationError(t("validation.credential_required"))
            if stage <= PipelineStage.IDENTIFYING:
                self._enter(PipelineStage.IDENTIFYING, attempt_id)
                landmark = await capabilities.identify(
                    credential, attempt.image_data, attempt.mime_type
                )
                if self._is_stale(attempt_id):
                    return
                attempt.landmark = landmark

            if stage <= PipelineStage.FETCHING_HISTORY:
                stage = PipelineStage.FETCHING_HISTORY
                self._enter(stage, attempt_id)
                narration = await capabilities.narrate(
                    credential, attempt.landmark.name, attempt.audience_level
                )
                if self._is_stale(attempt_id):
                    return
                attempt.narration = narration

            stage = PipelineStage.GENERATING_SPEECH
            self._enter(stage, attempt_id)
            audio = await capabilities.speak(credential, attempt.narration.text)
            if self._is_stale(attempt_id):
                return
            attempt.audio = audio
        except CapabilityError as exc:
            failure = exc
        except ValidationError as exc:
            # Credential removed after the attempt was accepted.
            failure = CapabilityError(CapabilityErrorKind.INVALID_CREDENTIAL, str(exc))
        except Exception as exc:
            logger.exception("stage_crashed", stage=self.stage.label, attempt_id=attempt_id)
            failure = CapabilityError(CapabilityErrorKind.TRANSIENT, str(exc))
        else:
            self._complete(attempt)
            return

        if self._is_stale(attempt_id):
            return
        self._fail(attempt, self.stage, failure)

    def reset(self) -> None:
        """Back to IDLE. Any in-flight attempt becomes stale."""
        self._attempt_id += 1
        self._release_attempt_image()
        self._attempt = None
        self.stage = PipelineStage.IDLE
        self.error = None
        self.current_stop = None
        self._session.close_view()
        logger.info("tour_step_reset", attempt_id=self._attempt_id)

    def select_stop(self, index: int) -> TourState:
        """Re-display a recorded stop without calling any capability."""
        if self.stage.is_busy:
            raise TourStateError("Wait for the current photo to finish first")
        stop = self._session.ledger.select_by_index(index)

        self._attempt_id += 1
        self._release_attempt_image()
        self._attempt = None
        self.error = None
        self.stage = PipelineStage.DONE
        self.current_stop = stop
        self._session.tour_ended = False
        self._session.show(stop)
        logger.info("stop_selected", index=index, landmark=stop.landmark.name)
        return self.state()

    def end_tour(self) -> list[LandmarkInfo]:
        if self.stage.is_busy:
            raise TourStateError("Wait for the current photo to finish first")
        self._session.tour_ended = True
        logger.info("tour_ended", stops=len(self._session.ledger))
        return self._session.ledger.summarize()

    def restart_tour(self) -> None:
        self.reset()
        self._session.ledger.clear()
        self._session.tour_ended = False
        logger.info("tour_restarted")

    # --- Query ---

    def state(self) -> TourState:
        attempt = self._attempt
        ref = attempt.image_ref if attempt else None
        if ref is None and self.current_stop is not None:
            ref = self.current_stop.image_ref
        if ref is not None and not self._session.images.is_live(ref):
            ref = None

        landmark = self.current_stop.landmark if self.current_stop else None
        if landmark is None and attempt is not None:
            landmark = attempt.landmark

        return TourState(
            stage=self.stage.label,
            attempt_id=self._attempt_id,
            busy_message=t(f"stage.{self.stage.label}") if self.stage.is_busy else None,
            image_url=image_url(ref) if ref else None,
            landmark=landmark,
            current_stop=self._stop_view(self.current_stop),
            error=self.error,
            ledger=self._session.ledger.summarize(),
            tour_ended=self._session.tour_ended,
            has_credential=self._session.credentials.get() is not None,
        )

    # --- Internals ---

    def _is_stale(self, attempt_id: int) -> bool:
        if attempt_id == self._attempt_id:
            return False
        logger.info(
            "stale_attempt_discarded", attempt_id=attempt_id, current_attempt_id=self._attempt_id
        )
        return True

    def _enter(self, stage: PipelineStage, attempt_id: int) -> None:
        self.stage = stage
        logger.info("stage_started", stage=stage.label, attempt_id=attempt_id)

    def _fail(self, attempt: _Attempt, stage: PipelineStage, exc: CapabilityError) -> None:
        kind = exc.kind
        self.stage = PipelineStage.ERROR
        self.error = StageError(
            failed_stage=stage,
            kind=kind.value,
            message=t(
                "error.stage_failed",
                stage=t(f"stage.{stage.label}"),
                detail=t(f"error.{kind.value}"),
            ),
            retryable=exc.retryable,
            help_links=list(QUOTA_HELP_LINKS) if kind is CapabilityErrorKind.QUOTA_EXHAUSTED else [],
        )
        logger.warning(
            "stage_failed",
            stage=stage.label,
            kind=kind.value,
            retryable=exc.retryable,
            attempt_id=attempt.attempt_id,
            detail=exc.message[:200],
        )
        if kind is CapabilityErrorKind.INVALID_CREDENTIAL:
            self._session.credentials.clear()
        if not exc.retryable:
            self._release_attempt_image()
            self._attempt = None

    def _complete(self, attempt: _Attempt) -> None:
        stop = TourStop(
            landmark=attempt.landmark,
            image_ref=attempt.image_ref,
            image_data=attempt.image_data,
            image_mime_type=attempt.mime_type,
            history=attempt.narration.text,
            sources=attempt.narration.sources,
            audio=attempt.audio,
            audience_level=attempt.audience_level,
        )
        if not attempt.promoted:
            attempt.promoted = True
            self._session.ledger.append(stop)
        self.stage = PipelineStage.DONE
        self.error = None
        self.current_stop = stop
        self._session.show(stop)
        logger.info(
            "attempt_completed", attempt_id=attempt.attempt_id, landmark=stop.landmark.name
        )

    def _release_attempt_image(self) -> None:
        attempt = self._attempt
        if attempt is None or self._session.ledger.owns_image(attempt.image_ref):
            return
        self._session.images.revoke(attempt.image_ref)

    def _stop_view(self, stop: TourStop | None) -> TourStopView | None:
        if stop is None:
            return None
        return TourStopView(
            landmark=stop.landmark,
            image_url=image_url(stop.image_ref),
            history=stop.history,
            sources=stop.sources,
            has_audio=bool(stop.audio),
            audience_level=stop.audience_level,
        )
