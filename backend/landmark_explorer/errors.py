"""Error taxonomy for the tour service.

ValidationError      missing prerequisite input, handled before any stage runs
CapabilityError      normalized failure from the generative backend
ResourceError        audio decode / format problems, scoped to one widget
TourStateError       action not allowed in the current pipeline stage
LedgerIndexError     ledger lookup out of range
"""

from __future__ import annotations

from enum import StrEnum


class LandmarkExplorerError(Exception):
    """Base class for all errors raised by this package."""


class ValidationError(LandmarkExplorerError):
    """A required input (credential, audience level, name, ...) is missing."""


class CapabilityErrorKind(StrEnum):
    NOT_A_LANDMARK = "not_a_landmark"
    NO_AUDIO_PRODUCED = "no_audio_produced"
    NO_IMAGE_PRODUCED = "no_image_produced"
    INVALID_CREDENTIAL = "invalid_credential"
    QUOTA_EXHAUSTED = "quota_exhausted"
    TRANSIENT = "transient"


# Conditions the user cannot fix by pressing retry; only a reset (and, for
# credentials, a new key) gets past them.
NON_RETRYABLE_KINDS = frozenset(
    {
        CapabilityErrorKind.NOT_A_LANDMARK,
        CapabilityErrorKind.INVALID_CREDENTIAL,
        CapabilityErrorKind.QUOTA_EXHAUSTED,
    }
)


class CapabilityError(LandmarkExplorerError):
    """Classified failure of one capability call."""

    def __init__(self, kind: CapabilityErrorKind, message: str = "") -> None:
        super().__init__(message or kind.value)
        self.kind = kind
        self.message = message or kind.value

    @property
    def retryable(self) -> bool:
        return self.kind not in NON_RETRYABLE_KINDS

    def __repr__(self) -> str:
        return f"CapabilityError(kind={self.kind.value!r}, message={self.message!r})"


class ResourceError(LandmarkExplorerError):
    """Audio payload could not be turned into playable samples."""


class MalformedPayload(ResourceError):
    pass


class UnsupportedAudioFormat(ResourceError):
    pass


class TourStateError(LandmarkExplorerError):
    """The requested transition is not valid from the current stage."""


class LedgerIndexError(LandmarkExplorerError, IndexError):
    pass
