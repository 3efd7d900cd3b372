"""Shared plumbing for the secondary feature widgets."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from landmark_explorer.capabilities.client import CapabilityClient
from landmark_explorer.errors import CapabilityError, CapabilityErrorKind, ValidationError
from landmark_explorer.messages import t


@dataclass
class WidgetContext:
    capabilities: CapabilityClient
    get_credential: Callable[[], str | None]
    on_invalid_credential: Callable[[], None]

    def credential(self) -> str:
        credential = self.get_credential()
        if not credential:
            raise ValidationError(t("validation.credential_required"))
        return credential

    def describe_failure(self, error: CapabilityError, fallback_key: str) -> str:
        """Message for a widget-local failure; a rejected key is also dropped from storage."""
        if error.kind is CapabilityErrorKind.INVALID_CREDENTIAL:
            self.on_invalid_credential()
            return t("error.invalid_credential")
        if error.kind is CapabilityErrorKind.QUOTA_EXHAUSTED:
            return t("error.quota_exhausted")
        return t(fallback_key)
