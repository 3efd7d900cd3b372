"""Capability credential persistence.

Stands in for the browser's localStorage: a small JSON object on disk with the
Gemini key stored under a fixed entry. Nothing else is persisted.
"""

from __future__ import annotations

import json
from pathlib import Path

import structlog

from landmark_explorer.config import settings
from landmark_explorer.errors import ValidationError
from landmark_explorer.messages import t

logger = structlog.get_logger()

CREDENTIAL_STORAGE_KEY = "gemini_api_key"


class CredentialStore:
    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path or settings.local_storage_path).expanduser()

    def _read(self) -> dict[str, str]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            logger.warning("local_storage_unreadable", path=str(self.path), error=str(exc))
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data), encoding="utf-8")

    def get(self) -> str | None:
        value = self._read().get(CREDENTIAL_STORAGE_KEY)
        return value if isinstance(value, str) and value else None

    def set(self, credential: str) -> None:
        credential = (credential or "").strip()
        if not credential:
            raise ValidationError(t("validation.credential_required"))
        data = self._read()
        data[CREDENTIAL_STORAGE_KEY] = credential
        self._write(data)
        logger.info("credential_saved", credential=credential)

    def clear(self) -> None:
        data = self._read()
        if data.pop(CREDENTIAL_STORAGE_KEY, None) is not None:
            self._write(data)
            logger.info("credential_cleared")
