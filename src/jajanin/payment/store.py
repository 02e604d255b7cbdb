"""Single persisted pending-payment record."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from ..models import PendingPaymentRecord

logger = logging.getLogger(__name__)


class PendingPaymentStore:
    """Keeps at most one pending payment on disk across a wallet redirect."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def save(self, record: PendingPaymentRecord) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(record.model_dump_json(), encoding="utf-8")
        tmp.replace(self._path)

    def load(self) -> Optional[PendingPaymentRecord]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        try:
            return PendingPaymentRecord.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning("payment.pending_record_invalid", extra={"path": str(self._path), "error": str(exc)})
            self.clear()
            return None

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)
