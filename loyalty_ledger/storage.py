"""JSON file persistence for the loyalty ledger document."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

from .errors import MalformedPersistedState, PersistenceError
from .schema import LedgerDocument, parse_document


class JsonFileStorage:
    """Load and atomically replace a single ledger document on disk."""

    def __init__(self, base_dir: str, filename: str = "loyalty.json") -> None:
        self.base_dir = Path(base_dir).expanduser().resolve()
        self.ledger_dir = self.base_dir / "ledgers"
        self.path = self.ledger_dir / filename
        self.ledger_dir.mkdir(parents=True, exist_ok=True)

    def load(self) -> LedgerDocument:
        """Return the stored document, or an empty one on first use."""

        if not self.path.exists():
            return LedgerDocument()
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise PersistenceError(f"cannot read {self.path}: {exc}") from exc
        if not raw.strip():
            return LedgerDocument()
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise MalformedPersistedState(f"{self.path} is not valid JSON: {exc}") from exc
        return parse_document(payload)

    def save(self, document: LedgerDocument) -> None:
        payload = json.dumps(document.model_dump(mode="json"), ensure_ascii=False, sort_keys=True, indent=2)
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=".loyalty-", suffix=".tmp", dir=self.ledger_dir)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(payload + "\n")
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise PersistenceError(f"cannot write {self.path}: {exc}") from exc
