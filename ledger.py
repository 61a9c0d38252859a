"""JSON file backed expense ledger."""

from __future__ import annotations

import asyncio
import json
import logging
import threading
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Callable, Optional

from models import AddResult, ExpenseRecord

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[list[ExpenseRecord]], None]

DEFAULT_LEDGER_PATH = Path.home() / ".config" / "voice_expense" / "expenses.json"


def _newest_first(records: list[ExpenseRecord]) -> list[ExpenseRecord]:
    # Insertion order breaks timestamp ties.
    ordered = sorted(enumerate(records), key=lambda pair: (pair[1].timestamp, pair[0]), reverse=True)
    return [record for _, record in ordered]


class JsonLedgerStore:
    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = Path(path) if path else DEFAULT_LEDGER_PATH
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._subscribers: list[UpdateCallback] = []

    @property
    def path(self) -> Path:
        return self._path

    async def add_record(self, description: str, amount: Decimal) -> AddResult:
        description = (description or "").strip()
        if not description:
            return AddResult(success=False, reason="Description must be a non-empty string.")
        if not isinstance(amount, Decimal) or not amount.is_finite() or amount <= 0:
            return AddResult(success=False, reason="Amount must be a positive finite number.")

        record = ExpenseRecord(
            id=uuid.uuid4().hex,
            description=description,
            amount=amount,
            timestamp=datetime.now(timezone.utc),
        )
        records = await asyncio.to_thread(self._append, record)
        logger.info("expense %s added to %s", record.id, self._path)
        self._notify(records)
        return AddResult(success=True, reason="ok", record_id=record.id)

    def list_records(self) -> list[ExpenseRecord]:
        """Return all records, newest first."""
        with self._lock:
            records = self._read_all()
        return _newest_first(records)

    def total(self) -> Decimal:
        return sum((r.amount for r in self.list_records()), Decimal("0"))

    def subscribe(self, on_update: UpdateCallback) -> Callable[[], None]:
        """Call ``on_update`` with the full list now and after every add."""
        self._subscribers.append(on_update)
        on_update(self.list_records())

        def unsubscribe() -> None:
            if on_update in self._subscribers:
                self._subscribers.remove(on_update)

        return unsubscribe

    def _notify(self, records: list[ExpenseRecord]) -> None:
        ordered = _newest_first(records)
        for callback in list(self._subscribers):
            callback(ordered)

    def _append(self, record: ExpenseRecord) -> list[ExpenseRecord]:
        with self._lock:
            records = self._read_all()
            records.append(record)
            self._write_all(records)
            return records

    def _read_all(self) -> list[ExpenseRecord]:
        if not self._path.exists():
            return []
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("ledger %s is not valid JSON, starting empty", self._path)
            return []
        records = []
        for item in data if isinstance(data, list) else []:
            if not isinstance(item, dict):
                logger.warning("skipping non-object ledger entry %r", item)
                continue
            try:
                records.append(ExpenseRecord.from_dict(item))
            except (KeyError, TypeError, ValueError, ArithmeticError) as exc:
                logger.warning("skipping malformed ledger entry %r: %s", item, exc)
        return records

    def _write_all(self, records: list[ExpenseRecord]) -> None:
        payload = [r.to_dict() for r in records]
        self._path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
