from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from threading import Lock
from typing import Dict, List

from .models import OutcomeKind, PendingOutcome

logger = logging.getLogger(__name__)

_SET_KEYS = {
    OutcomeKind.COMPLETED: "alarm_completions",
    OutcomeKind.DISMISSED: "alarm_dismissals",
}


class OutcomeStore:
    """Durable sets of task ids waiting to be picked up by the host.

    Completions and dismissals live in two independent sets of one JSON file.
    The host drains each set with :meth:`take`, which clears the set before
    returning its contents.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = Lock()

    def record(self, task_id: str, kind: OutcomeKind) -> int:
        if not task_id:
            logger.warning("Ignoring %s outcome with empty task id", kind.value)
            return 0
        with self._lock:
            data = self._read()
            pending = data[_SET_KEYS[kind]]
            if task_id not in pending:
                pending.append(task_id)
            self._write(data)
        logger.info("Persisted pending %s: %s (total: %s)", kind.value, task_id, len(pending))
        return len(pending)

    def record_completion(self, task_id: str) -> int:
        return self.record(task_id, OutcomeKind.COMPLETED)

    def record_dismissal(self, task_id: str) -> int:
        return self.record(task_id, OutcomeKind.DISMISSED)

    def peek(self, kind: OutcomeKind) -> List[str]:
        with self._lock:
            return list(self._read()[_SET_KEYS[kind]])

    def take(self, kind: OutcomeKind) -> List[str]:
        with self._lock:
            data = self._read()
            key = _SET_KEYS[kind]
            pending = list(data[key])
            if not pending:
                return []
            data[key] = []
            try:
                self._write(data)
            except OSError:
                # The ids may come back on the next take; losing them is worse.
                logger.error("Failed to clear pending %s in %s", kind.value, self.path, exc_info=True)
        logger.info("Delivering %s pending %s outcome(s)", len(pending), kind.value)
        return pending

    def take_all(self) -> List[PendingOutcome]:
        return [PendingOutcome(task_id, kind) for kind in _SET_KEYS for task_id in self.take(kind)]

    def _read(self) -> Dict[str, List[str]]:
        data: Dict[str, List[str]] = {key: [] for key in _SET_KEYS.values()}
        if not self.path.exists():
            return data
        try:
            with self.path.open("r", encoding="utf-8") as f:
                payload = json.load(f)
        except Exception as exc:  # pragma: no cover - corrupted file
            logger.error("Failed to load outcomes from %s: %s", self.path, exc)
            return data
        if not isinstance(payload, dict):
            logger.warning("Ignoring malformed outcome file %s", self.path)
            return data
        for key in data:
            items = payload.get(key) or []
            data[key] = [str(item) for item in items if item]
        return data

    def _write(self, data: Dict[str, List[str]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        os.replace(tmp, self.path)
