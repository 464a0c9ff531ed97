from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import List

from .models import AlarmRequest

logger = logging.getLogger(__name__)


def load_requests(path: Path) -> List[AlarmRequest]:
    if not path.exists():
        return []
    try:
        with path.open("r", encoding="utf-8") as f:
            payload = json.load(f)
    except Exception as exc:  # pragma: no cover - corrupted file
        logger.error("Failed to load scheduled alarms from %s: %s", path, exc)
        return []
    requests: List[AlarmRequest] = []
    for item in payload or []:
        try:
            requests.append(AlarmRequest.from_dict(item))
        except Exception as exc:
            logger.warning("Skipping scheduled alarm due to parse error: %s", exc)
    return requests


def save_requests(path: Path, requests: List[AlarmRequest]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    serializable = [r.to_dict() for r in requests]
    tmp = path.with_name(path.name + ".tmp")
    with tmp.open("w", encoding="utf-8") as f:
        json.dump(serializable, f, ensure_ascii=False, indent=2)
    os.replace(tmp, path)
