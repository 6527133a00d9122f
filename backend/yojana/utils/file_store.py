"""
Yojana RAG — JSON file helpers for the data directory.
"""

import json
import os
from pathlib import Path
from typing import Any

from yojana.utils.logger import logger


def write_json(path: Path, payload: Any) -> None:
    """Write via a temp file + rename so readers never see a half-written file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".{path.name}.tmp")
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)
    os.replace(tmp_path, path)


def read_json(path: Path, default: Any = None) -> Any:
    """Missing or unreadable files yield the default."""
    if not path.exists():
        return default
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"⚠️ Could not read {path.name}: {e}")
        return default
