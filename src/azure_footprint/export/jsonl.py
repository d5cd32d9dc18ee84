from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, TextIO

from ..util.serialization import sanitize_for_json


def stable_json_dumps(obj: Any) -> str:
    """
    Dump JSON with sort_keys=True and separators to ensure stable output.
    """
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def write_jsonl_stream(records: Iterable[Dict[str, Any]], stream: TextIO) -> int:
    """
    Write records as JSON lines in the given order. Returns the number of lines.
    """
    count = 0
    for rec in records:
        stream.write(stable_json_dumps(sanitize_for_json(rec)))
        stream.write("\n")
        count += 1
    return count


def write_jsonl(records: Iterable[Dict[str, Any]], path: Path) -> int:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        return write_jsonl_stream(records, f)


def read_jsonl(path: Path) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    with path.open("r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                obj = json.loads(line)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON on line {lineno} of {path}: {e}") from e
            if not isinstance(obj, dict):
                raise ValueError(f"Line {lineno} of {path} is not a JSON object")
            out.append(obj)
    return out
