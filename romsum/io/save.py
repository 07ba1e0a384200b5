# romsum/io/save.py
# JSONL writer for receipts

from __future__ import annotations
import json
import os
from typing import Any


def write_jsonl(path: str, records: list[Any]) -> None:
    """
    Write list of objects as JSONL (one JSON object per line).

    Creates parent directories if needed. Uses compact separators so
    identical runs produce identical files.

    Args:
        path: output file path
        records: list of JSON-serializable objects
    """
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(path, "w") as f:
        for record in records:
            f.write(json.dumps(record, separators=(",", ":")) + "\n")
