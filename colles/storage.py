"""
Loading, saving and fetching the dataset, plus the remembered search query.

Files (defaults, all inside the package):

    data/processed/data.json        the dataset shipped to clients
    data/processed/last_query.json  the last name the user searched for

Design rationale:
- data.json is rebuilt from scratch on every build and never edited in place
- last_query.json stores only user state, so a rebuild never loses it
"""

from __future__ import annotations

import base64
import hashlib
import json
import os
from pathlib import Path

import requests

from colles.model import Dataset

DATA_URL_ENV = "COLLES_DATA_URL"


def _processed_dir() -> Path:
    """
    Return the directory that contains the processed data.

    Using a function instead of a constant makes testing easier,
    because tests can pass their own paths.
    """
    base_dir = Path(__file__).resolve().parent
    return base_dir / "data" / "processed"


def default_dataset_path() -> Path:
    return _processed_dir() / "data.json"


def default_data_url() -> str | None:
    """
    URL of the published data.json, taken from the COLLES_DATA_URL variable.
    """
    url = os.environ.get(DATA_URL_ENV, "").strip()
    return url or None


# ---------------------------------------------------------------------------
# Dataset
# ---------------------------------------------------------------------------


def dump_dataset(dataset: Dataset) -> bytes:
    """
    Serialize a dataset to compact UTF-8 JSON. Output is deterministic.
    """
    text = json.dumps(dataset.to_wire(), ensure_ascii=False, separators=(",", ":"))
    return text.encode("utf-8")


def dataset_digest(payload: bytes) -> str:
    """
    sha256 of a serialized dataset, base64 encoded.
    """
    return base64.b64encode(hashlib.sha256(payload).digest()).decode("ascii")


def save_dataset(dataset: Dataset, path: str | Path | None = None) -> str:
    """
    Write the dataset and return its digest. Creates parent directories if needed.
    """
    out = Path(path) if path is not None else default_dataset_path()
    out.parent.mkdir(parents=True, exist_ok=True)
    payload = dump_dataset(dataset)
    out.write_bytes(payload)
    return dataset_digest(payload)


def load_dataset(path: str | Path | None = None) -> Dataset:
    """
    Load a dataset from disk.

    Unlike the remembered query, a missing or broken dataset is an error:
    showing a partial schedule is worse than showing none.
    """
    data_path = Path(path) if path is not None else default_dataset_path()
    return Dataset.from_wire(json.loads(data_path.read_text(encoding="utf-8")))


def fetch_dataset(url: str, timeout: float = 30) -> Dataset:
    """
    Download the whole dataset in one request.
    """
    resp = requests.get(url, timeout=timeout)
    resp.raise_for_status()
    return Dataset.from_wire(resp.json())


# ---------------------------------------------------------------------------
# Remembered query
# ---------------------------------------------------------------------------


def _default_query_path() -> Path:
    return _processed_dir() / "last_query.json"


def load_last_query(path: str | Path | None = None) -> str:
    """
    Return the last searched name, or "" if none was saved.

    This function is deliberately defensive:
    a missing or corrupted file only means the user types the name again.
    """
    query_path = Path(path) if path is not None else _default_query_path()
    if not query_path.exists():
        return ""

    try:
        data = json.loads(query_path.read_text(encoding="utf-8"))
        query = data.get("last_query", "")
        return query if isinstance(query, str) else ""
    except (OSError, json.JSONDecodeError, UnicodeDecodeError, AttributeError):
        return ""


def save_last_query(query: str, path: str | Path | None = None) -> None:
    query_path = Path(path) if path is not None else _default_query_path()
    query_path.parent.mkdir(parents=True, exist_ok=True)

    payload = {"last_query": query}
    query_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
