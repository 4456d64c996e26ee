"""Local filesystem storage operations."""

from __future__ import annotations

import json
from pathlib import Path

from quoterecon.config import settings


def _base() -> Path:
    return Path(settings.storage_base_path)


def uploads_dir() -> Path:
    d = _base() / "uploads"
    d.mkdir(parents=True, exist_ok=True)
    return d


def outputs_dir(quote_id: str) -> Path:
    d = _base() / "quotes" / quote_id
    d.mkdir(parents=True, exist_ok=True)
    return d


def artifacts_dir(quote_id: str) -> Path:
    d = outputs_dir(quote_id) / "artifacts"
    d.mkdir(parents=True, exist_ok=True)
    return d


# ---------------------------------------------------------------------------
# File operations
# ---------------------------------------------------------------------------

def save_upload(file_id: str, file_bytes: bytes, suffix: str) -> Path:
    """Save an uploaded quote document to the uploads directory."""
    path = uploads_dir() / f"{file_id}{suffix.lower()}"
    path.write_bytes(file_bytes)
    return path


def get_upload_path(file_id: str) -> Path:
    """Return the path to an uploaded document (raises if not found)."""
    matches = sorted(uploads_dir().glob(f"{file_id}.*"))
    if not matches:
        raise FileNotFoundError(f"Upload not found: {file_id}")
    return matches[0]


def save_artifact(quote_id: str, name: str, data: dict | list) -> Path:
    """Save a JSON artifact to the quote's artifacts directory."""
    path = artifacts_dir(quote_id) / f"{name}.json"
    path.write_text(json.dumps(data, ensure_ascii=False, indent=2, default=str), encoding="utf-8")
    return path


def load_artifact(quote_id: str, name: str) -> dict | list | None:
    """Load a JSON artifact; returns None if not found."""
    path = artifacts_dir(quote_id) / f"{name}.json"
    if not path.exists():
        return None
    return json.loads(path.read_text(encoding="utf-8"))


def get_excel_path(quote_id: str) -> Path:
    """Return the path for the reconciliation Excel file."""
    return outputs_dir(quote_id) / "reconciliation.xlsx"
