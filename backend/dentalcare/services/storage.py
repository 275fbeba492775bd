from __future__ import annotations

import uuid
from pathlib import Path

from dentalcare.core.settings import settings


def _storage_dir() -> Path:
    return Path(settings.consent_storage_dir)


def _ensure_dir() -> None:
    _storage_dir().mkdir(parents=True, exist_ok=True)


def _resolve_path(storage_key: str) -> Path:
    safe_key = storage_key.strip()
    base = _storage_dir().resolve()
    path = (base / safe_key).resolve()
    if str(path) == str(base) or not str(path).startswith(f"{base}/"):
        raise ValueError("Invalid storage key")
    return path


def save_bytes(content: bytes, suffix: str = ".pdf") -> str:
    _ensure_dir()
    storage_key = f"{uuid.uuid4().hex}{suffix}"
    path = _resolve_path(storage_key)
    try:
        path.write_bytes(content)
    except OSError:
        if path.exists():
            path.unlink()
        raise
    return storage_key


def file_exists(storage_key: str) -> bool:
    return _resolve_path(storage_key).is_file()


def open_file(storage_key: str):
    path = _resolve_path(storage_key)
    return path.open("rb")


def delete_file(storage_key: str) -> None:
    path = _resolve_path(storage_key)
    if path.exists():
        path.unlink()
