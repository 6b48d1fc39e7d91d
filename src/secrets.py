"""Utilities for loading local (gitignored) credentials."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

DEFAULT_SECRETS_FILENAME = "local_secrets.json"

logger = logging.getLogger(__name__)


def _default_secrets_path() -> Path:
    root = Path(__file__).resolve().parents[1]
    return root / DEFAULT_SECRETS_FILENAME


def load_local_secrets(path: Optional[str | Path] = None) -> Dict[str, Any]:
    """Load secrets from a JSON file; return {} when unavailable or unreadable."""

    candidate = path or os.getenv("LOCAL_SECRETS_FILE") or _default_secrets_path()
    secrets_path = Path(candidate).expanduser()
    if not secrets_path.exists():
        return {}
    try:
        with secrets_path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except (OSError, ValueError) as exc:
        logger.warning("[warn] ignoring unreadable secrets file %s: %s", secrets_path, exc)
        return {}
    return data if isinstance(data, dict) else {}


def first_github_token(secrets: Dict[str, Any]) -> Optional[str]:
    """Return the first non-empty entry of `github_tokens`, if any."""
    tokens = secrets.get("github_tokens") or []
    if isinstance(tokens, str):
        tokens = [tokens]
    for token in tokens:
        if token and str(token).strip():
            return str(token).strip()
    return None


__all__ = ["load_local_secrets", "first_github_token", "DEFAULT_SECRETS_FILENAME"]
