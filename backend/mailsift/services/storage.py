# backend/mailsift/services/storage.py
import re
import uuid
from pathlib import Path
from typing import Optional

from ..config import settings

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def stored_name_for(original: str) -> str:
    base = Path(original).name or "upload.csv"
    safe = _UNSAFE_CHARS.sub("_", base).strip("._") or "upload.csv"
    return f"{uuid.uuid4().hex}_{safe}"


def save_upload_bytes(filename: str, data: bytes, upload_dir: Optional[str] = None) -> str:
    """Write the archival copy of an upload; it is never read back by the service."""
    directory = Path(upload_dir or settings.UPLOAD_PATH)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / filename
    with open(path, "wb") as f:
        f.write(data)
    return str(path)
