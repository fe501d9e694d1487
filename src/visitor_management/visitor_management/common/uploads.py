"""Storage of base64 data-URL images (photos, signatures) on disk."""

from __future__ import annotations

import base64
import binascii
import logging
import re
import uuid
from pathlib import Path
from typing import Optional

from ..core.constants import DEFAULT_MAX_UPLOAD_BYTES
from ..core.exceptions import ValidationError

logger = logging.getLogger(__name__)

_DATA_URL_RE = re.compile(r"^data:image/(?P<ext>png|jpe?g|gif|webp);base64,(?P<data>.+)$", re.DOTALL)


def save_data_url(
    data_url: str,
    *,
    root: str | Path,
    subdir: str,
    prefix: str,
    max_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
) -> str:
    """Decode ``data_url`` and write it under ``root/subdir``.

    Returns the public path (``/uploads/<subdir>/<file>``).
    """
    match = _DATA_URL_RE.match((data_url or "").strip())
    if not match:
        raise ValidationError("Only base64 image data URLs are allowed")

    try:
        raw = base64.b64decode(match.group("data"), validate=False)
    except (binascii.Error, ValueError):
        raise ValidationError("Image data is not valid base64")
    if not raw:
        raise ValidationError("Image data is empty")
    if len(raw) > max_bytes:
        raise ValidationError(f"Image exceeds {max_bytes // (1024 * 1024)}MB limit")

    ext = match.group("ext").replace("jpeg", "jpg")
    name = f"{prefix}-{uuid.uuid4().hex}.{ext}"
    target_dir = Path(root) / subdir
    target_dir.mkdir(parents=True, exist_ok=True)
    (target_dir / name).write_bytes(raw)
    logger.debug("Stored upload %s/%s (%d bytes)", subdir, name, len(raw))
    return f"/uploads/{subdir}/{name}"


def maybe_save_data_url(
    value: Optional[str],
    *,
    root: str | Path,
    subdir: str,
    prefix: str,
    max_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
) -> Optional[str]:
    """Store data URLs; pass through already-stored paths and blanks."""
    if not value:
        return None
    if str(value).startswith("data:"):
        return save_data_url(value, root=root, subdir=subdir, prefix=prefix, max_bytes=max_bytes)
    return str(value)


def delete_upload(public_path: Optional[str], *, root: str | Path) -> bool:
    if not public_path or not public_path.startswith("/uploads/"):
        return False
    root_path = Path(root).resolve()
    target = (root_path / public_path[len("/uploads/"):]).resolve()
    if root_path not in target.parents:
        return False
    if target.is_file():
        target.unlink()
        return True
    return False
