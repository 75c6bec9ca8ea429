"""Normalization of stored image paths into canonical relative paths."""
from pathlib import Path, PurePosixPath
from typing import Optional, Union

# Checked case-insensitively, longest first so "./uploads/" wins over "/".
KNOWN_PREFIXES = (
    "https://",
    "http://",
    "./uploads/",
    "/uploads/",
    "uploads/",
)


def normalize_image_path(image_path: Optional[str]) -> Optional[str]:
    """
    Strip known prefixes and leading slashes from a stored image path.

    The result is the deduplication key: two slots point at the same image
    iff their canonical paths are equal (case-sensitive).

    Returns:
        Canonical relative path, or None if nothing usable remains
    """
    if image_path is None:
        return None

    normalized = str(image_path).strip()
    changed = True
    while changed and normalized:
        changed = False
        lowered = normalized.lower()
        for prefix in KNOWN_PREFIXES:
            if lowered.startswith(prefix):
                normalized = normalized[len(prefix):]
                changed = True
                break
        else:
            if normalized.startswith("/"):
                normalized = normalized.lstrip("/")
                changed = True
        normalized = normalized.strip()

    return normalized or None


def build_absolute_path(image_path: Optional[str], storage_root: Union[str, Path]) -> Optional[Path]:
    """Join the canonical form of ``image_path`` onto the configured storage root."""
    normalized = normalize_image_path(image_path)
    if not normalized:
        return None
    return Path(storage_root).joinpath(*PurePosixPath(normalized).parts)


def extract_file_name(image_path: str) -> str:
    return PurePosixPath(image_path).name
