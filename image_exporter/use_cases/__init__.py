"""Application use cases for export workflows."""

from .resolve_images import (
    ResolvedImageSet,
    ResolveImageSetUseCase,
    find_slots_with_same_path,
)

__all__ = [
    "ResolvedImageSet",
    "ResolveImageSetUseCase",
    "find_slots_with_same_path",
]
