"""Repository snapshot to executable build plan pipeline."""

from .models import MODEL_VERSION

__all__ = ["MODEL_VERSION"]
