"""Application bootstrap helpers for the review engine."""

from .runtime import bootstrap, build_review_service
from .settings import AppSettings

__all__ = ["bootstrap", "build_review_service", "AppSettings"]
