"""Version-control integration."""

from .revision import InfoItem, InfoResult, RevisionResolver, ScmProvider

__all__ = ["InfoItem", "InfoResult", "RevisionResolver", "ScmProvider"]
