"""Column mixins shared by the household calendar models."""

from backend.src.models.mixins.guid import GuidMixin

__all__ = ["GuidMixin"]
