"""Kernel types – identifier value objects."""

from eventcore.kernel.types.ids import EntityId

__all__ = ["EntityId"]
