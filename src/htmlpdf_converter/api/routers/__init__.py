from . import convert, health

__all__ = ["convert", "health"]
