"""Translation subsystem: TTL cache in front of an ordered provider chain."""

from promofinder.translation.translator import Translator, get_translator
from promofinder.translation.types import Language

__all__ = ["Language", "Translator", "get_translator"]
