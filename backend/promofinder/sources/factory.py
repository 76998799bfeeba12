"""Registry for creating and managing offer source instances."""

from typing import Any, Dict, List, Optional, Tuple, Type

import structlog

from promofinder.sources.base import BaseAPISource, BaseSource


logger = structlog.get_logger(__name__)


class SourceRegistry:
    """Registry of source classes and the arguments to build them with.

    Sources are selected by name at runtime (ENABLED_SOURCES); the order
    of the configured names is the source-query order of the aggregator.
    """

    def __init__(self):
        self._registry: Dict[str, Tuple[Type[BaseSource], Dict[str, Any]]] = {}

    def register_source(
        self, name: str, source_class: Type[BaseSource], **kwargs: Any
    ) -> None:
        """Register a source class under a name.

        Args:
            name: Source identifier (e.g., "rapidapi")
            source_class: Class inheriting from BaseSource
            **kwargs: Constructor arguments used by create_source()
        """
        if not issubclass(source_class, BaseSource):
            raise ValueError(f"Source class must inherit from BaseSource: {source_class}")

        self._registry[name] = (source_class, kwargs)
        logger.info(
            "source_registered",
            name=name,
            source_type=source_class.source_type,
        )

    def create_source(self, name: str) -> Optional[BaseSource]:
        """Create a configured source instance.

        API sources without a credential are not created: every query
        would fail as BLOCKED_BY_TARGET and waste nothing but log lines.

        Args:
            name: Source identifier

        Returns:
            Source instance, or None if not registered or not usable
        """
        entry = self._registry.get(name)
        if not entry:
            logger.warning("source_not_found", name=name)
            return None

        source_class, kwargs = entry
        source = source_class(**kwargs)

        if isinstance(source, BaseAPISource) and not source.api_key:
            logger.warning("source_skipped", name=name, reason="api_key_missing")
            return None

        logger.info("source_created", name=name, source_type=source.source_type)
        return source

    def build_sources(self, names: List[str]) -> List[BaseSource]:
        """Create every usable source for the given names, keeping their order."""
        sources = []
        for name in names:
            source = self.create_source(name)
            if source is not None:
                sources.append(source)
        return sources

    def get_registered_sources(self) -> List[str]:
        return list(self._registry.keys())

    def has_source(self, name: str) -> bool:
        return name in self._registry

    def clear(self) -> None:
        self._registry.clear()


# Global registry instance
source_registry = SourceRegistry()


def get_source_registry() -> SourceRegistry:
    """Get the global source registry instance.

    Returns:
        SourceRegistry instance
    """
    return source_registry
