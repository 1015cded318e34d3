"""Registry for dependency sources."""

from .config import Configuration
from .logging_config import logger
from .protocol import DependencySource


class SourceRegistry:
    """Registry for dependency sources.

    Manages source classes and instantiates the ones that apply to a
    project.

    Example:
        registry = SourceRegistry()
        registry.register(BundlerSource)

        for source in registry.enabled_sources(load_config(".")):
            records = source.dependencies()
    """

    def __init__(self) -> None:
        self._sources: list[type[DependencySource]] = []

    def register(self, source_class: type[DependencySource]) -> None:
        """
        Register a source class.

        Args:
            source_class: Class implementing the DependencySource protocol.
        """
        self._sources.append(source_class)
        logger.debug(f"Registered dependency source: {source_class.name} ({source_class.type})")

    def enabled_sources(self, config: Configuration) -> list[DependencySource]:
        """
        Instantiate every registered source enabled for a project.

        Args:
            config: Project configuration

        Returns:
            Sources whose enabled() check passed, in registration order.
        """
        sources = []
        for source_class in self._sources:
            source = source_class(config)
            if source.enabled():
                sources.append(source)
            else:
                logger.debug(f"Source {source_class.name} is not enabled for {config.root}")
        return sources

    @property
    def registered_sources(self) -> list[str]:
        """Get names of all registered sources."""
        return [s.name for s in self._sources]


def create_default_registry() -> SourceRegistry:
    """Create registry with default sources."""
    from ._bundler import BundlerSource

    registry = SourceRegistry()
    registry.register(BundlerSource)
    return registry
