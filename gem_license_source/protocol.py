"""Protocol definition for dependency sources."""

from typing import Protocol

from ._bundler.models import DependencyRecord
from .config import Configuration


class DependencySource(Protocol):
    """Protocol for dependency source plugins.

    Each source lists the dependencies of one package manager. Sources
    are registered with SourceRegistry and used for every project they
    are enabled for.

    Example:
        class BundlerSource:
            type = "rubygem"
            name = "bundler"

            def __init__(self, config: Configuration) -> None:
                ...

            def enabled(self) -> bool:
                # Check the Gemfile and Gemfile.lock exist
                ...

            def dependencies(self) -> list[DependencyRecord]:
                ...
    """

    type: str
    name: str

    def __init__(self, config: Configuration) -> None: ...

    def enabled(self) -> bool:
        """Check whether the source applies to the configured project.

        Returns:
            True if dependencies() can be called.
        """
        ...

    def dependencies(self) -> list[DependencyRecord]:
        """List the dependencies to audit.

        Returns:
            One record per unique dependency, in no particular order.
        """
        ...
