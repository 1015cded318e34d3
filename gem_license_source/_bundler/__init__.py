"""Bundler dependency source.

Lists the gems a Ruby project depends on from its Gemfile and
Gemfile.lock, leaving out development/test gems and the project's own
local gems.

Example usage:
    from gem_license_source.config import load_config
    from gem_license_source._bundler import BundlerSource

    source = BundlerSource(load_config("path/to/app"))
    if source.enabled():
        records = source.dependencies()
"""

from .closure import TransitiveClosureResolver
from .definition import LockfileDefinition, ResolvedDefinition
from .groups import DEFAULT_WITHOUT_GROUPS, GroupFilterPolicy
from .models import (
    ConcreteSpecification,
    DependencyRecord,
    DependencyType,
    GemSource,
    LazySpecification,
    RootDeclaration,
    SourceKind,
    TransitiveDeclaration,
)
from .settings import BundlerSettings, local_configuration
from .source import BundlerSource
from .specifications import SpecificationLookup

__all__ = [
    # Main API
    "BundlerSource",
    # Components
    "GroupFilterPolicy",
    "SpecificationLookup",
    "TransitiveClosureResolver",
    "LockfileDefinition",
    "ResolvedDefinition",
    "BundlerSettings",
    "local_configuration",
    "DEFAULT_WITHOUT_GROUPS",
    # Models
    "ConcreteSpecification",
    "DependencyRecord",
    "DependencyType",
    "GemSource",
    "LazySpecification",
    "RootDeclaration",
    "SourceKind",
    "TransitiveDeclaration",
]
