"""Group and environment inclusion policy for gem dependencies."""

from typing import Any, Iterable, Optional

from ..logging_config import logger
from .models import DependencyDeclaration, DependencyType, GemSource, RootDeclaration
from .settings import BundlerSettings, normalize_groups

DEFAULT_WITHOUT_GROUPS = ("development", "test")
DEVELOPMENT_GROUP = "development"


def exclude_groups(configured: Any) -> list[str]:
    """
    Return the groups to always exclude.

    A non-empty configured list is used as given, otherwise the
    development and test groups are excluded.
    """
    groups = normalize_groups(configured)
    return groups or list(DEFAULT_WITHOUT_GROUPS)


def effective_groups(
    groups: Iterable[str],
    settings: BundlerSettings,
    excluded: Iterable[str],
) -> frozenset[str]:
    """Apply bundler's without/with settings and the excluded groups to `groups`."""
    result = set(normalize_groups(list(groups)))
    result -= set(settings.without)
    result |= set(settings.with_)
    result -= set(excluded)
    return frozenset(result)


class GroupFilterPolicy:
    """Decides whether a declared dependency belongs in the audit.

    The included groups and the development dependency decision are
    computed once, when the policy is created.
    """

    def __init__(
        self,
        definition_groups: Iterable[str],
        settings: BundlerSettings,
        excluded_groups: Iterable[str] = DEFAULT_WITHOUT_GROUPS,
    ) -> None:
        excluded = list(excluded_groups)
        self.groups = effective_groups(definition_groups, settings, excluded)
        self.exclude_development_dependencies = DEVELOPMENT_GROUP not in effective_groups(
            [DEVELOPMENT_GROUP], settings, excluded
        )
        logger.debug(
            f"Including groups {sorted(self.groups)}; "
            f"development dependencies {'excluded' if self.exclude_development_dependencies else 'included'}"
        )

    def include(self, declaration: DependencyDeclaration, source: Optional[GemSource]) -> bool:
        """
        Whether `declaration` should be followed.

        Args:
            declaration: Dependency declared in the Gemfile or by a gem
            source: Source of the gem that declared the dependency, None for the Gemfile
        """
        if isinstance(declaration, RootDeclaration) and not declaration.platform_applicable:
            return False

        # Development dependencies of local gemspecs are kept unless the
        # development group is excluded. Anywhere else they never are.
        if declaration.type == DependencyType.DEVELOPMENT:
            local_source = source is not None and source.is_local
            if not local_source or self.exclude_development_dependencies:
                return False

        if declaration.groups is None:
            return True

        return bool(set(declaration.groups) & self.groups)
