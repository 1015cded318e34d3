"""Transitive closure over resolved gem specifications."""

from typing import Iterable

from ..logging_config import logger
from .groups import GroupFilterPolicy
from .models import ConcreteSpecification
from .specifications import SpecificationLookup


class TransitiveClosureResolver:
    """Expands a set of specifications to everything they depend on.

    The walk is breadth first over an explicit visited set, so each
    specification contributes its dependencies exactly once no matter how
    many parents reach it, and cycles terminate.
    """

    def __init__(self, policy: GroupFilterPolicy, lookup: SpecificationLookup) -> None:
        self.policy = policy
        self.lookup = lookup

    def dependency_specs(self, spec: ConcreteSpecification) -> list[ConcreteSpecification]:
        """Return the specifications for the included dependencies of `spec`."""
        specs = []
        for declaration in spec.dependencies:
            if not self.policy.include(declaration, spec.source):
                logger.debug(f"Skipping {declaration.name} ({declaration.type.value}) required by {spec.full_name}")
                continue
            dependency = self.lookup.require(declaration)
            if dependency is not None:
                specs.append(dependency)
        return specs

    def closure(self, root_specs: Iterable[ConcreteSpecification]) -> list[ConcreteSpecification]:
        """
        Return `root_specs` and every specification reachable from them.

        Args:
            root_specs: Starting specifications

        Returns:
            Unique specifications in the order they were first reached

        Raises:
            SpecificationNotFoundError: If an included dependency has no specification
        """
        results: dict[ConcreteSpecification, None] = {}
        frontier = list(root_specs)
        depth = 0

        while True:
            new_specs = [s for s in dict.fromkeys(frontier) if s not in results]
            if not new_specs:
                break

            results.update(dict.fromkeys(new_specs))
            logger.debug(f"Closure level {depth}: {len(new_specs)} new specifications")

            frontier = [dep for spec in new_specs for dep in self.dependency_specs(spec)]
            depth += 1

        return list(results)
