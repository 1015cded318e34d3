"""Loader for `Gem::Specification` YAML documents.

`gem specification NAME` and `Gem::Specification#to_yaml` emit YAML
with Ruby object tags (`!ruby/object:Gem::Version` and friends) that
PyYAML's safe loader rejects. The loader below turns the tags RubyGems
uses into plain Python values.
"""

import base64
from typing import Any, Optional

import yaml

from ..exceptions import GemspecLoadError
from .models import (
    RUBY_PLATFORM,
    ConcreteSpecification,
    DependencyType,
    GemSource,
    TransitiveDeclaration,
)
from .requirements import GemRequirement, GemVersion


class GemspecLoader(yaml.SafeLoader):
    """Safe YAML loader that understands RubyGems' object tags."""


def _construct_ruby_object(loader: GemspecLoader, suffix: str, node: yaml.Node) -> Any:
    if isinstance(node, yaml.MappingNode):
        data = loader.construct_mapping(node, deep=True)
    elif isinstance(node, yaml.SequenceNode):
        return loader.construct_sequence(node, deep=True)
    else:
        return loader.construct_scalar(node)

    if suffix == "object:Gem::Version":
        return str(data.get("version", "0"))
    if suffix == "object:Gem::Requirement":
        requirements = data.get("requirements") or []
        return ", ".join(f"{op} {version}" for op, version in requirements)
    if suffix == "object:Gem::Platform":
        return "-".join(str(data[k]) for k in ("cpu", "os", "version") if data.get(k))
    return data


def _construct_ruby_scalar(loader: GemspecLoader, suffix: str, node: yaml.Node) -> Any:
    value = loader.construct_scalar(node)
    return value.lstrip(":") if suffix in ("sym", "symbol") else value


def _construct_binary(loader: GemspecLoader, node: yaml.Node) -> str:
    return base64.b64decode(loader.construct_scalar(node)).decode("utf-8", errors="replace")


GemspecLoader.add_multi_constructor(
    "!ruby/object:", lambda loader, suffix, node: _construct_ruby_object(loader, "object:" + suffix, node)
)
GemspecLoader.add_multi_constructor("!ruby/", _construct_ruby_scalar)
GemspecLoader.add_constructor("!binary", _construct_binary)


def _dependency_type(value: Any) -> DependencyType:
    name = str(value or "runtime").lstrip(":")
    return DependencyType.DEVELOPMENT if name == "development" else DependencyType.RUNTIME


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def parse_gemspec_yaml(
    text: str,
    source: GemSource,
    install_location: Optional[str] = None,
) -> ConcreteSpecification:
    """
    Parse a gem specification YAML document.

    Args:
        text: YAML output of `gem specification` or `Gem::Specification#to_yaml`
        source: Source the specification was loaded from
        install_location: Directory the gem is installed in, if known

    Raises:
        GemspecLoadError: If the document is not a gem specification
    """
    try:
        data = yaml.load(text, Loader=GemspecLoader)  # noqa: S506 - GemspecLoader is a SafeLoader
    except yaml.YAMLError as e:
        raise GemspecLoadError(f"Invalid gem specification YAML: {e}") from e

    if not isinstance(data, dict) or not data.get("name"):
        raise GemspecLoadError("Gem specification YAML has no name")

    dependencies = []
    for dep in data.get("dependencies") or []:
        if not isinstance(dep, dict) or not dep.get("name"):
            continue
        requirement = str(dep.get("requirement") or dep.get("version_requirements") or ">= 0")
        try:
            GemRequirement.parse(requirement)
        except ValueError as e:
            raise GemspecLoadError(f"Invalid requirement for {dep['name']}: {e}") from e
        dependencies.append(
            TransitiveDeclaration(
                name=str(dep["name"]),
                requirement=requirement,
                type=_dependency_type(dep.get("type")),
            )
        )

    version = str(data.get("version") or "0")
    try:
        GemVersion(version)
    except ValueError as e:
        raise GemspecLoadError(f"Invalid version for {data['name']}: {e}") from e

    licenses = data.get("licenses") or ([data["license"]] if data.get("license") else [])

    return ConcreteSpecification(
        name=str(data["name"]),
        version=version,
        source=source,
        platform=_optional_str(data.get("platform")) or RUBY_PLATFORM,
        dependencies=tuple(dependencies),
        summary=_optional_str(data.get("summary")),
        homepage=_optional_str(data.get("homepage")),
        install_location=install_location,
        licenses=tuple(str(license_name) for license_name in licenses),
    )
