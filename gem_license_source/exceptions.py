"""Custom exceptions for gem-license-source."""


class GemLicenseSourceError(Exception):
    """Base exception for all gem-license-source operations."""


class ConfigurationError(GemLicenseSourceError):
    """Raised when configuration loading or validation fails."""


class CommandExecutionError(GemLicenseSourceError):
    """Raised when external command execution fails."""


class GemfileParseError(GemLicenseSourceError):
    """Raised when a Gemfile cannot be read."""


class LockfileParseError(GemLicenseSourceError):
    """Raised when a Gemfile.lock cannot be parsed."""


class GemspecLoadError(GemLicenseSourceError):
    """Raised when a gem specification cannot be loaded."""


class SpecificationNotFoundError(GemLicenseSourceError):
    """Raised when an included dependency has no resolvable specification."""

    def __init__(self, name: str, requirement: str) -> None:
        self.name = name
        self.requirement = requirement
        super().__init__(f"Unable to find a specification for {name} ({requirement}) in any sources")
