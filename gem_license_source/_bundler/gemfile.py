"""Reader for the declarative subset of the Gemfile DSL.

A Gemfile is Ruby code, so only the statements bundler projects use to
declare dependencies are understood: `gem`, `gemspec`, `eval_gemfile`, and
the `group`, `platforms`, `path`, `git` and `source` blocks. Other statements are
skipped; blocks they open are tracked so `end` lines pair up correctly.
"""

import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from ..exceptions import GemfileParseError
from ..logging_config import logger
from .models import DEFAULT_GROUP
from .requirements import GemRequirement
from .settings import normalize_group

GEMFILES = ("Gemfile", "gems.rb")

_BLOCK_START_RE = re.compile(r"\bdo\s*(\|[^|]*\|)?\s*$")
_KEYWORD_BLOCK_RE = re.compile(r"^(if|unless|case|begin|while|until|def|class|module)\b")
_OPTION_RE = re.compile(r"^(?:(?P<key>[a-z_]+):(?!:)|:(?P<sym>[a-z_]+)\s*=>|[\"'](?P<str>[a-z_]+)[\"']\s*=>)\s*(?P<value>.+)$")
_PERCENT_ARRAY_RE = re.compile(r"^%[wWiI][\[({<](?P<body>.*)[\])}>]$")

_MRI_PLATFORMS = re.compile(r"^(ruby|mri)(_\d+)?$")
_WINDOWS_PLATFORMS = re.compile(r"^(windows|mswin|mswin64|mingw|x64_mingw)(_\d+)?$")


@dataclass
class GemfileDependency:
    """A `gem` statement."""

    name: str
    requirements: list[str] = field(default_factory=list)
    groups: list[str] = field(default_factory=lambda: [DEFAULT_GROUP])
    platforms: list[str] = field(default_factory=list)
    path: Optional[str] = None
    git: Optional[str] = None

    @property
    def requirement(self) -> str:
        return ", ".join(self.requirements) if self.requirements else ">= 0"


@dataclass
class GemspecDirective:
    """A `gemspec` statement."""

    path: str = "."
    name: Optional[str] = None
    development_group: str = "development"


@dataclass
class Gemfile:
    """Declarations read from a Gemfile."""

    dependencies: dict[str, GemfileDependency] = field(default_factory=dict)
    gemspecs: list[GemspecDirective] = field(default_factory=list)

    @property
    def groups(self) -> list[str]:
        """All groups used in the Gemfile, in order of first use."""
        result = [DEFAULT_GROUP]
        for dep in self.dependencies.values():
            for group in dep.groups:
                if group not in result:
                    result.append(group)
        for gemspec in self.gemspecs:
            if gemspec.development_group not in result:
                result.append(gemspec.development_group)
        return result


def platform_applicable(platforms: list[str], system: str = sys.platform) -> bool:
    """Whether a gem limited to `platforms` is installed for MRI on `system`."""
    if not platforms:
        return True
    windows = system.startswith(("win32", "cygwin"))
    for platform in platforms:
        if _MRI_PLATFORMS.match(platform) and not windows:
            return True
        if _WINDOWS_PLATFORMS.match(platform) and windows:
            return True
    return False


def _split_arguments(text: str) -> list[str]:
    """Split an argument list on top level commas."""
    args: list[str] = []
    depth = 0
    quote: Optional[str] = None
    current = ""
    for char in text:
        if quote:
            current += char
            if char == quote:
                quote = None
            continue
        if char in "\"'":
            quote = char
        elif char in "[({":
            depth += 1
        elif char in "])}":
            depth -= 1
        elif char == "#" and depth == 0:
            break
        elif char == "," and depth == 0:
            args.append(current.strip())
            current = ""
            continue
        current += char
    if quote or depth:
        raise GemfileParseError(f"Unbalanced arguments: {text}")
    if current.strip():
        args.append(current.strip())
    return args


class _Expression(str):
    """Ruby code that is not a literal value."""


def _literal(text: str) -> Any:
    """Evaluate a Ruby literal; anything else is returned as an _Expression."""
    text = text.strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "\"'":
        return text[1:-1]
    if text.startswith(":"):
        return text[1:].strip("\"'")
    if text.startswith("[") and text.endswith("]"):
        return [_literal(item) for item in _split_arguments(text[1:-1])]
    percent = _PERCENT_ARRAY_RE.match(text)
    if percent:
        return percent.group("body").split()
    if text in ("true", "false"):
        return text == "true"
    if text == "nil":
        return None
    return _Expression(text)


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, list):
        return [normalize_group(v) for v in value]
    return [normalize_group(value)]


def _parse_call(arguments: str) -> tuple[list[Any], dict[str, Any]]:
    positional: list[Any] = []
    options: dict[str, Any] = {}
    inner = arguments.strip()
    if inner.startswith("(") and inner.endswith(")"):
        inner = inner[1:-1]
    for arg in _split_arguments(inner):
        option = _OPTION_RE.match(arg)
        if option:
            key = option.group("key") or option.group("sym") or option.group("str")
            options[key] = _literal(option.group("value"))
        else:
            positional.append(_literal(arg))
    return positional, options


class _Scope:
    def __init__(self, kind: str, groups: Optional[list[str]] = None, platforms: Optional[list[str]] = None, **options: Any):
        self.kind = kind
        self.groups = groups or []
        self.platforms = platforms or []
        self.options = options


def _strip_comment(line: str) -> str:
    quote: Optional[str] = None
    for index, char in enumerate(line):
        if quote:
            if char == quote:
                quote = None
        elif char in "\"'":
            quote = char
        elif char == "#":
            return line[:index].rstrip()
    return line


def _bracket_depth(text: str) -> int:
    depth = 0
    quote: Optional[str] = None
    for char in text:
        if quote:
            if char == quote:
                quote = None
        elif char in "\"'":
            quote = char
        elif char in "[({":
            depth += 1
        elif char in "])}":
            depth -= 1
    return depth


def _logical_lines(content: str) -> list[tuple[int, str]]:
    """Join statements continued over several lines.

    A statement continues while it ends with a comma or backslash, or
    while one of its brackets is still open.
    """
    lines: list[tuple[int, str]] = []
    pending = ""
    start = 0
    for lineno, raw in enumerate(content.splitlines(), start=1):
        line = _strip_comment(raw.strip())
        if not pending:
            start = lineno
        if not line:
            if not pending:
                continue
            line = ""
        pending = f"{pending} {line}".strip() if pending else line
        if pending.endswith(",") or pending.endswith("\\") or _bracket_depth(pending) > 0:
            pending = pending.rstrip("\\").strip()
            continue
        lines.append((start, pending))
        pending = ""
    if pending:
        lines.append((start, pending))
    return lines


def parse_gemfile(content: str, base: Optional[Path] = None) -> Gemfile:
    """
    Parse Gemfile content.

    Files named by `eval_gemfile` are read relative to `base`, the
    directory of the Gemfile, and parsed within the enclosing blocks.

    Raises:
        GemfileParseError: If blocks or argument lists are unbalanced
    """
    gemfile = Gemfile()
    _parse_statements(gemfile, content, base or Path("."), [], set())
    return gemfile


def _eval_gemfile(gemfile: Gemfile, path: Path, scopes: list[_Scope], evaluating: set[Path]) -> None:
    path = path.resolve()
    if path in evaluating:
        logger.warning(f"Skipping eval_gemfile of {path}, it is already being evaluated")
        return
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        logger.warning(f"Unable to read {path} for eval_gemfile: {e}")
        return
    logger.debug(f"Evaluating {path}")
    evaluating.add(path)
    try:
        _parse_statements(gemfile, content, path.parent, scopes, evaluating)
    finally:
        evaluating.discard(path)


def _parse_statements(
    gemfile: Gemfile, content: str, base: Path, enclosing: list[_Scope], evaluating: set[Path]
) -> None:
    scopes: list[_Scope] = list(enclosing)

    for lineno, line in _logical_lines(content):
        statement, _, rest = line.partition(" ")
        if "(" in statement:
            statement, _, tail = statement.partition("(")
            rest = f"({tail} {rest}".strip()
        opens_block = bool(_BLOCK_START_RE.search(line))
        if opens_block:
            rest = _BLOCK_START_RE.sub("", rest).strip()

        if statement == "end":
            if len(scopes) == len(enclosing):
                raise GemfileParseError(f"Unexpected 'end' on line {lineno}")
            scopes.pop()
            continue

        if statement == "gem":
            positional, options = _parse_call(rest)
            if not positional or not isinstance(positional[0], str) or isinstance(positional[0], _Expression):
                logger.warning(f"Skipping gem without a literal name on line {lineno}: {line}")
                continue
            groups = _as_list(options.get("group", options.get("groups")))
            platforms = _as_list(options.get("platform", options.get("platforms")))
            for scope in scopes:
                groups.extend(g for g in scope.groups if g not in groups)
                platforms.extend(p for p in scope.platforms if p not in platforms)
            path = options.get("path")
            git = options.get("git") or options.get("github")
            for scope in reversed(scopes):
                if path is None and scope.kind == "path":
                    path = scope.options.get("path")
                if git is None and scope.kind == "git":
                    git = scope.options.get("git")
            name = positional[0]
            requirements: list[str] = []
            for requirement in positional[1:]:
                if isinstance(requirement, list):
                    requirements.extend(str(r) for r in requirement)
                elif isinstance(requirement, str) and requirement and not isinstance(requirement, _Expression):
                    requirements.append(requirement)
            try:
                GemRequirement.parse(", ".join(requirements))
            except ValueError as e:
                raise GemfileParseError(f"{e} on line {lineno}") from e
            gemfile.dependencies[name] = GemfileDependency(
                name=name,
                requirements=requirements,
                groups=groups or [DEFAULT_GROUP],
                platforms=platforms,
                path=path,
                git=git,
            )
        elif statement == "gemspec":
            _, options = _parse_call(rest)
            gemfile.gemspecs.append(
                GemspecDirective(
                    path=str(options.get("path") or "."),
                    name=options.get("name"),
                    development_group=normalize_group(options.get("development_group") or "development"),
                )
            )
        elif statement == "group" and opens_block:
            positional, _ = _parse_call(rest)
            scopes.append(_Scope("group", groups=_as_list(positional)))
            continue
        elif statement in ("platforms", "platform") and opens_block:
            positional, _ = _parse_call(rest)
            scopes.append(_Scope("platforms", platforms=_as_list(positional)))
            continue
        elif statement in ("path", "git", "github") and opens_block:
            positional, _ = _parse_call(rest)
            key = "git" if statement == "github" else statement
            scopes.append(_Scope(key, **{key: positional[0] if positional else None}))
            continue
        elif statement == "eval_gemfile":
            positional, _ = _parse_call(rest)
            if positional and isinstance(positional[0], str) and not isinstance(positional[0], _Expression):
                _eval_gemfile(gemfile, base / positional[0], scopes, evaluating)
            else:
                logger.warning(f"Skipping eval_gemfile without a literal path on line {lineno}: {line}")
        elif statement not in ("source", "ruby", "git_source", "plugin"):
            logger.debug(f"Skipping Gemfile statement on line {lineno}: {line}")

        if opens_block or _KEYWORD_BLOCK_RE.match(line):
            scopes.append(_Scope("other"))

    if len(scopes) > len(enclosing):
        raise GemfileParseError(f"Unclosed block in Gemfile: {scopes[-1].kind}")


def find_gemfile(root: Path) -> Optional[Path]:
    """Return the first Gemfile candidate that exists in `root`."""
    for filename in GEMFILES:
        candidate = root / filename
        if candidate.exists():
            return candidate
    return None


def lockfile_for(gemfile_path: Path) -> Path:
    """Return the lock file path that belongs to a Gemfile."""
    return gemfile_path.with_name(f"{gemfile_path.name}.lock")


def load_gemfile(path: Path) -> Gemfile:
    """Read and parse a Gemfile from disk."""
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise GemfileParseError(f"Unable to read {path}: {e}") from e
    return parse_gemfile(content, path.parent)
