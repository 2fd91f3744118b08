"""YAML suite parser - turns a suite file into runnable scenario cases."""

from __future__ import annotations

import importlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional

import yaml

from rigger.config.loader import expand_env_vars
from rigger.core.errors import ConfigurationError
from rigger.core.models import ScenarioCase, ScenarioDescriptor


@dataclass
class SuiteEntry:
    """One scenario as written in the suite file."""
    name: str
    run: str
    tags: list[str] = field(default_factory=list)
    location: Optional[str] = None


@dataclass
class Suite:
    """Parsed suite."""
    name: str
    entries: list[SuiteEntry] = field(default_factory=list)
    source_path: Optional[Path] = None

    def filter(self, tag: Optional[str] = None, name: Optional[str] = None) -> "Suite":
        """Return a suite restricted to entries with a tag and/or name substring."""
        entries = self.entries
        if tag:
            wanted = tag.lstrip("@").lower()
            entries = [
                e for e in entries if wanted in {t.lstrip("@").lower() for t in e.tags}
            ]
        if name:
            entries = [e for e in entries if name.lower() in e.name.lower()]
        return Suite(name=self.name, entries=entries, source_path=self.source_path)


def resolve_callable(target: str) -> Callable[..., Any]:
    """Import a 'package.module:function' reference.

    Raises:
        ConfigurationError: If the reference is malformed or cannot be imported
    """
    module_name, sep, attr_path = target.partition(":")
    if not sep or not module_name or not attr_path:
        raise ConfigurationError(
            f"Invalid scenario reference '{target}' (expected 'module:function')"
        )

    try:
        obj: Any = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"Cannot import '{module_name}': {e}") from e

    for attr in attr_path.split("."):
        try:
            obj = getattr(obj, attr)
        except AttributeError as e:
            raise ConfigurationError(f"'{target}' not found: {e}") from e

    if not callable(obj):
        raise ConfigurationError(f"'{target}' is not callable")
    return obj


class SuiteParser:
    """YAML suite parser."""

    def parse(self, path: Path) -> Suite:
        """Parse suite from YAML file.

        Raises:
            ConfigurationError: If the file is missing, empty or malformed
        """
        if not path.exists():
            raise ConfigurationError(f"Suite file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

        if not data:
            raise ConfigurationError(f"Empty suite file: {path}")

        return self._parse_suite(expand_env_vars(data), path)

    def parse_string(self, content: str) -> Suite:
        """Parse suite from YAML string."""
        data = yaml.safe_load(content)
        if not data:
            raise ConfigurationError("Empty suite content")

        return self._parse_suite(expand_env_vars(data), None)

    def _parse_suite(self, data: Any, source_path: Optional[Path]) -> Suite:
        if not isinstance(data, dict):
            raise ConfigurationError("Suite must be a mapping with a 'scenarios' list")

        defaults = data.get("defaults") or {}
        default_tags = list(defaults.get("tags", []))
        default_run = defaults.get("run")

        entries = []
        for index, item in enumerate(data.get("scenarios") or []):
            if not isinstance(item, dict):
                raise ConfigurationError(f"Scenario #{index + 1} must be a mapping")

            name = item.get("name")
            run = item.get("run", default_run)
            if not name:
                raise ConfigurationError(f"Scenario #{index + 1} has no name")
            if not run:
                raise ConfigurationError(f"Scenario '{name}' has no 'run' reference")

            tags = item.get("tags") or []
            if isinstance(tags, str):
                tags = tags.split()

            location = item.get("location")
            if location is None and source_path is not None:
                location = f"{source_path}#{index + 1}"

            entries.append(SuiteEntry(
                name=str(name),
                run=str(run),
                tags=default_tags + [str(t) for t in tags],
                location=location,
            ))

        suite_name = data.get("suite")
        if not suite_name:
            suite_name = source_path.stem if source_path else "suite"

        return Suite(name=str(suite_name), entries=entries, source_path=source_path)

    def validate(self, suite: Suite) -> tuple[bool, list[str], list[str]]:
        """Validate a parsed suite.

        Returns:
            Tuple of (is_valid, errors, warnings)
        """
        errors = []
        warnings = []

        if not suite.entries:
            errors.append("No scenarios defined")

        names = set()
        for entry in suite.entries:
            if entry.name in names:
                errors.append(f"Duplicate scenario name: {entry.name}")
            names.add(entry.name)

            try:
                resolve_callable(entry.run)
            except ConfigurationError as e:
                errors.append(str(e))

            if not entry.tags:
                warnings.append(f"Scenario '{entry.name}' has no tags")

        return len(errors) == 0, errors, warnings


def load_cases(suite: Suite) -> list[ScenarioCase]:
    """Resolve every entry of a suite into a ScenarioCase."""
    return [
        ScenarioCase(
            descriptor=ScenarioDescriptor.create(entry.name, entry.tags, entry.location),
            body=resolve_callable(entry.run),
        )
        for entry in suite.entries
    ]
