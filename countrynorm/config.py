"""Configuration model and loaders for countrynorm.

Responsibilities:
- Define run configuration as a typed dataclass.
- Load optional defaults from a YAML file and from environment variables.
- Resolve the effective configuration with `cli` > `env` > `file` precedence.

Key types:
- `NormalizeConfig`: settings for one normalization run.
- `ConfigLoader`: static construction helpers for `NormalizeConfig`.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from .errors import ConfigurationError
from .lookup.records import OutputFormat
from .parsing import normalize_optional_string, parse_permissive_boolean

SUPPORTED_SOURCE_FORMATS = ("csv", "xml", "db")

_DEFAULT_ENCODING = "utf-8"
_OPTION_NAMES = {
    "source_format": "--format",
    "to": "--to",
    "location": "--location",
}


@dataclass(slots=True)
class NormalizeConfig:
    """Settings for one normalization run.

    Fields left as `None` are unset and can be filled from a lower-precedence
    source by `ConfigLoader.resolve`.

    Attributes:
        source_format: Adapter selector (`csv`, `xml`, or `db`).
        to: Target output format key.
        location: Column name, path expression, or `table.column` reference.
        encoding: Text encoding of delimited-text sources.
        verbose: Whether debug events (unresolved values) are logged.
    """

    source_format: str | None = None
    to: str | None = None
    location: str | None = None
    encoding: str | None = None
    verbose: bool | None = None

    @property
    def effective_encoding(self) -> str:
        """Return the configured encoding or the UTF-8 default."""

        return self.encoding or _DEFAULT_ENCODING

    @property
    def target_format(self) -> OutputFormat:
        """Return the parsed target format; call `validate` first."""

        return OutputFormat.parse(self.to or "")

    def validate(self) -> None:
        """Validate required options and closed value sets before any work starts.

        Raises:
            ConfigurationError: Naming the missing option or the bad value.
        """

        for field_name, option in _OPTION_NAMES.items():
            if normalize_optional_string(getattr(self, field_name)) is None:
                raise ConfigurationError(
                    f"Missing required option `{option}`.",
                    hint=f"Pass `{option}` on the command line or set it in `--config`.",
                )

        if self.source_format not in SUPPORTED_SOURCE_FORMATS:
            raise ConfigurationError(
                f"Unsupported source format `{self.source_format}`.",
                hint=f"Use one of: {', '.join(SUPPORTED_SOURCE_FORMATS)}.",
            )
        try:
            OutputFormat.parse(self.to or "")
        except ValueError as exc:
            raise ConfigurationError(
                str(exc),
                hint="Run with `--help` to list the target formats.",
            ) from exc


class ConfigLoader:
    """Factory methods for loading configuration from supported sources."""

    _SUPPORTED_YAML_KEYS = frozenset({"format", "to", "location", "encoding", "verbose"})
    _YAML_FIELD_NAMES = {"format": "source_format"}
    _ENV_KEYS = {
        "COUNTRYNORM_FORMAT": "source_format",
        "COUNTRYNORM_TO": "to",
        "COUNTRYNORM_LOCATION": "location",
        "COUNTRYNORM_ENCODING": "encoding",
        "COUNTRYNORM_VERBOSE": "verbose",
    }

    @staticmethod
    def from_yaml(path: Path) -> NormalizeConfig:
        """Create a partial config from a YAML file.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the payload is not a mapping, has unknown keys, or
                carries invalid values.
        """

        path_text = path.read_text(encoding="utf-8")
        try:
            payload = yaml.safe_load(path_text)
        except yaml.YAMLError as exc:
            raise ValueError(f"YAML config `{path}` is not valid YAML: {exc}") from exc

        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise ValueError(f"YAML config `{path}` must contain a top-level mapping/object.")

        source_label = f"YAML `{path}`"
        unknown = sorted(set(map(str, payload)).difference(ConfigLoader._SUPPORTED_YAML_KEYS))
        if unknown:
            raise ValueError(f"{source_label} includes unsupported key(s): {', '.join(unknown)}.")

        values = {
            ConfigLoader._YAML_FIELD_NAMES.get(str(key), str(key)): value
            for key, value in payload.items()
        }
        return ConfigLoader._build(values, source_label)

    @staticmethod
    def from_env(env: Mapping[str, str] | None = None) -> NormalizeConfig:
        """Create a partial config from `COUNTRYNORM_*` environment variables."""

        env_map: Mapping[str, str] = os.environ if env is None else env
        values = {
            field_name: env_map[key]
            for key, field_name in ConfigLoader._ENV_KEYS.items()
            if key in env_map
        }
        return ConfigLoader._build(values, "environment")

    @staticmethod
    def resolve(*layers: NormalizeConfig | None) -> NormalizeConfig:
        """Merge partial configs, earlier layers taking precedence per field."""

        resolved = NormalizeConfig()
        for config_field in fields(NormalizeConfig):
            for layer in layers:
                if layer is None:
                    continue
                value = getattr(layer, config_field.name)
                if value is not None:
                    setattr(resolved, config_field.name, value)
                    break
        return resolved

    @staticmethod
    def _build(values: Mapping[str, Any], source_label: str) -> NormalizeConfig:
        """Build a partial config from raw field values, normalizing blanks to `None`."""

        verbose: bool | None = None
        if values.get("verbose") is not None:
            verbose = parse_permissive_boolean(values["verbose"])
            if verbose is None:
                raise ValueError(
                    f"{source_label} `verbose` must be a boolean value "
                    "(`true`/`false`, `1`/`0`, `yes`/`no`)."
                )
        source_format = normalize_optional_string(values.get("source_format"))
        return NormalizeConfig(
            source_format=source_format.lower() if source_format else None,
            to=normalize_optional_string(values.get("to")),
            location=normalize_optional_string(values.get("location")),
            encoding=normalize_optional_string(values.get("encoding")),
            verbose=verbose,
        )
