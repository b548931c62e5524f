"""Configuration loading for shapegen (.shapegen.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .errors import ShapegenError

CONFIG_FILENAME = ".shapegen.yml"

DEFAULT_HTTP_VERBS = ["Get", "Post", "Put", "Patch", "Delete", "Options", "Head"]


class ConfigError(ShapegenError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class ConventionConfig:
    """Naming conventions used to discover and pair units."""

    unit_suffix: str = "Service"
    endpoint_suffix: str = "Controller"
    response_suffix: str = "Response"
    create_verb: str = "Post"
    http_verbs: List[str] = field(default_factory=lambda: list(DEFAULT_HTTP_VERBS))
    marker: str = "InferAPIResponse"
    array_marker: str = "InferAPIArrayResponse"
    created_marker: str = "InferAPICreatedResponse"

    @property
    def markers(self) -> List[str]:
        return [self.marker, self.array_marker, self.created_marker]


@dataclass
class DocumentationConfig:
    """Names exported by the target documentation framework."""

    module: str = "@nestjs/swagger"
    property_decorator: str = "ApiProperty"
    ok_decorator: str = "ApiOkResponse"
    created_decorator: str = "ApiCreatedResponse"


@dataclass
class BuildConfig:
    """Settings for the locked, staleness-gated build flow."""

    lock_timeout: float = 30.0


@dataclass
class ShapegenConfig:
    """Represents the settings defined in .shapegen.yml."""

    root: Path
    src_dir: str = "src"
    output_dir: str = "src/generated"
    service_pattern: str = "**/*.service.ts"
    controller_pattern: str = "**/*.controller.ts"
    clean: bool = True
    exclude_paths: List[str] = field(default_factory=list)
    conventions: ConventionConfig = field(default_factory=ConventionConfig)
    documentation: DocumentationConfig = field(default_factory=DocumentationConfig)
    build: BuildConfig = field(default_factory=BuildConfig)

    @property
    def source_root(self) -> Path:
        return self.root / self.src_dir

    @property
    def output_root(self) -> Path:
        return self.root / self.output_dir

    @property
    def declarations_dir(self) -> Path:
        return self.output_root / "responses"


def load_config(config_path: Path) -> ShapegenConfig:
    """Load configuration from disk; a missing file yields defaults."""
    config_file = _resolve_config_path(Path(config_path))
    root = config_file.parent.resolve()

    if not config_file.exists():
        return ShapegenConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    config = ShapegenConfig(root=root)
    config.src_dir = _as_str(data.get("src_dir")) or config.src_dir
    config.output_dir = _as_str(data.get("output_dir")) or config.output_dir
    config.service_pattern = _as_str(data.get("service_pattern")) or config.service_pattern
    config.controller_pattern = (
        _as_str(data.get("controller_pattern")) or config.controller_pattern
    )
    clean = _as_bool(data.get("clean"))
    if clean is not None:
        config.clean = clean
    config.exclude_paths = _as_str_list(data.get("exclude_paths"))

    conventions_data = _as_dict(data.get("conventions"))
    if conventions_data:
        conventions = config.conventions
        conventions.unit_suffix = _as_str(conventions_data.get("unit_suffix")) or conventions.unit_suffix
        conventions.endpoint_suffix = (
            _as_str(conventions_data.get("endpoint_suffix")) or conventions.endpoint_suffix
        )
        conventions.response_suffix = (
            _as_str(conventions_data.get("response_suffix")) or conventions.response_suffix
        )
        conventions.create_verb = _as_str(conventions_data.get("create_verb")) or conventions.create_verb
        verbs = _as_str_list(conventions_data.get("http_verbs"))
        if verbs:
            conventions.http_verbs = verbs
        conventions.marker = _as_str(conventions_data.get("marker")) or conventions.marker
        conventions.array_marker = (
            _as_str(conventions_data.get("array_marker")) or conventions.array_marker
        )
        conventions.created_marker = (
            _as_str(conventions_data.get("created_marker")) or conventions.created_marker
        )

    documentation_data = _as_dict(data.get("documentation"))
    if documentation_data:
        documentation = config.documentation
        documentation.module = _as_str(documentation_data.get("module")) or documentation.module
        documentation.property_decorator = (
            _as_str(documentation_data.get("property_decorator")) or documentation.property_decorator
        )
        documentation.ok_decorator = (
            _as_str(documentation_data.get("ok_decorator")) or documentation.ok_decorator
        )
        documentation.created_decorator = (
            _as_str(documentation_data.get("created_decorator")) or documentation.created_decorator
        )

    build_data = _as_dict(data.get("build"))
    if build_data:
        timeout = _as_float(build_data.get("lock_timeout"))
        if timeout is not None:
            if timeout <= 0:
                raise ConfigError("build.lock_timeout must be a positive number of seconds")
            config.build.lock_timeout = timeout

    return config


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded if loaded is not None else {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    return str(value) if isinstance(value, (str, int, float)) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "BuildConfig",
    "CONFIG_FILENAME",
    "ConfigError",
    "ConventionConfig",
    "DocumentationConfig",
    "ShapegenConfig",
    "load_config",
]
