"""Tests for shapegen.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from shapegen.config import ConfigError, ShapegenConfig, load_config


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert isinstance(config, ShapegenConfig)
    assert config.root == tmp_path.resolve()
    assert config.source_root == tmp_path.resolve() / "src"
    assert config.declarations_dir == tmp_path.resolve() / "src" / "generated" / "responses"
    assert config.service_pattern == "**/*.service.ts"
    assert config.controller_pattern == "**/*.controller.ts"
    assert config.clean is True
    assert config.conventions.http_verbs == ["Get", "Post", "Put", "Patch", "Delete", "Options", "Head"]
    assert config.conventions.markers == [
        "InferAPIResponse",
        "InferAPIArrayResponse",
        "InferAPICreatedResponse",
    ]
    assert config.documentation.module == "@nestjs/swagger"
    assert config.build.lock_timeout == 30.0


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    config_file = tmp_path / ".shapegen.yml"
    config_file.write_text(
        """
src_dir: app
output_dir: app/api-docs
service_pattern: "**/*.svc.ts"
clean: false
exclude_paths:
  - "legacy/"
conventions:
  unit_suffix: Repository
  endpoint_suffix: Resource
  http_verbs: [Get, Post]
  marker: AutoResponse
documentation:
  ok_decorator: ApiResponse
build:
  lock_timeout: 5
""",
        encoding="utf-8",
    )

    config = load_config(config_file)

    assert config.source_root == tmp_path.resolve() / "app"
    assert config.output_root == tmp_path.resolve() / "app" / "api-docs"
    assert config.service_pattern == "**/*.svc.ts"
    assert config.controller_pattern == "**/*.controller.ts"
    assert config.clean is False
    assert config.exclude_paths == ["legacy/"]
    assert config.conventions.unit_suffix == "Repository"
    assert config.conventions.endpoint_suffix == "Resource"
    assert config.conventions.http_verbs == ["Get", "Post"]
    assert config.conventions.marker == "AutoResponse"
    assert config.conventions.array_marker == "InferAPIArrayResponse"
    assert config.documentation.ok_decorator == "ApiResponse"
    assert config.documentation.created_decorator == "ApiCreatedResponse"
    assert config.build.lock_timeout == 5.0


def test_load_config_accepts_directory_or_other_file(tmp_path: Path) -> None:
    (tmp_path / ".shapegen.yml").write_text("src_dir: lib\n", encoding="utf-8")

    assert load_config(tmp_path).src_dir == "lib"
    assert load_config(tmp_path / "package.json").src_dir == "lib"


def test_load_config_treats_empty_file_as_defaults(tmp_path: Path) -> None:
    (tmp_path / ".shapegen.yml").write_text("\n", encoding="utf-8")

    assert load_config(tmp_path).src_dir == "src"


def test_load_config_rejects_non_mapping(tmp_path: Path) -> None:
    (tmp_path / ".shapegen.yml").write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_load_config_rejects_invalid_yaml(tmp_path: Path) -> None:
    (tmp_path / ".shapegen.yml").write_text("conventions: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_load_config_rejects_non_positive_lock_timeout(tmp_path: Path) -> None:
    (tmp_path / ".shapegen.yml").write_text("build:\n  lock_timeout: 0\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)
