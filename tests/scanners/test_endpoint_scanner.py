"""Tests for lookup table construction."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from shapegen.config import ShapegenConfig
from shapegen.models import DeclaredUnit
from shapegen.scanners.endpoints import EndpointScanner, build_lookup_table
from shapegen.scanners.units import UnitScanner
from tests._fixtures.nest_sources import HEALTH_CONTROLLER, USERS_CONTROLLER, USERS_SERVICE
from tests._fixtures.repo_builder import RepoBuilder


def _declared() -> dict:
    return {
        "UsersService": DeclaredUnit(
            unit_name="UsersService",
            lookup_name="UsersServiceResponse",
            module_path=Path("/tmp/usersservice.response.ts"),
            members={
                "create": "UsersServiceCreateResponse",
                "findAll": "UsersServiceFindAllResponse",
                "findAllPaginated": "UsersServiceFindAllPaginatedResponse",
            },
        )
    }


def test_scan_maps_handlers_to_declarations(
    repo_builder: RepoBuilder, caplog: pytest.LogCaptureFixture
) -> None:
    repo_builder.write({"users/users.controller.ts": USERS_CONTROLLER})
    root = repo_builder.path().resolve()

    with caplog.at_level(logging.WARNING, logger="shapegen"):
        table = build_lookup_table(root, "**/*.controller.ts", _declared())

    unit = table.endpoints["Users"]
    assert unit.owning_unit == "UsersService"
    assert list(unit.handlers) == ["create", "findAll", "findAllPaginated"]

    create = table.get("Users", "create")
    assert create is not None
    assert create.status == "created"
    assert create.is_array is False
    assert create.reference == "UsersServiceResponse.create"
    assert create.declaration_name == "UsersServiceCreateResponse"

    find_all = table.get("Users", "findAll")
    assert find_all is not None and find_all.is_array is True and find_all.status == "ok"

    paginated = table.get("Users", "findAllPaginated")
    assert paginated is not None and paginated.is_array is False

    # ``remove`` is not declared on the owning unit in this table.
    assert table.get("Users", "remove") is None
    assert "UsersController.remove has no matching member" in caplog.text


def test_endpoint_without_declared_owning_unit_is_skipped(
    repo_builder: RepoBuilder, caplog: pytest.LogCaptureFixture
) -> None:
    repo_builder.write({"health/health.controller.ts": HEALTH_CONTROLLER})
    root = repo_builder.path().resolve()

    with caplog.at_level(logging.WARNING, logger="shapegen"):
        table = build_lookup_table(root, "**/*.controller.ts", _declared())

    assert "Health" not in table.endpoints
    assert "no declarations were generated for HealthService" in caplog.text


def test_methods_without_verbs_are_not_handlers(tmp_path: Path) -> None:
    scanner = EndpointScanner(ShapegenConfig(root=tmp_path))
    table = scanner.scan(tmp_path, "**/*.controller.ts", _declared())
    scanner.scan_source(
        """
export class UsersController {
  findAll() { return []; }

  @Get()
  private create() { return null; }
}
""",
        tmp_path / "users.controller.ts",
        table,
    )

    assert table.endpoints["Users"].handlers == {}


def test_load_declared_units_reads_generated_modules(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"src/users.service.ts": USERS_SERVICE})
    root = repo_builder.path().resolve()
    output = root / "generated" / "responses"
    config = ShapegenConfig(root=root)
    UnitScanner(config).scan(root / "src", "**/*.service.ts", output)
    (output / "broken.response.ts").write_text("export const Nope = 1;\n", encoding="utf-8")

    units = EndpointScanner(config).load_declared_units(output)

    assert list(units) == ["UsersService"]
    unit = units["UsersService"]
    assert unit.lookup_name == "UsersServiceResponse"
    assert unit.module_path == output / "usersservice.response.ts"
    assert unit.members == {
        "create": "UsersServiceCreateResponse",
        "findAll": "UsersServiceFindAllResponse",
        "findOne": "UsersServiceFindOneResponse",
        "remove": "UsersServiceRemoveResponse",
        "findAllPaginated": "UsersServiceFindAllPaginatedResponse",
    }


def test_load_declared_units_handles_missing_directory(tmp_path: Path) -> None:
    assert EndpointScanner(ShapegenConfig(root=tmp_path)).load_declared_units(tmp_path / "none") == {}
