"""Tests for marker rewriting in endpoint sources."""

from __future__ import annotations

import logging
import textwrap
from pathlib import Path

import pytest

from shapegen.config import ShapegenConfig
from shapegen.models import DeclaredUnit, LookupTable
from shapegen.rewriter import DecoratorRewriter, apply_edits, rewrite_endpoint_file, rewrite_endpoints
from shapegen.scanners.endpoints import EndpointScanner
from tests._fixtures.nest_sources import USERS_CONTROLLER
from tests._fixtures.repo_builder import RepoBuilder

PROJECT = Path("/project")
CONTROLLER_PATH = PROJECT / "src" / "users" / "users.controller.ts"
MODULE_PATH = PROJECT / "src" / "generated" / "responses" / "usersservice.response.ts"


def _source(text: str) -> str:
    return textwrap.dedent(text).lstrip("\n")


@pytest.fixture
def table() -> LookupTable:
    declared = DeclaredUnit(
        unit_name="UsersService",
        lookup_name="UsersServiceResponse",
        module_path=MODULE_PATH,
        members={
            "create": "UsersServiceCreateResponse",
            "findAll": "UsersServiceFindAllResponse",
            "findAllPaginated": "UsersServiceFindAllPaginatedResponse",
            "remove": "UsersServiceRemoveResponse",
        },
    )
    lookup = LookupTable(declared_units={"UsersService": declared})
    EndpointScanner(ShapegenConfig(root=PROJECT)).scan_source(
        _source(USERS_CONTROLLER), CONTROLLER_PATH, lookup
    )
    return lookup


def test_member_markers_are_replaced_in_place(table: LookupTable) -> None:
    rewritten = rewrite_endpoint_file(_source(USERS_CONTROLLER), table, source_path=CONTROLLER_PATH)

    assert (
        "  @Post()\n"
        "  @ApiOperation({ summary: 'Create a new user' })\n"
        "  @ApiCreatedResponse({ type: UsersServiceResponse.create, description: 'User created successfully' })\n"
        "  create(@Body() body: unknown) {"
    ) in rewritten
    assert (
        "  @ApiOkResponse({ type: UsersServiceResponse.findAll, isArray: true, description: 'List of users' })"
        in rewritten
    )
    assert "  @ApiOkResponse({ type: UsersServiceResponse.findAllPaginated })\n  findAllPaginated()" in rewritten
    assert "  @ApiOkResponse({ type: UsersServiceResponse.remove })" in rewritten
    assert "InferAPIResponse" not in rewritten


def test_imports_are_updated(table: LookupTable) -> None:
    rewritten = rewrite_endpoint_file(_source(USERS_CONTROLLER), table, source_path=CONTROLLER_PATH)

    assert rewritten.startswith(
        "import { Controller, Get, Post, Body, Delete, Param } from '@nestjs/common';\n"
        "import { ApiTags, ApiOperation, ApiCreatedResponse, ApiOkResponse } from '@nestjs/swagger';\n"
        "import { UsersServiceResponse } from '../generated/responses/usersservice.response';\n"
        "import { UsersService } from './users.service';\n"
        "\n"
        "@ApiTags('users')\n"
    )
    assert rewritten.count("UsersServiceResponse }") == 1
    assert "infer-response.decorator" not in rewritten


def test_rewrite_is_idempotent(table: LookupTable) -> None:
    once = rewrite_endpoint_file(_source(USERS_CONTROLLER), table, source_path=CONTROLLER_PATH)
    twice = rewrite_endpoint_file(once, table, source_path=CONTROLLER_PATH)

    assert twice == once


def test_class_marker_provides_defaults_for_handlers(table: LookupTable) -> None:
    source = _source(
        """
        import { Controller, Get, Post } from '@nestjs/common';
        import { InferAPIResponse, InferAPIArrayResponse } from 'nestjs-infer';

        @Controller('users')
        @InferAPIResponse({ description: 'Users endpoint' })
        export class UsersController {
          @Post()
          create() {
            return null;
          }

          @Get()
          @InferAPIArrayResponse()
          findAll() {
            return [];
          }

          helper() {
            return 1;
          }
        }
        """
    )

    rewritten = rewrite_endpoint_file(source, table, source_path=CONTROLLER_PATH)

    assert rewritten == _source(
        """
        import { Controller, Get, Post } from '@nestjs/common';
        import { ApiCreatedResponse, ApiOkResponse } from '@nestjs/swagger';
        import { UsersServiceResponse } from '../generated/responses/usersservice.response';

        @Controller('users')
        export class UsersController {
          @Post()
          @ApiCreatedResponse({ type: UsersServiceResponse.create, description: 'Users endpoint' })
          create() {
            return null;
          }

          @Get()
          @ApiOkResponse({ type: UsersServiceResponse.findAll, isArray: true, description: 'Users endpoint' })
          findAll() {
            return [];
          }

          helper() {
            return 1;
          }
        }
        """
    )
    assert rewrite_endpoint_file(rewritten, table, source_path=CONTROLLER_PATH) == rewritten


def test_marker_options_override_detection(table: LookupTable) -> None:
    source = _source(
        """
        import { Get, Put } from '@nestjs/common';
        import { ApiOkResponse } from '@nestjs/swagger';
        import { UsersServiceResponse } from '../generated/responses/usersservice.response';
        import { InferAPIResponse, InferAPICreatedResponse } from 'nestjs-infer';

        export class AccountsController {
          @Get()
          @InferAPIResponse({ serviceName: 'UsersService', methodName: 'findAll', isArray: false, description: "It's here" })
          list() {}

          @Put()
          @InferAPICreatedResponse()
          create() {}
        }
        """
    )

    rewritten = rewrite_endpoint_file(source, table, source_path=CONTROLLER_PATH)

    assert "@ApiOkResponse({ type: UsersServiceResponse.findAll, description: 'It\\'s here' })" in rewritten
    # ``create`` has no serviceName and AccountsService is not declared, so it stays.
    assert "  @InferAPICreatedResponse()\n  create() {}" in rewritten
    assert "import { InferAPIResponse, InferAPICreatedResponse } from 'nestjs-infer';" in rewritten
    assert rewritten.count("import { UsersServiceResponse }") == 1
    assert "import { ApiOkResponse } from '@nestjs/swagger';" in rewritten


def test_created_marker_defaults_status(table: LookupTable) -> None:
    source = _source(
        """
        import { Put } from '@nestjs/common';
        import { InferAPICreatedResponse } from 'nestjs-infer';

        export class UsersController {
          @Put()
          @InferAPICreatedResponse({ description: 'Upserted' })
          create() {}
        }
        """
    )

    rewritten = rewrite_endpoint_file(source, table, source_path=CONTROLLER_PATH)

    assert "@ApiCreatedResponse({ type: UsersServiceResponse.create, description: 'Upserted' })" in rewritten
    assert rewritten.startswith(
        "import { Put } from '@nestjs/common';\n"
        "import { ApiCreatedResponse } from '@nestjs/swagger';\n"
        "import { UsersServiceResponse } from '../generated/responses/usersservice.response';\n"
        "\n"
        "export class UsersController {"
    )


def test_unresolved_markers_are_left_in_place(table: LookupTable, caplog: pytest.LogCaptureFixture) -> None:
    source = _source(
        """
        import { Get } from '@nestjs/common';
        import { InferAPIResponse } from 'nestjs-infer';

        export class UsersController {
          @Get()
          @InferAPIResponse()
          stats() {}
        }
        """
    )

    with caplog.at_level(logging.WARNING, logger="shapegen"):
        rewritten = rewrite_endpoint_file(source, table, source_path=CONTROLLER_PATH)

    assert rewritten == source
    assert "UsersController.stats" in caplog.text


def test_class_marker_stays_while_a_handler_is_unresolved(table: LookupTable) -> None:
    source = _source(
        """
        import { Get, Post } from '@nestjs/common';
        import { InferAPIResponse } from 'nestjs-infer';

        @InferAPIResponse()
        export class UsersController {
          @Post()
          create() {}

          @Get()
          stats() {}
        }
        """
    )

    once = rewrite_endpoint_file(source, table, source_path=CONTROLLER_PATH)

    assert "@InferAPIResponse()\nexport class UsersController" in once
    assert "  @Post()\n  @ApiCreatedResponse({ type: UsersServiceResponse.create })\n  create() {}" in once
    assert "import { InferAPIResponse } from 'nestjs-infer';" in once
    assert rewrite_endpoint_file(once, table, source_path=CONTROLLER_PATH) == once


def test_files_with_syntax_errors_are_unchanged(table: LookupTable, caplog: pytest.LogCaptureFixture) -> None:
    source = "export class UsersController {\n  @InferAPIResponse()\n  create( {\n"

    with caplog.at_level(logging.ERROR, logger="shapegen"):
        assert rewrite_endpoint_file(source, table) == source

    assert "syntax errors" in caplog.text


def test_sources_without_markers_are_not_parsed(table: LookupTable) -> None:
    class ExplodingParser:
        def parse(self, text: str):  # type: ignore[no-untyped-def]
            raise AssertionError("should not parse")

    rewriter = DecoratorRewriter(ShapegenConfig(root=PROJECT), parser=ExplodingParser())  # type: ignore[arg-type]
    result = rewriter.rewrite("export class UsersController {}\n", table)

    assert result.changed is False


def test_rewrite_endpoints_writes_changed_files(repo_builder: RepoBuilder, table: LookupTable) -> None:
    repo_builder.write(
        {
            "src/users/users.controller.ts": USERS_CONTROLLER,
            "src/health/health.controller.ts": "export class HealthController {}\n",
        }
    )
    root = repo_builder.path().resolve()

    changed = rewrite_endpoints(root / "src", "**/*.controller.ts", table)

    assert changed == 1
    assert "@ApiCreatedResponse(" in repo_builder.read("src/users/users.controller.ts")
    assert rewrite_endpoints(root / "src", "**/*.controller.ts", table) == 0


def test_apply_edits_rejects_overlaps() -> None:
    assert apply_edits(b"abcdef", [(1, 2, b"X"), (4, 4, b"Y")]) == b"aXcdYef"
    with pytest.raises(ValueError):
        apply_edits(b"abcdef", [(1, 4, b""), (2, 3, b"")])
