"""Tests for shapegen.repo_scanner."""

from __future__ import annotations

from pathlib import Path

import pytest

from shapegen.repo_scanner import SourceScanner, compile_glob
from tests._fixtures.repo_builder import RepoBuilder


def test_compile_glob_handles_double_star() -> None:
    matcher = compile_glob("**/*.service.ts")

    assert matcher.match("users.service.ts")
    assert matcher.match("users/users.service.ts")
    assert matcher.match("a/b/c/orders.service.ts")
    assert not matcher.match("users/users.service.spec.ts.bak")
    assert not matcher.match("users/users.controller.ts")


def test_compile_glob_single_star_stays_in_segment() -> None:
    matcher = compile_glob("./users/*.ts")

    assert matcher.match("users/users.service.ts")
    assert not matcher.match("users/nested/users.service.ts")


def test_list_paths_is_sorted_and_skips_vendor_dirs(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "orders/orders.service.ts": "export class OrdersService {}\n",
            "users/users.service.ts": "export class UsersService {}\n",
            "auth.service.ts": "export class AuthService {}\n",
            "node_modules/pkg/pkg.service.ts": "export class PkgService {}\n",
            "dist/users/users.service.ts": "export class UsersService {}\n",
        }
    )

    assert repo_builder.list("**/*.service.ts") == [
        "auth.service.ts",
        "orders/orders.service.ts",
        "users/users.service.ts",
    ]


def test_list_paths_honours_gitignore_and_exclude_paths(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            ".gitignore": "generated/\n*.tmp.ts\n",
            "generated/users.service.ts": "",
            "users/users.service.ts": "",
            "users/scratch.tmp.ts": "",
            "legacy/old.service.ts": "",
        }
    )
    scanner = SourceScanner(exclude_paths=["legacy/"])
    root = repo_builder.path().resolve()

    found = [path.relative_to(root).as_posix() for path in scanner.list_paths(root, "**/*.ts")]

    assert found == ["users/users.service.ts"]


def test_list_paths_rejects_missing_directory(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        SourceScanner().list_paths(tmp_path / "missing", "**/*.ts")


def test_list_paths_rejects_file_root(tmp_path: Path) -> None:
    target = tmp_path / "file.ts"
    target.write_text("", encoding="utf-8")

    with pytest.raises(NotADirectoryError):
        SourceScanner().list_paths(target, "**/*.ts")
