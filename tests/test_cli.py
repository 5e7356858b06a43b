"""Tests for the gctx command line."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from gcloud_ctx.cli import main
from gcloud_ctx.errors import (
    EXIT_CONFLICT,
    EXIT_CORRUPT_STATE,
    EXIT_DOCTOR_FAILURE,
    EXIT_INVALID_PROPERTY,
    EXIT_NO_ACTIVE,
    EXIT_NOT_FOUND,
    EXIT_OK,
)


@pytest.fixture()
def runner():
    return CliRunner()


@pytest.fixture()
def gctx(runner, tmp_path):
    location = tmp_path / "gcloud"

    def invoke(*args):
        return runner.invoke(main, ["--location", str(location), *args])

    invoke.location = location
    return invoke


def _create(gctx, name, *extra):
    return gctx(
        "create", name,
        "--project", "acme",
        "--account", "a@b.com",
        "--zone", "us-east1-b",
        *extra,
    )


def test_version(runner):
    result = runner.invoke(main, ["--version"])
    assert result.exit_code == 0
    assert "gctx" in result.output.lower()


def test_location_from_environment(runner, tmp_path):
    location = tmp_path / "from-env"
    result = runner.invoke(main, ["list"], env={"CLOUDSDK_CONFIG": str(location)})
    assert result.exit_code == EXIT_OK
    assert (location / "configurations").is_dir()


def test_fresh_store_scenario(gctx):
    result = _create(gctx, "work")
    assert result.exit_code == EXIT_OK, result.output
    assert "Successfully created configuration 'work'" in result.output

    result = gctx("list")
    assert result.output == "  work\n"

    assert gctx("activate", "work").exit_code == EXIT_OK

    result = gctx("current")
    assert result.output == "work\n"

    result = gctx("describe")
    assert result.output == (
        "[core]\nproject = acme\naccount = a@b.com\n\n[compute]\nzone = us-east1-b\n"
    )

    result = gctx("list")
    assert result.output == "* work\n"


def test_create_with_region_and_activate(gctx):
    result = _create(gctx, "work", "--region", "us-east1", "--activate")
    assert result.exit_code == EXIT_OK
    assert "is now active" in result.output

    result = gctx("describe", "work", "--format", "json")
    assert json.loads(result.output) == {
        "core": {"project": "acme", "account": "a@b.com"},
        "compute": {"zone": "us-east1-b", "region": "us-east1"},
    }


def test_create_conflict_and_force(gctx):
    _create(gctx, "work")

    result = _create(gctx, "work")
    assert result.exit_code == EXIT_CONFLICT
    assert "already exists" in result.output

    result = gctx(
        "create", "work", "--project", "other", "--account", "x@y.z", "--zone", "z", "--force"
    )
    assert result.exit_code == EXIT_OK
    assert "project = other" in gctx("describe", "work").output


def test_rename_active_scenario(gctx):
    _create(gctx, "work", "--activate")

    result = gctx("rename", "work", "prod")
    assert result.exit_code == EXIT_OK
    assert "Configuration 'prod' is now active" in result.output

    assert gctx("current").output == "prod\n"


def test_copy(gctx):
    _create(gctx, "work")
    result = gctx("copy", "work", "staging", "--activate")
    assert result.exit_code == EXIT_OK
    assert gctx("current").output == "staging\n"
    assert gctx("list").output == "* staging\n  work\n"


def test_delete_active_scenario(gctx):
    _create(gctx, "a", "--activate")
    _create(gctx, "b")

    result = gctx("delete", "a")
    assert result.exit_code == EXIT_OK

    assert gctx("list").output == "  b\n"
    result = gctx("current")
    assert result.exit_code == EXIT_NO_ACTIVE


def test_missing_configuration(gctx):
    result = gctx("activate", "nope")
    assert result.exit_code == EXIT_NOT_FOUND
    assert "nope" in result.output


def test_corrupt_store_is_reported(gctx):
    gctx("list")
    (gctx.location / "active_config").write_text("ghost")

    result = gctx("list")
    assert result.exit_code == EXIT_CORRUPT_STATE

    result = gctx("doctor")
    assert result.exit_code == EXIT_DOCTOR_FAILURE
    assert "↳" in result.output


def test_doctor_healthy(gctx):
    _create(gctx, "work", "--activate")
    result = gctx("doctor")
    assert result.exit_code == EXIT_OK
    assert "All checks passed" in result.output


def test_history(gctx):
    _create(gctx, "work")
    gctx("activate", "work")
    gctx("rename", "work", "prod")

    result = gctx("history", "-n", "2")
    assert result.exit_code == EXIT_OK
    lines = result.output.splitlines()
    assert len(lines) == 2
    assert "activate" in lines[0]
    assert "rename" in lines[1]
    assert "new=prod" in lines[1]


@pytest.mark.parametrize("project", ["", "acme\nother", " acme"])
def test_create_with_unusable_value_is_a_clean_error(gctx, project):
    result = gctx(
        "create", "work", "--project", project, "--account", "a@b.com", "--zone", "us-east1-b"
    )
    assert result.exit_code == EXIT_INVALID_PROPERTY
    assert "core/project" in result.output
    assert "Hint" in result.output
    assert isinstance(result.exception, SystemExit)
    assert gctx("list").output == ""
