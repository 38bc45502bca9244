"""Tests for the gatekeeper CLI."""
from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from aumos_gatekeeper.cli.main import cli

MODEL_YAML = """\
version: "1.0"
roles:
  - id: engineer
    permissions:
      - permission: code.*
groups:
  - id: engineering
    permissions:
      - permission: engineering.*
  - id: backend-team
    members:
      - alice
      - group: engineering
  - id: contractors
    permissions:
      - permission: billing.*
        effect: deny
assignments:
  - subject_id: alice
    role_ids: [engineer]
    group_ids: [backend-team]
    direct_grants:
      - permission: reports.view
        conditions:
          - attribute: attributes.department
            operator: equals
            value: engineering
  - subject_id: bob
    group_ids: [contractors]
"""


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def model_file(tmp_path: Path) -> str:
    path = tmp_path / "access.yaml"
    path.write_text(MODEL_YAML, encoding="utf-8")
    return str(path)


@pytest.fixture()
def no_config(tmp_path: Path) -> str:
    return str(tmp_path / "absent-gatekeeper.yaml")


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


class TestVersionCommand:
    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["version"])
        assert result.exit_code == 0
        assert "aumos-gatekeeper" in result.output


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------


class TestCheckCommand:
    def test_allowed_exits_zero(self, runner: CliRunner, model_file: str, no_config: str) -> None:
        result = runner.invoke(
            cli, ["check", "alice", "code.read", "--model", model_file, "--config", no_config]
        )
        assert result.exit_code == 0
        assert "ALLOWED" in result.output
        assert "code.*" in result.output

    def test_nested_group_grant(self, runner: CliRunner, model_file: str, no_config: str) -> None:
        result = runner.invoke(
            cli,
            ["check", "alice", "engineering.access", "-m", model_file, "-c", no_config],
        )
        assert result.exit_code == 0

    def test_denied_exits_one(self, runner: CliRunner, model_file: str, no_config: str) -> None:
        result = runner.invoke(
            cli, ["check", "alice", "billing.view", "-m", model_file, "-c", no_config]
        )
        assert result.exit_code == 1
        assert "DENIED" in result.output

    def test_explicit_deny_reason(
        self, runner: CliRunner, model_file: str, no_config: str
    ) -> None:
        result = runner.invoke(
            cli, ["check", "bob", "billing.view", "-m", model_file, "-c", no_config]
        )
        assert result.exit_code == 1
        assert "explicit deny rule" in result.output

    def test_context_json(self, runner: CliRunner, model_file: str, no_config: str) -> None:
        args = ["check", "alice", "reports.view", "-m", model_file, "-c", no_config]
        allowed = runner.invoke(
            cli, [*args, "--context", '{"attributes": {"department": "engineering"}}']
        )
        denied = runner.invoke(
            cli, [*args, "--context", '{"attributes": {"department": "sales"}}']
        )
        assert allowed.exit_code == 0
        assert denied.exit_code == 1

    def test_invalid_context_json(
        self, runner: CliRunner, model_file: str, no_config: str
    ) -> None:
        result = runner.invoke(
            cli,
            ["check", "alice", "code.read", "-m", model_file, "-c", no_config, "--context", "{"],
        )
        assert result.exit_code == 2

    def test_context_must_be_object(
        self, runner: CliRunner, model_file: str, no_config: str
    ) -> None:
        result = runner.invoke(
            cli,
            ["check", "alice", "code.read", "-m", model_file, "-c", no_config, "--context", "[1]"],
        )
        assert result.exit_code == 2

    def test_missing_model_exits_two(
        self, runner: CliRunner, tmp_path: Path, no_config: str
    ) -> None:
        result = runner.invoke(
            cli,
            ["check", "alice", "code.read", "-m", str(tmp_path / "nope.yaml"), "-c", no_config],
        )
        assert result.exit_code == 2

    def test_strict_flag(self, runner: CliRunner, model_file: str, no_config: str) -> None:
        result = runner.invoke(
            cli,
            ["check", "carol", "code.read", "-m", model_file, "-c", no_config, "--strict"],
        )
        assert result.exit_code == 1
        assert "strict mode" in result.output

    def test_config_file_applied(
        self, runner: CliRunner, model_file: str, tmp_path: Path
    ) -> None:
        config = tmp_path / "gatekeeper.yaml"
        config.write_text("wildcard_support: false\n", encoding="utf-8")
        result = runner.invoke(
            cli, ["check", "alice", "code.read", "-m", model_file, "-c", str(config)]
        )
        assert result.exit_code == 1

    def test_invalid_config_exits_two(
        self, runner: CliRunner, model_file: str, tmp_path: Path
    ) -> None:
        config = tmp_path / "gatekeeper.yaml"
        config.write_text("permission_separator: ''\n", encoding="utf-8")
        result = runner.invoke(
            cli, ["check", "alice", "code.read", "-m", model_file, "-c", str(config)]
        )
        assert result.exit_code == 2
        assert "Error:" in result.output
        assert isinstance(result.exception, SystemExit)


# ---------------------------------------------------------------------------
# permissions
# ---------------------------------------------------------------------------


class TestPermissionsCommand:
    def test_lists_grants_roles_and_groups(
        self, runner: CliRunner, model_file: str, no_config: str
    ) -> None:
        result = runner.invoke(cli, ["permissions", "alice", "-m", model_file, "-c", no_config])
        assert result.exit_code == 0
        assert "code.*" in result.output
        assert "engineering.*" in result.output
        assert "engineer" in result.output
        assert "backend-team" in result.output

    def test_unknown_subject(self, runner: CliRunner, model_file: str, no_config: str) -> None:
        result = runner.invoke(cli, ["permissions", "nobody", "-m", model_file, "-c", no_config])
        assert result.exit_code == 0
        assert "No grants found" in result.output


# ---------------------------------------------------------------------------
# validate
# ---------------------------------------------------------------------------


class TestValidateCommand:
    def test_valid_model(self, runner: CliRunner, model_file: str) -> None:
        result = runner.invoke(cli, ["validate", "--model", model_file])
        assert result.exit_code == 0
        assert "Valid" in result.output

    def test_unknown_references_reported(self, runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "access.yaml"
        path.write_text(
            "assignments:\n"
            "  - subject_id: alice\n"
            "    role_ids: [ghost]\n"
            "    group_ids: [phantom]\n",
            encoding="utf-8",
        )
        result = runner.invoke(cli, ["validate", "--model", str(path)])
        assert result.exit_code == 1
        assert "ghost" in result.output
        assert "phantom" in result.output

    def test_invalid_permission_reported(self, runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "access.yaml"
        path.write_text(
            "roles:\n  - id: r\n    permissions: ['docs/read']\n",
            encoding="utf-8",
        )
        result = runner.invoke(cli, ["validate", "--model", str(path)])
        assert result.exit_code == 1
        assert "invalid permission" in result.output

    def test_structural_error_exits_two(self, runner: CliRunner, tmp_path: Path) -> None:
        path = tmp_path / "access.yaml"
        path.write_text("roles:\n  - name: missing id\n", encoding="utf-8")
        result = runner.invoke(cli, ["validate", "--model", str(path)])
        assert result.exit_code == 2
        assert "Error:" in result.output
        assert isinstance(result.exception, SystemExit)

    def test_missing_file_exits_two(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["validate", "--model", str(tmp_path / "nope.yaml")])
        assert result.exit_code == 2


# ---------------------------------------------------------------------------
# analyze
# ---------------------------------------------------------------------------


class TestAnalyzeCommand:
    def test_json_output(self, runner: CliRunner, model_file: str) -> None:
        result = runner.invoke(cli, ["analyze", "--model", model_file, "--json"])
        assert result.exit_code == 0
        summary = json.loads(result.output)
        assert summary["wildcards"] == 3
        assert summary["specific"] == 1
        assert summary["resources"] == ["billing", "code", "engineering", "reports"]
        assert summary["actions"] == ["view"]

    def test_table_output(self, runner: CliRunner, model_file: str) -> None:
        result = runner.invoke(cli, ["analyze", "--model", model_file])
        assert result.exit_code == 0
        assert "wildcards" in result.output

    def test_missing_file(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["analyze", "--model", str(tmp_path / "nope.yaml")])
        assert result.exit_code == 2


# ---------------------------------------------------------------------------
# audit show
# ---------------------------------------------------------------------------


class TestAuditShowCommand:
    def test_no_entries(self, runner: CliRunner, tmp_path: Path) -> None:
        config = tmp_path / "gatekeeper.yaml"
        config.write_text(
            f"audit:\n  enabled: true\n  log_path: {tmp_path / 'decisions.jsonl'}\n",
            encoding="utf-8",
        )
        result = runner.invoke(cli, ["audit", "show", "--config", str(config)])
        assert result.exit_code == 0
        assert "No decision log entries" in result.output

    def test_checks_are_logged_and_shown(
        self, runner: CliRunner, model_file: str, tmp_path: Path
    ) -> None:
        config = tmp_path / "gatekeeper.yaml"
        config.write_text(
            f"audit:\n  enabled: true\n  log_path: {tmp_path / 'decisions.jsonl'}\n",
            encoding="utf-8",
        )
        runner.invoke(cli, ["check", "alice", "code.read", "-m", model_file, "-c", str(config)])
        runner.invoke(cli, ["check", "bob", "billing.view", "-m", model_file, "-c", str(config)])

        result = runner.invoke(cli, ["audit", "show", "--config", str(config)])
        assert result.exit_code == 0
        assert "alice" in result.output
        assert "Total decision records: 2" in result.output


# ---------------------------------------------------------------------------
# error output
# ---------------------------------------------------------------------------


class TestErrorOutput:
    def test_bracketed_path_printed_literally(self, runner: CliRunner, tmp_path: Path) -> None:
        model_dir = tmp_path / "[/team]"
        model_dir.mkdir(parents=True)
        path = model_dir / "access.yaml"
        path.write_text("version: '9.9'\n", encoding="utf-8")
        result = runner.invoke(cli, ["validate", "--model", str(path)])
        assert result.exit_code == 2
        assert isinstance(result.exception, SystemExit)
        assert result.output.lstrip().startswith("Error:")
