"""Tests for the root plughost CLI."""

from pathlib import Path

from click.testing import CliRunner

from plughost import __version__
from plughost.cli import cli


def test_cli_help(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "plughost" in result.output


def test_cli_version(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_cli_no_args(cli_runner: CliRunner, tmp_path: Path) -> None:
    with cli_runner.isolated_filesystem(temp_dir=tmp_path):
        result = cli_runner.invoke(cli, [])
    assert result.exit_code == 0
    assert "Usage" in result.output


# --- Global flags ---


def test_json_flag_accepted(cli_runner: CliRunner) -> None:
    assert cli_runner.invoke(cli, ["--json", "--version"]).exit_code == 0


def test_verbose_flag_accepted(cli_runner: CliRunner) -> None:
    assert cli_runner.invoke(cli, ["-v", "--version"]).exit_code == 0


def test_log_json_flag_accepted(cli_runner: CliRunner) -> None:
    assert cli_runner.invoke(cli, ["--log-json", "--version"]).exit_code == 0


def test_config_option_accepted(cli_runner: CliRunner) -> None:
    assert cli_runner.invoke(cli, ["-c", "/tmp/plughost-test.toml", "--version"]).exit_code == 0


def test_plugin_dir_must_not_be_file(cli_runner: CliRunner, tmp_path: Path) -> None:
    target = tmp_path / "file.txt"
    target.write_text("")
    result = cli_runner.invoke(cli, ["--plugin-dir", str(target), "discover"])
    assert result.exit_code == 2


def test_subcommands_listed(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(cli, ["--help"])
    for name in ("discover", "preview", "remote"):
        assert name in result.output
