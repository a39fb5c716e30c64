"""Tests for CLI commands."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml
from typer.testing import CliRunner

from cfnscript import __version__
from cfnscript.cli import app, main, resolve_format
from cfnscript.core.compiler import compile_source
from cfnscript.core.settings import OutputFormat, Settings

SOURCE = """
Env = Parameter { Type: 'String' }
Bucket = Resource AWS::S3::Bucket { BucketName: Env }
"""


@pytest.fixture
def cli_runner():
    """Return a CLI test runner."""
    return CliRunner()


@pytest.fixture
def source_file(tmp_path: Path) -> Path:
    path = tmp_path / "stack.cfn"
    path.write_text(SOURCE)
    return path


# ============================================================================
# compile
# ============================================================================


class TestCompile:
    def test_compile_to_stdout(self, cli_runner: CliRunner, source_file: Path) -> None:
        result = cli_runner.invoke(app, ["compile", str(source_file)])
        assert result.exit_code == 0
        assert yaml.safe_load(result.stdout) == compile_source(SOURCE)

    def test_compile_json_flag(self, cli_runner: CliRunner, source_file: Path) -> None:
        result = cli_runner.invoke(app, ["compile", str(source_file), "--json"])
        assert result.exit_code == 0
        assert json.loads(result.stdout) == compile_source(SOURCE)

    def test_compile_format_option(self, cli_runner: CliRunner, source_file: Path) -> None:
        result = cli_runner.invoke(app, ["compile", str(source_file), "--format", "JSON"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["Resources"]["Bucket"]["Type"] == "AWS::S3::Bucket"

    def test_compile_from_stdin(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(app, ["compile"], input=SOURCE)
        assert result.exit_code == 0
        assert yaml.safe_load(result.stdout) == compile_source(SOURCE)

    def test_dash_means_stdin(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(app, ["compile", "-", "--json"], input=SOURCE)
        assert result.exit_code == 0
        assert json.loads(result.stdout) == compile_source(SOURCE)

    def test_json_extension_selects_json(
        self, cli_runner: CliRunner, source_file: Path, tmp_path: Path
    ) -> None:
        output = tmp_path / "stack.json"
        result = cli_runner.invoke(app, ["compile", str(source_file), str(output)])
        assert result.exit_code == 0
        assert result.stdout == ""
        assert json.loads(output.read_text()) == compile_source(SOURCE)

    def test_yaml_output_file(
        self, cli_runner: CliRunner, source_file: Path, tmp_path: Path
    ) -> None:
        output = tmp_path / "stack.yml"
        result = cli_runner.invoke(app, ["compile", str(source_file), str(output)])
        assert result.exit_code == 0
        assert yaml.safe_load(output.read_text()) == compile_source(SOURCE)

    def test_format_from_environment(self, cli_runner: CliRunner, source_file: Path) -> None:
        result = cli_runner.invoke(
            app, ["compile", str(source_file)], env={"CFNSCRIPT_FORMAT": "json"}
        )
        assert result.exit_code == 0
        assert json.loads(result.stdout) == compile_source(SOURCE)


class TestCompileErrors:
    def test_render_error(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        source = tmp_path / "bad.cfn"
        source.write_text("A = Resource T\n\nB = Resource T { X: Missing }\n")
        output = tmp_path / "bad.json"

        result = cli_runner.invoke(app, ["compile", str(source), str(output)])

        assert result.exit_code == 1
        assert "Compile error:" in result.output
        assert "Undeclared identifier 'Missing'" in result.output
        assert not output.exists()

    def test_parse_error_names_file(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        source = tmp_path / "bad.cfn"
        source.write_text("X = 'value'\n")

        result = cli_runner.invoke(app, ["compile", str(source)])

        assert result.exit_code == 1
        assert "Parse error:" in result.output
        assert f"{source}:1:5" in result.output

    def test_lex_error(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(app, ["compile"], input="X = Condition a & b\n")
        assert result.exit_code == 1
        assert "Lex error:" in result.output
        assert "did you mean '&&'" in result.output

    def test_missing_input(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        result = cli_runner.invoke(app, ["compile", str(tmp_path / "nope.cfn")])
        assert result.exit_code == 1
        assert "cannot read" in result.output


# ============================================================================
# decompile
# ============================================================================


class TestDecompile:
    def test_decompile_file(self, cli_runner: CliRunner, fixtures_dir: Path) -> None:
        result = cli_runner.invoke(app, ["decompile", str(fixtures_dir / "example.yaml")])
        assert result.exit_code == 0
        assert "IsProduction = Condition Environment == 'production'" in result.stdout

    def test_decompile_json_from_stdin(self, cli_runner: CliRunner) -> None:
        document = {"Resources": {"Topic": {"Type": "AWS::SNS::Topic"}}}
        result = cli_runner.invoke(app, ["decompile"], input=json.dumps(document))
        assert result.exit_code == 0
        assert result.stdout == "Topic = Resource AWS::SNS::Topic\n"

    def test_decompile_to_file(
        self, cli_runner: CliRunner, fixtures_dir: Path, tmp_path: Path
    ) -> None:
        output = tmp_path / "stack.cfn"
        result = cli_runner.invoke(
            app, ["decompile", str(fixtures_dir / "example.yaml"), str(output)]
        )
        assert result.exit_code == 0
        assert output.read_text().startswith("AWSTemplateFormatVersion '2010-09-09'")

    def test_decompile_error(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(app, ["decompile"], input="- a\n- b\n")
        assert result.exit_code == 1
        assert "Decompile error:" in result.output
        assert "mapping at the top level" in result.output


# ============================================================================
# Global options
# ============================================================================


class TestGlobalOptions:
    def test_version(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"cfnscript {__version__}" in result.stdout

    def test_no_arguments_shows_help(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(app, [])
        assert "compile" in result.output
        assert "decompile" in result.output

    def test_verbose(self, cli_runner: CliRunner, source_file: Path) -> None:
        result = cli_runner.invoke(app, ["--verbose", "compile", str(source_file), "--json"])
        assert result.exit_code == 0

    def test_main_entry_point(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0


class TestResolveFormat:
    def test_json_flag_wins(self) -> None:
        fmt = resolve_format(Path("out.yaml"), True, OutputFormat.YAML, Settings())
        assert fmt == OutputFormat.JSON

    def test_format_option_beats_extension(self) -> None:
        assert resolve_format(Path("out.json"), False, OutputFormat.YAML, Settings()) == "yaml"

    def test_extension(self) -> None:
        assert resolve_format(Path("OUT.JSON"), False, None, Settings()) == OutputFormat.JSON
        assert resolve_format(Path("out.yml"), False, None, Settings()) == OutputFormat.YAML

    def test_settings_default(self) -> None:
        settings = Settings(default_format=OutputFormat.JSON)
        assert resolve_format(None, False, None, settings) == OutputFormat.JSON
        assert resolve_format(Path("out.txt"), False, None, settings) == OutputFormat.JSON
