"""Unit tests for CLI components."""

import json
from datetime import datetime
from unittest.mock import patch

from click.testing import CliRunner

from dsat_probe.cli.main import cli
from dsat_probe.core.canonical import Ordering
from dsat_probe.core.exceptions import ConfigurationError
from dsat_probe.core.models import FailureKind, ProbeResult
from dsat_probe.core.token import derive_token


class TestCLI:
    """Test CLI commands."""

    def setup_method(self):
        """Set up test fixtures."""
        self.runner = CliRunner()
        moment = datetime(2024, 3, 5, 9, 7, 42)

        self.success = ProbeResult(
            label="Original params (unsorted)",
            variant="base",
            ordering=Ordering.INSERTION,
            scheme="growing",
            canonical_query="routeName=33&dir=0&lang=zh-tw&device=web",
            token="a" * 44,
            status_code=200,
            success=True,
            route_id="00033",
            record_count=3,
            sample={"staCode": "M172"},
            probed_at=moment,
        )
        self.failure = ProbeResult(
            label="Original params (sorted)",
            variant="base-sorted",
            ordering=Ordering.SORTED,
            scheme="growing",
            canonical_query="device=web&dir=0&lang=zh-tw&routeName=33",
            token="b" * 44,
            failure_kind=FailureKind.NETWORK_FAILURE,
            error="Request failed: refused",
            probed_at=moment,
        )

    def test_cli_version(self):
        """Test CLI version option."""
        result = self.runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_cli_help(self):
        """Test CLI help."""
        result = self.runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "DSAT Token Probe" in result.output

    @patch("dsat_probe.cli.main.ProbeExecutor")
    @patch("dsat_probe.cli.main.ExperimentMatrix.run")
    def test_run_table_format(self, mock_run, mock_executor_class):
        """Run shows a table with one row per result."""
        mock_run.return_value = [self.success, self.failure]

        result = self.runner.invoke(cli, ["run"])

        assert result.exit_code == 0
        assert "base-sorted" in result.output
        assert "SUCCESS" in result.output
        assert "1/2" in result.output
        mock_run.assert_called_once()
        settings = mock_executor_class.call_args.args[0]
        assert settings.timeout == 5.0

    @patch("dsat_probe.cli.main.ProbeExecutor")
    @patch("dsat_probe.cli.main.ExperimentMatrix.run")
    def test_run_json_format(self, mock_run, mock_executor_class):
        """JSON output lists every result."""
        mock_run.return_value = [self.success, self.failure]

        result = self.runner.invoke(cli, ["run", "--format", "json"])

        assert result.exit_code == 0
        start = result.output.index("[")
        data = json.loads(result.output[start:])
        assert [item["variant"] for item in data] == ["base", "base-sorted"]
        assert data[1]["failure_kind"] == "network_failure"

    @patch("dsat_probe.cli.main.ProbeExecutor")
    @patch("dsat_probe.cli.main.ExperimentMatrix.run")
    def test_run_options_reach_settings(self, mock_run, mock_executor_class):
        """Endpoint and timeout overrides reach the executor."""
        mock_run.return_value = []

        result = self.runner.invoke(
            cli, ["run", "--endpoint", "https://example.invalid/x", "--timeout", "2"]
        )

        assert result.exit_code == 0
        settings = mock_executor_class.call_args.args[0]
        assert settings.endpoint == "https://example.invalid/x"
        assert settings.timeout == 2.0

    @patch("dsat_probe.cli.main.ProbeExecutor")
    @patch("dsat_probe.cli.main.ExperimentMatrix.run", autospec=True)
    def test_run_only(self, mock_run, mock_executor_class):
        """--only restricts the matrix."""
        mock_run.return_value = [self.success]

        result = self.runner.invoke(cli, ["run", "--only", "base"])

        assert result.exit_code == 0
        matrix = mock_run.call_args.args[0]
        assert [v.name for v in matrix.variants] == ["base"]

    def test_run_only_unknown(self):
        """Unknown variant names exit with an error."""
        result = self.runner.invoke(cli, ["run", "--only", "nope"])
        assert result.exit_code == 1
        assert "Unknown variants" in result.output

    @patch("dsat_probe.cli.main.ProbeExecutor")
    @patch("dsat_probe.cli.main.ExperimentMatrix.run")
    def test_run_writes_output_file(self, mock_run, mock_executor_class, tmp_path):
        """--output writes the JSON log."""
        mock_run.return_value = [self.success]
        output = tmp_path / "results.json"

        result = self.runner.invoke(cli, ["run", "--output", str(output)])

        assert result.exit_code == 0
        data = json.loads(output.read_text(encoding="utf-8"))
        assert data[0]["token"] == "a" * 44

    def test_run_bad_config(self, tmp_path):
        """Invalid settings exit with an error."""
        path = tmp_path / "settings.json"
        path.write_text('{"timeout": -5}', encoding="utf-8")

        result = self.runner.invoke(cli, ["run", "--config", str(path)])

        assert result.exit_code == 1
        assert "Configuration error" in result.output

    def test_token_command(self):
        """Offline token derivation prints hash input and token."""
        result = self.runner.invoke(
            cli,
            ["token", "routeName=33", "dir=0", "lang=zh-tw", "device=web", "--sorted", "--at", "2024-03-05 09:07"],
        )

        assert result.exit_code == 0
        assert "Hash input: device=web&dir=0&lang=zh-tw&routeName=33" in result.output
        expected = derive_token(
            "device=web&dir=0&lang=zh-tw&routeName=33", datetime(2024, 3, 5, 9, 7)
        )
        assert f"Token:      {expected}" in result.output

    def test_token_command_empty(self):
        """No parameters hashes the empty string."""
        result = self.runner.invoke(cli, ["token", "--at", "2024-03-05 09:07"])
        assert result.exit_code == 0
        assert "Digest:     d41d8cd98f00b204e9800998ecf8427e" in result.output

    def test_token_command_scheme(self):
        """--scheme selects another splice order."""
        result = self.runner.invoke(
            cli, ["token", "--scheme", "descending", "--at", "2024-03-05 09:07"]
        )
        assert result.exit_code == 0
        assert "Token:      d41d20248cd98f000305b204e98009980907ecf8427e" in result.output

    def test_token_command_invalid_datetime(self):
        """Bad --at values are rejected."""
        result = self.runner.invoke(cli, ["token", "a=1", "--at", "yesterday"])
        assert result.exit_code == 1
        assert "Invalid datetime format" in result.output

    def test_token_command_duplicate_key(self):
        """Duplicate keys are rejected."""
        result = self.runner.invoke(cli, ["token", "a=1", "a=2"])
        assert result.exit_code == 1
        assert "Duplicate parameter key" in result.output

    def test_token_command_unknown_scheme(self):
        """Unknown schemes are rejected."""
        result = self.runner.invoke(cli, ["token", "a=1", "--scheme", "nope"])
        assert result.exit_code == 1
        assert "Unknown token scheme" in result.output

    def test_variants_command(self):
        """Variants are listed with their hash inputs."""
        result = self.runner.invoke(cli, ["variants", "--route", "3X"])
        assert result.exit_code == 0
        assert "base-descending" in result.output
        assert "device-android" in result.output

    def test_schemes_command(self):
        """Built-in schemes are listed."""
        result = self.runner.invoke(cli, ["schemes"])
        assert result.exit_code == 0
        assert "growing (default)" in result.output
        assert "descending" in result.output

    def test_config_show(self):
        """Effective settings are shown."""
        result = self.runner.invoke(cli, ["config", "show"])
        assert result.exit_code == 0
        assert "Current Configuration" in result.output
        assert "getRouteData.html" in result.output
        assert "Timeout: 5.0 seconds" in result.output

    @patch("dsat_probe.cli.main.load_settings")
    def test_config_show_error(self, mock_load):
        """Settings errors exit with code 1."""
        mock_load.side_effect = ConfigurationError("broken")
        result = self.runner.invoke(cli, ["config", "show"])
        assert result.exit_code == 1
        assert "broken" in result.output

