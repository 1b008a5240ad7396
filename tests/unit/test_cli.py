"""Tests for the loadbench command line."""

import json

import pytest
import structlog
from httpx import ASGITransport

from loadbench import cli
from loadbench.target.app import create_app
from loadbench.transport import HttpTransport

SHORT_YAML = """
name: smoke
stages:
  - {duration: 300ms, target: 2, phase: baseline}
mix: {read: 60, search: 20, write: 20}
think_time: 0.05
thresholds:
  requests: ["count>0"]
  {extra}
"""


def _write_scenario(tmp_path, extra: str = "") -> str:
    path = tmp_path / "smoke.yaml"
    path.write_text(SHORT_YAML.replace("{extra}", extra))
    return str(path)


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    structlog.reset_defaults()


@pytest.fixture
def in_process_target(monkeypatch):
    app = create_app(seed_customers=20)

    def _transport(cfg, base_url):
        return HttpTransport("http://test", transport=ASGITransport(app=app))

    monkeypatch.setattr(cli, "_transport", _transport)
    monkeypatch.setattr(cli.settings, "tick_seconds", 0.05)
    return app


class TestCli:
    def test_list(self, capsys):
        assert cli.main(["list"]) == cli.EXIT_PASS
        lines = capsys.readouterr().out.strip().splitlines()
        names = [json.loads(line)["name"] for line in lines]
        assert "burst-spike" in names
        assert "cold-start" in names

    def test_missing_file_is_a_script_error(self, tmp_path):
        assert cli.main(["run", "--file", str(tmp_path / "nope.yaml")]) == cli.EXIT_SCRIPT_ERROR

    def test_invalid_scenario_is_a_script_error(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("name: bad\nstages: []\nmix: {read: 100}\n")
        assert cli.main(["run", "--file", str(path)]) == cli.EXIT_SCRIPT_ERROR

    @pytest.mark.parametrize(
        "extra",
        [
            "latency_ceiling_ms: fast",
            "start_target: zero",
            "step_threshold: [1]",
        ],
    )
    def test_malformed_values_are_script_errors(self, tmp_path, extra):
        path = tmp_path / "bad.yaml"
        path.write_text(
            "name: bad\n"
            "stages: [{duration: 1s, target: 1}]\n"
            "mix: {read: 100}\n"
            f"{extra}\n"
        )
        assert cli.main(["run", "--file", str(path), "--no-report"]) == cli.EXIT_SCRIPT_ERROR

    def test_requires_a_scenario_source(self):
        with pytest.raises(SystemExit) as excinfo:
            cli.main(["run"])
        assert excinfo.value.code == 2

    def test_run_writes_report(self, tmp_path, in_process_target):
        output = tmp_path / "report.json"
        code = cli.main(["run", "--file", _write_scenario(tmp_path), "--output", str(output)])

        assert code == cli.EXIT_PASS
        report = json.loads(output.read_text())
        assert report["scenario"] == "smoke"
        assert report["passed"] is True
        assert report["total_requests"] > 0

    def test_run_default_report_path(self, tmp_path, monkeypatch, in_process_target):
        monkeypatch.setattr(cli.settings, "results_dir", str(tmp_path / "results"))
        assert cli.main(["run", "--file", _write_scenario(tmp_path)]) == cli.EXIT_PASS
        reports = list((tmp_path / "results").glob("smoke-*.json"))
        assert len(reports) == 1

    def test_threshold_breach_exits_1(self, tmp_path, in_process_target):
        path = _write_scenario(tmp_path, extra='latency_ms: ["max<0"]')
        assert cli.main(["run", "--file", path, "--no-report"]) == cli.EXIT_FAILED

    def test_unhealthy_target_exits_1(self, tmp_path, in_process_target):
        in_process_target.state.healthy = False
        output = tmp_path / "report.json"
        code = cli.main(["run", "--file", _write_scenario(tmp_path), "--output", str(output)])
        assert code == cli.EXIT_FAILED
        assert not output.exists()

    def test_cold_start(self, tmp_path, capsys, in_process_target):
        output = tmp_path / "cold.json"
        code = cli.main(
            [
                "cold-start",
                "--timeout",
                "1",
                "--poll-interval",
                "0.01",
                "--warmup-requests",
                "2",
                "--output",
                str(output),
            ]
        )
        assert code == cli.EXIT_PASS
        data = json.loads(output.read_text())
        assert data["health_checks"] == 1
        assert data["warmup_statuses"] == [200, 200]
