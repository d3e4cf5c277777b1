"""Test the initd command line: exit codes and signal-triggered shutdown."""
import os
import signal
import subprocess
import sys
import time

from typer.testing import CliRunner

from tormenta_init.launchers.initd import EXIT_CONFIG, app
from tests.helpers.config_generator import ServiceScenario


# Get project root for PYTHONPATH
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

runner = CliRunner()


def start_initd(*args):
    env = os.environ.copy()
    env['PYTHONPATH'] = os.path.join(PROJECT_ROOT, "src")
    return subprocess.Popen(
        [sys.executable, "-m", "tormenta_init", "--no-color", *args],
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        env=env
    )


def test_missing_config_argument():
    result = runner.invoke(app, [])
    assert result.exit_code == 2


def test_missing_config_file(tmp_path):
    result = runner.invoke(app, ["--no-color", str(tmp_path / "missing.yaml")])
    assert result.exit_code == EXIT_CONFIG
    assert "Cannot find configuration" in result.output


def test_invalid_service_definition(config_generator):
    config_path = config_generator.generate_config([ServiceScenario("broken", start=[])])

    result = runner.invoke(app, ["--no-color", str(config_path)])

    assert result.exit_code == EXIT_CONFIG
    assert "Not defined start steps for service broken" in result.output


def test_config_error_exit_code_in_subprocess(tmp_path):
    process = start_initd(str(tmp_path / "missing.yaml"))
    stdout, stderr = process.communicate(timeout=10)

    assert process.returncode == 2
    assert "Cannot find configuration" in stderr


def test_sigterm_reports_every_service_and_exits(config_generator, tmp_path):
    marker = tmp_path / "blocking-ran"
    config_path = config_generator.generate_config(
        [
            ServiceScenario("network", start=[f"touch {marker}"], position=1, block=True),
            ServiceScenario("failing", start=["exit 4"], position=2, block=True),
            # Redirected so the orphan does not hold the output pipes open
            ServiceScenario("daemon", start=["sleep 10 > /dev/null 2>&1"], position=3),
        ],
        timeout=1
    )

    process = start_initd(str(config_path))

    # Let it run briefly
    time.sleep(3)

    process.send_signal(signal.SIGTERM)
    stdout, stderr = process.communicate(timeout=10)

    combined = stdout + stderr
    assert process.returncode == 0, combined
    assert "Tormenta Cloud OS -> Init" in stdout
    assert "network, [started]" in combined
    assert "failing, [failed], reason: exit status 4" in combined
    assert "daemon, [started]" in combined
    assert "Received signal SIGTERM" in combined
    assert combined.count("Stopping service: [") == 3
    assert marker.exists()


def test_sigint_also_shuts_down(config_generator):
    config_path = config_generator.generate_config([ServiceScenario("only")])

    process = start_initd("--no-banner", str(config_path))
    time.sleep(2)
    process.send_signal(signal.SIGINT)
    stdout, stderr = process.communicate(timeout=10)

    combined = stdout + stderr
    assert process.returncode == 0, combined
    assert "Tormenta Cloud OS" not in stdout
    assert combined.count("Stopping service: [") == 1
