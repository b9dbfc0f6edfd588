import importlib.metadata
import logging

from pytest_mock import MockerFixture
from typer.testing import CliRunner

from conftest import FakeSession
from snap_steps.browser.exceptions import ContractViolation, NotFoundError, StepSkipped
from snap_steps.cli import app, setup_logging

runner = CliRunner()


def test_version_flag(mocker: MockerFixture):
    mocker.patch("importlib.metadata.version", return_value="1.2.3")

    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert "snap-steps version: 1.2.3" in result.stdout


def test_version_flag_when_not_installed(mocker: MockerFixture):
    mocker.patch(
        "importlib.metadata.version",
        side_effect=importlib.metadata.PackageNotFoundError("snap-steps"),
    )

    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert "unknown" in result.stdout


def test_command_errors_are_reported_and_exit_nonzero(mocker: MockerFixture, tmp_path):
    result = runner.invoke(
        app, ["--config", str(tmp_path / "missing.yaml"), "follow-link", "http://x", "Home"]
    )

    assert result.exit_code == 1
    assert "Settings file not found" in result.output


def test_wait_visible_runs_the_step(mocker: MockerFixture):
    waiter = mocker.patch("snap_steps.cli._wait_visible", return_value="(//html//main)[1]")

    result = runner.invoke(app, ["wait-visible", "http://moodle.test", "main"])

    assert result.exit_code == 0, result.stdout
    assert "Visible:" in result.stdout
    args = waiter.call_args.args
    assert args[1:] == ("http://moodle.test", "main", "css_element")


def test_failed_step_names_the_page(mocker: MockerFixture):
    mocker.patch(
        "snap_steps.cli._follow_link",
        side_effect=NotFoundError('"Home" link could not be found', FakeSession("http://moodle.test/my/")),
    )

    result = runner.invoke(app, ["follow-link", "http://moodle.test/my/", "Home"])

    assert result.exit_code == 1
    assert "Step failed:" in result.output
    assert "Page: http://moodle.test/my/" in result.output


def test_skipped_step_exits_cleanly(mocker: MockerFixture):
    mocker.patch("snap_steps.cli._follow_link", side_effect=StepSkipped("Joule is not installed"))

    result = runner.invoke(app, ["follow-link", "http://moodle.test", "Home"])

    assert result.exit_code == 0
    assert "Skipped:" in result.output


def test_contract_violation_exits_with_internal_error(mocker: MockerFixture):
    mocker.patch(
        "snap_steps.cli._follow_link",
        side_effect=ContractViolation("Failed to extract xpath from //a[1]"),
    )

    result = runner.invoke(app, ["follow-link", "http://moodle.test", "Home"])

    assert result.exit_code == 2
    assert "Internal error:" in result.output


def test_verbose_enables_debug_for_the_package_only():
    setup_logging(verbose=True)

    assert logging.getLogger("snap_steps.browser.wait_handler").getEffectiveLevel() == logging.DEBUG
    assert logging.getLogger().level == logging.INFO

    setup_logging(verbose=False)

    assert logging.getLogger("snap_steps").level == logging.INFO
