import io
import sys

import pytest

from testwatcher.classifier import GREEN, RED, RESET
from testwatcher.runner import SEPARATOR, CommandRunner, RunResult
from testwatcher.watcher import ChangeEvent, build_watch_rule


def python_command(code):
    return f'"{sys.executable}" -c "{code}"'


@pytest.fixture
def out():
    return io.StringIO()


def test_report_colors_each_line_then_separator(out):
    runner = CommandRunner(out=out)
    runner.report([
        "Testing myproject.core-test",
        "FAIL in (test-foo)",
        "Ran 12 tests containing 34 assertions.",
        "0 failures, 0 errors.",
    ])
    assert out.getvalue().splitlines() == [
        f"{GREEN}Testing myproject.core-test{RESET}",
        f"{RED}FAIL in (test-foo){RESET}",
        f"{GREEN}Ran 12 tests containing 34 assertions.{RESET}",
        f"{GREEN}0 failures, 0 errors.{RESET}",
        SEPARATOR,
    ]


def test_report_empty_output_prints_only_separator(out):
    CommandRunner(out=out).report([])
    assert out.getvalue() == SEPARATOR + "\n"


def test_run_captures_stdout_and_stderr_in_order(tmp_path, out):
    script = tmp_path / "fake_lein.py"
    script.write_text(
        "import sys\n"
        "print('Testing myproject.core-test', flush=True)\n"
        "print('FAIL in (test-foo)', file=sys.stderr, flush=True)\n"
        "print('1 failures, 0 errors.', flush=True)\n"
        "sys.exit(1)\n"
    )
    runner = CommandRunner(command=f'"{sys.executable}" "{script}"', cwd=str(tmp_path), out=out)
    result = runner.run()

    assert isinstance(result, RunResult)
    assert result.returncode == 1
    assert result.lines == [
        "Testing myproject.core-test",
        "FAIL in (test-foo)",
        "1 failures, 0 errors.",
    ]
    printed = out.getvalue().splitlines()
    assert len(printed) == 4
    assert printed[0].startswith(GREEN)
    assert printed[1].startswith(RED)
    assert printed[2].startswith(RED)
    assert printed[-1] == SEPARATOR


def test_missing_command_is_reported_as_negative_text(tmp_path, out):
    runner = CommandRunner(command="definitely-not-a-real-test-command-xyz", cwd=str(tmp_path), out=out)
    result = runner.run()

    assert result.returncode != 0
    assert result.lines
    printed = out.getvalue().splitlines()
    assert all(line.startswith(RED) for line in printed[:-1])
    assert printed[-1] == SEPARATOR


def test_call_runs_once_per_batch(tmp_path, out):
    runner = CommandRunner(command=python_command("print(0)"), cwd=str(tmp_path), out=out)
    rule = build_watch_rule(r"src/.*\.clj", "src")
    events = [
        ChangeEvent("modified", "src/a.clj", rule),
        ChangeEvent("created", "src/b.clj", rule),
    ]
    result = runner(events)

    assert result.lines == ["0"]
    assert out.getvalue().count(SEPARATOR) == 1


def test_run_splits_on_newlines_only(tmp_path, out):
    script = tmp_path / "fake_lein.py"
    script.write_text(
        "import sys\n"
        "sys.stdout.write('expected: a\\x0cb\\nTesting x\\n')\n"
    )
    runner = CommandRunner(command=f'"{sys.executable}" "{script}"', cwd=str(tmp_path), out=out)
    result = runner.run()

    assert result.lines == ["expected: a\x0cb", "Testing x"]
    printed = out.getvalue().split("\n")
    assert printed[0] == f"{RED}expected: a\x0cb{RESET}"
    assert printed[1] == f"{GREEN}Testing x{RESET}"
    assert printed[2] == SEPARATOR
