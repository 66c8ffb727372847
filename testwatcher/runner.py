"""
Runner module for TestWatcher.

Runs the configured test command through the shell, captures its combined
stdout/stderr and prints every line through the classifier, followed by a
separator. The exit status is recorded but never used for coloring.
"""

import logging
import subprocess
import sys
from dataclasses import dataclass, field
from typing import List, Optional

import click

from testwatcher.classifier import LineClassifier

DEFAULT_COMMAND = "lein test"
SEPARATOR = "======================="


@dataclass
class RunResult:
    """Outcome of one test command invocation."""

    command: str
    returncode: int
    lines: List[str] = field(default_factory=list)


class CommandRunner:
    """
    Run a test command and print its classified output.

    Attributes:
        command: Shell command line to run.
        cwd: Working directory for the command.
        classifier: LineClassifier used to color each line.
        separator: Line printed after every report.
        out: Stream the report is written to; stdout when None.
    """

    def __init__(
        self,
        command: str = DEFAULT_COMMAND,
        cwd: Optional[str] = None,
        classifier: Optional[LineClassifier] = None,
        separator: str = SEPARATOR,
        out=None,
        logger: Optional[logging.Logger] = None,
    ):
        self.command = command
        self.cwd = cwd
        self.classifier = classifier or LineClassifier()
        self.separator = separator
        self.out = out
        self.logger = logger or logging.getLogger(__name__)

    def execute(self) -> RunResult:
        """
        Run the command to completion and capture its output.

        stderr is merged into stdout, so a missing command shows up as the
        shell's own error text.
        """
        self.logger.info(f"Running test command: {self.command}")
        proc = subprocess.run(
            self.command,
            shell=True,
            cwd=self.cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            universal_newlines=True,
            errors="replace",
        )
        # Newlines only; splitlines() also breaks on form feeds.
        lines = proc.stdout.split("\n") if proc.stdout else []
        if lines and lines[-1] == "":
            lines.pop()
        self.logger.info(f"Test command exited with status {proc.returncode} ({len(lines)} lines)")
        return RunResult(command=self.command, returncode=proc.returncode, lines=lines)

    def report(self, lines: List[str]) -> None:
        """Print each line colorized, in order, then the separator."""
        out = self.out or sys.stdout
        for line in lines:
            click.echo(self.classifier.colorize(line), file=out, color=True)
        click.echo(self.separator, file=out, color=True)

    def run(self) -> RunResult:
        result = self.execute()
        self.report(result.lines)
        return result

    def __call__(self, events=None) -> RunResult:
        """Watcher callback: log the batch of change events and run the tests."""
        for event in events or []:
            self.logger.info(f"{event.event_type}: {event.path}")
        return self.run()


def runner_from_config(cfg: dict, classifier: LineClassifier, cwd: Optional[str] = None, logger=None) -> CommandRunner:
    """Build a CommandRunner from the ``runner`` section of the configuration."""
    section = cfg.get("runner", {})
    return CommandRunner(
        command=section.get("command", DEFAULT_COMMAND),
        cwd=cwd,
        classifier=classifier,
        separator=section.get("separator", SEPARATOR),
        logger=logger,
    )
