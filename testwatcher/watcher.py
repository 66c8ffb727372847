"""
Watcher module for TestWatcher.

A Watcher is constructed with a list of watch rules and a callback. It
schedules a watchdog observer on each rule's directory and queues a
ChangeEvent for every file event whose project-relative path matches a rule.

The callback always runs on the thread that drives the watcher loop, never
on the observer thread. When the loop wakes up it drains every queued event
and calls the callback once with the whole batch, so changes made while a
test run is in progress are coalesced into a single follow-up run.
"""

import logging
import os
import re
import threading
from dataclasses import dataclass
from queue import Empty, Queue
from typing import Callable, List, Optional, Pattern

from watchdog.events import (EVENT_TYPE_CREATED, EVENT_TYPE_DELETED,
                             EVENT_TYPE_MODIFIED, EVENT_TYPE_MOVED,
                             FileSystemEventHandler)
from watchdog.observers import Observer

WATCHED_EVENT_TYPES = (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MOVED,
)


class WatcherError(Exception):
    """Exception raised when the watcher cannot be started."""

    pass


@dataclass(frozen=True)
class WatchRule:
    """A regular expression over project-relative paths and the directory it watches."""

    pattern: Pattern
    directory: str

    def matches(self, rel_path: str) -> bool:
        return self.pattern.fullmatch(rel_path) is not None


@dataclass(frozen=True)
class ChangeEvent:
    """A filesystem change that matched a watch rule."""

    event_type: str
    path: str
    rule: WatchRule


def build_watch_rule(pattern: str, directory: str) -> WatchRule:
    """
    Compile a watch rule.

    Raises:
        ValueError: If the pattern is not a valid regular expression.
    """
    try:
        compiled = re.compile(pattern)
    except re.error as e:
        raise ValueError(f"Invalid pattern for watch rule '{pattern}': {e}")
    return WatchRule(pattern=compiled, directory=directory)


def drain(queue: Queue) -> list:
    """Remove and return everything currently in the queue without blocking."""
    items = []
    while True:
        try:
            items.append(queue.get_nowait())
        except Empty:
            return items


class _RuleEventHandler(FileSystemEventHandler):
    """Forward watchdog file events to the owning Watcher."""

    def __init__(self, watcher):
        super().__init__()
        self.watcher = watcher

    def on_any_event(self, event):
        if event.is_directory or event.event_type not in WATCHED_EVENT_TYPES:
            return
        if event.event_type == EVENT_TYPE_MOVED:
            # A watched file renamed away counts as a change too.
            if self.watcher.dispatch(event.event_type, event.dest_path) is None:
                self.watcher.dispatch(event.event_type, event.src_path)
            return
        self.watcher.dispatch(event.event_type, event.src_path)


class Watcher:
    """
    Watch a project tree and invoke a callback on matching file changes.

    Attributes:
        rules: Watch rules, first match wins.
        callback: Called with a list of ChangeEvent objects.
        root: Absolute project root; rule patterns and directories are relative to it.
        poll_interval: Seconds the loop waits on the queue before checking for stop.
        events: Queue of pending ChangeEvent objects.
    """

    def __init__(
        self,
        rules: List[WatchRule],
        callback: Callable[[List[ChangeEvent]], object],
        root: str = ".",
        poll_interval: float = 0.5,
        logger: Optional[logging.Logger] = None,
    ):
        self.rules = list(rules)
        self.callback = callback
        self.root = os.path.abspath(root)
        self.poll_interval = poll_interval
        self.logger = logger or logging.getLogger(__name__)
        self.events = Queue()
        self.stop_event = threading.Event()
        self._observer = None

    def relative_path(self, path: str) -> str:
        rel = os.path.relpath(os.path.abspath(path), self.root)
        return rel.replace(os.sep, "/")

    def match(self, path: str) -> Optional[WatchRule]:
        """Return the first rule matching the path, or None."""
        rel = self.relative_path(path)
        for rule in self.rules:
            if rule.matches(rel):
                return rule
        return None

    def dispatch(self, event_type: str, path: str) -> Optional[ChangeEvent]:
        """Queue a ChangeEvent if the path matches a rule. Called from the observer thread."""
        rule = self.match(path)
        if rule is None:
            return None
        event = ChangeEvent(event_type=event_type, path=self.relative_path(path), rule=rule)
        self.logger.debug(f"Queued {event_type} event for {event.path}")
        self.events.put(event)
        return event

    def watched_directories(self) -> List[str]:
        dirs = []
        for rule in self.rules:
            path = os.path.join(self.root, rule.directory)
            if path not in dirs:
                dirs.append(path)
        return dirs

    @property
    def running(self) -> bool:
        return self._observer is not None and self._observer.is_alive()

    def start(self):
        """
        Schedule the observer on every rule directory and start it.

        Raises:
            WatcherError: If a directory is missing or the observer fails to start.
        """
        if self.running:
            return
        if not self.rules:
            raise WatcherError("No watch rules configured")

        handler = _RuleEventHandler(self)
        observer = Observer()
        for path in self.watched_directories():
            if not os.path.isdir(path):
                raise WatcherError(f"Watched directory does not exist: {path}")
            observer.schedule(handler, path, recursive=True)
        try:
            observer.start()
        except OSError as e:
            raise WatcherError(f"Failed to start filesystem observer: {e}")

        self._observer = observer
        self.stop_event.clear()
        self.logger.info(f"Watching {', '.join(self.watched_directories())}")

    def stop(self):
        """Stop the loop and the observer."""
        self.stop_event.set()
        if self._observer is not None:
            self._observer.stop()
            if self._observer.is_alive():
                self._observer.join()
            self._observer = None
            self.logger.info("Watcher stopped.")

    def run_pending(self, timeout: Optional[float] = None) -> List[ChangeEvent]:
        """
        Wait up to ``timeout`` seconds for an event, then drain the queue and
        invoke the callback once with the whole batch.

        Returns:
            The batch passed to the callback, or an empty list if nothing arrived.
        """
        try:
            first = self.events.get(timeout=timeout)
        except Empty:
            return []
        batch = [first] + drain(self.events)
        self.logger.info(f"Detected {len(batch)} change(s); running callback.")
        self.callback(batch)
        return batch

    def run(self):
        """Start the watcher if needed and process batches until stopped."""
        self.start()
        while not self.stop_event.is_set():
            try:
                self.run_pending(timeout=self.poll_interval)
            except Exception as e:
                self.logger.error(f"Error in watcher callback: {e}", exc_info=True)
