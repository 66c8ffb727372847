"""
TestWatcher: re-run a test command whenever watched source files change.

Provides both a CLI and library API for watching a project tree and
printing colorized test output.
"""

__version__ = "0.1.0"
