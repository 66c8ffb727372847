"""
Classifier module for TestWatcher.

Each line of captured test output is matched against an ordered list of
line rules. The first rule whose pattern is found in the line decides the
line's category; lines matching no rule (blank lines included) fall back to
the negative category so they get flagged for attention.

Categories map to ANSI color codes and every rendered line is wrapped as
``<color><text><reset>``.
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Pattern

POSITIVE = "positive"
NEGATIVE = "negative"

GREEN = "\033[0;32m"
RED = "\033[0;31m"
RESET = "\033[0m"
# Bright white, kept for visual parity with the old lein autotest script.
LEGACY_RESET = "\033[1;37m"

COLORS = {
    POSITIVE: GREEN,
    NEGATIVE: RED,
}

DEFAULT_POSITIVE_PATTERNS = [
    r"Testing.*",
    r"0 failures.*",
    r"Ran \d+ tests containing \d+ assertions.*",
]


@dataclass(frozen=True)
class LineRule:
    """A compiled pattern and the category it assigns."""

    name: str
    pattern: Pattern
    category: str

    def matches(self, line: str) -> bool:
        return self.pattern.search(line) is not None


def build_rule(pattern: str, category: str = POSITIVE, name: Optional[str] = None) -> LineRule:
    """
    Compile a pattern into a LineRule.

    Raises:
        ValueError: If the pattern is not a valid regular expression.
    """
    name = name or pattern
    try:
        compiled = re.compile(pattern)
    except re.error as e:
        raise ValueError(f"Invalid pattern for line rule '{name}': {e}")
    return LineRule(name=name, pattern=compiled, category=category)


def default_rules(extra_patterns: Iterable[str] = ()) -> List[LineRule]:
    """Return the default positive rules followed by any extra positive patterns."""
    return [build_rule(p) for p in list(DEFAULT_POSITIVE_PATTERNS) + list(extra_patterns)]


class LineClassifier:
    """
    Classify and colorize output lines.

    Attributes:
        rules: Ordered line rules, evaluated top to bottom.
        default: Category used when no rule matches.
        colors: Mapping of category to color escape code.
        reset: Escape code appended to every rendered line.
    """

    def __init__(self, rules=None, default=NEGATIVE, colors=None, reset=RESET):
        self.rules = list(rules) if rules is not None else default_rules()
        self.default = default
        self.colors = dict(colors or COLORS)
        self.reset = reset

    def classify(self, line: str) -> str:
        for rule in self.rules:
            if rule.matches(line):
                return rule.category
        return self.default

    def colorize(self, line: str) -> str:
        color = self.colors.get(self.classify(line), self.colors[self.default])
        return f"{color}{line}{self.reset}"

    def render(self, lines: Iterable[str]) -> List[str]:
        return [self.colorize(line) for line in lines]


def classifier_from_config(cfg: dict) -> LineClassifier:
    """
    Build a LineClassifier from the ``classifier`` section of the configuration.

    Recognized keys:
      - positive_patterns: extra regular expressions appended to the defaults.
      - legacy_reset: use the bright-white reset instead of a true reset.
    """
    section = cfg.get("classifier", {})
    rules = default_rules(section.get("positive_patterns", []))
    reset = LEGACY_RESET if section.get("legacy_reset", False) else RESET
    return LineClassifier(rules=rules, reset=reset)
