"""
Review Generator
─────────────────
Turns the changed files of a pull request into a Review.

The dispatcher only relies on the ``generate`` signature and passes the
returned Review through to the publisher untouched. The default
implementation applies regex and line-length rules loaded from YAML to
the lines each file adds.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Protocol, Sequence

import yaml

from .comment_formatter import format_inline_comment, format_summary_comment
from .diff_parser import added_lines
from .github_client import ChangedFile

logger = logging.getLogger(__name__)

DEFAULT_RULES_PATH = Path(__file__).parent / "rules" / "default_rules.yaml"


@dataclass(frozen=True)
class ReviewComment:
    """An inline comment anchored to a diff position."""
    path: str
    position: int
    line: int
    body: str


@dataclass(frozen=True)
class Review:
    """What the publisher posts: a body, a review event and inline comments."""
    body: str
    event: str = "COMMENT"
    comments: tuple[ReviewComment, ...] = ()


class ReviewGenerator(Protocol):
    def generate(
        self,
        client: Any,
        payload: dict,
        changed_files: Sequence[ChangedFile],
        inline_suggestions_enabled: bool,
    ) -> Review:
        ...


@dataclass
class Rule:
    """A single rule loaded from config."""
    id: str
    name: str
    severity: str
    description: str
    suggestion: str = ""
    pattern: Optional[re.Pattern] = None
    max_length: Optional[int] = None
    extensions: tuple[str, ...] = ()
    enabled: bool = True

    def applies_to(self, path: str) -> bool:
        return not self.extensions or path.endswith(self.extensions)

    def matches(self, content: str) -> bool:
        if self.max_length is not None:
            return len(content) > self.max_length
        return bool(self.pattern and self.pattern.search(content))


def load_rules(path: Path) -> list[Rule]:
    """Load rules from a YAML file, dropping disabled ones."""
    with open(path, "r") as f:
        config = yaml.safe_load(f) or {}

    rules = []
    for data in config.get("rules", []):
        if "pattern" not in data and "max_length" not in data:
            raise ValueError(f"Rule {data.get('id')} needs a pattern or max_length.")
        rule = Rule(
            id=data["id"],
            name=data["name"],
            severity=data["severity"],
            description=data["description"],
            suggestion=data.get("suggestion", ""),
            pattern=re.compile(data["pattern"]) if "pattern" in data else None,
            max_length=data.get("max_length"),
            extensions=tuple(data.get("extensions", ())),
            enabled=data.get("enabled", True),
        )
        if rule.enabled:
            rules.append(rule)

    logger.info("Loaded %d enabled review rules from %s.", len(rules), path)
    return rules


class RuleBasedReviewGenerator:
    """Apply YAML-configured rules to the added lines of each changed file."""

    def __init__(self, rules_path: Optional[str] = None):
        """Load the rule set once; it is read-only afterwards."""
        self.rules_path = Path(rules_path) if rules_path else DEFAULT_RULES_PATH
        self.rules = load_rules(self.rules_path)

    def generate(
        self,
        client: Any,
        payload: dict,
        changed_files: Sequence[ChangedFile],
        inline_suggestions_enabled: bool,
    ) -> Review:
        """
        Build a review for the pull request in ``payload``.
        With inline suggestions disabled every finding is listed in the
        review body and no inline comments are produced.
        """
        findings: list[dict] = []
        files_reviewed = 0

        for changed in changed_files:
            if changed.status == "removed" or not changed.patch:
                continue
            files_reviewed += 1
            findings.extend(self._check_file(changed))

        pull_request = payload.get("pull_request", {})
        pr_metadata = {
            "number": pull_request.get("number"),
            "title": pull_request.get("title"),
            "author": (pull_request.get("user") or {}).get("login"),
        }

        comments: tuple[ReviewComment, ...] = ()
        if inline_suggestions_enabled:
            comments = tuple(
                ReviewComment(
                    path=f["path"],
                    position=f["position"],
                    line=f["line"],
                    body=format_inline_comment(
                        severity=f["severity"],
                        description=f["description"],
                        suggestion=f["suggestion"],
                        rule_id=f["rule_id"],
                    ),
                )
                for f in findings
            )

        body = format_summary_comment(
            pr_metadata=pr_metadata,
            findings=findings,
            files_reviewed=files_reviewed,
            listed_findings=None if inline_suggestions_enabled else findings,
        )

        logger.info(
            "Generated review for PR #%s: %d findings across %d files.",
            pr_metadata["number"], len(findings), files_reviewed,
        )
        return Review(body=body, comments=comments)

    def _check_file(self, changed: ChangedFile) -> list[dict]:
        rules = [r for r in self.rules if r.applies_to(changed.path)]
        findings = []
        for line in added_lines(changed.patch):
            for rule in rules:
                if rule.matches(line.content):
                    findings.append({
                        "rule_id": rule.id,
                        "severity": rule.severity,
                        "description": rule.description,
                        "suggestion": rule.suggestion,
                        "path": changed.path,
                        "line": line.line_number,
                        "position": line.diff_position,
                    })
        return findings
