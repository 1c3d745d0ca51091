"""
Review Publisher
─────────────────
Posts a generated Review to its pull request.
"""

import logging
from typing import Any, Protocol

from github import Github, GithubException

from .review_generator import Review

logger = logging.getLogger(__name__)


class ReviewPublisher(Protocol):
    def publish(self, client: Any, payload: dict, review: Review) -> None:
        ...


class GithubReviewPublisher:
    """Publish reviews through the installation-scoped PyGithub client."""

    def publish(self, client: Github, payload: dict, review: Review) -> None:
        """
        Post the review with its inline comments. If GitHub rejects it
        (typically an anchor outside the diff), post the body followed by
        every inline comment as a single issue comment instead.
        """
        repo = client.get_repo(payload["repository"]["full_name"])
        pr = repo.get_pull(payload["pull_request"]["number"])

        comments = [
            {"path": c.path, "position": c.position, "body": c.body}
            for c in review.comments
        ]
        try:
            pr.create_review(body=review.body, event=review.event, comments=comments)
        except GithubException as exc:
            if not comments:
                raise
            logger.warning(
                "Review with %d inline comments rejected on PR #%d (%s); "
                "posting summary comment instead.",
                len(comments), pr.number, exc.status,
            )
            pr.create_issue_comment(_fallback_body(review))
            return

        logger.info(
            "Posted review with %d inline comments on PR #%d.",
            len(comments), pr.number,
        )


def _fallback_body(review: Review) -> str:
    """Review body plus each inline comment, anchored by path and line."""
    parts = [review.body, "\n---\n\n### 📌 Inline Findings\n"]
    for c in review.comments:
        parts.append(f"**{c.path}** (line {c.line}):\n\n{c.body}\n")
    return "\n".join(parts)
