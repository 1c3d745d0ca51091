"""
Event Dispatcher
─────────────────
Routes verified webhook events to their handler and runs the review
pipeline for newly opened pull requests:

    acquire installation client → list changed files
        → generate review → publish review

Stages run strictly in order, each awaited before the next. A failure at
any stage stops the pipeline, is logged once with the event's identity,
and goes no further: the ingress path and other events are unaffected.
"""

import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Sequence

from starlette.concurrency import run_in_threadpool

from .events import WebhookEvent
from .github_client import ChangedFile, InstallationCredentialProvider
from .review_generator import ReviewGenerator
from .review_publisher import ReviewPublisher

logger = logging.getLogger(__name__)

ChangeSetFetcher = Callable[[Any, str, str, int], Sequence[ChangedFile]]
Handler = Callable[[WebhookEvent], Awaitable[None]]


async def _call(func: Callable, *args: Any) -> Any:
    """Await coroutine functions; run blocking ones in the threadpool."""
    if inspect.iscoroutinefunction(func):
        return await func(*args)
    return await run_in_threadpool(func, *args)


class EventDispatcher:
    """Holds the pipeline collaborators and the event-to-handler table."""

    def __init__(
        self,
        credentials: InstallationCredentialProvider,
        fetch_changes: ChangeSetFetcher,
        generator: ReviewGenerator,
        publisher: ReviewPublisher,
        inline_suggestion_repos: frozenset[int] = frozenset(),
    ):
        self.credentials = credentials
        self.fetch_changes = fetch_changes
        self.generator = generator
        self.publisher = publisher
        self.inline_suggestion_repos = inline_suggestion_repos
        self.handlers: dict[str, Handler] = {
            "pull_request.opened": self.handle_pull_request_opened,
        }

    def handles(self, event: WebhookEvent) -> bool:
        return event.key in self.handlers

    async def dispatch(self, event: WebhookEvent) -> None:
        """Invoke the handler registered for ``event``, if any."""
        handler = self.handlers.get(event.key)
        if handler is None:
            logger.debug("No handler for %s (delivery %s).", event.key, event.delivery_id)
            return
        await handler(event)

    def inline_suggestions_enabled(self, event: WebhookEvent) -> bool:
        """Inline suggestions are on everywhere unless an allowlist is set."""
        if not self.inline_suggestion_repos:
            return True
        return event.repository.id in self.inline_suggestion_repos

    async def handle_pull_request_opened(self, event: WebhookEvent) -> None:
        """Review a newly opened pull request. Never raises."""
        repository = event.repository
        pr_number = event.pull_request.number
        context = {
            "delivery_id": event.delivery_id,
            "installation_id": event.installation_id,
            "repository": repository.full_name,
            "pull_request_number": pr_number,
        }
        logger.info(
            "Received pull request event for %s#%d.",
            repository.full_name, pr_number,
            extra={"context": context},
        )

        stage: Optional[str] = None
        try:
            stage = "acquire_credentials"
            client = await _call(self.credentials.acquire, event.installation_id)

            stage = "list_changed_files"
            files = await _call(
                self.fetch_changes,
                client, repository.owner, repository.name, pr_number,
            )

            stage = "generate_review"
            review = await _call(
                self.generator.generate,
                client, event.raw_payload, files,
                self.inline_suggestions_enabled(event),
            )

            stage = "publish_review"
            await _call(self.publisher.publish, client, event.raw_payload, review)
        except Exception as exc:
            logger.error(
                "Error handling pull request opened event for %s#%d at %s: %s",
                repository.full_name, pr_number, stage, exc,
                exc_info=True,
                extra={"context": {**context, "stage": stage, "error": repr(exc)}},
            )
            return

        logger.info(
            "Successfully processed and submitted review for %s#%d.",
            repository.full_name, pr_number,
            extra={"context": context},
        )
