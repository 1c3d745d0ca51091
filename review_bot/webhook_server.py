"""
Webhook Server (FastAPI)
─────────────────────────
Single-route ASGI app that receives GitHub webhook deliveries, verifies
their HMAC signature and hands subscribed events to the EventDispatcher.

Each accepted delivery is processed as its own background task after the
response is sent, so a slow or failing review never holds up the next
delivery. Every other path or method gets a plain 404.
"""

import hashlib
import hmac
import json
import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import BackgroundTasks, FastAPI, Header, HTTPException, Request, Response
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import ConfigurationError, Settings, load_settings
from .dispatcher import EventDispatcher
from .events import InvalidEventError, parse_event
from .github_client import InstallationCredentialProvider, list_changed_files
from .logging_config import setup_logging
from .review_generator import RuleBasedReviewGenerator
from .review_publisher import GithubReviewPublisher

logger = logging.getLogger(__name__)


class WebhookResponse(BaseModel):
    """Acknowledgement returned for every verified delivery."""
    message: str
    delivery_id: str


# ── Webhook Signature Verification ───────────────────────────────────────

def verify_signature(secret: str, payload_body: bytes, signature: str) -> bool:
    """Verify GitHub webhook HMAC-SHA256 signature."""
    expected = "sha256=" + hmac.new(
        secret.encode("utf-8"),
        payload_body,
        hashlib.sha256,
    ).hexdigest()
    # Header values arrive latin-1 decoded; compare bytes so any header is comparable.
    return hmac.compare_digest(
        expected.encode("ascii"), signature.encode("latin-1", "replace")
    )


# ── App Factory ──────────────────────────────────────────────────────────

def create_app(settings: Settings, dispatcher: EventDispatcher) -> FastAPI:
    """Build the ingress app around an already configured dispatcher."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Server is running and listening on port %d (webhook path %s).",
            settings.port, settings.webhook_path,
        )
        yield
        logger.info("Webhook server shutting down.")

    app = FastAPI(
        title="Pull Request Review Bot",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        redirect_slashes=False,
    )

    @app.exception_handler(StarletteHTTPException)
    async def not_found_handler(request: Request, exc: StarletteHTTPException):
        # Unknown paths and wrong methods are both reported as 404.
        if exc.status_code in (404, 405):
            return PlainTextResponse("Not Found", status_code=404)
        return await http_exception_handler(request, exc)

    @app.post(settings.webhook_path, response_model=WebhookResponse)
    async def receive_webhook(
        request: Request,
        response: Response,
        background_tasks: BackgroundTasks,
        x_hub_signature_256: Optional[str] = Header(None),
        x_github_event: Optional[str] = Header(None),
        x_github_delivery: Optional[str] = Header(None),
    ):
        """Verify, parse and route one webhook delivery."""
        if not (x_hub_signature_256 and x_github_event and x_github_delivery):
            raise HTTPException(status_code=400, detail="Missing webhook headers.")

        body = await request.body()
        if not verify_signature(settings.webhook_secret, body, x_hub_signature_256):
            logger.warning("Rejected delivery %s: invalid signature.", x_github_delivery)
            raise HTTPException(status_code=401, detail="Invalid webhook signature.")

        try:
            event = parse_event(x_github_event, x_github_delivery, json.loads(body))
        except (ValueError, InvalidEventError) as exc:
            logger.warning("Rejected delivery %s: %s", x_github_delivery, exc)
            raise HTTPException(status_code=400, detail=str(exc))

        if x_github_event == "ping":
            logger.info("Received ping event.")
            return WebhookResponse(message="pong", delivery_id=x_github_delivery)

        if not dispatcher.handles(event):
            logger.debug("Ignoring event %s.", event.key)
            return WebhookResponse(
                message=f"Ignored event: {event.key}", delivery_id=x_github_delivery
            )

        background_tasks.add_task(dispatcher.dispatch, event)
        response.status_code = 202
        return WebhookResponse(
            message=f"Accepted event: {event.key}", delivery_id=x_github_delivery
        )

    return app


def build_dispatcher(settings: Settings) -> EventDispatcher:
    """Wire the default GitHub-backed pipeline."""
    return EventDispatcher(
        credentials=InstallationCredentialProvider(settings),
        fetch_changes=list_changed_files,
        generator=RuleBasedReviewGenerator(settings.rules_path),
        publisher=GithubReviewPublisher(),
        inline_suggestion_repos=settings.inline_suggestion_repos,
    )


# ── Entry Point ───────────────────────────────────────────────────────────

def main():
    """Validate configuration and serve the webhook app with uvicorn."""
    import uvicorn

    load_dotenv()

    try:
        settings = load_settings()
    except ConfigurationError as exc:
        setup_logging()
        for problem in exc.problems:
            logger.error("Configuration error: %s", problem)
        sys.exit(1)

    setup_logging(settings.log_level, settings.log_dir)
    app = create_app(settings, build_dispatcher(settings))
    uvicorn.run(app, host=settings.host, port=settings.port, log_level="info")


if __name__ == "__main__":
    main()
