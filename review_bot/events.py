"""
Webhook Events
───────────────
Immutable records built from verified webhook deliveries.
"""

from dataclasses import dataclass
from typing import Any, Optional


class InvalidEventError(ValueError):
    """The delivery body cannot be turned into a usable event."""


@dataclass(frozen=True)
class RepositoryRef:
    id: int
    owner: str
    name: str
    full_name: str


@dataclass(frozen=True)
class PullRequestRef:
    number: int
    title: str = ""
    head_sha: str = ""


@dataclass(frozen=True)
class WebhookEvent:
    """A single webhook delivery, consumed once by the dispatcher."""
    event_type: str
    action: Optional[str]
    delivery_id: str
    installation_id: Optional[int]
    repository: Optional[RepositoryRef]
    pull_request: Optional[PullRequestRef]
    raw_payload: dict[str, Any]

    @property
    def key(self) -> str:
        """Dispatch tag, e.g. ``pull_request.opened``."""
        if self.action:
            return f"{self.event_type}.{self.action}"
        return self.event_type


def parse_event(event_type: str, delivery_id: str, payload: Any) -> WebhookEvent:
    """
    Build a WebhookEvent from a decoded JSON body.

    Pull request events must carry installation, repository and pull
    request identity; other event types only need to be JSON objects.
    """
    if not isinstance(payload, dict):
        raise InvalidEventError("Webhook body must be a JSON object.")

    action = payload.get("action")
    installation_id = (payload.get("installation") or {}).get("id")
    repository = _parse_repository(payload.get("repository"))
    pull_request = _parse_pull_request(payload.get("pull_request"))

    if event_type == "pull_request":
        missing = [
            name for name, value in (
                ("installation.id", installation_id),
                ("repository", repository),
                ("pull_request.number", pull_request),
            )
            if value is None
        ]
        if missing:
            raise InvalidEventError(
                "pull_request event is missing " + ", ".join(missing)
            )

    return WebhookEvent(
        event_type=event_type,
        action=action,
        delivery_id=delivery_id,
        installation_id=installation_id,
        repository=repository,
        pull_request=pull_request,
        raw_payload=payload,
    )


def _parse_repository(data: Any) -> Optional[RepositoryRef]:
    if not isinstance(data, dict):
        return None
    owner = (data.get("owner") or {}).get("login")
    name = data.get("name")
    if not owner or not name:
        return None
    return RepositoryRef(
        id=data.get("id", 0),
        owner=owner,
        name=name,
        full_name=data.get("full_name") or f"{owner}/{name}",
    )


def _parse_pull_request(data: Any) -> Optional[PullRequestRef]:
    if not isinstance(data, dict) or not isinstance(data.get("number"), int):
        return None
    return PullRequestRef(
        number=data["number"],
        title=data.get("title") or "",
        head_sha=(data.get("head") or {}).get("sha", ""),
    )
