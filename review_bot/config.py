"""
Configuration
──────────────
Process-wide settings read once from the environment at startup:
  - GitHub App identity (app id, private key)
  - Webhook shared secret
  - Listening host/port and the webhook path
  - Logging level and directory
  - Optional allowlist of repositories that get inline suggestions

The resulting Settings value is immutable and passed explicitly to the
components that need it.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_PORT = 3000
DEFAULT_WEBHOOK_PATH = "/api/review"
DEFAULT_API_URL = "https://api.github.com"


class ConfigurationError(Exception):
    """Raised when required settings are missing or invalid."""

    def __init__(self, problems: list[str]):
        self.problems = problems
        super().__init__("Invalid configuration: " + "; ".join(problems))


@dataclass(frozen=True)
class Settings:
    """Validated, read-only process configuration."""
    app_id: str
    private_key: str = field(repr=False)
    webhook_secret: str = field(repr=False)
    port: int = DEFAULT_PORT
    host: str = "0.0.0.0"
    webhook_path: str = DEFAULT_WEBHOOK_PATH
    api_url: str = DEFAULT_API_URL
    log_level: str = "INFO"
    log_dir: str = "logs"
    inline_suggestion_repos: frozenset[int] = frozenset()
    rules_path: Optional[str] = None


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from environment variables.
    Every problem found is collected and reported in a single
    ConfigurationError so the operator can fix them in one go.
    """
    env = os.environ if environ is None else environ
    problems: list[str] = []

    app_id = env.get("GITHUB_APP_ID", "").strip()
    if not app_id:
        problems.append("GITHUB_APP_ID is not set")

    private_key = _read_private_key(env, problems)

    webhook_secret = env.get("GITHUB_WEBHOOK_SECRET", "")
    if not webhook_secret:
        problems.append("GITHUB_WEBHOOK_SECRET is not set")

    port = DEFAULT_PORT
    raw_port = env.get("PORT", "").strip()
    if raw_port:
        try:
            port = int(raw_port)
        except ValueError:
            problems.append(f"PORT must be an integer, got {raw_port!r}")
        else:
            if not 0 < port < 65536:
                problems.append(f"PORT must be between 1 and 65535, got {port}")

    webhook_path = env.get("WEBHOOK_PATH", DEFAULT_WEBHOOK_PATH).strip()
    if not webhook_path.startswith("/"):
        problems.append(f"WEBHOOK_PATH must start with '/', got {webhook_path!r}")

    inline_repos: set[int] = set()
    for raw_id in env.get("INLINE_SUGGESTION_REPOS", "").split(","):
        raw_id = raw_id.strip()
        if not raw_id:
            continue
        try:
            inline_repos.add(int(raw_id))
        except ValueError:
            problems.append(
                f"INLINE_SUGGESTION_REPOS entries must be repository ids, got {raw_id!r}"
            )

    if problems:
        raise ConfigurationError(problems)

    return Settings(
        app_id=app_id,
        private_key=private_key,
        webhook_secret=webhook_secret,
        port=port,
        host=env.get("HOST", "0.0.0.0"),
        webhook_path=webhook_path,
        api_url=env.get("GITHUB_API_URL", DEFAULT_API_URL).rstrip("/"),
        log_level=env.get("LOG_LEVEL", "INFO").upper(),
        log_dir=env.get("LOG_DIR", "logs"),
        inline_suggestion_repos=frozenset(inline_repos),
        rules_path=env.get("REVIEW_RULES_PATH") or None,
    )


def _read_private_key(env: Mapping[str, str], problems: list[str]) -> str:
    """Read the PEM key inline (escaped newlines allowed) or from a file."""
    raw_key = env.get("GITHUB_PRIVATE_KEY", "")
    if raw_key:
        return raw_key.replace("\\n", "\n")

    key_path = env.get("GITHUB_PRIVATE_KEY_PATH", "")
    if not key_path:
        problems.append("GITHUB_PRIVATE_KEY or GITHUB_PRIVATE_KEY_PATH must be set")
        return ""

    try:
        return Path(key_path).read_text()
    except OSError as exc:
        problems.append(f"Cannot read GITHUB_PRIVATE_KEY_PATH {key_path}: {exc}")
        return ""
