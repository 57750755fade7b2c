"""Credential handling for GitHub Org Analyser.

The bearer token is supplied by the caller, held only in memory for the
lifetime of the process, and never written to the report cache or the
settings file.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from github_org_analyser.core.exceptions import ConfigurationError

TOKEN_ENV_VAR = "GITHUB_TOKEN"


def normalize_credential_value(value: object) -> str:
    """Strip whitespace and one layer of surrounding quotes (common in .env files)."""
    if value is None:
        return ""
    s = str(value).strip()
    if len(s) >= 2 and s[0] == s[-1] and s[0] in {'"', "'"}:
        s = s[1:-1]
    return s


@dataclass(frozen=True)
class Credential:
    """Opaque bearer credential used to authorize every GitHub API call.

    Attributes:
        token: Personal access token or installation token
        source: Where the token came from ("explicit", "env")
    """

    token: str = field(repr=False)
    source: str = "explicit"

    def __post_init__(self) -> None:
        if not normalize_credential_value(self.token):
            raise ConfigurationError("GitHub token is empty", field=TOKEN_ENV_VAR)

    def authorization_header(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {normalize_credential_value(self.token)}"}

    def __str__(self) -> str:
        return f"Credential(source={self.source}, token=***)"


def _bootstrap_dotenv(env_file: str | Path | None, logger: logging.Logger) -> None:
    """Load .env variables without overriding the process environment."""
    try:
        loaded = load_dotenv(dotenv_path=env_file, override=False)
    except OSError as e:
        logger.debug(f"Failed to load .env via python-dotenv: {e}")
        return
    if loaded:
        logger.debug(".env file found and loaded")
    else:
        logger.debug(".env file not found")


def resolve_credential(
    token: str | None = None,
    env_file: str | Path | None = None,
    logger: logging.Logger | None = None,
) -> Credential:
    """Resolve the GitHub credential.

    Priority: 1) explicit ``token``, 2) ``GITHUB_TOKEN`` from the environment
    (after loading ``.env``).

    Raises:
        ConfigurationError: If no token can be found
    """
    logger = logger or logging.getLogger(__name__)

    explicit = normalize_credential_value(token)
    if explicit:
        return Credential(explicit, source="explicit")

    _bootstrap_dotenv(env_file, logger)
    from_env = normalize_credential_value(os.environ.get(TOKEN_ENV_VAR))
    if from_env:
        logger.debug(f"Using GitHub token from {TOKEN_ENV_VAR}")
        return Credential(from_env, source="env")

    raise ConfigurationError(
        "No GitHub token configured",
        field=TOKEN_ENV_VAR,
        details=f"pass a token explicitly or set {TOKEN_ENV_VAR} (a .env file is also read)",
    )
