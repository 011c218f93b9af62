"""Lookup of the bearer token used for authenticated page requests."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import dotenv_values

from .config import CONFIG_PATH, TOKEN_ENV_VAR
from .errors import CredentialError

logger = logging.getLogger("packt_epub")


def resolve_token(explicit: Optional[str] = None, config_path: Path = CONFIG_PATH) -> str:
    """Return the access token from the CLI, the environment or the config file.

    The config file is the dotenv-style ``~/.packt_config`` holding ``TOKEN=``
    and ``REFRESH=`` entries written at login.
    """
    if explicit:
        return explicit
    from_env = os.getenv(TOKEN_ENV_VAR)
    if from_env:
        logger.debug("Using token from %s", TOKEN_ENV_VAR)
        return from_env
    if config_path.is_file():
        token = dotenv_values(config_path).get("TOKEN")
        if token:
            logger.debug("Using token from %s", config_path)
            return token.strip()
    raise CredentialError(
        f"No access token found; pass --token, set {TOKEN_ENV_VAR} or log in to create {config_path}"
    )
