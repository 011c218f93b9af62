"""Configuration objects and constants for the EPUB builder."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

STATIC_BASE_URL = "https://static.packt-cdn.com"
SERVICES_BASE_URL = "https://services.packtpub.com"

DEFAULT_SCRATCH_DIR = Path.home() / ".packt_tmp"
CONFIG_PATH = Path.home() / ".packt_config"
TOKEN_ENV_VAR = "PACKT_TOKEN"
DEFAULT_TIMEOUT = 60.0
DEFAULT_LANGUAGE = "en"
EPUB_EXTENSION = ".epub"

# The content API rejects requests that do not look like they come from the
# subscription web reader.
DEFAULT_HEADERS = {
    "Accept": "application/json, text/plain, */*",
    "Origin": "https://subscription.packtpub.com",
    "Referer": "https://subscription.packtpub.com/",
    "Sec-Fetch-Site": "same-site",
    "Sec-Fetch-Mode": "cors",
    "Sec-Fetch-Dest": "empty",
    "Accept-Language": "en-US,en;q=0.9",
}


@dataclass
class BuildConfig:
    """Top-level settings that control fetching and EPUB assembly."""

    output_dir: Path = field(default_factory=Path.cwd)
    scratch_dir: Path = DEFAULT_SCRATCH_DIR
    timeout: float = DEFAULT_TIMEOUT
    static_base: str = STATIC_BASE_URL
    services_base: str = SERVICES_BASE_URL
    jobs: int = 1
    language: str = DEFAULT_LANGUAGE

    def products_url(self, isbn: str) -> str:
        return f"{self.static_base}/products/{isbn}"
