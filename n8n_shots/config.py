"""Runtime configuration loaded from the environment."""

import logging
import os
from pathlib import Path
from typing import Dict, List, Literal, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from n8n_shots.errors import ConfigError

logger = logging.getLogger(__name__)

PLACEHOLDER_REPO = "your-org/your-screenshots-repo"


class Settings(BaseModel):
    """Settings for a screenshot run.

    Field aliases are the environment variable names, so ``Settings.from_env``
    can validate ``os.environ`` directly. Delays are in milliseconds.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    # n8n instance
    n8n_url: str = Field("http://localhost:5678", alias="N8N_URL")
    n8n_api_key: Optional[str] = Field(None, alias="N8N_API_KEY")
    n8n_basic_auth_user: Optional[str] = Field(None, alias="N8N_BASIC_AUTH_USER")
    n8n_basic_auth_password: Optional[str] = Field(None, alias="N8N_BASIC_AUTH_PASSWORD")
    n8n_email: Optional[str] = Field(None, alias="N8N_EMAIL")
    n8n_password: Optional[str] = Field(None, alias="N8N_PASSWORD")

    # GitHub content store
    github_token: Optional[str] = Field(None, alias="GITHUB_TOKEN")
    github_repo: str = Field(PLACEHOLDER_REPO, alias="GITHUB_SCREENSHOTS_REPO")
    github_branch: str = Field("main", alias="GITHUB_BRANCH")

    # Local paths
    workflows_dir: Path = Field(Path("."), alias="WORKFLOWS_DIR")
    screenshots_dir: Path = Field(Path("./screenshots"), alias="SCREENSHOTS_DIR")
    results_file: Path = Field(Path("screenshot-results.json"), alias="RESULTS_FILE")
    debug_dir: Path = Field(Path("./debug"), alias="DEBUG_DIR")

    # Screenshot settings
    viewport_width: int = Field(1920, ge=1, alias="VIEWPORT_WIDTH")
    viewport_height: int = Field(1080, ge=1, alias="VIEWPORT_HEIGHT")
    # PNG output has no quality setting; kept so existing .env files validate
    screenshot_quality: int = Field(90, ge=0, le=100, alias="SCREENSHOT_QUALITY")

    delay_after_import: int = Field(2000, ge=0, alias="DELAY_AFTER_IMPORT_MS")
    delay_after_page_load: int = Field(5000, ge=0, alias="DELAY_AFTER_PAGE_LOAD_MS")
    delay_between_workflows: int = Field(1000, ge=0, alias="DELAY_BETWEEN_WORKFLOWS_MS")

    # Batch processing
    batch_size: int = Field(10, ge=1, alias="BATCH_SIZE")
    skip_existing: bool = Field(True, alias="SKIP_EXISTING")
    existence_on_error: Literal["proceed", "skip"] = Field(
        "proceed", alias="EXISTENCE_CHECK_ON_ERROR"
    )

    headless: bool = Field(True, alias="HEADLESS")
    debug: bool = Field(False, alias="DEBUG")

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        dotenv_path: Optional[Path] = None,
    ) -> "Settings":
        """Build settings from environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``
            dotenv_path: ``.env`` file to load first (only when reading ``os.environ``)

        Raises:
            ConfigError: If a value cannot be parsed
        """
        if environ is None:
            if load_dotenv(dotenv_path=dotenv_path):
                logger.debug("Loaded variables from .env file")
            environ = os.environ

        # Blank values count as unset
        values: Dict[str, str] = {k: v for k, v in environ.items() if v != ""}

        try:
            return cls.model_validate(values)
        except ValidationError as e:
            raise ConfigError(_format_validation_error(e)) from e

    def validate_required(self) -> None:
        """Check the settings a run cannot start without.

        Raises:
            ConfigError: Listing every missing or invalid value
        """
        problems: List[str] = []

        if not self.n8n_api_key:
            problems.append("Missing N8N_API_KEY environment variable")
        if not self.github_token:
            problems.append("Missing GITHUB_TOKEN environment variable")
        if not self.github_repo or self.github_repo == PLACEHOLDER_REPO:
            problems.append(
                "Missing or invalid GITHUB_SCREENSHOTS_REPO environment variable "
                "(expected owner/repo)"
            )
        elif self.github_repo.count("/") != 1 or not all(self.github_repo.split("/")):
            problems.append(f"GITHUB_SCREENSHOTS_REPO must be owner/repo, got {self.github_repo!r}")

        if problems:
            raise ConfigError("; ".join(problems))

    def override(self, **changes) -> "Settings":
        """Return a copy with the non-None ``changes`` applied."""
        update = {k: v for k, v in changes.items() if v is not None}
        return self.model_copy(update=update)


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        field = " -> ".join(str(loc) for loc in err["loc"])
        parts.append(f"{field}: {err['msg']}")
    return "Invalid configuration: " + "; ".join(parts)
