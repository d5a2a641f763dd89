"""n8n-shots - Screenshot n8n workflows and publish them to GitHub.

Workflows found on disk are imported into a running n8n instance, their
canvas is captured with Playwright, the PNG is committed to a GitHub
repository and the imported workflow is deleted again.
"""

__version__ = "1.0.0"
__license__ = "MIT"

from n8n_shots.naming import screenshot_filename, category_for, slugify
from n8n_shots.scanner import WorkflowScanner, WorkflowFile, scan_workflows
from n8n_shots.config import Settings
from n8n_shots.n8n import N8nClient
from n8n_shots.github import GitHubContentStore, PublishResult
from n8n_shots.capture import CanvasCapturer, create_capturer
from n8n_shots.report import RunReport, ItemOutcome
from n8n_shots.pipeline import ScreenshotPipeline

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Naming
    "screenshot_filename",
    "category_for",
    "slugify",
    # Scanner
    "WorkflowScanner",
    "WorkflowFile",
    "scan_workflows",
    # Config
    "Settings",
    # Remote services
    "N8nClient",
    "GitHubContentStore",
    "PublishResult",
    "CanvasCapturer",
    "create_capturer",
    # Pipeline
    "RunReport",
    "ItemOutcome",
    "ScreenshotPipeline",
]
