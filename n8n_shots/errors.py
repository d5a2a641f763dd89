"""Exception types raised by the screenshot pipeline."""


class ShotError(Exception):
    """Base class for all n8n-shots errors."""
    pass


class ConfigError(ShotError):
    """Required configuration is missing or malformed. Fatal, raised before any work."""
    pass


class WorkflowParseError(ShotError):
    """A discovered workflow file could not be read as JSON."""
    pass


class WorkflowImportError(ShotError):
    """n8n rejected a workflow or returned no workflow id."""

    def __init__(self, message: str, status: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status = status
        self.body = body


class CaptureError(ShotError):
    """Error while rendering or capturing a workflow canvas."""
    pass


class NoCanvasFound(CaptureError):
    """None of the canvas readiness selectors appeared in time."""
    pass


class PublishError(ShotError):
    """Uploading a screenshot to GitHub failed."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status

