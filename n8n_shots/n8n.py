"""n8n public API client for importing and deleting workflows."""

import json
import logging
from typing import Any, Dict, Optional

import requests

from n8n_shots.errors import WorkflowImportError

logger = logging.getLogger(__name__)


def clean_workflow(workflow_data: Dict[str, Any]) -> Dict[str, Any]:
    """Strip a workflow export down to what ``POST /workflows`` accepts.

    Exports carry ids, tags, ``active``, ``pinData`` and similar read-only
    properties which the API rejects.
    """
    cleaned = {
        "name": workflow_data.get("name"),
        "nodes": workflow_data.get("nodes") or [],
        "connections": workflow_data.get("connections") or {},
        "settings": workflow_data.get("settings") or {},
    }
    if workflow_data.get("staticData"):
        cleaned["staticData"] = workflow_data["staticData"]
    return cleaned


def _snippet(body: Any, limit: int = 500) -> str:
    text = body if isinstance(body, str) else json.dumps(body, default=str)
    return text if len(text) <= limit else text[:limit] + "..."


class N8nClient:
    """Thin wrapper around the n8n REST API (``/api/v1``)."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
        debug: bool = False,
    ):
        """Initialize the client.

        Args:
            base_url: Root URL of the n8n instance
            api_key: Value for the ``X-N8N-API-KEY`` header
            timeout: Per-request timeout in seconds
            session: Session to reuse; a new one is created if omitted
            debug: Log request and response details
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.debug = debug
        self.session = session or requests.Session()
        self.session.headers.update({"X-N8N-API-KEY": api_key})

    @property
    def api_url(self) -> str:
        return f"{self.base_url}/api/v1"

    def workflow_url(self, workflow_id: str) -> str:
        """Browser URL of the workflow canvas."""
        return f"{self.base_url}/workflow/{workflow_id}"

    def import_workflow(self, workflow_data: Dict[str, Any]) -> str:
        """Create a workflow in n8n.

        Args:
            workflow_data: Workflow JSON as exported from n8n

        Returns:
            Id of the created workflow

        Raises:
            WorkflowImportError: If n8n rejects the workflow, does not answer,
                or answers without an id
        """
        url = f"{self.api_url}/workflows"
        if self.debug:
            logger.debug(f"POST {url}")

        try:
            response = self.session.post(
                url,
                json=clean_workflow(workflow_data),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise WorkflowImportError(f"Failed to import workflow: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = response.text

        if self.debug:
            logger.debug(f"API response {response.status_code}: {_snippet(body, 200)}")

        if response.status_code >= 400:
            raise WorkflowImportError(
                f"Failed to import workflow: API returned {response.status_code}: {_snippet(body)}",
                status=response.status_code,
                body=_snippet(body),
            )

        workflow_id = None
        if isinstance(body, dict):
            workflow_id = body.get("id")
            if workflow_id is None and isinstance(body.get("data"), dict):
                workflow_id = body["data"].get("id")

        if not workflow_id:
            raise WorkflowImportError(
                f"Failed to import workflow: no workflow ID in response: {_snippet(body)}",
                status=response.status_code,
                body=_snippet(body),
            )

        logger.debug(f"Imported workflow ID: {workflow_id}")
        return str(workflow_id)

    def delete_workflow(self, workflow_id: str) -> bool:
        """Delete a workflow, logging instead of raising on failure.

        Returns:
            True if n8n confirmed the deletion
        """
        url = f"{self.api_url}/workflows/{workflow_id}"
        try:
            response = self.session.delete(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.warning(f"Failed to delete workflow {workflow_id}: {e}")
            return False

        logger.debug(f"Deleted workflow ID: {workflow_id}")
        return True

    def close(self) -> None:
        self.session.close()
