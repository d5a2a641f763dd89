import json
from pathlib import Path

import pytest
import requests

from n8n_shots.errors import NoCanvasFound, PublishError, WorkflowImportError
from n8n_shots.github import PublishResult
from n8n_shots.scanner import WorkflowFile


class FakeResponse:
    def __init__(self, status_code=200, json_data=None, text=None):
        self.status_code = status_code
        self._json = json_data
        self._text = text

    @property
    def text(self):
        if self._text is not None:
            return self._text
        return json.dumps(self._json) if self._json is not None else ""

    def json(self):
        if self._json is None:
            raise ValueError("No JSON object could be decoded")
        return self._json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


class FakeSession:
    """Stands in for requests.Session; replies are queued per HTTP method."""

    def __init__(self, **replies):
        self.headers = {}
        self.calls = []
        self.replies = {method: list(queue) for method, queue in replies.items()}
        self.closed = False

    def _respond(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        reply = self.replies[method].pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    def get(self, url, **kwargs):
        return self._respond("get", url, **kwargs)

    def post(self, url, **kwargs):
        return self._respond("post", url, **kwargs)

    def put(self, url, **kwargs):
        return self._respond("put", url, **kwargs)

    def delete(self, url, **kwargs):
        return self._respond("delete", url, **kwargs)

    def close(self):
        self.closed = True


class FakeN8n:
    def __init__(self, reject=()):
        self.reject = set(reject)
        self.imported = []
        self.deleted = []

    def import_workflow(self, workflow_data):
        if workflow_data["name"] in self.reject:
            raise WorkflowImportError("Failed to import workflow: API returned 400: {}", status=400)
        workflow_id = f"wf-{len(self.imported) + 1}"
        self.imported.append(workflow_id)
        return workflow_id

    def delete_workflow(self, workflow_id):
        self.deleted.append(workflow_id)
        return True


class FakeStore:
    def __init__(self, existing=(), fail_publish=False):
        self.existing = set(existing)
        self.fail_publish = fail_publish
        self.checked = []
        self.published = []

    def exists(self, category, filename):
        self.checked.append((category, filename))
        return (category, filename) in self.existing

    def publish(self, category, filename, image):
        if self.fail_publish:
            raise PublishError("GitHub upload failed: 422 - invalid", status=422)
        self.published.append((category, filename, image))
        return PublishResult(
            url=f"https://raw.githubusercontent.com/acme/shots/main/screenshots/{category}/{filename}",
        )


class FakeCapturer:
    def __init__(self, fail=False):
        self.fail = fail
        self.captured = []

    async def capture(self, workflow_id):
        self.captured.append(workflow_id)
        if self.fail:
            raise NoCanvasFound("Could not find workflow canvas element")
        return b"\x89PNG fake"


def make_workflow(path, name=None, definition=True, error=None):
    path = Path(path)
    name = name or path.stem
    if definition is True:
        definition = {"name": name, "nodes": [{"name": "Start", "type": "n8n-nodes-base.start"}]}
    return WorkflowFile(path=path, name=name, definition=definition, error=error)


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def fake_sleep(sleeps):
    async def _sleep(seconds):
        sleeps.append(seconds)
    return _sleep
