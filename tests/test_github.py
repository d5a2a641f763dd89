import base64

import pytest
import requests

from conftest import FakeResponse, FakeSession
from n8n_shots.errors import PublishError
from n8n_shots.github import GitHubContentStore

CONTENTS_URL = "https://api.github.com/repos/acme/shots/contents/screenshots/Cat_A/flow.png"
PUBLIC_URL = "https://raw.githubusercontent.com/acme/shots/main/screenshots/Cat_A/flow.png"


def _store(session, **kwargs):
    return GitHubContentStore("acme/shots", "gh-token", session=session, **kwargs)


def test_auth_headers_are_set():
    session = FakeSession()
    _store(session)
    assert session.headers["Authorization"] == "token gh-token"
    assert session.headers["Accept"] == "application/vnd.github.v3+json"


def test_exists_on_200():
    session = FakeSession(get=[FakeResponse(200, {"sha": "abc"})])
    assert _store(session).exists("Cat_A", "flow.png") is True
    assert session.calls[0][1] == CONTENTS_URL


def test_missing_on_404():
    session = FakeSession(get=[FakeResponse(404, {"message": "Not Found"})])
    assert _store(session).exists("Cat_A", "flow.png") is False


@pytest.mark.parametrize("reply", [FakeResponse(502, text="Bad Gateway"), requests.ConnectionError("down")])
def test_ambiguous_check_proceeds_by_default(reply):
    session = FakeSession(get=[reply])
    assert _store(session).exists("Cat_A", "flow.png") is False


@pytest.mark.parametrize("reply", [FakeResponse(502, text="Bad Gateway"), requests.ConnectionError("down")])
def test_ambiguous_check_can_skip(reply):
    session = FakeSession(get=[reply])
    assert _store(session, existence_on_error="skip").exists("Cat_A", "flow.png") is True


def test_unknown_policy_is_rejected():
    with pytest.raises(ValueError):
        _store(FakeSession(), existence_on_error="guess")


def test_publish_creates_without_sha():
    session = FakeSession(
        get=[FakeResponse(404, {"message": "Not Found"})],
        put=[FakeResponse(201, {"content": {"sha": "new-sha"}})],
    )

    result = _store(session).publish("Cat_A", "flow.png", b"png-bytes")

    method, url, kwargs = session.calls[1]
    assert (method, url) == ("put", CONTENTS_URL)
    assert kwargs["json"] == {
        "message": "Add screenshot: flow.png",
        "content": base64.b64encode(b"png-bytes").decode("ascii"),
        "branch": "main",
    }
    assert result.url == PUBLIC_URL
    assert result.sha == "new-sha"
    assert result.updated is False


def test_publish_updates_with_existing_sha():
    session = FakeSession(
        get=[FakeResponse(200, {"sha": "old-sha"})],
        put=[FakeResponse(200, {"content": {"sha": "new-sha"}})],
    )

    result = _store(session).publish("Cat_A", "flow.png", b"png-bytes")

    payload = session.calls[1][2]["json"]
    assert payload["sha"] == "old-sha"
    assert payload["message"] == "Update screenshot: flow.png"
    assert result.url == PUBLIC_URL
    assert result.updated is True


def test_publish_uses_configured_branch():
    session = FakeSession(
        get=[FakeResponse(404, {})],
        put=[FakeResponse(201, {"content": {"sha": "s"}})],
    )

    result = _store(session, branch="gallery").publish("Cat_A", "flow.png", b"x")

    assert session.calls[0][2]["params"] == {"ref": "gallery"}
    assert session.calls[1][2]["json"]["branch"] == "gallery"
    assert result.url.startswith("https://raw.githubusercontent.com/acme/shots/gallery/")


def test_publish_rejected_raises():
    session = FakeSession(
        get=[FakeResponse(200, {"sha": "stale"})],
        put=[FakeResponse(409, {"message": "does not match"})],
    )

    with pytest.raises(PublishError) as excinfo:
        _store(session).publish("Cat_A", "flow.png", b"x")

    assert excinfo.value.status == 409


def test_publish_lookup_failure_raises():
    session = FakeSession(get=[FakeResponse(500, text="oops")])

    with pytest.raises(PublishError):
        _store(session).publish("Cat_A", "flow.png", b"x")


def test_publish_transport_error_raises():
    session = FakeSession(get=[FakeResponse(404, {})], put=[requests.ConnectionError("reset")])

    with pytest.raises(PublishError, match="reset"):
        _store(session).publish("Cat_A", "flow.png", b"x")


def test_publish_unreadable_lookup_raises_without_uploading():
    session = FakeSession(get=[FakeResponse(200, text="<html>proxy</html>")])

    with pytest.raises(PublishError, match="unreadable response") as excinfo:
        _store(session).publish("Cat_A", "flow.png", b"x")

    assert excinfo.value.status == 200
    assert [call[0] for call in session.calls] == ["get"]
