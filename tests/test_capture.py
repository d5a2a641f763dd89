import asyncio

import pytest
from playwright.async_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError

from n8n_shots.capture import CANVAS_SELECTORS, CanvasCapturer
from n8n_shots.errors import CaptureError, NoCanvasFound


class FakePage:
    def __init__(self, present=(), fit_button=True, goto_error=None):
        self.present = set(present)
        self.fit_button = fit_button
        self.goto_error = goto_error
        self.visited = []
        self.waited_for = []
        self.timeouts = []
        self.closed = False

    async def goto(self, url, **kwargs):
        self.visited.append(url)
        if self.goto_error:
            raise self.goto_error

    async def wait_for_selector(self, selector, timeout=None):
        self.waited_for.append((selector, timeout))
        if selector not in self.present:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded.")

    async def wait_for_timeout(self, timeout):
        self.timeouts.append(timeout)

    async def evaluate(self, script):
        return self.fit_button

    async def screenshot(self, **kwargs):
        return b"\x89PNG canvas"

    async def content(self):
        return "<html></html>"

    async def close(self):
        self.closed = True


class FakeContext:
    def __init__(self, page):
        self.page = page

    async def new_page(self):
        return self.page


def _capturer(page=None, **kwargs):
    capturer = CanvasCapturer("http://n8n.local:5678/", settle_time=250, **kwargs)
    if page is not None:
        capturer._context = FakeContext(page)
    return capturer


def test_first_available_selector_wins():
    page = FakePage(present={"#canvas", "canvas"})

    found = asyncio.run(_capturer().wait_for_canvas(page))

    assert found == "#canvas"
    assert [s for s, _ in page.waited_for] == list(CANVAS_SELECTORS[:4])


def test_each_selector_gets_bounded_timeout():
    page = FakePage()

    with pytest.raises(NoCanvasFound):
        asyncio.run(_capturer(selector_timeout=5000).wait_for_canvas(page))

    assert [s for s, _ in page.waited_for] == list(CANVAS_SELECTORS)
    assert all(0 < timeout <= 5000 for _, timeout in page.waited_for)


def test_aggregate_deadline_stops_probing():
    class SlowPage(FakePage):
        async def wait_for_selector(self, selector, timeout=None):
            self.waited_for.append((selector, timeout))
            # Burn the whole budget on the first selector
            await asyncio.sleep(0.35)
            raise PlaywrightTimeoutError("Timeout exceeded.")

    page = SlowPage()
    capturer = _capturer(selector_timeout=100, selectors=(".a", ".b", ".c"))

    with pytest.raises(NoCanvasFound):
        asyncio.run(capturer.wait_for_canvas(page))

    assert [s for s, _ in page.waited_for] == [".a"]


def test_capture_returns_png_and_closes_page():
    page = FakePage(present={".node-view"})

    image = asyncio.run(_capturer(page).capture("abc"))

    assert image == b"\x89PNG canvas"
    assert page.visited == ["http://n8n.local:5678/workflow/abc"]
    # settle delay, then the pause after clicking fit-to-view
    assert page.timeouts == [250, 500]
    assert page.closed


def test_capture_without_fit_button():
    page = FakePage(present={"canvas"}, fit_button=False)

    asyncio.run(_capturer(page).capture("abc"))

    assert page.timeouts == [250]


def test_capture_without_canvas_raises_and_closes_page():
    page = FakePage()

    with pytest.raises(NoCanvasFound):
        asyncio.run(_capturer(page).capture("abc"))

    assert page.closed
    assert page.timeouts == []


def test_capture_navigation_error_is_wrapped():
    page = FakePage(goto_error=PlaywrightError("net::ERR_CONNECTION_REFUSED"))

    with pytest.raises(CaptureError, match="ERR_CONNECTION_REFUSED"):
        asyncio.run(_capturer(page).capture("abc"))

    assert page.closed


def test_capture_before_start_raises():
    with pytest.raises(CaptureError, match="not started"):
        asyncio.run(_capturer().capture("abc"))


def test_debug_dumps_html(tmp_path):
    page = FakePage(present={"canvas"})

    asyncio.run(_capturer(page, debug=True, debug_dir=tmp_path).capture("abc"))

    assert (tmp_path / "page-abc.html").read_text(encoding="utf-8") == "<html></html>"
