"""Playwright capture module for screenshotting workflows inside n8n."""

import asyncio
import logging
from pathlib import Path
from typing import Optional, Sequence
from contextlib import asynccontextmanager

from playwright.async_api import (
    async_playwright,
    Browser,
    BrowserContext,
    Page,
    Error as PlaywrightError,
    TimeoutError as PlaywrightTimeoutError,
)

from n8n_shots.errors import CaptureError, NoCanvasFound

logger = logging.getLogger(__name__)

# Tried in order, first match wins
CANVAS_SELECTORS = (
    ".node-view",
    '[data-test-id="canvas"]',
    ".canvas-container",
    "#canvas",
    "canvas",
)

FIT_TO_VIEW_SCRIPT = """
() => {
    const fitButton = document.querySelector('[data-test-id="zoom-to-fit"]') ||
                      document.querySelector('.zoom-to-fit') ||
                      document.querySelector('button[title*="fit" i]');
    if (fitButton) {
        fitButton.click();
        return true;
    }
    return false;
}
"""


class CanvasCapturer:
    """Captures the n8n canvas of imported workflows with a headless browser."""

    def __init__(
        self,
        n8n_url: str,
        width: int = 1920,
        height: int = 1080,
        timeout: int = 30000,
        selector_timeout: int = 5000,
        settle_time: int = 5000,
        headless: bool = True,
        email: Optional[str] = None,
        password: Optional[str] = None,
        basic_auth_user: Optional[str] = None,
        basic_auth_password: Optional[str] = None,
        selectors: Sequence[str] = CANVAS_SELECTORS,
        debug: bool = False,
        debug_dir: Path = Path("debug"),
    ):
        """Initialize the capturer.

        Args:
            n8n_url: Root URL of the n8n editor
            width: Viewport width in pixels
            height: Viewport height in pixels
            timeout: Navigation timeout in milliseconds
            selector_timeout: Wait per readiness selector in milliseconds
            settle_time: Wait after the canvas appears, in milliseconds
            headless: Run browser in headless mode
            email: n8n user email for form sign-in
            password: n8n user password for form sign-in
            basic_auth_user: HTTP Basic user, used when no email is given
            basic_auth_password: HTTP Basic password
            selectors: Canvas readiness selectors in priority order
            debug: Dump page HTML and failure screenshots to ``debug_dir``
            debug_dir: Folder for debug artifacts
        """
        self.n8n_url = n8n_url.rstrip("/")
        self.width = width
        self.height = height
        self.timeout = timeout
        self.selector_timeout = selector_timeout
        self.settle_time = settle_time
        self.headless = headless
        self.email = email
        self.password = password
        self.basic_auth_user = basic_auth_user
        self.basic_auth_password = basic_auth_password
        self.selectors = tuple(selectors)
        self.debug = debug
        self.debug_dir = Path(debug_dir)

        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._playwright = None

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @property
    def uses_form_login(self) -> bool:
        return bool(self.email and self.password)

    async def start(self) -> None:
        """Start the browser and sign in to n8n.

        Raises:
            CaptureError: If the browser cannot be started
        """
        logger.info("Launching browser")

        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless,
                args=["--no-sandbox", "--disable-setuid-sandbox"],
            )

            http_credentials = None
            if not self.uses_form_login and self.basic_auth_user and self.basic_auth_password:
                http_credentials = {
                    "username": self.basic_auth_user,
                    "password": self.basic_auth_password,
                }

            self._context = await self._browser.new_context(
                viewport={"width": self.width, "height": self.height},
                http_credentials=http_credentials,
            )
            self._context.set_default_timeout(self.timeout)

            logger.info(f"Browser started - Viewport: {self.width}x{self.height}")

        except PlaywrightError as e:
            await self.close()
            raise CaptureError(f"Browser startup failed: {e}") from e

        if self.uses_form_login:
            try:
                await self.login()
            except (CaptureError, PlaywrightError) as e:
                # Screenshots will fail per workflow if the canvas is unreachable
                logger.error(f"Login attempt failed: {e}")
        elif http_credentials:
            logger.info("Using HTTP Basic Auth")
        else:
            logger.warning("No n8n credentials provided - screenshots may fail if auth is required")

    async def close(self) -> None:
        """Close the browser. Errors are logged, never raised."""
        try:
            if self._context:
                await self._context.close()
            if self._browser:
                await self._browser.close()
            if self._playwright:
                await self._playwright.stop()
        except PlaywrightError as e:
            logger.error(f"Error closing browser: {e}")
        finally:
            self._context = None
            self._browser = None
            self._playwright = None
            logger.info("Browser closed")

    @asynccontextmanager
    async def _page(self):
        """Fresh page, closed on every exit path."""
        if not self._context:
            raise CaptureError("Browser not started. Call start() first.")

        page = await self._context.new_page()
        try:
            yield page
        finally:
            await page.close()

    async def login(self) -> None:
        """Sign in through the n8n sign-in form.

        The session cookie lives in the browser context, so every page opened
        afterwards is authenticated.
        """
        logger.info("Logging in to n8n...")

        async with self._page() as page:
            await page.goto(f"{self.n8n_url}/signin", wait_until="networkidle", timeout=15000)
            await page.wait_for_selector('input[type="email"]', timeout=5000)
            await self._dump_html(page, "login-page.html")

            await page.fill('input[type="email"]', self.email)
            await page.fill('input[type="password"]', self.password)
            await page.wait_for_timeout(500)

            button = page.get_by_role("button", name="Sign in", exact=True)
            if await button.count() == 0:
                raise CaptureError('Could not find "Sign in" submit button')

            async with page.expect_navigation(wait_until="networkidle", timeout=10000):
                await button.first.click()

        logger.info("Logged in successfully")

    async def wait_for_canvas(self, page: Page) -> str:
        """Wait for the first readiness selector to appear.

        Each selector gets ``selector_timeout`` milliseconds, bounded by the
        overall deadline of ``selector_timeout * len(selectors)``.

        Returns:
            The selector that matched

        Raises:
            NoCanvasFound: If no selector appeared before the deadline
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.selector_timeout * len(self.selectors) / 1000

        for selector in self.selectors:
            remaining = int((deadline - loop.time()) * 1000)
            if remaining <= 0:
                break
            try:
                await page.wait_for_selector(selector, timeout=min(self.selector_timeout, remaining))
            except PlaywrightTimeoutError:
                logger.debug(f"Selector not found: {selector}")
                continue
            logger.debug(f"Found selector: {selector}")
            return selector

        raise NoCanvasFound("Could not find workflow canvas element")

    async def capture(self, workflow_id: str) -> bytes:
        """Screenshot the canvas of an imported workflow.

        Args:
            workflow_id: Id returned by the n8n API

        Returns:
            PNG image bytes of the viewport

        Raises:
            NoCanvasFound: If the canvas never rendered
            CaptureError: If navigation or the screenshot failed
        """
        url = f"{self.n8n_url}/workflow/{workflow_id}"

        async with self._page() as page:
            try:
                logger.debug(f"Navigating to: {url}")
                await page.goto(url, wait_until="networkidle", timeout=self.timeout)
                await self._dump_html(page, f"page-{workflow_id}.html")

                try:
                    await self.wait_for_canvas(page)
                except NoCanvasFound:
                    await self._dump_screenshot(page, f"screenshot-{workflow_id}.png")
                    raise

                # Rendering lags behind the DOM
                await page.wait_for_timeout(self.settle_time)
                await self._fit_to_view(page)

                return await page.screenshot(type="png", full_page=False)

            except PlaywrightError as e:
                raise CaptureError(f"Screenshot failed: {e}") from e

    async def _fit_to_view(self, page: Page) -> None:
        try:
            clicked = await page.evaluate(FIT_TO_VIEW_SCRIPT)
        except PlaywrightError as e:
            logger.debug(f"Fit to view failed: {e}")
            return
        if clicked:
            await page.wait_for_timeout(500)

    async def _dump_html(self, page: Page, name: str) -> None:
        if not self.debug:
            return
        self.debug_dir.mkdir(parents=True, exist_ok=True)
        path = self.debug_dir / name
        path.write_text(await page.content(), encoding="utf-8")
        logger.debug(f"Debug HTML saved to {path}")

    async def _dump_screenshot(self, page: Page, name: str) -> None:
        if not self.debug:
            return
        self.debug_dir.mkdir(parents=True, exist_ok=True)
        path = self.debug_dir / name
        await page.screenshot(path=str(path), type="png")
        logger.debug(f"Debug screenshot saved to {path}")


@asynccontextmanager
async def create_capturer(**kwargs):
    """Async context manager to create and manage a capturer.

    Args:
        **kwargs: Arguments to pass to CanvasCapturer

    Yields:
        Started CanvasCapturer instance
    """
    capturer = CanvasCapturer(**kwargs)
    try:
        await capturer.start()
        yield capturer
    finally:
        await capturer.close()
