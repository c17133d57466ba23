"""
Browser Environment
===================

Playwright-backed environment that executes computer actions in a
Chromium page and captures screenshots for the reasoning service.

Every action type maps to one handler; handlers translate the action into
mouse, keyboard or navigation calls on the page. Errors raised by
Playwright are logged and re-raised as ``EnvironmentActionError`` so the
agent loop can abort the current instruction.

Usage:
    from browser_agent.environment import BrowserEnvironment

    async with BrowserEnvironment(start_url="https://example.com", headless=True) as env:
        await env.execute(parse_action({"type": "click", "x": 100, "y": 200}))
        png = await env.snapshot()
"""

from typing import Any, Awaitable, Callable, Literal, Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from browser_agent.environment.actions import Action, ActionType, format_action_for_log
from browser_agent.environment.base import get_os_name
from browser_agent.environment.keys import plan_keypress
from browser_agent.exceptions import EnvironmentActionError
from browser_agent.utils.logger import RunLog, get_logger

logger = get_logger(__name__)

DEFAULT_START_URL = "https://google.com"
DEFAULT_DISPLAY_WIDTH = 800
DEFAULT_DISPLAY_HEIGHT = 600
HAR_FILE_NAME = "playwright.har"

DragMode = Literal["continuous", "taps"]


class BrowserEnvironment:
    """
    Chromium browser driven through Playwright.

    Owns the Playwright driver, the browser, its context and the single
    page actions are executed against.
    """

    def __init__(
        self,
        start_url: Optional[str] = None,
        headless: bool = False,
        display_width: int = DEFAULT_DISPLAY_WIDTH,
        display_height: int = DEFAULT_DISPLAY_HEIGHT,
        run_log: Optional[RunLog] = None,
        drag_mode: DragMode = "continuous",
        record_har: bool = True,
        record_video: bool = True,
    ) -> None:
        """
        Initialize the browser environment.

        Args:
            start_url: Page opened on start.
            headless: Launch Chromium without a window.
            display_width: Viewport width in pixels.
            display_height: Viewport height in pixels.
            run_log: Run logging context; receives screenshots, HAR and video.
            drag_mode: "continuous" (press once along the whole path) or
                "taps" (press and release on every path segment).
            record_har: Record a HAR file when a run log is given.
            record_video: Record a video when a run log is given.
        """
        self.start_url = start_url or DEFAULT_START_URL
        self.headless = headless
        self.display_width = display_width
        self.display_height = display_height
        self.run_log = run_log
        self.drag_mode = drag_mode
        self.record_har = record_har
        self.record_video = record_video

        self._playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None

        self._handlers: dict[ActionType, Callable[[Action], Awaitable[None]]] = {
            ActionType.CLICK: self._handle_click,
            ActionType.DOUBLE_CLICK: self._handle_double_click,
            ActionType.MOVE: self._handle_move,
            ActionType.DRAG: self._handle_drag,
            ActionType.SCROLL: self._handle_scroll,
            ActionType.TYPE: self._handle_type,
            ActionType.KEYPRESS: self._handle_keypress,
            ActionType.WAIT: self._handle_wait,
            ActionType.GOTO: self._handle_goto,
            ActionType.BACK: self._handle_back,
            ActionType.FORWARD: self._handle_forward,
            ActionType.SCREENSHOT: self._handle_screenshot,
        }

    @property
    def os_name(self) -> str:
        """Operating system name shown to the model."""
        return get_os_name()

    @property
    def is_started(self) -> bool:
        """Whether a page is open."""
        return self.page is not None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Launch Chromium, open a page and navigate to the start URL."""
        logger.info(
            "Starting browser",
            width=self.display_width,
            height=self.display_height,
            headless=self.headless,
        )

        self._playwright = await async_playwright().start()
        self.browser = await self._playwright.chromium.launch(
            headless=self.headless,
            args=[
                "--disable-extensions",
                "--disable-file-system",
                f"--window-size={self.display_width},{self.display_height}",
            ],
        )
        self.context = await self.browser.new_context(**self._context_options())
        self.page = await self.context.new_page()
        await self.page.goto(self.start_url, wait_until="load")

        logger.info("Browser started", url=self.start_url)

    def _context_options(self) -> dict[str, Any]:
        viewport = {"width": self.display_width, "height": self.display_height}
        options: dict[str, Any] = {
            "viewport": viewport,
            "ignore_https_errors": True,
            "bypass_csp": True,
        }
        if self.run_log is not None:
            if self.record_har:
                options["record_har_path"] = str(self.run_log.path / HAR_FILE_NAME)
                options["record_har_content"] = "embed"
            if self.record_video:
                options["record_video_dir"] = str(self.run_log.path)
                options["record_video_size"] = viewport
        return options

    async def stop(self) -> None:
        """Close the page's context, the browser and the driver. Safe to call twice."""
        if self._playwright is None:
            return
        logger.info("Stopping browser")

        # Closing the context flushes the HAR file and the video.
        if self.context is not None:
            try:
                await self.context.close()
            except Exception as e:
                logger.warning("Failed to close browser context", error=str(e))
        if self.browser is not None:
            try:
                await self.browser.close()
            except Exception as e:
                logger.warning("Failed to close browser", error=str(e))
        try:
            await self._playwright.stop()
        except Exception as e:
            logger.warning("Failed to stop Playwright", error=str(e))

        self.page = None
        self.context = None
        self.browser = None
        self._playwright = None
        logger.info("Browser closed")

    async def __aenter__(self) -> "BrowserEnvironment":
        try:
            await self.start()
        except BaseException:
            await self.stop()
            raise
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.stop()

    # ------------------------------------------------------------------
    # Environment operations
    # ------------------------------------------------------------------

    async def execute(self, action: Action) -> None:
        """
        Execute a single action on the page.

        Args:
            action: The action to perform.

        Raises:
            EnvironmentActionError: If the page rejects the action.
        """
        handler = self._handlers.get(action.action_type)
        if handler is None:
            logger.warning("Unknown action type, skipping", action_type=action.tag)
            return

        logger.info("Executing action", action=format_action_for_log(action))
        try:
            await handler(action)
        except Exception as e:
            logger.error("Error handling action", action_type=action.tag, error=str(e))
            raise EnvironmentActionError(f"{action.tag} failed: {e}", action.tag) from e

    async def snapshot(self) -> bytes:
        """
        Capture a full-page PNG screenshot.

        The image is also written to the run directory when a run log is set.

        Returns:
            PNG bytes.

        Raises:
            EnvironmentActionError: If the screenshot cannot be taken.
        """
        try:
            image = await self._require_page().screenshot(full_page=True)
            if self.run_log is not None:
                self.run_log.save_screenshot(image)
        except Exception as e:
            logger.error("Error taking screenshot", error=str(e))
            raise EnvironmentActionError(f"screenshot failed: {e}", "screenshot") from e

        logger.debug("Screenshot captured", size_kb=len(image) // 1024)
        return image

    # ------------------------------------------------------------------
    # Action handlers
    # ------------------------------------------------------------------

    def _require_page(self) -> Page:
        if self.page is None:
            raise RuntimeError("Browser is not started")
        return self.page

    @staticmethod
    def _require_point(action: Action) -> tuple[int, int]:
        if action.x is None or action.y is None:
            raise ValueError(f"{action.tag} requires x and y coordinates")
        return action.x, action.y

    async def _handle_click(self, action: Action) -> None:
        x, y = self._require_point(action)
        await self._require_page().mouse.click(x, y, button=action.button)

    async def _handle_double_click(self, action: Action) -> None:
        x, y = self._require_point(action)
        await self._require_page().mouse.dblclick(x, y, button=action.button)

    async def _handle_move(self, action: Action) -> None:
        x, y = self._require_point(action)
        await self._require_page().mouse.move(x, y)

    async def _handle_drag(self, action: Action) -> None:
        path = action.path
        if not path:
            logger.warning("Drag without a path, nothing to do")
            return

        mouse = self._require_page().mouse
        first, rest = path[0], path[1:]
        await mouse.move(first.x, first.y)

        if self.drag_mode == "taps":
            for point in rest:
                await mouse.down()
                try:
                    await mouse.move(point.x, point.y)
                finally:
                    await mouse.up()
            return

        await mouse.down()
        try:
            for point in rest:
                await mouse.move(point.x, point.y)
        finally:
            await mouse.up()

    async def _handle_scroll(self, action: Action) -> None:
        mouse = self._require_page().mouse
        if action.x is not None and action.y is not None:
            await mouse.move(action.x, action.y)
        await mouse.wheel(action.scroll_x, action.scroll_y)

    async def _handle_type(self, action: Action) -> None:
        await self._require_page().keyboard.type(action.text)

    async def _handle_keypress(self, action: Action) -> None:
        page = self._require_page()
        plan = plan_keypress(action.keys)

        if plan.go_back:
            await page.go_back()
            return

        held: list[str] = []
        try:
            for key in plan.modifiers:
                await page.keyboard.down(key)
                held.append(key)
            for key in plan.keys:
                await page.keyboard.press(key)
        finally:
            for key in reversed(held):
                await page.keyboard.up(key)

    async def _handle_wait(self, action: Action) -> None:
        await self._require_page().wait_for_timeout(action.wait_ms)

    async def _handle_goto(self, action: Action) -> None:
        if not action.url:
            raise ValueError("goto requires a url")
        await self._require_page().goto(action.url)

    async def _handle_back(self, action: Action) -> None:
        await self._require_page().go_back()

    async def _handle_forward(self, action: Action) -> None:
        await self._require_page().go_forward()

    async def _handle_screenshot(self, action: Action) -> None:
        # The agent loop captures a snapshot after every action anyway.
        return None
