"""Browser automation tasks, driven through Playwright's async API.

All tasks after LAUNCH_BROWSER operate on the page shared through the
execution environment.
"""
from typing import TYPE_CHECKING, Any

from ..config import settings
from .base import TaskType
from .registry import ExecutorRegistry

if TYPE_CHECKING:
    from ..engine.environment import ExecutionEnvironment

SCROLL_INTO_VIEW_JS = (
    "el => window.scrollTo({top: el.getBoundingClientRect().top + window.scrollY})"
)


class BrowserHandle:
    """Owns the Playwright driver together with the browser it launched."""

    def __init__(self, playwright: Any, browser: Any):
        self.playwright = playwright
        self.browser = browser

    async def close(self) -> None:
        try:
            await self.browser.close()
        finally:
            await self.playwright.stop()


def _require_page(env: "ExecutionEnvironment") -> Any:
    page = env.get_page()
    if page is None:
        env.log.error("No browser page available; launch a browser first")
    return page


@ExecutorRegistry.register(TaskType.LAUNCH_BROWSER)
async def launch_browser(env: "ExecutionEnvironment") -> bool:
    website_url = env.get_input("Website Url")
    if not website_url:
        env.log.error("input-> Website Url not defined")
        return False

    from playwright.async_api import async_playwright

    playwright = await async_playwright().start()
    try:
        browser = await playwright.chromium.launch(headless=settings.browser_headless)
    except Exception:
        await playwright.stop()
        raise
    env.set_browser(BrowserHandle(playwright, browser))
    env.log.info("Browser started successfully")

    page = await browser.new_page(viewport={
        "width": settings.browser_viewport_width,
        "height": settings.browser_viewport_height,
    })
    env.set_page(page)
    await page.goto(website_url)
    env.log.info(f"Opened page at: {website_url}")
    return True


@ExecutorRegistry.register(TaskType.PAGE_TO_HTML)
async def page_to_html(env: "ExecutionEnvironment") -> bool:
    page = _require_page(env)
    if page is None:
        return False
    env.set_output("HTML", await page.content())
    return True


@ExecutorRegistry.register(TaskType.NAVIGATE_URL)
async def navigate_url(env: "ExecutionEnvironment") -> bool:
    url = env.get_input("URL")
    if not url:
        env.log.error("input-> URL not defined")
    page = _require_page(env)
    if page is None:
        return False
    await page.goto(url)
    env.log.info(f"Navigated to {url}")
    return True


@ExecutorRegistry.register(TaskType.CLICK_ELEMENT)
async def click_element(env: "ExecutionEnvironment") -> bool:
    selector = env.get_input("Selector")
    if not selector:
        env.log.error("input-> Selector not defined")
    page = _require_page(env)
    if page is None:
        return False
    await page.click(selector)
    return True


@ExecutorRegistry.register(TaskType.FILL_INPUT)
async def fill_input(env: "ExecutionEnvironment") -> bool:
    selector = env.get_input("Selector")
    if not selector:
        env.log.error("input-> Selector not defined")
    value = env.get_input("Value")
    if not value:
        env.log.error("input-> Value not defined")
    page = _require_page(env)
    if page is None:
        return False
    await page.fill(selector, value)
    return True


@ExecutorRegistry.register(TaskType.SCROLL_TO_ELEMENT)
async def scroll_to_element(env: "ExecutionEnvironment") -> bool:
    selector = env.get_input("Selector")
    if not selector:
        env.log.error("input-> Selector not defined")
    page = _require_page(env)
    if page is None:
        return False
    await page.eval_on_selector(selector, SCROLL_INTO_VIEW_JS)
    return True


@ExecutorRegistry.register(TaskType.WAIT_FOR_ELEMENT)
async def wait_for_element(env: "ExecutionEnvironment") -> bool:
    selector = env.get_input("Selector")
    if not selector:
        env.log.error("input-> Selector not defined")
    visibility = env.get_input("Visibility")
    if visibility not in ("visible", "hidden"):
        env.log.error(f"input-> Visibility must be 'visible' or 'hidden', got '{visibility}'")
        return False
    page = _require_page(env)
    if page is None:
        return False
    await page.wait_for_selector(selector, state=visibility)
    env.log.info(f"Element {selector} became: {visibility}")
    return True
