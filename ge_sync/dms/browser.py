from __future__ import annotations

from typing import Any, Dict, Protocol

from playwright.async_api import Browser, Page, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ge_sync.config import SyncConfig
from ge_sync.dms.endpoints import DmsEndpoints
from ge_sync.dms.session import SessionProvider
from ge_sync.errors import SessionError
from ge_sync.json_logger import JsonLogger, log_event

BROWSER_USER_AGENT = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36"
BROWSER_VIEWPORT = {"width": 1400, "height": 900}
LOGIN_URL_MARKERS = ("sso", "login")


class OrderHtmlFetcher(Protocol):
    async def fetch_order_html(self, *, location_id: str, dms_loc: str, start_date: str, days: int) -> str: ...


async def launch_browser(*, playwright: Any, headless: bool, logger: JsonLogger) -> Browser:
    launch_kwargs: Dict[str, Any] = {
        "headless": headless,
        "args": ["--no-sandbox", "--disable-setuid-sandbox"],
    }
    log_event(
        logger=logger,
        phase="browser",
        message="Launching Playwright with bundled Chromium",
        headless=headless,
    )
    return await playwright.chromium.launch(**launch_kwargs)


async def _soft(page: Page, action: str, logger: JsonLogger, coro) -> None:
    try:
        await coro
    except (PlaywrightTimeoutError, PlaywrightError) as exc:
        log_event(
            logger=logger,
            phase="browser",
            status="warn",
            message="order data form action skipped",
            action=action,
            error=str(exc),
        )


class BrowserOrderFetcher:
    """Drive the order-data search form in headless Chromium with the session cookies replayed.

    Form interactions and the results-table wait are soft: a missing control or
    a timeout is logged and whatever the page holds at that point is returned.
    """

    def __init__(self, *, config: SyncConfig, session: SessionProvider, logger: JsonLogger) -> None:
        self.config = config
        self.session = session
        self.logger = logger
        self.endpoints = DmsEndpoints(config.dms_base_url)

    async def fetch_order_html(self, *, location_id: str, dms_loc: str, start_date: str, days: int) -> str:
        cookies = await self.session.get_valid_cookies(location_id)
        timeout = self.config.browser_timeout_ms
        async with async_playwright() as playwright:
            browser = await launch_browser(playwright=playwright, headless=self.config.headless, logger=self.logger)
            try:
                context = await browser.new_context(user_agent=BROWSER_USER_AGENT, viewport=BROWSER_VIEWPORT)
                await context.add_cookies(cookies)
                page = await context.new_page()
                await page.goto(self.endpoints.order_data, wait_until="networkidle")
                if any(marker in page.url.lower() for marker in LOGIN_URL_MARKERS):
                    raise SessionError("Order data page redirected to SSO login")

                await page.wait_for_timeout(1000)
                await _soft(page, "select_dms_loc", self.logger, page.select_option("#cbDmsLoc", value=dms_loc, timeout=timeout))
                await _soft(page, "fill_order_date", self.logger, page.fill("#orderDate", start_date, timeout=timeout))
                await _soft(page, "fill_days", self.logger, page.fill("#numberOfDays", str(days), timeout=timeout))
                await _soft(
                    page,
                    "check_show_orders",
                    self.logger,
                    page.check('input[name="radShowOrders"][value="ALL"]', timeout=timeout),
                )
                await _soft(
                    page,
                    "check_show_status",
                    self.logger,
                    page.check('input[name="radShowStatus"][value="ALL"]', timeout=timeout),
                )

                await page.click("#dms_search_button", timeout=timeout)
                await page.wait_for_timeout(2000)
                await _soft(page, "wait_table_list", self.logger, page.wait_for_selector("#table_list", timeout=timeout))
                return await page.content()
            finally:
                await browser.close()
