"""Playwright browser sessions for UI scenarios."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from playwright.sync_api import sync_playwright

from rigger.core.models import ResourceKind
from rigger.resources.base import ResourceFactory

if TYPE_CHECKING:
    from playwright.sync_api import Browser, BrowserContext, Page, Playwright

    from rigger.config.schema import BrowserConfig, ProfileConfig

logger = logging.getLogger(__name__)

# Configured browser name -> (playwright engine, channel)
BROWSER_ENGINES = {
    "chromium": ("chromium", None),
    "chrome": ("chromium", "chrome"),
    "edge": ("chromium", "msedge"),
    "firefox": ("firefox", None),
    "webkit": ("webkit", None),
    "safari": ("webkit", None),
}


def resolve_browser(name: str) -> tuple[str, Optional[str]]:
    """Map a configured browser name to a Playwright engine and channel.

    Raises:
        ValueError: If the browser is not supported
    """
    try:
        return BROWSER_ENGINES[name.lower()]
    except KeyError:
        raise ValueError(f"Unsupported browser: {name}") from None


class UiSession:
    """A launched browser with one context and page.

    Must only be used from the worker thread that created it.
    """

    def __init__(
        self,
        playwright: "Playwright",
        browser: "Browser",
        context: "BrowserContext",
        page: "Page",
        browser_name: str,
    ):
        self.playwright = playwright
        self.browser = browser
        self.context = context
        self.page = page
        self.browser_name = browser_name

    def is_alive(self) -> bool:
        """Liveness check: browser connected and page still open."""
        return self.browser.is_connected() and not self.page.is_closed()

    def goto(self, url: str) -> None:
        self.page.goto(url)

    def screenshot(self, path: Path) -> Path:
        """Save a full-page screenshot."""
        self.page.screenshot(path=str(path), full_page=True)
        return path

    def close(self) -> None:
        """Close context, browser and the Playwright driver.

        Every step is attempted; the first error is raised afterwards.
        """
        first_error: Optional[Exception] = None
        for step in (self.context.close, self.browser.close, self.playwright.stop):
            try:
                step()
            except Exception as e:
                logger.debug(f"Error during browser shutdown: {e}")
                if first_error is None:
                    first_error = e
        if first_error is not None:
            raise first_error


class BrowserSessionFactory(ResourceFactory):
    """Launches Playwright browser sessions."""

    kind = ResourceKind.UI_SESSION

    def __init__(self, config: BrowserConfig):
        self.config = config

    def create(self, profile: ProfileConfig) -> UiSession:
        engine, channel = resolve_browser(self.config.name)
        logger.info(
            f"Launching {self.config.name} (headless={self.config.headless})"
        )

        playwright = sync_playwright().start()
        try:
            launch_options = {"headless": self.config.headless}
            if channel:
                launch_options["channel"] = channel
            browser = getattr(playwright, engine).launch(**launch_options)
        except Exception:
            playwright.stop()
            raise

        try:
            context = browser.new_context(
                viewport={
                    "width": self.config.viewport_width,
                    "height": self.config.viewport_height,
                },
                base_url=profile.ui_base_url,
            )
            context.set_default_timeout(self.config.timeout_ms)
            context.set_default_navigation_timeout(self.config.navigation_timeout_ms)
            page = context.new_page()
        except Exception:
            browser.close()
            playwright.stop()
            raise

        session = UiSession(
            playwright=playwright,
            browser=browser,
            context=context,
            page=page,
            browser_name=self.config.name,
        )

        if self.config.navigate_on_start and profile.ui_base_url:
            try:
                session.goto(profile.ui_base_url)
            except Exception:
                session.close()
                raise

        return session

    def is_valid(self, handle: UiSession) -> bool:
        return handle.is_alive()

    def close(self, handle: UiSession) -> None:
        handle.close()
