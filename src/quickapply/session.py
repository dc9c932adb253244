"""Browser session bootstrap: launch, cookies, login."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from playwright.sync_api import BrowserContext, Page, sync_playwright
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from quickapply import config
from quickapply import selectors as sel
from quickapply.config import BrowserConfig, RunConfig
from quickapply.errors import FatalConfig, NavigationTimeout

log = logging.getLogger(__name__)


@contextmanager
def open_browser(browser_cfg: BrowserConfig) -> Iterator[BrowserContext]:
    """Launch Chromium and yield a fresh context; closes everything on exit."""
    log.info("Launching browser (headless=%s, slow_mo=%dms)", browser_cfg.headless, browser_cfg.slow_mo)
    with sync_playwright() as p:
        browser = p.chromium.launch(headless=browser_cfg.headless, slow_mo=browser_cfg.slow_mo)
        try:
            context = browser.new_context(user_agent=browser_cfg.user_agent)
            context.set_default_timeout(browser_cfg.default_timeout)
            yield context
        finally:
            browser.close()


def load_cookies(context: BrowserContext, path: Path = config.COOKIE_PATH) -> bool:
    if not path.exists():
        log.info("No saved cookies at %s", path)
        return False
    cookies = json.loads(path.read_text(encoding="utf-8"))
    context.add_cookies(cookies)
    log.info("Loaded %d cookies from %s", len(cookies), path)
    return True


def save_cookies(context: BrowserContext, path: Path = config.COOKIE_PATH) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(context.cookies(), indent=2), encoding="utf-8")
    log.info("Saved cookies to %s", path)


def login_if_needed(page: Page, run_cfg: RunConfig) -> bool:
    """Open the feed and log in only if the login form shows up.

    Returns True if a login was performed.
    """
    page.goto(sel.FEED_URL, wait_until="domcontentloaded", timeout=int(config.DEFAULTS["page_load_ms"]))
    if page.query_selector(sel.LOGIN_FORM) is None:
        log.info("Already authenticated.")
        return False

    log.info("Not authenticated, logging in.")
    if not run_cfg.username or not run_cfg.password:
        raise FatalConfig("SITE_USERNAME/SITE_PASSWORD", "Credentials are needed because the saved session expired.")

    page.goto(sel.LOGIN_URL, wait_until="networkidle", timeout=int(config.DEFAULTS["page_load_ms"]))
    page.fill(sel.LOGIN_USERNAME, run_cfg.username)
    page.fill(sel.LOGIN_PASSWORD, run_cfg.password)
    page.click(sel.LOGIN_SUBMIT)
    try:
        page.wait_for_selector(sel.PROFILE_MARKER, timeout=int(config.DEFAULTS["element_wait_ms"]))
    except PlaywrightTimeoutError as exc:
        raise NavigationTimeout(
            sel.PROFILE_MARKER, "login did not complete; check credentials or solve the captcha"
        ) from exc
    log.info("Logged in.")
    return True
