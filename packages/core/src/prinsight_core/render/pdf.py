"""HTML-to-PDF rasterization through headless Chromium (Playwright)."""

from __future__ import annotations

import logging
from pathlib import Path

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from prinsight_core.errors import BrowserLaunchError, RenderError, RenderTimeoutError

logger = logging.getLogger(__name__)

LAUNCH_ARGS = ["--no-sandbox", "--disable-setuid-sandbox", "--disable-dev-shm-usage"]
PAGE_MARGIN = {"top": "20px", "right": "20px", "bottom": "20px", "left": "20px"}


def html_to_pdf(
    html_path: Path,
    pdf_path: Path,
    executable_path: str | None = None,
    timeout_ms: int = 30000,
) -> Path:
    """Load ``html_path`` in a headless browser and print it to ``pdf_path``.

    A4, backgrounds printed, 20px margins on every side. The browser is always
    closed, whether or not printing succeeds.
    """
    with sync_playwright() as playwright:
        try:
            browser = playwright.chromium.launch(
                headless=True,
                executable_path=executable_path,
                args=LAUNCH_ARGS,
            )
        except PlaywrightError as e:
            logger.error("Could not launch headless browser: %s", e)
            raise BrowserLaunchError(f"Could not launch headless browser: {e}") from e

        try:
            page = browser.new_page()
            page.goto(html_path.resolve().as_uri(), wait_until="networkidle", timeout=timeout_ms)
            page.pdf(
                path=str(pdf_path),
                format="A4",
                print_background=True,
                margin=PAGE_MARGIN,
            )
        except PlaywrightTimeoutError as e:
            raise RenderTimeoutError(f"Timed out after {timeout_ms}ms rendering {html_path.name}") from e
        except PlaywrightError as e:
            raise RenderError(f"PDF rendering failed for {html_path.name}: {e}") from e
        finally:
            browser.close()

    logger.debug("Wrote PDF %s", pdf_path)
    return pdf_path
