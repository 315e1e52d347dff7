"""
Browser session used to drive the home-banking website.

`BrowserSession` wraps a Playwright (sync API) page and its browser context:
cookies live in the context, the page holds the "current page" state. The few
primitives that touch Playwright (`get`, `submit_form`, `content`, `links`,
`fetch`) are kept small so that everything built on top of them (link lookup,
link following) is plain Python.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Union
from urllib.parse import urljoin

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page, sync_playwright

from .config import Config, settings
from .errors import RemoteError
from .utils import TransactionNormalizer

_CHARSET_RE = re.compile(r'charset=["\']?([\w.:-]+)', re.IGNORECASE)


@dataclass(frozen=True)
class Link:
    """A hyperlink found on the current page."""
    url: str
    text: str


@dataclass
class PageResponse:
    """The outcome of a navigation, form submission or fetch."""
    url: str
    status: int
    status_text: str = ""
    body: bytes = b""
    encoding: str = "utf-8"

    @property
    def text(self) -> str:
        return self.body.decode(self.encoding, errors="replace")

    @property
    def is_error(self) -> bool:
        return self.status >= 400

    @property
    def detail(self) -> str:
        status = " ".join(part for part in (str(self.status), self.status_text) if part)
        return f"{status} ({self.url})"


def _charset(headers: Dict[str, str], default: str) -> str:
    match = _CHARSET_RE.search(headers.get("content-type", ""))
    return match.group(1) if match else default


class BrowserSession:
    """
    A single, stateful browsing session (cookies + current page).

    Create one with `BrowserSession.launch()`, preferably as a context manager.
    The session is not thread-safe and must not be shared by concurrent flows.
    """

    def __init__(self, page: Optional[Page], config: Config = settings,
                 playwright=None, browser=None):
        self.page = page
        self.config = config
        self._playwright = playwright
        self._browser = browser

    @classmethod
    def launch(cls, config: Config = settings) -> "BrowserSession":
        """
        Start Playwright and open a fresh Chromium context.

        The context gets the configured user agent, an empty cookie store, the
        configured timeout for every action and, in debug mode, a HAR recording
        of the network traffic.
        """
        playwright = sync_playwright().start()
        try:
            browser = playwright.chromium.launch(headless=config.headless)
            context_args = {
                "user_agent": config.user_agent,
                "locale": "fr-FR",
                "accept_downloads": False,
            }
            if config.debug:
                timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
                config.debug_logs_path.mkdir(parents=True, exist_ok=True)
                har_path = config.debug_logs_path / f"creditmutuel_{timestamp}.har"
                print(f"Network traffic will be recorded to: {har_path}")
                context_args["record_har_path"] = str(har_path)

            context = browser.new_context(**context_args)
            context.set_default_timeout(config.timeout)
            context.set_default_navigation_timeout(config.timeout)
            page = context.new_page()
        except Exception:
            playwright.stop()
            raise
        return cls(page, config, playwright=playwright, browser=browser)

    def __enter__(self) -> "BrowserSession":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self):
        """Close the browser context and stop Playwright."""
        if self.page is not None:
            try:
                self.page.context.close()
            except PlaywrightError as e:
                print(f"Warning: Error closing context: {e}")
        if self._browser is not None:
            self._browser.close()
            self._browser = None
        if self._playwright is not None:
            self._playwright.stop()
            self._playwright = None

    @property
    def url(self) -> str:
        """URL of the current page."""
        return self.page.url

    def get(self, url: str) -> PageResponse:
        """Navigate the current page to `url`."""
        try:
            response = self.page.goto(url, wait_until="load")
        except PlaywrightError as e:
            raise RemoteError(f"Could not load {url}: {e}", url=url, detail=str(e)) from e
        return self._wrap(response, url)

    def submit_form(self, form_number: int, fields: Dict[str, str]) -> PageResponse:
        """
        Fill and submit the `form_number`-th form (1-based) of the current page.

        Values are assigned through the DOM, so read-only inputs are filled
        too, and the form is submitted without running its submit handlers.
        """
        forms = self.page.locator("form")
        if forms.count() < form_number:
            raise RemoteError(f"No form number {form_number} on {self.url}", url=self.url)
        form = forms.nth(form_number - 1)

        try:
            with self.page.expect_navigation(wait_until="load") as navigation:
                form.evaluate(
                    """(form, fields) => {
                        for (const [name, value] of Object.entries(fields)) {
                            const input = form.elements.namedItem(name);
                            if (!input) {
                                throw new Error(`No such field '${name}'`);
                            }
                            input.value = value;
                        }
                        HTMLFormElement.prototype.submit.call(form);
                    }""",
                    fields,
                )
            response = navigation.value
        except PlaywrightError as e:
            raise RemoteError(f"Could not submit form on {self.url}: {e}",
                              url=self.url, detail=str(e)) from e
        return self._wrap(response, self.url)

    def content(self) -> str:
        """HTML of the current page."""
        return self.page.content()

    def links(self) -> List[Link]:
        """Every hyperlink of the current page, with whitespace-collapsed text."""
        raw_links = self.page.eval_on_selector_all(
            "a[href]",
            "els => els.map(e => ({href: e.getAttribute('href'), text: e.textContent || ''}))",
        )
        return [
            Link(url=link["href"], text=TransactionNormalizer.clean_text(link["text"]))
            for link in raw_links
        ]

    def find_link(self, text_regex: Union[str, re.Pattern]) -> Optional[Link]:
        """Return the first link whose text matches `text_regex`."""
        pattern = re.compile(text_regex) if isinstance(text_regex, str) else text_regex
        for link in self.links():
            if pattern.search(link.text):
                return link
        return None

    def follow_link(self, text_regex: Union[str, re.Pattern],
                    encoding: Optional[str] = None) -> PageResponse:
        """
        Fetch the target of the first link whose text matches `text_regex`.

        The target is resolved against the current URL and downloaded with the
        session cookies; the current page is left where it is.
        """
        link = self.find_link(text_regex)
        if link is None:
            pattern = getattr(text_regex, "pattern", text_regex)
            raise RemoteError(f"No link matching '{pattern}' on {self.url}", url=self.url)
        return self.fetch(urljoin(self.url, link.url), encoding=encoding)

    def fetch(self, url: str, encoding: Optional[str] = None) -> PageResponse:
        """
        HTTP GET `url` with the session cookies, without navigating.

        The body is decoded with the charset the response declares, else with
        `encoding`, else with the session's `export_encoding`. The timeout is
        always the session's.
        """
        try:
            response = self.page.context.request.get(url, timeout=self.config.timeout)
            body = response.body()
        except PlaywrightError as e:
            raise RemoteError(f"Could not fetch {url}: {e}", url=url, detail=str(e)) from e
        return PageResponse(
            url=response.url,
            status=response.status,
            status_text=response.status_text,
            body=body,
            encoding=_charset(response.headers, encoding or self.config.creditmutuel.export_encoding),
        )

    def _wrap(self, response, url: str) -> PageResponse:
        # Same-document navigations have no response: treat them as empty pages
        if response is None:
            return PageResponse(url=url, status=200, status_text="OK")
        try:
            body = response.body()
        except PlaywrightError:
            body = b""
        return PageResponse(
            url=response.url,
            status=response.status,
            status_text=response.status_text,
            body=body,
            encoding=_charset(response.headers, "utf-8"),
        )
