"""Shared fixtures for all tests."""

from __future__ import annotations

from collections import deque
from pathlib import Path

import lxml.html
import pytest

from creditmut_fetch.config import Config
from creditmut_fetch.session import BrowserSession, Link, PageResponse
from creditmut_fetch.utils import TransactionNormalizer

FIXTURES_DIR = Path(__file__).parent / "fixtures"

OVERVIEW_URL = "https://www.creditmutuel.fr/comptes/"
ACCOUNT_URL = "https://www.creditmutuel.fr/banque/mouvements.cgi?webid=1"
EXPORT_URL = "https://www.creditmutuel.fr/banque/telechargement.cgi?webid=1&fmt=xp"

EXPORT_LINES = [
    "Date;Date valeur;Credit;Debit;Libelle;Solde",
    "31/12/2003;31/12/2003;;-25,50;CB SUPERMARCHE 30/12;1209,06",
    "02/01/2004;02/01/2004;1'234,56;;VIR SALAIRE DECEMBRE;2443,62",
    "05/01/2004;06/01/2004;;;FRAIS TENUE DE COMPTE;2443,62",
]


class FakeSession(BrowserSession):
    """
    A scripted BrowserSession.

    Only the primitives that would drive Playwright are replaced: `pages` maps
    URLs to HTML returned by `get`, `after_login` is the page shown once the
    form is submitted and `downloads` maps URLs to the bodies returned by
    `fetch`. `queued` holds responses returned by `get` before `pages` is used.
    Every call is recorded in `calls`.
    """

    def __init__(self, config=None, pages=None, after_login="", downloads=None, queued=()):
        super().__init__(page=None, config=config or Config())
        self.pages = dict(pages or {})
        self.after_login = after_login
        self.downloads = dict(downloads or {})
        self.queued = deque(queued)
        self.calls = []
        self._url = "about:blank"
        self._html = ""

    @property
    def url(self) -> str:
        return self._url

    def get(self, url):
        self.calls.append(("get", url))
        if self.queued:
            response = self.queued.popleft()
            self._url, self._html = url, response.text
            return response
        html = self.pages.get(url, "")
        self._url, self._html = url, html
        return PageResponse(url=url, status=200, status_text="OK", body=html.encode("utf-8"))

    def submit_form(self, form_number, fields):
        self.calls.append(("submit_form", form_number, dict(fields)))
        self._html = self.after_login
        return PageResponse(url=self._url, status=200, status_text="OK",
                            body=self.after_login.encode("utf-8"))

    def content(self):
        return self._html

    def links(self):
        if not self._html:
            return []
        document = lxml.html.fromstring(self._html)
        return [
            Link(url=a.get("href"), text=TransactionNormalizer.clean_text(a.text_content()))
            for a in document.iter("a")
            if a.get("href") is not None
        ]

    def fetch(self, url, encoding=None):
        self.calls.append(("fetch", url))
        body = self.downloads.get(url)
        if body is None:
            return PageResponse(url=url, status=404, status_text="Not Found")
        return PageResponse(url=url, status=200, status_text="OK", body=body,
                            encoding=encoding or self.config.creditmutuel.export_encoding)

    def close(self):
        self.calls.append(("close",))


@pytest.fixture
def config() -> Config:
    """Default configuration, independent of any local config file."""
    return Config()


@pytest.fixture
def login_html() -> str:
    return (FIXTURES_DIR / "login.html").read_text(encoding="utf-8")


@pytest.fixture
def overview_html() -> str:
    return (FIXTURES_DIR / "overview.html").read_text(encoding="utf-8")


@pytest.fixture
def browser_overview_html() -> str:
    """The overview as a browser serializes it: explicit <tbody>, accounts table nested in the page layout."""
    return (FIXTURES_DIR / "overview_browser.html").read_text(encoding="utf-8")


@pytest.fixture
def account_html() -> str:
    return (FIXTURES_DIR / "account.html").read_text(encoding="utf-8")


@pytest.fixture
def export_body() -> bytes:
    """A statement export, CRLF separated and latin-1 encoded like the bank's."""
    return ("\r\n".join(EXPORT_LINES) + "\r\n").encode("latin-1")


@pytest.fixture
def fake_session(config, login_html, browser_overview_html, account_html, export_body) -> FakeSession:
    return FakeSession(
        config=config,
        pages={OVERVIEW_URL: login_html, ACCOUNT_URL: account_html},
        after_login=browser_overview_html,
        downloads={EXPORT_URL: export_body},
    )
