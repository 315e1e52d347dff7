"""
creditmut_fetch package.

This package logs into the Crédit Mutuel home-banking website with a
Playwright browser session, lists the accounts and their balances, and parses
each account's statement export.

    from creditmut_fetch import BrowserSession, check_balance

    with BrowserSession.launch() as session:
        for account in check_balance("username", "password", session):
            print(account.name, account.account_no, account.balance)
            for statement in account.statements():
                print(statement.as_string())
"""
from .config import VERSION as __version__
from .config import settings, Config, CreditMutuelConfig, StatementLayout, STATEMENT_LAYOUTS
from .errors import FetchError, CredentialsError, RemoteError, StatementParseError
from .models import Account, Statement
from .session import BrowserSession, Link, PageResponse
from .base import BankDownloader
from .creditmutuel import CreditMutuelDownloader, check_balance

__all__ = [
    "__version__",
    "settings",
    "Config",
    "CreditMutuelConfig",
    "StatementLayout",
    "STATEMENT_LAYOUTS",
    "FetchError",
    "CredentialsError",
    "RemoteError",
    "StatementParseError",
    "Account",
    "Statement",
    "BrowserSession",
    "Link",
    "PageResponse",
    "BankDownloader",
    "CreditMutuelDownloader",
    "check_balance",
]
