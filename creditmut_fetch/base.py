from abc import ABC, abstractmethod
from typing import List, Optional
from .config import Config, settings
from .errors import CredentialsError
from .models import Account
from .session import BrowserSession


class BankDownloader(ABC):
    """
    Abstract base class for bank balance/statement fetchers.

    This class defines the interface that a bank-specific fetcher must implement.
    It validates the credentials, creates the browser session when the caller
    did not provide one, and runs the high-level flow (login -> accounts).

    The session is shared with every returned Account: statements are fetched
    lazily through it, so it must stay open while they are read and must not
    be used from two places at once.
    """

    def __init__(self, session: Optional[BrowserSession] = None, config: Config = settings):
        self.config = config
        self.session = session

        if self.config.debug:
            bank_name = self.get_bank_name()
            bank_config = getattr(self.config, bank_name, None)
            if bank_config is not None:
                print(f"[{bank_name.upper()}] Configuration: {bank_config.model_dump()}")

    def check_balance(self, username: str, password: str) -> List[Account]:
        """
        Log in and return one Account per supported account.

        Steps:
        1.  Checks that both credentials are present (no I/O otherwise).
        2.  Launches a browser session if none was given.
        3.  Performs the login.
        4.  Scrapes the accounts overview.
        """
        if not password:
            raise CredentialsError("Must provide a password")
        if not username:
            raise CredentialsError("Must provide a username")

        owns_session = self.session is None
        if owns_session:
            self.session = BrowserSession.launch(self.config)

        try:
            self.login(username, password)
            return self.fetch_accounts()
        except Exception as e:
            if self.config.debug:
                print(f"\n{'='*60}")
                print(f"CRITICAL ERROR: {e}")
                print(f"Network traffic has been recorded under {self.config.debug_logs_path}")
                print(f"{'='*60}\n")
                import traceback
                traceback.print_exc()
            # A session launched here is closed here on failure
            if owns_session:
                self.session.close()
                self.session = None
            raise

    @abstractmethod
    def login(self, username: str, password: str):
        """
        Perform login actions.

        This method should navigate to the login page and submit the
        credentials, leaving the session on the authenticated landing page.
        """
        pass

    @abstractmethod
    def fetch_accounts(self) -> List[Account]:
        """
        Extract the accounts from the current (authenticated) page.

        Returns:
            A list of Account objects bound to the session.
        """
        pass

    @abstractmethod
    def get_bank_name(self) -> str:
        """Return unique bank identifier, also the name of its config section."""
        pass
