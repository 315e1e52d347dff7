import re
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple
from urllib.parse import urljoin

import lxml.html

from .base import BankDownloader
from .config import Config, CreditMutuelConfig, StatementLayout, settings
from .errors import RemoteError, StatementParseError
from .models import Account, Statement
from .session import BrowserSession
from .utils import TransactionNormalizer

AccountRow = Tuple[str, str, str]


class CreditMutuelDownloader(BankDownloader):
    """
    Fetcher for Crédit Mutuel (CyberMut home banking).

    The site is plain HTML, driven the way a user would:
    1.  Login: open the accounts page, which answers with the login form, and
        submit the first form with the username and password.
    2.  Accounts: the landing page shows a table of accounts with their
        balance, split into a debit and a credit column. Each account whose
        link leads to the movements page (`mouvements.cgi`) becomes an
        Account. Other accounts (e.g. mortgages) have no export and are left
        out.
    3.  Statements: fetched lazily per account by following the "XP" export
        link of its movements page and parsing the semicolon-separated text.
    """

    def get_bank_name(self) -> str:
        """Return the unique identifier for this bank."""
        return "creditmutuel"

    @property
    def bank_config(self) -> CreditMutuelConfig:
        return self.config.creditmutuel

    def login(self, username: str, password: str):
        """
        Open the accounts page and submit the login form.

        The site sometimes answers with an empty page (redirect loop on its
        side): the request is repeated up to `max_overview_attempts` times.
        """
        cfg = self.bank_config
        response = None
        for attempt in range(1, cfg.max_overview_attempts + 1):
            response = self.session.get(cfg.overview_url)
            if response.text:
                break
            if self.config.debug:
                print(f"[CREDITMUTUEL] Empty page from {cfg.overview_url} (attempt {attempt})")

        if response.is_error:
            raise RemoteError.from_response(response, "loading the accounts page")
        if not response.text:
            raise RemoteError(
                f"Empty page from {cfg.overview_url} after {cfg.max_overview_attempts} attempts",
                status=response.status,
                url=response.url,
                detail=response.detail,
            )

        if self.config.debug:
            print("[CREDITMUTUEL] Submitting login form...")
        click = self.session.submit_form(
            cfg.login_form_number,
            {
                cfg.username_field: username,
                cfg.password_field: password,
            },
        )
        if click.is_error:
            raise RemoteError.from_response(click, "submitting the login form")

    def fetch_accounts(self) -> List[Account]:
        """Scrape the accounts overview table of the current page."""
        cfg = self.bank_config
        rows = extract_account_rows(self.session.content(), cfg.account_table_headers)
        if not rows and self.config.debug:
            print("[CREDITMUTUEL] No accounts found on the overview page.")

        statement_link_re = re.compile(cfg.statement_link_pattern)
        accounts = []
        for label, debit, credit in rows:
            # The label also holds the account number; the link to the
            # account shows the same text.
            link = self.session.find_link(re.escape(label))

            # Only accounts shown through the movements page offer an export
            if link is None or not statement_link_re.search(link.url):
                continue

            balance, currency = parse_balance(debit, credit, cfg.default_currency)
            accounts.append(build_account(
                label,
                balance,
                currency,
                link.url,
                urljoin(cfg.statement_url_prefix, link.url),
                self.session,
                self.config,
            ))
            if self.config.debug:
                print(f"[CREDITMUTUEL] Found account: {label} ({balance} {currency})")

        return accounts


def check_balance(username: str, password: str, session: Optional[BrowserSession] = None,
                  config: Optional[Config] = None) -> List[Account]:
    """
    Return one Account for each Crédit Mutuel account with a statement export.

    `session` defaults to a newly launched browser session. Statements are
    fetched through it on demand, so it stays open: close it with
    `accounts[0].session.close()`, or pass your own session from a
    `with BrowserSession.launch() as session:` block.
    """
    downloader = CreditMutuelDownloader(session=session, config=config or settings)
    return downloader.check_balance(username, password)


def extract_account_rows(html: str, headers: Sequence[str]) -> List[AccountRow]:
    """
    Find the accounts table of an overview page and return its data rows.

    The table is the one containing a row whose cells match, from left to
    right, each of `headers`. Every following row gives a (label, debit,
    credit) triple taken from the matched columns, trimmed and with
    whitespace collapsed. Rows without a label are ignored.

    Only a table's own rows are read: the rows of tables nested in its cells
    belong to those tables.
    """
    tables = list(lxml.html.fromstring(html).iter("table")) if html.strip() else []
    if not tables:
        print("Warning: No table found on the accounts overview page.")
        return []

    rows: List[AccountRow] = []
    for table in tables:
        table_rows = _table_rows(table)
        for index, row in enumerate(table_rows):
            columns = _match_header(row, headers)
            if columns is None:
                continue
            for data in table_rows[index + 1:]:
                label, debit, credit = (
                    TransactionNormalizer.clean_text(data[c]) if c < len(data) else ""
                    for c in columns
                )
                if label:
                    rows.append((label, debit, credit))
            break
    return rows


def _table_rows(table) -> List[List[str]]:
    depth = len(list(table.iterancestors("table"))) + 1
    return [
        [_cell_text(cell, depth) for cell in tr.xpath("./td|./th")]
        for tr in table.xpath("./tr|./thead/tr|./tbody/tr|./tfoot/tr")
    ]


def _cell_text(cell, depth: int) -> str:
    # Text of nested tables is left out
    return "".join(cell.xpath(".//text()[count(ancestor::table) = $depth]", depth=depth))


def _match_header(row: Sequence[str], headers: Sequence[str]) -> Optional[List[int]]:
    columns = []
    start = 0
    for header in headers:
        wanted = TransactionNormalizer.clean_text(header)
        for position in range(start, len(row)):
            if re.search(re.escape(wanted), TransactionNormalizer.clean_text(row[position]), re.IGNORECASE):
                columns.append(position)
                start = position + 1
                break
        else:
            return None
    return columns


def parse_balance(debit: str, credit: str, default_currency: str = "EUR") -> Tuple[Decimal, str]:
    """
    Combine the debit and credit cells of an overview row into (balance, currency).

    Only one of the two cells is filled. A debit is returned as a negative
    amount.
    """
    cell = debit if debit else credit
    amount_text, currency = TransactionNormalizer.split_balance_cell(cell)
    balance = TransactionNormalizer.parse_amount(amount_text)
    if debit and balance:
        balance = -abs(balance)
    return balance, currency or default_currency


def build_account(label: str, balance: Decimal, currency: str, statement_link: str,
                  statement_url: str, session: Optional[BrowserSession] = None,
                  config: Optional[Config] = None) -> Account:
    """Create an Account from an overview label such as "123456789 01 Compte Courant"."""
    split = TransactionNormalizer.split_account_label(label)
    if split is None:
        print(f"Warning: Could not read an account number from '{label}'")
        account_no, name = "", label
    else:
        account_no, name = split

    return Account(
        name=name,
        account_no=account_no,
        balance=balance,
        currency=currency,
        statement_link=statement_link,
        statement_url=statement_url,
        session=session,
        config=config,
    )


def parse_statement_line(line: str, layout: StatementLayout, field_separator: str = ";",
                         thousands_separators: str = "'") -> Statement:
    """
    Parse one line of a statement export.

    Credits and debits sit in two columns: the credit field is used when it
    is filled, the debit one otherwise. Empty amounts give 0.
    """
    fields = line.split(field_separator)
    if len(fields) < layout.min_fields:
        raise StatementParseError(
            f"Statement line has {len(fields)} fields, expected at least {layout.min_fields}: {line!r}",
            line=line,
        )

    credit = fields[layout.credit].strip()
    raw_amount = credit if credit else fields[layout.debit]
    amount = TransactionNormalizer.parse_amount(raw_amount, thousands_separators)
    if not credit and layout.negate_debit and amount:
        amount = -abs(amount)

    return Statement(
        date=TransactionNormalizer.shorten_year(fields[layout.date]),
        description=fields[layout.description],
        amount=amount,
        fields=fields,
    )


def parse_statement_export(text: str, cfg: CreditMutuelConfig) -> List[Statement]:
    """Parse a whole export: the first line is a header, blank lines are ignored."""
    lines = text.split(cfg.export_line_separator)
    statements = []
    for line in lines[1:]:
        line = line.rstrip("\r\n")
        if not line:
            continue
        statements.append(parse_statement_line(
            line,
            cfg.statement_layout,
            field_separator=cfg.export_field_separator,
            thousands_separators=cfg.thousands_separators,
        ))
    return statements


def fetch_statements(session: BrowserSession, statement_url: str,
                     config: Optional[Config] = None) -> List[Statement]:
    """Download the export of the account at `statement_url` and parse it."""
    config = config or settings
    cfg = config.creditmutuel

    page = session.get(statement_url)
    if page.is_error:
        raise RemoteError.from_response(page, "loading the account page")

    export = session.follow_link(cfg.export_link_pattern, encoding=cfg.export_encoding)
    if export.is_error:
        raise RemoteError.from_response(export, "downloading the statement export")

    statements = parse_statement_export(export.text, cfg)
    if config.debug:
        print(f"[CREDITMUTUEL] Retrieved {len(statements)} statements from {statement_url}")
    return statements
