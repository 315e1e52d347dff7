from decimal import Decimal
from typing import Dict, Any, List, Optional, Sequence, Tuple
from abc import ABC, abstractmethod

"""
Data Models for creditmut-fetch

This module defines the structures returned to callers. Both models wrap a
dictionary of their values (so they can be flattened into a row for export)
and expose them through read-only properties: they are snapshots of what the
bank's website showed when it was scraped.

Key Classes:
- BaseModel: Abstract base class providing dictionary-based storage and row export.
- Statement: A single line of an account statement.
- Account: A bank account listed on the overview page, with lazily fetched statements.
"""

class BaseModel(ABC):
    """
    Abstract base model that wraps a raw data dictionary.

    Provides read access to the values and a flat row for CSV export.
    """
    CSV_FIELDS: List[str] = []

    def __init__(self, raw_data: Dict[str, Any]):
        self.raw_data = raw_data

    def get(self, key: str, default: Any = None) -> Any:
        return self.raw_data.get(key, default)

    @abstractmethod
    def get_required_csv_row(self) -> Dict[str, Any]:
        """
        Returns a dictionary of the required CSV fields and their values.
        """
        pass

    def to_csv_row(self) -> Dict[str, Any]:
        """Serializes the model to a CSV row dictionary, in CSV_FIELDS order."""
        row = self.get_required_csv_row()
        return {field: row.get(field, '') for field in self.CSV_FIELDS}

class Statement(BaseModel):
    """
    Represents a single statement line of an account.

    Statements are built by the export parser only, and are immutable.
    `fields` keeps the raw values of the export line.
    """
    CSV_FIELDS = [
        'Date',
        'Description',
        'Amount',
    ]

    def __init__(self, date: str, description: str, amount: Decimal, fields: Sequence[str] = ()):
        super().__init__({
            'Date': date,
            'Description': description,
            'Amount': amount,
        })
        self._fields = tuple(fields)

    @property
    def date(self) -> str:
        return self.get('Date', '')

    @property
    def description(self) -> str:
        return self.get('Description', '')

    @property
    def amount(self) -> Decimal:
        return self.get('Amount', Decimal("0"))

    @property
    def fields(self) -> Tuple[str, ...]:
        return self._fields

    def as_string(self, separator: str = "\t") -> str:
        """Returns date, description and amount joined by `separator` (a tab by default)."""
        return separator.join([self.date, self.description, str(self.amount)])

    def get_required_csv_row(self) -> Dict[str, Any]:
        return {
            'Date': self.date,
            'Description': self.description,
            'Amount': self.amount,
        }

    def __eq__(self, other):
        if not isinstance(other, Statement):
            return NotImplemented
        return self.raw_data == other.raw_data

    def __hash__(self):
        return hash((self.date, self.description, self.amount))

    def __repr__(self):
        return f"Statement({self.date!r}, {self.description!r}, {self.amount!r})"

class Account(BaseModel):
    """
    Represents a bank account listed on the accounts overview page.

    The account keeps a reference to the browser session it was scraped with:
    `statements()` navigates that session to the account's export the first
    time it is called and caches the result.
    """
    CSV_FIELDS = [
        'Account Name',
        'Account Number',
        'Sort Code',
        'Currency',
        'Current Balance',
        'Statement Link',
    ]

    def __init__(self, name: str, account_no: str, balance: Decimal, currency: str,
                 statement_link: str, statement_url: str, session=None, config=None):
        super().__init__({
            'Account Name': name,
            'Account Number': account_no,
            'Currency': currency,
            'Current Balance': balance,
            'Statement Link': statement_link,
            'Statement URL': statement_url,
        })
        self.session = session
        self.config = config
        self._statements: Optional[Tuple[Statement, ...]] = None

    @property
    def name(self) -> str:
        return self.get('Account Name', '')

    @property
    def account_no(self) -> str:
        return self.get('Account Number', '')

    @property
    def sort_code(self) -> Optional[str]:
        """Crédit Mutuel has no sort codes: always None."""
        return None

    @property
    def balance(self) -> Decimal:
        return self.get('Current Balance', Decimal("0"))

    @property
    def currency(self) -> str:
        return self.get('Currency', '')

    @property
    def statement_link(self) -> str:
        return self.get('Statement Link', '')

    @property
    def statement_url(self) -> str:
        return self.get('Statement URL', '')

    def statements(self) -> Tuple[Statement, ...]:
        """
        Return the statements of the account, in the order the bank lists them.

        The first call downloads and parses the account's export through the
        shared session; later calls return the same tuple without any request.
        """
        if self._statements is None:
            from .creditmutuel import fetch_statements
            self._statements = tuple(fetch_statements(self.session, self.statement_url, self.config))
        return self._statements

    def get_required_csv_row(self) -> Dict[str, Any]:
        return {
            'Account Name': self.name,
            'Account Number': self.account_no,
            'Sort Code': self.sort_code or '',
            'Currency': self.currency,
            'Current Balance': self.balance,
            'Statement Link': self.statement_link,
        }

    def __repr__(self):
        return f"Account({self.account_no!r}, {self.name!r}, {self.balance!r} {self.currency})"
