import re
from decimal import Decimal, InvalidOperation
from typing import Optional, Tuple

_NUMERIC_PREFIX_RE = re.compile(r'^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)')
_ACCOUNT_LABEL_RE = re.compile(r'(\d+.\d+)\s+(.*)')
_FOUR_DIGIT_YEAR_RE = re.compile(r'\d\d(\d\d)$')
_BALANCE_JUNK_RE = re.compile(r'[^-+.A-Z0-9]')
_TRAILING_CURRENCY_RE = re.compile(r'^(.*?)([A-Z]+)$')


class TransactionNormalizer:
    """
    Utility class for standardizing scraped values.

    This class provides static methods to clean the text of table cells and
    links, and to turn the French-formatted amounts and dates of the bank's
    pages and exports into normalized values.
    """

    @staticmethod
    def clean_text(text: Optional[str]) -> str:
        """Trim and collapse every run of whitespace (including non-breaking spaces) to one blank."""
        if not text:
            return ""
        return re.sub(r'\s+', ' ', str(text)).strip()

    @staticmethod
    def parse_amount(text: Optional[str], thousands_separators: str = "'") -> Decimal:
        """
        Convert a French-formatted amount string into a Decimal.

        Thousands separators are removed and the first decimal comma becomes a
        point. Only the leading numeric part is read, so "12,50 EUR" gives
        12.50; empty or unparseable input gives 0.

        This is the one place where scraped amounts are coerced to numbers.
        """
        if not text:
            return Decimal("0")

        cleaned = str(text)
        for separator in thousands_separators:
            cleaned = cleaned.replace(separator, "")
        cleaned = cleaned.replace(",", ".", 1)

        match = _NUMERIC_PREFIX_RE.match(cleaned)
        if not match:
            return Decimal("0")
        try:
            return Decimal(match.group(1))
        except InvalidOperation:
            return Decimal("0")

    @staticmethod
    def shorten_year(date_str: str) -> str:
        """Drop the century of a four-digit year ending the date: 31/12/2003 -> 31/12/03."""
        if not date_str:
            return ""
        return _FOUR_DIGIT_YEAR_RE.sub(r'\1', date_str)

    @staticmethod
    def split_account_label(label: str) -> Optional[Tuple[str, str]]:
        """
        Split an overview label such as "123456789 01 Compte Courant".

        Returns (account number, name), where every non-digit of the account
        number is replaced by a blank, or None when the label does not start
        with an account number.
        """
        match = _ACCOUNT_LABEL_RE.search(label or "")
        if not match:
            return None
        account_no = re.sub(r'\D', ' ', match.group(1))
        return account_no, match.group(2)

    @staticmethod
    def split_balance_cell(cell: str) -> Tuple[str, str]:
        """
        Split an overview balance cell such as "1 234,56EUR" into ("1234.56", "EUR").

        Decimal commas become points and everything but signs, digits, points
        and upper-case letters is dropped. The currency is empty when the cell
        has no trailing letters.
        """
        cleaned = _BALANCE_JUNK_RE.sub('', (cell or "").replace(',', '.'))
        match = _TRAILING_CURRENCY_RE.match(cleaned)
        if not match:
            return cleaned, ""
        return match.group(1), match.group(2)
