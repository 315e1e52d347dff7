import argparse
import getpass
import os
import sys
import pandas as pd
from typing import List

"""
creditmut-fetch - Main Entry Point

This script is a small command-line front end to the creditmut_fetch library.
It logs into Crédit Mutuel, prints every account with its balance and,
optionally, its statements. Nothing is written to disk.

Usage:
    python main.py --username <id>                  # List accounts and balances
    python main.py --username <id> --statements     # Also print each statement
    python main.py --username <id> --csv            # Statements of all accounts as CSV
    python main.py --username <id> --show-browser   # Watch the browser while it runs

The password is read from --password, the CREDITMUT_FETCH_PASSWORD environment
variable, or prompted for.

Dependencies:
- playwright: For browser automation.
- pandas: For the CSV output.
- creditmut_fetch.*: Internal modules for the bank logic.
"""
from creditmut_fetch.config import settings, STATEMENT_LAYOUTS
from creditmut_fetch.creditmutuel import check_balance
from creditmut_fetch.errors import FetchError
from creditmut_fetch.models import Account, Statement
from creditmut_fetch.session import BrowserSession


def build_statement_frame(accounts: List[Account]) -> pd.DataFrame:
    """
    Return the statements of every account as one DataFrame.

    Each row carries the account number and name next to the statement fields.
    """
    rows = []
    for account in accounts:
        for statement in account.statements():
            row = {
                'Account Number': account.account_no,
                'Account Name': account.name,
            }
            row.update(statement.to_csv_row())
            rows.append(row)
    return pd.DataFrame(rows, columns=['Account Number', 'Account Name'] + Statement.CSV_FIELDS)


def print_accounts(accounts: List[Account], with_statements: bool = False):
    """Print accounts the way the library's synopsis shows them."""
    for account in accounts:
        print(f"       Name {account.name}")
        print(f" Account_no {account.account_no}")
        print(f"    Balance {account.balance} {account.currency}")
        if with_statements:
            print("  Statement")
            for statement in account.statements():
                print(statement.as_string())
        print()


def main():
    parser = argparse.ArgumentParser(description="creditmut-fetch - Crédit Mutuel balance and statement fetcher")
    parser.add_argument(
        "--username",
        default=os.environ.get("CREDITMUT_FETCH_USERNAME"),
        help="Crédit Mutuel user id (default: $CREDITMUT_FETCH_USERNAME)"
    )
    parser.add_argument(
        "--password",
        default=os.environ.get("CREDITMUT_FETCH_PASSWORD"),
        help="Password (default: $CREDITMUT_FETCH_PASSWORD, or prompt)"
    )
    parser.add_argument(
        "--statements",
        action="store_true",
        help="Print the statements of every account"
    )
    parser.add_argument(
        "--csv",
        action="store_true",
        help="Write the statements of every account to stdout as CSV"
    )
    parser.add_argument(
        "--layout",
        choices=list(STATEMENT_LAYOUTS.keys()),
        help="Statement export layout (overrides config)"
    )
    parser.add_argument(
        "--headless",
        action="store_true",
        help="Run in headless mode (overrides config)"
    )
    parser.add_argument(
        "--show-browser",
        action="store_true",
        help="Show the browser window (overrides config)"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode (HAR recording, verbose output, traceback on error)"
    )

    args = parser.parse_args()

    # Update config from args
    if args.headless:
        settings.headless = True
    if args.show_browser:
        settings.headless = False
    if args.debug:
        settings.debug = True
    if args.layout:
        settings.creditmutuel.statement_layout = STATEMENT_LAYOUTS[args.layout]

    if not args.username:
        parser.error("a username is required (--username or $CREDITMUT_FETCH_USERNAME)")
    password = args.password or getpass.getpass("Crédit Mutuel password: ")

    with BrowserSession.launch(settings) as session:
        try:
            accounts = check_balance(args.username, password, session, settings)
            if args.csv:
                build_statement_frame(accounts).to_csv(sys.stdout, index=False)
            else:
                print_accounts(accounts, with_statements=args.statements)
        except FetchError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
