"""
Configuration Management Module

This module defines the configuration schema for creditmut-fetch using Pydantic.
It handles:
1.  Loading configuration from YAML files (e.g., `config.yaml`).
2.  Overriding settings via environment variables (prefixed with `CREDITMUT_FETCH_`).
3.  Defining default values for all settings.
4.  Keeping every Crédit Mutuel markup constant (URLs, form fields, table
    headers, link patterns, export layout) in one place, so that a change on
    the bank's site is a configuration change.
"""

import sys
from typing import List, Optional, Dict, Any
from pathlib import Path
from pydantic import Field, BaseModel, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

VERSION = "0.5.0"
DEFAULT_USER_AGENT = f"creditmut-fetch/{VERSION} ({sys.platform})"
DEFAULT_MAX_OVERVIEW_ATTEMPTS = 13

class StatementLayout(BaseModel):
    """Field positions of a statement export line (0-indexed)."""
    date: int = 0
    description: int = 4
    credit: int = 2
    debit: int = 3
    negate_debit: bool = Field(
        default=True,
        description="Force amounts read from the debit column to be negative"
    )

    @property
    def min_fields(self) -> int:
        return max(self.date, self.description, self.credit, self.debit) + 1

# The site changed its export over time; "value_date" is the current one.
STATEMENT_LAYOUTS: Dict[str, StatementLayout] = {
    "value_date": StatementLayout(date=0, description=4, credit=2, debit=3),
    "legacy": StatementLayout(date=0, description=3, credit=1, debit=2),
}

class CreditMutuelConfig(BaseModel):
    """Site-specific constants for the Crédit Mutuel home-banking pages."""
    base_url: str = "https://www.creditmutuel.fr"
    overview_path: str = "/comptes/"
    statement_path: str = "/banque/"
    max_overview_attempts: int = DEFAULT_MAX_OVERVIEW_ATTEMPTS

    login_form_number: int = 1
    username_field: str = "_cm_user"
    password_field: str = "_cm_pwd"

    account_table_headers: List[str] = Field(
        default_factory=lambda: [
            "Pour consulter un relevé d'opérations, cliquez sur un compte",
            "Débit",
            "Crédit",
        ],
        description="Header texts of the account, debit and credit columns"
    )
    statement_link_pattern: str = r"mouvements\.cgi"
    export_link_pattern: str = "XP"

    export_line_separator: str = "\r\n"
    export_field_separator: str = ";"
    export_encoding: str = "latin-1"
    thousands_separators: str = "'"
    default_currency: str = "EUR"
    statement_layout: StatementLayout = Field(default_factory=StatementLayout)

    @field_validator("statement_layout", mode="before")
    @classmethod
    def _resolve_layout_name(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return STATEMENT_LAYOUTS[value]
            except KeyError:
                raise ValueError(
                    f"Unknown statement layout '{value}'. "
                    f"Known layouts: {', '.join(STATEMENT_LAYOUTS)}"
                ) from None
        return value

    @property
    def overview_url(self) -> str:
        return self.base_url.rstrip("/") + self.overview_path

    @property
    def statement_url_prefix(self) -> str:
        return self.base_url.rstrip("/") + self.statement_path

class Config(BaseSettings):
    """
    Global configuration for creditmut-fetch.

    Supports loading configuration from:
    1.  Environment variables (prefixed with CREDITMUT_FETCH_)
    2.  Configuration files (YAML)
    3.  Default values defined in this class
    """

    # Core settings
    headless: bool = Field(
        default=True,
        description="Run browser in headless mode"
    )
    timeout: int = Field(
        default=30000,
        description="Timeout for navigation, form submission and downloads in milliseconds"
    )
    user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        description="User-Agent header sent by the browser session"
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode (HAR recording, verbose output, traceback on error)"
    )
    debug_logs_path: Path = Field(
        default=Path("./debug_logs"),
        description="Directory where HAR recordings are written in debug mode"
    )

    # Bank specific config
    creditmutuel: CreditMutuelConfig = Field(default_factory=CreditMutuelConfig)

    model_config = SettingsConfigDict(
        env_prefix='CREDITMUT_FETCH_',
        env_nested_delimiter='__',
        extra='ignore'
    )

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Config":
        """
        Load configuration, optionally from a YAML file.
        """
        search_paths = [
            config_path,
            Path("config.yaml"),
            Path("config.yml"),
            Path.home() / ".creditmut_fetch" / "config.yaml",
            Path.home() / ".creditmut_fetch" / "config.yml",
        ]

        config_data: Dict[str, Any] = {}

        found_path = None
        for path in search_paths:
            if path and path.exists() and path.is_file():
                found_path = path.resolve()
                break

        if found_path:
            import yaml
            try:
                with open(found_path, 'r', encoding='utf-8') as f:
                    file_data = yaml.safe_load(f)
                    if file_data:
                        # Relative paths are relative to the config file
                        if 'debug_logs_path' in file_data:
                            path_val = Path(file_data['debug_logs_path'])
                            if not path_val.is_absolute():
                                file_data['debug_logs_path'] = found_path.parent / path_val
                        config_data = file_data
                print(f"Loaded configuration from: {found_path}")
            except (OSError, yaml.YAMLError) as e:
                print(f"Warning: Error loading config file {found_path}: {e}")

        # Pydantic merges init kwargs (file_data) with env vars and defaults
        return cls(**config_data)

# Global config instance
settings = Config.load()
