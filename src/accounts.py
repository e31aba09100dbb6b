from __future__ import annotations

import json
import logging
import re
from collections import Counter
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator

from config import DEFAULT_ACCOUNTS_PATH
from domain.accounts import ProviderKind, TrackedAccount

logger = logging.getLogger(__name__)

_EVM_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


class AccountBookError(ValueError):
    pass


class WalletAddress(BaseModel):
    company: str = ""
    name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    chain: ProviderKind = ProviderKind.SOLANA

    @field_validator("company", "name", "address", mode="before")
    @classmethod
    def _strip(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("chain", mode="before")
    @classmethod
    def _parse_chain(cls, value: object) -> ProviderKind:
        kind = ProviderKind.parse(str(value))
        if kind.is_banking:
            raise ValueError(f"{kind.display_name} is a banking service, not a chain")
        return kind


class BankingAccount(BaseModel):
    company: str = ""
    name: str = Field(min_length=1)
    account_id: str = Field(min_length=1)
    service: ProviderKind

    @field_validator("company", "name", "account_id", mode="before")
    @classmethod
    def _strip(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("service", mode="before")
    @classmethod
    def _parse_service(cls, value: object) -> ProviderKind:
        kind = ProviderKind.parse(str(value))
        if not kind.is_banking:
            raise ValueError(f"Unknown banking service: {value}")
        return kind


class _AddressBookFile(BaseModel):
    addresses: list[WalletAddress] = Field(default_factory=list)
    banking_accounts: list[BankingAccount] = Field(default_factory=list)


def detect_chain(address: str, chain: str | None = None) -> ProviderKind:
    """Chain for a new wallet: the given alias, else guessed from the address shape."""
    if chain:
        return ProviderKind.parse(chain)
    if _EVM_ADDRESS_RE.match(address):
        return ProviderKind.ETHEREUM
    return ProviderKind.SOLANA


class AccountBook:
    """Registry of tracked wallets and banking accounts persisted as one JSON file."""

    def __init__(
        self,
        path: Path = DEFAULT_ACCOUNTS_PATH,
        *,
        addresses: list[WalletAddress] | None = None,
        banking_accounts: list[BankingAccount] | None = None,
    ) -> None:
        self.path = path
        self.addresses = addresses or []
        self.banking_accounts = banking_accounts or []

    @classmethod
    def load(cls, path: Path = DEFAULT_ACCOUNTS_PATH) -> AccountBook:
        if not path.exists():
            logger.debug("No address book at %s, starting empty", path)
            return cls(path)
        try:
            payload = json.loads(path.read_text())
        except (OSError, json.JSONDecodeError) as exc:
            raise AccountBookError(f"Failed to read address book {path}: {exc}") from exc
        try:
            parsed = _AddressBookFile.model_validate(payload)
        except ValidationError as exc:
            raise AccountBookError(f"Failed to parse address book {path}: {exc}") from exc

        names = Counter(entry.name for entry in [*parsed.addresses, *parsed.banking_accounts])
        duplicates = sorted(name for name, count in names.items() if count > 1)
        if duplicates:
            raise AccountBookError(f"Duplicate names in address book {path}: {', '.join(duplicates)}")
        return cls(path, addresses=parsed.addresses, banking_accounts=parsed.banking_accounts)

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        document = _AddressBookFile(addresses=self.addresses, banking_accounts=self.banking_accounts)
        self.path.write_text(json.dumps(document.model_dump(mode="json"), indent=2) + "\n")

    def add_address(self, company: str, name: str, address: str, chain: str | None = None) -> WalletAddress:
        name = name.strip()
        address = address.strip()
        self._ensure_unique(name)
        try:
            kind = detect_chain(address, chain)
            entry = WalletAddress(company=company, name=name, address=address, chain=kind)
        except (ValueError, ValidationError) as exc:
            raise AccountBookError(str(exc)) from exc
        self.addresses.append(entry)
        return entry

    def add_banking_account(self, company: str, name: str, account_id: str, service: str) -> BankingAccount:
        name = name.strip()
        self._ensure_unique(name)
        try:
            entry = BankingAccount(company=company, name=name, account_id=account_id, service=service)
        except ValidationError as exc:
            raise AccountBookError(f"Invalid banking account {name!r}: {exc}") from exc
        self.banking_accounts.append(entry)
        return entry

    def remove(self, identifier: str) -> None:
        remaining = [a for a in self.addresses if identifier not in (a.name, a.address)]
        if len(remaining) != len(self.addresses):
            self.addresses = remaining
            return

        remaining_banking = [a for a in self.banking_accounts if identifier not in (a.name, a.account_id)]
        if len(remaining_banking) == len(self.banking_accounts):
            raise AccountBookError(f"No address or banking account named '{identifier}'")
        self.banking_accounts = remaining_banking

    def has_banking_account(self, account_id: str) -> bool:
        return any(account.account_id == account_id for account in self.banking_accounts)

    def tracked_accounts(self) -> list[TrackedAccount]:
        accounts = [
            TrackedAccount(
                organization=entry.company,
                display_name=entry.name,
                provider=entry.chain,
                identifier=entry.address,
            )
            for entry in self.addresses
        ]
        accounts.extend(
            TrackedAccount(
                organization=entry.company,
                display_name=entry.name,
                provider=entry.service,
                identifier=entry.account_id,
            )
            for entry in self.banking_accounts
        )
        return accounts

    def filter_by_company(self, company: str | None) -> list[TrackedAccount]:
        accounts = self.tracked_accounts()
        if not company:
            return accounts
        needle = company.lower()
        return [account for account in accounts if needle in account.organization.lower()]

    def find(self, name: str) -> TrackedAccount:
        for account in self.tracked_accounts():
            if account.display_name == name:
                return account
        raise AccountBookError(f"No address or banking account named '{name}'")

    def _ensure_unique(self, name: str) -> None:
        if any(entry.name == name for entry in self.addresses):
            raise AccountBookError(f"Address with name '{name}' already exists")
        if any(entry.name == name for entry in self.banking_accounts):
            raise AccountBookError(f"Banking account with name '{name}' already exists")


__all__ = ["AccountBook", "AccountBookError", "BankingAccount", "WalletAddress", "detect_chain"]
