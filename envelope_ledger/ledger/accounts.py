"""
Accounts and derived balances.

An account stores only its starting balance. The live balance is
recomputed from income and transactions on every call, so it can never
drift from the records it is derived from.
"""

from typing import Any, Optional

from envelope_ledger.errors import AccountNotFoundError
from envelope_ledger.ledger.base import LedgerBase, audited, find_by_id
from envelope_ledger.models.audit import AuditEventType
from envelope_ledger.models.ledger import (
    Account,
    RegisterEntry,
    TransactionStatus,
    TransactionType,
    to_money,
)
from envelope_ledger.services.storage import Collection
from envelope_ledger.validation import to_amount


class AccountOperations(LedgerBase):
    """Bank, credit and cash accounts plus the user's bank balance figure."""

    @audited
    def create_account(self, name: str, type: str = "checking", balance: Any = 0) -> Account:
        account = Account(
            name=name,
            type=type,
            balance=to_amount(balance, "balance"),
            created_at=self._now(),
        )
        accounts = self._ctx.accounts()
        accounts.append(account)
        self._ctx.save_accounts(accounts)

        self._log(
            AuditEventType.ACCOUNT_CREATED, "account", account.id,
            f"Account created: {account.name}",
            details={"type": account.type, "starting_balance": account.balance},
        )
        return account

    def get_account(self, account_id: str) -> Optional[Account]:
        return find_by_id(self._ctx.accounts(), account_id)

    def get_all_accounts(self) -> list[Account]:
        return self._ctx.accounts()

    @audited
    def update_account(
        self,
        account_id: str,
        name: Optional[str] = None,
        type: Optional[str] = None,
        balance: Any = None,
    ) -> Account:
        """Edit an account; balance here is the starting balance."""
        accounts = self._ctx.accounts()
        account = find_by_id(accounts, account_id)
        if account is None:
            raise AccountNotFoundError(account_id)

        changes: dict[str, Any] = {}
        if name is not None:
            changes["name"] = name
        if type is not None:
            changes["type"] = type
        if balance is not None:
            changes["balance"] = to_amount(balance, "balance")

        for field, value in changes.items():
            setattr(account, field, value)
        self._ctx.save_accounts(accounts)

        self._log(
            AuditEventType.ACCOUNT_UPDATED, "account", account_id,
            f"Account updated: {account.name}",
            details=changes,
        )
        return account

    @audited
    def delete_account(self, account_id: str) -> None:
        """Delete an account and unassign it from its income and transactions."""
        accounts = self._ctx.accounts()
        account = find_by_id(accounts, account_id)
        if account is None:
            raise AccountNotFoundError(account_id)

        income = self._ctx.income()
        transactions = self._ctx.transactions()
        unassigned = 0
        for record in [*income, *transactions]:
            if record.account_id == account_id:
                record.account_id = None
                unassigned += 1

        self._ctx.commit({
            Collection.ACCOUNTS: [acc for acc in accounts if acc.id != account_id],
            Collection.INCOME: income,
            Collection.TRANSACTIONS: transactions,
        })
        self._log(
            AuditEventType.ACCOUNT_DELETED, "account", account_id,
            f"Account deleted: {account.name}",
            details={"records_unassigned": unassigned},
        )

    # ------------------------------------------------------------------
    # Derived balances
    # ------------------------------------------------------------------

    def get_account_balance(self, account_id: str) -> float:
        """
        Starting balance + income to the account + income-type
        transactions - every other transaction. 0 for an unknown account.
        """
        account = self.get_account(account_id)
        if account is None:
            return 0.0

        balance = account.balance
        for income in self._ctx.income():
            if income.account_id == account_id:
                balance += income.amount
        for txn in self._ctx.transactions():
            if txn.account_id != account_id:
                continue
            if txn.type == TransactionType.INCOME:
                balance += txn.amount
            else:
                balance -= txn.amount
        return to_money(balance)

    def get_total_accounts_balance(self) -> float:
        return to_money(sum(self.get_account_balance(acc.id) for acc in self._ctx.accounts()))

    def get_account_transactions_with_balance(self, account_id: str) -> list[RegisterEntry]:
        """
        The account register: its transactions and income, oldest first,
        each with the running balance after it.
        """
        account = self.get_account(account_id)
        if account is None:
            return []

        entries = [
            RegisterEntry(
                id=txn.id,
                date=txn.date,
                description=txn.description,
                amount=txn.amount,
                account_id=txn.account_id,
                envelope_id=txn.envelope_id,
                type=txn.type,
                status=txn.status,
                balance=0.0,
            )
            for txn in self._ctx.transactions()
            if txn.account_id == account_id
        ]
        entries.extend(
            RegisterEntry(
                id=income.id,
                date=income.date,
                description=income.source,
                amount=income.amount,
                account_id=income.account_id,
                envelope_id=None,
                type=TransactionType.INCOME,
                status=TransactionStatus.CLEARED,
                is_income=True,
                balance=0.0,
            )
            for income in self._ctx.income()
            if income.account_id == account_id
        )
        # sort() is stable: same-day entries keep transactions-then-income order
        entries.sort(key=lambda entry: entry.date)

        running = account.balance
        for entry in entries:
            if entry.type == TransactionType.INCOME:
                running += entry.amount
            else:
                running -= entry.amount
            entry.balance = to_money(running)
        return entries

    # ------------------------------------------------------------------
    # Bank balance
    # ------------------------------------------------------------------

    def get_bank_balance(self) -> float:
        """The bank balance the cash flow projection starts from."""
        return self._ctx.bank_balance()

    @audited
    def set_bank_balance(self, balance: Any) -> float:
        value = to_amount(balance, "balance")
        self._ctx.save_bank_balance(value)
        self._log(
            AuditEventType.BANK_BALANCE_SET, "bank_balance", None,
            f"Bank balance set to {value:,.2f}",
            details={"balance": value},
        )
        return value
