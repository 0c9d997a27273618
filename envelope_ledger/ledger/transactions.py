"""
Transaction recording and editing.

SPENT RECONCILIATION: an envelope's spent always equals the sum of its
cleared expense transactions. Every edit therefore first reverses the
transaction's previous effect on its previous envelope and then applies
the new effect on the new envelope/status, re-checking the overdraft at
the point of application.

Two recording variants exist on purpose:
- add_transaction refuses an overdraft outright (InsufficientFundsError)
- create_expense_with_confirmation raises OverdraftConfirmationRequired
  and records the expense only when the caller retries with
  confirm_overdraft=True
"""

from typing import Any, Optional, Union
from uuid import UUID

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from envelope_ledger.errors import (
    AccountIdRequired,
    AccountNotFoundError,
    EnvelopeNotFoundError,
    InsufficientFundsError,
    OverdraftConfirmationRequired,
    TransactionNotFoundError,
    ValidationError,
    format_money,
)
from envelope_ledger.ledger.base import LedgerBase, audited, find_by_id
from envelope_ledger.models.audit import AuditEventType
from envelope_ledger.models.ledger import (
    Envelope,
    ExpenseKind,
    IncomeKind,
    Transaction,
    TransactionKind,
    TransactionStatus,
    TransactionType,
    TransferDirection,
    TransferKind,
    to_money,
)
from envelope_ledger.services.storage import Collection
from envelope_ledger.validation import to_amount, to_choice, to_date, to_non_negative_amount


_KIND_ADAPTER = TypeAdapter(TransactionKind)


class TransactionOperations(LedgerBase):
    """Expenses, account register entries and their edits."""

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def _record(
        self,
        envelope_id: Optional[str],
        amount: Any,
        description: str,
        date: Any,
        account_id: Optional[str],
        status: Union[TransactionStatus, str],
        txn_type: Union[TransactionType, str],
        strict: bool,
        confirm_overdraft: bool = False,
        require_envelope: bool = True,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        transaction = Transaction(
            envelope_id=envelope_id or None,
            amount=to_non_negative_amount(amount),
            description=description or "",
            date=to_date(date),
            account_id=account_id or None,
            status=to_choice(TransactionStatus, status, "status"),
            type=to_choice(TransactionType, txn_type, "type"),
        )

        envelopes = self._ctx.envelopes()
        envelope = find_by_id(envelopes, transaction.envelope_id)
        charges_envelope = transaction.envelope_id is not None and transaction.is_cleared_expense
        if envelope is None and (require_envelope or charges_envelope):
            raise EnvelopeNotFoundError(envelope_id, "Envelope not found")

        overdraft = None
        if charges_envelope:
            balance = envelope.balance
            if transaction.amount > balance:
                if strict:
                    raise InsufficientFundsError(
                        requested=transaction.amount,
                        available=balance,
                        message=f"Insufficient funds in envelope. Balance: {format_money(balance)}",
                        envelope_id=envelope.id,
                    )
                if not confirm_overdraft:
                    raise OverdraftConfirmationRequired(envelope.id, transaction.amount, balance)
                overdraft = to_money(transaction.amount - balance)
            envelope.spent = to_money(envelope.spent + transaction.amount)

        transactions = self._ctx.transactions()
        transactions.append(transaction)
        changes: dict[Collection, Any] = {Collection.TRANSACTIONS: transactions}
        if charges_envelope:
            changes[Collection.ENVELOPES] = envelopes
        self._ctx.commit(changes)

        self._log(
            AuditEventType.TRANSACTION_RECORDED, "transaction", transaction.id,
            f"Transaction recorded: {transaction.description or transaction.type.value}",
            details={
                "amount": transaction.amount,
                "envelope_id": transaction.envelope_id,
                "account_id": transaction.account_id,
                "status": transaction.status.value,
                "type": transaction.type.value,
            },
            correlation_id=correlation_id,
        )
        if overdraft is not None:
            self._audit.log_overdraft_accepted(
                envelope.id, transaction.id, overdraft, budget_id=self.budget_id
            )
        return transaction

    @audited
    def add_transaction(
        self,
        envelope_id: str,
        amount: Any,
        description: str,
        date: Any,
        account_id: Optional[str] = None,
        status: Union[TransactionStatus, str] = TransactionStatus.CLEARED,
        type: Union[TransactionType, str] = TransactionType.EXPENSE,
    ) -> Transaction:
        """
        Record a transaction against an envelope, refusing overdrafts.

        Raises:
            EnvelopeNotFoundError: The envelope does not exist
            InsufficientFundsError: A cleared expense exceeds the envelope balance
        """
        return self._record(
            envelope_id, amount, description, date, account_id, status, type,
            strict=True,
        )

    create_expense_strict = add_transaction

    @audited
    def create_expense_with_confirmation(
        self,
        envelope_id: str,
        amount: Any,
        description: str,
        date: Any,
        account_id: Optional[str] = None,
        status: Union[TransactionStatus, str] = TransactionStatus.CLEARED,
        confirm_overdraft: bool = False,
    ) -> Transaction:
        """
        Record an expense that may overdraw its envelope once confirmed.

        Raises:
            EnvelopeNotFoundError: The envelope does not exist
            OverdraftConfirmationRequired: The expense would overdraw and
                confirm_overdraft is False
        """
        return self._record(
            envelope_id, amount, description, date, account_id, status,
            TransactionType.EXPENSE,
            strict=False,
            confirm_overdraft=confirm_overdraft,
        )

    @audited
    def add_account_transaction(
        self,
        account_id: str,
        amount: Any,
        description: str,
        date: Any,
        status: Union[TransactionStatus, str] = TransactionStatus.CLEARED,
        type: Union[TransactionType, str] = TransactionType.EXPENSE,
        envelope_id: Optional[str] = None,
    ) -> Transaction:
        """
        Record an account-level transaction; the envelope is optional.

        Only a cleared expense with an envelope attached touches (and is
        checked against) that envelope.
        """
        if not account_id:
            raise AccountIdRequired()
        return self._record(
            envelope_id, amount, description, date, account_id, status, type,
            strict=True,
            require_envelope=False,
        )

    @audited
    def record_register_entry(
        self,
        account_id: str,
        kind: Union[ExpenseKind, IncomeKind, TransferKind, dict],
        amount: Any,
        date: Any,
        status: Union[TransactionStatus, str] = TransactionStatus.CLEARED,
        description: str = "",
    ) -> list[Transaction]:
        """
        Record one account register line.

        Expenses and incomes produce one transaction. A transfer produces
        two legs in one write: income on the receiving account and an
        expense on the sending account, both for the absolute amount.
        """
        if not account_id:
            raise AccountIdRequired()
        if isinstance(kind, dict):
            try:
                kind = _KIND_ADAPTER.validate_python(kind)
            except PydanticValidationError as e:
                raise ValidationError(f"Invalid register entry kind: {e}") from e
        value = to_amount(amount)

        if isinstance(kind, ExpenseKind):
            return [self._record(
                kind.envelope_id, abs(value), description, date, account_id, status,
                TransactionType.EXPENSE,
                strict=True,
                require_envelope=False,
            )]
        if isinstance(kind, IncomeKind):
            return [self._record(
                None, abs(value), description, date, account_id, status,
                TransactionType.INCOME,
                strict=True,
                require_envelope=False,
            )]
        return self._record_transfer(account_id, kind, abs(value), date, status, description)

    def _record_transfer(
        self,
        account_id: str,
        kind: TransferKind,
        amount: float,
        date: Any,
        status: Union[TransactionStatus, str],
        description: str = "",
    ) -> list[Transaction]:
        accounts = self._ctx.accounts()
        account = find_by_id(accounts, account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        counterpart = find_by_id(accounts, kind.counterpart_account_id)
        if counterpart is None:
            raise AccountNotFoundError(kind.counterpart_account_id)
        if counterpart.id == account.id:
            raise ValidationError("Cannot transfer an account to itself")

        if kind.direction == TransferDirection.IN:
            receiving, sending = account, counterpart
        else:
            receiving, sending = counterpart, account

        when = to_date(date)
        status = to_choice(TransactionStatus, status, "status")
        note = f": {description}" if description else ""
        legs = [
            Transaction(
                amount=amount,
                description=f"Transfer from {sending.name}{note}",
                date=when,
                account_id=receiving.id,
                status=status,
                type=TransactionType.INCOME,
            ),
            Transaction(
                amount=amount,
                description=f"Transfer to {receiving.name}{note}",
                date=when,
                account_id=sending.id,
                status=status,
                type=TransactionType.EXPENSE,
            ),
        ]
        transactions = self._ctx.transactions()
        transactions.extend(legs)
        self._ctx.save_transactions(transactions)

        self._log(
            AuditEventType.TRANSACTION_RECORDED, "transaction", legs[0].id,
            f"Transfer of {format_money(amount)} from {sending.name} to {receiving.name}",
            details={
                "legs": [leg.id for leg in legs],
                "from_account_id": sending.id,
                "to_account_id": receiving.id,
                "amount": amount,
            },
        )
        return legs

    def would_overdraw(self, envelope_id: str, amount: Any) -> bool:
        """True if spending amount from an existing envelope would overdraw it."""
        envelope = find_by_id(self._ctx.envelopes(), envelope_id)
        if envelope is None:
            return False
        return to_amount(amount) > envelope.balance

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def _load_transaction(self, transaction_id: str) -> tuple[list[Transaction], Transaction]:
        transactions = self._ctx.transactions()
        transaction = find_by_id(transactions, transaction_id)
        if transaction is None:
            raise TransactionNotFoundError(transaction_id)
        return transactions, transaction

    @staticmethod
    def _charge(
        envelope: Envelope,
        amount: float,
        confirm_overdraft: bool,
    ) -> Optional[float]:
        """Add amount to spent, returning the accepted overdraft if any."""
        balance = envelope.balance
        overdraft = None
        if amount > balance:
            if not confirm_overdraft:
                raise OverdraftConfirmationRequired(envelope.id, amount, balance)
            overdraft = to_money(amount - balance)
        envelope.spent = to_money(envelope.spent + amount)
        return overdraft

    def _commit_edit(
        self,
        transactions: list[Transaction],
        envelopes: Optional[list[Envelope]],
        transaction: Transaction,
        description: str,
        details: dict,
        overdraft: Optional[float] = None,
    ) -> Transaction:
        changes: dict[Collection, Any] = {Collection.TRANSACTIONS: transactions}
        if envelopes is not None:
            changes[Collection.ENVELOPES] = envelopes
        self._ctx.commit(changes)

        self._log(
            AuditEventType.TRANSACTION_UPDATED, "transaction", transaction.id,
            description, details=details,
        )
        if overdraft is not None:
            self._audit.log_overdraft_accepted(
                transaction.envelope_id, transaction.id, overdraft, budget_id=self.budget_id
            )
        return transaction

    @audited
    def update_transaction_amount(
        self,
        transaction_id: str,
        new_amount: Any,
        confirm_overdraft: bool = False,
    ) -> Transaction:
        """Change the amount; a cleared expense moves its envelope's spent by the difference."""
        amount = to_non_negative_amount(new_amount)
        transactions, transaction = self._load_transaction(transaction_id)
        old_amount = transaction.amount
        difference = to_money(amount - old_amount)

        envelopes = None
        overdraft = None
        if transaction.is_cleared_expense and transaction.envelope_id:
            envelopes = self._ctx.envelopes()
            envelope = find_by_id(envelopes, transaction.envelope_id)
            if envelope is not None:
                overdraft = self._charge(envelope, difference, confirm_overdraft)
            else:
                envelopes = None

        transaction.amount = amount
        return self._commit_edit(
            transactions, envelopes, transaction,
            "Transaction amount changed",
            {"old_amount": old_amount, "new_amount": amount},
            overdraft,
        )

    @audited
    def reassign_transaction_envelope(
        self,
        transaction_id: str,
        new_envelope_id: Optional[str],
        confirm_overdraft: bool = False,
    ) -> Transaction:
        """
        Move a transaction to another envelope, or unassign it with None.

        A cleared expense is removed from the old envelope's spent before
        it is charged (and overdraft-checked) on the new one.
        """
        transactions, transaction = self._load_transaction(transaction_id)
        envelopes = self._ctx.envelopes()
        new_envelope = None
        if new_envelope_id:
            new_envelope = find_by_id(envelopes, new_envelope_id)
            if new_envelope is None:
                raise EnvelopeNotFoundError(new_envelope_id)

        old_envelope_id = transaction.envelope_id
        overdraft = None
        if transaction.is_cleared_expense:
            old_envelope = find_by_id(envelopes, old_envelope_id)
            if old_envelope is not None:
                old_envelope.spent = to_money(old_envelope.spent - transaction.amount)
            if new_envelope is not None:
                overdraft = self._charge(new_envelope, transaction.amount, confirm_overdraft)

        transaction.envelope_id = new_envelope_id or None
        return self._commit_edit(
            transactions, envelopes, transaction,
            "Transaction reassigned",
            {"old_envelope_id": old_envelope_id, "new_envelope_id": transaction.envelope_id},
            overdraft,
        )

    @audited
    def toggle_transaction_status(
        self,
        transaction_id: str,
        confirm_overdraft: bool = False,
    ) -> Transaction:
        """Flip cleared <-> pending, charging or refunding the envelope accordingly."""
        transactions, transaction = self._load_transaction(transaction_id)
        new_status = (
            TransactionStatus.PENDING
            if transaction.status == TransactionStatus.CLEARED
            else TransactionStatus.CLEARED
        )

        envelopes = None
        overdraft = None
        if transaction.type == TransactionType.EXPENSE and transaction.envelope_id:
            envelopes = self._ctx.envelopes()
            envelope = find_by_id(envelopes, transaction.envelope_id)
            if envelope is None:
                envelopes = None
            elif new_status == TransactionStatus.CLEARED:
                overdraft = self._charge(envelope, transaction.amount, confirm_overdraft)
            else:
                envelope.spent = to_money(envelope.spent - transaction.amount)

        old_status = transaction.status
        transaction.status = new_status
        return self._commit_edit(
            transactions, envelopes, transaction,
            f"Transaction marked {new_status.value}",
            {"old_status": old_status.value, "new_status": new_status.value},
            overdraft,
        )

    @audited
    def update_transaction_date(self, transaction_id: str, new_date: Any) -> Transaction:
        """Change the date only; no balance effect."""
        when = to_date(new_date)
        transactions, transaction = self._load_transaction(transaction_id)
        old_date = transaction.date
        transaction.date = when
        return self._commit_edit(
            transactions, None, transaction,
            "Transaction date changed",
            {"old_date": old_date.isoformat(), "new_date": when.isoformat()},
        )

    @audited
    def delete_transaction(self, transaction_id: str) -> None:
        """Remove a transaction, refunding its envelope if it was a cleared expense."""
        transactions, transaction = self._load_transaction(transaction_id)

        changes: dict[Collection, Any] = {
            Collection.TRANSACTIONS: [txn for txn in transactions if txn.id != transaction_id],
        }
        if transaction.is_cleared_expense and transaction.envelope_id:
            envelopes = self._ctx.envelopes()
            envelope = find_by_id(envelopes, transaction.envelope_id)
            if envelope is not None:
                envelope.spent = to_money(envelope.spent - transaction.amount)
                changes[Collection.ENVELOPES] = envelopes
        self._ctx.commit(changes)

        self._log(
            AuditEventType.TRANSACTION_DELETED, "transaction", transaction_id,
            f"Transaction deleted: {transaction.description or transaction.type.value}",
            details={"amount": transaction.amount, "envelope_id": transaction.envelope_id},
        )

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return find_by_id(self._ctx.transactions(), transaction_id)

    def get_all_transactions(self) -> list[Transaction]:
        return self._ctx.transactions()
