"""Envelope CRUD, balances and totals."""

from typing import Any, Optional

from envelope_ledger.errors import EnvelopeNotFoundError
from envelope_ledger.ledger.base import LedgerBase, audited, find_by_id
from envelope_ledger.models.audit import AuditEventType
from envelope_ledger.models.ledger import Envelope, Transaction, to_money
from envelope_ledger.services.storage import Collection
from envelope_ledger.validation import to_amount


class EnvelopeOperations(LedgerBase):
    """Envelopes: a plan, a funded amount and a spent amount per category."""

    @audited
    def create_envelope(
        self,
        name: str,
        planned: Any = 0,
        category: Optional[str] = None,
    ) -> Envelope:
        """
        Create an envelope with nothing funded or spent.

        Negative planned amounts are accepted as given.
        """
        envelope = Envelope(
            name=name,
            planned=to_amount(planned, "planned"),
            category=category or self._settings.default_envelope_category,
        )
        envelopes = self._ctx.envelopes()
        envelopes.append(envelope)
        self._ctx.save_envelopes(envelopes)

        self._log(
            AuditEventType.ENVELOPE_CREATED, "envelope", envelope.id,
            f"Envelope created: {envelope.name}",
            details={"planned": envelope.planned, "category": envelope.category},
        )
        return envelope

    def get_envelope(self, envelope_id: str) -> Optional[Envelope]:
        return find_by_id(self._ctx.envelopes(), envelope_id)

    def get_all_envelopes(self) -> list[Envelope]:
        return self._ctx.envelopes()

    @audited
    def update_envelope(
        self,
        envelope_id: str,
        name: Optional[str] = None,
        planned: Any = None,
        category: Optional[str] = None,
    ) -> Envelope:
        """Change name, plan or category. Funded and spent are never touched here."""
        envelopes = self._ctx.envelopes()
        envelope = find_by_id(envelopes, envelope_id)
        if envelope is None:
            raise EnvelopeNotFoundError(envelope_id)

        changes: dict[str, Any] = {}
        if name is not None:
            changes["name"] = name
        if planned is not None:
            changes["planned"] = to_amount(planned, "planned")
        if category is not None:
            changes["category"] = category

        for field, value in changes.items():
            setattr(envelope, field, value)
        self._ctx.save_envelopes(envelopes)

        self._log(
            AuditEventType.ENVELOPE_UPDATED, "envelope", envelope_id,
            f"Envelope updated: {envelope.name}",
            details=changes,
        )
        return envelope

    @audited
    def delete_envelope(self, envelope_id: str) -> None:
        """Delete an envelope together with every transaction charged to it."""
        envelopes = self._ctx.envelopes()
        envelope = find_by_id(envelopes, envelope_id)
        if envelope is None:
            raise EnvelopeNotFoundError(envelope_id)

        transactions = self._ctx.transactions()
        kept = [txn for txn in transactions if txn.envelope_id != envelope_id]
        self._ctx.commit({
            Collection.ENVELOPES: [env for env in envelopes if env.id != envelope_id],
            Collection.TRANSACTIONS: kept,
        })

        self._log(
            AuditEventType.ENVELOPE_DELETED, "envelope", envelope_id,
            f"Envelope deleted: {envelope.name}",
            details={"transactions_deleted": len(transactions) - len(kept)},
        )

    def get_envelope_balance(self, envelope_id: str) -> float:
        """funded - spent; 0 for an unknown envelope."""
        envelope = self.get_envelope(envelope_id)
        if envelope is None:
            return 0.0
        return envelope.balance

    def get_envelope_transactions(self, envelope_id: str) -> list[Transaction]:
        return [txn for txn in self._ctx.transactions() if txn.envelope_id == envelope_id]

    # ------------------------------------------------------------------
    # Totals
    # ------------------------------------------------------------------

    def get_total_planned(self) -> float:
        return to_money(sum(env.planned for env in self._ctx.envelopes()))

    def get_total_funded(self) -> float:
        return to_money(sum(env.funded for env in self._ctx.envelopes()))

    def get_total_spent(self) -> float:
        return to_money(sum(env.spent for env in self._ctx.envelopes()))

    def get_categories(self) -> dict[str, int]:
        """Category -> number of envelopes, alphabetical."""
        counts: dict[str, int] = {}
        for envelope in self._ctx.envelopes():
            counts[envelope.category] = counts.get(envelope.category, 0) + 1
        return dict(sorted(counts.items()))
