# tests/test_bulk_actions.py - bulk status changes

from datetime import datetime

import pytest

from models.invoice import InvoiceStatus
from schemas.billing import BulkAction
from services.bulk_actions import apply_bulk_action
from utils.exceptions import AuthorizationError, InvalidTransitionError, ValidationError

NOW = datetime(2025, 2, 15, 12, 0, 0)


@pytest.fixture
def five_invoices(seed, make_invoice):
    """Four invoices in org A, one in org B"""
    own = [make_invoice(status=InvoiceStatus.SENT, tenant=t) for t in
           (seed.tenant_1, seed.tenant_2, seed.tenant_3, seed.tenant_1)]
    foreign = make_invoice(status=InvoiceStatus.SENT, tenant=seed.tenant_b)
    return own, foreign


class TestBulkActions:

    def test_foreign_id_rejects_whole_batch(self, db, seed, five_invoices):
        """mark_paid on five ids, one from another organization: nothing changes"""
        own, foreign = five_invoices
        ids = [inv.id for inv in own] + [foreign.id]

        with pytest.raises(AuthorizationError) as exc_info:
            apply_bulk_action(db, seed.org_a.id, BulkAction.MARK_PAID, ids, NOW)

        assert exc_info.value.message == "Some invoices not found or not authorized"
        for invoice in own + [foreign]:
            db.refresh(invoice)
            assert invoice.status == InvoiceStatus.SENT
            assert invoice.paid_at is None

    def test_unknown_id_rejects_whole_batch(self, db, seed, five_invoices):
        own, _ = five_invoices

        with pytest.raises(AuthorizationError):
            apply_bulk_action(db, seed.org_a.id, BulkAction.MARK_PAID, [own[0].id, 424242], NOW)

    def test_mark_paid_stamps_every_invoice(self, db, seed, five_invoices):
        own, _ = five_invoices

        outcome = apply_bulk_action(db, seed.org_a.id, BulkAction.MARK_PAID, [inv.id for inv in own], NOW)
        db.commit()

        assert outcome.processed_count == 4
        for invoice in own:
            assert invoice.status == InvoiceStatus.PAID
            assert invoice.paid_at == NOW
        assert [r["invoice_id"] for r in outcome.results] == [inv.id for inv in own]
        assert {r["status"] for r in outcome.results} == {"Paid"}

    def test_send_invoices_stamps_sent_at(self, db, seed, make_invoice):
        drafts = [make_invoice(status=InvoiceStatus.DRAFT) for _ in range(3)]

        outcome = apply_bulk_action(db, seed.org_a.id, BulkAction.SEND_INVOICES, [d.id for d in drafts], NOW)

        assert outcome.processed_count == 3
        assert all(d.status == InvoiceStatus.SENT and d.sent_at == NOW for d in drafts)

    def test_duplicate_ids_processed_once(self, db, seed, make_invoice):
        invoice = make_invoice(status=InvoiceStatus.SENT)

        outcome = apply_bulk_action(db, seed.org_a.id, BulkAction.MARK_PAID, [invoice.id, invoice.id], NOW)

        assert outcome.processed_count == 1

    def test_update_status_requires_status(self, db, seed, make_invoice):
        invoice = make_invoice()

        with pytest.raises(ValidationError):
            apply_bulk_action(db, seed.org_a.id, BulkAction.UPDATE_STATUS, [invoice.id], NOW)

    def test_update_status_applies_given_status(self, db, seed, make_invoice):
        invoice = make_invoice(status=InvoiceStatus.SENT)

        outcome = apply_bulk_action(
            db, seed.org_a.id, BulkAction.UPDATE_STATUS, [invoice.id], NOW, status=InvoiceStatus.CANCELLED
        )

        assert outcome.processed_count == 1
        assert invoice.status == InvoiceStatus.CANCELLED

    def test_illegal_transition_rejects_whole_batch(self, db, seed, make_invoice):
        """mark_paid on [Cancelled, Sent]: neither invoice changes"""
        cancelled = make_invoice(status=InvoiceStatus.CANCELLED)
        sent = make_invoice(status=InvoiceStatus.SENT)

        with pytest.raises(InvalidTransitionError) as exc_info:
            apply_bulk_action(db, seed.org_a.id, BulkAction.MARK_PAID, [cancelled.id, sent.id], NOW)
        db.commit()

        assert [e["invoiceId"] for e in exc_info.value.errors] == [cancelled.id]
        for invoice in (cancelled, sent):
            db.refresh(invoice)
            assert invoice.paid_at is None
        assert cancelled.status == InvoiceStatus.CANCELLED
        assert sent.status == InvoiceStatus.SENT

    def test_every_blocked_invoice_listed(self, db, seed, make_invoice):
        paid = make_invoice(status=InvoiceStatus.PAID)
        refunded = make_invoice(status=InvoiceStatus.REFUNDED)
        draft = make_invoice(status=InvoiceStatus.DRAFT)

        with pytest.raises(InvalidTransitionError) as exc_info:
            apply_bulk_action(db, seed.org_a.id, BulkAction.SEND_INVOICES, [paid.id, refunded.id, draft.id], NOW)

        assert [e["invoiceId"] for e in exc_info.value.errors] == [paid.id, refunded.id]
        assert draft.status == InvoiceStatus.DRAFT
        assert draft.sent_at is None

    def test_update_status_to_overdue_rejected(self, db, seed, make_invoice):
        invoice = make_invoice(status=InvoiceStatus.SENT)

        with pytest.raises(InvalidTransitionError):
            apply_bulk_action(
                db, seed.org_a.id, BulkAction.UPDATE_STATUS, [invoice.id], NOW, status=InvoiceStatus.OVERDUE
            )
        assert invoice.status == InvoiceStatus.SENT

    def test_mark_paid_twice_keeps_first_paid_at(self, db, seed, make_invoice):
        invoice = make_invoice(status=InvoiceStatus.SENT)
        apply_bulk_action(db, seed.org_a.id, BulkAction.MARK_PAID, [invoice.id], NOW)

        later = datetime(2025, 2, 20)
        outcome = apply_bulk_action(db, seed.org_a.id, BulkAction.MARK_PAID, [invoice.id], later)

        assert outcome.processed_count == 1
        assert invoice.paid_at == NOW
