from dataclasses import replace
from datetime import date

import pytest

from fakes import NOW, FakeHistoryRepository, FakePurchaseRepository, SequentialIds, fixed_clock, run
from inventory.application.history import HistoryRecorder
from inventory.application.purchase_use_cases import (
    ApprovePurchaseUseCase,
    CreatePurchaseCommand,
    CreatePurchaseUseCase,
    DeletePurchaseUseCase,
    ListPurchasesUseCase,
    PurchaseStatsUseCase,
    RejectPurchaseUseCase,
    UpdatePurchaseCommand,
    UpdatePurchaseUseCase,
)
from inventory.domain.errors import NotFoundError, ValidationError
from inventory.domain.models import ChangeType, EntityType, PurchaseStatus, PurchaseUrgency


class Env:
    def __init__(self) -> None:
        self.repo = FakePurchaseRepository()
        self.history_repo = FakeHistoryRepository()
        self.recorder = HistoryRecorder(self.history_repo, SequentialIds("h"), fixed_clock)
        self.ids = SequentialIds("p")

    def create(self, **overrides):
        fields = dict(
            description="Notebook para RH",
            urgency=PurchaseUrgency.HIGH,
            requested_by="Marina",
            request_date=date(2024, 2, 20),
            estimated_quantity=3,
            estimated_unit_value=3499.99,
            expected_date=date(2024, 4, 1),
            brand="Lenovo",
            model="T14",
        )
        fields.update(overrides)
        use_case = CreatePurchaseUseCase(self.repo, self.recorder, self.ids, fixed_clock)
        return run(use_case.execute(CreatePurchaseCommand(**fields), "Marina"))

    def update(self, purchase_id, **changes):
        use_case = UpdatePurchaseUseCase(self.repo, self.recorder, fixed_clock)
        return run(use_case.execute(UpdatePurchaseCommand(purchase_id, changes), "Marina"))

    def approve(self, purchase_id):
        return run(ApprovePurchaseUseCase(self.repo, self.recorder, fixed_clock).execute(purchase_id, "Gestor"))


def test_create_starts_pending_with_computed_total():
    env = Env()

    result = env.create()

    purchase = result.purchase
    assert purchase.status == PurchaseStatus.PENDING
    assert purchase.estimated_total_value == 10499.97
    assert purchase.brand == "Lenovo"
    entry = env.history_repo.entries[0]
    assert (entry.entity_type, entry.change_type) == (EntityType.PURCHASE, ChangeType.CREATED)
    assert entry.equipment_id is None


def test_create_rejects_past_expected_date():
    env = Env()

    with pytest.raises(ValidationError) as excinfo:
        env.create(expected_date=date(2024, 2, 1))

    assert "expected_date" in excinfo.value.errors
    assert env.repo.rows == {}


def test_update_recomputes_total_and_records_each_field():
    env = Env()
    purchase = env.create().purchase

    result = env.update(purchase.id, estimated_quantity=2, supplier="Loja A")

    assert result.purchase.estimated_total_value == 6999.98
    fields = {e.field for e in env.history_repo.entries if e.change_type == ChangeType.EDITED}
    assert fields == {"estimated_quantity", "supplier", "estimated_total_value"}


def test_update_keeps_old_expected_date_valid():
    env = Env()
    purchase = env.create().purchase
    env.repo.rows[purchase.id] = replace(purchase, expected_date=date(2024, 2, 25))

    result = env.update(purchase.id, supplier="Loja B")

    assert result.purchase.expected_date == date(2024, 2, 25)


def test_update_without_changes_writes_nothing():
    env = Env()
    purchase = env.create().purchase
    entries_before = len(env.history_repo.entries)

    result = env.update(purchase.id, brand="Lenovo")

    assert result.purchase == purchase
    assert len(env.history_repo.entries) == entries_before


def test_update_rejects_unknown_fields():
    env = Env()
    purchase = env.create().purchase

    with pytest.raises(ValidationError):
        env.update(purchase.id, status="approved")


def test_update_cannot_clear_required_fields():
    env = Env()
    purchase = env.create().purchase

    with pytest.raises(ValidationError) as excinfo:
        env.update(purchase.id, category=None, urgency=None)

    assert set(excinfo.value.errors) == {"category", "urgency"}
    assert env.repo.rows[purchase.id] == purchase


def test_acquired_purchase_cannot_be_edited_or_deleted():
    env = Env()
    purchase = env.create().purchase
    run(env.repo.mark_acquired(purchase.id, updated_at=NOW))

    with pytest.raises(ValidationError):
        env.update(purchase.id, supplier="Loja C")
    with pytest.raises(ValidationError):
        run(DeletePurchaseUseCase(env.repo, env.recorder).execute(purchase.id, "Marina"))


def test_approve_stamps_approver():
    env = Env()
    purchase = env.create().purchase

    result = env.approve(purchase.id)

    assert result.purchase.status == PurchaseStatus.APPROVED
    assert result.purchase.approved_by == "Gestor"
    assert result.purchase.approval_date == NOW
    entry = env.history_repo.entries[-1]
    assert (entry.old_value, entry.new_value) == ("pending", "approved")


def test_approve_only_from_pending():
    env = Env()
    purchase = env.create().purchase
    env.approve(purchase.id)

    with pytest.raises(ValidationError):
        env.approve(purchase.id)


def test_reject_requires_reason():
    env = Env()
    purchase = env.create().purchase
    use_case = RejectPurchaseUseCase(env.repo, env.recorder, fixed_clock)

    with pytest.raises(ValidationError):
        run(use_case.execute(purchase.id, "  ", "Gestor"))

    result = run(use_case.execute(purchase.id, "Sem orçamento", "Gestor"))
    assert result.purchase.status == PurchaseStatus.REJECTED
    assert result.purchase.rejection_reason == "Sem orçamento"


def test_delete_records_entry():
    env = Env()
    purchase = env.create().purchase

    warning = run(DeletePurchaseUseCase(env.repo, env.recorder).execute(purchase.id, "Marina"))

    assert warning is None
    assert purchase.id not in env.repo.rows
    assert env.history_repo.entries[-1].change_type == ChangeType.DELETED


def test_missing_purchase_raises_not_found():
    env = Env()

    with pytest.raises(NotFoundError):
        env.approve("missing")


def test_list_and_stats_by_status():
    env = Env()
    first = env.create().purchase
    env.create(description="Mouse")
    env.approve(first.id)

    approved = run(ListPurchasesUseCase(env.repo).execute(PurchaseStatus.APPROVED))
    stats = run(PurchaseStatsUseCase(env.repo).execute())

    assert [p.id for p in approved] == [first.id]
    assert (stats.total, stats.pending, stats.approved) == (2, 1, 1)
