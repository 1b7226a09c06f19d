from __future__ import annotations

from datetime import date

import pytest
from pydantic import ValidationError as PydanticValidationError

from medtrack.tests.clinic_helpers import CLINIC, OTHER_CLINIC
from medtrack.core import inventory, ledger, models
from medtrack.core.errors import InvalidStateError, NotFoundError, ValidationError


def test_create_item_trims_fields_and_sets_defaults(make_item) -> None:
    item = make_item(
        stock=3,
        name="  Naltrexone ",
        active_ingredient="  ",
        batch_number=" L-42 ",
        expiration_date=date(2027, 1, 31),
    )

    assert item.name == "Naltrexone"
    assert item.active_ingredient is None
    assert item.batch_number == "L-42"
    assert item.status == "active"
    assert item.stock == 3
    assert item.clinic_id == CLINIC
    assert item.created_by == "infirmier-1"


@pytest.mark.parametrize("field", ["name", "dosage", "category"])
def test_create_item_requires_text_fields(field) -> None:
    payload = {"name": "Diazépam", "dosage": "10 mg", "category": "Anxiolytique", field: "   "}

    with pytest.raises(ValidationError):
        inventory.create_item(CLINIC, models.MedicationItemCreate(**payload))

    assert inventory.list_items(CLINIC) == []


def test_create_item_requires_clinic() -> None:
    payload = models.MedicationItemCreate(name="Diazépam", dosage="10 mg", category="Anxiolytique")

    with pytest.raises(ValidationError):
        inventory.create_item("  ", payload)


def test_negative_initial_stock_is_rejected_by_model() -> None:
    with pytest.raises(PydanticValidationError):
        models.MedicationItemCreate(name="A", dosage="1", category="B", stock=-1)


def test_update_model_rejects_stock() -> None:
    with pytest.raises(PydanticValidationError):
        models.MedicationItemUpdate(stock=4)


def test_update_item_changes_descriptive_fields_only(make_item) -> None:
    item = make_item(stock=6)

    updated = inventory.update_item(
        CLINIC,
        item.id,
        models.MedicationItemUpdate(manufacturer="Roche", expiration_date=date(2027, 3, 1)),
    )

    assert updated.manufacturer == "Roche"
    assert updated.expiration_date == date(2027, 3, 1)
    assert updated.name == item.name
    assert updated.stock == 6
    assert len(ledger.list_movements(CLINIC, item.id)) == 1


def test_update_item_rejects_blank_name(make_item) -> None:
    item = make_item()

    with pytest.raises(ValidationError):
        inventory.update_item(CLINIC, item.id, models.MedicationItemUpdate(name=" "))


def test_items_are_scoped_by_clinic(make_item) -> None:
    item = make_item(clinic_id=OTHER_CLINIC)

    with pytest.raises(NotFoundError):
        inventory.get_item(CLINIC, item.id)
    with pytest.raises(NotFoundError):
        inventory.update_item(CLINIC, item.id, models.MedicationItemUpdate(dosage="5 mg"))

    assert inventory.list_items(CLINIC) == []
    assert inventory.has_clinic_data(OTHER_CLINIC) is True
    assert inventory.has_clinic_data(CLINIC) is False


def test_list_items_orders_by_name_and_filters(make_item) -> None:
    make_item(name="Méthadone", category="Substitution")
    make_item(name="buprénorphine", category="Substitution", active_ingredient="Buprénorphine")
    make_item(name="Acamprosate", category="Sevrage alcoolique")

    names = [item.name for item in inventory.list_items(CLINIC)]
    substitution = [item.name for item in inventory.list_items(CLINIC, search="Substitution")]

    assert names == ["Acamprosate", "buprénorphine", "Méthadone"]
    assert substitution == ["buprénorphine", "Méthadone"]


def test_deactivate_requires_empty_stock(make_item) -> None:
    item = make_item(stock=2)

    with pytest.raises(InvalidStateError):
        inventory.deactivate_item(CLINIC, item.id)

    ledger.apply_movement(CLINIC, item.id, "correction", 0)
    deactivated = inventory.deactivate_item(CLINIC, item.id)

    assert deactivated.status == "inactive"
    assert inventory.list_items(CLINIC, include_inactive=False) == []
    assert [entry.id for entry in inventory.list_items(CLINIC)] == [item.id]


def test_reactivate_restores_item(make_item) -> None:
    item = make_item(stock=0)
    inventory.deactivate_item(CLINIC, item.id)

    reactivated = inventory.reactivate_item(CLINIC, item.id)

    assert reactivated.status == "active"
