"""Integration tests for repository write operations.

Covers:
- create: validation before storage, presentation, storage errors propagate.
- first_or_create: existing match vs. creation.
- update: validation before fetch, presenter flag save/restore, not found.
- delete: single id, id collections, soft-delete aware counting.
"""

from __future__ import annotations

import logging
from unittest.mock import patch

import pytest
from django.db import IntegrityError

from modules.customers.models import Customer, CustomerStatus
from modules.customers.repositories import CustomerRepository
from modules.orders.models import Order
from modules.orders.repositories import OrderRepository
from repository import EntityNotFound, ValidationFailed, WhereCriterion, entity_to_dict

pytestmark = pytest.mark.integration


@pytest.fixture()
def repo():
    return CustomerRepository()


# ===========================================================================
# create
# ===========================================================================


class TestCreate:
    def test_persists_and_presents(self, repo):
        result = repo.create({"name": "Alice", "email": "alice@example.com"})
        customer = Customer.objects.get(email="alice@example.com")
        assert result["data"]["id"] == customer.id
        assert result["data"]["status"] == CustomerStatus.ACTIVE

    def test_raw_entity_when_presenter_skipped(self, repo):
        entity = repo.skip_presenter().create({"name": "Alice", "email": "alice@example.com"})
        assert isinstance(entity, Customer)
        assert entity.pk is not None

    def test_validation_failure_touches_nothing(self, repo):
        with patch.object(Customer.objects, "create") as create:
            with pytest.raises(ValidationFailed) as exc_info:
                repo.create({"name": "", "email": "not-an-email"})
        create.assert_not_called()
        assert set(exc_info.value.errors) == {"name", "email"}
        assert Customer.objects.count() == 0

    def test_duplicate_email_rejected_case_insensitively(self, repo, make_customer):
        make_customer(email="taken@example.com")
        with pytest.raises(ValidationFailed) as exc_info:
            repo.create({"name": "Other", "email": "TAKEN@example.com"})
        assert "email" in exc_info.value.errors

    def test_storage_error_propagates_unmodified(self, repo, make_customer):
        make_customer(email="taken@example.com")
        repo.validator = None
        with pytest.raises(IntegrityError):
            repo.create({"name": "Other", "email": "taken@example.com"})
        assert Customer.objects.count() == 1

    def test_stale_update_id_is_not_reused(self, repo, make_customer):
        existing = make_customer(email="taken@example.com")
        repo.update({"name": "Renamed"}, existing.id)
        with pytest.raises(ValidationFailed):
            repo.create({"name": "Dup", "email": "taken@example.com"})

    def test_handle_reset_even_when_validation_fails(self, repo):
        repo.order_by("name")
        with pytest.raises(ValidationFailed):
            repo.create({"name": ""})
        assert repo.queryset.query.order_by == ()

    def test_logs_creation(self, repo, caplog):
        with caplog.at_level(logging.INFO):
            repo.create({"name": "Alice", "email": "alice@example.com"})
        assert any("repository.created" in record.getMessage() for record in caplog.records)


# ===========================================================================
# first_or_create
# ===========================================================================


class TestFirstOrCreate:
    def test_returns_existing_match_without_creating(self, repo, make_customer):
        existing = make_customer(email="a@b.com")
        with patch.object(repo, "create") as create:
            result = repo.first_or_create({"email": "a@b.com"})
        create.assert_not_called()
        assert result["data"]["id"] == existing.id
        assert Customer.objects.count() == 1

    def test_creates_exactly_one_when_missing(self, repo):
        result = repo.first_or_create({"name": "New", "email": "a@b.com"})
        assert Customer.objects.filter(email="a@b.com").count() == 1
        assert result["data"]["name"] == "New"

    def test_match_is_exact_and_of_all_attributes(self, repo, make_customer):
        make_customer(name="Old", email="a@b.com")
        with pytest.raises(ValidationFailed):
            # no exact match on both fields -> create -> email already taken
            repo.first_or_create({"name": "New", "email": "a@b.com"})

    def test_existing_match_skips_validation(self, repo, make_customer):
        make_customer(name="Old", email="a@b.com")
        with patch.object(repo.validator, "pass_or_fail") as pass_or_fail:
            repo.first_or_create({"email": "a@b.com"})
        pass_or_fail.assert_not_called()

    def test_presenter_flag_restored(self, repo, make_customer):
        make_customer(email="a@b.com")
        repo.first_or_create({"email": "a@b.com"})
        assert repo.is_skipping_presenter is False

    def test_visible_fields_apply_to_created_entity(self, repo):
        entity = repo.skip_presenter().visible(["name"]).first_or_create(
            {"name": "New", "email": "a@b.com"}
        )
        assert entity_to_dict(entity) == {"name": "New"}

    def test_raw_when_presenter_skipped(self, repo, make_customer):
        existing = make_customer(email="a@b.com")
        assert repo.skip_presenter().first_or_create({"email": "a@b.com"}) == existing


# ===========================================================================
# update
# ===========================================================================


class TestUpdate:
    def test_updates_and_presents(self, repo, make_customer):
        customer = make_customer(name="Old")
        result = repo.update({"name": "New", "status": CustomerStatus.INACTIVE}, customer.id)
        customer.refresh_from_db()
        assert customer.name == "New"
        assert customer.status == CustomerStatus.INACTIVE
        assert result["data"]["name"] == "New"

    def test_validation_runs_before_fetch(self, repo):
        with patch.object(repo, "find") as find:
            with pytest.raises(ValidationFailed) as exc_info:
                repo.update({"name": ""}, 5)
        find.assert_not_called()
        assert "name" in exc_info.value.errors

    def test_missing_entity_raises_not_found(self, repo):
        with pytest.raises(EntityNotFound):
            repo.update({"name": "X"}, 5)

    def test_keeps_own_email(self, repo, make_customer):
        customer = make_customer(email="mine@example.com")
        repo.update({"email": "mine@example.com", "name": "Same"}, customer.id)
        customer.refresh_from_db()
        assert customer.name == "Same"

    def test_email_of_another_customer_rejected(self, repo, make_customer):
        make_customer(email="other@example.com")
        mine = make_customer(email="mine@example.com")
        with pytest.raises(ValidationFailed):
            repo.update({"email": "other@example.com"}, mine.id)

    def test_unknown_field_raises_type_error(self, repo, make_customer):
        customer = make_customer()
        repo.validator = None
        with pytest.raises(TypeError):
            repo.update({"nickname": "x"}, customer.id)

    def test_presenter_restored_for_next_find(self, repo, make_customer):
        customer = make_customer()
        repo.update({"name": "X"}, customer.id)
        assert repo.is_skipping_presenter is False
        assert repo.find(customer.id)["data"]["name"] == "X"

    def test_skipped_presenter_stays_skipped(self, repo, make_customer):
        customer = make_customer()
        entity = repo.skip_presenter(True).update({"name": "X"}, customer.id)
        assert isinstance(entity, Customer)
        assert repo.is_skipping_presenter is True

    def test_hidden_fields_apply_to_updated_entity(self, repo, make_customer):
        customer = make_customer()
        entity = repo.skip_presenter().hidden(["email"]).update({"name": "X"}, customer.id)
        assert entity_to_dict(entity)["name"] == "X"
        assert "email" not in entity_to_dict(entity)

    def test_presenter_restored_when_update_fails(self, repo):
        with pytest.raises(EntityNotFound):
            repo.update({"name": "X"}, 404)
        assert repo.is_skipping_presenter is False

    def test_criteria_scope_the_target(self, repo, make_customer):
        inactive = make_customer(status=CustomerStatus.INACTIVE)
        repo.push_criteria(WhereCriterion("status", CustomerStatus.ACTIVE))
        with pytest.raises(EntityNotFound):
            repo.update({"name": "X"}, inactive.id)
        assert len(repo.get_criteria()) == 0


# ===========================================================================
# delete
# ===========================================================================


class TestDelete:
    def test_soft_deletes_single_id(self, repo, make_customer):
        customer = make_customer()
        assert repo.delete(customer.id) == 1
        customer.refresh_from_db()
        assert customer.is_deleted

    def test_deletes_collection_of_ids(self, repo, make_customer):
        customers = [make_customer() for _ in range(3)]
        assert repo.delete([customers[0].id, customers[2].id]) == 2
        assert Customer.objects.alive().count() == 1

    def test_already_deleted_not_counted(self, repo, make_customer):
        customer = make_customer()
        customer.delete()
        assert repo.delete(customer.id) == 0

    def test_missing_id_returns_zero(self, repo):
        assert repo.delete(12345) == 0

    def test_malformed_id_returns_zero(self, repo, make_customer):
        make_customer()
        assert repo.delete("abc") == 0
        assert Customer.objects.alive().count() == 1

    def test_malformed_ids_skipped_in_collection(self, repo, make_customer):
        customer = make_customer()
        assert repo.delete(["abc", str(customer.id), None]) == 1
        customer.refresh_from_db()
        assert customer.is_deleted

    def test_hard_delete_model(self, make_customer, make_order):
        order = make_order(make_customer())
        assert OrderRepository().delete({order.id}) == 1
        assert not Order.objects.filter(id=order.id).exists()

    def test_ignores_criteria_and_keeps_queue(self, repo, make_customer):
        inactive = make_customer(status=CustomerStatus.INACTIVE)
        repo.push_criteria(WhereCriterion("status", CustomerStatus.ACTIVE))
        assert repo.delete(inactive.id) == 1
        assert len(repo.get_criteria()) == 1

    def test_returns_raw_count_with_presenter(self, repo, make_customer):
        assert repo.delete(make_customer().id) == 1
