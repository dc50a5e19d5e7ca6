"""Tests for the entry repository."""

from datetime import date, datetime, timezone

import pytest

from fixtures import new_entry
from inventory_loss.errors import ValidationError
from inventory_loss.repository import EntryRepository
from inventory_loss.store import NOT_REGISTERED_NAME, InMemoryStore, Product


class TestValidation:
    """Payload invariants are enforced before anything is stored."""

    @pytest.mark.parametrize("quantity", [0, -1, float("nan"), float("inf")])
    def test_quantity_must_be_positive(self, repository, quantity):
        """Zero, negative and non-finite quantities are rejected."""
        with pytest.raises(ValidationError, match="quantity"):
            repository.insert(new_entry(quantity=quantity))
        assert repository.store.count_entries() == 0

    def test_negative_cost_rejected(self, repository):
        """Unit cost below zero is rejected."""
        with pytest.raises(ValidationError, match="unit cost"):
            repository.insert(new_entry(unit_cost=-0.01))

    def test_zero_cost_allowed(self, repository):
        """A free item is still a valid loss."""
        entry_id = repository.insert(new_entry(unit_cost=0))
        assert entry_id > 0

    def test_empty_product_code_rejected(self, repository):
        """Blank product codes are rejected."""
        with pytest.raises(ValidationError, match="product code"):
            repository.insert(new_entry(product_code="  "))

    @pytest.mark.parametrize("code", ["AB|12", "12\n34", "12\r34", "123\r\n"])
    def test_delimiter_in_product_code_rejected(self, repository, code):
        """Codes that would break a pipe-delimited export line are rejected."""
        with pytest.raises(ValidationError, match="product code"):
            repository.insert(new_entry(product_code=code))
        assert repository.store.count_entries() == 0

    def test_unknown_reason_rejected(self, repository):
        """Entries must reference an existing reason."""
        with pytest.raises(ValidationError, match="reason"):
            repository.insert(new_entry(reason_id="42"))

    def test_notes_length_limit(self, repository):
        """Notes may be up to 500 characters."""
        repository.insert(new_entry(notes="x" * 500))
        with pytest.raises(ValidationError, match="notes"):
            repository.insert(new_entry(notes="x" * 501))


class TestInsert:
    """Entry creation and the product name snapshot."""

    def test_new_entries_start_unsynchronized(self, repository):
        """Locally recorded entries wait for export."""
        entry_id = repository.insert(new_entry())

        pending = repository.find_unsynchronized_by_reason("1")
        assert [e.id for e in pending] == [entry_id]
        assert pending[0].is_synchronized is False

    def test_name_snapshot_from_catalog(self, catalog_repository):
        """Without an explicit name the catalog name is copied."""
        catalog_repository.insert(new_entry(product_code="7891234567890"))

        entry = catalog_repository.find_unsynchronized_by_reason("1")[0]
        assert entry.product_name == "Arroz 5kg"

    def test_snapshot_survives_catalog_change(self, catalog_repository):
        """Renaming the product later does not rewrite recorded entries."""
        catalog_repository.insert(new_entry(product_code="7891234567890"))
        catalog_repository.store.upsert_product(
            Product(code="7891234567890", name="Arroz Novo")
        )

        entry = catalog_repository.find_unsynchronized_by_reason("1")[0]
        assert entry.product_name == "Arroz 5kg"

    def test_unregistered_product_placeholder(self, repository):
        """Unknown codes get the not-registered marker as name."""
        repository.insert(new_entry(product_code="000"))

        entry = repository.find_unsynchronized_by_reason("1")[0]
        assert entry.product_name == NOT_REGISTERED_NAME

    def test_explicit_name_wins(self, catalog_repository):
        """A name supplied with the entry overrides the catalog."""
        catalog_repository.insert(new_entry(product_code="7891234567890", product_name="Arroz Promo"))

        entry = catalog_repository.find_unsynchronized_by_reason("1")[0]
        assert entry.product_name == "Arroz Promo"

    def test_created_at_normalized_to_utc(self, repository):
        """Timestamps are stored in UTC with seconds precision."""
        local = datetime(2026, 10, 19, 11, 3, 22, 999, tzinfo=timezone.utc)
        repository.insert(new_entry(), created_at=local)

        entry = repository.find_entries()[0]
        assert entry.created_at == "2026-10-19T11:03:22Z"

    def test_synchronized_insert(self, repository):
        """Entries inserted as synchronized are not pending."""
        repository.insert(new_entry(), synchronized=True)

        assert repository.find_unsynchronized_by_reason("1") == []
        assert repository.pending_count() == 0


class TestCatalogMaintenance:
    """Placeholder products and soft deletion."""

    def test_ensure_product_creates_placeholder(self, repository):
        """An unknown code becomes a catalog product with the given name."""
        product = repository.ensure_product("000111", "Queijo Minas")

        assert product.name == "Queijo Minas"
        assert repository.find_product("000111").name == "Queijo Minas"
        assert repository.find_product("000111").regular_price == 0

    def test_ensure_product_without_name(self, repository):
        """The not-registered marker is used when no name is known."""
        repository.ensure_product("000222", "  ")

        assert repository.find_product("000222").name == NOT_REGISTERED_NAME

    def test_ensure_product_keeps_existing(self, catalog_repository):
        """A registered product is returned untouched."""
        product = catalog_repository.ensure_product("7891234567890", "Outro Nome")

        assert product.name == "Arroz 5kg"
        assert catalog_repository.find_product("7891234567890").club_price == 22.99

    def test_delete_product(self, catalog_repository):
        """Deleted products disappear from the catalog but not from entries."""
        catalog_repository.insert(new_entry(product_code="7891234567890"))

        assert catalog_repository.delete_product("7891234567890") is True

        assert catalog_repository.find_product("7891234567890") is None
        assert catalog_repository.find_entries()[0].product_name == "Arroz 5kg"
        assert catalog_repository.delete_product("7891234567890") is False


class TestSynchronization:
    """Selecting and flagging entries for export."""

    def test_only_reason_entries_returned(self, repository):
        """Unsynchronized lookup is scoped to one reason."""
        first = repository.insert(new_entry(reason_id="1"))
        repository.insert(new_entry(reason_id="2"))

        assert [e.id for e in repository.find_unsynchronized_by_reason("1")] == [first]

    def test_mark_synchronized(self, repository):
        """Flagged entries leave the pending set; flagging twice changes nothing."""
        ids = [repository.insert(new_entry()) for _ in range(3)]

        assert repository.mark_synchronized(ids[:2]) == 2
        assert [e.id for e in repository.find_unsynchronized_by_reason("1")] == [ids[2]]
        assert repository.mark_synchronized(ids[:2]) == 0

    def test_mark_empty_list(self, repository):
        assert repository.mark_synchronized([]) == 0


class TestAggregates:
    """Loss value sums over date ranges."""

    def _seed(self, repository: EntryRepository) -> None:
        repository.insert(
            new_entry(quantity=5, unit_cost=2.5), created_at=datetime(2026, 10, 1, 8, 0)
        )
        repository.insert(
            new_entry(reason_id="2", quantity=2, unit_cost=10), created_at=datetime(2026, 10, 10, 23, 59, 59)
        )
        repository.insert(
            new_entry(quantity=1, unit_cost=4), created_at=datetime(2026, 10, 11, 0, 0, 0)
        )

    def test_total(self, repository):
        """Sum of quantity times unit cost over every entry."""
        self._seed(repository)

        total = repository.aggregate_loss_value()

        assert total.total_value == pytest.approx(36.5)
        assert total.total_entries == 3

    def test_date_range_is_inclusive(self, repository):
        """The end date includes its last second."""
        self._seed(repository)

        total = repository.aggregate_loss_value(date(2026, 10, 1), date(2026, 10, 10))

        assert total.total_entries == 2
        assert total.total_value == pytest.approx(32.5)

    def test_empty_range_is_zero(self, repository):
        """A range without entries sums to zero."""
        self._seed(repository)

        total = repository.aggregate_loss_value(date(2025, 1, 1), date(2025, 1, 31))

        assert total.total_value == 0
        assert total.total_entries == 0

    def test_by_reason(self, repository):
        """Per-reason totals, highest value first."""
        self._seed(repository)

        rows = repository.loss_by_reason()

        assert [(r.reason_code, r.aggregate.total_value) for r in rows] == [
            ("02", pytest.approx(20.0)),
            ("01", pytest.approx(16.5)),
        ]

    def test_find_entries_in_range(self, repository):
        self._seed(repository)

        entries = repository.find_entries(start=date(2026, 10, 11))
        assert len(entries) == 1
        assert entries[0].quantity == 1


class TestReasonLookup:
    """Reason lookups by id, code and usage."""

    def test_by_code_exact(self, repository):
        assert repository.find_reason_by_code("03").id == "3"

    def test_by_code_ignores_padding(self, repository):
        """Leading zeros do not matter when matching codes."""
        assert repository.find_reason_by_code("3").code == "03"
        assert repository.find_reason_by_code("003").code == "03"

    def test_unknown_code(self, repository):
        assert repository.find_reason_by_code("77") is None

    def test_list_reasons(self):
        """All eight default reasons are active."""
        repository = EntryRepository(InMemoryStore())
        assert len(repository.list_reasons()) == 8

    def test_most_used_reasons(self, repository):
        """Reasons ranked by how many entries reference them."""
        repository.insert(new_entry(reason_id="4"))
        repository.insert(new_entry(reason_id="4"))
        repository.insert(new_entry(reason_id="7"))

        usage = repository.most_used_reasons(limit=2)

        assert [(u.reason_code, u.usage_count) for u in usage] == [("04", 2), ("07", 1)]
