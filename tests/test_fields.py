"""Tests for the standard field registry and field name resolution."""

import pytest

from docintake.fields.registry import DEFAULT_REGISTRY, FieldRegistry, StandardField
from docintake.fields.resolver import FieldNameResolver, normalize_field_id


class TestFieldRegistry:
    """Tests for FieldRegistry lookups."""

    def test_crucial_fields(self) -> None:
        assert DEFAULT_REGISTRY.crucial_fields() == ["documentType", "accountNumber", "invoiceDate"]

    def test_display_names(self) -> None:
        assert DEFAULT_REGISTRY.display_name("totalAmount") == "Total"
        assert DEFAULT_REGISTRY.display_name("customerPO") == "PO Number"
        assert DEFAULT_REGISTRY.display_name("notAField") == "notAField"

    def test_canonical_is_case_insensitive(self) -> None:
        assert DEFAULT_REGISTRY.canonical("INVOICENUMBER") == "invoiceNumber"
        assert DEFAULT_REGISTRY.canonical("colour") is None

    def test_goods_amount_mandatory_only_for_credit_notes(self) -> None:
        assert DEFAULT_REGISTRY.is_mandatory("goodsAmount", "credit_note") is True
        assert DEFAULT_REGISTRY.is_mandatory("goodsAmount", "invoice") is False

    def test_unknown_field_sorts_last(self) -> None:
        assert DEFAULT_REGISTRY.parsing_order("pageNo") == 0
        assert DEFAULT_REGISTRY.parsing_order("somethingElse") == 999

    def test_aliases_are_read_only(self) -> None:
        with pytest.raises(TypeError):
            DEFAULT_REGISTRY.aliases["total"] = "goodsAmount"

    def test_custom_registry(self) -> None:
        registry = FieldRegistry([StandardField(name="orderRef", display_name="Order", aliases=("order_ref",))])
        resolver = FieldNameResolver(registry)

        assert len(registry) == 1
        assert resolver.resolve("order_ref") == "orderRef"
        assert resolver.resolve("invoice_number") is None


class TestNormalizeFieldId:
    """Tests for raw field id normalization."""

    @pytest.mark.parametrize("raw, expected", [
        ("Invoice Number:", "invoice_number"),
        ("account-no.", "account_no"),
        ("  Tax  Point ", "tax_point"),
    ])
    def test_normalize(self, raw: str, expected: str) -> None:
        assert normalize_field_id(raw) == expected


class TestFieldNameResolver:
    """Tests for the resolution strategy chain."""

    @pytest.fixture
    def resolver(self) -> FieldNameResolver:
        return FieldNameResolver()

    def test_direct_match(self, resolver: FieldNameResolver) -> None:
        assert resolver.resolve("totalAmount") == "totalAmount"

    def test_alias_match(self, resolver: FieldNameResolver) -> None:
        assert resolver.resolve("Tax Point") == "invoiceDate"
        assert resolver.resolve("supplier_code") == "accountNumber"

    def test_prefix_stripping_uses_longest_tail(self, resolver: FieldNameResolver) -> None:
        assert resolver.resolve("makita_invoice_document_type") == "documentType"
        assert resolver.resolve("acme_inv_total") == "totalAmount"
        assert resolver.resolve("acme_customer_po") == "customerPO"

    def test_unknown_returns_none(self, resolver: FieldNameResolver) -> None:
        assert resolver.resolve("colour") is None
        assert resolver.resolve("") is None
        assert resolver.resolve(None) is None

    def test_strip_template_prefix(self, resolver: FieldNameResolver) -> None:
        assert resolver.strip_template_prefix("ACME_total", "acme") == "total"
        assert resolver.strip_template_prefix("total", "ACME") == "total"
        assert resolver.strip_template_prefix("ACME_total", None) == "ACME_total"
