"""First-non-empty extractors over AccuLynx response shapes."""
from salescycle.engine.extractors import (
    INVOICE_AMOUNT_EXTRACTORS,
    STATUS_NAME_EXTRACTORS,
    as_item_list,
    contract_value,
    extract_invoice_amount,
    extract_status_name,
    extract_user_name,
    financials_reference_id,
    first_non_empty,
    pick_representative,
    representative_user_id,
)


class TestStatusName:

    def test_explicit_field_wins(self):
        result = {"statusName": "Bought Job", "status": {"name": "Other"}, "name": "Prospect"}
        assert extract_status_name(result) == "Bought Job"
        assert first_non_empty(result, STATUS_NAME_EXTRACTORS)[0] == "statusName"

    def test_nested_status_object(self):
        result = {"status": {"name": "Initial Visit Scheduled"}, "name": "Lead"}
        assert extract_status_name(result) == "Initial Visit Scheduled"

    def test_bare_name_last(self):
        assert extract_status_name({"statusName": "  ", "name": "Lead"}) == "Lead"

    def test_nothing_usable(self):
        assert extract_status_name({}) == ""
        assert extract_status_name(None) == ""
        assert extract_status_name({"status": "not-a-dict"}) == ""


class TestRepresentative:

    def test_sales_owner_preferred(self):
        result = {"items": [
            {"type": "CompanyRepresentative", "user": {"id": "u1"}},
            {"type": "SalesOwner", "user": {"id": "u2"}},
        ]}
        assert representative_user_id(pick_representative(result)) == "u2"

    def test_company_rep_fallback(self):
        result = {"items": [
            {"type": "Estimator", "user": {"id": "u1"}},
            {"type": "CompanyRepresentative", "user": {"id": "u3"}},
        ]}
        assert representative_user_id(pick_representative(result)) == "u3"

    def test_first_rep_fallback(self):
        result = {"items": [{"type": "Estimator", "user": {"id": "u9"}}]}
        assert representative_user_id(pick_representative(result)) == "u9"

    def test_no_reps(self):
        assert pick_representative({"items": []}) is None
        assert pick_representative({}) is None
        assert representative_user_id(None) is None
        assert representative_user_id({"type": "SalesOwner"}) is None


class TestInvoiceAmount:

    def test_priority_order(self):
        assert [name for name, _ in INVOICE_AMOUNT_EXTRACTORS] == [
            "invoiceTotal", "amount", "total", "invoiceAmount",
        ]
        assert extract_invoice_amount({"invoiceTotal": 100, "amount": 5}) == 100.0

    def test_zero_falls_through(self):
        assert extract_invoice_amount({"invoiceTotal": 0, "total": 250.5}) == 250.5

    def test_missing_is_zero(self):
        assert extract_invoice_amount({}) == 0.0
        assert extract_invoice_amount({"amount": "n/a"}) == 0.0


class TestUserName:

    def test_display_name_first(self):
        assert extract_user_name({"displayName": "Dana R", "firstName": "Dana", "lastName": "Reyes"}) == "Dana R"

    def test_joined_first_last(self):
        assert extract_user_name({"firstName": "Dana", "lastName": "Reyes", "name": "dreyes"}) == "Dana Reyes"
        assert extract_user_name({"firstName": "Dana", "lastName": ""}) == "Dana"

    def test_generic_name_last(self):
        assert extract_user_name({"displayName": "", "name": "dreyes"}) == "dreyes"

    def test_empty(self):
        assert extract_user_name({}) == ""


class TestFinancials:

    def test_contract_value_present(self):
        assert contract_value({"approvedJobValue": 12500}) == 12500.0
        assert contract_value({"approvedJobValue": 0}) == 0.0

    def test_contract_value_negative_clamped_to_zero(self):
        assert contract_value({"approvedJobValue": -350}) == 0.0
        assert contract_value({"approvedJobValue": "-12.5"}) == 0.0

    def test_contract_value_missing(self):
        assert contract_value({"id": "f1"}) is None
        assert contract_value(None) is None

    def test_reference_id(self):
        assert financials_reference_id({"id": "f1"}) == "f1"
        assert financials_reference_id({"id": ""}) is None


def test_as_item_list_shapes():
    assert as_item_list({"items": [1, 2]}) == [1, 2]
    assert as_item_list([3]) == [3]
    assert as_item_list({"count": 0}) == []
    assert as_item_list(None) == []
