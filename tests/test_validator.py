"""Tests for the two-stage form validator."""

import pytest

from bizledger.models import Product
from bizledger.validation import LedgerValidator


@pytest.fixture
def validator() -> LedgerValidator:
    return LedgerValidator(low_stock_threshold=5)


@pytest.fixture
def product() -> Product:
    return Product(name="Sugar", cost_price=600, selling_price=1000, stock=10)


class TestProductForm:
    """Tests for product form validation."""

    def test_valid_product(self, validator):
        """Test that a complete form passes cleanly."""
        result = validator.validate_product(
            {"name": "Sugar", "cost_price": "600", "selling_price": "1000", "stock": "10"}
        )
        assert result.is_valid
        assert result.issues == []

    def test_missing_fields_stop_at_schema(self, validator):
        """Test that schema errors skip the semantic stage."""
        result = validator.validate_product({"name": " ", "selling_price": "abc"})
        assert not result.schema_valid
        assert not result.is_valid
        assert {i.field for i in result.issues} == {"name", "cost_price", "selling_price"}

    def test_non_positive_selling_price(self, validator):
        """Test that a product must sell for something."""
        result = validator.validate_product(
            {"name": "Sugar", "cost_price": "0", "selling_price": "0"}
        )
        assert result.schema_valid
        assert not result.semantic_valid
        assert any(i.field == "selling_price" and i.severity == "error" for i in result.issues)

    def test_negative_stock(self, validator):
        """Test that stock cannot start below zero."""
        result = validator.validate_product(
            {"name": "Sugar", "cost_price": "1", "selling_price": "2", "stock": "-3"}
        )
        assert not result.is_valid

    def test_selling_below_cost_is_a_warning(self, validator):
        """Test that a loss-making price is allowed but flagged."""
        result = validator.validate_product(
            {"name": "Sugar", "cost_price": "1200", "selling_price": "1000"}
        )
        assert result.is_valid
        assert len(result.warnings) == 1

    def test_zero_cost_is_a_warning(self, validator):
        """Test that a zero cost price is flagged."""
        result = validator.validate_product(
            {"name": "Gift", "cost_price": "0", "selling_price": "100"}
        )
        assert result.is_valid
        assert "Cost price is zero" in result.warnings[0]


class TestExpenseForm:
    """Tests for expense form validation."""

    def test_valid_expense(self, validator):
        """Test a mobile-money expense with provider."""
        result = validator.validate_expense({
            "category": "Rent",
            "amount": "800",
            "payment_method": "mobile-money",
            "mobile_money_provider": "MTN",
        })
        assert result.is_valid

    def test_unknown_category(self, validator):
        """Test that categories come from the closed list."""
        result = validator.validate_expense({"category": "Snacks", "amount": "800"})
        assert not result.schema_valid

    def test_non_positive_amount(self, validator):
        """Test that expenses must cost something."""
        result = validator.validate_expense({"category": "Rent", "amount": "0"})
        assert result.schema_valid
        assert not result.is_valid

    def test_mobile_money_details_on_cash(self, validator):
        """Test that provider details are refused for cash payments."""
        result = validator.validate_expense({
            "category": "Rent",
            "amount": "800",
            "payment_method": "cash",
            "mobile_money_reference": "TX1",
        })
        assert not result.is_valid

    def test_unknown_payment_method(self, validator):
        """Test that payment methods come from the closed list."""
        result = validator.validate_expense(
            {"category": "Rent", "amount": "800", "payment_method": "cheque"}
        )
        assert not result.is_valid


class TestSaleForm:
    """Tests for sale form validation."""

    def test_valid_sale(self, validator, product):
        """Test a sale well within stock."""
        assert validator.validate_sale({"quantity": "2"}, product).is_valid

    def test_quantity_above_stock(self, validator, product):
        """Test that overselling is an error."""
        result = validator.validate_sale({"quantity": "11"}, product)
        assert not result.is_valid
        assert result.issues[0].issue_type == "insufficient_stock"

    def test_sale_leaving_low_stock_warns(self, validator, product):
        """Test that a sale leaving stock at the threshold warns."""
        result = validator.validate_sale({"quantity": "5"}, product)
        assert result.is_valid
        assert "low on stock" in result.warnings[0]

    def test_missing_product(self, validator):
        """Test that a sale needs a product."""
        assert not validator.validate_sale({"quantity": "1"}, None).is_valid

    def test_fractional_quantity(self, validator, product):
        """Test that quantities are whole units."""
        assert not validator.validate_sale({"quantity": "1.5"}, product).schema_valid


class TestSummary:
    """Tests for the user-facing summary."""

    def test_all_clear(self, validator):
        """Test the message for a clean form."""
        result = validator.validate_expense({"category": "Rent", "amount": "800"})
        assert validator.get_user_friendly_summary(result) == "✅ All checks passed!"

    def test_errors_listed(self, validator):
        """Test that each error appears in the summary."""
        result = validator.validate_expense({"category": "", "amount": ""})
        summary = validator.get_user_friendly_summary(result)
        assert "Category is required" in summary
        assert "Amount is required" in summary
