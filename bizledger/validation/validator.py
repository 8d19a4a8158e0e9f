"""
Two-Stage Form Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Required field presence
- Numbers that parse as numbers
- Values from the closed sets (payment method, expense category)

STAGE 2 - SEMANTIC VALIDATION:
- Business rules (positive prices, stock on hand)
- Suspicious-but-allowed values (selling below cost, zero cost)

Stage 2 only runs when stage 1 passes, so its rules can assume the fields
exist and have the right types.

IMPORTANT: Validation NEVER silently fixes issues. The forms arrive as the
raw strings the UI collected; the validator reports and the caller decides.
"""

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Mapping, Optional

from bizledger.config import get_settings
from bizledger.models.ledger import (
    ExpenseCategory,
    MobileMoneyProvider,
    PaymentMethod,
    Product,
)
from bizledger.models.validation import ValidationIssue, ValidationResult


def _text(form: Mapping[str, Any], field: str) -> str:
    value = form.get(field)
    if value is None:
        return ""
    if isinstance(value, Enum):
        value = value.value
    return str(value).strip()


def _decimal(form: Mapping[str, Any], field: str) -> Optional[Decimal]:
    raw = _text(form, field)
    if not raw:
        return None
    try:
        value = Decimal(raw)
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


def _integer(form: Mapping[str, Any], field: str) -> Optional[int]:
    value = _decimal(form, field)
    if value is None or value != value.to_integral_value():
        return None
    return int(value)


def _missing(field: str, label: str) -> ValidationIssue:
    return ValidationIssue(
        field=field,
        issue_type="missing",
        message=f"{label} is required",
        severity="error",
        suggested_fix=f"Please enter the {label.lower()}",
    )


def _not_a_number(field: str, label: str) -> ValidationIssue:
    return ValidationIssue(
        field=field,
        issue_type="invalid_format",
        message=f"{label} must be a number",
        severity="error",
        suggested_fix="Use digits only, for example 1500",
    )


class LedgerValidator:
    """
    Validates product, expense and sale forms before they reach a repository.

    Stage 1: Schema validation
    Stage 2: Semantic validation
    """

    def __init__(self, low_stock_threshold: Optional[int] = None):
        if low_stock_threshold is None:
            low_stock_threshold = get_settings().app.low_stock_threshold
        self._low_stock_threshold = low_stock_threshold

    # =========================================================================
    # SHARED
    # =========================================================================

    @staticmethod
    def _payment_issues(form: Mapping[str, Any]) -> list[ValidationIssue]:
        issues = []
        method = _text(form, "payment_method") or PaymentMethod.CASH.value
        try:
            method = PaymentMethod(method)
        except ValueError:
            issues.append(ValidationIssue(
                field="payment_method",
                issue_type="invalid_value",
                message=f"Unknown payment method: {method}",
                severity="error",
                suggested_fix="Choose cash, mobile money or bank transfer",
            ))
            return issues

        provider = _text(form, "mobile_money_provider")
        reference = _text(form, "mobile_money_reference")
        if method != PaymentMethod.MOBILE_MONEY and (provider or reference):
            issues.append(ValidationIssue(
                field="mobile_money_provider",
                issue_type="inconsistent",
                message="Mobile money details were given for a non mobile-money payment",
                severity="error",
                suggested_fix="Clear the provider and reference, or pick mobile money",
            ))
        elif provider:
            try:
                MobileMoneyProvider(provider)
            except ValueError:
                issues.append(ValidationIssue(
                    field="mobile_money_provider",
                    issue_type="invalid_value",
                    message=f"Unknown mobile money provider: {provider}",
                    severity="error",
                    suggested_fix="Choose MTN or Airtel",
                ))
        return issues

    @staticmethod
    def _result(
        form: str,
        schema_issues: list[ValidationIssue],
        semantic_issues: Optional[list[ValidationIssue]],
    ) -> ValidationResult:
        schema_valid = not any(i.severity == "error" for i in schema_issues)
        semantic_valid = semantic_issues is not None and not any(
            i.severity == "error" for i in semantic_issues
        )
        return ValidationResult(
            form=form,
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            issues=schema_issues + (semantic_issues or []),
        )

    # =========================================================================
    # PRODUCTS
    # =========================================================================

    def validate_product(self, form: Mapping[str, Any]) -> ValidationResult:
        """Validate the add/edit product form."""
        issues = []
        if not _text(form, "name"):
            issues.append(_missing("name", "Product name"))
        for field, label in (("cost_price", "Cost price"), ("selling_price", "Selling price")):
            if not _text(form, field):
                issues.append(_missing(field, label))
            elif _decimal(form, field) is None:
                issues.append(_not_a_number(field, label))
        if _text(form, "stock") and _integer(form, "stock") is None:
            issues.append(ValidationIssue(
                field="stock",
                issue_type="invalid_format",
                message="Stock must be a whole number",
                severity="error",
            ))

        if any(i.severity == "error" for i in issues):
            return self._result("product", issues, None)

        semantic = []
        cost = _decimal(form, "cost_price")
        price = _decimal(form, "selling_price")
        stock = _integer(form, "stock") or 0

        if price <= 0:
            semantic.append(ValidationIssue(
                field="selling_price",
                issue_type="invalid_value",
                message="Selling price must be greater than zero",
                severity="error",
            ))
        if cost < 0:
            semantic.append(ValidationIssue(
                field="cost_price",
                issue_type="invalid_value",
                message="Cost price cannot be negative",
                severity="error",
            ))
        elif cost == 0:
            semantic.append(ValidationIssue(
                field="cost_price",
                issue_type="suspicious_value",
                message="Cost price is zero, so every sale will count as pure profit",
                severity="warning",
                suggested_fix="Enter what you paid for the product",
            ))
        if stock < 0:
            semantic.append(ValidationIssue(
                field="stock",
                issue_type="invalid_value",
                message="Stock cannot be negative",
                severity="error",
            ))
        if price > 0 and cost > price:
            semantic.append(ValidationIssue(
                field="selling_price",
                issue_type="suspicious_value",
                message="Selling price is below cost price; each sale loses money",
                severity="warning",
                suggested_fix="Check the two prices were not swapped",
            ))
        return self._result("product", issues, semantic)

    # =========================================================================
    # EXPENSES
    # =========================================================================

    def validate_expense(self, form: Mapping[str, Any]) -> ValidationResult:
        """Validate the record-expense form."""
        issues = []
        category = _text(form, "category")
        if not category:
            issues.append(_missing("category", "Category"))
        else:
            try:
                ExpenseCategory(category)
            except ValueError:
                issues.append(ValidationIssue(
                    field="category",
                    issue_type="invalid_value",
                    message=f"Unknown expense category: {category}",
                    severity="error",
                    suggested_fix="Pick one of the listed categories",
                ))
        if not _text(form, "amount"):
            issues.append(_missing("amount", "Amount"))
        elif _decimal(form, "amount") is None:
            issues.append(_not_a_number("amount", "Amount"))
        issues.extend(self._payment_issues(form))

        if any(i.severity == "error" for i in issues):
            return self._result("expense", issues, None)

        semantic = []
        if _decimal(form, "amount") <= 0:
            semantic.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
            ))
        return self._result("expense", issues, semantic)

    # =========================================================================
    # SALES
    # =========================================================================

    def validate_sale(
        self,
        form: Mapping[str, Any],
        product: Optional[Product],
    ) -> ValidationResult:
        """
        Validate the record-sale form against the product being sold.

        The stock check here is advisory for the UI; the coordinator repeats
        it against the stored product when the sale is committed.
        """
        issues = []
        if product is None:
            issues.append(_missing("product_id", "Product"))
        if not _text(form, "quantity"):
            issues.append(_missing("quantity", "Quantity"))
        elif _integer(form, "quantity") is None:
            issues.append(ValidationIssue(
                field="quantity",
                issue_type="invalid_format",
                message="Quantity must be a whole number",
                severity="error",
            ))
        issues.extend(self._payment_issues(form))

        if any(i.severity == "error" for i in issues):
            return self._result("sale", issues, None)

        semantic = []
        quantity = _integer(form, "quantity")
        if quantity <= 0:
            semantic.append(ValidationIssue(
                field="quantity",
                issue_type="invalid_value",
                message="Quantity must be greater than zero",
                severity="error",
            ))
        elif quantity > product.stock:
            semantic.append(ValidationIssue(
                field="quantity",
                issue_type="insufficient_stock",
                message=f"Only {product.stock} of {product.name} in stock",
                severity="error",
                suggested_fix="Lower the quantity or restock first",
            ))
        elif product.stock - quantity <= self._low_stock_threshold:
            semantic.append(ValidationIssue(
                field="quantity",
                issue_type="low_stock",
                message=(
                    f"{product.name} will be low on stock "
                    f"({product.stock - quantity} left) after this sale"
                ),
                severity="warning",
                suggested_fix="Consider restocking soon",
            ))
        return self._result("sale", issues, semantic)

    # =========================================================================
    # PRESENTATION
    # =========================================================================

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is what we show to shop staff.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed!"

        lines = []
        errors = [i for i in result.issues if i.severity == "error"]
        if errors:
            lines.append("❌ Please fix the following:")
            for issue in errors:
                lines.append(f"   • {issue.message}")
                if issue.suggested_fix:
                    lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please double-check:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        if result.is_valid:
            lines.append("")
            lines.append("You can still save, but please review carefully.")
        return "\n".join(lines)
