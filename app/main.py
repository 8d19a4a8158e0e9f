"""
Streamlit Frontend for BizLedger

This is the point-of-sale screen a shop owner or cashier uses all day.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Every money figure shown in the business currency
3. Clear error messages in simple language
4. Visual feedback for all operations
5. No hidden actions

The UI never touches storage directly. Every action goes through the
BusinessLedger facade, which validates, commits and audits.
"""

import asyncio
from decimal import Decimal

import streamlit as st

from bizledger.exceptions import LedgerError
from bizledger.exports import ExportKind
from bizledger.models import (
    ExpenseCategory,
    Language,
    MobileMoneyProvider,
    PaymentMethod,
    Period,
)
from bizledger.orchestrator import BusinessLedger, create_app_components
from bizledger.receipts import format_money, payment_label


# Page configuration
st.set_page_config(
    page_title="BizLedger",
    page_icon="🧾",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .success-box {
        padding: 20px;
        background-color: #d4edda;
        border-radius: 10px;
        border-left: 5px solid #28a745;
        margin: 10px 0;
    }
    .warning-box {
        padding: 20px;
        background-color: #fff3cd;
        border-radius: 10px;
        border-left: 5px solid #ffc107;
        margin: 10px 0;
    }
    .info-box {
        padding: 20px;
        background-color: #cce5ff;
        border-radius: 10px;
        border-left: 5px solid #004085;
        margin: 10px 0;
    }
</style>
""", unsafe_allow_html=True)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_ledger() -> BusinessLedger:
    """Get or create the ledger (cached for the server's lifetime)."""
    return create_app_components()


def money(ledger: BusinessLedger, amount: Decimal) -> str:
    return format_money(amount, ledger.business_settings().currency)


def main():
    """Main application entry point."""
    ledger = get_ledger()
    settings = ledger.business_settings()

    st.sidebar.title(f"🧾 {settings.business_name}")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        [
            "🏠 Dashboard",
            "🛒 Sales",
            "📦 Inventory",
            "💸 Expenses",
            "🧾 Receipts",
            "📊 Analytics",
            "⚙️ Settings",
        ],
        index=0,
    )

    st.sidebar.markdown("---")
    if ledger.is_synced:
        st.sidebar.success("✅ All changes saved")
    else:
        st.sidebar.warning(
            "⚠️ Some changes are not saved to disk yet: "
            + ", ".join(sorted(ledger.unsynced_keys))
        )
        if st.sidebar.button("🔁 Retry saving"):
            ledger.flush()
            st.rerun()

    try:
        if page == "🏠 Dashboard":
            render_dashboard_page(ledger)
        elif page == "🛒 Sales":
            render_sales_page(ledger)
        elif page == "📦 Inventory":
            render_inventory_page(ledger)
        elif page == "💸 Expenses":
            render_expenses_page(ledger)
        elif page == "🧾 Receipts":
            render_receipts_page(ledger)
        elif page == "📊 Analytics":
            render_analytics_page(ledger)
        elif page == "⚙️ Settings":
            render_settings_page(ledger)
    except Exception as e:
        ledger.audit_logger.log_error(type(e).__name__, str(e), {"page": page})
        st.error(f"Something went wrong: {str(e)}")


def render_dashboard_page(ledger: BusinessLedger):
    """Render today's figures."""
    st.title("🏠 Dashboard")
    summary = ledger.dashboard()

    col1, col2, col3, col4 = st.columns(4)
    col1.metric(
        "Today's Revenue",
        money(ledger, summary.todays_revenue),
        f"{summary.revenue_change_percent}% vs yesterday",
    )
    col2.metric("Today's Profit", money(ledger, summary.todays_profit))
    col3.metric("Transactions", summary.todays_transactions)
    col4.metric("Products", summary.total_products)

    if summary.low_stock_products:
        names = ", ".join(f"{p.name} ({p.stock})" for p in summary.low_stock_products)
        st.markdown(f"""
        <div class="warning-box">
            <h4>⚠️ Low Stock</h4>
            <p>{names}</p>
        </div>
        """, unsafe_allow_html=True)

    st.subheader("Recent Transactions")
    if not summary.recent_sales:
        st.info("No sales yet. Record your first sale on the Sales page.")
    for sale in summary.recent_sales:
        st.markdown(
            f"**{sale.product_name}** × {sale.quantity} · "
            f"{money(ledger, sale.total_amount)} · "
            f"{payment_label(sale.payment_method)} · "
            f"{sale.created_at.strftime('%d/%m/%Y %H:%M')}"
        )


def _payment_inputs(prefix: str) -> dict:
    """Payment method plus mobile-money details when they apply."""
    method = st.selectbox(
        "Payment Method",
        options=list(PaymentMethod),
        format_func=payment_label,
        key=f"{prefix}_method",
    )
    fields = {"payment_method": method.value}
    if method == PaymentMethod.MOBILE_MONEY:
        provider = st.selectbox(
            "Provider",
            options=list(MobileMoneyProvider),
            format_func=lambda p: p.value,
            key=f"{prefix}_provider",
        )
        fields["mobile_money_provider"] = provider.value
        fields["mobile_money_reference"] = st.text_input(
            "Transaction Reference", key=f"{prefix}_reference"
        )
    return fields


def render_sales_page(ledger: BusinessLedger):
    """Render the record-sale form and the sales history."""
    st.title("🛒 Sales")
    products = [p for p in ledger.products.list() if p.stock > 0]

    if not products:
        st.info("No products in stock. Add stock on the Inventory page.")
    else:
        product = st.selectbox(
            "Product",
            options=products,
            format_func=lambda p: f"{p.name} ({p.stock} in stock)",
        )
        quantity = st.number_input("Quantity", min_value=1, step=1, value=1)
        st.markdown(f"**Total:** {money(ledger, product.selling_price * quantity)}")
        customer_phone = st.text_input("Customer Phone (optional)")
        form = {
            "product_id": str(product.id),
            "quantity": int(quantity),
            "customer_phone": customer_phone,
            **_payment_inputs("sale"),
        }

        check = ledger.check_sale(form)
        if check.issues:
            st.caption(ledger.validator.get_user_friendly_summary(check))

        issue_receipt = st.checkbox("Print receipt", value=True)
        if st.button("✅ Complete Sale", type="primary"):
            try:
                if issue_receipt:
                    sale, receipt = ledger.checkout(form)
                    st.session_state.last_receipt_id = receipt.id
                else:
                    sale = ledger.record_sale(form)
                st.success(
                    f"Sold {sale.quantity} × {sale.product_name} for "
                    f"{money(ledger, sale.total_amount)}"
                )
            except LedgerError as e:
                st.error(str(e))

    receipt_id = st.session_state.get("last_receipt_id")
    if receipt_id:
        with st.expander("🧾 Last Receipt", expanded=True):
            st.code(ledger.receipt_text(receipt_id))

    st.markdown("---")
    st.subheader("Sales History")
    sales = sorted(ledger.sales.list(), key=lambda s: s.created_at, reverse=True)
    for sale in sales:
        col1, col2 = st.columns([5, 1])
        col1.markdown(
            f"**{sale.product_name}** × {sale.quantity} · "
            f"{money(ledger, sale.total_amount)} · "
            f"{sale.created_at.strftime('%d/%m/%Y %H:%M')}"
        )
        if col2.button("🗑️", key=f"delete_sale_{sale.id}"):
            ledger.delete_sale(sale.id)
            st.rerun()


def render_inventory_page(ledger: BusinessLedger):
    """Render the product list and the add-product form."""
    st.title("📦 Inventory")

    with st.form("add_product", clear_on_submit=True):
        st.markdown("### Add Product")
        col1, col2 = st.columns(2)
        with col1:
            name = st.text_input("Product Name *")
            category = st.text_input("Category")
            stock = st.number_input("Stock", min_value=0, step=1, value=0)
        with col2:
            cost_price = st.text_input("Cost Price *")
            selling_price = st.text_input("Selling Price *")
        submitted = st.form_submit_button("➕ Add Product", type="primary")

    if submitted:
        form = {
            "name": name,
            "category": category,
            "stock": int(stock),
            "cost_price": cost_price,
            "selling_price": selling_price,
        }
        try:
            product = ledger.add_product(form)
            st.success(f"Added {product.name}")
            result = ledger.validate_product(form)
            if result.warnings:
                st.warning(ledger.validator.get_user_friendly_summary(result))
        except LedgerError as e:
            st.error(str(e))

    st.markdown("---")
    threshold = ledger.dashboard().low_stock_products
    low_ids = {p.id for p in threshold}
    for product in ledger.products.list():
        with st.expander(
            f"{'⚠️ ' if product.id in low_ids else ''}{product.name} "
            f"· {product.stock} in stock · {money(ledger, product.selling_price)}"
        ):
            new_stock = st.number_input(
                "Stock", min_value=0, step=1, value=product.stock,
                key=f"stock_{product.id}",
            )
            new_price = st.text_input(
                "Selling Price", value=str(product.selling_price),
                key=f"price_{product.id}",
            )
            col1, col2 = st.columns(2)
            if col1.button("💾 Save", key=f"save_{product.id}"):
                try:
                    ledger.update_product(
                        product.id,
                        {"stock": int(new_stock), "selling_price": new_price},
                    )
                    st.rerun()
                except LedgerError as e:
                    st.error(str(e))
            if col2.button("🗑️ Delete", key=f"delete_{product.id}"):
                ledger.delete_product(product.id)
                st.rerun()


def render_expenses_page(ledger: BusinessLedger):
    """Render the record-expense form and the expense list."""
    st.title("💸 Expenses")

    category = st.selectbox(
        "Category *",
        options=list(ExpenseCategory),
        format_func=lambda c: c.value,
    )
    amount = st.text_input("Amount *")
    description = st.text_area("Description (optional)")
    form = {
        "category": category.value,
        "amount": amount,
        "description": description,
        **_payment_inputs("expense"),
    }

    if st.button("💾 Record Expense", type="primary"):
        try:
            expense = ledger.record_expense(form)
            st.success(f"Recorded {money(ledger, expense.amount)} for {expense.category.value}")
        except LedgerError as e:
            st.error(str(e))

    st.markdown("---")
    expenses = sorted(ledger.expenses.list(), key=lambda e: e.created_at, reverse=True)
    for expense in expenses:
        col1, col2 = st.columns([5, 1])
        col1.markdown(
            f"**{expense.category.value}** · {money(ledger, expense.amount)} · "
            f"{expense.description or ''} · {expense.created_at.strftime('%d/%m/%Y')}"
        )
        if col2.button("🗑️", key=f"delete_expense_{expense.id}"):
            ledger.delete_expense(expense.id)
            st.rerun()


def render_receipts_page(ledger: BusinessLedger):
    """Render receipt search, reprint and sharing."""
    st.title("🧾 Receipts")

    term = st.text_input(
        "Search",
        placeholder="Customer phone or product name",
    )
    receipts = ledger.search_receipts(term)
    if not receipts:
        st.info("No receipts found.")

    for receipt in receipts:
        label = (
            f"#{receipt.short_id} · {money(ledger, receipt.total)} · "
            f"{receipt.created_at.strftime('%d/%m/%Y %H:%M')}"
        )
        with st.expander(label):
            st.code(ledger.receipt_text(receipt.id))
            col1, col2 = st.columns(2)
            col1.download_button(
                "⬇️ Download",
                data=ledger.receipt_html(receipt.id),
                file_name=f"receipt-{receipt.short_id}.html",
                mime="text/html",
                key=f"download_{receipt.id}",
            )
            col2.link_button("📤 Share", ledger.receipt_share_link(receipt.id))


def render_analytics_page(ledger: BusinessLedger):
    """Render trends, top products and the insight text."""
    st.title("📊 Analytics")

    period = st.radio(
        "Period",
        options=list(Period),
        format_func=lambda p: p.value.title(),
        horizontal=True,
    )

    report = st.session_state.get("report")
    if st.button("🔄 Refresh Insights"):
        with st.spinner("Refreshing..."):
            report = run_async(ledger.insights.refresh(period))
            st.session_state.report = report
    if report is None or report.period != period:
        report = ledger.analytics_report(period)

    summary = report.summary
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Revenue", money(ledger, summary.total_revenue))
    col2.metric("Expenses", money(ledger, summary.total_expenses))
    col3.metric("Net Profit", money(ledger, summary.net_profit))
    col4.metric("Profit Margin", f"{summary.profit_margin:.1f}%")

    st.subheader("Trend")
    st.bar_chart(
        {
            "Revenue": {p.label: float(p.revenue) for p in report.trend},
            "Expenses": {p.label: float(p.expenses) for p in report.trend},
        }
    )

    st.subheader("Top Products")
    for rank, top in enumerate(report.top_products, start=1):
        st.markdown(
            f"{rank}. **{top.product_name}** · {top.quantity} sold · "
            f"{money(ledger, top.revenue)}"
        )

    language = ledger.business_settings().language
    st.markdown(f"""
    <div class="info-box">
        <h4>💡 Insight</h4>
        <p>{report.insights[language]}</p>
    </div>
    """, unsafe_allow_html=True)

    st.subheader("Export")
    for kind in ExportKind:
        if st.button(f"⬇️ Export {kind.value}", key=f"export_{kind.value}"):
            try:
                export = ledger.export(kind)
                st.download_button(
                    f"Save {export.filename}",
                    data=export.content,
                    file_name=export.filename,
                    mime="text/csv",
                    key=f"save_{kind.value}",
                )
            except LedgerError as e:
                st.warning(str(e))


def render_settings_page(ledger: BusinessLedger):
    """Render business details and printer connection."""
    st.title("⚙️ Settings")
    settings = ledger.business_settings()

    st.markdown("### Business")
    business_name = st.text_input("Business Name", value=settings.business_name)
    currency = st.text_input("Currency", value=settings.currency, max_chars=3)
    language = st.selectbox(
        "Language",
        options=list(Language),
        index=list(Language).index(settings.language),
        format_func=lambda l: {"en": "English", "lg": "Luganda"}[l.value],
    )
    logo_url = st.text_input("Logo URL (optional)", value=settings.logo_url or "")
    if st.button("💾 Save Settings", type="primary"):
        try:
            ledger.update_settings(
                business_name=business_name,
                currency=currency,
                language=language,
                logo_url=logo_url or None,
            )
            st.success("Settings saved")
        except LedgerError as e:
            st.error(str(e))

    st.markdown("---")
    st.markdown("### Printer")
    printer = ledger.printer
    if printer.connected_printer:
        st.success(f"✅ Connected to {printer.connected_printer}")
        col1, col2 = st.columns(2)
        if col1.button("🖨️ Test Print"):
            st.code(printer.test_print())
        if col2.button("🔌 Disconnect"):
            printer.disconnect()
            st.rerun()
    else:
        if st.button("🔍 Scan for Printers"):
            with st.spinner("Scanning..."):
                found = run_async(printer.scan())
            if found:
                st.session_state.printers = found
        for name in st.session_state.get("printers", []):
            if st.button(f"Connect {name}", key=f"connect_{name}"):
                printer.connect(name)
                st.rerun()

    st.markdown("---")
    st.markdown("### Recent Activity")
    for event in ledger.recent_activity(limit=10):
        st.caption(
            f"{event.timestamp.strftime('%d/%m/%Y %H:%M:%S')} · {event.event_type.value}"
        )


if __name__ == "__main__":
    main()
