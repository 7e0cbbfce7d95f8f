"""
Streamlit Frontend for Shared Ledger

The dashboard the owner and managers use every day. It is a thin renderer:
every number it shows comes from the orchestrator, and every action goes
through a flow together with the logged-in Session.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Errors are shown as short notices, never as crashes
3. Owner-only controls are hidden from managers (and refused by the core anyway)
4. Changing your own credentials sends you back to the login screen
"""

import asyncio
from datetime import date

import streamlit as st

from shared_ledger.config import get_settings, validate_all_settings
from shared_ledger.errors import LedgerError, SessionExpiredError
from shared_ledger.models.accounts import Session
from shared_ledger.models.ledger import ReportMode, TransactionType, TypeFilter
from shared_ledger.orchestrator import AccountFlow, LedgerFlow, create_app_components
from shared_ledger.services.storage import StorageError


# Page configuration
st.set_page_config(
    page_title="Shared Ledger",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for the summary cards
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .card {
        padding: 20px;
        border-radius: 10px;
        background-color: #f8fafc;
        margin: 10px 0;
    }
    .income { border-top: 3px solid #10B981; }
    .expense { border-top: 3px solid #EF4444; }
    .balance-positive { border-top: 3px solid #3B82F6; }
    .balance-negative { border-top: 3px solid #F59E0B; }
    .big-number {
        font-size: 2.2em;
        font-weight: bold;
        color: #2c3e50;
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
def get_components():
    """Get or create application components (cached, shared by every browser session)."""
    return create_app_components()


def call(coro):
    """
    Run a flow call and turn failures into notices.

    Returns (result, ok). A stale session is dropped so the next rerun
    shows the login screen.
    """
    try:
        return run_async(coro), True
    except SessionExpiredError as e:
        st.session_state.session = None
        st.warning(str(e))
        return None, False
    except (LedgerError, StorageError) as e:
        st.error(str(e))
        return None, False


def money(value) -> str:
    return f"{value:,.2f} {get_settings().app.currency_label}"


def main():
    """Main application entry point."""
    account_flow, ledger_flow, _ = get_components()

    if "session" not in st.session_state:
        st.session_state.session = None

    session = st.session_state.session
    if session is None:
        render_login_page(account_flow)
        return

    st.sidebar.title("💰 Shared Ledger")
    role_label = "Owner" if session.is_owner else "Manager"
    st.sidebar.markdown(f"Welcome, **{session.username}** · {role_label}")
    st.sidebar.markdown("---")

    pages = ["📊 Dashboard", "🧾 Expense Report", "🔑 My Account"]
    if session.is_owner:
        pages += ["👥 Managers", "⚙️ Settings"]
    page = st.sidebar.radio("Navigate to:", pages, index=0)

    if st.sidebar.button("Log out"):
        account_flow.logout(session)
        st.session_state.session = None
        st.rerun()

    if page == "📊 Dashboard":
        render_dashboard_page(ledger_flow, session)
    elif page == "🧾 Expense Report":
        render_report_page(ledger_flow, session)
    elif page == "🔑 My Account":
        render_account_page(account_flow, session)
    elif page == "👥 Managers":
        render_managers_page(account_flow, session)
    elif page == "⚙️ Settings":
        render_settings_page()


def render_login_page(account_flow: AccountFlow):
    """Login, or one-time owner registration when nobody exists yet."""
    state, ok = call(account_flow.resolve_bootstrap_state())
    if not ok:
        return

    registering = state.needs_registration
    st.title("💰 Shared Ledger")
    st.subheader("Create the owner account" if registering else "Log in")

    username = st.text_input("Username")
    password = st.text_input("Password", type="password")

    label = "Create account" if registering else "Log in"
    if st.button(label, type="primary"):
        flow_call = account_flow.register if registering else account_flow.login
        session, ok = call(flow_call(username, password))
        if ok:
            st.session_state.session = session
            st.rerun()


def render_dashboard_page(ledger_flow: LedgerFlow, session: Session):
    """Totals cards, add forms and the transaction history."""
    st.title("📊 Dashboard")

    totals, ok = call(ledger_flow.totals(session))
    if not ok:
        return

    col1, col2, col3 = st.columns(3)
    with col1:
        st.markdown(f"""
        <div class="card income">
            <p>Total income</p>
            <p class="big-number">{money(totals.income)}</p>
        </div>
        """, unsafe_allow_html=True)
    with col2:
        st.markdown(f"""
        <div class="card expense">
            <p>Total expenses</p>
            <p class="big-number">{money(totals.expense)}</p>
        </div>
        """, unsafe_allow_html=True)
    with col3:
        balance_class = "balance-negative" if totals.is_negative else "balance-positive"
        st.markdown(f"""
        <div class="card {balance_class}">
            <p>Balance</p>
            <p class="big-number">{money(totals.balance)}</p>
            <p>Transactions: {totals.count}</p>
        </div>
        """, unsafe_allow_html=True)

    st.markdown("---")
    render_add_forms(ledger_flow, session)

    st.markdown("---")
    st.subheader("History")
    type_filter = st.radio(
        "Show",
        options=list(TypeFilter),
        format_func=lambda f: f.value.title(),
        horizontal=True,
    )
    transactions, ok = call(ledger_flow.transactions(session, type_filter))
    if not ok:
        return

    if not transactions:
        st.info("📋 No transactions yet")
        return

    for tx in transactions:
        sign = "+" if tx.is_income else "-"
        col1, col2 = st.columns([5, 1])
        with col1:
            badge = "🟢 Income" if tx.is_income else "🔴 Expense"
            receipt = " · 📎 receipt" if tx.receipt else ""
            st.markdown(f"**{sign}{money(tx.amount)}** · {badge}{receipt}")
            if tx.note:
                st.caption(tx.note)
            st.caption(f"{tx.date.astimezone():%d %b %Y %H:%M} · {tx.added_by}")
        with col2:
            if session.is_owner and st.button("🗑", key=f"delete-{tx.id}"):
                _, ok = call(ledger_flow.delete_transaction(session, tx.id))
                if ok:
                    st.rerun()


def render_add_forms(ledger_flow: LedgerFlow, session: Session):
    """Income and expense entry forms."""
    col1, col2 = st.columns(2)

    with col1:
        with st.form("add-income", clear_on_submit=True):
            st.markdown("#### + Add income")
            amount = st.text_input("Amount *", placeholder="0.00")
            note = st.text_area("Notes", placeholder="Describe the income...")
            if st.form_submit_button("Add income", type="primary"):
                _, ok = call(ledger_flow.add_transaction(
                    session, TransactionType.INCOME, amount, note,
                ))
                if ok:
                    st.success("Income added")

    with col2:
        with st.form("add-expense", clear_on_submit=True):
            st.markdown("#### + Add expense")
            amount = st.text_input("Amount *", placeholder="0.00")
            note = st.text_area("What was it for? *", placeholder="e.g. office supplies")
            receipt = st.file_uploader("Receipt (optional)", type=["png", "jpg", "jpeg", "pdf"])
            if st.form_submit_button("Add expense"):
                _, ok = call(ledger_flow.add_transaction(
                    session,
                    TransactionType.EXPENSE,
                    amount,
                    note,
                    receipt=receipt.name if receipt else None,
                ))
                if ok:
                    st.success("Expense added")


def render_report_page(ledger_flow: LedgerFlow, session: Session):
    """Expense report for today or a custom date range."""
    st.title("🧾 Expense Report")

    mode = st.radio(
        "Period",
        options=list(ReportMode),
        format_func=lambda m: "Today" if m is ReportMode.TODAY else "Custom range",
        horizontal=True,
    )

    date_from = date_to = None
    if mode is ReportMode.CUSTOM:
        col1, col2 = st.columns(2)
        with col1:
            date_from = st.date_input("From", value=date.today())
        with col2:
            date_to = st.date_input("To", value=date.today())

    report, ok = call(ledger_flow.expense_report(session, mode, date_from, date_to))
    if not ok:
        return

    period = (
        f"{report.date_from:%d %b %Y}"
        if report.is_single_day
        else f"{report.date_from:%d %b %Y} - {report.date_to:%d %b %Y}"
    )
    st.markdown(f"**Period:** {period}")

    if report.is_empty:
        st.info("No expenses in this period")
        return

    st.table([
        {
            "Date": f"{tx.date.astimezone():%d %b %Y %H:%M}",
            "Note": tx.note,
            "Added by": tx.added_by,
            "Receipt": tx.receipt or "",
            "Amount": money(tx.amount),
        }
        for tx in report.rows
    ])
    st.markdown(f"### Total: {money(report.total)} ({report.count} expenses)")


def render_account_page(account_flow: AccountFlow, session: Session):
    """Change the logged-in user's own username and/or password."""
    st.title("🔑 My Account")
    st.markdown("Leave a field blank to keep it. You will be asked to log in again.")

    with st.form("change-credentials"):
        new_username = st.text_input("New username")
        new_password = st.text_input("New password", type="password")
        if st.form_submit_button("Save", type="primary"):
            _, ok = call(account_flow.change_credentials(session, new_username, new_password))
            if ok:
                st.session_state.session = None
                st.rerun()


def render_managers_page(account_flow: AccountFlow, session: Session):
    """Owner-only manager administration."""
    st.title("👥 Managers")

    with st.form("add-manager", clear_on_submit=True):
        st.markdown("#### Add a manager")
        username = st.text_input("Username")
        password = st.text_input("Password", type="password")
        if st.form_submit_button("+ Add manager", type="primary"):
            _, ok = call(account_flow.add_manager(session, username, password))
            if ok:
                st.success("Manager added")

    managers, ok = call(account_flow.list_managers(session))
    if not ok or not managers:
        return

    st.markdown(f"#### Current managers ({len(managers)})")
    for manager in managers:
        col1, col2 = st.columns([5, 1])
        with col1:
            st.markdown(f"👤 **{manager.username}**")
            st.caption(f"Added {manager.created_at.astimezone():%d %b %Y}")
        with col2:
            if st.button("Remove", key=f"remove-{manager.username}"):
                _, ok = call(account_flow.remove_manager(session, manager.username))
                if ok:
                    st.rerun()


def render_settings_page():
    """Show configuration status."""
    st.title("⚙️ Settings")

    st.markdown("### Configuration Status")
    status = validate_all_settings()

    sections = [
        ("Storage backend", "storage"),
        ("Google Sheets (Storage)", "google_sheets"),
        ("Application", "app"),
    ]

    for name, key in sections:
        if key not in status:
            continue
        if status[key]:
            st.success(f"✅ {name} - OK")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    if status.get("storage"):
        st.markdown(f"**Backend:** `{get_settings().storage.backend}`")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file. "
        "See `.env.example` for the available variables."
    )


if __name__ == "__main__":
    main()
