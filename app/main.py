"""
Streamlit Frontend for Monthly Closing

The monthly closing page: pick a month, look at the checklist and the
numbers, close it, or reopen it with a reason.

DESIGN PRINCIPLES:
1. Closing is always an explicit button press
2. Reopening always asks why
3. A closed month shows its frozen numbers, never live ones
4. Errors are shown from the engine's error codes
5. No hidden actions

Authentication is handled outside this page; the user id comes from the
sidebar for now.
"""

import asyncio
from datetime import date

import streamlit as st

from monthly_closing.audit import create_request_id
from monthly_closing.config import get_settings, validate_all_settings
from monthly_closing.engine import MonthlyClosingEngine, create_engine
from monthly_closing.errors import ClosingEngineError
from monthly_closing.models.checklist import ChecklistItemStatus
from monthly_closing.models.closure import PeriodState


# Page configuration
st.set_page_config(
    page_title="Monthly Closing",
    page_icon="🔒",
    layout="wide",
    initial_sidebar_state="expanded",
)

STATUS_ICONS = {
    ChecklistItemStatus.OK: "✅",
    ChecklistItemStatus.WARNING: "⚠️",
    ChecklistItemStatus.PENDING: "⏳",
}

ERROR_MESSAGES = {
    "provider_unavailable": "Some of your data could not be loaded. Please try again in a moment.",
    "closing_blocked": "This month cannot be closed yet. Resolve the pending items first.",
    "invalid_close_request": "The closing notes are too long. Please shorten them.",
    "invalid_reopen_request": "Only a closed month can be reopened, and a reason is required.",
    "persistence_failure": "The change could not be saved. Nothing was modified.",
}


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_engine() -> MonthlyClosingEngine:
    """Get or create the engine (cached)."""
    try:
        engine, _ = create_engine()
    except Exception as e:
        st.error(f"Failed to initialize storage, running in memory: {e}")
        engine, _ = create_engine(backend="memory")
    return engine


def show_engine_error(error: ClosingEngineError):
    st.error(ERROR_MESSAGES.get(error.code, error.message))
    if get_settings().app.debug_mode:
        st.json(error.to_dict())


def money(value) -> str:
    return f"{value:,.2f}"


def main():
    """Main application entry point."""
    engine = get_engine()

    st.sidebar.title("🔒 Monthly Closing")
    st.sidebar.markdown("---")
    user_id = st.sidebar.text_input("User ID", value="demo-user")

    periods = engine.list_candidate_periods(date.today())
    period = st.sidebar.selectbox(
        "Month",
        options=periods,
        format_func=lambda p: p.label,
    )

    if get_settings().app.debug_mode:
        render_connection_status()

    if not user_id or period is None:
        st.info("Choose a user and a month to start.")
        return

    render_period_page(engine, user_id, period.year, period.month, period.label)


def render_period_page(
    engine: MonthlyClosingEngine,
    user_id: str,
    year: int,
    month: int,
    label: str,
):
    """Render status, checklist, numbers and actions for one month."""
    st.title(f"📅 {label}")

    try:
        status = run_async(engine.get_closure_for_period(user_id, year, month))
    except ClosingEngineError as e:
        show_engine_error(e)
        st.stop()

    if status.state == PeriodState.CLOSED:
        render_closed(engine, user_id, year, month, status.closure)
    else:
        if status.state == PeriodState.REOPENED:
            closure = status.closure
            st.warning(
                f"Reopened on {closure.reopened_at:%Y-%m-%d %H:%M} - "
                f"reason: {closure.reopen_reason}"
            )
        render_open(engine, user_id, year, month)

    render_history(engine, user_id, year, month)


def render_open(engine: MonthlyClosingEngine, user_id: str, year: int, month: int):
    """Open or reopened month: live checklist, preview numbers, close button."""
    try:
        checklist, snapshot = run_async(engine.preview_period(user_id, year, month))
    except ClosingEngineError as e:
        show_engine_error(e)
        st.stop()

    st.subheader("Checklist")
    if checklist.outage:
        show_engine_error(checklist.error)
    for item in checklist.items:
        critical = " *(required)*" if item.critical else ""
        st.markdown(f"{STATUS_ICONS[item.status]} **{item.label}**{critical}")
        if item.message:
            st.caption(item.message)

    st.subheader("Preview")
    col1, col2, col3 = st.columns(3)
    col1.metric("Income", money(snapshot.total_income))
    col2.metric("Expenses", money(snapshot.total_expenses))
    col3.metric("Net result", money(snapshot.net_result))
    st.caption(
        f"{snapshot.transaction_count} transaction(s), "
        f"{snapshot.cash_adjustment_count} cash adjustment(s)"
    )

    if "close_request_id" not in st.session_state:
        st.session_state.close_request_id = create_request_id()

    notes = st.text_area("Closing notes (optional)")
    if st.button("🔒 Close month", type="primary", disabled=not checklist.can_close):
        try:
            run_async(
                engine.close(
                    user_id,
                    year,
                    month,
                    notes=notes,
                    request_id=st.session_state.close_request_id,
                )
            )
        except ClosingEngineError as e:
            show_engine_error(e)
        else:
            del st.session_state.close_request_id
            st.success("Month closed.")
            st.rerun()


def render_closed(engine: MonthlyClosingEngine, user_id: str, year: int, month: int, closure):
    """Closed month: frozen numbers and the reopen form."""
    st.success(f"Closed on {closure.closed_at:%Y-%m-%d %H:%M}")

    col1, col2, col3 = st.columns(3)
    col1.metric("Income", money(closure.total_income))
    col2.metric("Expenses", money(closure.total_expenses))
    col3.metric("Net result", money(closure.net_result))
    if closure.closing_notes:
        st.caption(closure.closing_notes)

    with st.expander("Wallet balances at closing"):
        for wallet in closure.wallet_balances:
            st.markdown(f"- {wallet.name} ({wallet.type}): {money(wallet.balance)} {wallet.currency}")

    with st.expander("🔓 Reopen this month"):
        reason = st.text_area("Why does this month need to be reopened? *")
        if st.button("Reopen month"):
            try:
                run_async(engine.reopen(user_id, year, month, reason))
            except ClosingEngineError as e:
                show_engine_error(e)
            else:
                st.success("Month reopened.")
                st.rerun()


def render_history(engine: MonthlyClosingEngine, user_id: str, year: int, month: int):
    try:
        entries = run_async(engine.history(user_id, year, month))
    except ClosingEngineError as e:
        show_engine_error(e)
        return

    if not entries:
        return

    st.subheader("History")
    for entry in entries:
        line = f"**{entry.action.value}** - {entry.timestamp:%Y-%m-%d %H:%M} by {entry.user_id}"
        if entry.reason:
            line += f" - {entry.reason}"
        st.markdown(line)


def render_connection_status():
    st.sidebar.markdown("---")
    st.sidebar.markdown("### Connection Status")

    status = validate_all_settings()
    for name, key in [("Google Sheets (Storage)", "google_sheets"), ("Closing rules", "closing")]:
        if status.get(key, False):
            st.sidebar.success(f"✅ {name}")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.sidebar.error(f"❌ {name} - {error}")


if __name__ == "__main__":
    main()
