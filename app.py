"""
app.py
Streamlit Ekadashi Donation Portal (admins + core devotees).
Run: streamlit run app.py
"""

from __future__ import annotations

import altair as alt
import pandas as pd
import streamlit as st

import auth
import data
import db
import ekadashi
import reports
import utils
from config import configure_logging, get_settings
from models import ContactFilters, DonationFilters, Identity

st.set_page_config(page_title="Ekadashi Donation Portal", layout="wide")

SETTINGS = get_settings()
PAGES = ["Dashboard", "Contacts", "Add Donation", "Donation History", "Settings"]


def init_once():
    # Initialize DB + default admin if needed
    configure_logging(SETTINGS.log_level)
    if not st.session_state.get("db_ready"):
        default_hash = auth.hash_password(SETTINGS.default_admin_password)
        db.init_db(default_hash, SETTINGS.default_admin_email)
        st.session_state.db_ready = True


def session_store() -> auth.SessionStore:
    return auth.SessionStore(st.session_state)


def money(amount) -> str:
    return utils.format_currency(amount, SETTINGS.currency_symbol)


def show_failure(result, what: str) -> bool:
    """Render a warning for a failed fetch; True when the page should stop using the result."""
    if not result.ok:
        st.warning(f"Could not load {what}: {result.error}")
        return True
    return False


def logout():
    session_store().sign_out()
    for key in list(st.session_state.keys()):
        if key != "db_ready":
            del st.session_state[key]


def login_screen():
    st.title("🙏 Welcome to the Ekadashi Donation Portal")
    st.caption("Please log in using your registered email and password to continue.")

    col1, _ = st.columns([1, 1])
    with col1:
        email = st.text_input("Email", placeholder="Enter your email")
        password = st.text_input("Password", type="password", placeholder="Enter your password")
        if st.button("Login", type="primary"):
            try:
                session_store().sign_in_with_password(email, password)
            except auth.AuthError as exc:
                st.error(str(exc))
            else:
                st.session_state.page = "Dashboard"
                st.rerun()


def force_change_password_screen(identity: Identity):
    st.title("⚠️ Change Password (Required)")

    st.warning("You must change the default password before using the portal.")
    new1 = st.text_input("New password", type="password")
    new2 = st.text_input("Confirm new password", type="password")

    if st.button("Update password", type="primary"):
        if len(new1) < 6:
            st.error("Password must be at least 6 characters.")
            return
        if new1 != new2:
            st.error("Passwords do not match.")
            return
        auth.change_password(identity.user_id, new1)
        st.success("Password updated. You can continue.")
        st.rerun()


def header(identity: Identity):
    if identity.display_name:
        welcome = f"Welcome, **{identity.display_name}**"
        if identity.centre_name:
            welcome += f" ({identity.centre_name})"
        st.sidebar.markdown(welcome)
    else:
        st.sidebar.caption("Profile not found. Showing your own records only.")
    if identity.is_admin:
        st.sidebar.info("Administrator View")


# ---------- Pages ----------

def dashboard_page(identity: Identity):
    st.header("📊 Dashboard")

    if identity.is_admin:
        st.info(
            "**Admin Access Enabled**\n\n"
            "You are logged in as an administrator. "
            "You have visibility across all core devotees, contacts, and donations."
        )

    st.subheader("Summary")
    amounts = data.fetch_amounts(identity)
    if not show_failure(amounts, "donations"):
        summary = reports.summarize(amounts.rows)
        c1, c2 = st.columns(2)
        c1.metric("Total Donations", money(summary.total))
        c2.metric("Total Entries", summary.count)

    st.divider()

    st.subheader("Ekadashi-wise Total")
    calendar = data.fetch_calendar()
    if show_failure(calendar, "the Ekadashi calendar"):
        return
    window, default = ekadashi.select_for_dashboard(calendar.rows, identity.role, utils.today_iso())
    if not window:
        st.caption("No Ekadashis available.")
        st.metric("Total for this Ekadashi", money(0))
        return

    by_id = {e.id: e for e in window}
    ids = list(by_id)
    selected_id = st.selectbox(
        "Ekadashi",
        options=ids,
        index=ids.index(default.id) if default else 0,
        format_func=lambda i: by_id[i].label,
    )
    selected = by_id[selected_id]
    entry_amounts = data.fetch_amounts(identity, calendar_entry_id=selected.id)
    if show_failure(entry_amounts, "donations for this Ekadashi"):
        return
    total = reports.entry_total(entry_amounts.rows, selected.id)
    st.markdown(f"**{selected.name}**  \nDate: {selected.date}")
    st.metric("Total donations for this Ekadashi", money(total))

    st.divider()

    st.subheader("Quick Actions")
    c1, c2, c3 = st.columns(3)
    for col, target in zip((c1, c2, c3), ("Contacts", "Add Donation", "Donation History")):
        with col:
            if st.button(target, use_container_width=True):
                st.session_state.page = target
                st.rerun()


def _reset_page(key: str):
    st.session_state[key] = 1


def pager(rows: list, key: str) -> reports.Page:
    """Rows-per-page selector + prev/next; returns the current page slice."""
    per_page_key = f"{key}_per_page"
    page_key = f"{key}_page"
    if page_key not in st.session_state:
        st.session_state[page_key] = 1

    per_page = st.selectbox(
        "Rows per page",
        SETTINGS.rows_per_page_options,
        key=per_page_key,
        on_change=_reset_page,
        args=(page_key,),
    )
    page = reports.paginate(rows, st.session_state[page_key], per_page)
    st.session_state[page_key] = page.page
    return page


def pager_controls(page: reports.Page, key: str):
    page_key = f"{key}_page"
    c1, c2, c3 = st.columns([1, 2, 1])
    with c1:
        if st.button("Prev", key=f"{key}_prev", disabled=page.page <= 1):
            st.session_state[page_key] = page.page - 1
            st.rerun()
    with c2:
        st.caption(f"Page {page.page} of {page.total_pages or 1}")
    with c3:
        if st.button("Next", key=f"{key}_next", disabled=page.page >= page.total_pages):
            st.session_state[page_key] = page.page + 1
            st.rerun()


def devotee_picker(label: str, placeholder: str, key: str, on_change=None, args=()) -> str | None:
    devotees = data.fetch_devotees()
    if show_failure(devotees, "core devotees"):
        return None
    names = {d["user_id"]: d["name"] for d in devotees.rows}
    return st.selectbox(
        label,
        options=[None] + list(names),
        format_func=lambda u: placeholder if u is None else names[u],
        key=key,
        on_change=on_change,
        args=args,
    )


def contacts_page(identity: Identity):
    st.header("👥 Contacts")

    filters = ContactFilters()
    if identity.is_admin:
        with st.sidebar:
            st.subheader("Filters")
            devotee_id = devotee_picker(
                "Filter by Core Devotee", "All Core Devotees", "contacts_devotee",
                on_change=_reset_page, args=("contacts_page",),
            )
        filters = ContactFilters(devotee_id=devotee_id)
    else:
        with st.expander("➕ Add New Contact", expanded=False):
            name = st.text_input("Name")
            phone = st.text_input("Phone")
            address = st.text_input("Address")
            enrolment = st.date_input("Enrolment date", value=None)
            if st.button("Add Contact", type="primary"):
                try:
                    data.add_contact(
                        identity, name, phone, address,
                        enrolment.isoformat() if enrolment else None,
                    )
                except data.ValidationError as exc:
                    for e in exc.errors:
                        st.error(e)
                except data.WriteError as exc:
                    st.error(f"Insert failed: {exc}")
                else:
                    st.success("Contact added.")
                    st.rerun()

    result = data.fetch_contacts(identity, filters)
    if show_failure(result, "contacts"):
        return
    contacts = result.rows
    export_rows = reports.contact_export_rows(contacts, identity.is_admin)

    st.subheader("Export")
    if contacts:
        c1, c2 = st.columns(2)
        c1.download_button(
            "Export Contacts (PDF)",
            data=reports.contacts_pdf_bytes(export_rows, identity.is_admin, identity.display_name),
            file_name="contacts.pdf",
            mime="application/pdf",
        )
        c2.download_button(
            "Export Contacts (Excel)",
            data=reports.rows_to_excel_bytes(export_rows, "Contacts"),
            file_name="contacts.xlsx",
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )
    else:
        st.caption("No contacts to export.")

    st.subheader("All Contacts" if identity.is_admin else "Your Contacts")
    page = pager(contacts, "contacts")
    df = pd.DataFrame(export_rows[page.offset:page.offset + len(page.rows)],
                      columns=reports.contact_columns(identity.is_admin))
    st.dataframe(df, use_container_width=True, hide_index=True)
    pager_controls(page, "contacts")


def _reset_contact_choice():
    st.session_state.pop("donation_contact", None)


def add_donation_page(identity: Identity):
    st.header("💰 Add Donation")

    contact_filters = ContactFilters()
    if identity.is_admin:
        devotee_id = devotee_picker(
            "Core Devotee", "-- Select Core Devotee --", "donation_devotee",
            on_change=_reset_contact_choice,
        )
        contact_filters = ContactFilters(devotee_id=devotee_id)

    contacts = data.fetch_contacts(identity, contact_filters)
    calendar = data.fetch_calendar()
    if show_failure(contacts, "contacts") or show_failure(calendar, "the Ekadashi calendar"):
        return
    window, _ = ekadashi.select_for_form(calendar.rows, identity.role, utils.today_iso())

    contact_labels = {c.id: f"{c.name} ({c.phone})" for c in contacts.rows}
    entry_labels = {e.id: e.label for e in window}

    c1, c2 = st.columns(2)
    with c1:
        contact_id = st.selectbox(
            "Contact",
            options=[None] + list(contact_labels),
            format_func=lambda i: "-- Select Contact --" if i is None else contact_labels[i],
            key="donation_contact",
        )
        amount = st.text_input("Amount")
        transaction_date = st.date_input("Transaction date", value=None)
    with c2:
        ekadashi_id = st.selectbox(
            "Ekadashi",
            options=[None] + list(entry_labels),
            format_func=lambda i: "-- Select Ekadashi --" if i is None else entry_labels[i],
        )
        transaction_id = st.text_input("Transaction ID")
        receipt_number = st.text_input("Receipt number")

    transferred = st.checkbox("Transferred")

    if st.button("Save Donation", type="primary"):
        try:
            data.save_donation(
                identity,
                contact_id,
                ekadashi_id,
                amount,
                transaction_id=transaction_id,
                transaction_date=transaction_date.isoformat() if transaction_date else None,
                receipt_number=receipt_number,
                transferred=transferred,
            )
        except data.ValidationError as exc:
            for e in exc.errors:
                st.error(e)
        except data.WriteError as exc:
            st.error(f"Insert failed: {exc}")
        else:
            st.success("Donation saved successfully")
            st.session_state.page = "Dashboard"
            st.rerun()


DONATION_FILTER_KEYS = [
    "hist_contact", "hist_entry", "hist_from", "hist_to", "hist_devotee", "hist_centre",
]


def _clear_donation_filters():
    for key in DONATION_FILTER_KEYS:
        st.session_state.pop(key, None)
    st.session_state["donations_page"] = 1


def donation_filters(identity: Identity) -> DonationFilters:
    reset = dict(on_change=_reset_page, args=("donations_page",))

    contacts = data.fetch_contacts(identity)
    calendar = data.fetch_calendar()
    show_failure(contacts, "contacts")
    show_failure(calendar, "the Ekadashi calendar")
    window, _ = ekadashi.select_for_form(calendar.rows, identity.role, utils.today_iso())
    contact_labels = {c.id: c.name for c in contacts.rows}
    entry_labels = {e.id: e.label for e in window}

    with st.sidebar:
        st.subheader("Filters")
        contact_id = st.selectbox(
            "Contact",
            options=[None] + list(contact_labels),
            format_func=lambda i: "All Contacts" if i is None else contact_labels[i],
            key="hist_contact",
            **reset,
        )
        entry_id = st.selectbox(
            "Ekadashi",
            options=[None] + list(entry_labels),
            format_func=lambda i: "All Ekadashis" if i is None else entry_labels[i],
            key="hist_entry",
            **reset,
        )

        devotee_id = None
        centre_id = None
        if identity.is_admin:
            devotee_id = devotee_picker("Core Devotee", "All Core Devotees", "hist_devotee", **reset)
            centres = data.fetch_centres()
            show_failure(centres, "centres")
            centre_labels = {c.id: c.name for c in centres.rows}
            centre_id = st.selectbox(
                "Centre",
                options=[None] + list(centre_labels),
                format_func=lambda i: "All Centres" if i is None else centre_labels[i],
                key="hist_centre",
                **reset,
            )

        date_from = st.date_input("From", value=None, key="hist_from", **reset)
        date_to = st.date_input("To", value=None, key="hist_to", **reset)
        st.button("Clear Filters", on_click=_clear_donation_filters)

    return DonationFilters(
        contact_id=contact_id,
        calendar_entry_id=entry_id,
        date_from=date_from.isoformat() if date_from else None,
        date_to=date_to.isoformat() if date_to else None,
        devotee_id=devotee_id,
        centre_id=centre_id,
    )


def donations_page(identity: Identity):
    st.header("🧾 Donation History")

    filters = donation_filters(identity)
    result = data.fetch_donations(identity, filters)
    if show_failure(result, "donations"):
        return
    donations = result.rows

    summary = reports.summarize(donations)
    buckets = reports.bucket_by_entry(donations)

    st.subheader("Summary")
    c1, c2 = st.columns(2)
    c1.metric("Total Donations", money(summary.total))
    c2.metric("Total Entries", summary.count)

    st.divider()

    st.subheader("Export")
    export_rows = reports.donation_export_rows(donations, identity.is_admin)
    if donations:
        c1, c2 = st.columns(2)
        c1.download_button(
            "Export Visible Data (PDF)",
            data=reports.donations_pdf_bytes(
                export_rows,
                identity.is_admin,
                summary,
                identity.display_name,
                identity.centre_name,
                chart=reports.chart_png(buckets),
            ),
            file_name="donation-history.pdf",
            mime="application/pdf",
        )
        c2.download_button(
            "Export Visible Data (Excel)",
            data=reports.rows_to_excel_bytes(export_rows, "Donations"),
            file_name="donation-history.xlsx",
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )
    else:
        st.caption("No data to export.")

    st.divider()

    st.subheader("Donation Summary Chart")
    if buckets:
        chart_df = pd.DataFrame(
            [{"Ekadashi": b.label, "Total Donation": float(b.total)} for b in buckets]
        )
        chart = (
            alt.Chart(chart_df)
            .mark_bar(color=reports.CHART_GREEN)
            .encode(
                x=alt.X("Ekadashi:N", sort=None),
                y=alt.Y("Total Donation:Q", title=f"Total Donation ({SETTINGS.currency_symbol})"),
                tooltip=["Ekadashi", alt.Tooltip("Total Donation:Q", format=",.2f")],
            )
        )
        st.altair_chart(chart, use_container_width=True)
    else:
        st.caption("No data for selected filters.")

    st.divider()

    st.subheader("Donation Entries")
    page = pager(donations, "donations")
    table = []
    for i, row in enumerate(export_rows[page.offset:page.offset + len(page.rows)]):
        row = dict(row)
        row["#"] = page.offset + i + 1
        row["Amount"] = money(row["Amount"])
        table.append(row)
    df = pd.DataFrame(table, columns=reports.donation_columns(identity.is_admin))
    st.dataframe(df, use_container_width=True, hide_index=True)
    pager_controls(page, "donations")


def settings_page(identity: Identity):
    st.header("⚙️ Settings")

    st.subheader("Change password")
    p1 = st.text_input("New password", type="password")
    p2 = st.text_input("Confirm new password", type="password")
    if st.button("Update password", type="primary"):
        if len(p1) < 6:
            st.error("Password must be at least 6 characters.")
        elif p1 != p2:
            st.error("Passwords do not match.")
        else:
            auth.change_password(identity.user_id, p1)
            st.success("Password updated.")

    if identity.is_admin:
        st.divider()

        st.subheader("Sample data")
        st.caption(
            "Insert a sample centre, core devotee (devotee@example.org / devotee123), "
            "contacts, Ekadashis and donations (adds new rows each run)."
        )
        if st.button("Insert sample data"):
            data.insert_sample_data()
            st.success("Sample data inserted.")
            st.rerun()


def main_app(identity: Identity):
    st.sidebar.title("🪔 Ekadashi Portal")
    header(identity)

    if "page" not in st.session_state:
        st.session_state.page = "Dashboard"
    st.session_state.page = st.sidebar.radio("Navigate", PAGES, index=PAGES.index(st.session_state.page))

    if st.sidebar.button("Logout"):
        logout()
        st.rerun()

    if st.session_state.page == "Dashboard":
        dashboard_page(identity)
    elif st.session_state.page == "Contacts":
        contacts_page(identity)
    elif st.session_state.page == "Add Donation":
        add_donation_page(identity)
    elif st.session_state.page == "Donation History":
        donations_page(identity)
    elif st.session_state.page == "Settings":
        settings_page(identity)


# --------- App entry ---------

def run():
    init_once()

    identity = auth.current_identity(session_store())
    if identity is None:
        login_screen()
        return

    # Force password change on first login after DB creation
    if db.must_change_password(identity.user_id):
        force_change_password_screen(identity)
        return

    main_app(identity)


if __name__ == "__main__":
    run()
