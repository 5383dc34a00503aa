from __future__ import annotations

import atexit

import pandas as pd
import streamlit as st
import altair as alt
from dotenv import load_dotenv

from affiliate_tracker.aggregate.buckets import buckets_frame
from affiliate_tracker.aggregate.ranges import Preset, RangeConfigurationError, resolve_preset_range
from affiliate_tracker.aggregate.report import build_report
from affiliate_tracker.config import get_settings
from affiliate_tracker.db import ENTRIES_COLLECTION, PREFERENCES_COLLECTION, get_client, get_db
from affiliate_tracker.formatters import format_currency, format_percentage
from affiliate_tracker.preferences import AutoSaveScheduler, PreferencesStore
from affiliate_tracker.store.entries import EntryStore, EntryStoreError

# =====================================================
# Page config
# =====================================================
st.set_page_config(page_title="Affiliate Tracker", layout="wide")
st.title("📊 Affiliate Tracker Dashboard")

load_dotenv()
settings = get_settings()


@st.cache_resource
def _db():
    client = get_client(settings.mongo_uri, tls=settings.mongo_tls)
    # fail fast: ensure the client can reach the server
    client.admin.command("ping")
    return get_db(client, settings.mongo_db)


try:
    db = _db()
except Exception as exc:  # pragma: no cover - runtime failure handling
    st.error(f"Unable to connect to MongoDB: {exc}")
    st.stop()

entries_store = EntryStore(db[ENTRIES_COLLECTION])
prefs_store = PreferencesStore(db[PREFERENCES_COLLECTION])


@st.cache_resource
def _autosave() -> AutoSaveScheduler:
    # One scheduler per server process, shared by every session
    scheduler = AutoSaveScheduler(
        PreferencesStore(_db()[PREFERENCES_COLLECTION]).save,
        delay=settings.autosave_delay,
    )
    atexit.register(scheduler.shutdown)
    return scheduler


autosave = _autosave()

# =====================================================
# Controls
# =====================================================
owner_id = st.sidebar.text_input("Owner ID")
if not owner_id:
    st.info("Enter an owner ID in the sidebar to load entries.")
    st.stop()

prefs = prefs_store.get(owner_id)
presets = [p.value for p in Preset]
granularities = ["day", "week", "month"]


def _remember(owner: str, field: str, widget_key: str) -> None:
    # Saved once the sidebar has been idle for AUTOSAVE_DELAY seconds
    autosave.schedule(owner, {field: st.session_state[widget_key]})


preset = st.sidebar.selectbox(
    "Time range",
    presets,
    index=presets.index(prefs.default_preset.value),
    key="preset",
    on_change=_remember,
    args=(owner_id, "default_preset", "preset"),
)
custom_start = custom_end = None
if preset == Preset.CUSTOM.value:
    custom_start = st.sidebar.date_input("Start", value=None)
    custom_end = st.sidebar.date_input("End", value=None)

granularity = st.sidebar.radio(
    "Group by",
    granularities,
    index=granularities.index(prefs.default_granularity),
    horizontal=True,
    key="granularity",
    on_change=_remember,
    args=(owner_id, "default_granularity", "granularity"),
)
include_archived = st.sidebar.checkbox(
    "Include archived",
    value=prefs.include_archived,
    key="include_archived",
    on_change=_remember,
    args=(owner_id, "include_archived", "include_archived"),
)

# =====================================================
# Data
# =====================================================
try:
    date_range = resolve_preset_range(preset, start=custom_start, end=custom_end)
    entries = entries_store.fetch_records(owner_id, date_range)
    report = build_report(
        entries,
        preset=preset,
        granularity=granularity,
        include_archived=include_archived,
        start=custom_start,
        end=custom_end,
    )
except RangeConfigurationError as exc:
    st.warning(str(exc))
    st.stop()
except EntryStoreError as exc:
    st.error(str(exc))
    st.stop()

currency = prefs.currency

# =====================================================
# SECTION 0 — KPIs
# =====================================================
t = report.totals
c1, c2, c3, c4, c5 = st.columns(5)
c1.metric("Spend", format_currency(t.spend, currency))
c2.metric("Revenue", format_currency(t.earnings, currency))
c3.metric("Profit", format_currency(t.profit, currency))
c4.metric("Avg ROI", format_percentage(t.avg_roi))
c5.metric("Entries", t.count)

st.caption(
    f"{report.date_range.start:%b %d, %Y} – {report.date_range.end:%b %d, %Y}"
)

st.divider()

# =====================================================
# SECTION 1 — PROFIT TREND
# =====================================================
st.header("📈 Profit by Period")

df = buckets_frame(report.buckets)
if df.empty:
    st.warning("No entries in the selected range.")
else:
    df["result"] = df["profit"].map(lambda v: "profit" if v >= 0 else "loss")
    chart = (
        alt.Chart(df)
        .mark_bar()
        .encode(
            x=alt.X("key:N", sort=alt.SortField("sort_key", order="ascending"), title=None),
            y=alt.Y("profit:Q", title=f"Profit ({currency})"),
            color=alt.Color(
                "result:N",
                scale=alt.Scale(domain=["profit", "loss"], range=["#16a34a", "#dc2626"]),
                legend=None,
            ),
            tooltip=["key:N", "spend:Q", "earnings:Q", "profit:Q", "roi:Q", "count:Q"],
        )
        .properties(height=320)
    )
    st.altair_chart(chart, use_container_width=True)

st.divider()

# =====================================================
# SECTION 2 — NETWORK BREAKDOWN
# =====================================================
st.header("🌐 Networks")

left, right = st.columns(2)
with left:
    st.subheader("Ad spend")
    if report.ad_networks:
        st.dataframe(pd.DataFrame([n.model_dump() for n in report.ad_networks]), hide_index=True)
    else:
        st.info("No per-account ad spend recorded.")
with right:
    st.subheader("CPA revenue")
    if report.cpa_networks:
        st.dataframe(pd.DataFrame([n.model_dump() for n in report.cpa_networks]), hide_index=True)
    else:
        st.info("No per-network revenue recorded.")

st.divider()

# =====================================================
# SECTION 3 — RECENT ENTRIES
# =====================================================
st.header("🧾 Recent Entries")

if not report.entries:
    st.info("No entries.")
else:
    recent = pd.DataFrame(
        [
            {
                "date": e.date.strftime("%Y-%m-%d"),
                "spend": e.spend,
                "revenue": e.revenue if e.revenue is not None else e.earnings,
                "profit": e.profit,
                "roi_pct": e.roi_pct,
                "status": e.status.value,
                "notes": e.notes or "",
            }
            for e in report.entries[:25]
        ]
    )
    st.dataframe(recent, hide_index=True)
