from __future__ import annotations

import json
import os
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parent
SRC = ROOT / "src"
if SRC.exists() and str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

import streamlit as st

import project_tracking
from project_tracking.app.pages import dashboard
from project_tracking.data.loader import (
    JsonFileDismissedStore,
    default_data_path,
    default_dismissed_path,
    load_records,
)
from project_tracking.services.schedule_notifications import NotificationThresholds

st.set_page_config(page_title="Stage Tracker", layout="wide")


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except ValueError:
        return default


# --- Data (read-only export) ---
DATA_PATH = default_data_path()
DISMISSED_PATH = default_dismissed_path()

st.sidebar.title("Stage Tracker")

build_number = (
    os.getenv("APP_BUILD")
    or os.getenv("BUILD_NUMBER")
    or project_tracking.__version__
)
st.sidebar.caption(f"Build: {build_number}")

if not DATA_PATH.exists():
    st.error(f"Data file not found: {DATA_PATH}")
    st.stop()

try:
    projects, opinions = load_records(DATA_PATH)
except json.JSONDecodeError as exc:
    st.error(f"Data file is not valid JSON: {exc}")
    st.stop()

# --- Sidebar settings ---
st.sidebar.subheader("Notifications")
urgent_days = st.sidebar.number_input(
    "Urgent window (days)",
    min_value=1,
    max_value=60,
    value=_env_int("PROJECT_TRACKING_URGENT_DAYS", 7),
)
reminder_days = st.sidebar.number_input(
    "Reminder window (days)",
    min_value=1,
    max_value=60,
    value=_env_int("PROJECT_TRACKING_REMINDER_DAYS", 3),
)
include_today = st.sidebar.checkbox("Include due today", value=True)
include_overdue = st.sidebar.checkbox("Include overdue", value=True)
max_items = st.sidebar.number_input(
    "Max feedback items",
    min_value=1,
    max_value=100,
    value=_env_int("PROJECT_TRACKING_MAX_ITEMS", 10),
)

thresholds = NotificationThresholds(
    urgent_days=int(urgent_days),
    reminder_days=int(reminder_days),
    include_today=include_today,
    include_overdue=include_overdue,
)

dashboard.render(
    projects,
    opinions,
    JsonFileDismissedStore(DISMISSED_PATH),
    thresholds=thresholds,
    max_items=int(max_items),
)
