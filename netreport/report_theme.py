from __future__ import annotations

# Print-friendly light palette shared by the PDF layout and the charts.
REPORT_COLORS = {
    "border": "#c4c7d0",
    "primary": "#7c3aed",
    "success": "#0f9d58",
    "danger": "#c5221f",
    "axis": "#7b8da0",
    "text_primary": "#1a1c24",
    "text_secondary": "#52555e",
    "text_muted": "#6b6e78",
}

ALERT_BAR_COLORS = {
    "Total": REPORT_COLORS["primary"],
    "Active": REPORT_COLORS["danger"],
    "Resolved": REPORT_COLORS["success"],
}

INTERVENTION_LINE_COLOR = "#1a73e8"

# Cycled when a pie has more slices than colors.
PIE_PALETTE = (
    "#7c3aed",
    "#0f9d58",
    "#1a73e8",
    "#b35d00",
    "#c5221f",
    "#0097a7",
    "#f0cf4a",
    "#52555e",
)

NO_DATA_COLOR = "#c4c7d0"
