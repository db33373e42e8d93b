"""Raster chart rendering for the report summary.

Uses matplotlib's object API with an explicit Agg canvas (never
``pyplot``), so every render owns its figure and renders on different
threads share no mutable state.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from io import BytesIO
from typing import TYPE_CHECKING, Any

from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.figure import Figure
from matplotlib.ticker import MaxNLocator

from ..report_theme import (
    ALERT_BAR_COLORS,
    INTERVENTION_LINE_COLOR,
    NO_DATA_COLOR,
    PIE_PALETTE,
    REPORT_COLORS,
)
from ..stats import AlertStats, InterventionStats, MaintenanceStats

if TYPE_CHECKING:
    from ..stats import StatsSummary
    from ..worker_pool import WorkerPool

CHART_WIDTH_PX = 500
CHART_HEIGHT_PX = 280
CHART_DPI = 100

CHART_BAR = "bar"
CHART_LINE = "line"
CHART_PIE = "pie"
CHART_KINDS: tuple[str, ...] = (CHART_BAR, CHART_LINE, CHART_PIE)

NO_DATA_LABEL = "No Data"


@dataclass(slots=True, frozen=True)
class ChartImages:
    alert_bar: bytes
    intervention_line: bytes
    maintenance_pie: bytes

    def in_order(self) -> list[tuple[str, bytes]]:
        return [
            ("Alert Statistics", self.alert_bar),
            ("Intervention Statistics", self.intervention_line),
            ("Maintenance by Type", self.maintenance_pie),
        ]


class ChartRenderer:
    """Stateless renderer producing fixed-size PNG images.

    One instance is created per application and shared across requests.
    """

    def __init__(
        self,
        *,
        width_px: int = CHART_WIDTH_PX,
        height_px: int = CHART_HEIGHT_PX,
        dpi: int = CHART_DPI,
    ) -> None:
        self.width_px = width_px
        self.height_px = height_px
        self.dpi = dpi

    def render(self, kind: str, stats_slice: Any) -> bytes:
        """Render one chart *kind* from the matching statistics slice."""
        if kind == CHART_BAR:
            if not isinstance(stats_slice, AlertStats):
                raise TypeError("bar chart expects AlertStats")
            draw = self._draw_alert_bar
        elif kind == CHART_LINE:
            if not isinstance(stats_slice, InterventionStats):
                raise TypeError("line chart expects InterventionStats")
            draw = self._draw_intervention_line
        elif kind == CHART_PIE:
            if not isinstance(stats_slice, MaintenanceStats):
                raise TypeError("pie chart expects MaintenanceStats")
            draw = self._draw_maintenance_pie
        else:
            raise ValueError(f"Unknown chart kind {kind!r}; expected one of {CHART_KINDS}")

        fig = Figure(figsize=(self.width_px / self.dpi, self.height_px / self.dpi), dpi=self.dpi)
        FigureCanvasAgg(fig)
        draw(fig, stats_slice)
        buf = BytesIO()
        fig.savefig(buf, format="png", dpi=self.dpi, facecolor="white")
        return buf.getvalue()

    def render_all(self, stats: StatsSummary) -> ChartImages:
        return ChartImages(
            alert_bar=self.render(CHART_BAR, stats.alert_stats),
            intervention_line=self.render(CHART_LINE, stats.intervention_stats),
            maintenance_pie=self.render(CHART_PIE, stats.maintenance_stats),
        )

    async def render_all_async(self, stats: StatsSummary, pool: WorkerPool) -> ChartImages:
        """Render the three charts concurrently; the first failure propagates."""
        alert_bar, intervention_line, maintenance_pie = await asyncio.gather(
            pool.run(self.render, CHART_BAR, stats.alert_stats),
            pool.run(self.render, CHART_LINE, stats.intervention_stats),
            pool.run(self.render, CHART_PIE, stats.maintenance_stats),
        )
        return ChartImages(
            alert_bar=alert_bar,
            intervention_line=intervention_line,
            maintenance_pie=maintenance_pie,
        )

    # -- drawing --------------------------------------------------------------

    @staticmethod
    def _style_axes(ax: Any, title: str) -> None:
        ax.set_title(title, fontsize=11, color=REPORT_COLORS["text_primary"])
        ax.spines["top"].set_visible(False)
        ax.spines["right"].set_visible(False)
        for side in ("left", "bottom"):
            ax.spines[side].set_color(REPORT_COLORS["axis"])
        ax.tick_params(colors=REPORT_COLORS["text_secondary"], labelsize=8)

    def _draw_alert_bar(self, fig: Figure, stats: AlertStats) -> None:
        ax = fig.add_subplot(1, 1, 1)
        labels = list(ALERT_BAR_COLORS)
        values = [stats.total, stats.active, stats.resolved]
        bars = ax.bar(labels, values, color=[ALERT_BAR_COLORS[label] for label in labels])
        ax.bar_label(bars, fontsize=8, color=REPORT_COLORS["text_primary"])
        ax.set_ylim(bottom=0, top=max(1, max(values)) * 1.15)
        ax.yaxis.set_major_locator(MaxNLocator(integer=True))
        self._style_axes(ax, "Alert Statistics")
        fig.tight_layout()

    def _draw_intervention_line(self, fig: Figure, stats: InterventionStats) -> None:
        # Two-point series (count vs mean minutes); not a time trend.
        ax = fig.add_subplot(1, 1, 1)
        labels = ["Total", "Average Duration"]
        values = [float(stats.total), float(stats.average_duration)]
        ax.plot(labels, values, color=INTERVENTION_LINE_COLOR, marker="o", linewidth=2)
        for x, y in enumerate(values):
            ax.annotate(
                f"{y:.2f}" if x else f"{y:.0f}",
                (x, y),
                textcoords="offset points",
                xytext=(0, 6),
                ha="center",
                fontsize=8,
                color=REPORT_COLORS["text_primary"],
            )
        ax.set_ylim(bottom=0, top=max(1.0, max(values)) * 1.2)
        ax.set_xmargin(0.2)
        self._style_axes(ax, "Intervention Statistics")
        fig.tight_layout()

    def _draw_maintenance_pie(self, fig: Figure, stats: MaintenanceStats) -> None:
        ax = fig.add_subplot(1, 1, 1)
        if stats.by_type:
            labels = list(stats.by_type)
            sizes = [stats.by_type[label] for label in labels]
            colors = [PIE_PALETTE[i % len(PIE_PALETTE)] for i in range(len(labels))]
            ax.pie(
                sizes,
                labels=labels,
                colors=colors,
                autopct="%1.0f%%",
                startangle=90,
                textprops={"fontsize": 8},
                wedgeprops={"edgecolor": "white", "linewidth": 1},
            )
        else:
            ax.pie(
                [1],
                labels=[NO_DATA_LABEL],
                colors=[NO_DATA_COLOR],
                startangle=90,
                textprops={"fontsize": 8},
            )
        ax.set_title("Maintenance by Type", fontsize=11, color=REPORT_COLORS["text_primary"])
        ax.set_aspect("equal")
        fig.tight_layout()
