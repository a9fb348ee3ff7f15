"""PNG rendering of a 30-day history for the detail view."""

import io

from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.figure import Figure

from stockfolio.domain.models import HistoricalSeries, Trend

_TREND_COLORS = {
    Trend.UP: "#2e7d32",
    Trend.DOWN: "#c62828",
    Trend.FLAT: "#1565c0",
}


def render_history_png(series: HistoricalSeries, title: str = "") -> bytes:
    """Line chart of closes with the period average marked."""
    figure = Figure(figsize=(6, 3), dpi=100)
    canvas = FigureCanvasAgg(figure)
    ax = figure.add_subplot(111)

    dates = [p.date for p in series.points]
    closes = [float(p.close) for p in series.points]
    color = _TREND_COLORS[series.trend()]

    ax.plot(dates, closes, color=color, linewidth=1.5)
    if series.average is not None:
        ax.axhline(float(series.average), color="#9e9e9e", linestyle="--", linewidth=0.8)
    ax.set_title(title or series.symbol, fontsize=10)
    ax.grid(True, alpha=0.3)
    figure.autofmt_xdate()
    figure.tight_layout()

    buffer = io.BytesIO()
    canvas.print_png(buffer)
    return buffer.getvalue()
