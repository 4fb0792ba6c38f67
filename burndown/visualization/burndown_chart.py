import matplotlib.pyplot as plt
import matplotlib.dates as mdates
import numpy as np
from matplotlib.lines import Line2D
from matplotlib.patches import Patch

from burndown.domain.task import DEFAULT_TASK_COLOR
from burndown.services.velocity import generate_actual_projection


def _as_float_array(values):
    """Series may hold None for days without a value; matplotlib skips NaN."""
    return np.array([np.nan if v is None else v for v in values], dtype=float)


def create_burndown_chart(
    projection,
    filename=None,
    show=True,
    title=None,
    milestones=None,
    velocity=None,
    task_colors=None,
):
    """
    Plot a burndown projection.

    The theoretical remaining work is drawn as areas stacked per task, with
    discovered scope stacked on top. The actual-informed projection, the
    recorded history and an optional straight-line velocity projection are
    drawn as lines over them.

    Args:
        projection: A BurndownProjection
        filename: Optional filename to save the chart
        show: Whether to display the chart (default: True)
        title: Optional chart title
        milestones: Optional list of Milestone objects to mark
        velocity: Optional VelocityMetrics; draws the recent-velocity projection
        task_colors: Optional {task_id: color} for the stacked areas

    Returns:
        The matplotlib figure
    """
    if not projection.days:
        print("Nothing to plot. The projection has no days.")
        return None

    task_colors = task_colors or {}
    x = mdates.date2num(projection.days)

    fig, ax = plt.subplots(figsize=(14, 8))

    # Stacked per-task remaining work, then scope on top
    task_ids = list(projection.per_task_series)
    if task_ids:
        layers = [_as_float_array(projection.per_task_series[t]) for t in task_ids]
        colors = [task_colors.get(t, DEFAULT_TASK_COLOR) for t in task_ids]
        ax.stackplot(x, *layers, colors=colors, alpha=0.35, labels=task_ids)
        base = np.sum(layers, axis=0)
    else:
        base = _as_float_array(projection.theoretical_series)

    scope = np.zeros(len(x))
    for values in projection.scope_series.values():
        scope += _as_float_array(values)
    if scope.any():
        ax.fill_between(
            x, base, base + scope, color="red", alpha=0.25, hatch="///", step="mid"
        )

    ax.plot(
        x,
        _as_float_array(projection.theoretical_series),
        color="black",
        linestyle="--",
        linewidth=1.5,
    )
    ax.plot(
        x,
        _as_float_array(projection.actual_informed_series),
        color="darkorange",
        linewidth=2.5,
    )

    historical = _as_float_array(projection.historical_series)
    if historical.size and not np.all(np.isnan(historical)):
        ax.scatter(x, historical, color="green", edgecolor="black", zorder=10, s=40)

    legend_elements = [
        Line2D([0], [0], color="black", linestyle="--", label="Planned (theoretical)"),
        Line2D([0], [0], color="darkorange", linewidth=2.5, label="Actual-informed"),
        Line2D(
            [0], [0], color="green", marker="o", linestyle="", label="Recorded remaining"
        ),
        Patch(facecolor="red", alpha=0.25, hatch="///", label="Scope increase"),
    ]

    if projection.today_index >= 0:
        today = projection.days[projection.today_index]
        ax.axvline(x=mdates.date2num(today), color="green", linestyle="--", linewidth=2)
        ax.annotate(
            "Today",
            (mdates.date2num(today), ax.get_ylim()[1]),
            xytext=(5, -15),
            textcoords="offset points",
            fontsize=9,
            color="green",
        )

        if velocity is not None and velocity.recent_velocity > 0:
            start_value = projection.actual_informed_series[projection.today_index]
            line = generate_actual_projection(
                projection.today_index,
                start_value,
                velocity.recent_velocity,
                len(projection.days),
            )
            count = min(len(line), len(x) - projection.today_index)
            ax.plot(
                x[projection.today_index : projection.today_index + count],
                line[:count],
                color="purple",
                linestyle=":",
                linewidth=2,
            )
            legend_elements.append(
                Line2D(
                    [0],
                    [0],
                    color="purple",
                    linestyle=":",
                    label=f"Recent velocity ({velocity.recent_velocity:.2f}/day)",
                )
            )

    for index, label, color in (
        (projection.completion_day_index, "Planned finish", "black"),
        (projection.actual_completion_day_index, "Forecast finish", "darkorange"),
    ):
        if index >= 0:
            ax.axvline(x=x[index], color=color, linestyle=":", alpha=0.7)
            ax.annotate(
                f"{label}\n{projection.days[index].strftime('%Y-%m-%d')}",
                (x[index], 0),
                xytext=(5, 10),
                textcoords="offset points",
                fontsize=8,
                bbox=dict(boxstyle="round,pad=0.3", fc="white", ec=color, alpha=0.8),
            )

    for milestone in milestones or []:
        if projection.days[0] <= milestone.date <= projection.days[-1]:
            ax.axvline(x=mdates.date2num(milestone.date), color=milestone.color, linewidth=1.5)
            ax.annotate(
                milestone.title,
                (mdates.date2num(milestone.date), ax.get_ylim()[1]),
                xytext=(3, -30),
                textcoords="offset points",
                rotation=90,
                fontsize=8,
                color=milestone.color,
            )

    ax.legend(handles=legend_elements, loc="upper right", fontsize=10)
    ax.set_xlabel("Date", fontsize=12)
    ax.set_ylabel("Remaining work (person-days)", fontsize=12)
    ax.set_title(title or "Project Burndown", fontsize=14, weight="bold")
    ax.set_ylim(bottom=0)
    ax.xaxis.set_major_locator(mdates.AutoDateLocator())
    ax.xaxis.set_major_formatter(mdates.DateFormatter("%m/%d"))
    ax.grid(True, linestyle="--", alpha=0.7)

    plt.tight_layout()

    if filename:
        plt.savefig(filename, dpi=300, bbox_inches="tight")

    if show:
        plt.show()

    return fig
