import matplotlib.pyplot as plt
from matplotlib.patches import Patch
from datetime import date


def create_gantt_chart(bars, filename=None, show=True, today=None, milestones=None, title=None):
    """
    Create a Gantt chart of resolved task dates.

    Args:
        bars: List of GanttBar objects
        filename: Optional filename to save the chart
        show: Whether to display the chart (default: True)
        today: Status date drawn as a vertical line (default: the current date)
        milestones: Optional list of Milestone objects to mark
        title: Optional chart title

    Returns:
        The matplotlib figure
    """
    if not bars:
        print("No tasks to plot.")
        return None

    status_date = today or date.today()
    chart_start = min(bar.start for bar in bars)

    fig, ax_gantt = plt.subplots(figsize=(14, 8))

    # Sort rows by start date; input order breaks ties
    sorted_bars = sorted(bars, key=lambda bar: bar.start)

    for i, bar in enumerate(sorted_bars):
        start_day = (bar.start - chart_start).days
        duration = max((bar.end - bar.start).days, 1)

        completed_duration = duration * (bar.progress / 100)
        remaining_duration = duration - completed_duration

        if completed_duration > 0:
            ax_gantt.barh(i, completed_duration, left=start_day, color="green", alpha=0.8)
            ax_gantt.text(
                start_day + completed_duration / 2,
                i,
                f"{bar.progress:.0f}%",
                ha="center",
                va="center",
                color="black",
                fontweight="bold",
                fontsize=8,
            )

        if remaining_duration > 0:
            ax_gantt.barh(
                i,
                remaining_duration,
                left=start_day + completed_duration,
                color=bar.color,
                alpha=0.4 if bar.is_past else 0.7,
            )

        # Extension for work discovered beyond the original estimate
        if bar.has_scope_increase:
            extension = (bar.visual_end - bar.end).days
            ax_gantt.barh(
                i,
                extension,
                left=start_day + duration,
                color="red",
                alpha=0.5,
                hatch="///",
            )
            ax_gantt.text(
                start_day + duration + extension / 2,
                i,
                f"+{bar.scope_increase:.1f}d",
                ha="center",
                va="center",
                color="black",
                fontsize=8,
            )

        status_str = ""
        if bar.status == "Done":
            status_str = " [DONE]"
        elif bar.status == "In Progress":
            status_str = " [IN PROGRESS]"

        ax_gantt.text(
            start_day + duration / 2,
            i + 0.3,
            f"{bar.task_id}: {bar.title}{status_str}",
            ha="center",
            va="bottom",
            color="black",
            fontsize=8,
        )

    ax_gantt.set_yticks(range(len(sorted_bars)))
    ax_gantt.set_yticklabels([bar.title for bar in sorted_bars])
    ax_gantt.invert_yaxis()

    ax_gantt.set_title(
        title or f"Project Schedule (Status as of {status_date.strftime('%Y-%m-%d')})"
    )
    ax_gantt.set_xlabel(f"Days from {chart_start.strftime('%Y-%m-%d')}")
    ax_gantt.grid(axis="x", alpha=0.3)

    legend_elements = [
        Patch(facecolor="green", alpha=0.8, label="Completed Work"),
        Patch(facecolor="gray", alpha=0.7, label="Remaining Work"),
        Patch(facecolor="red", alpha=0.5, hatch="///", label="Scope Increase"),
    ]
    ax_gantt.legend(handles=legend_elements, loc="upper right")

    status_day = (status_date - chart_start).days
    ax_gantt.axvline(x=status_day, color="green", linestyle="--", linewidth=2)

    for milestone in milestones or []:
        milestone_day = (milestone.date - chart_start).days
        ax_gantt.axvline(x=milestone_day, color=milestone.color, linewidth=1.5)
        ax_gantt.text(
            milestone_day,
            -0.6,
            milestone.title,
            ha="center",
            va="bottom",
            color=milestone.color,
            fontsize=8,
        )

    plt.tight_layout()

    if filename:
        plt.savefig(filename, dpi=300, bbox_inches="tight")

    if show:
        plt.show()

    return fig
