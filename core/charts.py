from __future__ import annotations

from typing import Any, Dict, List, Mapping, Tuple

import altair as alt
import pandas as pd

from core.status import status_color

alt.data_transformers.disable_max_rows()


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def status_chart(status_counts: Mapping[str, int]) -> alt.Chart:
    """Doughnut of raw status labels, coloured by status category."""
    df = pd.DataFrame({"status": list(status_counts.keys()), "count": list(status_counts.values())})
    labels = df["status"].tolist()
    return (
        alt.Chart(df)
        .mark_arc(innerRadius=70)
        .encode(
            theta=alt.Theta("count:Q"),
            color=alt.Color(
                "status:N",
                title="Status",
                scale=alt.Scale(domain=labels, range=[status_color(s) for s in labels]),
                legend=alt.Legend(orient="right", symbolType="circle"),
            ),
            tooltip=["status", alt.Tooltip("count:Q", format=",")],
        )
        .properties(height=280)
    )


def org_unit_chart(top_units: List[Tuple[str, int]]) -> alt.Chart:
    df = pd.DataFrame(top_units, columns=["org_unit", "count"])
    return (
        alt.Chart(df)
        .mark_bar(cornerRadiusEnd=4, color="#3b82f6")
        .encode(
            x=alt.X("count:Q", title="Contracts", axis=alt.Axis(format="d", tickMinStep=1)),
            y=alt.Y("org_unit:N", title=None, sort="-x"),
            tooltip=["org_unit", alt.Tooltip("count:Q", format=",")],
        )
        .properties(height=280)
    )
