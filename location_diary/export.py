"""Export the queued locations to a workbook or an interactive map."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import folium  # Using folium to build an interactive Leaflet map.
import pandas as pd
from openpyxl.styles import Border, Font, PatternFill, Side

from .models import Point
from .utils import format_point, utc_from_ms

LOGGER = logging.getLogger(__name__)

PathLike = Union[str, Path]
LatLon = Tuple[float, float]

SHEET_NAME = "Locations"
EXCEL_DATETIME_FORMAT = "yyyy-mm-dd hh:mm:ss"
COLUMNS = ["#", "Recorded At (UTC)", "Latitude", "Longitude", "Accuracy (m)"]

HEADER_FONT = Font(bold=True)
HEADER_FILL = PatternFill(patternType="solid", fgColor="FFDDEBF7")
HEADER_BORDER = Border(
    left=Side(style="thin", color="000000"),
    right=Side(style="thin", color="000000"),
    top=Side(style="thin", color="000000"),
    bottom=Side(style="thin", color="000000"),
)

_TRACK_COLOR = "#2c7bb6"
_LATEST_COLOR = "#d73027"
# Shown when the queue is empty.
_DEFAULT_CENTER: LatLon = (0.0, 0.0)


def points_to_frame(points: Sequence[Point]) -> pd.DataFrame:
    """Return the queue as a DataFrame, one row per point in queue order."""

    rows = [
        {
            "#": index,
            # Excel cannot store timezone-aware datetimes.
            "Recorded At (UTC)": utc_from_ms(p.timestamp).replace(tzinfo=None),
            "Latitude": p.latitude,
            "Longitude": p.longitude,
            "Accuracy (m)": p.accuracy,
        }
        for index, p in enumerate(points)
    ]
    return pd.DataFrame(rows, columns=COLUMNS)


def write_points_excel(path: PathLike, points: Sequence[Point]) -> Path:
    """Write the queue to an ``.xlsx`` workbook and return its path."""

    output = Path(path)
    output.parent.mkdir(parents=True, exist_ok=True)
    df = points_to_frame(points)
    with pd.ExcelWriter(
        output, engine="openpyxl", datetime_format=EXCEL_DATETIME_FORMAT
    ) as writer:
        df.to_excel(writer, sheet_name=SHEET_NAME, index=False)
        ws = writer.sheets[SHEET_NAME]
        for cell in ws[1]:
            cell.font = HEADER_FONT
            cell.fill = HEADER_FILL
            cell.border = HEADER_BORDER
        for column, width in zip("ABCDE", (6, 22, 12, 12, 14)):
            ws.column_dimensions[column].width = width
    LOGGER.info("Wrote %s locations to %s", len(df), output)
    return output


def render_points_map(
    points: Sequence[Point],
    *,
    output_html_path: Optional[PathLike] = None,
    zoom_start: int = 14,
) -> folium.Map:
    """Draw the queue as a track with one marker per point.

    The most recent point is highlighted and the map is centred on it.
    """

    coordinates: List[LatLon] = [(p.latitude, p.longitude) for p in points]
    center = coordinates[-1] if coordinates else _DEFAULT_CENTER
    folium_map = folium.Map(location=center, zoom_start=zoom_start, control_scale=True)

    if len(coordinates) >= 2:
        folium.PolyLine(
            coordinates,
            color=_TRACK_COLOR,
            weight=3,
            opacity=0.7,
            tooltip="Recorded track",
        ).add_to(folium_map)

    last_index = len(points) - 1
    for index, point in enumerate(points):
        color = _LATEST_COLOR if index == last_index else _TRACK_COLOR
        folium.CircleMarker(
            location=(point.latitude, point.longitude),
            radius=6,
            color=color,
            fill=True,
            fill_color=color,
            tooltip=f"#{index}",
            popup=folium.Popup(html=format_point(point), max_width=300),
        ).add_to(folium_map)

    if output_html_path is not None:
        output_path = Path(output_html_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        folium_map.save(str(output_path))
        LOGGER.info("Saved location map to %s", output_path)

    return folium_map


__all__ = ["points_to_frame", "write_points_excel", "render_points_map"]
