from pathlib import Path

import gpxpy

from gpx_trainer.route import Route


def parse_gpx(filepath: str) -> Route:
    """Parse a GPX file into a Route.

    All tracks and segments are joined in file order. Points without an
    elevation are treated as sea level.
    """
    with open(filepath, "r") as f:
        gpx = gpxpy.parse(f)

    raw: list[tuple[float, float, float]] = []
    for track in gpx.tracks:
        for segment in track.segments:
            for pt in segment.points:
                elevation = pt.elevation if pt.elevation is not None else 0.0
                raw.append((pt.latitude, pt.longitude, elevation))

    name = ""
    if gpx.tracks and gpx.tracks[0].name:
        name = gpx.tracks[0].name
    elif gpx.name:
        name = gpx.name
    else:
        name = Path(filepath).stem

    return Route.from_points(raw, name=name)
