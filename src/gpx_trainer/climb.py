"""Climb detection along a route.

A climb is a contiguous run of segments whose gradient stays at or above a
threshold, kept only when its total elevation gain is large enough to matter.
"""

from gpx_trainer.models import Climb, RoutePoint


def segment_gradient(a: RoutePoint, b: RoutePoint) -> float:
    """Gradient (percent) between two route points, 0 for zero-length segments."""
    dist = b.distance - a.distance
    if dist <= 0:
        return 0.0
    return (b.elevation - a.elevation) / dist * 100


def detect_climbs(
    points: list[RoutePoint],
    gradient_threshold: float = 3.0,
    elevation_threshold: float = 30.0,
) -> list[Climb]:
    """Detect climbs along a distance-sorted list of route points.

    Algorithm:
    1. Walk consecutive segments computing their gradient
    2. A climb opens on the first segment with gradient >= gradient_threshold
    3. It extends while segments stay at or above the threshold, tracking
       the steepest segment seen
    4. It closes when the gradient drops below the threshold or the route ends
    5. Climbs gaining less than elevation_threshold meters are dropped

    Args:
        points: Route points with cumulative distances
        gradient_threshold: Minimum segment gradient (percent) to be climbing
        elevation_threshold: Minimum elevation gain (meters) to keep a climb

    Returns:
        Detected climbs in route order
    """
    climbs: list[Climb] = []
    if len(points) < 2:
        return climbs

    start: RoutePoint | None = None
    max_gradient = 0.0

    def close(end: RoutePoint) -> None:
        gain = end.elevation - start.elevation
        length = end.distance - start.distance
        if gain < elevation_threshold or length <= 0:
            return
        climbs.append(Climb(
            start_distance=start.distance,
            end_distance=end.distance,
            start_elevation=start.elevation,
            end_elevation=end.elevation,
            avg_gradient=gain / length * 100,
            max_gradient=max_gradient,
        ))

    for i in range(1, len(points)):
        grade = segment_gradient(points[i - 1], points[i])
        if grade >= gradient_threshold:
            if start is None:
                start = points[i - 1]
                max_gradient = grade
            else:
                max_gradient = max(max_gradient, grade)
        elif start is not None:
            close(points[i - 1])
            start = None

    if start is not None:
        close(points[-1])

    return climbs


def climb_ahead(climbs: list[Climb], current_distance: float, lookahead_meters: float) -> Climb | None:
    """First climb starting within (current, current + lookahead], if any."""
    horizon = current_distance + lookahead_meters
    for climb in climbs:
        if current_distance < climb.start_distance <= horizon:
            return climb
    return None
