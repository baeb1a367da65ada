"""Great-circle distance between route points.

Distances come from the haversine formula on a spherical Earth, which stays
within a fraction of a percent of an ellipsoidal model over ride-length
segments.
"""

import math

# Earth's mean radius in meters
EARTH_RADIUS_M = 6_371_000


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters between two (lat, lon) pairs given in degrees."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    half_dphi = math.radians(lat2 - lat1) / 2
    half_dlambda = math.radians(lon2 - lon1) / 2

    h = math.sin(half_dphi) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(half_dlambda) ** 2
    return 2 * EARTH_RADIUS_M * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def cumulative_distances(coords: list[tuple[float, float]]) -> list[float]:
    """Return the running distance (meters) at each (lat, lon) coordinate."""
    if not coords:
        return []

    cum_dist = [0.0]
    for i in range(1, len(coords)):
        d = haversine_distance(
            coords[i - 1][0], coords[i - 1][1],
            coords[i][0], coords[i][1],
        )
        cum_dist.append(cum_dist[-1] + d)
    return cum_dist
