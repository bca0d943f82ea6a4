from punchboard.core.config import Settings, settings
from punchboard.schemas.stats import ComplianceStatus


def classify_distance(distance: float | None, config: Settings = settings) -> ComplianceStatus:
    """Geofence status of a punch from its distance to the designated site."""
    if distance is None:
        return "unknown"
    if distance <= config.COMPLIANT_DISTANCE_M:
        return "compliant"
    if distance <= config.WARNING_DISTANCE_M:
        return "warning"
    return "breach"


def is_on_site(distance: float | None, config: Settings = settings) -> bool:
    return classify_distance(distance, config) == "compliant"
