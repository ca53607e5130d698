"""Email content assembly for hazard alerts.

Content is built in two stages. ``fetch_enrichment`` talks to the network
and may fail; ``build`` is a pure rendering step that turns notifications
and an optional enrichment into HTML.
"""

import re
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from neo_alerts.domain.models import Enrichment, Notification
from neo_alerts.feeds.exceptions import EnrichmentError
from neo_alerts.logging import get_logger
from neo_alerts.utils.timestamps import utc_now

from .templates import TemplateRenderer

logger = get_logger(__name__, component="content")

LUNAR_DISTANCE_KM = 384_400
HIGH_INTEREST_KM = 1_000_000
MODERATE_INTEREST_KM = 5_000_000
DEFAULT_GREETING_NAME = "Space Enthusiast"

_NUMBERED_PREFIX = re.compile(r"^\(\d+\)\s*")
_BARE_NUMBER_PREFIX = re.compile(r"^\d+\s+")

Number = Union[int, float, Decimal]


def clean_asteroid_name(name: Optional[str]) -> str:
    """Strip a leading catalogue number from a designation.

    Falls back to the original text when nothing would remain.

    Examples:
        >>> clean_asteroid_name("(2024 AB1)")
        '(2024 AB1)'
        >>> clean_asteroid_name("(433) Eros")
        'Eros'
        >>> clean_asteroid_name("99942 Apophis")
        'Apophis'
    """
    if not name:
        return "Unknown Object"

    cleaned = _BARE_NUMBER_PREFIX.sub("", _NUMBERED_PREFIX.sub("", name)).strip()
    return cleaned or name


def format_diameter(diameter_m: float) -> str:
    """Meters below 1 km, kilometers above ("215 meters", "1.5 km")."""
    if diameter_m > 1000:
        return f"{diameter_m / 1000:.1f} km"
    return f"{diameter_m:.0f} meters"


def format_distance(distance_km: Number) -> str:
    """Kilometers plus lunar distances ("7,512,345 km (19.5 lunar distances)")."""
    distance = float(distance_km)
    lunar = distance / LUNAR_DISTANCE_KM
    if lunar < 1:
        return f"{distance:,.0f} km ({lunar:.2f} lunar distances)"
    return f"{distance:,.0f} km ({lunar:.1f} lunar distances)"


def interest_level(distance_km: Number) -> Dict[str, str]:
    """Classify a miss distance into a label and CSS class."""
    distance = float(distance_km)
    if distance < HIGH_INTEREST_KM:
        return {"label": "High Interest", "css_class": "risk-high"}
    if distance < MODERATE_INTEREST_KM:
        return {"label": "Moderate Interest", "css_class": "risk-medium"}
    return {"label": "Routine Observation", "css_class": "risk-low"}


def format_generated_at(dt: datetime) -> str:
    """Footer timestamp, e.g. "November 4, 2025 at 3:07 PM UTC"."""
    hour = dt.hour % 12 or 12
    return f"{dt:%B} {dt.day}, {dt.year} at {hour}:{dt:%M} {dt:%p} UTC"


def build_card(notification: Notification) -> Dict[str, Any]:
    """Template context for one notification card."""
    return {
        "name": clean_asteroid_name(notification.asteroid_name),
        "approach_date": notification.close_approach_date.isoformat(),
        "size": format_diameter(notification.estimated_diameter_avg_m),
        "distance": format_distance(notification.miss_distance_km),
        "interest": interest_level(notification.miss_distance_km),
    }


class ContentBuilder:
    """
    Assembles the alert email body for a recipient.

    Args:
        enrichment_provider: Object with ``fetch_today() -> Optional[Enrichment]``,
            or None to never enrich
        renderer: Template renderer (default loads the packaged templates)
        clock: Returns the "generated at" timestamp shown in the footer
    """

    def __init__(
        self,
        enrichment_provider=None,
        renderer: Optional[TemplateRenderer] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.enrichment_provider = enrichment_provider
        self.renderer = renderer or TemplateRenderer()
        self.clock = clock

    def fetch_enrichment(self) -> Optional[Enrichment]:
        """Fetch picture-of-the-day content; None when unavailable."""
        if self.enrichment_provider is None:
            return None

        try:
            enrichment = self.enrichment_provider.fetch_today()
        except EnrichmentError as e:
            logger.warning(
                f"Enrichment unavailable, continuing without it: {e}",
                extra={"event": "content.enrichment.failed", "error_type": type(e).__name__},
            )
            return None

        if enrichment is not None:
            logger.info(
                f"Fetched enrichment: {enrichment.title}",
                extra={"event": "content.enrichment.fetched"},
            )
        return enrichment

    def build(
        self,
        notifications: Sequence[Notification],
        recipient_name: Optional[str],
        enrichment: Optional[Enrichment] = None,
    ) -> str:
        """
        Render the HTML body.

        Returns:
            HTML string, or "" when there are no notifications

        Raises:
            ContentBuildError: If the template fails to render
        """
        if not notifications:
            return ""

        cards: List[Dict[str, Any]] = [build_card(n) for n in notifications]
        greeting_name = (recipient_name or "").strip() or DEFAULT_GREETING_NAME
        generated_at = self.clock()

        return self.renderer.render_html(
            {
                "greeting_name": greeting_name,
                "cards": cards,
                "enrichment": enrichment,
                "generated_at": format_generated_at(generated_at),
            }
        )
