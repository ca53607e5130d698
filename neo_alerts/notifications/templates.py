"""Template rendering for alert emails using Jinja2."""

import logging
from typing import Any, Dict

from jinja2 import Environment, PackageLoader, StrictUndefined, TemplateError

from .models import ContentBuildError

logger = logging.getLogger(__name__)


class TemplateRenderer:
    """Renders the alert email body from the package's email_templates.

    StrictUndefined turns a missing context variable into an error instead
    of an empty string, and HTML autoescaping covers every value pulled
    from upstream data.
    """

    def __init__(
        self,
        template_dir: str = "email_templates",
        html_template: str = "alert_body.html.j2",
    ):
        self.html_template_name = html_template
        self.env = Environment(
            loader=PackageLoader("neo_alerts.notifications", template_dir),
            autoescape=True,
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render_html(self, context: Dict[str, Any]) -> str:
        """Render the HTML body.

        Raises:
            ContentBuildError: If the template is missing or rendering fails
        """
        try:
            return self.env.get_template(self.html_template_name).render(context)
        except TemplateError as e:
            error_msg = f"Template rendering failed: {e}"
            logger.error(error_msg, exc_info=True)
            raise ContentBuildError(error_msg) from e
