"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in agency_ops/__init__.py with no default
limits; this module applies granular limits per route category.

Usage:
    from agency_ops.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

WRITE_LIMIT = "60/minute"
READ_LIMIT = "200/minute"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Text production:  60/minute  (drafts are saved on every edit pause)
        - Projects:         200/minute
        - Health check:     unlimited (app-level route, no default limit)

    Rate limiting is disabled in testing mode.
    """

    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    bp = app.blueprints.get("text_production")
    if bp:
        limiter.limit(WRITE_LIMIT)(bp)

    bp = app.blueprints.get("project")
    if bp:
        limiter.limit(READ_LIMIT)(bp)

    app.logger.info(
        "Rate limiter configured: text production: %s, projects: %s",
        WRITE_LIMIT, READ_LIMIT,
    )
