"""
Training Program Provisioning Service
Blueprint registry.
"""

from flask import current_app, request


def page_params() -> tuple[int, int]:
    """Read ``page`` / ``pageSize`` query params.

    Query params:
        page     — 1-based page number (default 1)
        pageSize — items per page (default DEFAULT_PAGE_SIZE, capped at MAX_PAGE_SIZE)

    Returns:
        (page, page_size)
    """
    default_size = current_app.config.get("DEFAULT_PAGE_SIZE", 20)
    max_size = current_app.config.get("MAX_PAGE_SIZE", 100)
    try:
        page = max(int(request.args.get("page", 1)), 1)
    except (ValueError, TypeError):
        page = 1
    try:
        page_size = min(max(int(request.args.get("pageSize", default_size)), 1), max_size)
    except (ValueError, TypeError):
        page_size = default_size
    return page, page_size
