"""
List pagination for API responses
"""

from flask import current_app


def resolve_page_size(per_page=None) -> int:
    """Requested page size, defaulted and capped by the app config"""
    default = current_app.config.get('DEFAULT_PAGE_SIZE', 20)
    maximum = current_app.config.get('MAX_PAGE_SIZE', 100)
    return min(per_page or default, maximum)


def paginate(items, page: int = 1, per_page=None):
    """
    Slice a list into one page.

    Returns:
        Tuple of (page items, pagination dict)
    """
    per_page = resolve_page_size(per_page)
    total = len(items)
    start = (page - 1) * per_page
    return items[start:start + per_page], {
        'page': page,
        'per_page': per_page,
        'total': total,
        'pages': (total + per_page - 1) // per_page,
    }
