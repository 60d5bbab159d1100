"""Shared paging and search helpers for list endpoints."""

DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def normalize_page(page: int | None, page_size: int | None) -> tuple[int, int]:
    """Replace unset or out-of-range paging values with the defaults (1, 10)."""
    if page is None or page < 1:
        page = DEFAULT_PAGE
    if page_size is None or not (1 <= page_size <= MAX_PAGE_SIZE):
        page_size = DEFAULT_PAGE_SIZE
    return page, page_size


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so a search term matches literally; backslash is the escape character."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def contains_pattern(value: str) -> str:
    return f"%{escape_like(value)}%"
