"""
Search request builder: turns free text or AI-derived attributes into listing filters.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlencode

from .models import CarAttributes
from .utils import clean_text

# (query parameter, CarSearch attribute, column) for the exact-match filters
STRUCTURED_FILTERS = (
    ("make", "make", "make"),
    ("bodyType", "body_type", "body_type"),
    ("color", "color", "color"),
)

TEXT_SEARCH_COLUMNS = ("make", "model", "color")


@dataclass
class CarSearch:
    """Filters for the car listing page."""
    text: str = ""
    make: Optional[str] = None
    body_type: Optional[str] = None
    color: Optional[str] = None

    def is_empty(self) -> bool:
        return not self.to_query_params()

    def to_query_params(self) -> Dict[str, str]:
        """Query parameters understood by the listing page, absent values dropped."""
        params = {}
        text = clean_text(self.text)
        if text:
            params["search"] = text
        for param, attr, _ in STRUCTURED_FILTERS:
            value = clean_text(getattr(self, attr))
            if value:
                params[param] = value
        return params


def search_from_attributes(attrs: CarAttributes) -> CarSearch:
    """Build an image search from the make, body type and color the model found."""
    return CarSearch(make=attrs.make or None, body_type=attrs.body_type or None, color=attrs.color or None)


def to_query_string(search: CarSearch) -> str:
    """Encode a search as a listing-page query string, e.g. ``make=Honda&bodyType=SUV``."""
    return urlencode(search.to_query_params())


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so the term matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_where_clause(search: CarSearch) -> Tuple[str, List[Any]]:
    """Build WHERE clause and parameters from a search."""
    where_conditions = []
    parameters: List[Any] = []
    params = search.to_query_params()

    # Text search: case-insensitive substring over make, model and color.
    # casefold() is registered on every connection by get_db_connection.
    text = params.get("search")
    if text:
        clauses = [f"casefold({col}) LIKE ? ESCAPE '\\'" for col in TEXT_SEARCH_COLUMNS]
        where_conditions.append("(" + " OR ".join(clauses) + ")")
        search_term = f"%{escape_like(text.casefold())}%"
        parameters.extend([search_term] * len(TEXT_SEARCH_COLUMNS))

    # Structured filters
    for param, _, column in STRUCTURED_FILTERS:
        value = params.get(param)
        if value:
            where_conditions.append(f"casefold({column}) = ?")
            parameters.append(value.casefold())

    where_clause = " WHERE " + " AND ".join(where_conditions) if where_conditions else ""
    return where_clause, parameters
