"""Formatting helpers for the IGDB Apicalypse query language."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from helpers import _coerce_int, _normalize_text, _parse_id_list

SEARCH_PAGE_SIZE = 20

SEARCH_FIELDS = (
    "id, name, cover.url, genres.name, themes.name, platforms.name, rating, "
    "age_ratings.category, game_modes.name, first_release_date"
)
DETAIL_FIELDS = (
    "id, name, cover.url, genres.name, themes.name, platforms.name, rating, "
    "summary, game_modes.name, age_ratings.category, first_release_date"
)


@dataclass(frozen=True)
class SearchFilters:
    """Recognized search parameters, already sanitized."""

    search: str = ""
    genres: tuple[int, ...] = field(default_factory=tuple)
    themes: tuple[int, ...] = field(default_factory=tuple)
    platforms: tuple[int, ...] = field(default_factory=tuple)
    esrb: int | None = None
    mode: tuple[int, ...] = field(default_factory=tuple)
    page: int = 1

    @classmethod
    def from_args(cls, args: Mapping[str, Any]) -> "SearchFilters":
        """Build filters from request query arguments."""

        page = _coerce_int(args.get("page"))
        return cls(
            search=_normalize_text(args.get("search")),
            genres=tuple(_parse_id_list(args.get("genres"))),
            themes=tuple(_parse_id_list(args.get("themes"))),
            platforms=tuple(_parse_id_list(args.get("platforms"))),
            esrb=_coerce_int(args.get("esrb")),
            mode=tuple(_parse_id_list(args.get("mode"))),
            page=page if page is not None and page >= 1 else 1,
        )

    @property
    def offset(self) -> int:
        return (self.page - 1) * SEARCH_PAGE_SIZE


def _escape_term(term: str) -> str:
    return term.replace("\\", "\\\\").replace('"', '\\"')


def _id_set(values: tuple[int, ...]) -> str:
    return ",".join(str(value) for value in values)


def build_where_clauses(filters: SearchFilters) -> list[str]:
    clauses: list[str] = []
    if filters.search:
        clauses.append(f'name ~ *"{_escape_term(filters.search)}"*')
    if filters.genres:
        clauses.append(f"genres = ({_id_set(filters.genres)})")
    if filters.themes:
        clauses.append(f"themes = ({_id_set(filters.themes)})")
    if filters.platforms:
        clauses.append(f"platforms = ({_id_set(filters.platforms)})")
    if filters.esrb is not None:
        clauses.append(f"age_ratings.category = {filters.esrb}")
    if filters.mode:
        clauses.append(f"game_modes = ({_id_set(filters.mode)})")
    return clauses


def build_search_query(filters: SearchFilters) -> str:
    """Return the paged, rating-sorted search query for ``filters``."""

    lines = [
        f"fields {SEARCH_FIELDS};",
        f"limit {SEARCH_PAGE_SIZE};",
        f"offset {filters.offset};",
    ]
    clauses = build_where_clauses(filters)
    if clauses:
        lines.append(f"where {' & '.join(clauses)};")
    lines.append("sort rating desc;")
    return "\n".join(lines)


def build_game_detail_query(game_id: int) -> str:
    return "\n".join(
        [
            f"fields {DETAIL_FIELDS};",
            f"where id = {int(game_id)};",
            "limit 1;",
        ]
    )


def build_game_name_query(game_id: int) -> str:
    return f"fields id, name; where id = {int(game_id)};"


__all__ = [
    "DETAIL_FIELDS",
    "SEARCH_FIELDS",
    "SEARCH_PAGE_SIZE",
    "SearchFilters",
    "build_game_detail_query",
    "build_game_name_query",
    "build_search_query",
    "build_where_clauses",
]
