"""Game catalog API routes backed by IGDB."""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

from flask import Blueprint, jsonify, request

from igdb.client import CatalogError, CredentialExchangeError
from igdb.query import SearchFilters
from routes.api_utils import (
    BadRequestError,
    NotFoundError,
    ServiceUnavailableError,
    UpstreamServiceError,
    handle_api_errors,
    json_payload,
)

logger = logging.getLogger(__name__)

games_blueprint = Blueprint("games", __name__)

_context: dict[str, Any] = {}


def configure(context: Mapping[str, Any]) -> None:
    """Provide shared state required by the catalog endpoints."""
    _context.update(context)


def _ctx(key: str) -> Any:
    if key not in _context:
        raise RuntimeError(f"games routes missing context value: {key}")
    return _context[key]


def _get_client():
    getter: Callable[[], Any] = _ctx('get_catalog_client')
    return getter()


def _call_catalog(action: Callable[[], Any], *, failure_message: str) -> Any:
    try:
        return action()
    except CredentialExchangeError as exc:
        logger.error("IGDB credential exchange failed: %s", exc)
        raise ServiceUnavailableError('Catalog unavailable') from exc
    except CatalogError as exc:
        logger.error("%s: %s", failure_message, exc)
        raise UpstreamServiceError(failure_message) from exc


@games_blueprint.route('/api/games/search')
@handle_api_errors
def api_search_games():
    filters = SearchFilters.from_args(request.args)
    client = _get_client()
    games = _call_catalog(
        lambda: client.search_games(filters),
        failure_message='Failed to fetch games',
    )
    return jsonify(games)


@games_blueprint.route('/api/games/<game_id>')
@handle_api_errors
def api_game_details(game_id: str):
    try:
        parsed_id = int(str(game_id).strip())
    except (TypeError, ValueError):
        raise BadRequestError('Invalid game id')
    if parsed_id <= 0:
        raise BadRequestError('Invalid game id')

    client = _get_client()
    game = _call_catalog(
        lambda: client.get_game(parsed_id),
        failure_message='Failed to fetch game details',
    )
    if game is None:
        raise NotFoundError('Game not found')
    return jsonify(game)


@games_blueprint.route('/api/igdb/games', methods=['POST'])
@handle_api_errors
def api_igdb_games():
    payload = json_payload()
    query = payload.get('query')
    if not isinstance(query, str) or not query.strip():
        raise BadRequestError('query is required')

    client = _get_client()
    data = _call_catalog(
        lambda: client.query('games', query),
        failure_message='Failed to fetch games',
    )
    return jsonify(data)
