import pytest

from igdb.client import (
    AuthenticationRejected,
    CatalogRequestError,
    CredentialExchangeError,
    IGDBClient,
)
from igdb.query import SearchFilters
from tests.app_helpers import ScriptedOpener, http_error

TOKEN_URL = IGDBClient.TOKEN_URL
GAMES_URL = f"{IGDBClient.BASE_URL}/games"


def make_client(opener, **kwargs):
    kwargs.setdefault("client_id", "client")
    kwargs.setdefault("client_secret", "secret")
    kwargs.setdefault("env", {})
    return IGDBClient(opener=opener, sleep=lambda _delay: None, **kwargs)


def test_query_sends_expected_headers_and_body():
    opener = ScriptedOpener(
        {
            TOKEN_URL: [{"access_token": "tok", "expires_in": 3600}],
            GAMES_URL: [[{"id": 1, "name": "Doom"}]],
        }
    )
    client = make_client(opener, user_agent="Tests/1.0")

    assert client.query("games", "  fields id, name;  ") == [{"id": 1, "name": "Doom"}]

    request = opener.requests[-1]
    assert request.data == b"fields id, name;"
    assert request.get_header("Authorization") == "Bearer tok"
    assert request.get_header("Client-id") == "client"
    assert request.get_header("Content-type") == "text/plain"
    assert request.get_header("User-agent") == "Tests/1.0"


def test_token_is_exchanged_once_for_repeated_queries():
    opener = ScriptedOpener(
        {
            TOKEN_URL: [{"access_token": "tok", "expires_in": 3600}],
            GAMES_URL: [[], [], []],
        }
    )
    client = make_client(opener)

    for _ in range(3):
        client.query("games", "fields id;")

    assert opener.count(TOKEN_URL) == 1


def test_unauthorized_response_refreshes_token_and_retries_once():
    opener = ScriptedOpener(
        {
            TOKEN_URL: [
                {"access_token": "old", "expires_in": 3600},
                {"access_token": "new", "expires_in": 3600},
            ],
            GAMES_URL: [http_error(GAMES_URL, 401, b"expired"), [{"id": 2}]],
        }
    )
    client = make_client(opener)

    assert client.query("games", "fields id;") == [{"id": 2}]
    assert opener.count(TOKEN_URL) == 2
    assert opener.requests[-1].get_header("Authorization") == "Bearer new"


def test_second_unauthorized_response_is_terminal():
    opener = ScriptedOpener(
        {
            TOKEN_URL: [
                {"access_token": "one", "expires_in": 3600},
                {"access_token": "two", "expires_in": 3600},
            ],
            GAMES_URL: [
                http_error(GAMES_URL, 401),
                http_error(GAMES_URL, 401),
            ],
        }
    )
    client = make_client(opener)

    with pytest.raises(AuthenticationRejected) as excinfo:
        client.query("games", "fields id;")
    assert excinfo.value.status_code == 401
    assert opener.count(GAMES_URL) == 2
    assert opener.count(TOKEN_URL) == 2


def test_seeded_token_is_replaced_after_rejection():
    opener = ScriptedOpener(
        {
            TOKEN_URL: [{"access_token": "fresh", "expires_in": 3600}],
            GAMES_URL: [http_error(GAMES_URL, 401), [{"id": 3}]],
        }
    )
    client = make_client(opener, seed_token="stale")

    assert client.query("games", "fields id;") == [{"id": 3}]
    assert opener.requests[0].get_header("Authorization") == "Bearer stale"
    assert client.token_cache.credential.token == "fresh"


def test_rate_limited_request_is_retried():
    delays = []
    opener = ScriptedOpener(
        {
            TOKEN_URL: [{"access_token": "tok", "expires_in": 3600}],
            GAMES_URL: [
                http_error(GAMES_URL, 429, headers={"Retry-After": "2"}),
                [{"id": 4}],
            ],
        }
    )
    client = IGDBClient(
        client_id="client",
        client_secret="secret",
        opener=opener,
        sleep=delays.append,
        env={},
    )

    assert client.query("games", "fields id;") == [{"id": 4}]
    assert delays == [2.0]


def test_other_http_errors_raise_request_error():
    opener = ScriptedOpener(
        {
            TOKEN_URL: [{"access_token": "tok", "expires_in": 3600}],
            GAMES_URL: [http_error(GAMES_URL, 500, b"boom")],
        }
    )
    client = make_client(opener)

    with pytest.raises(CatalogRequestError) as excinfo:
        client.query("games", "fields id;")
    assert excinfo.value.status_code == 500
    assert "boom" in str(excinfo.value)


def test_invalid_json_raises_request_error():
    opener = ScriptedOpener(
        {
            TOKEN_URL: [{"access_token": "tok", "expires_in": 3600}],
            GAMES_URL: [b"<html>"],
        }
    )
    client = make_client(opener)

    with pytest.raises(CatalogRequestError):
        client.query("games", "fields id;")


def test_exchange_failures_raise_credential_error():
    opener = ScriptedOpener({TOKEN_URL: [http_error(TOKEN_URL, 400, b"bad client")]})
    client = make_client(opener)

    with pytest.raises(CredentialExchangeError):
        client.query("games", "fields id;")
    assert opener.count(GAMES_URL) == 0

    missing = make_client(ScriptedOpener({}), client_id="", client_secret="")
    with pytest.raises(CredentialExchangeError):
        missing.get_game(1)

    no_token = make_client(ScriptedOpener({TOKEN_URL: [{"expires_in": 60}]}))
    with pytest.raises(CredentialExchangeError):
        no_token.get_game(1)


def test_search_games_adds_release_date():
    opener = ScriptedOpener(
        {
            TOKEN_URL: [{"access_token": "tok", "expires_in": 3600}],
            GAMES_URL: [
                [
                    {"id": 1, "name": "Dated", "first_release_date": 1_600_000_000},
                    {"id": 2, "name": "Undated"},
                ]
            ],
        }
    )
    client = make_client(opener)

    games = client.search_games(SearchFilters(search="d", page=2))

    assert [game["releaseDate"] for game in games] == ["2020-09-13", "Unknown"]
    assert b"offset 20;" in opener.requests[-1].data


def test_get_game_and_name_return_none_when_missing():
    opener = ScriptedOpener(
        {
            TOKEN_URL: [{"access_token": "tok", "expires_in": 3600}],
            GAMES_URL: [[], [{"id": 9, "name": " Halo "}]],
        }
    )
    client = make_client(opener)

    assert client.get_game(9) is None
    assert client.get_game_name(9) == "Halo"
