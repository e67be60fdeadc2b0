from igdb.client import AuthenticationRejected, CatalogRequestError, CredentialExchangeError
from tests.app_helpers import FakeCatalog


def test_search_passes_filters(app_module, client):
    catalog = FakeCatalog(games=[{'id': 1, 'name': 'Hades', 'releaseDate': '2020-09-17'}])
    app_module.igdb_api_client = catalog

    response = client.get('/api/games/search?search=hades&genres=12,31&page=2')
    assert response.status_code == 200
    assert response.get_json()[0]['name'] == 'Hades'

    _kind, filters = catalog.calls[0]
    assert filters.search == 'hades'
    assert filters.genres == (12, 31)
    assert filters.page == 2


def test_game_details(app_module, client):
    app_module.igdb_api_client = FakeCatalog(games=[{'id': 3, 'name': 'Inside'}])

    response = client.get('/api/games/3')
    assert response.status_code == 200
    assert response.get_json()['name'] == 'Inside'

    response = client.get('/api/games/4')
    assert response.status_code == 404
    assert response.get_json()['error'] == 'Game not found'

    response = client.get('/api/games/abc')
    assert response.status_code == 400


def test_raw_query_passthrough(app_module, client):
    catalog = FakeCatalog(games=[{'id': 8}])
    app_module.igdb_api_client = catalog

    assert client.post('/api/igdb/games', json={}).status_code == 400

    response = client.post('/api/igdb/games', json={'query': 'fields id; limit 1;'})
    assert response.status_code == 200
    assert response.get_json() == [{'id': 8}]
    assert catalog.calls[-1] == ('query', ('games', 'fields id; limit 1;'))


def test_catalog_errors_are_mapped(app_module, client):
    app_module.igdb_api_client = FakeCatalog(error=CredentialExchangeError('no creds'))
    response = client.get('/api/games/search')
    assert response.status_code == 503
    assert response.get_json()['error'] == 'Catalog unavailable'

    app_module.igdb_api_client = FakeCatalog(
        error=AuthenticationRejected('rejected', status_code=401)
    )
    response = client.get('/api/games/search')
    assert response.status_code == 502
    assert response.get_json()['error'] == 'Failed to fetch games'

    app_module.igdb_api_client = FakeCatalog(
        error=CatalogRequestError('boom', status_code=500)
    )
    response = client.get('/api/games/10')
    assert response.status_code == 502
    assert response.get_json()['error'] == 'Failed to fetch game details'
