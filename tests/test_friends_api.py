from tests.app_helpers import auth_headers, register_and_login


def test_friend_routes_require_token(client):
    assert client.get('/api/friends').status_code == 401
    assert client.post('/api/friends', json={'username': 'x'}).status_code == 401
    assert client.get('/api/friends/x', headers=auth_headers('bad')).status_code == 403


def test_add_and_list_friends(client):
    token, _me = register_and_login(client, username='mia')
    register_and_login(client, username='zed')
    register_and_login(client, username='Ann')
    headers = auth_headers(token)

    assert client.post('/api/friends', json={}, headers=headers).status_code == 400

    response = client.post('/api/friends', json={'username': 'ghost'}, headers=headers)
    assert response.status_code == 404

    response = client.post('/api/friends', json={'username': 'mia'}, headers=headers)
    assert response.status_code == 400
    assert response.get_json()['error'] == 'You cannot add yourself as a friend'

    client.post('/api/friends', json={'username': 'zed'}, headers=headers)
    response = client.post('/api/friends', json={'username': 'ann'}, headers=headers)
    assert response.status_code == 200
    assert [friend['username'] for friend in response.get_json()] == ['Ann', 'zed']

    response = client.post('/api/friends', json={'username': 'zed'}, headers=headers)
    assert response.status_code == 200
    assert len(response.get_json()) == 2

    listed = client.get('/api/friends', headers=headers).get_json()
    assert [friend['username'] for friend in listed] == ['Ann', 'zed']


def test_friendship_is_directed(client):
    token, _me = register_and_login(client, username='olga')
    other_token, _other = register_and_login(client, username='pete')

    client.post('/api/friends', json={'username': 'pete'}, headers=auth_headers(token))

    assert client.get('/api/friends', headers=auth_headers(other_token)).get_json() == []
    response = client.get('/api/friends/olga', headers=auth_headers(other_token))
    assert response.status_code == 404
    assert response.get_json()['error'] == 'Friend not found'

    response = client.get('/api/friends/pete', headers=auth_headers(token))
    assert response.status_code == 200
    assert response.get_json()['username'] == 'pete'


def test_friend_conversation(client):
    token, _me = register_and_login(client, username='quinn')
    friend_token, _friend = register_and_login(client, username='rosa')
    headers = auth_headers(token)
    client.post('/api/friends', json={'username': 'rosa'}, headers=headers)
    client.post('/api/friends', json={'username': 'quinn'}, headers=auth_headers(friend_token))

    response = client.post('/api/friends/rosa/message', json={'message': 'gg'}, headers=headers)
    assert response.status_code == 200
    assert response.get_json() == {'success': True}

    client.post(
        '/api/friends/quinn/message',
        json={'message': 'rematch?'},
        headers=auth_headers(friend_token),
    )

    response = client.post('/api/friends/rosa/message', json={}, headers=headers)
    assert response.status_code == 400

    response = client.post('/api/friends/ghost/message', json={'message': 'hi'}, headers=headers)
    assert response.status_code == 404

    conversation = client.get('/api/friends/rosa/messages', headers=headers).get_json()
    assert [message['content'] for message in conversation] == ['rematch?', 'gg']
    assert conversation[1]['sender'] == 'quinn'


def test_friend_messages_follow_rename(client):
    token, _me = register_and_login(client, username='sam')
    register_and_login(client, username='tess')
    headers = auth_headers(token)
    client.post('/api/friends', json={'username': 'tess'}, headers=headers)

    response = client.post(
        '/api/users/update-username', json={'oldUsername': 'sam', 'newUsername': 'samuel'}
    )
    assert response.status_code == 200

    response = client.post('/api/friends/tess/message', json={'message': 'hey'}, headers=headers)
    assert response.status_code == 200

    conversation = client.get('/api/friends/tess/messages', headers=headers).get_json()
    assert [message['sender'] for message in conversation] == ['samuel']
    assert client.get('/api/messages/sam').get_json() == []
