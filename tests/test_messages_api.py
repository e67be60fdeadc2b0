def test_send_message_validates_payload(client):
    response = client.post('/api/messages/bob/message', json={'message': 'hi'})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Message and sender are required!'

    response = client.post('/api/messages/bob/message', json={'sender': 'alice', 'message': '  '})
    assert response.status_code == 400


def test_messages_listed_newest_first(client):
    response = client.post('/api/messages/bob/message', json={'sender': 'alice', 'message': 'one'})
    assert response.status_code == 201
    assert response.get_json() == {'success': True, 'message': 'Message sent successfully!'}

    client.post('/api/messages/alice/message', json={'sender': 'bob', 'message': 'two'})
    client.post('/api/messages/carl/message', json={'sender': 'dana', 'message': 'other'})

    messages = client.get('/api/messages/bob').get_json()
    assert [message['content'] for message in messages] == ['two', 'one']
    assert set(messages[0]) >= {'id', 'sender', 'receiver', 'content', 'timestamp'}
    assert messages[1]['receiver'] == 'bob'

    assert client.get('/api/messages/nobody').get_json() == []
