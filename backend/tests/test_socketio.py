from giftswap import store


def _connected(sio_client):
    if not sio_client.is_connected('/ws'):
        sio_client.connect(namespace='/ws')
    assert sio_client.is_connected('/ws')
    # Flush any initial events
    sio_client.get_received('/ws')
    return sio_client


def test_socket_connect_and_subscribe(sio_client):
    client = _connected(sio_client)
    client.emit('subscribe', {'collection': 'votes'}, namespace='/ws')
    received = client.get_received('/ws')
    assert any(pkt['name'] == 'subscribed' and pkt['args'][0] == {'collection': 'votes'} for pkt in received)


def test_subscribe_to_unknown_collection_reports_error(sio_client):
    client = _connected(sio_client)
    client.emit('subscribe', {'collection': 'gifts'}, namespace='/ws')
    received = client.get_received('/ws')
    assert any(pkt['name'] == 'error' for pkt in received)


def test_store_changes_are_pushed_to_subscribers(sio_client, host_client):
    client = _connected(sio_client)
    client.emit('subscribe', {'collection': 'participants'}, namespace='/ws')
    client.get_received('/ws')

    host_client.post('/api/admin/participants', json={'name': 'Alice'})

    received = client.get_received('/ws')
    updates = [pkt['args'][0]['collection'] for pkt in received if pkt['name'] == 'store_update']
    assert updates == ['participants']


def test_unsubscribed_clients_get_no_updates(sio_client, host_client):
    client = _connected(sio_client)
    client.emit('subscribe', {'collection': 'participants'}, namespace='/ws')
    client.emit('unsubscribe', {'collection': 'participants'}, namespace='/ws')
    client.get_received('/ws')

    host_client.post('/api/admin/participants', json={'name': 'Alice'})

    assert not any(pkt['name'] == 'store_update' for pkt in client.get_received('/ws'))


def test_in_process_subscribers_are_notified(participants):
    from giftswap.services.voting import ledger, sessions

    seen = []
    store.subscribe(store.VOTES, seen.append)
    try:
        sessions.start_round(participants[0].id)
        ledger.cast_vote(participants[1].id, voter_token='t1', voter_name='Bob')
    finally:
        store.unsubscribe(store.VOTES, seen.append)

    # start_round clears the old votes, then the vote itself
    assert seen == [store.VOTES, store.VOTES]


def test_ping_pong(sio_client):
    client = _connected(sio_client)
    client.emit('ping', {'n': 1}, namespace='/ws')
    received = client.get_received('/ws')
    assert any(pkt['name'] == 'pong' and pkt['args'][0] == {'n': 1} for pkt in received)


def test_handlers_only_answer_on_ws_namespace(flask_app):
    from giftswap import socketio

    client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client(), namespace='/')
    try:
        client.get_received('/')
        client.emit('ping', {'n': 1}, namespace='/')
        assert not any(pkt['name'] == 'pong' for pkt in client.get_received('/'))
    finally:
        client.disconnect(namespace='/')
