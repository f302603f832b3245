import time

from memory_match import socketio
from memory_match.services.game import get_services

from conftest import ADMIN_HEADERS, cards_by_content, set_deck


def _names(received):
    return [pkt['name'] for pkt in received]


def _payloads(received, name):
    return [pkt['args'][0] if pkt['args'] else None for pkt in received if pkt['name'] == name]


def _join_and_start(client, name='Alpha'):
    data = client.post('/api/join', json={'teamName': name}).get_json()
    client.post('/api/admin/start', headers=ADMIN_HEADERS)
    return data


def test_socket_connect_receives_scoreboard(sio_client):
    assert sio_client.is_connected('/ws')
    received = sio_client.get_received('/ws')
    assert 'connected' in _names(received)
    assert _payloads(received, 'scoreboard') == [[]]


def test_flip_reveals_only_to_requester_and_scores_match(flask_app, sio_client, client):
    set_deck([(1, 'Apple', 'Quả táo')])
    data = _join_and_start(client)
    observer = socketio.test_client(flask_app, namespace='/ws')
    sio_client.get_received('/ws')
    observer.get_received('/ws')

    sio_client.emit('getBoard', {'teamToken': data['teamToken']}, namespace='/ws')
    update = _payloads(sio_client.get_received('/ws'), 'boardUpdate')[0]
    assert update['gameActive'] is True
    assert len(update['board']) == 2
    assert all(c['content'] is None for c in update['board'])

    from memory_match.models import Team
    team_id = Team.query.filter_by(token=data['teamToken']).first().id
    ids = {content: card.id for content, card in cards_by_content(team_id).items()}

    sio_client.emit('flipCard', {'teamToken': data['teamToken'], 'cardId': ids['Apple']}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert _payloads(received, 'cardFlipped') == [{'cardId': ids['Apple'], 'content': 'Apple'}]
    assert 'cardFlipped' not in _names(observer.get_received('/ws'))

    sio_client.emit('flipCard', {'teamToken': data['teamToken'], 'cardId': ids['Quả táo']}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert _names(received)[:2] == ['cardFlipped', 'matchResult']
    assert _payloads(received, 'matchResult') == [
        {'matched': True, 'cardIds': [ids['Apple'], ids['Quả táo']], 'score': 10}
    ]

    seen_by_observer = observer.get_received('/ws')
    assert 'matchResult' not in _names(seen_by_observer)
    scoreboard = _payloads(seen_by_observer, 'scoreboard')[-1]
    assert scoreboard[0]['teamName'] == 'Alpha'
    assert scoreboard[0]['score'] == 10
    assert scoreboard[0]['matchesFound'] == 1
    observer.disconnect(namespace='/ws')


def test_rejections_go_to_requester_only(flask_app, sio_client, client):
    observer = socketio.test_client(flask_app, namespace='/ws')
    data = client.post('/api/join', json={'teamName': 'Alpha'}).get_json()
    sio_client.get_received('/ws')
    observer.get_received('/ws')

    card_id = data['board'][0]['cardId']
    sio_client.emit('flipCard', {'teamToken': data['teamToken'], 'cardId': card_id}, namespace='/ws')
    assert _payloads(sio_client.get_received('/ws'), 'flipResult') == [
        {'error': 'Game is not active', 'code': 'GameNotActive'}
    ]

    client.post('/api/admin/start', headers=ADMIN_HEADERS)
    sio_client.get_received('/ws')
    observer.get_received('/ws')
    sio_client.emit('flipCard', {'teamToken': 'bogus', 'cardId': 1}, namespace='/ws')
    assert _payloads(sio_client.get_received('/ws'), 'flipResult')[0]['code'] == 'InvalidToken'
    assert observer.get_received('/ws') == []
    observer.disconnect(namespace='/ws')


def test_incomplete_flip_payload_is_ignored(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('flipCard', {'cardId': 1}, namespace='/ws')
    sio_client.emit('flipCard', {'teamToken': 'abc'}, namespace='/ws')
    assert sio_client.get_received('/ws') == []


def test_mismatch_pushes_cards_hidden_once(flask_app, sio_client, client):
    set_deck([(1, 'Apple', 'Quả táo'), (2, 'Dog', 'Con chó')])
    data = _join_and_start(client)
    from memory_match.models import Team
    team_id = Team.query.filter_by(token=data['teamToken']).first().id
    ids = {content: card.id for content, card in cards_by_content(team_id).items()}
    token = data['teamToken']
    sio_client.get_received('/ws')

    sio_client.emit('flipCard', {'teamToken': token, 'cardId': ids['Apple']}, namespace='/ws')
    sio_client.emit('flipCard', {'teamToken': token, 'cardId': ids['Dog']}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert _payloads(received, 'matchResult') == [
        {'matched': False, 'cardIds': [ids['Apple'], ids['Dog']], 'score': 0}
    ]

    sio_client.emit('flipCard', {'teamToken': token, 'cardId': ids['Con chó']}, namespace='/ws')
    assert _payloads(sio_client.get_received('/ws'), 'flipResult')[0]['code'] == 'ResolutionInProgress'

    get_services(flask_app).turns.pending_hide(team_id).wait(2)
    deadline = time.time() + 2.0
    hidden = []
    while time.time() < deadline and not hidden:
        hidden = _payloads(sio_client.get_received('/ws'), 'cardsHidden')
        if not hidden:
            time.sleep(0.05)
    assert hidden == [{'cardIds': [ids['Apple'], ids['Dog']]}]

    time.sleep(0.2)
    assert 'cardsHidden' not in _names(sio_client.get_received('/ws'))

    sio_client.emit('getBoard', {'teamToken': token}, namespace='/ws')
    update = _payloads(sio_client.get_received('/ws'), 'boardUpdate')[0]
    assert all(c['state'] == 'hidden' and c['content'] is None for c in update['board'])


def test_get_board_with_unknown_token(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('getBoard', {'teamToken': 'nobody'}, namespace='/ws')
    assert _payloads(sio_client.get_received('/ws'), 'flipResult') == [
        {'error': 'Invalid token', 'code': 'InvalidToken'}
    ]


def test_lifecycle_events_reach_observers(sio_client, client):
    client.post('/api/join', json={'teamName': 'Alpha'})
    sio_client.get_received('/ws')

    client.post('/api/admin/start', headers=ADMIN_HEADERS)
    received = sio_client.get_received('/ws')
    assert _payloads(received, 'gameStarted') == [{'remainingTime': 120}]
    assert _payloads(received, 'scoreboard')[-1][0]['teamName'] == 'Alpha'

    client.post('/api/admin/reset', headers=ADMIN_HEADERS)
    received = sio_client.get_received('/ws')
    assert 'gameReset' in _names(received)
    assert _payloads(received, 'scoreboard')[-1] == []
