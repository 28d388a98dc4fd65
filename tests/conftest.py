from typing import Callable
import pytest
from flask.testing import FlaskClient
from app import app as flask_app
from model import socketio
from model.utils import login_limiter, pretest_limiter
from mongo import *

ForgeClient = Callable[[str], FlaskClient]


@pytest.fixture
def app():
    app = flask_app()
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def forge_client(app) -> ForgeClient:
    '''
    build a client logged in as `username`
    '''

    def cookies_client(username: str):
        client = app.test_client()
        user = User(username)
        client.set_cookie('piann', user.secret)
        client.set_cookie('jwt', user.cookie)
        return client

    return cookies_client


@pytest.fixture
def client_admin(forge_client: ForgeClient):
    return forge_client('admin')


@pytest.fixture
def client_student(forge_client: ForgeClient):
    return forge_client('student')


@pytest.fixture
def client_judge(forge_client: ForgeClient):
    return forge_client('judge')


@pytest.fixture
def socket_client(app, forge_client: ForgeClient):
    '''
    connect to the live pretest channel as `username`, pass
    `None` to connect without session
    '''
    clients = []

    def connect(username, domain_id='system'):
        flask_client = forge_client(
            username) if username else app.test_client()
        sc = socketio.test_client(
            app,
            namespace='/conn/pretest',
            query_string=f'domainId={domain_id}',
            flask_test_client=flask_client,
        )
        clients.append(sc)
        return sc

    yield connect
    for sc in clients:
        if sc.is_connected('/conn/pretest'):
            sc.disconnect(namespace='/conn/pretest')


@pytest.fixture(autouse=True)
def reset_limiters():
    pretest_limiter.clear()
    login_limiter.clear()
    yield
