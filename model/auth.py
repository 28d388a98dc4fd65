from functools import wraps
from flask import Blueprint, request, current_app
from mongo import *
from mongo import engine
from mongo.user import decode_session
from .utils import *

__all__ = (
    'auth_api',
    'login_required',
    'identity_verify',
    'session_user',
)

auth_api = Blueprint('auth_api', __name__)


def session_user(token):
    '''
    resolve the `piann` cookie into an active user, return a
    (user, error message) pair
    '''
    if token is None:
        return None, 'Not Logged In'
    json = decode_session(token)
    if json is None or not json.get('secret'):
        return None, 'Invalid Token'
    user = User(json['data']['username'])
    if not user or json['data'].get('userId') != user.user_id:
        return None, 'Authorization Expired'
    if not user.active:
        return None, 'Inactive User'
    return user, None


def login_required(func):
    '''Check if the user is login

    Returns:
        - A wrapped function
        - 403 Not Logged In
        - 403 Invalid Token
        - 403 Inactive User
    '''

    @wraps(func)
    @Request.cookies(vars_dict={'token': 'piann'})
    def wrapper(token, *args, **kwargs):
        user, err = session_user(token)
        if user is None:
            return HTTPError(err, 403)
        kwargs['user'] = user
        return func(*args, **kwargs)

    return wrapper


def identity_verify(*roles):
    '''Verify a logged in user's global role
    '''

    def verify(func):

        @wraps(func)
        @login_required
        def wrapper(user, *args, **kwargs):
            if user.role not in roles:
                return HTTPError('Insufficient Permissions', 403)
            kwargs['user'] = user
            return func(*args, **kwargs)

        return wrapper

    return verify


@auth_api.route('/session', methods=['GET', 'POST'])
def session():
    '''Create a session or remove a session.
    Request methods:
        GET: Logout
        POST: Login
    '''

    def logout():
        '''Logout a user.
        Returns:
            - 200 Logout Success
        '''
        cookies = {'jwt': None, 'piann': None}
        return HTTPResponse('Goodbye', cookies=cookies)

    @Request.json('username: str', 'password: str')
    def login(username, password):
        '''Login a user.
        Returns:
            - 400 Incomplete Data
            - 403 Login Failed
            - 429 Too Many Attempts
        '''
        ip_addr = get_ip()
        allowed, wait_time = login_limiter.check(ip_addr)
        if not allowed:
            return HTTPError(
                f'Too many attempts. Retry in {int(wait_time)}s',
                429,
                data={'waitFor': int(wait_time)},
            )
        try:
            user = User.login(username, password)
        except DoesNotExist:
            login_limiter.record_failure(ip_addr)
            current_app.logger.info(f'Login failed [user={username}]')
            return HTTPError('Login Failed', 403)
        if not user.active:
            return HTTPError('Invalid User', 403)
        login_limiter.clear(ip_addr)
        cookies = {'piann_httponly': user.secret, 'jwt': user.cookie}
        return HTTPResponse('Login Success', cookies=cookies)

    methods = {'GET': logout, 'POST': login}

    return methods[request.method]()


@auth_api.route('/signup', methods=['POST'])
@Request.json('username: str', 'password: str', 'email: str')
def signup(username, password, email):
    try:
        user = User.signup(username, password, email)
    except ValidationError as ve:
        return HTTPError('Signup Failed', 400, data=ve.to_dict())
    except NotUniqueError:
        return HTTPError('User Exists', 400)
    except ValueError:
        return HTTPError('Not Allowed Name', 400)
    # there is no email verification, accounts are usable at once
    user.update(active=True)
    current_app.logger.info(f'New user [{username}]')
    return HTTPResponse('Signup Success')
