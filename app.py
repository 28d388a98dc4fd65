import os
import logging
from logging.config import dictConfig
from flask import Flask
from model import *
from model.utils import HTTPError
from mongo import *
from config import LOGGING_CONFIG, LOG_DIR, DEFAULT_DOMAIN


def app():
    # Setup logging
    os.makedirs(LOG_DIR, exist_ok=True)
    dictConfig(LOGGING_CONFIG)

    # Create a flask app
    app = Flask(__name__)
    app.config['PREFERRED_URL_SCHEME'] = os.environ.get(
        'PREFERRED_URL_SCHEME', 'http')
    app.url_map.strict_slashes = False
    setup_error_handlers(app)

    # Register flask blueprint
    api2prefix = [
        (auth_api, '/auth', {}),
        (record_api, '/record', {}),
        # the default domain is served without the domain prefix
        (problem_api, '/p', {
            'url_defaults': {
                'domain_id': DEFAULT_DOMAIN
            },
        }),
        (problem_api, '/d/<domain_id>/p', {
            'name': 'domain_problem_api'
        }),
    ]
    for api, prefix, options in api2prefix:
        app.register_blueprint(api, url_prefix=prefix, **options)

    socketio.init_app(app)

    Domain.ensure(DEFAULT_DOMAIN)
    if not User('first_admin'):
        ADMIN = {
            'username': 'first_admin',
            'password': 'firstpasswordforadmin',
            'email': 'i.am.first.admin@noj.tw'
        }
        admin = User.signup(**ADMIN)
        admin.update(
            active=True,
            role=Role.ADMIN,
        )

    if __name__ != '__main__':
        logger = logging.getLogger('gunicorn.error')
        app.logger.setLevel(logger.level)

    return app


def setup_error_handlers(app: Flask):

    @app.errorhandler(PermissionError)
    def permission_denied(e):
        return HTTPError(str(e) or 'Not enough permission', 403)

    @app.errorhandler(DoesNotExist)
    def does_not_exist(e):
        return HTTPError(str(e), 404)

    @app.errorhandler(ValidationError)
    def validation_error(e):
        app.logger.info(f'Validation error [err={e.to_dict()}]')
        return HTTPError('Invalid parameter', 400)

    @app.errorhandler(404)
    def not_found(e):
        return HTTPError('Not Found', 404)

    @app.errorhandler(405)
    def method_not_allowed(e):
        return HTTPError('Method Not Allowed', 405)

    @app.errorhandler(500)
    def internal_error(e):
        app.logger.error(f'Server Error: {e}')
        return HTTPError('Internal Server Error', 500)


if __name__ == '__main__':
    flask_app = app()
    socketio.run(flask_app, host='0.0.0.0', port=8080)
