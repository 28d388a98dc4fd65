from functools import wraps
from flask import request, current_app
from mongo import engine
from mongo.utils import doc_required
from .response import *

__all__ = (
    'Request',
    'get_ip',
)

type_map = {
    'int': int,
    'list': list,
    'str': str,
    'dict': dict,
    'bool': bool,
    'None': type(None)
}


def _candidate_keys(name: str):
    # languageType, language_type, Language_Type, LANGUAGE_TYPE
    head, *tail = [p for p in name.split('_') if p] or [name]
    camel = head + ''.join(p.capitalize() for p in tail)
    return camel, name, name.title(), name.upper()


def _cast(value, target_type):
    if isinstance(value, target_type):
        return value
    if target_type is bool:
        # query strings and forms only carry text
        if isinstance(value, str) and value.lower() in ('true', 'false'):
            return value.lower() == 'true'
        raise ValueError(f'can not cast {value!r} to bool')
    return target_type(value)


class _Request(type):
    '''
    `Request.<source>('name: type', ...)` parses fields from
    `flask.request.<source>` (json, args, form, cookies, files)
    and pass them to the view as keyword arguments.

    A typed field is required, an untyped one is optional and
    defaults to `None`.
    '''

    def __getattr__(self, content_type):

        def get(*keys, vars_dict={}):

            def data_func(func):

                @wraps(func)
                def wrapper(*args, **kwargs):
                    if content_type == 'json':
                        data = request.get_json(silent=True)
                        if data is None:
                            data = {}
                    else:
                        data = getattr(request, content_type)
                    if data is None:
                        return HTTPError(
                            f'Unaccepted Content-Type {content_type}', 415)
                    for key_spec in keys:
                        name, _, type_str = key_spec.partition(':')
                        name = name.strip()
                        target_type = type_map.get(type_str.strip())
                        candidates = _candidate_keys(name)
                        value = next(
                            (data[k] for k in candidates if k in data),
                            None,
                        )
                        if value is None:
                            if target_type is not None:
                                current_app.logger.info(
                                    f'Missing field [{name}] for '
                                    f'{func.__name__}, tried {candidates}')
                                return HTTPError(
                                    'Requested Value With Wrong Type', 400)
                        elif target_type is not None:
                            try:
                                value = _cast(value, target_type)
                            except (ValueError, TypeError) as e:
                                current_app.logger.info(
                                    f'Type mismatch of [{name}] for '
                                    f'{func.__name__}: {e}')
                                return HTTPError(
                                    'Requested Value With Wrong Type', 400)
                        kwargs[name] = value
                    for k, v in vars_dict.items():
                        kwargs[k] = data.get(v)
                    return func(*args, **kwargs)

                return wrapper

            return data_func

        return get


class Request(metaclass=_Request):

    @staticmethod
    def doc(src, des, cls=None, src_none_allowed=False):
        '''
        a warpper to `doc_required` for flask route
        '''

        def deco(func):

            @doc_required(src, des, cls, src_none_allowed)
            def inner_wrapper(*args, **ks):
                return func(*args, **ks)

            @wraps(func)
            def real_wrapper(*args, **ks):
                try:
                    return inner_wrapper(*args, **ks)
                # if document not exists in db
                except engine.DoesNotExist as e:
                    return HTTPError(str(e), 404)
                except engine.ValidationError as e:
                    current_app.logger.info(
                        f'Validation error [err={e.to_dict()}]')
                    return HTTPError('Invalid parameter', 400)

            return real_wrapper

        return deco


def get_ip() -> str:
    forwarded = request.headers.get('X-Forwarded-For', '')
    if forwarded:
        return forwarded.split(',')[-1].strip()
    return request.remote_addr or ''
