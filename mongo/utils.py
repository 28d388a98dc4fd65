import io
import re
import math
import hashlib
import secrets
import string
from functools import wraps
from datetime import datetime, timedelta, timezone
from typing import Any, BinaryIO, Callable, Dict, Iterable, Optional, Tuple

import jwt

from . import engine

__all__ = (
    'hash_id',
    'drop_none',
    'doc_required',
    'jwt_encode',
    'jwt_decode',
    'random_string',
    'format_date',
    'parse_time_ms',
    'parse_memory_mb',
    'camel_case',
    'snake_case',
    'build_content',
    'stream_to_buffer',
    'buffer_to_stream',
    'paginate',
)

RANDOM_ALPHABET = string.ascii_letters + string.digits


def hash_id(salt, text):
    text = ((salt or '') + (text or '')).encode()
    sha = hashlib.sha3_512(text)
    return sha.hexdigest()[:24]


def drop_none(d: Dict):
    return {k: v for k, v in d.items() if v is not None}


def doc_required(
    src: str,
    des: Any,
    cls: Optional[type] = None,
    src_none_allowed: bool = False,
):
    '''
    query db to inject document into functions.
    if the document does not exist in db, raise `engine.DoesNotExist`.
    if `des` is a class, it will be used as `cls` and the
    injected keyword will have the same name as `src`.
    '''
    if cls is None:
        cls, des = des, src

    def deco(func):

        @wraps(func)
        def wrapper(*args, **ks):
            if src not in ks:
                raise TypeError(f'{src} not found in function argument')
            src_param = ks.pop(src)
            if src_param is None and src_none_allowed:
                ks[des] = None
                return func(*args, **ks)
            if isinstance(src_param, cls):
                ks[des] = src_param
                return func(*args, **ks)
            doc = cls(src_param)
            if not doc:
                raise engine.DoesNotExist(f'{doc} not found!')
            ks[des] = doc
            return func(*args, **ks)

        return wrapper

    return deco


def jwt_encode(key: str, iss: str, days: int, **ks) -> str:
    payload = {
        'iss': iss,
        'exp': datetime.now(tz=timezone.utc) + timedelta(days=days),
        'secret': ks.pop('secret', False),
        'data': ks,
    }
    return jwt.encode(payload, key, algorithm='HS256')


def jwt_decode(secret: str, iss: str, token: str) -> Optional[Dict]:
    try:
        return jwt.decode(
            token,
            secret,
            issuer=iss,
            algorithms=['HS256'],
        )
    except jwt.exceptions.PyJWTError:
        return None


def random_string(digit: int = 32) -> str:
    return ''.join(secrets.choice(RANDOM_ALPHABET) for _ in range(digit))


def format_date(
    date: Optional[datetime],
    fmt: str = '%Y-%m-%d %H:%M:%S',
) -> Optional[str]:
    if date is None:
        return None
    return date.strftime(fmt)


TIME_RE = re.compile(r'^([0-9]+(?:\.[0-9]*)?)([mu]?)s?$', re.IGNORECASE)
TIME_UNITS = {'': 1000, 'm': 1, 'u': 0.001}
MEMORY_RE = re.compile(r'^([0-9]+(?:\.[0-9]*)?)([kmg])b?$', re.IGNORECASE)
MEMORY_UNITS = {'k': 0.1, 'm': 1, 'g': 1024}


def parse_time_ms(s: str) -> int:
    '''
    '1s' -> 1000, '500ms' -> 500, '1.5' -> 1500
    '''
    match = TIME_RE.match(s.strip())
    if match is None:
        raise ValueError(f'{s} error parsing time')
    return math.floor(float(match[1]) * TIME_UNITS[match[2].lower()])


def parse_memory_mb(s: str) -> int:
    '''
    '256m' -> 256, '1g' -> 1024, '64k' -> 7 (k counts as 0.1 MB)
    '''
    match = MEMORY_RE.match(s.strip())
    if match is None:
        raise ValueError(f'{s} error parsing memory')
    return math.ceil(float(match[1]) * MEMORY_UNITS[match[2].lower()])


def _deepen(modify: Callable[[str], str]):

    def modify_object(source):
        if isinstance(source, list):
            return [modify_object(v) for v in source]
        if isinstance(source, dict):
            return {modify(k): modify_object(v) for k, v in source.items()}
        return source

    def apply(source):
        if isinstance(source, str):
            return modify(source)
        return modify_object(source)

    return apply


camel_case = _deepen(lambda s: re.sub(
    r'[_-][a-z]',
    lambda m: m[0][1:].upper(),
    s,
))
snake_case = _deepen(lambda s: re.sub(
    r'(?<!^)[A-Z]',
    lambda m: f'_{m[0].lower()}',
    s.replace('-', '_'),
))


def build_content(source: Dict[str, Any]) -> str:
    '''
    render a structured problem description into markdown

    Args:
        source: may contain `description`, `input`, `output`,
            `samples` (list of [input, output]), `hint` and `source`
    '''
    sections = []

    def section(title, body):
        if body:
            sections.extend((f'## {title}', body))

    section('Description', source.get('description'))
    section('Input Format', source.get('input'))
    section('Output Format', source.get('output'))
    for i, (ip, op) in enumerate(source.get('samples') or [], 1):
        sections.append('\n'.join((
            f'## Sample Input {i}',
            '```',
            ip,
            '```',
            f'## Sample Output {i}',
            '```',
            op,
            '```',
        )))
    section('Hint', source.get('hint'))
    section('Source', source.get('source'))
    return '\n'.join(sections)


def stream_to_buffer(stream: BinaryIO, chunk_size: int = 1 << 16) -> bytes:
    chunks = []
    while chunk := stream.read(chunk_size):
        chunks.append(chunk)
    return b''.join(chunks)


def buffer_to_stream(buffer: bytes) -> io.BytesIO:
    return io.BytesIO(buffer)


def paginate(
    queryset: Iterable,
    page: int,
    page_size: int,
) -> Tuple[list, int, int]:
    '''
    Returns:
        (documents of the page, number of pages, number of documents)
    '''
    if page < 1:
        raise ValueError('page must be positive')
    count = queryset.count()
    num_pages = (count + page_size - 1) // page_size
    docs = list(queryset.skip((page - 1) * page_size).limit(page_size))
    return docs, num_pages, count
