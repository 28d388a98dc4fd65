import secrets
from functools import wraps
from flask import Blueprint, current_app
from mongo import *
from config import JUDGE_TOKEN
from .auth import *
from .utils import *

__all__ = ['record_api']

record_api = Blueprint('record_api', __name__)


def judge_token_required(func):
    '''
    the judge daemon authenticates with the shared `JUDGE_TOKEN`
    '''

    @wraps(func)
    @Request.json('token: str')
    def wrapper(token, *args, **kwargs):
        if not secrets.compare_digest(token.encode(), JUDGE_TOKEN.encode()):
            return HTTPError('Invalid Token', 403)
        return func(*args, **kwargs)

    return wrapper


def record_required(func):

    @wraps(func)
    def wrapper(*args, rid, **kwargs):
        try:
            kwargs['record'] = Record.get(rid)
        except RecordNotFound as e:
            return HTTPError(str(e), 404)
        return func(*args, **kwargs)

    return wrapper


@record_api.route('/<rid>', methods=['GET'])
@login_required
@record_required
def record_detail(user, record):
    domain = Domain(record.domain_id)
    can_read_code = record.uid == user.username or (
        domain and domain.permission(user, Domain.Permission.READ_RECORD_CODE))
    return HTTPResponse(
        'Success.',
        data={'rdoc': record.to_dict(with_code=bool(can_read_code))},
    )


@record_api.route('/judge/fetch', methods=['POST'])
@judge_token_required
@Request.json('judger')
def judge_fetch(judger):
    record = Record.fetch_task(judger or 'judge')
    if record is None:
        return HTTPResponse('No task.', data=None)
    return HTTPResponse('Success.', data={'rdoc': record.to_dict()})


@record_api.route('/<rid>/judge', methods=['PUT'])
@judge_token_required
@record_required
@Request.json(
    'status',
    'score',
    'time',
    'memory',
    'case',
    'compiler_text',
    'judge_text',
    'done',
)
def judge_report(
    record,
    status,
    score,
    time,
    memory,
    case,
    compiler_text,
    judge_text,
    done,
):
    try:
        if done:
            if status is None:
                return HTTPError('status is required', 400)
            record.end(
                status,
                score=score or 0,
                time=time or 0,
                memory=memory or 0,
            )
        else:
            record.next(
                status=status,
                score=score,
                time=time,
                memory=memory,
                case=case,
                compiler_text=compiler_text,
                judge_text=judge_text,
            )
    except (KeyError, TypeError, ValueError, ValidationError) as e:
        current_app.logger.info(f'Invalid judge report of {record}: {e}')
        return HTTPError('Invalid judge report', 400)
    return HTTPResponse('Success.', data={'status': int(record.status)})
