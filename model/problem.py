import math
from functools import wraps
from flask import Blueprint, request, send_file, current_app
from yaml import safe_dump, safe_load, YAMLError
from mongo import *
from mongo import engine, bus
from mongo.utils import (
    build_content,
    buffer_to_stream,
    paginate,
    stream_to_buffer,
)
from config import IMPORT_MAX_SIZE, PROBLEM_PER_PAGE
from .auth import *
from .utils import *

__all__ = ['problem_api']

problem_api = Blueprint('problem_api', __name__)
Permission = Domain.Permission
DifficultySetting = engine.Problem.DifficultySetting


def brief(problem: Problem):
    data = problem.to_dict()
    for key in ('content', 'config'):
        del data[key]
    return data


def plain(value):
    '''
    turn document containers into builtin ones, the yaml safe dumper
    refuses dict and list subclasses
    '''
    if isinstance(value, dict):
        return {k: plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [plain(v) for v in value]
    return value


def owner_info(problem: Problem):
    owner = User(problem.owner)
    return owner.info if owner else None


def can_read_data(domain: Domain, user: User, problem: Problem) -> bool:
    if problem.owner == user.username and domain.permission(
            user, Permission.READ_PROBLEM_DATA_SELF):
        return True
    return domain.permission(user, Permission.READ_PROBLEM_DATA)


def manage_required(func):
    '''
    owner needs `EDIT_PROBLEM_SELF`, others `EDIT_PROBLEM`
    '''

    @wraps(func)
    def wrapper(*args, **kwargs):
        user, domain = kwargs['user'], kwargs['domain']
        if not can_manage_problem(domain, user, kwargs['problem']):
            return HTTPError('Not enough permission', 403)
        return func(*args, **kwargs)

    return wrapper


def list_problems(user, domain, page, q, categories):
    if not domain.permission(user, Permission.VIEW_PROBLEM):
        return HTTPError('Not enough permission', 403)
    try:
        page = int(page or 1)
    except ValueError:
        return HTTPError('page must be integer!', 400)
    query = {}
    if not domain.permission(user, Permission.VIEW_PROBLEM_HIDDEN):
        query['hidden'] = False
    if q:
        query['title__icontains'] = q
    bus.serial('problem/list', query, user=user, domain=domain)
    try:
        pdocs, pcount, ppcount = paginate(
            Problem.get_multi(domain.domain_id, query, categories),
            page,
            PROBLEM_PER_PAGE,
        )
    except ValueError as e:
        return HTTPError(str(e), 400)
    psdict = Problem.get_list_status(
        domain.domain_id,
        user,
        (p.doc_id for p in pdocs),
    )
    return HTTPResponse(
        'Success.',
        data={
            'page': page,
            'pcount': pcount,
            'ppcount': ppcount,
            'pdocs': [brief(Problem(p)) for p in pdocs],
            'psdict': {str(k): v
                       for k, v in psdict.items()},
            'category': '+'.join(categories),
        },
    )


@problem_api.route('/', methods=['GET'])
@login_required
@domain_required
@Request.args('page', 'q')
def problem_main(user, domain, page, q):
    return list_problems(user, domain, page, q, [])


@problem_api.route('/category/<category>', methods=['GET'])
@login_required
@domain_required
@Request.args('page', 'q')
def problem_category(user, domain, category, page, q):
    categories = parse_category(category)
    if not categories:
        return HTTPError('Invalid category', 400)
    return list_problems(user, domain, page, q, categories)


@problem_api.route('/random', methods=['GET'])
@login_required
@domain_required
@Request.args('category')
def problem_random(user, domain, category):
    if not domain.permission(user, Permission.VIEW_PROBLEM):
        return HTTPError('Not enough permission', 403)
    query = {}
    if not domain.permission(user, Permission.VIEW_PROBLEM_HIDDEN):
        query['hidden'] = False
    bus.serial('problem/list', query, user=user, domain=domain)
    doc_id = Problem.random(
        domain.domain_id,
        query,
        parse_category(category),
    )
    if doc_id is None:
        return HTTPError(str(NoProblem()), 404)
    return HTTPRedirect(
        problem_url(domain.domain_id, doc_id),
        data={'pid': doc_id},
    )


@problem_api.route('/create', methods=['POST'])
@login_required
@domain_required
@perm_required(Permission.CREATE_PROBLEM)
@Request.json('title: str', 'pid', 'content', 'description', 'hidden')
def problem_create(user, domain, title, pid, content, description, hidden):
    '''
    `description` is a structured alternative of `content`, see
    `mongo.utils.build_content`
    '''
    if content is None and isinstance(description, dict):
        content = build_content(description)
    try:
        problem = Problem.add(
            domain.domain_id,
            title,
            content or '',
            user.username,
            pid=pid or None,
            hidden=bool(hidden),
        )
    except NotUniqueError as e:
        return HTTPError(str(e), 400)
    except (ValueError, ValidationError) as e:
        return HTTPError(str(e), 400)
    return HTTPRedirect(
        problem_url(domain.domain_id, problem.doc_id, 'settings'),
        data={'pid': problem.doc_id},
    )


@problem_api.route('/import', methods=['POST'])
@login_required
@domain_required
@perm_required(Permission.CREATE_PROBLEM)
@Request.files('file')
def problem_import(user, domain, file):
    if file is None:
        return HTTPError('No file', 400)
    if (request.content_length or 0) > IMPORT_MAX_SIZE:
        return HTTPError('File too large', 400)
    buffer = stream_to_buffer(file.stream)
    if len(buffer) > IMPORT_MAX_SIZE:
        return HTTPError('File too large', 400)
    try:
        problem = Problem.import_archive(
            domain.domain_id,
            user.username,
            buffer,
        )
    except BadProblemArchive as e:
        return HTTPError(str(e), 400)
    except (ValueError, ValidationError) as e:
        return HTTPError(f'Invalid problem.json: {e}', 400)
    current_app.logger.info(f'{user.username} imported {problem}')
    return HTTPRedirect(
        problem_url(domain.domain_id, problem.doc_id),
        data={'pid': problem.doc_id},
    )


@problem_api.route('/<pid>', methods=['GET'])
@login_required
@domain_required
@problem_required
def problem_detail(user, domain, problem):
    bus.serial('problem/get', problem, user=user)
    return HTTPResponse(
        'Problem can view.',
        data={
            'pdoc': problem.to_dict(),
            'udoc': owner_info(problem),
            'psdoc': Problem.get_list_status(
                domain.domain_id,
                user,
                [problem.doc_id],
            ).get(problem.doc_id),
        },
    )


@problem_api.route('/<pid>/star', methods=['POST', 'DELETE'])
@login_required
@domain_required
@problem_required
def problem_star(user, domain, problem):
    star = request.method == 'POST'
    problem.set_star(user, star)
    return HTTPResponse('Success.', data={'star': star})


@problem_api.route('/<pid>/submit', methods=['GET', 'POST'])
@login_required
@domain_required
@problem_required
def problem_submit(user, domain, problem):

    def get_submit():
        rdocs = Record.get_user_in_problem(
            domain.domain_id,
            problem.doc_id,
            user.username,
        )
        return HTTPResponse(
            'Success.',
            data={
                'pdoc': problem.to_dict(),
                'rdocs': [Record(r).to_dict() for r in rdocs],
            },
        )

    @Request.json('lang: str', 'code: str')
    def post_submit(lang, code):
        try:
            record = Record.submit(
                domain,
                problem,
                user,
                lang,
                code,
                domain.capability(user),
            )
        except PermissionError as e:
            return HTTPError(str(e), 403)
        except (ValueError, ValidationError) as e:
            return HTTPError(str(e), 400)
        return HTTPRedirect(
            f'/record/{record.id}',
            data={'rid': str(record.id)},
        )

    methods = {'GET': get_submit, 'POST': post_submit}
    return methods[request.method]()


@problem_api.route('/<pid>/pretest', methods=['POST'])
@login_required
@domain_required
@problem_required
@Request.json('lang: str', 'code: str', 'input')
def problem_pretest(user, domain, problem, lang, code, input):
    allowed, wait_time = pretest_limiter.hit(user.username, 'add_record')
    if not allowed:
        return HTTPError(
            'Too many pretests, try again later.',
            429,
            data={'waitFor': math.ceil(wait_time)},
        )
    try:
        record = Record.pretest(
            domain,
            problem,
            user,
            lang,
            code,
            input,
            domain.capability(user),
        )
    except PermissionError as e:
        return HTTPError(str(e), 403)
    except (ValueError, ValidationError) as e:
        return HTTPError(str(e), 400)
    return HTTPResponse('Success.', data={'rid': str(record.id)})


@problem_api.route('/<pid>/copy', methods=['POST'])
@login_required
@domain_required
@problem_required
@Request.json('dest: str', 'hidden')
def problem_copy(user, domain, problem, dest, hidden):
    dest_domain = Domain(dest)
    if not dest_domain:
        return HTTPError(f'Domain [{dest}] not found', 404)
    if not dest_domain.permission(user, Permission.CREATE_PROBLEM):
        return HTTPError('Permission CREATE_PROBLEM required', 403)
    try:
        copied = problem.copy_to(dest, user.username, bool(hidden))
    except ValueError as e:
        return HTTPError(str(e), 400)
    return HTTPRedirect(
        problem_url(dest, copied.doc_id, 'settings'),
        data={'pid': copied.doc_id},
    )


@problem_api.route('/<pid>/rejudge', methods=['POST'])
@login_required
@domain_required
@problem_required
@perm_required(Permission.REJUDGE_PROBLEM)
def problem_rejudge(user, domain, problem):
    count = Record.rejudge_problem(problem)
    current_app.logger.info(f'{user.username} rejudged {problem}')
    return HTTPResponse('Success.', data={'count': count})


@problem_api.route('/<pid>/export', methods=['GET'])
@login_required
@domain_required
@problem_required
def problem_export(user, domain, problem):
    buf = problem.export_archive(can_read_data(domain, user, problem))
    return send_file(
        buf,
        mimetype='application/zip',
        as_attachment=True,
        download_name=f'{domain.domain_id}-{problem.doc_id}.zip',
    )


@problem_api.route('/<pid>/statistics', methods=['GET'])
@login_required
@domain_required
@problem_required
def problem_statistics(user, domain, problem):
    count = {
        Record.Status(status).name: n
        for status, n in problem.get_record_status().items()
    }
    return HTTPResponse(
        'Success.',
        data={
            'pdoc': brief(problem),
            'udoc': owner_info(problem),
            'count': count,
        },
    )


@problem_api.route('/<pid>/settings', methods=['GET', 'POST'])
@login_required
@domain_required
@problem_required
@manage_required
def problem_settings(user, domain, problem):

    def get_settings():
        return HTTPResponse(
            'Success.',
            data={
                'pdoc': problem.to_dict(),
                'config': safe_dump(plain(problem.config), allow_unicode=True),
                'difficultySettings': {
                    int(k): v
                    for k, v in Problem.SETTING_DIFFICULTY_RANGE.items()
                },
            },
        )

    @Request.json(
        'hidden',
        'category',
        'tag',
        'difficulty_setting',
        'difficulty_admin',
    )
    def post_settings(hidden, category, tag, difficulty_setting,
                      difficulty_admin):
        update = {}
        if hidden is not None:
            update['hidden'] = bool(hidden)
        for field, value in (('category', category), ('tag', tag)):
            if value is None:
                continue
            if isinstance(value, str):
                value = parse_category(value)
            if not isinstance(value, list) or not all(
                    isinstance(v, str) for v in value):
                return HTTPError(f'Invalid {field}', 400)
            update[field] = value
        if difficulty_setting is not None:
            try:
                update['difficulty_setting'] = DifficultySetting(
                    int(difficulty_setting))
            except (TypeError, ValueError):
                return HTTPError('Invalid difficultySetting', 400)
        if difficulty_admin is not None:
            if difficulty_admin == '':
                update['difficulty_admin'] = None
            else:
                try:
                    difficulty_admin = int(difficulty_admin)
                except (TypeError, ValueError):
                    return HTTPError('Invalid difficultyAdmin', 400)
                if not 1 <= difficulty_admin <= 9:
                    return HTTPError('Invalid difficultyAdmin', 400)
                update['difficulty_admin'] = difficulty_admin
        bus.serial('problem/setting', update, user=user, problem=problem)
        try:
            problem.edit(**update)
        except (ValueError, ValidationError) as e:
            return HTTPError(str(e), 400)
        problem.refresh_difficulty()
        return HTTPRedirect(
            problem_url(domain.domain_id, problem.doc_id, 'settings'),
            data={'pdoc': problem.to_dict()},
        )

    methods = {'GET': get_settings, 'POST': post_settings}
    return methods[request.method]()


@problem_api.route('/<pid>/settings/config', methods=['POST'])
@login_required
@domain_required
@problem_required
@manage_required
@Request.json('yaml: str')
def problem_settings_config(user, domain, problem, yaml):
    try:
        config = safe_load(yaml)
    except YAMLError:
        return HTTPError('Invalid YAML', 400)
    if not isinstance(config, dict):
        return HTTPError('Config must be a mapping', 400)
    problem.edit(config=config)
    return HTTPResponse('Success.', data={'config': problem.config})


@problem_api.route('/<pid>/edit', methods=['GET', 'POST'])
@login_required
@domain_required
@problem_required
@manage_required
def problem_edit(user, domain, problem):

    def get_edit():
        return HTTPResponse('Success.', data={'pdoc': problem.to_dict()})

    @Request.json('title: str', 'content: str', 'pid')
    def post_edit(title, content, pid):
        update = {'title': title, 'content': content}
        # omit `pid` to keep the alias, send '' to remove it
        if pid is not None:
            update['pid'] = pid
        try:
            problem.edit(**update)
        except NotUniqueError as e:
            return HTTPError(str(e), 400)
        except (ValueError, ValidationError) as e:
            return HTTPError(str(e), 400)
        return HTTPRedirect(
            problem_url(domain.domain_id, problem.doc_id),
            data={'pid': problem.doc_id},
        )

    methods = {'GET': get_edit, 'POST': post_edit}
    return methods[request.method]()


@problem_api.route('/<pid>/upload', methods=['GET', 'POST'])
@login_required
@domain_required
@problem_required
@manage_required
def problem_upload(user, domain, problem):

    def get_upload():
        if problem.has_data:
            return HTTPResponse('Success.', data={'md5': problem.data_md5})
        if problem.data_ref:
            return HTTPResponse('Success.', data={'from': problem.data_ref})
        return HTTPResponse('Success.', data={'md5': None})

    @Request.files('file')
    def post_upload(file):
        if file is None:
            return HTTPError('No file', 400)
        try:
            problem.set_testdata(stream_to_buffer(file.stream))
        except BadProblemArchive as e:
            return HTTPError(str(e), 400)
        return HTTPResponse('Success.', data={'md5': problem.data_md5})

    methods = {'GET': get_upload, 'POST': post_upload}
    return methods[request.method]()


@problem_api.route('/<pid>/data', methods=['GET'])
@login_required
@domain_required
def problem_data(user, domain, pid):
    try:
        problem = Problem.get(domain.domain_id, pid)
    except ProblemNotFound as e:
        return HTTPError(str(e), 404)
    # judge daemons download any data
    if not user.has_judge_privilege:
        if not can_view_problem(domain, user, problem):
            return HTTPError('Not enough permission', 403)
        if not can_read_data(domain, user, problem):
            return HTTPError('Not enough permission', 403)
    if problem.has_data:
        return send_file(
            buffer_to_stream(problem.get_testdata()),
            mimetype='application/zip',
            as_attachment=True,
            download_name=f'{domain.domain_id}-{problem.doc_id}.zip',
        )
    if problem.data_ref:
        ref = problem.data_ref
        return HTTPRedirect(problem_url(ref['domainId'], ref['pid'], 'data'))
    return HTTPError(str(ProblemDataNotFound(problem.doc_id)), 404)


# solutions live under /p/<pid>/solution
from .solution import init_solution_api

init_solution_api(problem_api)
