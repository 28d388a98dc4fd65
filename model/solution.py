from functools import wraps
from flask import Blueprint, current_app, request
from mongo import *
from mongo.utils import paginate
from config import SOLUTION_PER_PAGE
from .auth import *
from .utils import *

__all__ = ['init_solution_api']

Permission = Domain.Permission


def markdown(text: str):
    return current_app.response_class(text, mimetype='text/markdown')


def solution_required(func):
    '''
    replace the `psid` url parameter with a solution of the problem
    '''

    @wraps(func)
    def wrapper(*args, psid, **kwargs):
        user, domain, problem = (kwargs[k]
                                 for k in ('user', 'domain', 'problem'))
        if not domain.permission(user, Permission.VIEW_PROBLEM_SOLUTION):
            return HTTPError('Permission VIEW_PROBLEM_SOLUTION required', 403)
        try:
            kwargs['solution'] = Solution.get(
                domain.domain_id,
                psid,
                pid=problem.doc_id,
            )
        except SolutionNotFound as e:
            return HTTPError(str(e), 404)
        return func(*args, **kwargs)

    return wrapper


def own_or(domain: Domain, user: User, owner: str, self_perm, perm) -> bool:
    if owner == user.username and domain.permission(user, self_perm):
        return True
    return domain.permission(user, perm)


def init_solution_api(problem_api: Blueprint):

    @problem_api.route('/<pid>/solution', methods=['GET'])
    @login_required
    @domain_required
    @problem_required
    @perm_required(Permission.VIEW_PROBLEM_SOLUTION)
    @Request.args('page')
    def solution_list(user, domain, problem, page):
        try:
            page = int(page or 1)
            psdocs, pcount, pscount = paginate(
                Solution.get_multi(domain.domain_id, problem.doc_id),
                page,
                SOLUTION_PER_PAGE,
            )
        except ValueError as e:
            return HTTPError(str(e), 400)
        psdocs = [Solution(p) for p in psdocs]
        owners = {p.owner for p in psdocs}
        owners.update(r.owner for p in psdocs for r in p.obj.reply)
        udict = {}
        for username in owners:
            u = User(username)
            udict[username] = u.info if u else None
        return HTTPResponse(
            'Success.',
            data={
                'page': page,
                'pcount': pcount,
                'pscount': pscount,
                'psdocs': [p.to_dict() for p in psdocs],
                'pssdict': Solution.get_list_status(
                    domain.domain_id,
                    user,
                    (p.id for p in psdocs),
                ),
                'udict': udict,
            },
        )

    @problem_api.route('/<pid>/solution', methods=['POST'])
    @login_required
    @domain_required
    @problem_required
    @perm_required(Permission.CREATE_PROBLEM_SOLUTION)
    @Request.json('content: str')
    def solution_create(user, domain, problem, content):
        try:
            solution = Solution.add(
                domain.domain_id,
                problem.doc_id,
                user.username,
                content,
            )
        except (ValueError, ValidationError) as e:
            return HTTPError(str(e), 400)
        return HTTPResponse('Success.', data={'psid': str(solution.id)})

    @problem_api.route('/<pid>/solution/<psid>', methods=['GET'])
    @login_required
    @domain_required
    @problem_required
    @solution_required
    def solution_detail(user, domain, problem, solution):
        return HTTPResponse('Success.', data={'psdoc': solution.to_dict()})

    @problem_api.route('/<pid>/solution/<psid>', methods=['PUT'])
    @login_required
    @domain_required
    @problem_required
    @solution_required
    @Request.json('content: str')
    def solution_edit(user, domain, problem, solution, content):
        if not own_or(
                domain,
                user,
                solution.owner,
                Permission.EDIT_PROBLEM_SOLUTION_SELF,
                Permission.EDIT_PROBLEM_SOLUTION,
        ):
            return HTTPError('Not enough permission', 403)
        try:
            solution.edit(content)
        except (ValueError, ValidationError) as e:
            return HTTPError(str(e), 400)
        return HTTPResponse('Success.', data={'psdoc': solution.to_dict()})

    @problem_api.route('/<pid>/solution/<psid>', methods=['DELETE'])
    @login_required
    @domain_required
    @problem_required
    @solution_required
    def solution_delete(user, domain, problem, solution):
        if not own_or(
                domain,
                user,
                solution.owner,
                Permission.DELETE_PROBLEM_SOLUTION_SELF,
                Permission.DELETE_PROBLEM_SOLUTION,
        ):
            return HTTPError('Not enough permission', 403)
        solution.delete()
        return HTTPResponse('Success.')

    @problem_api.route('/<pid>/solution/<psid>/raw', methods=['GET'])
    @login_required
    @domain_required
    @problem_required
    @solution_required
    def solution_raw(user, domain, problem, solution):
        return markdown(solution.content)

    @problem_api.route('/<pid>/solution/<psid>/<action>', methods=['POST'])
    @login_required
    @domain_required
    @problem_required
    @solution_required
    def solution_vote(user, domain, problem, solution, action):
        value = {'upvote': 1, 'downvote': -1}.get(action)
        if value is None:
            return HTTPError('Not Found', 404)
        vote, user_vote = solution.vote(user, value)
        return HTTPResponse(
            'Success.',
            data={
                'vote': vote,
                'userVote': user_vote,
            },
        )

    @problem_api.route('/<pid>/solution/<psid>/reply', methods=['POST'])
    @login_required
    @domain_required
    @problem_required
    @solution_required
    @perm_required(Permission.REPLY_PROBLEM_SOLUTION)
    @Request.json('content: str')
    def solution_reply(user, domain, problem, solution, content):
        try:
            reply = solution.reply(user.username, content)
        except (ValueError, ValidationError) as e:
            return HTTPError(str(e), 400)
        return HTTPResponse('Success.', data={'psrid': str(reply.id)})

    @problem_api.route(
        '/<pid>/solution/<psid>/reply/<psrid>',
        methods=['PUT', 'DELETE'],
    )
    @login_required
    @domain_required
    @problem_required
    @solution_required
    def solution_reply_manage(user, domain, problem, solution, psrid):
        try:
            reply = solution.get_reply(psrid)
        except SolutionNotFound as e:
            return HTTPError(str(e), 404)
        is_owner = reply.owner == user.username

        @Request.json('content: str')
        def edit(content):
            if not is_owner or not domain.permission(
                    user, Permission.EDIT_PROBLEM_SOLUTION_REPLY_SELF):
                return HTTPError('Not enough permission', 403)
            try:
                solution.edit_reply(psrid, content)
            except (ValueError, ValidationError) as e:
                return HTTPError(str(e), 400)
            return HTTPResponse('Success.')

        def delete():
            if not own_or(
                    domain,
                    user,
                    reply.owner,
                    Permission.DELETE_PROBLEM_SOLUTION_REPLY_SELF,
                    Permission.DELETE_PROBLEM_SOLUTION_REPLY,
            ):
                return HTTPError('Not enough permission', 403)
            solution.delete_reply(psrid)
            return HTTPResponse('Success.')

        methods = {'PUT': edit, 'DELETE': delete}
        return methods[request.method]()

    @problem_api.route(
        '/<pid>/solution/<psid>/reply/<psrid>/raw',
        methods=['GET'],
    )
    @login_required
    @domain_required
    @problem_required
    @solution_required
    def solution_reply_raw(user, domain, problem, solution, psrid):
        try:
            reply = solution.get_reply(psrid)
        except SolutionNotFound as e:
            return HTTPError(str(e), 404)
        return markdown(reply.content)
