from functools import wraps
from mongo import Domain, Problem, ProblemNotFound, User
from config import DEFAULT_DOMAIN
from .response import HTTPError

__all__ = (
    'domain_required',
    'problem_required',
    'perm_required',
    'can_view_problem',
    'can_manage_problem',
    'problem_url',
)

Permission = Domain.Permission


def problem_url(domain_id: str, doc_id=None, *suffix) -> str:
    '''
    problem_url('system', 1, 'settings') -> '/p/1/settings'
    problem_url('foo', 1) -> '/d/foo/p/1'
    '''
    base = '/p' if domain_id == DEFAULT_DOMAIN else f'/d/{domain_id}/p'
    parts = [str(p) for p in (doc_id, *suffix) if p is not None]
    return '/'.join([base, *parts])


def can_view_problem(domain: Domain, user: User, problem: Problem) -> bool:
    if not domain.permission(user, Permission.VIEW_PROBLEM):
        return False
    if problem.hidden and problem.owner != user.username:
        return domain.permission(user, Permission.VIEW_PROBLEM_HIDDEN)
    return True


def can_manage_problem(domain: Domain, user: User, problem: Problem) -> bool:
    if problem.owner == user.username and domain.permission(
            user, Permission.EDIT_PROBLEM_SELF):
        return True
    return domain.permission(user, Permission.EDIT_PROBLEM)


def domain_required(func):
    '''
    replace the `domain_id` url parameter with the `Domain`
    '''

    @wraps(func)
    def wrapper(*args, domain_id, **kwargs):
        domain = Domain(domain_id)
        if not domain:
            return HTTPError(f'Domain [{domain_id}] not found', 404)
        kwargs['domain'] = domain
        return func(*args, **kwargs)

    return wrapper


def problem_required(func):
    '''
    replace the `pid` url parameter with a problem the user can view,
    must be placed under `login_required` and `domain_required`
    '''

    @wraps(func)
    def wrapper(*args, user, domain, pid, **kwargs):
        try:
            problem = Problem.get(domain.domain_id, pid)
        except ProblemNotFound as e:
            return HTTPError(str(e), 404)
        if not can_view_problem(domain, user, problem):
            return HTTPError('Not enough permission', 403)
        return func(
            *args,
            user=user,
            domain=domain,
            problem=problem,
            **kwargs,
        )

    return wrapper


def perm_required(*perms: Permission):

    def deco(func):

        @wraps(func)
        def wrapper(*args, **kwargs):
            user, domain = kwargs['user'], kwargs['domain']
            for perm in perms:
                if not domain.permission(user, perm):
                    return HTTPError(f'Permission {perm.name} required', 403)
            return func(*args, **kwargs)

        return wrapper

    return deco
