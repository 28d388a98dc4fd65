import enum
from typing import Callable, Dict

from . import engine
from .base import MongoBase
from .user import User

__all__ = ['Domain', 'Capability']

# authorization predicate handed to domain operations
Capability = Callable[['Domain.Permission'], bool]


class Domain(MongoBase, engine=engine.Domain):

    class Permission(enum.IntFlag):
        VIEW_PROBLEM = 1 << 0
        VIEW_PROBLEM_HIDDEN = 1 << 1
        SUBMIT_PROBLEM = 1 << 2
        CREATE_PROBLEM = 1 << 3
        EDIT_PROBLEM = 1 << 4
        EDIT_PROBLEM_SELF = 1 << 5
        READ_PROBLEM_DATA = 1 << 6
        READ_PROBLEM_DATA_SELF = 1 << 7
        REJUDGE_PROBLEM = 1 << 8
        READ_RECORD_CODE = 1 << 9
        VIEW_PROBLEM_SOLUTION = 1 << 10
        CREATE_PROBLEM_SOLUTION = 1 << 11
        EDIT_PROBLEM_SOLUTION = 1 << 12
        EDIT_PROBLEM_SOLUTION_SELF = 1 << 13
        DELETE_PROBLEM_SOLUTION = 1 << 14
        DELETE_PROBLEM_SOLUTION_SELF = 1 << 15
        REPLY_PROBLEM_SOLUTION = 1 << 16
        EDIT_PROBLEM_SOLUTION_REPLY_SELF = 1 << 17
        DELETE_PROBLEM_SOLUTION_REPLY = 1 << 18
        DELETE_PROBLEM_SOLUTION_REPLY_SELF = 1 << 19
        # composites
        NONE = 0
        GUEST = VIEW_PROBLEM | VIEW_PROBLEM_SOLUTION
        DEFAULT = (GUEST | SUBMIT_PROBLEM | EDIT_PROBLEM_SELF
                   | READ_PROBLEM_DATA_SELF | CREATE_PROBLEM_SOLUTION
                   | EDIT_PROBLEM_SOLUTION_SELF | DELETE_PROBLEM_SOLUTION_SELF
                   | REPLY_PROBLEM_SOLUTION | EDIT_PROBLEM_SOLUTION_REPLY_SELF
                   | DELETE_PROBLEM_SOLUTION_REPLY_SELF)
        ALL = (DEFAULT | VIEW_PROBLEM_HIDDEN | CREATE_PROBLEM | EDIT_PROBLEM
               | READ_PROBLEM_DATA | REJUDGE_PROBLEM | READ_RECORD_CODE
               | EDIT_PROBLEM_SOLUTION | DELETE_PROBLEM_SOLUTION
               | DELETE_PROBLEM_SOLUTION_REPLY)

    BUILTIN_ROLES: Dict[str, Permission] = {
        'guest': Permission.GUEST,
        'default': Permission.DEFAULT,
        'admin': Permission.ALL,
        'root': Permission.ALL,
    }

    @classmethod
    def add(cls, domain_id: str, name: str, owner: str = '') -> 'Domain':
        if cls(domain_id):
            raise engine.NotUniqueError(f'Domain [{domain_id}] already exists')
        return cls(
            cls.engine(
                domain_id=domain_id,
                name=name,
                owner=owner,
            ).save(force_insert=True))

    @classmethod
    def ensure(cls, domain_id: str) -> 'Domain':
        domain = cls(domain_id)
        if not domain:
            domain = cls.add(domain_id, domain_id)
        return domain

    @property
    def domain_id(self) -> str:
        return self.obj.domain_id

    def role_permission(self, role: str) -> Permission:
        if role in self.roles:
            return self.Permission(self.roles[role])
        return self.BUILTIN_ROLES.get(role, self.Permission.NONE)

    def set_role_permission(self, role: str, perm: Permission):
        self.update(**{f'set__roles__{role}': int(perm)})
        self.reload('roles')

    def get_user(self, user: User) -> engine.DomainUser:
        '''
        get the membership document of user, create it with
        the default role on first visit
        '''
        doc = engine.DomainUser.objects(
            domain_id=self.domain_id,
            user=user.username,
        ).first()
        if doc is None:
            doc = engine.DomainUser(
                domain_id=self.domain_id,
                user=user.username,
            ).save()
        return doc

    def set_user_role(self, user: User, role: str):
        self.get_user(user).update(role=role)

    def inc_user(self, user: User, field: str, n: int = 1):
        self.get_user(user).update(**{f'inc__{field}': n})

    def own_permission(self, user: User) -> Permission:
        if user.is_admin:
            return self.Permission.ALL
        return self.role_permission(self.get_user(user).role)

    def permission(self, user: User, req: Permission) -> bool:
        return (self.own_permission(user) & req) == req

    def capability(self, user: User) -> Capability:
        '''
        build the authorization predicate for `user` inside this domain
        '''
        perm = self.own_permission(user)
        return lambda req: (perm & req) == req
