import re
import hashlib
from datetime import datetime
from typing import Optional

from config import JWT_EXP, JWT_ISS, JWT_SECRET
from . import engine
from .base import MongoBase
from .utils import hash_id, jwt_encode, jwt_decode, random_string

__all__ = ['User', 'Role', 'decode_session']

Role = engine.User.Role
USERNAME_RE = re.compile(r'^[\w\-]+$')


def decode_session(token: Optional[str]):
    if not token:
        return None
    return jwt_decode(JWT_SECRET, JWT_ISS, token)


class User(MongoBase, engine=engine.User):

    @classmethod
    def signup(cls, username: str, password: str, email: str) -> 'User':
        if USERNAME_RE.match(username) is None:
            raise ValueError(f'Invalid username [{username}]')
        email = email.lower().strip()
        user = cls.engine(
            username=username,
            user_id=hash_id(username, random_string(16)),
            email=email,
            md5=hashlib.md5(email.encode()).hexdigest(),
            password=hash_id(username, password),
        )
        user.save(force_insert=True)
        return cls(user).reload()

    @classmethod
    def login(cls, username: str, password: str) -> 'User':
        try:
            user = cls.get_by_username(username)
        except engine.DoesNotExist:
            user = cls.get_by_email(username)
        if user.password != hash_id(user.username, password):
            raise engine.DoesNotExist('Wrong Password')
        user.update(last_login=datetime.now())
        return user

    @classmethod
    def get_by_username(cls, username: str) -> 'User':
        obj = cls.engine.objects.get(username=username)
        return cls(obj)

    @classmethod
    def get_by_email(cls, email: str) -> 'User':
        obj = cls.engine.objects.get(email=email.lower())
        return cls(obj)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def has_judge_privilege(self) -> bool:
        return self.role in (Role.ADMIN, Role.JUDGE)

    @property
    def cookie(self) -> str:
        return jwt_encode(
            JWT_SECRET,
            JWT_ISS,
            JWT_EXP,
            userId=self.user_id,
            **self.info,
        )

    @property
    def secret(self) -> str:
        return jwt_encode(
            JWT_SECRET,
            JWT_ISS,
            JWT_EXP,
            secret=True,
            username=self.username,
            userId=self.user_id,
        )
