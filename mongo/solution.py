import logging
from typing import Dict, Iterable, Tuple

from bson import ObjectId

from . import engine
from .base import MongoBase
from .user import User

__all__ = ['Solution', 'SolutionNotFound']


class SolutionNotFound(engine.DoesNotExist):

    def __init__(self, psid):
        super().__init__(psid)
        self.psid = psid

    def __str__(self):
        return f'Solution [{self.psid}] not found'


def _object_id(value) -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    if not ObjectId.is_valid(value):
        raise SolutionNotFound(value)
    return ObjectId(value)


class Solution(MongoBase, engine=engine.Solution):
    logger = logging.getLogger(__name__)

    @classmethod
    def add(
        cls,
        domain_id: str,
        pid: int,
        owner: str,
        content: str,
    ) -> 'Solution':
        if not content:
            raise ValueError('Empty content')
        return cls(
            cls.engine(
                domain_id=domain_id,
                pid=pid,
                owner=owner,
                content=content,
            ).save())

    @classmethod
    def get(cls, domain_id: str, psid, pid: int = None) -> 'Solution':
        '''
        get a solution of the domain, and of the problem if `pid` given
        '''
        psid = _object_id(psid)
        solution = cls(psid)
        if not solution or solution.domain_id != domain_id:
            raise SolutionNotFound(psid)
        if pid is not None and solution.pid != pid:
            raise SolutionNotFound(psid)
        return solution

    @classmethod
    def get_multi(cls, domain_id: str, pid: int):
        return cls.engine.objects(
            domain_id=domain_id,
            pid=pid,
        ).order_by('-vote', '-created')

    @classmethod
    def get_list_status(
        cls,
        domain_id: str,
        user: User,
        psids: Iterable[ObjectId],
    ) -> Dict[str, int]:
        statuses = engine.SolutionStatus.objects(
            domain_id=domain_id,
            user=user.username,
            psid__in=list(psids),
        )
        return {str(s.psid): s.vote for s in statuses}

    def edit(self, content: str):
        if not content:
            raise ValueError('Empty content')
        self.update(content=content)
        return self.reload('content')

    def delete(self):
        engine.SolutionStatus.objects(psid=self.id).delete()
        self.obj.delete()
        self.logger.info(f'delete solution [{self.id}]')

    # replies

    def reply(self, owner: str, content: str) -> engine.SolutionReply:
        if not content:
            raise ValueError('Empty content')
        reply = engine.SolutionReply(owner=owner, content=content)
        self.update(push__reply=reply)
        self.reload('reply')
        return reply

    def get_reply(self, psrid) -> engine.SolutionReply:
        psrid = _object_id(psrid)
        for reply in self.obj.reply:
            if reply.id == psrid:
                return reply
        raise SolutionNotFound(psrid)

    def edit_reply(self, psrid, content: str) -> engine.SolutionReply:
        if not content:
            raise ValueError('Empty content')
        reply = self.get_reply(psrid)
        reply.content = content
        self.obj.save()
        return reply

    def delete_reply(self, psrid):
        reply = self.get_reply(psrid)
        self.obj.reply = [r for r in self.obj.reply if r.id != reply.id]
        self.obj.save()

    # votes

    def get_status(self, user: User) -> engine.SolutionStatus:
        doc = engine.SolutionStatus.objects(
            domain_id=self.domain_id,
            psid=self.id,
            user=user.username,
        ).first()
        if doc is None:
            doc = engine.SolutionStatus(
                domain_id=self.domain_id,
                psid=self.id,
                user=user.username,
            ).save()
        return doc

    def vote(self, user: User, value: int) -> Tuple[int, int]:
        '''
        replace the previous vote of user

        Returns:
            (total vote, vote of user)
        '''
        if value not in (-1, 1):
            raise ValueError('Vote must be 1 or -1')
        status = self.get_status(user)
        delta = value - status.vote
        if delta:
            status.update(vote=value)
            self.update(inc__vote=delta)
            self.reload('vote')
        return self.obj.vote, value

    def to_dict(self) -> Dict:
        return {
            '_id': str(self.id),
            'pid': self.pid,
            'owner': self.owner,
            'content': self.content,
            'vote': self.obj.vote,
            'reply': [{
                '_id': str(r.id),
                'owner': r.owner,
                'content': r.content,
                'created': r.created.timestamp(),
            } for r in self.obj.reply],
            'created': self.created.timestamp(),
        }
