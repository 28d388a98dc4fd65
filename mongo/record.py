import logging
from datetime import datetime
from typing import Any, Dict, Optional

import requests as rq

from config import (
    JUDGE_URL,
    PRETEST_MEMORY_LIMIT,
    PRETEST_TIME_LIMIT,
    SUPPORTED_LANGUAGES,
)
from . import engine, bus
from .base import MongoBase
from .domain import Domain, Capability
from .problem import Problem
from .user import User
from .utils import parse_memory_mb, parse_time_ms

__all__ = ['Record', 'RecordNotFound']


class RecordNotFound(engine.DoesNotExist):

    def __init__(self, rid):
        super().__init__(rid)
        self.rid = rid

    def __str__(self):
        return f'Record [{self.rid}] not found'


class Record(MongoBase, engine=engine.Record):
    Status = engine.Record.Status
    logger = logging.getLogger(__name__)

    def __str__(self):
        return f'record [{self.id}]'

    @classmethod
    def get(cls, rid) -> 'Record':
        try:
            record = cls(rid)
        except engine.ValidationError:
            raise RecordNotFound(rid)
        if not record:
            raise RecordNotFound(rid)
        return record

    @classmethod
    def add(
        cls,
        domain_id: str,
        pid: int,
        uid: str,
        lang: str,
        code: str,
        *,
        pretest: bool = False,
        input: Optional[str] = None,
        contest: Optional[str] = None,
        time_limit: Optional[int] = None,
        memory_limit: Optional[int] = None,
    ) -> 'Record':
        '''
        insert a waiting record and queue it for the judge
        '''
        if lang not in SUPPORTED_LANGUAGES:
            raise ValueError(f'Unsupported language [{lang}]')
        record = cls(
            cls.engine(
                domain_id=domain_id,
                pid=pid,
                uid=uid,
                lang=lang,
                code=code,
                pretest=pretest,
                input=input,
                contest=contest,
                time_limit=time_limit,
                memory_limit=memory_limit,
            ).save())
        record.judge()
        return record

    @classmethod
    def submit(
        cls,
        domain: Domain,
        problem: Problem,
        user: User,
        lang: str,
        code: str,
        can: Capability,
    ) -> 'Record':
        # record first, then counters, publish last. nothing is rolled back
        # if a later step fails
        if not can(Domain.Permission.SUBMIT_PROBLEM):
            raise PermissionError('You are not allowed to submit.')
        record = cls.add(
            domain.domain_id,
            problem.doc_id,
            user.username,
            lang,
            code,
        )
        problem.inc('n_submit')
        domain.inc_user(user, 'n_submit')
        cls.logger.info(f'{user.username} submitted {record} to {problem}')
        record.publish()
        return record

    @classmethod
    def pretest(
        cls,
        domain: Domain,
        problem: Problem,
        user: User,
        lang: str,
        code: str,
        input: Optional[str],
        can: Capability,
    ) -> 'Record':
        if not can(Domain.Permission.SUBMIT_PROBLEM):
            raise PermissionError('You are not allowed to submit.')
        record = cls.add(
            domain.domain_id,
            problem.doc_id,
            user.username,
            lang,
            code,
            pretest=True,
            input=input or '',
            time_limit=parse_time_ms(PRETEST_TIME_LIMIT),
            memory_limit=parse_memory_mb(PRETEST_MEMORY_LIMIT),
        )
        cls.logger.info(f'{user.username} pretested {record} on {problem}')
        record.publish()
        return record

    @classmethod
    def get_user_in_problem(
        cls,
        domain_id: str,
        pid: int,
        uid: str,
        limit: int = 10,
    ):
        return cls.engine.objects(
            domain_id=domain_id,
            pid=pid,
            uid=uid,
        ).order_by('-submit_at').limit(limit)

    @classmethod
    def rejudge_problem(cls, problem: Problem) -> int:
        records = cls.engine.objects(
            domain_id=problem.domain_id,
            pid=problem.doc_id,
            pretest=False,
        )
        count = 0
        for rdoc in records:
            cls(rdoc).reset()
            count += 1
        cls.logger.info(f'rejudge {count} record(s) of {problem}')
        return count

    @classmethod
    def fetch_task(cls, judger: str) -> Optional['Record']:
        '''
        pop the oldest task with the highest priority
        '''
        while True:
            task = engine.JudgeTask.objects.order_by(
                '-priority',
                'created',
            ).first()
            if task is None:
                return None
            # another judge may take the task at the same time
            if not engine.JudgeTask.objects(id=task.id).delete():
                continue
            record = cls(task.rid)
            if not record:
                cls.logger.warning(f'drop stale task of record {task.rid}')
                continue
            record.update(
                status=cls.Status.FETCHED,
                judger=judger,
            )
            record.reload()
            record.publish()
            return record

    def judge(self, priority: int = 0):
        engine.JudgeTask(
            rid=self.id,
            domain_id=self.domain_id,
            priority=priority,
        ).save()
        if not JUDGE_URL:
            return
        try:
            resp = rq.post(
                JUDGE_URL,
                json={'rid': str(self.id)},
                timeout=1,
            )
            if not resp.ok:
                self.logger.warning(
                    f'judge notification failed [status={resp.status_code}]')
        except rq.exceptions.RequestException as e:
            self.logger.warning(f'judge is unreachable: {e}')

    def reset(self):
        self.update(
            status=self.Status.WAITING,
            score=0,
            time=0,
            memory=0,
            compiler_texts=[],
            judge_texts=[],
            test_cases=[],
            judge_at=None,
            judger=None,
            rejudged=True,
        )
        self.reload()
        self.judge(priority=-1)
        self.publish()

    def next(
        self,
        status: Optional[int] = None,
        score: Optional[int] = None,
        time: Optional[int] = None,
        memory: Optional[int] = None,
        case: Optional[Dict[str, Any]] = None,
        compiler_text: Optional[str] = None,
        judge_text: Optional[str] = None,
    ):
        '''
        apply a progress report of the judge
        '''
        update = {}
        if status is not None:
            update['status'] = self.Status(status)
        if score is not None:
            update['score'] = score
        if time is not None:
            update['time'] = time
        if memory is not None:
            update['memory'] = memory
        if case is not None:
            update['push__test_cases'] = engine.CaseResult(
                status=self.Status(case['status']),
                score=case.get('score', 0),
                time=case.get('time', 0),
                memory=case.get('memory', 0),
                message=case.get('message', ''),
            )
        if compiler_text:
            update['push__compiler_texts'] = compiler_text
        if judge_text:
            update['push__judge_texts'] = judge_text
        if update:
            self.update(**update)
        self.reload()
        self.publish()
        return self

    def end(
        self,
        status: int,
        score: int = 0,
        time: int = 0,
        memory: int = 0,
    ):
        status = self.Status(status)
        self.update(
            status=status,
            score=score,
            time=time,
            memory=memory,
            judge_at=datetime.now(),
        )
        self.reload()
        self.logger.info(f'{self} finished with {status.name}')
        if not self.obj.pretest and self.contest is None:
            self._update_statistic(status)
        self.publish()
        return self

    def _update_statistic(self, status):
        try:
            problem = Problem.get(self.domain_id, self.pid)
        except engine.DoesNotExist:
            self.logger.warning(f'problem of {self} has been removed')
            return
        user = User(self.uid)
        if problem.update_status(user, self.id, status):
            problem.inc('n_accept')
            Domain(self.domain_id).inc_user(user, 'n_accept')

    def publish(self):
        bus.broadcast('record/change', self.to_dict())

    def to_dict(self, with_code: bool = True) -> Dict[str, Any]:
        ret = {
            '_id': str(self.id),
            'domainId': self.domain_id,
            'pid': self.pid,
            'uid': self.uid,
            'lang': self.lang,
            'status': int(self.status),
            'score': self.score,
            'time': self.time,
            'memory': self.memory,
            'compilerTexts': list(self.compiler_texts),
            'judgeTexts': list(self.judge_texts),
            'testCases': [{
                'status': c.status,
                'score': c.score,
                'time': c.time,
                'memory': c.memory,
                'message': c.message,
            } for c in self.test_cases],
            'contest': self.contest,
            'pretest': self.obj.pretest,
            'submitAt': self.submit_at.timestamp(),
            'judgeAt': self.judge_at.timestamp() if self.judge_at else None,
            'rejudged': self.rejudged,
        }
        if self.obj.pretest:
            ret.update(
                input=self.input,
                timeLimit=self.time_limit,
                memoryLimit=self.memory_limit,
            )
        if with_code:
            ret['code'] = self.code
        return ret
