import io
import re
import json
import random
import hashlib
import logging
from typing import Any, Dict, Iterable, List, Optional, Union
from zipfile import ZipFile, BadZipFile, is_zipfile, ZIP_DEFLATED

from .. import engine
from ..base import MongoBase
from ..user import User
from ..utils import camel_case, snake_case
from .exception import *

__all__ = (
    'Problem',
    'parse_pid',
    'parse_category',
    'is_title',
    'is_content',
    'is_pid',
)

PID_RE = re.compile(r'^[a-zA-Z]+[a-zA-Z0-9]*$')
# fields exported into problem.json
EXPORT_FIELDS = (
    'pid',
    'ac_msg',
    'content',
    'config',
    'title',
    'html',
    'tag',
    'category',
)


def parse_pid(value: Union[str, int]) -> Union[str, int]:
    '''
    numeric ids refer to the problem's docId, anything else is an alias
    '''
    if isinstance(value, int):
        return value
    value = str(value).strip()
    return int(value) if value.isdigit() else value


def parse_category(value: Optional[str]) -> List[str]:
    '''
    'a+b, c' -> ['a', 'b', 'c']
    '''
    if not value:
        return []
    names = (n.strip() for part in value.split('+') for n in part.split(','))
    return [n for n in names if n]


def is_title(s) -> bool:
    return isinstance(s, str) and 0 < len(s.strip()) <= 64


def is_content(s) -> bool:
    return isinstance(s, str) and 0 < len(s) <= 65536


def is_pid(s) -> bool:
    return isinstance(s, str) and PID_RE.match(s) is not None


class Problem(MongoBase, engine=engine.Problem):

    SETTING_DIFFICULTY_RANGE = {
        engine.Problem.DifficultySetting.ALGORITHM: 'Use algorithm calculated',
        engine.Problem.DifficultySetting.ADMIN: 'Use admin specified',
        engine.Problem.DifficultySetting.AVERAGE: 'Use average of both',
    }

    logger = logging.getLogger(__name__)

    def __str__(self):
        return f'problem [{self.domain_id}/{self.doc_id}]'

    @classmethod
    def get(cls, domain_id: str, pid: Union[str, int]) -> 'Problem':
        pid = parse_pid(pid)
        if isinstance(pid, int):
            obj = cls.engine.objects(domain_id=domain_id, doc_id=pid).first()
        else:
            obj = cls.engine.objects(domain_id=domain_id, pid=pid).first()
        if obj is None:
            raise ProblemNotFound(domain_id, pid)
        return cls(obj)

    @classmethod
    def _next_doc_id(cls, domain_id: str) -> int:
        counter = engine.Number.objects(name=f'{domain_id}.problem').modify(
            upsert=True,
            new=True,
            inc__number=1,
        )
        return counter.number

    @classmethod
    def _check_alias(cls, domain_id: str, pid: Optional[str], doc_id=None):
        if not pid:
            return
        if not is_pid(pid):
            raise ValueError(f'Invalid pid [{pid}]')
        dup = cls.engine.objects(domain_id=domain_id, pid=pid).first()
        if dup is not None and dup.doc_id != doc_id:
            raise engine.NotUniqueError(f'pid [{pid}] already exists')

    @classmethod
    def add(
        cls,
        domain_id: str,
        title: str,
        content: str,
        owner: str,
        pid: Optional[str] = None,
        tag: Iterable[str] = (),
        category: Iterable[str] = (),
        data_ref: Optional[Dict[str, Any]] = None,
        hidden: bool = False,
    ) -> 'Problem':
        if not is_title(title):
            raise ValueError('Invalid title')
        if not is_content(content):
            raise ValueError('Invalid content')
        cls._check_alias(domain_id, pid)
        problem = cls.engine(
            domain_id=domain_id,
            doc_id=cls._next_doc_id(domain_id),
            pid=pid or None,
            title=title.strip(),
            content=content,
            owner=owner,
            tag=list(tag),
            category=list(category),
            data_ref=data_ref,
            hidden=hidden,
        ).save()
        cls.logger.info(f'{owner} created problem [{domain_id}/{problem.doc_id}]')
        return cls(problem)

    @classmethod
    def get_multi(
        cls,
        domain_id: str,
        query: Optional[Dict[str, Any]] = None,
        categories: Iterable[str] = (),
    ):
        '''
        Args:
            query: mongoengine filter keywords
            categories: every name must appear in category or tag
        '''
        qs = cls.engine.objects(domain_id=domain_id, **(query or {}))
        for name in categories:
            qs = qs.filter(engine.Q(category=name) | engine.Q(tag=name))
        return qs.order_by('pid', 'doc_id')

    @classmethod
    def random(
        cls,
        domain_id: str,
        query: Optional[Dict[str, Any]] = None,
        categories: Iterable[str] = (),
    ) -> Optional[int]:
        doc_ids = [
            p.doc_id
            for p in cls.get_multi(domain_id, query, categories).only('doc_id')
        ]
        if not doc_ids:
            return None
        return random.choice(doc_ids)

    @classmethod
    def get_list_status(
        cls,
        domain_id: str,
        user: User,
        doc_ids: Iterable[int],
    ) -> Dict[int, Dict[str, Any]]:
        statuses = engine.ProblemStatus.objects(
            domain_id=domain_id,
            user=user.username,
            doc_id__in=list(doc_ids),
        )
        return {
            s.doc_id: {
                'star': s.star,
                'status': s.status,
                'rid': str(s.rid) if s.rid else None,
            }
            for s in statuses
        }

    def edit(self, **update) -> 'Problem':
        if 'title' in update:
            if not is_title(update['title']):
                raise ValueError('Invalid title')
            update['title'] = update['title'].strip()
        if 'content' in update and not is_content(update['content']):
            raise ValueError('Invalid content')
        if 'pid' in update:
            update['pid'] = update['pid'] or None
            self._check_alias(self.domain_id, update['pid'], self.doc_id)
        for k, v in update.items():
            setattr(self.obj, k, v)
        self.obj.save()
        return self.reload()

    def inc(self, field: str, n: int = 1):
        self.update(**{f'inc__{field}': n})

    def get_status(self, user: User) -> engine.ProblemStatus:
        doc = engine.ProblemStatus.objects(
            domain_id=self.domain_id,
            doc_id=self.doc_id,
            user=user.username,
        ).first()
        if doc is None:
            doc = engine.ProblemStatus(
                domain_id=self.domain_id,
                doc_id=self.doc_id,
                user=user.username,
            ).save()
        return doc

    def set_star(self, user: User, star: bool):
        self.get_status(user).update(star=star)

    def update_status(self, user: User, rid, status: int) -> bool:
        '''
        store the latest judged result of user

        Returns:
            whether this is the user's first accepted record
        '''
        accepted = engine.Record.Status.ACCEPTED
        psdoc = self.get_status(user)
        first_accept = status == accepted and psdoc.status != accepted
        # an accepted problem stays accepted
        if psdoc.status != accepted:
            psdoc.update(status=status, rid=rid)
        return first_accept

    # test data

    @property
    def has_data(self) -> bool:
        return bool(self.obj.data)

    def set_testdata(self, buffer: bytes):
        if not is_zipfile(io.BytesIO(buffer)):
            raise BadProblemArchive('Only accept zip file.')
        kwargs = {
            'content_type': 'application/zip',
            'filename': f'{self.domain_id}-{self.doc_id}.zip',
        }
        if self.obj.data:
            self.obj.data.replace(io.BytesIO(buffer), **kwargs)
        else:
            self.obj.data.put(io.BytesIO(buffer), **kwargs)
        self.obj.data_md5 = hashlib.md5(buffer).hexdigest()
        self.obj.data_ref = None
        self.obj.save()
        self.logger.info(f'update testdata of {self} [md5={self.data_md5}]')
        return self.reload()

    def get_testdata(self) -> bytes:
        if not self.obj.data:
            raise ProblemDataNotFound(self.doc_id)
        data = self.obj.data
        data.seek(0)
        return data.read()

    def copy_to(
        self,
        domain_id: str,
        owner: str,
        hidden: bool = False,
    ) -> 'Problem':
        if self.data_ref:
            # data should only be copied once
            raise ValueError('Cannot copy this problem.')
        data_ref = None
        if self.has_data:
            data_ref = {'domainId': self.domain_id, 'pid': self.doc_id}
        pid = self.pid
        if pid and Problem.engine.objects(domain_id=domain_id, pid=pid):
            pid = None
        return Problem.add(
            domain_id,
            self.title,
            self.content,
            owner,
            pid=pid,
            tag=self.tag,
            category=self.category,
            data_ref=data_ref,
            hidden=hidden,
        )

    # difficulty

    def algorithm_difficulty(self) -> Optional[int]:
        if not self.n_submit:
            return None
        ratio = self.n_accept / self.n_submit
        return max(1, min(9, round(9 - 8 * ratio)))

    def refresh_difficulty(self):
        setting = engine.Problem.DifficultySetting
        algo = self.algorithm_difficulty()
        admin = self.difficulty_admin
        if self.difficulty_setting == setting.ADMIN:
            difficulty = admin
        elif self.difficulty_setting == setting.AVERAGE and admin:
            difficulty = round((algo + admin) / 2) if algo else admin
        else:
            difficulty = algo
        self.update(difficulty=difficulty)
        return self.reload('difficulty')

    # statistics

    def get_record_status(self) -> Dict[int, int]:
        cursor = engine.Record.objects(
            domain_id=self.domain_id,
            pid=self.doc_id,
            pretest=False,
        ).aggregate([{
            '$group': {
                '_id': '$status',
                'count': {
                    '$sum': 1
                },
            }
        }])
        return {item['_id']: item['count'] for item in cursor}

    # import / export

    def export_archive(self, with_data: bool) -> io.BytesIO:
        pdoc = {
            camel_case(field): getattr(self.obj, field)
            for field in EXPORT_FIELDS
        }
        buf = io.BytesIO()
        with ZipFile(buf, 'w', ZIP_DEFLATED) as zf:
            if with_data and self.has_data:
                with ZipFile(io.BytesIO(self.get_testdata())) as data:
                    for info in data.infolist():
                        if info.filename == 'problem.json':
                            continue
                        zf.writestr(info, data.read(info.filename))
            zf.writestr('problem.json', json.dumps(pdoc, ensure_ascii=False))
        buf.seek(0)
        return buf

    @classmethod
    def import_archive(
        cls,
        domain_id: str,
        owner: str,
        buffer: bytes,
    ) -> 'Problem':
        try:
            with ZipFile(io.BytesIO(buffer)) as zf:
                raw = zf.read('problem.json')
        except BadZipFile:
            raise BadProblemArchive('Only accept zip file.')
        except KeyError:
            raise BadProblemArchive('problem.json not found')
        try:
            raw = json.loads(raw)
        except ValueError:
            raise BadProblemArchive('Invalid problem.json')
        if not isinstance(raw, dict):
            raise BadProblemArchive('Invalid problem.json')
        pdoc = {snake_case(k): v for k, v in raw.items()}
        for field in ('tag', 'category'):
            value = pdoc.get(field) or []
            if not isinstance(value, list) or not all(
                    isinstance(v, str) for v in value):
                raise BadProblemArchive(f'{field} should be a list of string')
        if not isinstance(pdoc.get('config') or {}, dict):
            raise BadProblemArchive('config should be a mapping')
        if not isinstance(pdoc.get('ac_msg') or '', str):
            raise BadProblemArchive('acMsg should be a string')
        if not is_title(pdoc.get('title')):
            raise BadProblemArchive('Invalid title')
        if not is_content(pdoc.get('content')):
            raise BadProblemArchive('Invalid content')
        pid = pdoc.get('pid')
        if not is_pid(pid) or cls.engine.objects(domain_id=domain_id, pid=pid):
            pid = None
        problem = cls.add(
            domain_id,
            pdoc.get('title'),
            pdoc.get('content') or '',
            owner,
            pid=pid,
            tag=pdoc.get('tag') or [],
            category=pdoc.get('category') or [],
        )
        problem.set_testdata(buffer)
        return problem.edit(
            html=bool(pdoc.get('html')),
            ac_msg=pdoc.get('ac_msg') or '',
            config=pdoc.get('config') or {},
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'docId': self.doc_id,
            'pid': self.pid,
            'domainId': self.domain_id,
            'title': self.title,
            'content': self.content,
            'owner': self.owner,
            'tag': self.tag,
            'category': self.category,
            'hidden': self.hidden,
            'html': self.html,
            'acMsg': self.ac_msg,
            'config': self.config,
            'hasData': self.has_data,
            'dataRef': self.data_ref,
            'difficulty': self.difficulty,
            'difficultySetting': int(self.difficulty_setting),
            'difficultyAdmin': self.difficulty_admin,
            'nSubmit': self.n_submit,
            'nAccept': self.n_accept,
        }
