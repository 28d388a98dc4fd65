from mongoengine import *
from mongoengine import signals
import mongoengine
import os
from enum import IntEnum
from datetime import datetime
from bson import ObjectId

__all__ = [*mongoengine.__all__]

MONGO_HOST = os.environ.get('MONGO_HOST', 'mongomock://localhost')

# FIXME: we should use config to check whether is in testing
if MONGO_HOST.startswith('mongomock'):
    import mongomock
    import mongomock.gridfs
    # problem data is stored in GridFS
    mongomock.gridfs.enable_gridfs_integration()
    MONGO_HOST = MONGO_HOST.replace('mongomock', 'mongodb')
    connect(
        'normal-oj',
        host=MONGO_HOST,
        mongo_client_class=mongomock.MongoClient,
    )
else:
    connect('normal-oj', host=MONGO_HOST)


def handler(event):
    '''
    Signal decorator to allow use of callback functions as class decorators.
    reference: http://docs.mongoengine.org/guide/signals.html
    '''

    def decorator(fn):

        def apply(cls):
            event.connect(fn, sender=cls)
            return cls

        fn.apply = apply
        return fn

    return decorator


@handler(signals.pre_save)
def strip_labels(sender, document):
    # drop blank and duplicated tags / categories, keep the order
    for field in ('tag', 'category'):
        labels = [l.strip() for l in getattr(document, field) or []]
        setattr(document, field, [*dict.fromkeys(l for l in labels if l)])


class IntEnumField(IntField):

    def __init__(self, enum: IntEnum, **ks):
        super().__init__(**ks)
        self.enum = enum

    def validate(self, value):
        choices = (*self.enum.__members__.values(), )
        if value not in choices:
            self.error(f'Value must be one of {choices}')


class User(Document):

    class Role(IntEnum):
        ADMIN = 0
        JUDGE = 1  # judge daemon accounts
        USER = 2

    username = StringField(max_length=16, required=True, primary_key=True)
    user_id = StringField(db_field='userId', max_length=24, required=True)
    email = EmailField(required=True, unique=True, max_length=128)
    md5 = StringField(required=True, max_length=32)
    active = BooleanField(default=False)
    role = IntEnumField(default=Role.USER, enum=Role)
    password = StringField(required=True)
    last_login = DateTimeField(db_field='lastLogin', default=datetime.min)

    @property
    def info(self):
        return {
            'username': self.username,
            'md5': self.md5,
            'role': self.role,
        }


class Domain(Document):
    domain_id = StringField(
        db_field='domainId',
        max_length=64,
        primary_key=True,
    )
    name = StringField(max_length=64, required=True)
    owner = StringField(max_length=16, default='')
    # role name -> permission bits, override the builtin roles
    roles = DictField(default=dict)


class DomainUser(Document):
    meta = {
        'indexes': [{
            'fields': ['domain_id', 'user'],
            'unique': True,
        }],
    }

    domain_id = StringField(db_field='domainId', required=True)
    user = StringField(max_length=16, required=True)
    role = StringField(max_length=32, default='default')
    n_submit = IntField(db_field='nSubmit', default=0)
    n_accept = IntField(db_field='nAccept', default=0)


class Number(Document):
    name = StringField(
        max_length=64,
        primary_key=True,
    )
    number = IntField(default=1)


@strip_labels.apply
class Problem(Document):
    meta = {
        'indexes': [
            {
                'fields': ['domain_id', 'doc_id'],
                'unique': True,
            },
            ('domain_id', 'pid'),
        ],
    }

    class DifficultySetting(IntEnum):
        ALGORITHM = 0
        ADMIN = 1
        AVERAGE = 2

    domain_id = StringField(db_field='domainId', required=True)
    doc_id = IntField(db_field='docId', required=True)
    # optional human readable alias, e.g. 'A', 'P1001'
    pid = StringField(max_length=64, null=True, default=None)
    title = StringField(max_length=64, required=True)
    content = StringField(max_length=65536, default='')
    owner = StringField(max_length=16, required=True)
    tag = ListField(StringField(max_length=64), default=list)
    category = ListField(StringField(max_length=64), default=list)
    hidden = BooleanField(default=False)
    html = BooleanField(default=False)
    ac_msg = StringField(db_field='acMsg', default='')
    # zip file contains testdata
    data = FileField(collection_name='problem_data', null=True)
    data_md5 = StringField(db_field='dataMd5', max_length=32, null=True)
    # {'domainId': ..., 'pid': ...} when reusing another problem's data
    data_ref = DictField(db_field='dataRef', null=True, default=None)
    config = DictField(default=dict)
    difficulty_setting = IntEnumField(
        enum=DifficultySetting,
        db_field='difficultySetting',
        default=DifficultySetting.ALGORITHM,
    )
    difficulty_admin = IntField(
        db_field='difficultyAdmin',
        min_value=1,
        max_value=9,
        null=True,
    )
    difficulty = IntField(null=True)
    n_submit = IntField(db_field='nSubmit', default=0)
    n_accept = IntField(db_field='nAccept', default=0)


class ProblemStatus(Document):
    meta = {
        'indexes': [{
            'fields': ['domain_id', 'doc_id', 'user'],
            'unique': True,
        }],
    }

    domain_id = StringField(db_field='domainId', required=True)
    doc_id = IntField(db_field='docId', required=True)
    user = StringField(max_length=16, required=True)
    star = BooleanField(default=False)
    status = IntField(null=True)
    rid = ObjectIdField(null=True)


class CaseResult(EmbeddedDocument):
    status = IntField(required=True)
    score = IntField(default=0)
    time = IntField(default=0)  # in ms
    memory = IntField(default=0)  # in KB
    message = StringField(default='')


class Record(Document):

    class Status(IntEnum):
        WAITING = 0
        ACCEPTED = 1
        WRONG_ANSWER = 2
        TIME_LIMIT_EXCEEDED = 3
        MEMORY_LIMIT_EXCEEDED = 4
        OUTPUT_LIMIT_EXCEEDED = 5
        RUNTIME_ERROR = 6
        COMPILE_ERROR = 7
        SYSTEM_ERROR = 8
        CANCELED = 9
        ETC = 10
        JUDGING = 20
        COMPILING = 21
        FETCHED = 22
        IGNORED = 30

    meta = {
        'indexes': [
            ('domain_id', 'pid', 'uid'),
            ('domain_id', 'pid'),
        ],
    }

    domain_id = StringField(db_field='domainId', required=True)
    pid = IntField(required=True)
    uid = StringField(max_length=16, required=True)
    lang = StringField(max_length=16, required=True)
    code = StringField(max_length=65536, default='')
    status = IntEnumField(enum=Status, default=Status.WAITING)
    score = IntField(default=0)
    time = IntField(default=0)  # in ms
    memory = IntField(default=0)  # in KB
    compiler_texts = ListField(
        StringField(),
        db_field='compilerTexts',
        default=list,
    )
    judge_texts = ListField(StringField(), db_field='judgeTexts', default=list)
    test_cases = EmbeddedDocumentListField(
        CaseResult,
        db_field='testCases',
        default=list,
    )
    contest = StringField(max_length=64, null=True, default=None)
    # ephemeral trial run against user supplied input
    pretest = BooleanField(default=False)
    input = StringField(max_length=65536, null=True)
    time_limit = IntField(db_field='timeLimit', null=True)  # in ms
    memory_limit = IntField(db_field='memoryLimit', null=True)  # in MB
    submit_at = DateTimeField(db_field='submitAt', default=datetime.now)
    judge_at = DateTimeField(db_field='judgeAt', null=True)
    judger = StringField(max_length=16, null=True)
    rejudged = BooleanField(default=False)


class JudgeTask(Document):
    rid = ObjectIdField(required=True)
    domain_id = StringField(db_field='domainId', required=True)
    priority = IntField(default=0)
    created = DateTimeField(default=datetime.now)


class SolutionReply(EmbeddedDocument):
    id = ObjectIdField(db_field='_id', default=ObjectId)
    owner = StringField(max_length=16, required=True)
    content = StringField(max_length=65536, required=True)
    created = DateTimeField(default=datetime.now)


class Solution(Document):
    domain_id = StringField(db_field='domainId', required=True)
    pid = IntField(required=True)
    owner = StringField(max_length=16, required=True)
    content = StringField(max_length=65536, required=True)
    vote = IntField(default=0)
    reply = EmbeddedDocumentListField(SolutionReply, default=list)
    created = DateTimeField(default=datetime.now)


class SolutionStatus(Document):
    meta = {
        'indexes': [{
            'fields': ['domain_id', 'psid', 'user'],
            'unique': True,
        }],
    }

    domain_id = StringField(db_field='domainId', required=True)
    psid = ObjectIdField(required=True)
    user = StringField(max_length=16, required=True)
    vote = IntField(default=0, choices=[-1, 0, 1])
