'''
Live pretest channel.

A client connects to the `/conn/pretest` Socket.IO namespace with its
session cookie (and `?domainId=` for a non default domain), then sends
`subscribe {pid}`. From then on every change of its own records on that
problem is pushed as `message {rdoc}`, with judge output redacted.
'''
import logging
from typing import Any, Callable, Dict, Optional

from flask import request
from flask_socketio import Namespace, SocketIO, disconnect, emit

from config import DEFAULT_DOMAIN
from mongo import Domain, Problem, ProblemNotFound, User
from mongo import bus
from .auth import session_user

__all__ = (
    'socketio',
    'redact_record',
    'PretestConnection',
    'PretestConnectionNamespace',
)

socketio = SocketIO()
logger = logging.getLogger(__name__)


def redact_record(rdoc: Dict[str, Any]) -> Dict[str, Any]:
    '''
    return a copy without compiler and judge output, each
    test case keeps only its status
    '''
    return {
        **rdoc,
        'compilerTexts': [],
        'judgeTexts': [],
        'testCases': [{
            'status': case['status']
        } for case in rdoc.get('testCases') or []],
    }


class PretestConnection:
    '''
    Subscription of one client to the records of (domain, problem, user).
    '''

    def __init__(
        self,
        send: Callable[[Dict[str, Any]], None],
        uid: str,
        domain_id: str,
    ):
        self.send = send
        self.uid = uid
        self.domain_id = domain_id
        self.pid: Optional[int] = None
        self._disposable: Optional[bus.Disposable] = None

    @property
    def subscribed(self) -> bool:
        return self._disposable is not None

    def subscribe(self, pid: int):
        # one listener per connection
        self.dispose()
        self.pid = pid
        self._disposable = bus.on('record/change', self.on_record_change)

    def accepts(self, rdoc: Dict[str, Any]) -> bool:
        if rdoc.get('contest'):
            return False
        return (rdoc.get('uid') == self.uid and rdoc.get('pid') == self.pid
                and rdoc.get('domainId') == self.domain_id)

    def on_record_change(self, rdoc: Dict[str, Any], **ctx):
        if not self.accepts(rdoc):
            return
        try:
            self.send({'rdoc': redact_record(rdoc)})
        except Exception:
            # a broken transport ends the subscription
            logger.exception(f'failed to push record to {self.uid}')
            self.dispose()

    def dispose(self):
        if self._disposable is not None:
            self._disposable.dispose()
            self._disposable = None


class PretestConnectionNamespace(Namespace):

    def __init__(self, namespace='/conn/pretest'):
        super().__init__(namespace)
        self.connections: Dict[str, PretestConnection] = {}

    def _sender(self, sid: str):

        def send(data):
            self.emit('message', data, room=sid)

        return send

    def on_connect(self, auth=None):
        user, err = session_user(request.cookies.get('piann'))
        if user is None:
            raise ConnectionRefusedError(err)
        domain_id = request.args.get('domainId') or DEFAULT_DOMAIN
        self.connections[request.sid] = PretestConnection(
            self._sender(request.sid),
            user.username,
            domain_id,
        )
        logger.debug(f'{user.username} connected [sid={request.sid}]')

    def on_subscribe(self, data=None):
        conn = self.connections.get(request.sid)
        if conn is None:
            return
        pid = data.get('pid') if isinstance(data, dict) else None
        try:
            problem = Problem.get(conn.domain_id, pid)
        except ProblemNotFound as e:
            return self.reject(404, str(e))
        if problem.hidden:
            domain = Domain(conn.domain_id)
            user = User(conn.uid)
            if not domain or not domain.permission(
                    user, Domain.Permission.VIEW_PROBLEM_HIDDEN):
                return self.reject(403, 'Not enough permission')
        conn.subscribe(problem.doc_id)
        return {'status': 200, 'pid': problem.doc_id}

    def on_disconnect(self, reason=None):
        self.dispose(request.sid)

    def reject(self, status: int, message: str):
        emit('error', {'status': status, 'message': message})
        self.dispose(request.sid)
        disconnect()

    def dispose(self, sid: str):
        conn = self.connections.pop(sid, None)
        if conn is not None:
            conn.dispose()
            logger.debug(f'{conn.uid} disconnected [sid={sid}]')


socketio.on_namespace(PretestConnectionNamespace('/conn/pretest'))
