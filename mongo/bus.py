'''
In-process publish/subscribe keyed by topic name.

Listeners run synchronously inside the publishing call; a single listener
sees events in publish order, nothing is promised about the order between
listeners. `on` returns a `Disposable`; whoever registers a listener
owns the handle and must dispose it when done.

Topics:
    record/change    payload: record dict (see `Record.to_dict`)
    problem/list     payload: mutable filter dict, ctx: user, domain
    problem/get      payload: `Problem`, ctx: user
    problem/setting  payload: mutable update dict, ctx: user, problem
'''
import logging
from typing import Any, Callable

from blinker import Namespace

__all__ = (
    'Disposable',
    'on',
    'broadcast',
    'serial',
    'listener_count',
)

TOPICS = (
    'record/change',
    'problem/list',
    'problem/get',
    'problem/setting',
)

logger = logging.getLogger(__name__)
_signals = Namespace()


def _topic(name: str):
    if name not in TOPICS:
        raise ValueError(f'unknown topic {name!r}')
    return _signals.signal(name)


class Disposable:

    def __init__(self, topic: str, receiver: Callable):
        self.topic = topic
        self._receiver = receiver

    @property
    def disposed(self) -> bool:
        return self._receiver is None

    def __call__(self):
        if self._receiver is None:
            return
        _topic(self.topic).disconnect(self._receiver)
        self._receiver = None

    dispose = __call__


def on(topic: str, fn: Callable[..., Any]) -> Disposable:
    '''
    register `fn(payload, **ctx)` on `topic`
    '''

    # wrap it so that the same function can be registered more than once
    # and each registration has its own handle
    def receiver(sender, payload=None, **ctx):
        return fn(payload, **ctx)

    _topic(topic).connect(receiver, weak=False)
    return Disposable(topic, receiver)


def broadcast(topic: str, payload: Any):
    '''
    notify every listener of `topic`, a failing listener is logged and
    does not keep the event from the others
    '''
    signal = _topic(topic)
    receivers = list(signal.receivers_for(topic))
    logger.debug(f'broadcast {topic} to {len(receivers)} listener(s)')
    for receiver in receivers:
        try:
            receiver(topic, payload=payload)
        except Exception:
            logger.exception(f'listener of {topic} failed')


def serial(topic: str, payload: Any, **ctx):
    '''
    call each listener in turn with the same mutable payload, listeners
    may narrow or rewrite it before the caller uses it
    '''
    _topic(topic).send(topic, payload=payload, **ctx)
    return payload


def listener_count(topic: str) -> int:
    return len(_topic(topic).receivers)
