from . import engine
from . import user
from . import domain
from . import problem
from . import record
from . import solution
from . import bus

from .engine import *
from .user import *
from .domain import *
from .problem import *
from .record import *
from .solution import *

__all__ = [
    *engine.__all__,
    *user.__all__,
    *domain.__all__,
    *problem.__all__,
    *record.__all__,
    *solution.__all__,
    'bus',
]
