from . import auth
from . import problem
from . import record
from . import connection

from .auth import *
from .problem import *
from .record import *
from .connection import *

__all__ = [
    *auth.__all__,
    *problem.__all__,
    *record.__all__,
    *connection.__all__,
]
