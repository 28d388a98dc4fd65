from . import exception
from . import problem

from .exception import *
from .problem import *

__all__ = [*exception.__all__, *problem.__all__]
