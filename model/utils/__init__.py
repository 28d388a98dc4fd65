from . import request
from . import response
from . import rate_limit
from . import domain

from .request import *
from .response import *
from .rate_limit import *
from .domain import *

__all__ = [
    *request.__all__,
    *response.__all__,
    *rate_limit.__all__,
    *domain.__all__,
]
