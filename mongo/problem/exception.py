from .. import engine

__all__ = [
    'ProblemNotFound',
    'NoProblem',
    'ProblemDataNotFound',
    'BadProblemArchive',
]


class ProblemNotFound(engine.DoesNotExist):

    def __init__(self, domain_id, pid):
        super().__init__(domain_id, pid)
        self.domain_id = domain_id
        self.pid = pid

    def __str__(self):
        return f'Problem [{self.domain_id}/{self.pid}] not found'


class NoProblem(engine.DoesNotExist):
    '''
    no problem matches the given filter
    '''

    def __str__(self):
        return 'No problem'


class ProblemDataNotFound(engine.DoesNotExist):

    def __init__(self, pid):
        super().__init__(pid)
        self.pid = pid

    def __str__(self):
        return f'Data of problem [{self.pid}] not found'


class BadProblemArchive(ValueError):
    '''
    uploaded test data or import archive can not be used
    '''
