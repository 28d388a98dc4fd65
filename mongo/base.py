from typing import Type
from . import engine

__all__ = ['MongoBase']


class MongoBase:
    '''
    Thin wrapper around a mongoengine document.

    Subclasses bind their document class with
    `class Foo(MongoBase, engine=engine.Foo)`. Attribute access falls
    through to the wrapped document, so `Foo(pk).some_field` works, and a
    wrapper whose document does not exist is falsy.
    '''
    engine: 'Type[engine.Document]' = None

    def __init_subclass__(cls, engine=None, **ks):
        super().__init_subclass__(**ks)
        if engine is not None:
            cls.engine = engine

    def __new__(cls, pk, *args, **kwargs):
        new = super().__new__(cls)
        if isinstance(pk, MongoBase):
            pk = pk.obj
        if isinstance(pk, cls.engine):
            obj = pk
        else:
            # raises ValidationError on malformed key (e.g. bad ObjectId)
            obj = cls.engine.objects(pk=pk).first()
        object.__setattr__(new, 'obj', obj)
        return new

    def __getattr__(self, name):
        obj = object.__getattribute__(self, 'obj')
        if obj is None:
            raise AttributeError(
                f'{type(self).__name__} does not exist, '
                f'can not get {name!r}', )
        return getattr(obj, name)

    def __setattr__(self, name, value):
        if name == 'obj':
            object.__setattr__(self, name, value)
        else:
            setattr(self.obj, name, value)

    def __bool__(self):
        return self.obj is not None

    def __eq__(self, other):
        if isinstance(other, MongoBase):
            return self.obj == other.obj
        return NotImplemented

    def __hash__(self):
        return hash((type(self), self.obj.pk if self.obj else None))

    def __repr__(self):
        return f'{type(self).__name__}({self.obj.pk if self else None!r})'

    @property
    def id(self):
        return self.obj.pk

    def reload(self, *fields):
        self.obj.reload(*fields)
        return self

    def to_mongo(self):
        return self.obj.to_mongo()
