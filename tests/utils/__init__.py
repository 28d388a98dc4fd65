from mongoengine import connect, disconnect
import mongomock

from . import user
from . import domain
from . import problem
from . import record

DB = 'normal-oj'


def drop_db(host: str = 'mongodb://localhost'):
    disconnect(alias='default')
    conn = connect(
        DB,
        host=host,
        mongo_client_class=mongomock.MongoClient,
    )
    conn.drop_database(DB)
