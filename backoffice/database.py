"""Database configuration and initialization."""
from contextlib import contextmanager

from sqlalchemy import BigInteger, Integer, create_engine, text
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

# Create SQLAlchemy base
Base = declarative_base()

# SQLite only autoincrements INTEGER PRIMARY KEY columns
BigId = BigInteger().with_variant(Integer, 'sqlite')

# Global session and engine
engine = None
db_session = None


def _engine_options(app):
    """Pool options for the configured backend."""
    database_uri = app.config['SQLALCHEMY_DATABASE_URI']
    options = {'echo': app.config.get('SQLALCHEMY_ECHO', False)}

    if database_uri.startswith('sqlite'):
        options['connect_args'] = {'check_same_thread': False}
        if ':memory:' in database_uri or database_uri == 'sqlite://':
            # One shared connection, otherwise every checkout sees an empty DB
            options['poolclass'] = StaticPool
        return options

    options.update(
        pool_pre_ping=True,  # Enable connection health checks
        pool_size=10,
        max_overflow=20,
    )
    return options


def init_db(app):
    """Initialize database connection."""
    global engine, db_session

    engine = create_engine(app.config['SQLALCHEMY_DATABASE_URI'], **_engine_options(app))

    db_session = scoped_session(
        sessionmaker(autocommit=False, autoflush=False, bind=engine)
    )

    Base.query = db_session.query_property()

    # Register teardown
    @app.teardown_appcontext
    def shutdown_session(exception=None):
        """Close database session and rollback on error."""
        if exception:
            db_session.rollback()
        db_session.remove()


def create_all():
    """Create every table known to the models package."""
    from backoffice import models  # noqa: F401
    Base.metadata.create_all(bind=engine)


def drop_all():
    """Drop every table (tests and `flask reset-db` only)."""
    from backoffice import models  # noqa: F401
    Base.metadata.drop_all(bind=engine)


def get_session():
    """Get database session."""
    return db_session


def ping():
    """Run a trivial query; used by the health endpoint."""
    row = get_session().execute(text("SELECT 1 as health_check")).fetchone()
    return bool(row and row[0] == 1)


@contextmanager
def unit_of_work(session=None):
    """
    Scoped transaction handle for a read-check-write sequence.

    Everything done with the yielded session is committed when the block
    exits normally and rolled back when it raises. Services never call
    commit() themselves inside the block.
    """
    session = session or get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
