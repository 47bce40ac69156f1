"""Pytest fixtures configuring an isolated transactional database layer.

Each test runs inside a SAVEPOINT-backed transaction against an in-memory
SQLite database, with a fakeredis client standing in for Redis, so neither
rows nor cache keys leak between cases.
"""

from __future__ import annotations

import os

import fakeredis
import pytest
from sqlalchemy import event
from sqlalchemy.orm import scoped_session, sessionmaker

from tests.helpers.tokens import ACCESS_SECRET, HASH_SECRET, REFRESH_SECRET
from tokenauth.core.extensions import db as _db  # Flask-SQLAlchemy instance
from tokenauth.factory import create_app  # application factory under test
from tokenauth.models.role import RoleType


class TestConfig:
    """Testing configuration for creating the Flask app.

    Notes
    -----
    - Uses an in-memory SQLite database for speed.
    - Redis is replaced by a fakeredis client handed to the factory.
    - Token lifetimes sit at the enforced minimums.
    """

    TESTING = True
    DEBUG = False
    SECRET_KEY = "test-secret-key"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    REDIS_URL = None
    JWT_ACCESS_SECRET_KEY = ACCESS_SECRET
    JWT_REFRESH_SECRET_KEY = REFRESH_SECRET
    TOKEN_HASH_SECRET = HASH_SECRET
    JWT_ALGORITHM = "HS512"
    JWT_ACCESS_TOKEN_TTL_MS = 900_000
    JWT_REFRESH_TOKEN_TTL_MS = 3_600_000
    JWT_TOKEN_LOCATION = ["headers"]
    AUTH_DEFAULT_ROLE = "CUSTOMER"
    LOG_LEVEL = "WARNING"


@pytest.fixture(scope="session")
def redis_client():
    """Session-wide fakeredis client (decoded responses, like production)."""
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture(scope="session")
def app(redis_client):
    """Create a Flask application configured for testing."""
    # Ensure env-based config does not leak into tests
    os.environ.pop("DATABASE_URL", None)
    app = create_app(TestConfig, redis_client=redis_client, instance_relative_config=False)
    app.logger.setLevel("WARNING")
    return app


@pytest.fixture(scope="session")
def db(app):
    """Create database tables once per test session.

    pysqlite does not emit ``BEGIN`` itself, which breaks SAVEPOINT handling;
    the two listeners below let SQLAlchemy own transaction boundaries.
    """
    with app.app_context():
        engine = _db.engine

        @event.listens_for(engine, "connect")
        def _disable_pysqlite_autobegin(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(engine, "begin")
        def _emit_begin(conn):
            conn.exec_driver_sql("BEGIN")

        _db.create_all()
        yield _db
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope="session")
def connection(db):
    """Keep a dedicated DBAPI connection open for the whole session."""
    conn = db.engine.connect()
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="function")
def session(app, db, connection):
    """Provide a SQLAlchemy session wrapped in a nested transaction.

    Units of work commit and roll back freely: the session joins the
    connection with SAVEPOINTs, and the outer transaction is rolled back
    when the test ends.
    """
    top_trans = connection.begin()
    nested = connection.begin_nested()

    SessionFactory = sessionmaker(
        bind=connection,
        autoflush=False,
        join_transaction_mode="create_savepoint",
    )
    scoped = scoped_session(SessionFactory)

    # Monkey-patch db.session so app code uses this scoped session
    original_session = db.session
    db.session.remove()
    db.session = scoped

    try:
        yield scoped
    finally:
        scoped.remove()
        db.session = original_session
        if nested.is_active:
            nested.rollback()
        top_trans.rollback()


@pytest.fixture(autouse=True)
def app_ctx(app, session):
    """Run every test inside an application context."""
    with app.app_context():
        yield


@pytest.fixture(autouse=True)
def _clean_redis(redis_client):
    redis_client.flushall()
    yield
    redis_client.flushall()


@pytest.fixture(scope="session")
def faker():
    """Provide a :class:`faker.Faker` instance seeded for deterministic tests."""
    from faker import Faker

    fk = Faker()
    Faker.seed(1337)
    return fk


@pytest.fixture()
def components(app):
    """The service graph assembled by the factory."""
    from tokenauth.services.wiring import components as _components

    return _components(app)


@pytest.fixture()
def roles(session):
    """Seed every role; most flows need ``CUSTOMER`` to exist."""
    from tests.factories.role import RoleFactory

    return {name: RoleFactory(name=name) for name in RoleType}


@pytest.fixture()
def down_redis():
    """A Redis client whose server is unreachable (every call raises)."""
    server = fakeredis.FakeServer()
    server.connected = False
    return fakeredis.FakeRedis(server=server, decode_responses=True)


# -- Hook up Factory Boy to pytest SQLAlchemy session --------------------------
@pytest.fixture(autouse=True)
def _factories_session(session):
    """Wire Factory Boy's session helper to the transactional session fixture."""
    from tests.factories import SQLAlchemySession

    SQLAlchemySession.set(session)
    yield
