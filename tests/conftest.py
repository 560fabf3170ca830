"""
This file contains fixtures for the tests in the oracle_python package.
Functions:
- fake_oci: In-memory OCI library with a user scott/tiger.
- env: Environment created on the fake library.
- db_connection: Connection of scott to the fake server.
- settings: Restores the package settings after a test.
- oracle_params: Connection parameters of a real server, from environment variables.
- live_connection: Connection to a real server; skips when none is configured.
"""

import os

import pytest

from oracle_python import ConnectParams, Environment, RdbmsCredentials
from oracle_python.helpers import get_settings
from fake_oci import LOCATOR, FakeOCILibrary


@pytest.fixture
def fake_oci():
    library = FakeOCILibrary()
    library.add_user("scott", "tiger")
    return library


@pytest.fixture
def env(fake_oci):
    environment = Environment.create(library=fake_oci)
    yield environment
    environment.close()


@pytest.fixture
def connect_params():
    return ConnectParams(RdbmsCredentials("scott", "tiger"), LOCATOR)


@pytest.fixture
def db_connection(env, connect_params):
    conn = env.connect(connect_params)
    yield conn
    if not conn.closed:
        conn.close()


@pytest.fixture(autouse=True)
def settings():
    current = get_settings()
    saved = dict(vars(current))
    yield current
    for name, value in saved.items():
        setattr(current, name, value)


@pytest.fixture(scope="session")
def oracle_params():
    user = os.getenv("ORACLE_TEST_USER")
    password = os.getenv("ORACLE_TEST_PASSWORD")
    dsn = os.getenv("ORACLE_TEST_DSN")
    if not (user and password and dsn):
        return None
    return ConnectParams(RdbmsCredentials(user, password), dsn)


@pytest.fixture(scope="module")
def live_connection(oracle_params):
    if oracle_params is None:
        pytest.skip("ORACLE_TEST_USER, ORACLE_TEST_PASSWORD and ORACLE_TEST_DSN are not set")
    try:
        environment = Environment.create()
    except Exception as e:
        pytest.skip(f"Oracle client library not available: {e}")
    conn = environment.connect(oracle_params)
    yield conn
    conn.close()
    environment.close()
