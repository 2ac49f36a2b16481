import os
import pytest
from sqlalchemy import create_engine, StaticPool
from sqlalchemy.orm import sessionmaker

os.environ["QUIZDRILL_SKIP_SEED"] = "1"
os.environ["QUIZDRILL_DATABASE_URL"] = "sqlite:///:memory:"
os.environ["QUIZDRILL_BCRYPT_ROUNDS"] = "4"
os.environ["TESTING"] = "1"

from quizdrill.database import Base, get_db, init_db
from quizdrill.main import app
from quizdrill.services.rate_limiter import register_limiter, sign_in_limiter


@pytest.fixture(autouse=True)
def reset_limiters():
    sign_in_limiter.reset()
    register_limiter.reset()
    yield
    sign_in_limiter.reset()
    register_limiter.reset()


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    Session = sessionmaker(bind=engine)
    session = Session()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def seeded_session(db_session):
    from quizdrill.services.question_bank import seed_questions

    seed_questions(db_session)
    return db_session


@pytest.fixture
def client(db_session):
    from fastapi.testclient import TestClient

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
