import os, tempfile
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from main import app
from db import Base, enable_sqlite_foreign_keys, get_db
from entities import (
    AnswerRecord, DemographicAnswer, DemographicField, Indicator, Question,
    ResponseRecord, Survey, SurveyPeriod,
)
from security import verify_admin

@pytest.fixture(scope="session")
def tmp_db_path():
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    return path

@pytest.fixture(scope="session")
def test_engine(tmp_db_path):
    url = f"sqlite:///{tmp_db_path}"
    engine = create_engine(url, connect_args={"check_same_thread": False})
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    return engine

@pytest.fixture(scope="session")
def TestingSessionLocal(test_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

@pytest.fixture(scope="session", autouse=True)
def override_di(TestingSessionLocal):
    def _get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()
    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[verify_admin] = lambda: None

@pytest.fixture
def client():
    return TestClient(app)

@pytest.fixture
def db_session(TestingSessionLocal):
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

# ------------------------
# In-memory entity builders for the engine tests
# ------------------------
@pytest.fixture
def make_survey():
    """Build a Survey from compact tuples.

    indicators: [(indicator_id, weight, [(question_id, type, weight), ...]), ...]
    """
    def _make(indicators, mode="unweighted", category="calculate", period=None, fields=()):
        return Survey(
            id=1,
            title="Survey Pelayanan",
            type=mode,
            survey_category=category,
            period=period or SurveyPeriod(type="quarterly", year=2025, value="Q3"),
            indicators=[
                Indicator(
                    id=iid, title=f"Indikator {iid}", weight=w,
                    questions=[Question(id=qid, text=f"Pertanyaan {qid}", type=qt, weight=qw)
                               for qid, qt, qw in questions],
                )
                for iid, w, questions in indicators
            ],
            demographic_fields=[DemographicField(**f) for f in fields],
        )
    return _make

@pytest.fixture
def make_response():
    counter = {"n": 0}

    def _make(scores, periode="Q3-2025", demographics=None):
        counter["n"] += 1
        return ResponseRecord(
            id=counter["n"],
            survey_id=1,
            periode_survei=periode,
            answers=[AnswerRecord(question_id=qid, score=s) for qid, s in scores.items()],
            demographic_data=[DemographicAnswer(field_id=f, value=v) for f, v in (demographics or {}).items()],
        )
    return _make
