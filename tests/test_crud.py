import pytest
from sqlalchemy.exc import DisconnectionError, IntegrityError, OperationalError

from app.core.exceptions import PersistenceUnavailable
from app.crud import risk_crud, risk_map_crud
from app.schemas.risk_map import RiskMapOut
from app.models.enums import RiskCategory, Severity

from factories import SVG


def new_map(db):
    return risk_map_crud.create_risk_map(db, 1, "Office", "desc", SVG, 1000, 800)


def new_risk(db, map_id):
    return risk_crud.create_risk(
        db, map_id, RiskCategory.ERGONOMIC, Severity.HIGH, "Poor posture", None, 100, 100, 40, "#6BCB77"
    )


@pytest.fixture
def rollbacks(db_session, monkeypatch):
    """세션 rollback 호출 횟수 기록"""
    calls = []
    original = db_session.rollback

    def recording_rollback():
        calls.append(True)
        original()

    monkeypatch.setattr(db_session, "rollback", recording_rollback)
    return calls


def failing(error):
    def _raise(*args, **kwargs):
        raise error

    return _raise


class TestPersistenceGuard:
    def test_lost_connection_on_read_is_unavailable(self, db_session, rollbacks, monkeypatch):
        map_id = new_map(db_session)
        monkeypatch.setattr(
            db_session, "query", failing(OperationalError("SELECT 1", {}, Exception("db down")))
        )

        with pytest.raises(PersistenceUnavailable) as exc_info:
            risk_map_crud.get_risk_map(db_session, map_id)
        assert isinstance(exc_info.value.__cause__, OperationalError)
        assert rollbacks == [True]

    def test_disconnect_on_commit_is_unavailable(self, db_session, rollbacks, monkeypatch):
        monkeypatch.setattr(db_session, "commit", failing(DisconnectionError("connection dropped")))

        with pytest.raises(PersistenceUnavailable):
            new_map(db_session)
        assert rollbacks == [True]

    def test_failed_write_leaves_session_usable(self, db_session, monkeypatch):
        map_id = new_map(db_session)
        with monkeypatch.context() as patch:
            patch.setattr(db_session, "commit", failing(OperationalError("UPDATE", {}, Exception("db down"))))
            with pytest.raises(PersistenceUnavailable):
                new_risk(db_session, map_id)

        assert risk_crud.get_map_risks(db_session, map_id) == []
        assert new_risk(db_session, map_id) > 0

    def test_other_database_errors_propagate_unchanged(self, db_session, rollbacks, monkeypatch):
        error = IntegrityError("INSERT", {}, Exception("constraint failed"))
        monkeypatch.setattr(db_session, "commit", failing(error))

        with pytest.raises(IntegrityError) as exc_info:
            new_map(db_session)
        assert exc_info.value is error
        assert rollbacks == [True]


class TestReadModels:
    def test_map_row_reads_into_response_model(self, db_session):
        row = risk_map_crud.get_risk_map(db_session, new_map(db_session))
        out = RiskMapOut.model_validate(row)
        assert out.diagram == SVG
        assert (out.width, out.height) == (1000, 800)
        assert RiskMapOut(**out.model_dump()).diagram == SVG
