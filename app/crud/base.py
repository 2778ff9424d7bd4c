import logging
from contextlib import contextmanager

from sqlalchemy.exc import DisconnectionError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import PersistenceContractViolation, PersistenceUnavailable

logger = logging.getLogger(__name__)


@contextmanager
def persistence_guard(db: Session, action: str):
    """
    SQLAlchemy 예외를 서비스 예외로 변환. 실패 시 세션은 항상 롤백.
    연결 문제는 PersistenceUnavailable, 그 외는 그대로 전파합니다.
    """
    try:
        yield
    except (OperationalError, DisconnectionError) as e:
        logger.error(f"{action} 실패 (DB 연결 불가): {str(e)}")
        db.rollback()
        raise PersistenceUnavailable(f"Store unavailable while trying to {action}") from e
    except SQLAlchemyError as e:
        logger.error(f"{action} 오류: {str(e)}")
        db.rollback()
        raise


def require_identity(row, action: str) -> int:
    # 성공한 insert는 반드시 id를 돌려줘야 함
    insert_id = getattr(row, "id", None)
    if not insert_id:
        logger.error(f"{action}: insert returned no identity ({row!r})")
        raise PersistenceContractViolation(f"Failed to {action}: no insert id returned")
    return insert_id
