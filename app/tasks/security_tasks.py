from celery import shared_task
from celery.utils.log import get_task_logger

from app.db.session import SessionLocal
from app.models.token_blacklist import TokenBlacklist

logger = get_task_logger(__name__)


@shared_task(bind=True, max_retries=3)
def cleanup_expired_blacklisted_tokens(self):
    """Purge revocations whose tokens have expired on their own; run daily by beat."""
    db = SessionLocal()
    try:
        deleted = TokenBlacklist.expired(db).delete(synchronize_session=False)
        db.commit()
        logger.info("blacklist_cleanup deleted=%s", deleted)
        return {"deleted": deleted}
    except Exception as exc:
        db.rollback()
        logger.warning("blacklist_cleanup_failed error=%s", exc)
        raise self.retry(exc=exc, countdown=60)
    finally:
        db.close()
