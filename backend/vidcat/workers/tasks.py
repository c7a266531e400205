import structlog
from googleapiclient.errors import HttpError
from vidcat.core.celery_app import celery_app
from vidcat.db.session import get_db_session
from vidcat.db.storage import Storage
from vidcat.services.activity import log_activity
from vidcat.services.import_service import ChannelNotFound, PlaylistImporter
from vidcat.services.youtube_service import get_youtube_service

logger = structlog.get_logger()


@celery_app.task
def check_watched_channels():
    """Beat task: queue an import for every watched channel that is due"""
    db = get_db_session()

    try:
        due = Storage(db).get_due_channels()

        for channel in due:
            check_watched_channel.delay(channel.id)

        logger.info("Queued watched channel checks", count=len(due))
        return {"queued": len(due)}

    finally:
        db.close()


@celery_app.task(bind=True, max_retries=3)
def check_watched_channel(self, watched_id: int):
    """Import the latest uploads of one watched channel"""
    db = get_db_session()
    storage = Storage(db)

    try:
        watched = storage.get_watched_channel(watched_id)
        if not watched:
            logger.warning("Watched channel disappeared", watched_id=watched_id)
            return {"error": "Watched channel not found"}

        importer = PlaylistImporter(storage, get_youtube_service())
        summary = importer.import_channel(watched)

        log_activity(
            storage, "IMPORT", "watched_channel", watched_id,
            details=f"{summary.succeeded} succeeded, {summary.failed} failed",
        )
        return summary.as_dict()

    except ChannelNotFound:
        logger.warning("Watched channel not found on YouTube", watched_id=watched_id)
        return {"error": "Channel not found"}

    except HttpError as e:
        logger.error("Watched channel check failed", watched_id=watched_id, error=str(e))
        raise self.retry(exc=e, countdown=300)

    finally:
        db.close()
