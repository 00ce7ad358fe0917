import logging

from rq import Worker

from onboarding.app import create_app
from onboarding.db.models import Organisation
from onboarding.db.store import InvitationStore
from onboarding.exceptions import StoreFailure
from onboarding.services.invitation_service import InvitationService
from onboarding.services.queue_service import QUEUE_NAME, QueueService

logger = logging.getLogger('worker')

_app = None


def get_app():
    # built lazily so importing this module (as rq does) stays cheap
    global _app
    if _app is None:
        _app = create_app()
    return _app


def cleanup_expired_invitations(organisation_id: int) -> int:
    """
    Sweep one organisation's expired invitations.
    Called by the RQ worker. When CLEANUP_INTERVAL_SECONDS is positive the
    job puts itself back on the queue to run again after that interval.
    """
    app = get_app()
    with app.app_context():
        service = InvitationService(
            store=InvitationStore(),
            notifier=app.extensions['onboarding']['notifier'],
            clock=app.extensions['onboarding']['clock']
        )
        try:
            removed = service.cleanup_expired(organisation_id)
        except StoreFailure as e:
            logger.error("Cleanup for organisation %s failed: %s", organisation_id, e)
            raise

        interval = app.config['CLEANUP_INTERVAL_SECONDS']
        if interval > 0:
            queue_service: QueueService = app.extensions['onboarding']['queue']
            if not queue_service.has_scheduled_cleanup(organisation_id):
                queue_service.enqueue_cleanup(organisation_id, delay=interval)

        return removed


def schedule_all_cleanups() -> int:
    """Queue a sweep for every organisation, returns how many were queued"""
    app = get_app()
    with app.app_context():
        queue_service: QueueService = app.extensions['onboarding']['queue']
        organisations = Organisation.query.all()
        for org in organisations:
            if not queue_service.has_scheduled_cleanup(org.id):
                queue_service.enqueue_cleanup(org.id)
        return len(organisations)


if __name__ == '__main__':
    app = get_app()
    redis_conn = app.extensions['onboarding']['redis']
    logger.info("Starting worker with Redis at %s:%s", app.config['REDIS_HOST'], app.config['REDIS_PORT'])

    if app.config['CLEANUP_INTERVAL_SECONDS'] > 0:
        queued = schedule_all_cleanups()
        logger.info("Periodic cleanup every %ss for %d organisation(s)",
                    app.config['CLEANUP_INTERVAL_SECONDS'], queued)

    worker = Worker([QUEUE_NAME], connection=redis_conn)
    logger.info("Worker ready to process invitation jobs")
    worker.work(with_scheduler=True)
