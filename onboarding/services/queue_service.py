import logging
import uuid
from datetime import timedelta
from typing import Dict, Optional

from redis import Redis
from rq import Queue

logger = logging.getLogger(__name__)

QUEUE_NAME = 'invitations'


class QueueService:
    """Background jobs for the invitation sweep. One instance per app."""

    def __init__(self, redis_client: Redis, queue_name: str = QUEUE_NAME):
        self._redis = redis_client
        self._queue = Queue(queue_name, connection=self._redis)

    @staticmethod
    def cleanup_job_id(organisation_id: int) -> str:
        return f"cleanup-{organisation_id}"

    def _next_job_id(self, organisation_id: int) -> str:
        # each delayed run gets its own id so a running sweep can queue its successor
        return f"{self.cleanup_job_id(organisation_id)}-next-{uuid.uuid4().hex[:8]}"

    def enqueue_cleanup(self, organisation_id: int, delay: Optional[int] = None) -> str:
        """
        Queue a cleanup sweep for an organisation.
        :param delay: seconds to wait before running, needs a worker started with the scheduler
        :return: the job id
        """
        if delay:
            job_id = self._next_job_id(organisation_id)
            self._queue.enqueue_in(
                timedelta(seconds=delay),
                'worker.cleanup_expired_invitations',
                organisation_id,
                job_id=job_id
            )
        else:
            job_id = self.cleanup_job_id(organisation_id)
            if job_id in self._queue.get_job_ids():
                logger.debug("Cleanup %s already queued", job_id)
                return job_id
            self._queue.enqueue(
                'worker.cleanup_expired_invitations',
                organisation_id,
                job_id=job_id
            )
        logger.info("Queued cleanup for organisation %s (delay=%s)", organisation_id, delay)
        return job_id

    def has_scheduled_cleanup(self, organisation_id: int) -> bool:
        prefix = f"{self.cleanup_job_id(organisation_id)}-next-"
        return any(job_id.startswith(prefix) for job_id in self._queue.scheduled_job_registry.get_job_ids())

    def get_queue_status(self) -> Dict[str, int]:
        """Get current queue statistics"""
        return {
            'queued': len(self._queue),
            'scheduled': len(self._queue.scheduled_job_registry),
            'started': len(self._queue.started_job_registry),
            'finished': len(self._queue.finished_job_registry),
            'failed': len(self._queue.failed_job_registry),
        }

    def get_cleanup_status(self, organisation_id: int) -> str:
        """
        Status of the on-demand sweep for an organisation.
        Returns: 'queued', 'started', 'finished', 'failed', or 'not_found'
        """
        job_id = self.cleanup_job_id(organisation_id)

        if job_id in self._queue.get_job_ids():
            return 'queued'
        if job_id in self._queue.started_job_registry:
            return 'started'
        if job_id in self._queue.finished_job_registry:
            return 'finished'
        if job_id in self._queue.failed_job_registry:
            return 'failed'

        return 'not_found'
