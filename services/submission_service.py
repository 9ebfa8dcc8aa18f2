import threading
from collections import OrderedDict

from models.submission import SubmissionStatus
from services.supabase_client import DEFAULT_TABLE
from utils.logging_config import log_error, log_submission

GENERIC_FAILURE_MESSAGE = 'Failed to submit form. Please try again.'
IN_PROGRESS_MESSAGE = 'Your submission is already being processed.'

class SubmissionError(Exception):
    """Base class for submission flow errors"""

class SubmissionInProgress(SubmissionError):
    pass

class AlreadySubmitted(SubmissionError):
    pass

class SubmissionFailed(SubmissionError):
    pass

class SubmissionService:
    """Forwards validated profiles to storage, once per submission id.

    Each submission id moves idle -> submitting -> submitted | failed.
    A failed flow drops straight back to idle so it may be retried. A
    submitted one may not be, and a second submit while the first write
    is pending is refused without touching storage.
    """

    def __init__(self, client, logger, table=DEFAULT_TABLE, max_tracked=10000):
        self.client = client
        self.logger = logger
        self.table = table
        self.max_tracked = max_tracked
        self._flows = OrderedDict()
        self._lock = threading.Lock()

    def status(self, submission_id):
        with self._lock:
            return self._flows.get(submission_id, SubmissionStatus.IDLE)

    def submit(self, submission_id, submission):
        """Issue exactly one insert for a ProfileSubmission"""
        self._begin(submission_id)
        log_submission(self.logger, submission_id, 'submitting')

        try:
            self.client.insert(self.table, [submission.to_row()])
        except Exception as e:
            self._finish(submission_id, SubmissionStatus.IDLE)
            log_submission(self.logger, submission_id, SubmissionStatus.FAILED.value)
            log_error(self.logger, e, context={
                'submission_id': submission_id,
                'details': getattr(e, 'details', None)
            })
            raise SubmissionFailed(GENERIC_FAILURE_MESSAGE) from e

        self._finish(submission_id, SubmissionStatus.SUBMITTED)
        log_submission(self.logger, submission_id, 'submitted')
        return SubmissionStatus.SUBMITTED

    def _begin(self, submission_id):
        with self._lock:
            current = self._flows.get(submission_id, SubmissionStatus.IDLE)
            if current is SubmissionStatus.SUBMITTING:
                self.logger.warning(f"Duplicate submit ignored for {submission_id}")
                raise SubmissionInProgress(IN_PROGRESS_MESSAGE)
            if current is SubmissionStatus.SUBMITTED:
                raise AlreadySubmitted(submission_id)
            self._flows[submission_id] = SubmissionStatus.SUBMITTING
            self._flows.move_to_end(submission_id)

    def _finish(self, submission_id, status):
        with self._lock:
            self._flows[submission_id] = status
            self._evict()

    def _evict(self):
        """Drop the oldest finished flows once the table is over capacity"""
        if len(self._flows) <= self.max_tracked:
            return
        for key in list(self._flows):
            if len(self._flows) <= self.max_tracked:
                break
            if self._flows[key] is not SubmissionStatus.SUBMITTING:
                del self._flows[key]
