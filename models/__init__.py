# models/__init__.py
from models.submission import ProfileSubmission, SubmissionStatus, COLUMN_NAMES

__all__ = ['ProfileSubmission', 'SubmissionStatus', 'COLUMN_NAMES']
