"""
Logging configuration for the valentine intake form
"""
import logging
import os

def setup_logger(name, level=None):
    """Setup logger with consistent formatting"""
    if level is None:
        level = logging.DEBUG if os.environ.get('FLASK_ENV') == 'development' else logging.INFO

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Prevent duplicate handlers
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    handler.setLevel(level)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    handler.setFormatter(formatter)

    logger.addHandler(handler)

    return logger

def log_error(logger, error, context=None):
    """Log error with context"""
    error_msg = f"Error: {str(error)}"
    if context:
        error_msg += f" | Context: {context}"
    logger.error(error_msg)

def log_submission(logger, submission_id, action, details=None):
    """Log submission lifecycle events"""
    log_msg = f"Submission {submission_id}: {action}"
    if details:
        log_msg += f" | Details: {details}"
    logger.info(log_msg)
