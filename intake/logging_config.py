"""
Logging setup for the intake engine.

Applicant account emails and intermediary submitter emails are personal data,
so every root handler gets a filter that redacts them before records are written.
"""
import logging
import re

EMAIL_PATTERN = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class SensitiveDataFilter(logging.Filter):
    """Filter to redact email addresses from logs"""

    def filter(self, record):
        if hasattr(record, 'msg'):
            msg = str(record.msg)
            if '@' in msg:
                record.msg = EMAIL_PATTERN.sub('[EMAIL_REDACTED]', msg)

        # Interpolated arguments can carry emails too
        if record.args:
            if isinstance(record.args, dict):
                record.args = {k: self._redact(v) for k, v in record.args.items()}
            else:
                record.args = tuple(self._redact(arg) for arg in record.args)
        return True

    @staticmethod
    def _redact(value):
        if isinstance(value, str) and '@' in value:
            return EMAIL_PATTERN.sub('[EMAIL_REDACTED]', value)
        return value


def configure_logging(level: str = "INFO") -> None:
    """
    Configure root logging and attach the redaction filter.

    Safe to call more than once - the filter is only added to handlers that
    don't already carry one.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT
    )

    for handler in logging.root.handlers:
        if not any(isinstance(f, SensitiveDataFilter) for f in handler.filters):
            handler.addFilter(SensitiveDataFilter())

    # SQL echo can include bound emails
    sqlalchemy_logger = logging.getLogger('sqlalchemy.engine')
    if not any(isinstance(f, SensitiveDataFilter) for f in sqlalchemy_logger.filters):
        sqlalchemy_logger.addFilter(SensitiveDataFilter())
