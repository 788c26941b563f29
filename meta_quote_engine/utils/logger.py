from contextvars import ContextVar
from logging import LoggerAdapter, getLogger
from logging.config import dictConfig
from typing import Optional, Tuple
from uuid import uuid4

from meta_quote_engine.config import settings

CORRELATION_ID = "cid"
SESSION_ID = "sid"
ERR = "err"  # error object log argument
ERR_TYPE = "err_type"  # error type log argument

# Keyword argument of Logger._log, never changed.
EXTRA = "extra"

HANDLERS = {
    'console': {
        'class': 'logging.StreamHandler',
        'level': settings.LOGGING_LEVEL,
        'formatter': 'simple',
        'stream': 'ext://sys.stdout',
    },
    'logstash': {
        'level': settings.LOGSTASH_LOGGING_LEVEL,
        'class': 'logstash_async.handler.AsynchronousLogstashHandler',
        'transport': 'logstash_async.transport.TcpTransport',
        'formatter': 'logstash',
        'host': settings.LOGSTASH,
        'port': settings.PORT,
        'database_path': None,
        'event_ttl': 30,  # sec
    },
}

CONFIG = dict(
    disable_existing_loggers=False,
    version=1,
    formatters={
        'simple': {
            'format': '%(asctime)s - %(filename)s:%(lineno)s:%(funcName)s - %(levelname)s - %(message)s'
        },
        'logstash': {
            '()': 'logstash_async.formatter.LogstashFormatter',
        },
    },
    # dictConfig instantiates every declared handler, so only the enabled ones are declared.
    handlers={name: HANDLERS[name] for name in settings.LOG_HANDLERS},
    root={
        'handlers': settings.LOG_HANDLERS,
        'level': settings.LOGGING_LEVEL,
    },
)

correlation_id = ContextVar(CORRELATION_ID, default=uuid4().hex)
session_id = ContextVar(SESSION_ID, default=None)

_configured = False


class CustomContextLogger(LoggerAdapter):

    def process(self, msg, kwargs):
        if EXTRA not in kwargs:
            kwargs[EXTRA] = dict(self.extra)
        else:
            kwargs[EXTRA].update(self.extra)

        # assigning a request correlation key to all log messages
        kwargs[EXTRA][CORRELATION_ID] = self.get_correlation_id()

        sid = kwargs[EXTRA].get(SESSION_ID, self.get_session_id())
        if sid:
            kwargs[EXTRA][SESSION_ID] = sid

        if ERR in kwargs[EXTRA] and ERR_TYPE not in kwargs[EXTRA]:
            kwargs[EXTRA][ERR_TYPE] = type(kwargs[EXTRA][ERR]).__name__

        return msg, kwargs

    @staticmethod
    def get_correlation_id():
        return correlation_id.get()

    @staticmethod
    def get_session_id():
        return session_id.get()


class LogArgs:
    chain_id = "chain_id"  # blockchain identifier
    token = "token"
    web3_url = "web3_url"
    ex = "ex"  # human readable exception description
    aggregation_provider = "aggregation_provider"  # meta aggregation provider
    strategy = "strategy"
    attempt = "attempt"
    delay_ms = "delay_ms"
    deadline_ms = "deadline_ms"
    quotes_count = "quotes_count"


def get_logger(name: str, extra: Optional[dict] = None, corr_id: Optional[str] = None) -> "CustomContextLogger":
    global _configured  # pylint: disable=global-statement
    if not _configured:
        dictConfig(CONFIG)
        _configured = True

    extra = extra or {}

    if corr_id:
        correlation_id.set(corr_id)

    return CustomContextLogger(getLogger(name), extra)


def set_correlation_id(corr_id: str):
    correlation_id.set(corr_id)


def set_new_correlation_id():
    set_correlation_id(uuid4().hex)


def set_session_id(sid: str):
    session_id.set(sid)


def capture_exception(exc_info: Optional[Tuple] = None) -> Optional[str]:
    """Capture exception in APM.

    Args:
        exc_info: Optional[tuple]: A (type, value, traceback) tuple as returned by sys.exc_info().
                If not provided, it will be captured automatically,
                if capture_exception() was called in an except block.
    """
    from meta_quote_engine.clients.apm_client import apm_client

    return apm_client.client.capture_exception(exc_info)
