"""
Structured Route Logging

FLOW OVERVIEW
- configure_logging(app)
  • Called from create_app; sets the 'studio37' logger level from LOG_LEVEL and
    attaches a stream handler once.
- get_logger(namespace) → RouteLogger
  • info/warning/error(message, **context) emit one JSON line
    {"event", "route", ...context} under 'studio37.<namespace>'.
  • error(..., exc=e) adds the exception type/message and the traceback.
- mask_secret(value)
  • Credentials are logged as their last 4 characters only.
"""

import json
import logging


ROOT_LOGGER_NAME = 'studio37'


def configure_logging(app):
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(app.config.get('LOG_LEVEL', 'INFO'))
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(name)s %(message)s'))
        logger.addHandler(handler)
    return logger


def mask_secret(value):
    """Show only the last 4 characters of a credential"""
    if not value:
        return None
    return f"***{value[-4:]}" if len(value) >= 4 else "***"


class RouteLogger:
    """JSON logger bound to one route namespace, e.g. 'api/leads'"""

    def __init__(self, namespace):
        self.namespace = namespace
        self.logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{namespace.replace('/', '.')}")

    def _payload(self, message, context):
        payload = {'event': message, 'route': self.namespace}
        payload.update(context)
        return json.dumps(payload, default=str)

    def debug(self, message, **context):
        self.logger.debug(self._payload(message, context))

    def info(self, message, **context):
        self.logger.info(self._payload(message, context))

    def warning(self, message, **context):
        self.logger.warning(self._payload(message, context))

    warn = warning

    def error(self, message, exc=None, **context):
        if exc is not None:
            context['error_type'] = type(exc).__name__
            context['error'] = str(exc)[:500]
        self.logger.error(self._payload(message, context), exc_info=exc is not None)


def get_logger(namespace):
    return RouteLogger(namespace)
