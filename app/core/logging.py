import logging
import sys
from pythonjsonlogger import jsonlogger
from app.core.config import Settings
from app.core.middleware import request_id_ctx


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            record.request_id = request_id_ctx.get()
        return True


def configure_logging(settings: Settings) -> None:
    """
    Structured logging (JSON) on stdout, one object per line, tagged with
    the service environment and the request id when there is one.
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)

    # clear handlers if reloaded
    root.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    fmt = jsonlogger.JsonFormatter(
        "%(asctime)s %(levelname)s %(name)s %(request_id)s %(message)s",
        rename_fields={"levelname": "level", "name": "logger"},
        static_fields={"service": settings.app_name, "environment": settings.environment},
    )
    handler.setFormatter(fmt)
    handler.addFilter(RequestIdFilter())
    root.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(level)
    logging.getLogger("uvicorn.error").setLevel(level)
    # SQL echo only when explicitly debugging
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING if level > logging.DEBUG else logging.INFO)
