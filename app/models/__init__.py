# Import every model so Base.metadata is complete for create_all / alembic
from app.models.rfp import RFP  # noqa: F401
from app.models.bid import Bid  # noqa: F401
from app.models.project import Project  # noqa: F401
from app.models.idempotency_key import IdempotencyKeyRecord  # noqa: F401
from app.models.event_log import EventLog  # noqa: F401
from app.models.audit_log import AuditLogRecord  # noqa: F401
