# SQLModel definitions - imported here to ensure metadata is populated for Alembic.
from .base import UUIDMixin, TimestampMixin  # noqa: F401
from .user import User  # noqa: F401
from .organization import Organization  # noqa: F401
from .organization_member import OrganizationMember  # noqa: F401
from .invitation import Invitation  # noqa: F401
from .notification import Notification  # noqa: F401
from .verification import Verification  # noqa: F401
from .outline import Outline  # noqa: F401
