import hmac

from .errors import AuthenticationFailed
from .logging_setup import get_logger
from .models import Principal
from .settings import Settings

logger = get_logger(__name__)


def authenticate(settings: Settings, username: str, password: str) -> Principal:
    for user in settings.users:
        if user.username != username:
            continue
        if hmac.compare_digest(user.password.encode(), password.encode()):
            return Principal(username=user.username, role=user.role, name=user.name)
        break
    logger.warning("authentication failed for %r", username)
    raise AuthenticationFailed("invalid username or password")
