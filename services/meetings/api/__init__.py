from services.meetings.api.auth import router as auth_router  # noqa: F401
from services.meetings.api.availability import (  # noqa: F401
    router as availability_router,
)
from services.meetings.api.join import router as join_router  # noqa: F401
from services.meetings.api.meetings import router as meetings_router  # noqa: F401
from services.meetings.api.users import router as users_router  # noqa: F401
