"""
API routes - combined router from all domain modules.

Shared infrastructure (limiter, result mapping) lives here; every sub-router
imports what it needs from this package.
"""

import os

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address

from leaguehub.services.result import ServiceResult

# ---------------------------------------------------------------------------
# Shared rate limiter
# ---------------------------------------------------------------------------
IS_TEST_ENV = os.getenv("ENV", "").lower() == "test"
if IS_TEST_ENV:
    limiter = Limiter(key_func=get_remote_address)

    def no_op_limit(*args, **kwargs):
        """No-op decorator for test mode - doesn't apply any rate limiting."""
        def decorator(func):
            return func
        return decorator

    limiter.limit = lambda *args, **kwargs: no_op_limit()
else:
    limiter = Limiter(key_func=get_remote_address)

# ---------------------------------------------------------------------------
# Service result -> HTTP response
# ---------------------------------------------------------------------------
NOT_FOUND_SUFFIX = "not found"


def failure_status(result: ServiceResult) -> int:
    """422 for field errors, 404 for missing resources, 400 for everything else."""
    if result.field_errors:
        return 422
    if result.error and result.error.lower().endswith(NOT_FOUND_SUFFIX):
        return 404
    return 400


def result_response(result: ServiceResult):
    """
    Render a ServiceResult.

    Failures are returned rather than raised so that writes a service makes on
    purpose while failing (expiring a stale invitation, for example) are still
    committed by the session dependency.
    """
    if result.ok:
        return result.to_dict()
    return JSONResponse(status_code=failure_status(result), content=result.to_dict())


# ---------------------------------------------------------------------------
# Combined router
# ---------------------------------------------------------------------------
from leaguehub.api.routes.users import router as users_router  # noqa: E402
from leaguehub.api.routes.leagues import router as leagues_router  # noqa: E402
from leaguehub.api.routes.members import router as members_router  # noqa: E402
from leaguehub.api.routes.invitations import router as invitations_router  # noqa: E402
from leaguehub.api.routes.placeholders import router as placeholders_router  # noqa: E402
from leaguehub.api.routes.teams import router as teams_router  # noqa: E402
from leaguehub.api.routes.game_types import router as game_types_router  # noqa: E402
from leaguehub.api.routes.moderation import router as moderation_router  # noqa: E402
from leaguehub.api.routes.notifications import router as notifications_router  # noqa: E402
from leaguehub.api.routes.admin import router as admin_router  # noqa: E402

router = APIRouter()
router.include_router(users_router)
router.include_router(leagues_router)
router.include_router(members_router)
router.include_router(invitations_router)
router.include_router(placeholders_router)
router.include_router(teams_router)
router.include_router(game_types_router)
router.include_router(moderation_router)
router.include_router(notifications_router)
router.include_router(admin_router)
