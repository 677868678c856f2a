"""Login endpoint for the single-password deployment.

Session issuance lives outside this service; this only checks the
password under the global limiter.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from api.helpers import enforce, get_rate_limiters
from schemas import LoginRequest, LoginResponse
from services.auth_service import AuthService, ServerNotConfiguredError
from services.rate_limiter import RateLimiters

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
def login(
    body: LoginRequest,
    limiters: RateLimiters = Depends(get_rate_limiters),
):
    """Check the application password.

    Every attempt counts against one shared bucket, so the password cannot
    be brute-forced by spreading attempts across clients.
    """
    enforce(limiters.check_global_password())
    try:
        ok = AuthService.verify_password(body.password)
    except ServerNotConfiguredError:
        raise HTTPException(status_code=500, detail="Server not configured")
    if not ok:
        logger.warning("Login failed: wrong password")
        raise HTTPException(status_code=401, detail="Unauthorized")
    logger.info("Login succeeded")
    return LoginResponse(success=True)
