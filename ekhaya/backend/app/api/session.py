from fastapi import APIRouter

from app.api.deps import DBSession, BearerToken
from app.schemas.auth import SessionStatusResponse
from app.services.exceptions import AccountNotFoundError, SessionInvalidError
from app.services.reconciliation import check_session_reconciliation
from app.services.session_service import SessionStage


router = APIRouter()


@router.get("/status", response_model=SessionStatusResponse)
async def session_status(token: BearerToken, db: DBSession):
    """
    Compare the session's cached 2FA flag with the stored one.

    Read-only. An `issue` of "session_db_mismatch" means the client should
    discard the token and sign in again.
    """
    if not token:
        return SessionStatusResponse(authenticated=False, stage=SessionStage.UNAUTHENTICATED.value)

    try:
        outcome, session, account = await check_session_reconciliation(db, token)
    except (SessionInvalidError, AccountNotFoundError):
        return SessionStatusResponse(authenticated=False, stage=SessionStage.UNAUTHENTICATED.value)

    stage = session.stage
    if stage == SessionStage.TWO_FACTOR_VERIFIED and outcome.synced:
        stage = SessionStage.AUTHORIZED

    return SessionStatusResponse(
        authenticated=True,
        stage=stage.value,
        username=account.username,
        role=account.role,
        **outcome.as_dict(),
    )
