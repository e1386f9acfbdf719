from app.services.credential_service import CredentialService, LoginStatus, VerificationResult
from app.services.two_factor_service import TwoFactorService, EnrollmentStart
from app.services.reconciliation import ReconciliationResult, reconcile, check_session_reconciliation
from app.services.access_gate import AccessGate, GateDecision
from app.services.security_service import SecurityService
from app.services.admin_user_service import AdminUserService

__all__ = [
    "CredentialService",
    "LoginStatus",
    "VerificationResult",
    "TwoFactorService",
    "EnrollmentStart",
    "ReconciliationResult",
    "reconcile",
    "check_session_reconciliation",
    "AccessGate",
    "GateDecision",
    "SecurityService",
    "AdminUserService",
]
