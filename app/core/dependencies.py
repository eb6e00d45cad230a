"""Application dependencies for dependency injection."""
import hmac
from typing import Annotated, Dict, Optional
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.enums import UserRole
from app.core.gateway import MercadoPagoGateway, get_gateway
from app.core.logging import get_logger
from app.core.security import decode_token, TokenPayload
from app.services.plan_catalog import load_plan_catalog
from app.services.tenant_store import get_tenant_snapshot
from app.subscription.models import PlanSnapshot, TenantSnapshot
from app.subscription.trial import TrialPolicy


security = HTTPBearer()
logger = get_logger(__name__)


async def get_current_token(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> TokenPayload:
    """Validate and decode the JWT token from the Authorization header."""
    payload = decode_token(credentials.credentials)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if payload.type != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type. Access token required.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return payload


class TenantContext:
    """Context object containing tenant-scoped information."""

    def __init__(self, token: TokenPayload, tenant: TenantSnapshot):
        self.token = token
        self.tenant = tenant
        self.tenant_id = tenant.id
        self.user_id = token.sub
        self.role = token.role or UserRole.EMPLOYEE.value


async def get_tenant_context(
    token: TokenPayload = Depends(get_current_token),
    db: AsyncSession = Depends(get_db),
) -> TenantContext:
    """Resolve the tenant named in the token."""
    if not token.tenant_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Token carries no tenant",
        )

    tenant = await get_tenant_snapshot(db, token.tenant_id)
    if tenant is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Tenant not found",
        )
    return TenantContext(token=token, tenant=tenant)


async def get_plan_catalog(db: AsyncSession = Depends(get_db)) -> Dict[str, PlanSnapshot]:
    return await load_plan_catalog(db)


def get_trial_policy() -> TrialPolicy:
    return TrialPolicy(
        duration_days=settings.TRIAL_DURATION_DAYS,
        max_services=settings.TRIAL_MAX_SERVICES,
        max_users=settings.TRIAL_MAX_USERS,
    )


async def verify_webhook_secret(
    x_webhook_secret: Optional[str] = Header(default=None),
) -> None:
    """Check the shared secret the gateway sends with notifications."""
    expected = settings.MERCADOPAGO_WEBHOOK_SECRET
    if not expected:
        logger.error("Rejected webhook: MERCADOPAGO_WEBHOOK_SECRET is not configured")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Webhook secret not configured",
        )
    if not x_webhook_secret or not hmac.compare_digest(x_webhook_secret, expected):
        logger.warning("Rejected webhook with invalid secret")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid webhook secret",
        )


# Type aliases for cleaner dependency injection
CurrentToken = Annotated[TokenPayload, Depends(get_current_token)]
TenantCtx = Annotated[TenantContext, Depends(get_tenant_context)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
Catalog = Annotated[Dict[str, PlanSnapshot], Depends(get_plan_catalog)]
Policy = Annotated[TrialPolicy, Depends(get_trial_policy)]
Gateway = Annotated[MercadoPagoGateway, Depends(get_gateway)]


def require_role(*roles: str):
    """Dependency factory to require specific roles."""
    async def role_checker(token: CurrentToken) -> TokenPayload:
        role = token.role or UserRole.EMPLOYEE.value
        if role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{role}' not authorized. Required: {roles}",
            )
        return token
    return role_checker
