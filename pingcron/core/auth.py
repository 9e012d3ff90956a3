"""API key and cron secret authentication."""

from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader, HTTPAuthorizationCredentials, HTTPBearer

from pingcron.core.config import settings

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=True)
cron_bearer = HTTPBearer(auto_error=False)


def verify_api_key(api_key: str = Security(api_key_header)) -> str:
    """Verify API key from request header."""
    if api_key != settings.api_secret_key:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key",
        )
    return api_key


def verify_cron_secret(
    credentials: HTTPAuthorizationCredentials | None = Security(cron_bearer),
) -> str:
    """Verify the bearer token sent by the external cron trigger."""
    if credentials is None or credentials.credentials != settings.cron_secret:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid cron secret",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials
