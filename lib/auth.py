from fastapi import Depends, HTTPException
from fastapi.security import (
    APIKeyHeader,
    APIKeyQuery,
    HTTPAuthorizationCredentials,
    HTTPBearer,
)

from lib.config import Settings, get_settings

query_scheme = APIKeyQuery(name="apikey", scheme_name="APIKeyQuery", auto_error=False)
header_scheme = APIKeyHeader(
    name="X-API-KEY", scheme_name="APIKeyHeader", auto_error=False
)
bearer_scheme = HTTPBearer(scheme_name="HTTPBearer", auto_error=False)


def verify_apikey(
    apikey_query: str | None = Depends(query_scheme),
    apikey_header: str | None = Depends(header_scheme),
    apikey_bearer: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings),
) -> None:
    """Require API_KEY when one is configured; the endpoint is open otherwise."""
    if not settings.api_key:
        return
    bearer = apikey_bearer.credentials if apikey_bearer else None
    apikey = apikey_query or apikey_header or bearer
    if not apikey == settings.api_key:
        raise HTTPException(status_code=401, detail="Unauthorized")
