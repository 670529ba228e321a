from uuid import UUID

from fastapi import HTTPException, Request

from simpletax.models.shared import DEFAULT_ORGANIZATION_ID


def get_current_organization(request: Request) -> UUID:
    """Extract the tenant organization_id from the ``X-Organization-Id`` header.

    Falls back to the default organization when the header is absent, so a
    single-tenant deployment needs no extra setup.
    """
    org_id_header = request.headers.get("X-Organization-Id")
    if not org_id_header:
        return DEFAULT_ORGANIZATION_ID

    try:
        return UUID(org_id_header)
    except ValueError:
        raise HTTPException(
            status_code=400, detail="Invalid X-Organization-Id header"
        ) from None
