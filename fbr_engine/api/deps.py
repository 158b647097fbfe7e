from typing import Annotated

from fastapi import Depends, HTTPException

from fbr_engine.services.sro.base import BaseSroLookupClient
from fbr_engine.state import global_state


async def get_sro_client() -> BaseSroLookupClient | None:
    client = global_state.sro_client
    if client is None:
        raise HTTPException(status_code=503, detail="SRO lookup service not initialized")
    # No token configured: skip online lookups
    return client if client.enabled else None


SroClientDep = Annotated[BaseSroLookupClient | None, Depends(get_sro_client)]
