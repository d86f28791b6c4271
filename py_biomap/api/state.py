"""Map session shared by the API routers."""

from fastapi import HTTPException

from ..core.engine import GeneratedMap, MapSession

session = MapSession()


def get_latest_or_404() -> GeneratedMap:
    """Return the last finished map or raise 404."""
    if session.latest is None:
        raise HTTPException(status_code=404, detail="No map generated yet")
    return session.latest
