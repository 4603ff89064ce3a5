"""Response shapes shared by every dashboard resource."""

from pydantic import BaseModel


class SuccessResponse(BaseModel):
    """Body returned by DELETE endpoints."""
    success: bool = True
