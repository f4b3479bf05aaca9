from datetime import datetime
from typing import Optional

from .auth import CamelModel


class GrantAdminRequest(CamelModel):
    user_id: int
    is_permanent: bool = False
    expiry_date: Optional[datetime] = None


class RevokeAdminRequest(CamelModel):
    user_id: int
