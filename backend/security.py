import hmac
from fastapi import HTTPException, Header

import config


def verify_admin(x_api_key: str = Header(default="")):
    """Guard admin routes with the shared key from the environment."""
    if not hmac.compare_digest(x_api_key.encode("utf-8"), config.ADMIN_API_KEY.encode("utf-8")):
        raise HTTPException(status_code=401, detail="Invalid admin API key")
