from typing import Optional

from fastapi import Header, HTTPException

from bridge import env


def verify_agent_token(x_agent_token: Optional[str] = Header(None)):
    # token is optional: loopback-only bridges usually run without one
    if not env.PRINT_BRIDGE_TOKEN:
        return
    if x_agent_token != env.PRINT_BRIDGE_TOKEN:
        raise HTTPException(status_code=401, detail="Invalid bridge token")
