import logging
import ipaddress

import uvicorn

from bridge import env

logging.basicConfig(level=env.LOG_LEVEL)
logger = logging.getLogger("print_bridge")


def _loopback_host(host: str) -> str:
    if host == "localhost":
        return "127.0.0.1"
    try:
        if ipaddress.ip_address(host).is_loopback:
            return host
    except ValueError:
        pass
    logger.warning("BRIDGE_HOST=%s is not a loopback address; binding 127.0.0.1", host)
    return "127.0.0.1"


def main():
    from bridge.api import app
    uvicorn.run(app, host=_loopback_host(env.BRIDGE_HOST), port=env.BRIDGE_PORT, log_level=env.LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
