"""
Emuji Backend: Server Entry Point
====================================

Runs the app under uvicorn on $PORT (default 8080):

    python -m emuji
    emuji-server

Proxy headers are trusted from any address: the service sits behind the
platform's load balancer, which sets X-Forwarded-For / X-Forwarded-Proto.
"""

import uvicorn

from emuji.config import settings


def main() -> None:
    uvicorn.run(
        "emuji.main:app",
        host=settings.host,
        port=settings.port,
        proxy_headers=True,
        forwarded_allow_ips="*",
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
