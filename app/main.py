"""
AIWallet API server entry point.

Run with:
    uvicorn app.main:app --port 3000
or:
    python -m app.main
"""

import structlog
import uvicorn

from aiwallet.audit import configure_logging
from aiwallet.config import get_settings, validate_all_settings
from aiwallet.server import create_app


logger = structlog.get_logger(__name__)

settings = get_settings()
configure_logging(settings.app.log_level)

for name, ok in validate_all_settings().items():
    if ok is False:
        logger.warning("settings_invalid", section=name)

app = create_app(settings)


if __name__ == "__main__":
    server = settings.server
    print(f"Server is running on http://{server.host}:{server.port}")
    uvicorn.run(app, host=server.host, port=server.port, log_level=settings.app.log_level.lower())
