"""mfgdash entrypoint.

Run with:
  python -m mfgdash
"""

import os
import uvicorn

from mfgdash.logging_config import get_logging_config, setup_logging


def main() -> None:
    host = os.getenv("MFG_HOST", "0.0.0.0")
    port = int(os.getenv("MFG_PORT", "8000"))
    reload = os.getenv("MFG_RELOAD", "false").lower() in {"1", "true", "yes", "y"}
    level = os.getenv("MFG_LOG_LEVEL", "INFO").upper()
    setup_logging(level)
    uvicorn.run(
        "mfgdash.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_config=get_logging_config(level),
    )

if __name__ == "__main__":
    main()
