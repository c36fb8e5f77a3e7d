#!/usr/bin/env python3
"""Production startup script."""

import sys
import uvicorn
from pathlib import Path

# Add the src directory to Python path
project_root = Path(__file__).parent
src_path = project_root / "src"
sys.path.insert(0, str(src_path))

def main():
    """Start the production server."""
    # Import after path is set
    from mempool_arbitrage.config.settings import settings
    from mempool_arbitrage.main import configure_logging

    configure_logging(settings.log_level)

    # A single worker: counters and the nonce counter live in-process
    uvicorn.run(
        "mempool_arbitrage.main:app",
        host=settings.host,
        port=settings.port,
        workers=1,
        log_level="info",
        access_log=True,
        proxy_headers=True,
        forwarded_allow_ips="*",
        reload=False
    )

if __name__ == "__main__":
    main()
