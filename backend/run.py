#!/usr/bin/env python3
"""
kubeconverge API server.
"""

import uvicorn
from dotenv import load_dotenv

load_dotenv()

from kubeconverge.config import get_settings
from kubeconverge.core.logging import setup_logging

# keep uvicorn from replacing the structlog handlers
setup_logging()

if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(
        "kubeconverge.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.is_debug,
        log_level=settings.log_level.lower(),
        log_config=None,
    )
