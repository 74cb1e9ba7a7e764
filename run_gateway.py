#!/usr/bin/env python
"""
Gateway startup script

Run from project root to start the FastAPI gateway.
"""

import logging

import uvicorn

if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    uvicorn.run(
        "chain_gateway.main:app",
        host="0.0.0.0",
        port=8001,
        reload=True,
        log_level="info"
    )
