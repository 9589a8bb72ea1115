"""Command line interface for running the API server."""
import logging

import uvicorn

from config import settings_conf

# Configure logging
logging.basicConfig(
    level=settings_conf['log_level'],
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

def main():
    """Run the API server on the configured host and port."""
    logger.info(
        f"Starting API on {settings_conf['api_host']}:{settings_conf['api_port']} "
        f"with the {settings_conf['store_backend']} record store"
    )
    uvicorn.run(
        "api:app",
        host=settings_conf['api_host'],
        port=settings_conf['api_port'],
        log_level=settings_conf['log_level'].lower()
    )

if __name__ == "__main__":
    main()
