"""
Run the Onsite Reservation API server.

Usage:
    python -m onsite_reservation.run_api
"""

import logging

import uvicorn

from onsite_reservation.config import Config, get_config

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(config: Config) -> None:
    """Configure root logging from the application config."""
    handlers = [logging.StreamHandler()]
    if config.log_file:
        handlers.append(logging.FileHandler(config.log_file))
    logging.basicConfig(level=config.log_level, format=LOG_FORMAT, handlers=handlers)


def main() -> None:
    config = get_config()
    setup_logging(config)

    print("🚀 Starting Onsite Reservation API server...")
    print(f"📊 Health check: http://localhost:{config.api_port}/health")
    print("")

    uvicorn.run(
        "onsite_reservation.api:create_app",
        factory=True,
        host=config.api_host,
        port=config.api_port,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
