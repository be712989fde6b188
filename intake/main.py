"""Entry point for serving the onboarding wizard over HTTP."""

import argparse
from pathlib import Path

import uvicorn

from intake.api.app import app
from intake.utils.config import load_config
from intake.utils.logger import setup_logging


def main(argv: list[str] | None = None) -> None:
    """Start the API server with logging configured from the config file."""
    parser = argparse.ArgumentParser(description="Onboarding intake API server")
    parser.add_argument("--config", type=Path, default=None, help="YAML config file")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--log-file", default=None, help="Also log to this file")
    args = parser.parse_args(argv)

    config = load_config(args.config)
    setup_logging(config.log_level, args.log_file)
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
