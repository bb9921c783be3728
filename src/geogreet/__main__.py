from __future__ import annotations

import argparse

import uvicorn

from geogreet.common.config import ServiceConfig
from geogreet.common.log import configure_logging
from geogreet.engine.server_fastapi import build_generator, create_app


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Serve the location-aware greeting endpoint.")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=None, help="overrides $PORT")
    args = parser.parse_args(argv)

    config = ServiceConfig.from_env()
    configure_logging(config.log_level)

    app = create_app(config, build_generator(config))
    uvicorn.run(
        app,
        host=args.host,
        port=args.port if args.port is not None else config.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
