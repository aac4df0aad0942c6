import argparse

import uvicorn

from .server import create_api_server


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="fib-bench JSON API server")
    parser.add_argument(
        "--host",
        metavar="HOST",
        type=str,
        default="127.0.0.1",
        help="Interface to bind the server to",
    )
    parser.add_argument(
        "--port",
        metavar="PORT",
        type=int,
        default=8000,
        help="Port to run the server on",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    uvicorn.run(create_api_server(), host=args.host, port=args.port)


if __name__ == "__main__":
    main()
