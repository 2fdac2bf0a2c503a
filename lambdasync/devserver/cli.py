from __future__ import annotations

import argparse
import sys
from typing import Dict, List, Optional

import httpx

from .config import DevServerConfig


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lambdasync-devserver",
        description="Run a Lambda handler locally behind an API Gateway compatible HTTP server.",
    )
    subparsers = parser.add_subparsers(dest="command")

    serve = subparsers.add_parser("serve", help="Start the dev server (default)")
    _add_serve_arguments(serve)

    invoke = subparsers.add_parser("invoke", help="Send one request to a running dev server")
    invoke.add_argument("method", help="HTTP method, e.g. GET")
    invoke.add_argument("path", help="Request path, e.g. /users?id=1")
    invoke.add_argument("-d", "--data", help="Request body (prefix with @ to read a file)")
    invoke.add_argument(
        "-H",
        "--header",
        action="append",
        default=[],
        help="Request header 'Name: value' (repeatable)",
    )
    invoke.add_argument("--url", help="Dev server base URL (default from config)")
    invoke.add_argument(
        "--timeout", dest="client_timeout", type=float, help="Client timeout in seconds"
    )

    subparsers.add_parser("check", help="Exit 0 if a dev server is answering")

    reload = subparsers.add_parser("reload", help="Re-import the handler on a running dev server")
    reload.add_argument("--url", help="Dev server base URL (default from config)")
    return parser


def _add_serve_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--project-dir", help="Project directory (default: .)")
    parser.add_argument(
        "--handler", help="Handler module: index.py, src/app.py or module:function"
    )
    parser.add_argument("--function", dest="handler_function", help="Handler attribute name")
    parser.add_argument("--host", help="Listen host (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, help="Listen port (default: 3003)")
    parser.add_argument("--timeout", type=float, help="Invocation timeout in seconds")
    parser.add_argument("--no-reload", action="store_true", help="Do not re-import on change")
    parser.add_argument("--log-level", help="Log level (default: INFO)")


def config_from_args(args: argparse.Namespace) -> DevServerConfig:
    """Build config from environment, with CLI flags taking precedence."""
    overrides = {
        "PROJECT_DIR": getattr(args, "project_dir", None),
        "HANDLER": getattr(args, "handler", None),
        "HANDLER_FUNCTION": getattr(args, "handler_function", None),
        "HOST": getattr(args, "host", None),
        "PORT": getattr(args, "port", None),
        "INVOCATION_TIMEOUT": getattr(args, "timeout", None),
        "LOG_LEVEL": getattr(args, "log_level", None),
    }
    if getattr(args, "no_reload", False):
        overrides["RELOAD_HANDLER"] = False
    return DevServerConfig(**{k: v for k, v in overrides.items() if v is not None})


def parse_headers(values: List[str]) -> Dict[str, str]:
    headers = {}
    for value in values:
        name, sep, content = value.partition(":")
        if not sep or not name.strip():
            raise ValueError(f"Invalid header (expected 'Name: value'): {value}")
        headers[name.strip()] = content.strip()
    return headers


def _read_body(data: Optional[str]) -> Optional[bytes]:
    if data is None:
        return None
    if data.startswith("@"):
        with open(data[1:], "rb") as f:
            return f.read()
    return data.encode("utf-8")


def run_serve(config: DevServerConfig) -> int:
    import uvicorn

    from .core.logging_config import setup_logging
    from .main import create_app

    setup_logging(config)
    app = create_app(config)
    uvicorn.run(app, host=config.HOST, port=config.PORT, log_config=None)
    return 0


def run_invoke(args: argparse.Namespace, config: DevServerConfig) -> int:
    from .client import DevServerClient

    try:
        headers = parse_headers(args.header)
        body = _read_body(args.data)
    except (ValueError, OSError) as e:
        sys.stderr.write(f"{e}\n")
        return 2

    client = DevServerClient.from_config(config, base_url=args.url, timeout=args.client_timeout)
    with client:
        try:
            response = client.invoke(args.method, args.path, body=body, headers=headers)
        except httpx.RequestError as e:
            sys.stderr.write(f"Request failed: {e}\n")
            return 1

    sys.stdout.write(f"HTTP {response.status_code}\n")
    for name, value in response.headers.multi_items():
        sys.stdout.write(f"{name}: {value}\n")
    sys.stdout.write("\n")
    sys.stdout.write(response.text)
    if response.text and not response.text.endswith("\n"):
        sys.stdout.write("\n")
    return 0 if response.status_code < 500 else 1


def run_check(config: DevServerConfig) -> int:
    from .client import DevServerClient

    with DevServerClient.from_config(config, timeout=2.0) as client:
        healthy = client.health()
    sys.stdout.write(("running" if healthy else "not running") + f" at {client.base_url}\n")
    return 0 if healthy else 1


def run_reload(args: argparse.Namespace, config: DevServerConfig) -> int:
    from .client import DevServerClient

    with DevServerClient.from_config(config, base_url=args.url, timeout=10.0) as client:
        try:
            response = client.reload()
        except httpx.RequestError as e:
            sys.stderr.write(f"Request failed: {e}\n")
            return 1

    if response.status_code == 200:
        sys.stdout.write(f"reloaded handler at {client.base_url}\n")
        return 0
    sys.stderr.write(f"Reload failed (HTTP {response.status_code}): {response.text}\n")
    return 1


def main(argv: Optional[List[str]] = None) -> int:
    parser = _build_parser()
    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv or (argv[0].startswith("-") and argv[0] not in ("-h", "--help")):
        # `lambdasync-devserver --port 4000` means serve.
        argv.insert(0, "serve")
    args = parser.parse_args(argv)

    config = config_from_args(args)

    if args.command == "invoke":
        return run_invoke(args, config)
    if args.command == "check":
        return run_check(config)
    if args.command == "reload":
        return run_reload(args, config)
    return run_serve(config)


if __name__ == "__main__":
    raise SystemExit(main())
