import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

from cloud_stt.config import CloudSttConfig
from cloud_stt.errors import CloudSttError
from cloud_stt.log_format import ColoredFormatter
from cloud_stt.registry import CloudBackend, ProviderDescriptor, ProviderRegistry

ENV_FILE_PATH = Path.home() / ".config" / "cloud-stt" / "env"


def _load_env_file() -> None:
    if not ENV_FILE_PATH.exists():
        return
    with open(ENV_FILE_PATH) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                continue
            key, _, value = line.partition("=")
            value = value.strip("'\"")
            if key not in os.environ:
                os.environ[key] = value


def _parse_option(raw: str) -> tuple[str, Any]:
    key, sep, value = raw.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"Expected key=value, got '{raw}'")
    try:
        return key, json.loads(value)
    except json.JSONDecodeError:
        return key, value


def _configure_logging(verbose: bool, log_file: str) -> None:
    handlers: list[logging.Handler] = []
    console = logging.StreamHandler()
    console.setFormatter(ColoredFormatter(datefmt="%H:%M:%S"))
    handlers.append(console)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(name)s %(levelname)s %(message)s")
        )
        handlers.append(file_handler)

    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, handlers=handlers)

    quiet = logging.INFO if verbose else logging.WARNING
    for name in ("websockets", "httpcore", "httpx"):
        logging.getLogger(name).setLevel(quiet)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cloud-stt", description="Cloud speech-to-text dispatch")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("providers", help="List known STT providers")

    for name, help_text in (("verify", "Verify an API key and model"), ("transcribe", "Transcribe a WAV file")):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("provider", help="Provider id, e.g. openai_stt or soniox")
        if name == "transcribe":
            sub.add_argument("wav", type=Path, help="Mono 16-bit WAV file")
            sub.add_argument(
                "--option",
                "-o",
                action="append",
                type=_parse_option,
                default=[],
                help="Provider option as key=value (JSON values accepted)",
            )
        sub.add_argument("--model", help="Model name (defaults to the provider's default model)")
        sub.add_argument("--base-url", help="Override the provider's API base URL")
        sub.add_argument("--realtime", action="store_true", help="Use the streaming transport")
        sub.add_argument("--api-key-file", default="", help="File containing the API key")

    return parser


def _resolve_provider(registry: ProviderRegistry, provider_id: str) -> tuple[ProviderDescriptor | None, CloudBackend | None]:
    provider = registry.find(provider_id)
    if provider is None or not isinstance(provider.backend, CloudBackend):
        return provider, None
    return provider, provider.backend


def _print_providers(registry: ProviderRegistry) -> None:
    for provider in registry.providers():
        kinds = ", ".join(kind.name.lower() for kind in provider.transports)
        backend = provider.backend
        model = backend.default_model if isinstance(backend, CloudBackend) else backend.filename
        print(f"{provider.id:<12} {provider.name:<10} {model:<16} [{kinds}]")


async def _run(args: argparse.Namespace, config: CloudSttConfig) -> str:
    from cloud_stt import dispatch

    registry = ProviderRegistry()
    provider, backend = _resolve_provider(registry, args.provider)

    if provider is not None and backend is not None:
        provider_id = provider.dispatch_id(streaming=args.realtime)
        base_url = args.base_url or backend.base_url
        model = args.model or backend.default_model
    else:
        provider_id = args.provider
        base_url = args.base_url or ""
        model = args.model or ""

    api_key = config.resolve_api_key(args.api_key_file)

    if args.command == "verify":
        await dispatch.test_api_key(provider_id, api_key, base_url, model, config=config)
        return f"{provider_id}: API key and model '{model}' verified"

    audio = args.wav.read_bytes()
    return await dispatch.transcribe(
        provider_id,
        api_key,
        base_url,
        model,
        audio,
        options=dict(args.option),
        config=config,
    )


def main(argv: list[str] | None = None) -> None:
    _load_env_file()
    args = build_parser().parse_args(argv)

    config = CloudSttConfig()
    _configure_logging(args.verbose, config.log_file)

    if args.command == "providers":
        _print_providers(ProviderRegistry())
        return

    try:
        result = asyncio.run(_run(args, config))
    except CloudSttError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    except FileNotFoundError as exc:
        print(f"Audio file not found: {exc.filename}", file=sys.stderr)
        sys.exit(1)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)
    print(result)


if __name__ == "__main__":
    main()
