import argparse
import asyncio
import signal
import sys
from typing import Any, Sequence

from loguru import logger

from pick2hmb.app.composition import create_worker_dependencies
from pick2hmb.app.config.settings import Settings
from pick2hmb.app.core import SERVICE_NAME
from pick2hmb.app.core.logging import configure_logging
from pick2hmb.app.domain.errors import InvalidScheme
from pick2hmb.app.messaging.consumer import create_message_handler


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="pick2hmb", description="Forward picks to an HMB sink.")
    group = parser.add_argument_group("pick2hmb")
    group.add_argument("-o", "--sink", help="Sink HMB, hmb://[user[:password]@]host[:port][/path]")
    return parser.parse_args(argv)


def load_settings(args: argparse.Namespace) -> Settings:
    """Settings from environment/.env; the --sink option takes precedence over HMB_SINK."""
    settings = Settings()
    if args.sink:
        settings = settings.model_copy(update={"sink": args.sink})
    return settings


async def _drain_handler_errors(errors: "asyncio.Queue[Exception]") -> None:
    while True:
        exc = await errors.get()
        _log("message_rejected", error=str(exc), error_type=type(exc).__name__)


async def run_worker(settings: Settings) -> None:
    deps = create_worker_dependencies(settings)
    try:
        await deps.connect()
    except BaseException:
        await deps.close()
        raise

    handler_errors: asyncio.Queue[Exception] = asyncio.Queue()
    drain_task = asyncio.create_task(_drain_handler_errors(handler_errors))
    handler = create_message_handler(deps.message_service, handler_errors, asyncio.Lock())
    consumer_tag = await deps.message_consumer.start_consuming(handler)

    shutdown = asyncio.Event()

    def request_shutdown() -> None:
        if not shutdown.is_set():
            _log("shutdown_signal")
            shutdown.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, request_shutdown)
        except NotImplementedError:
            pass

    _log("worker_started")
    try:
        await shutdown.wait()
    finally:
        try:
            await deps.message_consumer.cancel(consumer_tag)
        except Exception as e:
            logger.warning("consumer cancel failed: {}", e)
        drain_task.cancel()
        try:
            await drain_task
        except asyncio.CancelledError:
            pass
        await deps.close()
        _log("worker_stopped")


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    settings = load_settings(args)
    configure_logging(settings.log_level, json=settings.log_json)
    try:
        asyncio.run(run_worker(settings))
    except KeyboardInterrupt:
        _log("worker_interrupted")
    except InvalidScheme as e:
        logger.error("invalid sink: {}", e)
        sys.exit(1)
    except Exception as e:
        logger.exception("worker failed: {}", e)
        raise


if __name__ == "__main__":
    main()
