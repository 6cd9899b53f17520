"""Main entry point for the SMS forwarder.

Loads configuration, sets up logging, wires the modem gateway, the
notification channels and the pipeline together, and runs the poll loop
until a fatal device error or a shutdown signal.

Usage:
    sms-forward --config config.json
    sms-forward <modem-id> <bark-key>        (legacy: Bark only)
    sms-forward --init-config config.json
"""

from __future__ import annotations

import argparse
import signal
import sys
from pathlib import Path
from typing import Optional

import structlog
from dotenv import load_dotenv

from smsforward.config import (
    AppConfig,
    legacy_config,
    load_config,
    load_secrets,
    mask_key,
    save_config,
)
from smsforward.errors import ConfigError, FatalDeviceError
from smsforward.logs import LogHousekeeper, configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sms-forward",
        description="Forward SMS received by a ModemManager modem to Bark / Hismsg.",
    )
    parser.add_argument("-c", "--config", help="path to a JSON or YAML config file")
    parser.add_argument("--init-config", metavar="PATH", help="write a default config file and exit")
    parser.add_argument("modem_id", nargs="?", help="modem id (legacy mode)")
    parser.add_argument("bark_key", nargs="?", help="Bark key (legacy mode)")
    return parser


def resolve_config(args: argparse.Namespace, parser: argparse.ArgumentParser) -> AppConfig:
    """Pick config-file mode or legacy two-argument mode.

    Raises:
        ConfigError: the config could not be loaded or validated.
    """
    if args.config:
        if args.modem_id or args.bark_key:
            parser.error("use either --config or <modem-id> <bark-key>, not both")
        return load_config(args.config, secrets=load_secrets())
    if args.modem_id and args.bark_key:
        return legacy_config(args.modem_id, args.bark_key)
    parser.error("either --config PATH or <modem-id> <bark-key> is required")


def build_components(config: AppConfig) -> dict:
    """Initialize all system components."""
    from smsforward.dedup import MessageDeduplicator
    from smsforward.modem.mmcli import MmcliGateway
    from smsforward.notify.factory import build_channels
    from smsforward.pipeline import MessagePipeline
    from smsforward.poller import PollLoop

    logger = structlog.get_logger()

    gateway = MmcliGateway(
        modem_id=config.modem_id,
        mmcli_path=config.device.mmcli_path,
        timeout=config.device.command_timeout,
        logger=logger,
    )
    channels = build_channels(config, logger=logger)

    dedup = None
    if config.dedup.enabled:
        dedup = MessageDeduplicator(Path(config.dedup.db_path), logger=logger)
        dedup.prune(config.dedup.max_age_days)

    pipeline = MessagePipeline(
        gateway=gateway,
        channels=channels,
        dedup=dedup,
        logger=logger,
    )
    loop = PollLoop(
        gateway=gateway,
        pipeline=pipeline,
        interval_seconds=config.sleep_duration,
        logger=logger,
    )

    return {
        "gateway": gateway,
        "channels": channels,
        "dedup": dedup,
        "pipeline": pipeline,
        "loop": loop,
    }


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point. Returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.init_config:
        save_config(AppConfig.model_construct(), args.init_config)
        print(f"Wrote default config to {args.init_config}; fill in bark_key before starting.")
        return 0

    # 1. Load config (.env may carry channel keys)
    load_dotenv()
    try:
        config = resolve_config(args, parser)
    except ConfigError as e:
        print(f"Failed to load configuration: {e}", file=sys.stderr)
        return 1

    # 2. Configure logging
    stream = configure_logging(config.logging)
    housekeeper = LogHousekeeper(stream, retention_days=config.logging.retention_days)
    housekeeper.start()
    logger = structlog.get_logger()
    logger.info(
        "startup.config_summary",
        modem_id=config.modem_id,
        sleep_duration=config.sleep_duration,
        bark_enabled=config.enable_bark,
        bark_key=mask_key(config.bark_key),
        hismsg_enabled=config.enable_hismsg,
        hismsg_key=mask_key(config.hismsg_key),
        dedup_enabled=config.dedup.enabled,
        log_file=str(stream.path_for(stream.today())),
    )

    exit_code = 0
    try:
        # 3. Build components
        components = build_components(config)
        loop = components["loop"]

        # 4. Graceful shutdown
        def handle_signal(signum, frame):
            logger.info("shutdown.signal_received", signal=signum)
            loop.stop()

        signal.signal(signal.SIGINT, handle_signal)
        signal.signal(signal.SIGTERM, handle_signal)

        # 5. Main loop
        loop.run()
    except FatalDeviceError as e:
        print(f"Fatal: {e}", file=sys.stderr)
        exit_code = 1
    except Exception as e:
        logger.critical("shutdown.unexpected_error", error_type=type(e).__name__, error=str(e), exc_info=True)
        print(f"Fatal: {e}", file=sys.stderr)
        exit_code = 1
    finally:
        logger.info("shutdown.complete", exit_code=exit_code)
        housekeeper.stop()
        stream.close()

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
