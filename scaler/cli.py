"""
Command Line Interface for the image scaler.
"""

import argparse
import dataclasses
import json
import logging
from typing import List, Optional, Tuple

import urllib3

from .errors import ConfigError
from .handler import ScaleHandler, create_context
from .scaler_config import ScalerConfig


def setup_logging(verbose: bool, level: str = 'INFO') -> logging.Logger:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.getLevelName(level)
    if not isinstance(level, int):
        # Unknown names are reported by ScalerConfig.validate()
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    logging.getLogger('boto3').setLevel(logging.WARNING)
    logging.getLogger('botocore').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)

    return logging.getLogger('scaler')


def get_config(args: argparse.Namespace) -> ScalerConfig:
    """Get configuration from environment and CLI overrides."""
    config = ScalerConfig.from_env()
    overrides = {}

    if getattr(args, 's3_endpoint', None):
        overrides['endpoint'] = args.s3_endpoint
    if getattr(args, 's3_bucket', None):
        overrides['bucket'] = args.s3_bucket
    if getattr(args, 's3_region', None):
        overrides['region'] = args.s3_region
    if getattr(args, 's3_access_key', None):
        overrides['access_key'] = args.s3_access_key
    if getattr(args, 's3_secret_key', None):
        overrides['secret_key'] = args.s3_secret_key
    if getattr(args, 'debug_output', False):
        overrides['debug_output'] = True

    return dataclasses.replace(config, **overrides)


def load_config(args: argparse.Namespace) -> Tuple[Optional[ScalerConfig], logging.Logger]:
    """
    Load configuration and set up logging at its LOG_LEVEL.

    Returns:
        (config, logger); config is None if the environment could not be parsed
    """
    try:
        config = get_config(args)
    except ConfigError as e:
        logger = setup_logging(args.verbose)
        logger.error(str(e))
        return None, logger
    return config, setup_logging(args.verbose, config.log_level)


def build_handler(config: ScalerConfig, logger: logging.Logger) -> ScaleHandler:
    """
    Build a handler from configuration.

    Raises:
        ConfigError: The configuration is invalid
    """
    if not config.verify_ssl:
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
    return ScaleHandler(create_context(config, logger=logger))


def add_storage_arguments(parser: argparse.ArgumentParser) -> None:
    """Add storage configuration arguments to a parser."""
    s3_group = parser.add_argument_group('S3 Storage')
    s3_group.add_argument('--s3-endpoint', help='Override S3_ENDPOINT')
    s3_group.add_argument('--s3-bucket', help='Override MEDIA_BUCKET')
    s3_group.add_argument('--s3-region', help='Override AWS_REGION')
    s3_group.add_argument('--s3-access-key', help='Override S3_ACCESS_KEY')
    s3_group.add_argument('--s3-secret-key', help='Override S3_SECRET_KEY')


def cmd_serve(args: argparse.Namespace) -> int:
    """Execute serve command."""
    from bottle import run

    from .server import create_app

    config, logger = load_config(args)
    if config is None:
        return 1

    try:
        handler = build_handler(config, logger)
    except ConfigError as e:
        logger.error(str(e))
        return 1

    logger.info(f"Bucket: {handler.config.bucket}")
    logger.info(f"Sizes: {handler.config.min_size}-{handler.config.max_size}")
    logger.info(f"Listening on {args.host}:{args.port}")

    run(app=create_app(handler), host=args.host, port=args.port, server=args.server, quiet=not args.verbose)
    logger.info("Exiting.")
    return 0


def cmd_scale(args: argparse.Namespace) -> int:
    """Execute scale command: run one request and report the result."""
    config, logger = load_config(args)
    if config is None:
        return 1

    try:
        handler = build_handler(config, logger)
    except ConfigError as e:
        logger.error(str(e))
        return 1

    envelope = handler.handle_key(args.key)

    if args.output and envelope.status_code == 200:
        with open(args.output, 'wb') as f:
            f.write(envelope.body_bytes())
        logger.info(f"Wrote {args.output} ({envelope.content_type})")
    elif envelope.is_binary:
        summary = envelope.to_dict()
        summary['body'] = f"<{len(envelope.body_bytes())} bytes>"
        print(json.dumps(summary, indent=2))
    else:
        print(json.dumps(envelope.to_dict(), indent=2))

    return 0 if envelope.status_code < 400 else 1


def cmd_check_config(args: argparse.Namespace) -> int:
    """Execute check-config command."""
    config, logger = load_config(args)
    if config is None:
        return 1

    print(json.dumps(config.to_dict(), indent=2))

    errors = config.validate()
    for error in errors:
        logger.error(error)
    return 1 if errors else 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog='scaler',
        description='On-demand image scaling for a media bucket',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  scaler serve --port 8080
  scaler scale abc123/200 -o thumb.jpg
  scaler check-config

Configuration is read from the environment (MEDIA_BUCKET, AWS_REGION,
S3_ENDPOINT, SCALER_MIN_SIZE, SCALER_MAX_SIZE, DEBUG_OUTPUT, ...).
"""
    )

    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # Serve command
    serve_parser = subparsers.add_parser('serve', help='Run the HTTP server')
    serve_parser.add_argument('--host', default='0.0.0.0', help='Bind address (default: 0.0.0.0)')
    serve_parser.add_argument('-p', '--port', type=int, default=8080, help='Port (default: 8080)')
    serve_parser.add_argument('--server', default='wsgiref', help='bottle server adapter (default: wsgiref)')
    serve_parser.add_argument('--debug-output', action='store_true',
                              help='Return diagnostics (status 222) instead of images')
    serve_parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')
    add_storage_arguments(serve_parser)

    # Scale command
    scale_parser = subparsers.add_parser('scale', help='Scale a single object')
    scale_parser.add_argument('key', help='Object key as <id>/<size>')
    scale_parser.add_argument('-o', '--output', help='Write the derivative to this file')
    scale_parser.add_argument('--debug-output', action='store_true',
                              help='Print diagnostics instead of the image')
    scale_parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')
    add_storage_arguments(scale_parser)

    # Check-config command
    check_parser = subparsers.add_parser('check-config', help='Validate configuration')
    check_parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')
    add_storage_arguments(check_parser)

    return parser


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if not parsed_args.command:
        parser.print_help()
        return 1

    if parsed_args.command == 'serve':
        return cmd_serve(parsed_args)
    elif parsed_args.command == 'scale':
        return cmd_scale(parsed_args)
    elif parsed_args.command == 'check-config':
        return cmd_check_config(parsed_args)

    return 1
