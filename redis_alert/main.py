"""Main entry point for the Redis alert service"""

import sys
import argparse

from redis_alert import __version__
from redis_alert.config.settings import load_config
from redis_alert.utils.logger import setup_logger
from redis_alert.service import AlertService


def parse_args(argv=None):
    """Parse command-line arguments"""
    parser = argparse.ArgumentParser(
        description='Alert evaluation and notification for managed Redis clusters'
    )

    parser.add_argument(
        '--config',
        '-c',
        type=str,
        default=None,
        help='Path to configuration file (YAML)'
    )

    parser.add_argument(
        '--log-level',
        '-l',
        type=str,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        default=None,
        help='Override log level'
    )

    parser.add_argument(
        '--run-once',
        action='store_true',
        help='Run one evaluation sweep and one cleanup, then exit'
    )

    parser.add_argument(
        '--version',
        '-v',
        action='version',
        version=f'Redis Alert v{__version__}'
    )

    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point"""
    args = parse_args(argv)

    try:
        config = load_config(args.config)

        # Override log level from command line
        if args.log_level:
            config['app']['log_level'] = args.log_level

        logger = setup_logger(config)
        logger.info(f"Redis Alert v{__version__}")

        if args.config:
            logger.info(f"Loaded configuration from: {args.config}")
        else:
            logger.info("Using default configuration")

        service = AlertService(config)
        if args.run_once:
            results = service.run_once()
            failed = [r for r in results if not r.ok]
            logger.info(f"Processed {len(results)} groups, {len(failed)} with failures")
            return 1 if failed else 0

        service.start()
        return 0

    except KeyboardInterrupt:
        print("\nShutdown requested by user")
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        return 1


if __name__ == '__main__':
    sys.exit(main())
