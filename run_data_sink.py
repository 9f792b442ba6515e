#!/usr/bin/env python3
"""
Data Sink Service - Entry Point
===============================

This script starts the connector data sink, which:
- Connects to the MQTT broker (TLS, password / SAT credentials)
- Derives the topic for the configured data source
- Reads JSON Lines documents from files or stdin
- Publishes each document at-least-once, retrying with backoff

Usage:
    python run_data_sink.py --config config/sink.yaml documents.jsonl
    producer | python run_data_sink.py --config config/sink.yaml

Lifecycle:
    1. Load configuration from YAML
    2. Setup logging (console + file)
    3. Create DataSinkService (session client + sink)
    4. Connect (fatal on failure)
    5. Push documents in order
    6. Disconnect

Signals:
    - SIGTERM / SIGINT (Ctrl+C): cancel the in-flight publish, or stop waiting
      for input, and exit (code 130)

Exit Codes:
    0: all documents delivered
    1: fatal error (config, connect, invalid document)
    130: cancelled by signal
"""

import argparse
import signal
import sys
import logging
from pathlib import Path
from typing import List, Optional

from connector_mqtt import LogEvent, PublishCancelledError
from connector_service import DataSinkService, SinkConfig, iter_documents


EXIT_OK = 0
EXIT_FATAL = 1
EXIT_CANCELLED = 130


# ─────────────────────────────────────────────────────────────────────────────
# Logging Setup
# ─────────────────────────────────────────────────────────────────────────────

def setup_logging(log_file: Optional[Path] = None, level: int = logging.INFO) -> logging.Logger:
    """
    Setup logging for the sink service.

    Args:
        log_file: Optional path to log file
        level: Root logging level

    Returns:
        Logger instance for the runner
    """
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stderr),
            *(
                [logging.FileHandler(log_file)]
                if log_file
                else []
            )
        ]
    )

    return logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Main Service
# ─────────────────────────────────────────────────────────────────────────────

class SinkApp:
    """
    Application wrapper for DataSinkService.

    Handles:
    - Configuration loading
    - Signal handling (SIGTERM, SIGINT)
    - Input reading (files or stdin)
    - Graceful shutdown
    """

    def __init__(self, config_path: Path, inputs: List[str], log_file: Optional[Path] = None):
        self.config_path = config_path
        self.inputs = inputs or ['-']
        self.log_file = log_file
        self.logger = setup_logging(log_file)

        self.config: Optional[SinkConfig] = None
        self.service: Optional[DataSinkService] = None

    def setup(self) -> None:
        """Load configuration, build the service and connect."""
        self.logger.info(f"Loading configuration: {self.config_path}")
        self.config = SinkConfig.from_yaml(self.config_path)
        logging.getLogger().setLevel(self.config.log_level_value)

        self.service = DataSinkService(self.config)
        self.logger.info(f"Sink id: {self.service.sink.id}")

        self.service.start()

    def run(self) -> int:
        """Push every input; returns the process exit code."""
        if not self.service:
            raise RuntimeError("Service not initialized. Call setup() first.")

        previous = {
            signum: signal.signal(signum, self._signal_handler)
            for signum in (signal.SIGTERM, signal.SIGINT)
        }

        try:
            for name in self.inputs:
                self._push_input(name)
        except PublishCancelledError:
            self.logger.warning("Publishing cancelled")
            return EXIT_CANCELLED
        except (OSError, ValueError) as e:
            self.service.logger.error(
                event=LogEvent.DOCUMENT_READ_ERROR,
                message="Invalid input document",
                exc_info=e
            )
            return EXIT_FATAL
        finally:
            self.shutdown()
            for signum, handler in previous.items():
                signal.signal(signum, handler)

        self.logger.info(f"Delivered {self.service.sink.get_stats()['published']} documents")
        return EXIT_OK

    def _push_input(self, name: str) -> None:
        if name == '-':
            self.service.push_all(iter_documents(sys.stdin, '<stdin>'))
            return

        with open(name, encoding='utf-8') as f:
            self.service.push_all(iter_documents(f, name))

    def shutdown(self) -> None:
        if self.service:
            self.service.shutdown()

    def _signal_handler(self, signum, frame):
        signal_name = signal.Signals(signum).name
        self.logger.info(f"Received signal {signal_name} ({signum})")
        if not self.service:
            return

        first = not self.service.stopped
        self.service.stop()

        # A blocked stdin read is restarted after the handler returns, so
        # between documents the cancellation has to be raised from here.
        if first and not self.service.pushing:
            raise PublishCancelledError(f"Cancelled by {signal_name}")


# ─────────────────────────────────────────────────────────────────────────────
# CLI
# ─────────────────────────────────────────────────────────────────────────────

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Connector data sink - publish JSON documents to MQTT",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Publish a JSON Lines file
  python run_data_sink.py --config config/sink.yaml data/readings.jsonl

  # Publish from stdin without file logging
  cat readings.jsonl | python run_data_sink.py --config config/sink.yaml --no-log-file
        """
    )

    parser.add_argument(
        '--config',
        type=Path,
        required=True,
        help='Path to sink configuration YAML file'
    )

    parser.add_argument(
        '--log-file',
        type=Path,
        default=Path('logs/data_sink.log'),
        help='Path to log file (default: logs/data_sink.log)'
    )

    parser.add_argument(
        '--no-log-file',
        action='store_true',
        help='Disable file logging (console only)'
    )

    parser.add_argument(
        'inputs',
        nargs='*',
        help="JSON Lines input files ('-' or none for stdin)"
    )

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    log_file = None if args.no_log_file else args.log_file

    if not args.config.exists():
        print(f"Error: Configuration file not found: {args.config}", file=sys.stderr)
        return EXIT_FATAL

    app = SinkApp(config_path=args.config, inputs=args.inputs, log_file=log_file)

    try:
        app.setup()
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        app.shutdown()
        return EXIT_FATAL

    return app.run()


if __name__ == '__main__':
    sys.exit(main())
