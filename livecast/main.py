"""Main application entry point for LiveCast."""

import sys
import time
import argparse
import logging
from pathlib import Path
from typing import Optional

from . import __version__
from .capture import BufferedEncoder, PassthroughTranscoder, create_encoder, create_transcoder
from .config import LiveCastConfig
from .errors import AcquisitionFailure, ManifestWriteFailure
from .events.publisher import SegmentEventPublisher
from .services.liveness import LivenessTracker
from .services.recorder import SegmentRecorder
from .simulate import create_test_segments, simulate_live_stream
from .storage.segment_store import create_store
from .ui.status_screen import StatusScreen
from .web.server import run_server

logger = logging.getLogger(__name__)


class LiveCastApp:

    def __init__(self, config_path: Optional[str], log_level: Optional[str] = None):
        # Load configuration
        self.config = LiveCastConfig(config_path)
        # Set up logging (override config with command line if specified)
        level = log_level or self.config.get('logging.level', 'INFO')
        setup_logging(self.config, level)
        self.should_exit = False

        self.store = create_store(self.config)
        self.tracker = LivenessTracker.from_config(self.config, self.store)
        self.publisher = SegmentEventPublisher()
        self.recorder: Optional[SegmentRecorder] = None
        self.screen: Optional[StatusScreen] = None

    def record(self, duration: Optional[int]) -> None:
        """Record from the configured encoder until `duration` elapses or Ctrl-C."""
        encoder = create_encoder(self.config)
        transcoder = create_transcoder(self.config)
        self.recorder = SegmentRecorder.from_config(self.config, self.store, encoder,
                                                    transcoder=transcoder, publisher=self.publisher)
        self.screen = StatusScreen(self.publisher,
                                   refresh_seconds=float(self.config.get('recorder.status_refresh_seconds', 1.0)))
        self.screen.start()
        try:
            self.recorder.start()
            started = time.monotonic()
            while not self.should_exit:
                if duration and time.monotonic() - started >= duration:
                    break
                time.sleep(1)
        finally:
            self.cleanup()

    def simulate(self, duration: Optional[int]) -> None:
        """Produce dummy segments; without a duration, write five at once."""
        if not duration:
            create_test_segments(
                self.store,
                count=5,
                rotation_interval_seconds=float(self.config.get('recorder.rotation_interval_seconds', 6.0)),
            )
            return

        encoder = BufferedEncoder()
        self.recorder = SegmentRecorder.from_config(self.config, self.store, encoder,
                                                    transcoder=PassthroughTranscoder(),
                                                    publisher=self.publisher)
        simulate_live_stream(self.recorder, encoder, duration_seconds=duration)

    def serve(self) -> None:
        run_server(
            self.store,
            self.tracker,
            host=self.config.get('server.host', '0.0.0.0'),
            port=int(self.config.get('server.port', 3000)),
        )

    def cleanup(self) -> None:
        if self.recorder and self.recorder.is_recording:
            summary = self.recorder.end()
            logger.info(f"Recording ended. Total: {summary.segment_count} segments "
                        f"({summary.dropped_count} dropped)")
        if self.screen:
            self.screen.stop()
            self.screen = None


def setup_logging(config, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    # Get log file path from config
    log_file_path = config.get('logging.file_path', 'data/logs/livecast.log')
    console_output = config.get('logging.console_output', True)

    # Create logs directory if it doesn't exist
    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    # Set up handlers
    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    # Console handler - only if enabled in config
    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.WARNING)  # Only show warnings and above on console
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    # Log startup
    logger = logging.getLogger(__name__)
    logger.info("="*50)
    logger.info("LiveCast starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("="*50)


def main() -> None:
    """Main entry point for LiveCast."""
    parser = argparse.ArgumentParser(
        description="LiveCast - segment a live capture into an HLS playlist",
        epilog="Modes: record=capture and segment, serve=viewer API, simulate=dummy segments"
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: built-in settings)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: from config, INFO)"
    )

    parser.add_argument(
        "--mode",
        type=str,
        default="record",
        choices=["record", "serve", "simulate"],
        help="What to run (default: record)"
    )

    parser.add_argument(
        "--duration",
        type=int,
        help="Seconds to record or simulate (default: until Ctrl-C; simulate writes 5 segments)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"LiveCast v{__version__}"
    )

    args = parser.parse_args()

    app = LiveCastApp(args.config, args.log_level)
    try:
        if args.mode == "record":
            app.record(args.duration)
        elif args.mode == "serve":
            app.serve()
        else:
            app.simulate(args.duration)
    except KeyboardInterrupt:
        app.cleanup()
        print("\nGoodbye!")
    except AcquisitionFailure as e:
        print(f"Error: cannot access capture device: {e}")
        logging.error(f"Acquisition failed: {e}")
        sys.exit(1)
    except ManifestWriteFailure as e:
        print(f"Error: final manifest was not saved: {e}")
        logging.error(f"Sealed manifest failed: {e}")
        sys.exit(2)


if __name__ == "__main__":
    main()
