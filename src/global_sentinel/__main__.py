# Main Entry Point
#
# By default starts the cycle scheduler and serves the operator API.
# --once runs a single collection cycle and prints its report as JSON.

import argparse
import json
import sys
import threading
from typing import Optional, Tuple

from . import __version__
from .config import Settings, load_settings
from .core import AuditLogger, set_audit_logger, setup_logging
from .errors import ConfigError
from .intel.api_collector import ApiCollector
from .intel.feed_collector import FeedCollector
from .intel.forwarder import ForwardingClient
from .intel.html_collector import HtmlCollector
from .intel.pipeline import CollectionPipeline
from .intel.publisher import SlotPublisher
from .intel.scheduler import CycleScheduler
from .intel.social_collector import SocialCollector
from .intel.sources import API_SOURCES, HTML_SOURCES, RSS_SOURCES, SOCIAL_SOURCES
from .intel.store import ThreatStore


def build_pipeline(settings: Settings) -> Tuple[CollectionPipeline, ThreatStore]:
    """Wire collectors, store, publisher and forwarder from settings."""
    store = ThreatStore(settings.db_path)
    publisher = SlotPublisher(store, capacity=settings.capacity)
    forwarder: Optional[ForwardingClient] = None
    if settings.forwarding_enabled:
        forwarder = ForwardingClient(settings.forward_url, timeout=settings.request_timeout)

    pipeline = CollectionPipeline(
        publisher, forwarder=forwarder, max_workers=settings.max_workers
    )
    common = {
        "delay_seconds": settings.source_delay,
    }
    pipeline.register(
        FeedCollector(
            timeout=settings.request_timeout, user_agent=settings.user_agent, **common
        ),
        RSS_SOURCES,
    )
    pipeline.register(ApiCollector(user_agent=settings.user_agent, **common), API_SOURCES)
    pipeline.register(
        HtmlCollector(
            timeout=settings.request_timeout, user_agent=settings.user_agent, **common
        ),
        HTML_SOURCES,
    )
    pipeline.register(
        SocialCollector(timeout=settings.request_timeout, **common), SOCIAL_SOURCES
    )
    return pipeline, store


def main(argv=None):
    """Main entry point for Global Sentinel."""
    parser = argparse.ArgumentParser(
        description="Global Sentinel - periodic OSINT threat aggregation pipeline",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single collection cycle, print the report and exit",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="API host (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="API port (default: 8000)",
    )
    parser.add_argument(
        "--no-api",
        action="store_true",
        help="Run the scheduler without serving the API",
    )
    parser.add_argument(
        "--env-file",
        default=None,
        help="Path to a .env file (default: search upward for .env)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"Global Sentinel v{__version__}",
    )
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.env_file)
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    setup_logging(settings.log_level)
    set_audit_logger(AuditLogger(log_dir=settings.audit_dir))

    pipeline, store = build_pipeline(settings)
    scheduler = CycleScheduler(
        pipeline,
        interval_minutes=settings.cycle_minutes,
        health_minutes=settings.health_minutes,
        initial_delay_seconds=settings.initial_delay_seconds,
    )

    try:
        if args.once:
            report = scheduler.run_cycle(trigger="manual")
            print(json.dumps(report.to_dict(), indent=2))
            return 0 if report.success else 1

        scheduler.start()
        if args.no_api:
            try:
                threading.Event().wait()
            except KeyboardInterrupt:
                print("\nShutting down...")
        else:
            from .api.main import create_app, start_api_server

            start_api_server(
                create_app(scheduler, pipeline.publisher), host=args.host, port=args.port
            )
        return 0
    finally:
        scheduler.stop()
        for collector in pipeline.collectors:
            collector.close()
        if pipeline.forwarder is not None:
            pipeline.forwarder.close()
        store.close()


if __name__ == "__main__":
    sys.exit(main())
