"""Worker entry point.

Runs the pipeline as a long-lived queue consumer:
- Loads configuration (config.json, overrides.yml, PIPELINE_* env vars)
- Wires the pipeline components against S3 and DynamoDB
- Polls the notification queue until SIGINT/SIGTERM
"""

import asyncio
import logging
import signal
import sys

from artwork_pipeline.application import PipelineApplication
from artwork_pipeline.config import PipelineConfig
from artwork_pipeline.observability.error_log_file import setup_error_log_file
from artwork_pipeline.sqs.notification_consumer import NotificationConsumer
from artwork_pipeline.stores.clients import create_sqs_client

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)

# Suppress verbose AWS SDK and image codec logs
logging.getLogger("botocore").setLevel(logging.WARNING)
logging.getLogger("boto3").setLevel(logging.WARNING)
logging.getLogger("PIL").setLevel(logging.WARNING)


class Worker:
    """Owns the application and the queue consumer for one process."""

    def __init__(self, config: PipelineConfig) -> None:
        if not config.queue_url:
            raise ValueError("queue_url is required to run the worker (set PIPELINE_QUEUE_URL)")
        self.config = config
        self.application = PipelineApplication(config)
        self.consumer = NotificationConsumer(
            create_sqs_client(config),
            self.application,
            queue_url=config.queue_url,
            polling_interval=config.polling_interval,
            max_inflight=config.max_inflight,
        )
        self._shutdown_event = asyncio.Event()

    async def run(self) -> None:
        self.setup_signal_handlers()
        task = self.consumer.start_background()
        logger.info("Worker started; consuming %s", self.config.queue_url)
        await self._shutdown_event.wait()
        await self.consumer.stop()
        if not task.done():
            task.cancel()
        logger.info("Graceful shutdown complete")

    def setup_signal_handlers(self) -> None:
        """Register SIGINT/SIGTERM handlers that trigger graceful shutdown."""
        loop = asyncio.get_running_loop()

        def signal_handler(sig: signal.Signals) -> None:
            logger.info("Received signal %s, initiating shutdown...", sig.name)
            self._shutdown_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))


async def main(config_path: str = "config.json", queue_url: str | None = None) -> None:
    config = PipelineConfig.from_json_file(config_path)
    if queue_url:
        config.queue_url = queue_url
    setup_error_log_file(config)

    try:
        await Worker(config).run()
    except Exception as e:
        logger.exception("Worker error: %s", e)
        raise


def cli() -> None:
    import argparse

    parser = argparse.ArgumentParser(description="Run the artwork image pipeline worker")
    parser.add_argument("--config", default="config.json", help="Path to the JSON config file")
    parser.add_argument("--queue-url", default=None, help="Notification queue URL")
    args = parser.parse_args()

    asyncio.run(main(config_path=args.config, queue_url=args.queue_url))


if __name__ == "__main__":
    cli()
