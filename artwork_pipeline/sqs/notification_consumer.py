"""SQS notification consumption.

Long-running worker mode: polls one queue that receives storage and ribbon
notifications, dispatches each message and acknowledges it according to
the outcome:

- success or non-retriable failure: the message is deleted
- retriable failure or unexpected exception: the message is left in the
  queue and becomes visible again for re-delivery
"""

import asyncio
import json
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Any

from artwork_pipeline.errors import InvalidEvent

if TYPE_CHECKING:
    from mypy_boto3_sqs import SQSClient

    from artwork_pipeline.application import PipelineApplication

logger = logging.getLogger(__name__)


class NotificationConsumer:
    """Consumes pipeline notifications from an SQS queue.

    Messages are independent invocations and run concurrently, bounded by
    ``max_inflight``.
    """

    def __init__(
        self,
        sqs_client: "SQSClient",
        application: "PipelineApplication",
        queue_url: str,
        polling_interval: float = 1.0,
        max_inflight: int = 10,
        wait_time_seconds: int = 5,
    ) -> None:
        """Initialize the consumer.

        Args:
            sqs_client: Boto3 SQS client.
            application: Wired pipeline application.
            queue_url: URL of the notification queue.
            polling_interval: Seconds between empty polling cycles.
            max_inflight: Max messages processed concurrently.
            wait_time_seconds: SQS long-polling wait.
        """
        self.sqs_client = sqs_client
        self.application = application
        self.queue_url = queue_url
        self.polling_interval = polling_interval
        self.wait_time_seconds = wait_time_seconds
        self.executor = ThreadPoolExecutor(max_workers=2)
        self.running = False
        self._processing_task: asyncio.Task | None = None
        self._inflight = asyncio.Semaphore(max_inflight)
        self._message_tasks: set[asyncio.Task] = set()

    async def start(self) -> None:
        """Poll the queue until ``stop()`` is called."""
        logger.info("Starting notification consumer for %s", self.queue_url)
        self.running = True

        while self.running:
            received = await self.poll_once()
            if not received:
                await asyncio.sleep(self.polling_interval)

        logger.info("Notification consumer stopped")

    async def stop(self) -> None:
        """Stop polling and let in-flight messages finish."""
        logger.info("Stopping notification consumer")
        self.running = False

        if self._processing_task:
            self._processing_task.cancel()
            try:
                await self._processing_task
            except asyncio.CancelledError:
                pass

        await self.drain()
        self.executor.shutdown(wait=False)

    async def drain(self) -> None:
        """Wait for every in-flight message to finish."""
        tasks = list(self._message_tasks)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def start_background(self) -> asyncio.Task:
        """Start the consumer as a background task."""
        self._processing_task = asyncio.create_task(self.start())
        return self._processing_task

    async def poll_once(self) -> int:
        """Receive one batch and schedule its messages.

        Returns:
            Number of messages received.
        """
        if self._inflight.locked():
            return 0

        loop = asyncio.get_running_loop()
        try:
            response = await loop.run_in_executor(
                self.executor,
                lambda: self.sqs_client.receive_message(
                    QueueUrl=self.queue_url,
                    MaxNumberOfMessages=10,
                    WaitTimeSeconds=self.wait_time_seconds,
                ),
            )
        except Exception as e:
            logger.error("Error receiving from queue %s: %s", self.queue_url, e)
            return 0

        messages = response.get("Messages", [])
        for message in messages:
            await self._inflight.acquire()
            task = asyncio.create_task(self._run_message(message))
            self._message_tasks.add(task)
            task.add_done_callback(self._message_tasks.discard)
        return len(messages)

    async def _run_message(self, message: dict[str, Any]) -> None:
        try:
            await self.handle_message(message)
        finally:
            self._inflight.release()

    async def handle_message(self, message: dict[str, Any]) -> bool:
        """Process one SQS message.

        Returns:
            True if the message was acknowledged (deleted).
        """
        message_id = message.get("MessageId", "unknown")
        receipt_handle = message["ReceiptHandle"]

        try:
            payload = json.loads(message.get("Body", "{}"))
            results = await self.application.handle_payload(payload)
        except (json.JSONDecodeError, InvalidEvent) as e:
            # Redelivering a malformed message cannot succeed.
            logger.error("Dropping malformed message %s: %s", message_id, e)
            await self._delete_message(receipt_handle)
            return True
        except Exception:
            logger.exception("Unexpected error processing message %s; leaving for redelivery", message_id)
            return False

        if any(result.retriable for result in results):
            logger.warning("Message %s failed transiently; leaving for redelivery", message_id)
            return False

        for result in results:
            if not result.ok:
                logger.warning("Message %s failed permanently: %s", message_id, result.message)
        await self._delete_message(receipt_handle)
        return True

    async def _delete_message(self, receipt_handle: str) -> None:
        """Delete a message from the queue."""
        try:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(
                self.executor,
                lambda: self.sqs_client.delete_message(
                    QueueUrl=self.queue_url,
                    ReceiptHandle=receipt_handle,
                ),
            )
        except Exception as e:
            logger.error("Failed to delete message from %s: %s", self.queue_url, e)
