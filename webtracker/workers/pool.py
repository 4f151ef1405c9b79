"""
Fixed-size worker pool over the bounded job queue.

Each worker handles one Job at a time: command dispatch, or the manifest path
(pre-filter, parse, dedupe, persist, receipt). A failure inside one Job is
logged and the worker moves on to the next.
"""

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass

from webtracker.commands.base import CommandContext, presents_as_command
from webtracker.commands.dispatcher import CommandDispatcher
from webtracker.db.helpers import DatabaseError
from webtracker.infrastructure.observability.logging import get_logger
from webtracker.infrastructure.observability.vitals import vitals
from webtracker.models.domain.manifest_domain import Job
from webtracker.models.domain.shipment_domain import Shipment
from webtracker.repositories import Store
from webtracker.services.label_parser import keyword_classes
from webtracker.services.manifest_service import ManifestService
from webtracker.services.receipt import ReceiptRenderer, waybill
from webtracker.services.shipment_service import ShipmentService
from webtracker.services.transport import Sender

logger = get_logger(__name__)

# Queue sentinel; one per worker closes the pool
STOP = None

MANIFEST_CLASSES = 4
HINT_CLASSES = 3

HINT_MESSAGE = (
    "📦 *Looks like a shipment!*\n\n"
    "_To register it, send each detail on its own labelled line:_\n\n"
    "Sender Name: John Doe\n"
    "Sender Country: UK\n"
    "Receiver Name: Jane Smith\n"
    "Receiver Phone: +234 800 123 4567\n"
    "Receiver Address: 123 Main St, Lagos\n"
    "Receiver Country: Nigeria"
)
INCOMPLETE_MESSAGE = "⚠️ *Manifest Incomplete*\nMissing:\n• {missing}"
DUPLICATE_MESSAGE = "⚠️ *Duplicate Found*\nID: *{tracking_id}*"
SAVE_FAILED_MESSAGE = "❌ System Error: Saving failed"
CREATED_MESSAGE = "✅ *Manifest Created*\nID: *{tracking_id}*"
TRACK_MESSAGE = "📍 *Track your package*\nID: *{tracking_id}*\n{url}"


@dataclass
class WorkerDeps:
    store: Store
    sender: Sender
    manifests: ManifestService
    shipments: ShipmentService
    dispatcher: CommandDispatcher
    company_name: str
    tracking_url: Callable[[str], str]
    renderer: ReceiptRenderer | None = None


class WorkerPool:
    def __init__(self, queue: asyncio.Queue, deps: WorkerDeps, size: int = 5):
        self.queue = queue
        self.deps = deps
        self.size = size
        self._tasks: list[asyncio.Task] = []
        # (user_jid, recipient_phone) -> [lock, holders]
        self._dedupe_locks: dict[tuple[str, str], list] = {}

    def start(self) -> None:
        for worker_id in range(1, self.size + 1):
            self._tasks.append(asyncio.create_task(self._run(worker_id), name=f"worker-{worker_id}"))
        logger.info("Worker pool started", workers=self.size)

    async def close(self) -> None:
        """Send one sentinel per worker and wait for all of them to drain."""
        for _ in self._tasks:
            await self.queue.put(STOP)
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        logger.info("Worker pool stopped")

    async def _run(self, worker_id: int) -> None:
        logger.info("Worker started", worker_id=worker_id)
        while True:
            job = await self.queue.get()
            try:
                if job is STOP:
                    return
                await self.process(job)
            except Exception as e:
                logger.error(
                    "Job failed",
                    worker_id=worker_id,
                    chat=job.chat_id,
                    message_id=job.message_id,
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=True,
                )
            finally:
                self.queue.task_done()

    # =================================================================
    # PER-JOB FLOW
    # =================================================================

    @asynccontextmanager
    async def _dedupe_guard(self, key: tuple[str, str]) -> AsyncIterator[None]:
        """Serialise the duplicate check and insert for one sender and recipient."""
        entry = self._dedupe_locks.setdefault(key, [asyncio.Lock(), 0])
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                del self._dedupe_locks[key]

    async def _reply(self, job: Job, text: str) -> None:
        await self.deps.sender.reply(job.chat_id, job.sender_id, text, job.message_id)

    async def process(self, job: Job) -> None:
        vitals.inc_jobs()

        if presents_as_command(job.text) and await self._handle_command(job):
            return

        classes = keyword_classes(job.text)
        if len(classes) < HINT_CLASSES:
            return
        if len(classes) < MANIFEST_CLASSES:
            logger.info("Near-manifest message, sending hint", chat=job.chat_id, classes=sorted(classes))
            await self._reply(job, HINT_MESSAGE)
            return

        manifest = await self.deps.manifests.parse(job.text)
        if not manifest.is_complete:
            vitals.inc_parse_failure()
            await self._reply(job, INCOMPLETE_MESSAGE.format(missing="\n• ".join(manifest.missing_fields)))
            return
        vitals.inc_parse_success()

        async with self._dedupe_guard((job.sender_id, manifest.receiver_phone)):
            existing = await self.deps.store.shipments.find_similar(
                job.sender_id, manifest.receiver_phone
            )
            if existing:
                vitals.inc_duplicate()
                logger.info("Duplicate manifest", tracking_id=existing, chat=job.chat_id)
                await self._reply(job, DUPLICATE_MESSAGE.format(tracking_id=existing))
                return

            try:
                shipment = await self.deps.shipments.create_from_manifest(
                    manifest, user_jid=job.sender_id, sender_phone=job.sender_phone
                )
            except DatabaseError as e:
                vitals.inc_insert_failure()
                logger.error("Failed to save shipment", chat=job.chat_id, error=str(e))
                await self._reply(job, SAVE_FAILED_MESSAGE)
                return
        vitals.inc_insert_success()

        await self.send_receipt(job, shipment)

    async def _handle_command(self, job: Job) -> bool:
        ctx = CommandContext(
            chat_id=job.chat_id,
            sender_id=job.sender_id,
            sender_phone=job.sender_phone,
            is_admin=job.is_admin,
        )
        result = await self.deps.dispatcher.dispatch(ctx, job.text)
        if result is None:
            return False

        await self._reply(job, result.message)
        if result.edit_id:
            shipment = await self.deps.store.shipments.get(result.edit_id)
            if shipment is not None:
                await self.send_receipt(job, shipment)
        return True

    # =================================================================
    # RECEIPTS
    # =================================================================

    async def _render(self, shipment: Shipment, language: str) -> bytes | None:
        renderer = self.deps.renderer
        if renderer is None:
            return None
        try:
            return await asyncio.to_thread(
                renderer.render, shipment, self.deps.company_name, language
            )
        except Exception as e:
            logger.error(
                "Receipt render failed, falling back to text",
                tracking_id=shipment.tracking_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

    async def send_receipt(self, job: Job, shipment: Shipment) -> None:
        try:
            language = await self.deps.store.preferences.get_language(job.sender_id)
        except DatabaseError:
            language = "en"

        created = CREATED_MESSAGE.format(tracking_id=shipment.tracking_id)
        image = await self._render(shipment, language)
        if image:
            await self.deps.sender.send_image(
                job.chat_id, image, caption=created, sender_id=job.sender_id, quoted_id=job.message_id
            )
        else:
            text = waybill(shipment, self.deps.company_name, language)
            await self._reply(job, f"{created}\n\n```\n{text}\n```")

        url = self.deps.tracking_url(shipment.tracking_id)
        if url:
            await self.deps.sender.send(
                job.chat_id, TRACK_MESSAGE.format(tracking_id=shipment.tracking_id, url=url)
            )
