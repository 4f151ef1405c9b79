"""
Process runtime: builds the service graph, starts the bot side and the
scheduler, and tears everything down in order.

Startup:  store -> LLM client -> transport + sender -> authority cache ->
          dispatcher -> queue + workers -> ingress -> connect/pair -> scheduler
Shutdown: stop event -> disconnect transport -> stop scheduler -> close queue
          -> await workers -> close store
"""

import asyncio

from webtracker.commands import CommandDispatcher, CommandServices
from webtracker.config import Settings
from webtracker.db.pool import DatabaseManager
from webtracker.infrastructure.observability.logging import get_logger
from webtracker.ingress.event_handler import IngressHandler
from webtracker.jobs.scheduler import Scheduler, build_scheduler
from webtracker.repositories import Store
from webtracker.services.authority_cache import AuthorityCache
from webtracker.services.command_rate_limiter import CommandRateLimiter
from webtracker.services.gemini_service import GeminiService
from webtracker.services.manifest_service import ManifestService
from webtracker.services.receipt import ReceiptRenderer
from webtracker.services.shipment_service import ShipmentService
from webtracker.services.transport import (
    ChatTransport,
    Sender,
    TransportError,
    load_factory,
)
from webtracker.workers.pool import WorkerDeps, WorkerPool

logger = get_logger(__name__)


class Application:
    def __init__(
        self,
        settings: Settings,
        store: Store | None = None,
        transport: ChatTransport | None = None,
        gemini: GeminiService | None = None,
        renderer: ReceiptRenderer | None = None,
        sender_jitter: tuple[float, float] | None = None,
    ):
        self.settings = settings
        self.store = store or Store(DatabaseManager(settings.DATABASE_PATH, settings.DB_POOL_TIMEOUT))
        self.transport = transport
        self.gemini = gemini
        self.renderer = renderer
        self.sender_jitter = sender_jitter

        self.stop_event = asyncio.Event()
        self.manifests: ManifestService | None = None
        self.shipments: ShipmentService | None = None
        self.sender: Sender | None = None
        self.authority: AuthorityCache | None = None
        self.limiter: CommandRateLimiter | None = None
        self.dispatcher: CommandDispatcher | None = None
        self.queue: asyncio.Queue | None = None
        self.pool: WorkerPool | None = None
        self.ingress: IngressHandler | None = None
        self.scheduler: Scheduler | None = None
        self._sweeper: asyncio.Task | None = None
        self.started = False

    @property
    def bot_enabled(self) -> bool:
        return self.transport is not None

    def bot_state(self) -> dict:
        if self.transport is None:
            return {"enabled": False, "connected": False}
        return {
            "enabled": True,
            "connected": self.transport.is_connected(),
            "paired": bool(self.transport.own_id),
            "queue_depth": self.queue.qsize() if self.queue is not None else 0,
        }

    # =================================================================
    # STARTUP
    # =================================================================

    def _load_transport(self) -> ChatTransport | None:
        if self.transport is not None:
            return self.transport
        if not self.settings.CHAT_TRANSPORT:
            logger.warning("CHAT_TRANSPORT not set, bot side disabled; serving the API only")
            return None

        factory = load_factory(self.settings.CHAT_TRANSPORT)
        transport = factory(self.settings)
        if not isinstance(transport, ChatTransport):
            raise TypeError(f"{self.settings.CHAT_TRANSPORT} did not return a ChatTransport")
        return transport

    def _load_renderer(self) -> ReceiptRenderer | None:
        if self.renderer is not None or not self.settings.RECEIPT_RENDERER:
            return self.renderer
        try:
            return load_factory(self.settings.RECEIPT_RENDERER)()
        except (ImportError, AttributeError, ValueError) as e:
            logger.error(
                "Receipt renderer unavailable, using text waybills",
                renderer=self.settings.RECEIPT_RENDERER,
                error=str(e),
            )
            return None

    async def start(self) -> None:
        settings = self.settings
        logger.info("Application starting", environment=settings.environment)

        await self.store.initialize()

        self.gemini = self.gemini or GeminiService(api_key=settings.GEMINI_API_KEY)
        self.manifests = ManifestService(self.gemini)
        self.shipments = ShipmentService(self.store.shipments, settings.company_prefix())

        self.transport = self._load_transport()
        if self.transport is not None:
            await self._start_bot()

        self.scheduler = build_scheduler(settings, self.store, self.sender)
        self.scheduler.start()
        self.started = True
        logger.info(
            "Application started",
            bot_enabled=self.bot_enabled,
            company=settings.company_name(),
            prefix=settings.company_prefix(),
        )

    async def _start_bot(self) -> None:
        settings = self.settings
        if self.sender_jitter is None:
            self.sender = Sender(self.transport)
        else:
            self.sender = Sender(self.transport, jitter=self.sender_jitter)

        self.authority = AuthorityCache(self.transport, self.store)
        self.limiter = CommandRateLimiter(
            limit=settings.COMMAND_RATE_LIMIT, window_seconds=settings.COMMAND_RATE_WINDOW_SECONDS
        )
        self.dispatcher = CommandDispatcher(
            CommandServices(
                store=self.store,
                sender=self.sender,
                company_name=settings.company_name(),
                company_prefix=settings.company_prefix(),
                owner_phone=settings.owner_phone(),
                admin_timezone=settings.admin_timezone(),
            ),
            limiter=self.limiter,
        )

        self.queue = asyncio.Queue(maxsize=settings.JOB_QUEUE_SIZE)
        self.pool = WorkerPool(
            self.queue,
            WorkerDeps(
                store=self.store,
                sender=self.sender,
                manifests=self.manifests,
                shipments=self.shipments,
                dispatcher=self.dispatcher,
                company_name=settings.company_name(),
                tracking_url=settings.tracking_url,
                renderer=self._load_renderer(),
            ),
            size=settings.WORKER_POOL_SIZE,
        )
        self.pool.start()

        self.ingress = IngressHandler(
            self.queue,
            self.authority,
            self.stop_event,
            allow_private_chat=settings.allow_private_chat(),
        )
        self.transport.add_event_handler(self.ingress.handle)
        self._sweeper = asyncio.create_task(self.limiter.run_sweeper(self.stop_event))

        await self.transport.connect()
        await self._pair_if_needed()

    async def _pair_if_needed(self) -> None:
        if self.transport.own_id:
            return
        phone = self.settings.pairing_phone()
        if not phone:
            logger.warning("Chat session not paired and WHATSAPP_PAIRING_PHONE is empty")
            return
        code = await self.transport.pair_phone(phone)
        logger.info("Pairing code issued, enter it on the phone", phone=phone, code=code)

    # =================================================================
    # SHUTDOWN
    # =================================================================

    async def shutdown(self) -> None:
        logger.info("Application shutting down")
        self.stop_event.set()

        if self.transport is not None:
            try:
                await self.transport.disconnect()
            except TransportError as e:
                logger.error("Error disconnecting chat transport", error=str(e))

        if self.scheduler is not None:
            await self.scheduler.stop()

        if self.pool is not None:
            await self.pool.close()

        if self._sweeper is not None:
            await asyncio.gather(self._sweeper, return_exceptions=True)

        if self.gemini is not None:
            await self.gemini.close()

        await self.store.close()
        self.started = False
        logger.info("Application stopped")
