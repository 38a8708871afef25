"""
Service wiring.

Builds the object graph once per process from Settings. The endpoint
pool is created here and injected everywhere; there is no module-level
chain state.
"""

from dataclasses import dataclass

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from custody.config.database import create_engine, create_session_factory
from custody.config.settings import Settings
from custody.services.background import BackgroundTaskRunner
from custody.services.blockchain.endpoint_pool import ClientFactory, EndpointPool
from custody.services.blockchain.gas_estimator import GasEstimator
from custody.services.blockchain.nonce_manager import NonceManager, SenderLocks
from custody.services.blockchain.orchestrator import TransactionOrchestrator
from custody.services.blockchain.receipt_service import ReceiptService
from custody.services.blockchain.replacement import ReplacementService
from custody.services.blockchain.retry_executor import RetryExecutor
from custody.services.blockchain.simulator import TransactionSimulator
from custody.services.contact_stats_service import ContactStatsUpdater
from custody.services.ledger_service import DualLedgerRecorder
from custody.services.notification_service import NotificationService
from custody.services.reconciliation_service import ReconciliationService
from custody.services.swap_service import SwapService
from custody.services.transfer_service import TransferService
from custody.services.wallet_service import WalletService
from custody.utils.encryption import PrivateKeyVault


@dataclass
class Container:
    """Process-wide services."""

    settings: Settings
    engine: AsyncEngine | None
    session_factory: async_sessionmaker[AsyncSession]
    vault: PrivateKeyVault
    pool: EndpointPool
    executor: RetryExecutor
    orchestrator: TransactionOrchestrator
    replacement: ReplacementService
    receipts: ReceiptService
    wallet: WalletService
    swap: SwapService
    recorder: DualLedgerRecorder
    contact_stats: ContactStatsUpdater
    notifier: NotificationService
    background: BackgroundTaskRunner
    transfers: TransferService
    reconciliation: ReconciliationService

    async def close(self) -> None:
        """Drain background work and dispose the engine."""
        await self.background.drain()
        if self.engine is not None:
            await self.engine.dispose()
        logger.info("Container closed")


def build_container(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    client_factory: ClientFactory | None = None,
) -> Container:
    """
    Build all services from settings.

    Args:
        settings: Application settings
        session_factory: Override the database session factory (tests)
        client_factory: Override chain client construction (tests)

    Returns:
        Wired Container
    """
    engine = None
    if session_factory is None:
        engine = create_engine(settings)
        session_factory = create_session_factory(engine)

    vault = PrivateKeyVault(settings.encryption_key)
    pool = EndpointPool(
        settings.networks,
        client_factory=client_factory,
        timeout=settings.rpc_timeout_seconds,
    )
    executor = RetryExecutor(pool, max_attempts=settings.rpc_max_attempts)
    nonce_manager = NonceManager(executor)
    orchestrator = TransactionOrchestrator(
        executor=executor,
        gas_estimator=GasEstimator(executor, settings.gas_buffer_percent),
        simulator=TransactionSimulator(executor),
        nonce_manager=nonce_manager,
        sender_locks=SenderLocks(),
        receipt_timeout=settings.receipt_timeout_seconds,
        poll_interval=settings.receipt_poll_interval_seconds,
    )
    replacement = ReplacementService(orchestrator, settings.fee_bump_percent)
    swap = SwapService(executor, orchestrator)
    recorder = DualLedgerRecorder(session_factory)
    contact_stats = ContactStatsUpdater(session_factory)
    notifier = NotificationService(settings.notification_webhook_url)
    background = BackgroundTaskRunner()

    transfers = TransferService(
        session_factory=session_factory,
        vault=vault,
        orchestrator=orchestrator,
        replacement=replacement,
        swap_service=swap,
        recorder=recorder,
        contact_stats=contact_stats,
        notifier=notifier,
        background=background,
        networks=settings.networks,
    )

    return Container(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        vault=vault,
        pool=pool,
        executor=executor,
        orchestrator=orchestrator,
        replacement=replacement,
        receipts=ReceiptService(executor, nonce_manager),
        wallet=WalletService(executor, settings.networks),
        swap=swap,
        recorder=recorder,
        contact_stats=contact_stats,
        notifier=notifier,
        background=background,
        transfers=transfers,
        reconciliation=ReconciliationService(session_factory, executor, contact_stats),
    )
