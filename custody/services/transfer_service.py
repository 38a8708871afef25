"""
Transfer service.

Entry point for user-initiated transactions: unlocks the user's key with
their password, runs the transaction through the orchestrator and hands
the outcome off to bookkeeping (ledger, contact stats, notification) as
background tasks. Once a hash exists the caller always gets it back,
whatever happens to the bookkeeping.
"""

from dataclasses import dataclass
from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from custody.config.networks import NetworkConfig
from custody.models.enums import LedgerKind, LedgerPerspective, TransactionStatus
from custody.services.background import BackgroundTaskRunner
from custody.services.blockchain.orchestrator import TransactionOrchestrator
from custody.services.blockchain.replacement import ReplacementService
from custody.services.blockchain.types import SubmittedTransaction, TransactionIntent
from custody.services.contact_stats_service import ContactStatsUpdater
from custody.services.ledger_service import DualLedgerRecorder
from custody.services.notification_service import NotificationService
from custody.services.swap_service import SwapExecution, SwapService
from custody.services.user_service import UserService
from custody.utils.amounts import from_base_units
from custody.utils.encryption import PrivateKeyVault
from custody.utils.exceptions import AuthenticationError
from custody.utils.security import mask_tx_hash


@dataclass(frozen=True)
class UnlockedWallet:
    """A user's wallet with its key held in memory for one operation."""

    user_id: int
    email: str
    address: str
    private_key: str

    def __repr__(self) -> str:
        return f"<UnlockedWallet(user_id={self.user_id}, address={self.address})>"


class TransferService:
    """Password-gated send / cancel / speed-up / swap with bookkeeping hand-off."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        vault: PrivateKeyVault,
        orchestrator: TransactionOrchestrator,
        replacement: ReplacementService,
        swap_service: SwapService,
        recorder: DualLedgerRecorder,
        contact_stats: ContactStatsUpdater,
        notifier: NotificationService,
        background: BackgroundTaskRunner,
        networks: dict[str, NetworkConfig],
    ) -> None:
        self.session_factory = session_factory
        self.vault = vault
        self.orchestrator = orchestrator
        self.replacement = replacement
        self.swap_service = swap_service
        self.recorder = recorder
        self.contact_stats = contact_stats
        self.notifier = notifier
        self.background = background
        self.networks = networks

    async def unlock_wallet(self, user_id: int, password: str) -> UnlockedWallet:
        """
        Decrypt a user's key.

        Raises:
            NotFoundError: Unknown user
            AuthenticationError: Wrong password
            SecurityError: Key material could not be decrypted
        """
        async with self.session_factory() as session:
            service = UserService(session, self.vault)
            user = await service.get_user(user_id)
            private_key = await service.get_private_key(user_id, password)
            return UnlockedWallet(
                user_id=user.id,
                email=user.email,
                address=user.wallet_address,
                private_key=private_key,
            )

    async def send_with_password(
        self,
        user_id: int,
        password: str,
        to: str,
        value: Decimal | str,
        network: str,
        data: str | None = None,
        gas_limit: int | None = None,
        max_fee_per_gas: int | None = None,
        max_priority_fee_per_gas: int | None = None,
        sender: str | None = None,
        force: bool = False,
    ) -> SubmittedTransaction:
        """
        Send a transaction from the user's custodial wallet.

        Args:
            user_id: Authenticated user
            password: User password (unlocks the key)
            to: Recipient address
            value: Amount in ether units
            network: Network name
            data: Optional calldata
            gas_limit: Optional explicit gas limit
            max_fee_per_gas: Optional explicit max fee (wei)
            max_priority_fee_per_gas: Optional explicit priority fee (wei)
            sender: Optional "from" as sent by the client; must be the user's wallet
            force: Broadcast even if simulation predicts a revert

        Returns:
            SubmittedTransaction (success, failed or pending)
        """
        wallet = await self.unlock_wallet(user_id, password)
        if sender and sender.lower() != wallet.address.lower():
            raise AuthenticationError("Sender address does not belong to this user")

        intent = TransactionIntent(
            sender=wallet.address,
            recipient=to,
            value=value,
            network=network,
            data=data,
            gas_limit=gas_limit,
            max_fee_per_gas=max_fee_per_gas,
            max_priority_fee_per_gas=max_priority_fee_per_gas,
        )
        submitted = await self.orchestrator.execute(intent, wallet.private_key, force=force)
        self.hand_off(wallet, submitted, recipient=submitted.recipient, kind=LedgerKind.TRANSFER)
        return submitted

    async def cancel(
        self,
        user_id: int,
        password: str,
        network: str,
        nonce: int | None = None,
        tx_hash: str | None = None,
    ) -> SubmittedTransaction:
        """Cancel a pending transaction (0-value self-transfer, same nonce)."""
        wallet = await self.unlock_wallet(user_id, password)
        submitted = await self.replacement.cancel(
            wallet.private_key, network, nonce=nonce, tx_hash=tx_hash
        )
        self.hand_off(
            wallet, submitted, recipient=wallet.address, kind=LedgerKind.CANCEL,
            bump_contact=False,
        )
        return submitted

    async def speed_up(
        self, user_id: int, password: str, network: str, tx_hash: str
    ) -> SubmittedTransaction:
        """Resubmit a pending transaction with bumped fees."""
        wallet = await self.unlock_wallet(user_id, password)
        submitted = await self.replacement.speed_up(wallet.private_key, network, tx_hash)
        self.hand_off(wallet, submitted, recipient=submitted.recipient, kind=LedgerKind.SPEED_UP)
        return submitted

    async def swap(
        self,
        user_id: int,
        password: str,
        network: str,
        from_token: str,
        to_token: str,
        amount: Decimal | str,
        force: bool = False,
    ) -> SwapExecution:
        """
        Execute a token swap from the user's wallet.

        A token approval is handed off the moment it is broadcast, so it is
        recorded even when the swap that follows never goes out.
        """
        wallet = await self.unlock_wallet(user_id, password)

        def record_approval(approval: SubmittedTransaction) -> None:
            self.hand_off(
                wallet, approval, recipient=approval.recipient,
                kind=LedgerKind.APPROVAL, bump_contact=False, notify=False,
            )

        execution = await self.swap_service.execute_swap(
            wallet.private_key, network, from_token, to_token, amount,
            force=force, on_approval=record_approval,
        )
        self.hand_off(
            wallet, execution.transaction, recipient=execution.transaction.recipient,
            kind=LedgerKind.SWAP, bump_contact=False,
            token=execution.quote.from_token,
            value=from_base_units(execution.quote.amount_in, execution.quote.from_decimals),
        )
        return execution

    def hand_off(
        self,
        wallet: UnlockedWallet,
        submitted: SubmittedTransaction,
        recipient: str,
        kind: LedgerKind,
        bump_contact: bool = True,
        notify: bool = True,
        token: str = "ETH",
        value: Decimal | None = None,
    ) -> None:
        """
        Schedule post-broadcast bookkeeping.

        Never raises into the caller. Contact stats count successful
        transactions only; for a still-pending one they are left to the
        receipt reconciler, which bumps them when the row leaves pending.
        """
        label = mask_tx_hash(submitted.hash)
        try:
            self.background.submit(
                self.recorder.record(
                    wallet.user_id, wallet.address, recipient, submitted,
                    submitted.network, kind=kind, token=token, value=value,
                ),
                name=f"ledger:{label}",
            )
            if bump_contact and submitted.status is TransactionStatus.SUCCESS:
                self.background.submit(
                    self.contact_stats.bump(
                        wallet.user_id, recipient, submitted, LedgerPerspective.SENT
                    ),
                    name=f"contact-stats:{label}",
                )
            if notify:
                config = self.networks.get(submitted.network)
                summary = NotificationService.build_summary(
                    submitted, config.block_explorer if config else None
                )
                self.background.submit(
                    self.notifier.send_transaction_notification(
                        {"id": wallet.user_id, "email": wallet.email}, summary
                    ),
                    name=f"notify:{label}",
                )
        except Exception as e:
            logger.opt(exception=True).error(f"Failed to schedule bookkeeping for {label}: {e}")
