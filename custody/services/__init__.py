"""Services package."""

from custody.services.background import BackgroundTaskRunner
from custody.services.contact_service import ContactService
from custody.services.contact_stats_service import ContactStatsUpdater
from custody.services.history_service import TransactionHistoryService
from custody.services.ledger_service import DualLedgerRecorder
from custody.services.notification_service import NotificationService
from custody.services.reconciliation_service import ReconciliationService
from custody.services.swap_service import SwapService
from custody.services.transfer_service import TransferService
from custody.services.user_service import UserService
from custody.services.wallet_service import WalletService

__all__ = [
    "BackgroundTaskRunner",
    "ContactService",
    "ContactStatsUpdater",
    "DualLedgerRecorder",
    "NotificationService",
    "ReconciliationService",
    "SwapService",
    "TransactionHistoryService",
    "TransferService",
    "UserService",
    "WalletService",
]
