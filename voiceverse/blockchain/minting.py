"""
NFT Minting Jobs

Background jobs that settle the pending Algorand transactions recorded
by the NFT endpoints. Custodial signing is not available, so a settled
transaction gets a placeholder hash and the NFT a generated asset id.
"""

import logging
import random
import time
from datetime import datetime

from ..database import get_session
from ..database.models import (
    AlgorandTransactionStatus,
    AlgorandTransactionType,
    BlockchainStatus,
)
from ..database.repositories import (
    AlgorandTransactionRepository,
    AlgorandWalletRepository,
    NFTRepository,
)


logger = logging.getLogger(__name__)


def placeholder_transaction_hash() -> str:
    return f"mock_transaction_hash_{int(time.time() * 1000)}"


class MintingError(Exception):
    """A mint or transfer could not be settled."""


async def process_nft_minting(nft_id: str) -> bool:
    """Complete the pending MINT transaction of an NFT."""
    try:
        async with get_session() as session:
            nft = await NFTRepository(session).get_by_id(nft_id)
            if nft is None:
                raise MintingError("NFT not found")

            wallet = await AlgorandWalletRepository(session).get_by_user(nft.creator_id)
            if wallet is None:
                raise MintingError("Creator wallet not found")

            transactions = AlgorandTransactionRepository(session)
            pending = await transactions.get_pending(nft.id, AlgorandTransactionType.MINT.value)
            if pending is None:
                raise MintingError("Pending mint transaction not found")

            pending.status = AlgorandTransactionStatus.COMPLETED.value
            pending.transaction_hash = placeholder_transaction_hash()
            pending.completed_at = datetime.utcnow()

            nft.asset_id = random.randint(1, 999_999_999)
            nft.blockchain_status = BlockchainStatus.MINTED.value

        logger.info(f"NFT {nft_id} minted")
        return True

    except MintingError as e:
        logger.error(f"Error processing NFT minting for {nft_id}: {e}")
        async with get_session() as session:
            transactions = AlgorandTransactionRepository(session)
            pending = await transactions.get_pending(nft_id, AlgorandTransactionType.MINT.value)
            if pending is not None:
                pending.status = AlgorandTransactionStatus.FAILED.value
                pending.error_message = str(e)
            nft = await NFTRepository(session).get_by_id(nft_id)
            if nft is not None:
                nft.blockchain_status = BlockchainStatus.FAILED.value
        return False


async def process_nft_transfer(transaction_id: str) -> bool:
    """Complete a pending TRANSFER transaction."""
    async with get_session() as session:
        transactions = AlgorandTransactionRepository(session)
        record = await transactions.get_by_id(transaction_id)
        if record is None or record.status != AlgorandTransactionStatus.PENDING.value:
            logger.error(f"No pending transfer transaction {transaction_id}")
            if record is not None:
                record.status = AlgorandTransactionStatus.FAILED.value
                record.error_message = "Valid pending transaction not found"
            return False

        record.status = AlgorandTransactionStatus.COMPLETED.value
        record.transaction_hash = placeholder_transaction_hash()
        record.completed_at = datetime.utcnow()

    logger.info(f"NFT transfer {transaction_id} completed")
    return True


__all__ = [
    "MintingError",
    "placeholder_transaction_hash",
    "process_nft_minting",
    "process_nft_transfer",
]
