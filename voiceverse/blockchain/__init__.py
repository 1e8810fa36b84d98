"""
Blockchain Module

Algorand SDK access and the background jobs that settle NFT mints and
transfers.
"""

from .algorand import (
    MICROALGOS_PER_ALGO,
    BlockchainError,
    AlgorandConfig,
    AlgorandClient,
    is_dev_address,
    is_valid_address,
    is_acceptable_wallet_address,
    microalgos_to_algo,
    generate_account,
)


__all__ = [
    "MICROALGOS_PER_ALGO",
    "BlockchainError",
    "AlgorandConfig",
    "AlgorandClient",
    "is_dev_address",
    "is_valid_address",
    "is_acceptable_wallet_address",
    "microalgos_to_algo",
    "generate_account",
]
