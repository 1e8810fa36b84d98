"""
Algorand Client

Thin async wrapper over py-algorand-sdk for the NFT features: account
lookups, asset creation, opt-in and transfer. The SDK is blocking, so
calls run in a worker thread.
"""

import asyncio
import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from algosdk import account, encoding, error, mnemonic, transaction
from algosdk.v2client import algod, indexer


logger = logging.getLogger(__name__)


MICROALGOS_PER_ALGO = 1_000_000
NFT_UNIT_NAME = "VOICE"
NFT_URL_TEMPLATE = "https://voiceverse.io/nft/{id}"
CONFIRMATION_ROUNDS = 10

# Wallets whose address starts with this prefix are development wallets
DEV_ADDRESS_PREFIX = "ALGO"
DEV_ACCOUNT_INFO = {
    "amount": 1000 * MICROALGOS_PER_ALGO,
    "min-balance": 100000,
    "pending-rewards": 0,
    "rewards": 0,
    "round": 0,
    "status": "Offline",
    "total-assets-opted-in": 0,
    "total-created-assets": 0,
}

SDK_ERRORS = (
    error.AlgodHTTPError,
    error.IndexerHTTPError,
    error.ConfirmationTimeoutError,
    OSError,
)


class BlockchainError(Exception):
    """Algorand request failed."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


@dataclass
class AlgorandConfig:
    """Algod and indexer endpoints."""

    algod_server: str = "https://testnet-api.algonode.cloud"
    algod_token: str = ""
    indexer_server: str = "https://testnet-idx.algonode.cloud"
    api_key: Optional[str] = None

    @classmethod
    def from_env(cls) -> "AlgorandConfig":
        return cls(
            algod_server=os.getenv("ALGOD_SERVER", cls.algod_server),
            algod_token=os.getenv("ALGOD_TOKEN", ""),
            indexer_server=os.getenv("INDEXER_SERVER", cls.indexer_server),
            api_key=os.getenv("ALGORAND_API_KEY"),
        )

    @property
    def headers(self) -> Dict[str, str]:
        return {"X-API-Key": self.api_key} if self.api_key else {}


def is_dev_address(address: str) -> bool:
    return address.startswith(DEV_ADDRESS_PREFIX)


def is_valid_address(address: str) -> bool:
    return encoding.is_valid_address(address)


def is_acceptable_wallet_address(address: str) -> bool:
    """Development addresses are accepted alongside real ones."""
    return bool(address) and (is_dev_address(address) or is_valid_address(address))


def microalgos_to_algo(amount: int) -> float:
    return amount / MICROALGOS_PER_ALGO


def generate_account() -> Dict[str, str]:
    """Generate an account and its 25-word mnemonic."""
    private_key, address = account.generate_account()
    return {"address": address, "mnemonic": mnemonic.from_private_key(private_key)}


class AlgorandClient:
    """Algorand SDK helpers used by the NFT endpoints."""

    def __init__(self, config: Optional[AlgorandConfig] = None):
        self.config = config or AlgorandConfig.from_env()
        self._algod: Optional[algod.AlgodClient] = None
        self._indexer: Optional[indexer.IndexerClient] = None

    @property
    def algod(self) -> algod.AlgodClient:
        if self._algod is None:
            self._algod = algod.AlgodClient(
                self.config.algod_token,
                self.config.algod_server,
                headers=self.config.headers,
            )
        return self._algod

    @property
    def indexer(self) -> indexer.IndexerClient:
        if self._indexer is None:
            self._indexer = indexer.IndexerClient(
                self.config.algod_token,
                self.config.indexer_server,
                headers=self.config.headers,
            )
        return self._indexer

    async def _call(self, description: str, func, *args, **kwargs) -> Any:
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except SDK_ERRORS as e:
            logger.error(f"Algorand {description} failed: {e}")
            raise BlockchainError(f"Failed to {description}", details={"error": str(e)})

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def account_info(self, address: str) -> Dict[str, Any]:
        """Account information; development wallets get a fixed 1000 ALGO balance."""
        if is_dev_address(address):
            return dict(DEV_ACCOUNT_INFO, address=address)
        return await self._call("get account info", self.algod.account_info, address)

    async def balance(self, address: str) -> float:
        info = await self.account_info(address)
        return microalgos_to_algo(int(info.get("amount", 0)))

    async def account_assets(self, address: str) -> Dict[str, Any]:
        return await self._call("get account assets", self.indexer.lookup_account_assets, address)

    async def asset_info(self, asset_id: int) -> Dict[str, Any]:
        return await self._call("get asset info", self.algod.asset_info, asset_id)

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    def _submit(self, txn: transaction.Transaction, signer_mnemonic: str) -> Dict[str, Any]:
        private_key = mnemonic.to_private_key(signer_mnemonic)
        signed = txn.sign(private_key)
        tx_id = self.algod.send_transaction(signed)
        confirmed = transaction.wait_for_confirmation(self.algod, tx_id, CONFIRMATION_ROUNDS)
        return {"txId": tx_id, "confirmed": confirmed}

    def _create_nft_asset(self, nft: Dict[str, Any], creator_address: str, creator_mnemonic: str) -> Dict[str, Any]:
        params = self.algod.suggested_params()
        txn = transaction.AssetCreateTxn(
            sender=creator_address,
            sp=params,
            total=1,
            decimals=0,
            default_frozen=False,
            unit_name=NFT_UNIT_NAME,
            asset_name=nft["title"][:32],
            url=NFT_URL_TEMPLATE.format(id=nft["id"]),
            manager=creator_address,
            reserve=creator_address,
            freeze=creator_address,
            clawback=creator_address,
            note=json.dumps(nft.get("metadata") or {}).encode(),
        )
        result = self._submit(txn, creator_mnemonic)
        return {"txId": result["txId"], "assetId": result["confirmed"].get("asset-index")}

    def _transfer(self, asset_id: int, sender: str, receiver: str, amount: int, signer_mnemonic: str) -> Dict[str, Any]:
        params = self.algod.suggested_params()
        txn = transaction.AssetTransferTxn(
            sender=sender,
            sp=params,
            receiver=receiver,
            amt=amount,
            index=asset_id,
        )
        return {"txId": self._submit(txn, signer_mnemonic)["txId"]}

    async def create_nft_asset(
        self,
        nft: Dict[str, Any],
        creator_address: str,
        creator_mnemonic: str,
    ) -> Dict[str, Any]:
        """
        Create a single-unit asset for an NFT.

        ``nft`` carries ``id``, ``title`` and ``metadata``; the metadata
        is stored in the transaction note.
        """
        return await self._call(
            "create NFT asset", self._create_nft_asset, nft, creator_address, creator_mnemonic
        )

    async def transfer_nft(
        self,
        asset_id: int,
        from_address: str,
        to_address: str,
        sender_mnemonic: str,
    ) -> Dict[str, Any]:
        return await self._call(
            "transfer NFT", self._transfer, asset_id, from_address, to_address, 1, sender_mnemonic
        )

    async def opt_in(self, asset_id: int, address: str, receiver_mnemonic: str) -> Dict[str, Any]:
        """Opt an account in to an asset, required before it can receive it."""
        return await self._call(
            "opt in to asset", self._transfer, asset_id, address, address, 0, receiver_mnemonic
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
