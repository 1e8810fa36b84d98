"""
Algorand API Routes

Wallet connection and the voice NFT marketplace. Minting and transfers
are recorded as pending Algorand transactions and settled by background
jobs.
"""

import logging
import secrets
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Path, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from ..base import (
    AuthorizationError,
    ErrorCode,
    NotFoundError,
    ServiceError,
    ValidationError,
    success_response,
)
from ..dependencies import (
    get_algorand,
    get_current_user,
    get_db_session,
    load_owned_audio,
)
from ..serializers import audio_file_to_response, iso, user_summary
from ...blockchain import (
    AlgorandClient,
    BlockchainError,
    is_acceptable_wallet_address,
)
from ...blockchain.algorand import DEV_ADDRESS_PREFIX
from ...blockchain.minting import process_nft_minting, process_nft_transfer
from ...database.models import (
    NFT,
    AlgorandTransaction,
    AlgorandTransactionStatus,
    AlgorandTransactionType,
    AlgorandWallet,
    BlockchainStatus,
    User,
)
from ...database.repositories import (
    AlgorandTransactionRepository,
    AlgorandWalletRepository,
    NFTRepository,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/algorand", tags=["Algorand"])


MAX_ROYALTY = 30.0
DEFAULT_ROYALTY = 10.0
MARKETPLACE_FILTERS = ("all", "trending", "featured")
MARKETPLACE_SORTS = ("priceAsc", "priceDesc", "newest", "likes")


# =============================================================================
# Request Models
# =============================================================================

class ConnectWalletRequest(BaseModel):
    walletAddress: str
    userId: Optional[str] = None


class CreateNFTRequest(BaseModel):
    title: Optional[str] = Field(None, max_length=200)
    audioFileId: Optional[str] = None
    imageUrl: Optional[str] = None
    price: Optional[float] = Field(None, gt=0)
    description: Optional[str] = None
    royalty: Optional[float] = None
    duration: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    userId: Optional[str] = None


class ListNFTRequest(BaseModel):
    nftId: str
    price: float = Field(..., gt=0)
    userId: Optional[str] = None


class BuyNFTRequest(BaseModel):
    nftId: str
    buyerId: Optional[str] = None


class LikeNFTRequest(BaseModel):
    nftId: str
    userId: Optional[str] = None


# =============================================================================
# Helpers
# =============================================================================

def require_self(user: User, user_id: Optional[str]) -> str:
    """Body user ids must name the authenticated user."""
    if user_id and user_id != user.id:
        raise AuthorizationError("You can only act on your own account")
    return user.id


def wallet_to_response(wallet: AlgorandWallet, balance: Optional[float] = None) -> Dict[str, Any]:
    return {
        "userId": wallet.user_id,
        "address": wallet.address,
        "balance": balance,
        "currency": "ALGO",
        "connectedAt": iso(wallet.created_at),
        "updatedAt": iso(wallet.updated_at),
    }


def nft_to_response(nft: NFT) -> Dict[str, Any]:
    return {
        "id": nft.id,
        "title": nft.title,
        "description": nft.description,
        "creator": user_summary(nft.creator),
        "owner": user_summary(nft.owner),
        "creatorId": nft.creator_id,
        "ownerId": nft.owner_id,
        "audioFile": audio_file_to_response(nft.audio_file),
        "imageUrl": nft.image_url,
        "price": nft.price,
        "currency": nft.currency,
        "royalty": nft.royalty,
        "isForSale": nft.is_for_sale,
        "likes": nft.likes_count,
        "tags": [tag.name for tag in nft.tags],
        "metadata": nft.metadata_json,
        "assetId": nft.asset_id,
        "blockchainStatus": nft.blockchain_status,
        "createdAt": iso(nft.created_at),
    }


def transaction_to_response(record: AlgorandTransaction) -> Dict[str, Any]:
    return {
        "id": record.id,
        "nftId": record.nft_id,
        "type": record.type,
        "fromAddress": record.from_address,
        "toAddress": record.to_address,
        "amount": record.amount,
        "status": record.status,
        "transactionHash": record.transaction_hash,
        "errorMessage": record.error_message,
        "createdAt": iso(record.created_at),
        "completedAt": iso(record.completed_at),
    }


async def load_nft(nfts: NFTRepository, nft_id: str) -> NFT:
    nft = await nfts.get_by_id(nft_id)
    if not nft:
        raise NotFoundError("NFT", nft_id)
    return nft


async def wallet_balance(algorand: AlgorandClient, address: str) -> float:
    try:
        return await algorand.balance(address)
    except BlockchainError as e:
        raise ServiceError(e.message, code=ErrorCode.DEPENDENCY_FAILURE, details=e.details)


# =============================================================================
# Wallets
# =============================================================================

@router.post("/wallet/connect", summary="Connect an Algorand wallet")
async def connect_wallet(
    request: ConnectWalletRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    algorand: AlgorandClient = Depends(get_algorand),
):
    user_id = require_self(user, request.userId)
    address = request.walletAddress.strip()
    if not is_acceptable_wallet_address(address):
        raise ValidationError("Invalid Algorand wallet address", field="walletAddress")

    balance = await wallet_balance(algorand, address)

    wallet = await AlgorandWalletRepository(db).upsert(user_id, address)
    await db.commit()

    logger.info(f"User {user_id} connected wallet {address}")
    return success_response(wallet_to_response(wallet, balance), message="Wallet connected successfully")


@router.get("/wallet/{user_id}", summary="Get a user's wallet")
async def get_wallet(
    user_id: str = Path(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    algorand: AlgorandClient = Depends(get_algorand),
):
    wallet = await AlgorandWalletRepository(db).get_by_user(user_id)
    if not wallet:
        raise NotFoundError("Wallet", user_id, message="Wallet not found for this user")

    balance = await wallet_balance(algorand, wallet.address)
    return success_response(wallet_to_response(wallet, balance))


# =============================================================================
# Minting and Trading
# =============================================================================

@router.post("/nft/create", status_code=201, summary="Create a voice NFT")
async def create_nft(
    request: CreateNFTRequest,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    user_id = require_self(user, request.userId)
    if not (request.title and request.audioFileId and request.imageUrl and request.price):
        raise ValidationError("Missing required fields")

    royalty = DEFAULT_ROYALTY if request.royalty is None else request.royalty
    if royalty < 0 or royalty > MAX_ROYALTY:
        raise ValidationError("Royalty percentage must be between 0% and 30%", field="royalty")

    audio = await load_owned_audio(db, request.audioFileId, user)

    wallets = AlgorandWalletRepository(db)
    wallet = await wallets.get_by_user(user_id)
    if wallet is None:
        # Creators without a connected wallet mint to a development wallet
        wallet = await wallets.create(
            user_id=user_id,
            address=f"{DEV_ADDRESS_PREFIX}_{secrets.token_hex(6).upper()}",
        )

    nfts = NFTRepository(db)
    nft = await nfts.create(
        title=request.title,
        description=request.description,
        creator_id=user_id,
        owner_id=user_id,
        audio_file_id=audio.id,
        image_url=request.imageUrl,
        price=request.price,
        royalty=royalty,
        is_for_sale=True,
        blockchain_status=BlockchainStatus.PENDING.value,
        metadata_json={
            "name": request.title,
            "description": request.description,
            "image": request.imageUrl,
            "properties": {
                "audioFileId": audio.id,
                "creator": user_id,
                "royalty": royalty,
                "duration": request.duration or "00:30",
                "tags": request.tags,
            },
        },
    )
    await AlgorandTransactionRepository(db).create(
        nft_id=nft.id,
        type=AlgorandTransactionType.MINT.value,
        from_address=wallet.address,
        to_address=wallet.address,
        amount=0,
        status=AlgorandTransactionStatus.PENDING.value,
    )
    await nfts.add_listing(nft.id, user_id, request.price)
    await nfts.add_tags(nft, request.tags)
    await db.commit()
    await db.refresh(nft, ["creator", "owner", "audio_file", "tags"])

    background_tasks.add_task(process_nft_minting, nft.id)

    logger.info(f"NFT {nft.id} created by user {user_id}, minting queued")
    return success_response(
        nft_to_response(nft),
        message="NFT creation initiated",
    )


@router.post("/nft/list", summary="List an NFT for sale")
async def list_nft(
    request: ListNFTRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    user_id = require_self(user, request.userId)
    nfts = NFTRepository(db)
    nft = await load_nft(nfts, request.nftId)
    if nft.owner_id != user_id:
        raise AuthorizationError("You do not own this NFT")

    nft.price = request.price
    nft.is_for_sale = True
    listing = await nfts.add_listing(nft.id, user_id, request.price)
    await db.commit()

    return success_response(
        {"nft": nft_to_response(nft), "listingId": listing.id},
        message="NFT listed for sale successfully",
    )


@router.post("/nft/buy", summary="Buy an NFT")
async def buy_nft(
    request: BuyNFTRequest,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    buyer_id = require_self(user, request.buyerId)
    nfts = NFTRepository(db)
    nft = await load_nft(nfts, request.nftId)

    if not nft.is_for_sale:
        raise ValidationError("This NFT is not for sale")
    if nft.owner_id == buyer_id:
        raise ValidationError("You already own this NFT")

    wallets = AlgorandWalletRepository(db)
    buyer_wallet = await wallets.get_by_user(buyer_id)
    if not buyer_wallet:
        raise NotFoundError("Wallet", buyer_id, message="Buyer wallet not found")
    seller_wallet = await wallets.get_by_user(nft.owner_id)
    if not seller_wallet:
        raise NotFoundError("Wallet", nft.owner_id, message="Seller wallet not found")

    seller_id = nft.owner_id
    sale = await nfts.add_sale(
        nft_id=nft.id,
        seller_id=seller_id,
        buyer_id=buyer_id,
        price=nft.price,
        currency=nft.currency,
    )
    transfer = await AlgorandTransactionRepository(db).create(
        nft_id=nft.id,
        type=AlgorandTransactionType.TRANSFER.value,
        from_address=seller_wallet.address,
        to_address=buyer_wallet.address,
        amount=nft.price,
        status=AlgorandTransactionStatus.PENDING.value,
    )
    nft.owner_id = buyer_id
    nft.is_for_sale = False
    await nfts.close_active_listings(nft.id)
    await db.commit()

    background_tasks.add_task(process_nft_transfer, transfer.id)

    logger.info(f"NFT {nft.id} sold by {seller_id} to {buyer_id}")
    return success_response(
        {
            "transaction": {
                "id": sale.id,
                "nftId": sale.nft_id,
                "sellerId": sale.seller_id,
                "buyerId": sale.buyer_id,
                "price": sale.price,
                "currency": sale.currency,
                "createdAt": iso(sale.created_at),
            },
            "algorandTransactionId": transfer.id,
            "status": "Your purchase is being processed on the Algorand blockchain. This may take a few minutes.",
        },
        message="NFT purchase initiated",
    )


# =============================================================================
# Queries
# =============================================================================

@router.get("/nft/marketplace", summary="Browse the marketplace")
async def marketplace(
    filter: str = Query("all"),
    sortBy: str = Query("likes"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db_session),
):
    if filter not in MARKETPLACE_FILTERS:
        raise ValidationError(f"Invalid filter: {filter}", field="filter")
    if sortBy not in MARKETPLACE_SORTS:
        raise ValidationError(f"Invalid sort: {sortBy}", field="sortBy")

    items = await NFTRepository(db).list_marketplace(
        filter=filter,
        sort_by=sortBy,
        skip=(page - 1) * limit,
        limit=limit,
    )
    return success_response([nft_to_response(nft) for nft in items])


@router.get("/nft/user/{user_id}", summary="NFTs owned by a user")
async def list_owned(
    user_id: str = Path(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    items = await NFTRepository(db).list_owned(user_id)
    return success_response([nft_to_response(nft) for nft in items])


@router.get("/nft/created/{user_id}", summary="NFTs created by a user")
async def list_created(
    user_id: str = Path(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    items = await NFTRepository(db).list_created(user_id)
    return success_response([nft_to_response(nft) for nft in items])


@router.post("/nft/like", summary="Like or unlike an NFT")
async def like_nft(
    request: LikeNFTRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    user_id = require_self(user, request.userId)
    nfts = NFTRepository(db)
    nft = await load_nft(nfts, request.nftId)

    liked = await nfts.toggle_like(nft, user_id)
    await db.commit()
    return success_response(
        {"isLiked": liked, "likes": nft.likes_count},
        message="NFT liked successfully" if liked else "NFT unliked successfully",
    )


@router.get("/nft/{nft_id}", summary="Get an NFT")
async def get_nft(
    nft_id: str = Path(...),
    db: AsyncSession = Depends(get_db_session),
):
    nft = await load_nft(NFTRepository(db), nft_id)
    return success_response(nft_to_response(nft))


@router.get("/nft/{nft_id}/transactions", summary="Algorand transactions of an NFT")
async def list_nft_transactions(
    nft_id: str = Path(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    nft = await load_nft(NFTRepository(db), nft_id)
    records = await AlgorandTransactionRepository(db).list_by_nft(nft.id)
    return success_response([transaction_to_response(r) for r in records])


@router.get("/transaction/{transaction_id}", summary="Get an Algorand transaction")
async def get_transaction(
    transaction_id: str = Path(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    record = await AlgorandTransactionRepository(db).get_by_id(transaction_id)
    if not record:
        raise NotFoundError("Transaction", transaction_id)
    return success_response(transaction_to_response(record))
