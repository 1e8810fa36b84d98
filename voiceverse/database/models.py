"""
Database Models

SQLAlchemy ORM models for all VoiceVerse entities.
"""

import enum
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import (
    DateTime,
    String,
    Boolean,
    Text,
    Integer,
    Float,
    BigInteger,
    ForeignKey,
    Index,
    JSON,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin


# =============================================================================
# Enumerations
# =============================================================================


class TransformationStatus(str, enum.Enum):
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class OperationStatus(str, enum.Enum):
    QUEUED = "QUEUED"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    PARTIAL = "PARTIAL"


class Difficulty(str, enum.Enum):
    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"


class BlockchainStatus(str, enum.Enum):
    PENDING = "PENDING"
    MINTED = "MINTED"
    FAILED = "FAILED"


class ListingStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    SOLD = "SOLD"
    CANCELED = "CANCELED"


class AlgorandTransactionType(str, enum.Enum):
    MINT = "MINT"
    TRANSFER = "TRANSFER"


class AlgorandTransactionStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class SubscriptionStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    PAST_DUE = "PAST_DUE"
    CANCELED = "CANCELED"
    INCOMPLETE = "INCOMPLETE"
    INCOMPLETE_EXPIRED = "INCOMPLETE_EXPIRED"
    TRIALING = "TRIALING"
    UNPAID = "UNPAID"


class PlanType(str, enum.Enum):
    PRO = "PRO"
    PREMIUM = "PREMIUM"


class BillingPeriod(str, enum.Enum):
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


class InvoiceStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    OPEN = "OPEN"
    PAID = "PAID"
    UNCOLLECTIBLE = "UNCOLLECTIBLE"
    VOID = "VOID"


# =============================================================================
# User Models
# =============================================================================


class User(Base, TimestampMixin):
    """User account model."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    firebase_uid: Mapped[Optional[str]] = mapped_column(String(128), unique=True, nullable=True)

    # Profile
    display_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    avatar: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    bio: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    preferred_language: Mapped[str] = mapped_column(String(10), default="en")

    # Status
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    is_public: Mapped[bool] = mapped_column(Boolean, default=True)
    is_pro: Mapped[bool] = mapped_column(Boolean, default=False)

    # Social counters
    followers_count: Mapped[int] = mapped_column(Integer, default=0)
    following_count: Mapped[int] = mapped_column(Integer, default=0)

    # Billing
    stripe_customer_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Password reset
    reset_password_token: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    reset_password_expires: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        Index("ix_users_email", "email"),
        Index("ix_users_firebase_uid", "firebase_uid"),
    )


class Follow(Base, TimestampMixin):
    """Follower relationship between two users."""

    __tablename__ = "follows"

    follower_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    following_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)

    follower = relationship("User", foreign_keys=[follower_id], lazy="selectin")
    following = relationship("User", foreign_keys=[following_id], lazy="selectin")

    __table_args__ = (
        UniqueConstraint("follower_id", "following_id", name="uq_follows_pair"),
    )


# =============================================================================
# Audio & Voice Models
# =============================================================================


class AudioFile(Base, TimestampMixin):
    """An uploaded or generated audio file on local storage."""

    __tablename__ = "audio_files"

    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    original_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    path: Mapped[str] = mapped_column(String(500), nullable=False)
    mimetype: Mapped[str] = mapped_column(String(100), default="audio/mpeg")
    size: Mapped[int] = mapped_column(Integer, default=0)
    duration: Mapped[float] = mapped_column(Float, default=0.0)

    __table_args__ = (
        Index("ix_audio_files_user_id", "user_id"),
    )


class VoiceEffect(Base, TimestampMixin):
    """A voice effect preset backed by an ElevenLabs voice."""

    __tablename__ = "voice_effects"

    effect_id: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(50), default="general")
    popularity: Mapped[int] = mapped_column(Integer, default=0)
    is_pro_only: Mapped[bool] = mapped_column(Boolean, default=False)
    voice_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    settings: Mapped[Optional[Dict]] = mapped_column(JSON, nullable=True)


class VoiceModel(Base, TimestampMixin):
    """A voice model, either public or cloned by a user."""

    __tablename__ = "voice_models"

    user_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    eleven_labs_voice_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    is_cloned: Mapped[bool] = mapped_column(Boolean, default=False)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False)


class VoiceTransformation(Base, TimestampMixin):
    """A background voice transformation job."""

    __tablename__ = "voice_transformations"

    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    original_audio_id: Mapped[str] = mapped_column(String(36), ForeignKey("audio_files.id"), nullable=False)
    transformed_audio_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("audio_files.id"), nullable=True
    )
    effect_id: Mapped[str] = mapped_column(String(50), nullable=False)
    kind: Mapped[str] = mapped_column(String(20), default="effect")
    status: Mapped[str] = mapped_column(String(20), default=TransformationStatus.PROCESSING.value)
    settings: Mapped[Optional[Dict]] = mapped_column(JSON, nullable=True)
    processing_time: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_voice_transformations_user_id", "user_id"),
    )


class SavedVoiceCreation(Base, TimestampMixin):
    """A transformation result a user saved to their library."""

    __tablename__ = "saved_voice_creations"

    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    original_audio_id: Mapped[str] = mapped_column(String(36), ForeignKey("audio_files.id"), nullable=False)
    transformed_audio_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("audio_files.id"), nullable=True
    )
    effect_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    effect_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    tags: Mapped[Optional[List]] = mapped_column(JSON, nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False)

    user = relationship("User", lazy="selectin")


# =============================================================================
# Translation Models
# =============================================================================


class Translation(Base, TimestampMixin):
    """A text or audio translation."""

    __tablename__ = "translations"

    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    source_language: Mapped[str] = mapped_column(String(10), default="auto")
    target_language: Mapped[str] = mapped_column(String(10), nullable=False)
    source_text: Mapped[str] = mapped_column(Text, default="")
    translated_text: Mapped[str] = mapped_column(Text, default="")
    audio_file_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("audio_files.id"), nullable=True)
    translated_audio_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=TransformationStatus.COMPLETED.value)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class VoiceClone(Base, TimestampMixin):
    """A user voice cloned through ElevenLabs for voice translation."""

    __tablename__ = "voice_clones"

    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    eleven_labs_voice_id: Mapped[str] = mapped_column(String(64), nullable=False)
    sample_audio_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("audio_files.id"), nullable=True)


class VoiceTranslateBatch(Base, TimestampMixin):
    """A batch of voice translation operations."""

    __tablename__ = "voice_translate_batches"

    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    target_language: Mapped[str] = mapped_column(String(10), nullable=False)
    total_files: Mapped[int] = mapped_column(Integer, default=0)
    completed_files: Mapped[int] = mapped_column(Integer, default=0)
    failed_files: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[str] = mapped_column(String(20), default=OperationStatus.QUEUED.value)


class VoiceTranslateOperation(Base, TimestampMixin):
    """A transcribe, translate and re-voice pipeline run."""

    __tablename__ = "voice_translate_operations"

    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    batch_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("voice_translate_batches.id"), nullable=True
    )
    original_audio_id: Mapped[str] = mapped_column(String(36), ForeignKey("audio_files.id"), nullable=False)
    source_language: Mapped[str] = mapped_column(String(10), default="auto")
    target_language: Mapped[str] = mapped_column(String(10), nullable=False)
    voice_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    voice_clone_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=OperationStatus.QUEUED.value)
    current_step: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    transcribed_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    translated_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    result_audio_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    processing_time: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_voice_translate_operations_user_id", "user_id"),
        Index("ix_voice_translate_operations_batch_id", "batch_id"),
    )


# =============================================================================
# Feed Models
# =============================================================================


class FeedPost(Base, TimestampMixin):
    """A voice post in the social feed."""

    __tablename__ = "feed_posts"

    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    audio_file_id: Mapped[str] = mapped_column(String(36), ForeignKey("audio_files.id"), nullable=False)
    caption: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    user = relationship("User", lazy="selectin")
    audio_file = relationship("AudioFile", lazy="selectin")
    tags = relationship("FeedPostTag", back_populates="post", lazy="selectin", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_feed_posts_user_id", "user_id"),
        Index("ix_feed_posts_created_at", "created_at"),
    )


class FeedPostTag(Base):
    __tablename__ = "feed_post_tags"

    post_id: Mapped[str] = mapped_column(String(36), ForeignKey("feed_posts.id"), nullable=False)
    tag: Mapped[str] = mapped_column(String(50), nullable=False)

    post = relationship("FeedPost", back_populates="tags")


class Like(Base, TimestampMixin):
    __tablename__ = "likes"

    post_id: Mapped[str] = mapped_column(String(36), ForeignKey("feed_posts.id"), nullable=False)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)

    __table_args__ = (
        UniqueConstraint("post_id", "user_id", name="uq_likes_post_user"),
    )


class SavedPost(Base, TimestampMixin):
    __tablename__ = "saved_posts"

    post_id: Mapped[str] = mapped_column(String(36), ForeignKey("feed_posts.id"), nullable=False)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)

    post = relationship("FeedPost", lazy="selectin")

    __table_args__ = (
        UniqueConstraint("post_id", "user_id", name="uq_saved_posts_post_user"),
    )


class Share(Base, TimestampMixin):
    __tablename__ = "shares"

    post_id: Mapped[str] = mapped_column(String(36), ForeignKey("feed_posts.id"), nullable=False)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    platform: Mapped[str] = mapped_column(String(50), default="other")


class Comment(Base, TimestampMixin):
    __tablename__ = "comments"

    post_id: Mapped[str] = mapped_column(String(36), ForeignKey("feed_posts.id"), nullable=False)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    user = relationship("User", lazy="selectin")


class CommentLike(Base, TimestampMixin):
    __tablename__ = "comment_likes"

    comment_id: Mapped[str] = mapped_column(String(36), ForeignKey("comments.id"), nullable=False)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)

    __table_args__ = (
        UniqueConstraint("comment_id", "user_id", name="uq_comment_likes_comment_user"),
    )


# =============================================================================
# Challenge Models
# =============================================================================


class Challenge(Base, TimestampMixin):
    """A community voice challenge."""

    __tablename__ = "challenges"

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    creator_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    start_date: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    end_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    difficulty: Mapped[str] = mapped_column(String(10), default=Difficulty.MEDIUM.value)
    reward: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    rules: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    creator = relationship("User", lazy="selectin")
    tags = relationship("ChallengeTag", back_populates="challenge", lazy="selectin", cascade="all, delete-orphan")


class ChallengeTag(Base):
    __tablename__ = "challenge_tags"

    challenge_id: Mapped[str] = mapped_column(String(36), ForeignKey("challenges.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(50), nullable=False)

    challenge = relationship("Challenge", back_populates="tags")


class ChallengeParticipant(Base, TimestampMixin):
    __tablename__ = "challenge_participants"

    challenge_id: Mapped[str] = mapped_column(String(36), ForeignKey("challenges.id"), nullable=False)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)

    challenge = relationship("Challenge", lazy="selectin")

    __table_args__ = (
        UniqueConstraint("challenge_id", "user_id", name="uq_challenge_participants"),
    )


class ChallengeSubmission(Base, TimestampMixin):
    __tablename__ = "challenge_submissions"

    challenge_id: Mapped[str] = mapped_column(String(36), ForeignKey("challenges.id"), nullable=False)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    audio_file_id: Mapped[str] = mapped_column(String(36), ForeignKey("audio_files.id"), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    user = relationship("User", lazy="selectin")
    audio_file = relationship("AudioFile", lazy="selectin")

    __table_args__ = (
        UniqueConstraint("challenge_id", "user_id", name="uq_challenge_submissions"),
    )


# =============================================================================
# Algorand / NFT Models
# =============================================================================


class AlgorandWallet(Base, TimestampMixin):
    __tablename__ = "algorand_wallets"

    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), unique=True, nullable=False)
    address: Mapped[str] = mapped_column(String(100), nullable=False)


class NFT(Base, TimestampMixin):
    """A voice NFT minted as an Algorand Standard Asset."""

    __tablename__ = "nfts"

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    creator_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    owner_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    audio_file_id: Mapped[str] = mapped_column(String(36), ForeignKey("audio_files.id"), nullable=False)
    image_url: Mapped[str] = mapped_column(String(500), nullable=False)
    price: Mapped[float] = mapped_column(Float, default=0.0)
    currency: Mapped[str] = mapped_column(String(10), default="ALGO")
    royalty: Mapped[float] = mapped_column(Float, default=10.0)
    is_for_sale: Mapped[bool] = mapped_column(Boolean, default=True)
    likes_count: Mapped[int] = mapped_column(Integer, default=0)
    metadata_json: Mapped[Optional[Dict]] = mapped_column("metadata", JSON, nullable=True)
    asset_id: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    blockchain_status: Mapped[str] = mapped_column(String(20), default=BlockchainStatus.PENDING.value)

    creator = relationship("User", foreign_keys=[creator_id], lazy="selectin")
    owner = relationship("User", foreign_keys=[owner_id], lazy="selectin")
    audio_file = relationship("AudioFile", lazy="selectin")
    tags = relationship("NFTTag", back_populates="nft", lazy="selectin", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_nfts_owner_id", "owner_id"),
        Index("ix_nfts_creator_id", "creator_id"),
    )


class NFTTag(Base):
    __tablename__ = "nft_tags"

    nft_id: Mapped[str] = mapped_column(String(36), ForeignKey("nfts.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(50), nullable=False)

    nft = relationship("NFT", back_populates="tags")


class NFTLike(Base, TimestampMixin):
    __tablename__ = "nft_likes"

    nft_id: Mapped[str] = mapped_column(String(36), ForeignKey("nfts.id"), nullable=False)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)

    __table_args__ = (
        UniqueConstraint("nft_id", "user_id", name="uq_nft_likes"),
    )


class NFTMarketplaceListing(Base, TimestampMixin):
    __tablename__ = "nft_marketplace_listings"

    nft_id: Mapped[str] = mapped_column(String(36), ForeignKey("nfts.id"), nullable=False)
    seller_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    currency: Mapped[str] = mapped_column(String(10), default="ALGO")
    status: Mapped[str] = mapped_column(String(20), default=ListingStatus.ACTIVE.value)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)


class NFTTransaction(Base, TimestampMixin):
    """A completed marketplace sale."""

    __tablename__ = "nft_transactions"

    nft_id: Mapped[str] = mapped_column(String(36), ForeignKey("nfts.id"), nullable=False)
    seller_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    buyer_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    currency: Mapped[str] = mapped_column(String(10), default="ALGO")


class AlgorandTransaction(Base, TimestampMixin):
    """An on-chain operation tracked for an NFT."""

    __tablename__ = "algorand_transactions"

    nft_id: Mapped[str] = mapped_column(String(36), ForeignKey("nfts.id"), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    from_address: Mapped[str] = mapped_column(String(100), nullable=False)
    to_address: Mapped[str] = mapped_column(String(100), nullable=False)
    amount: Mapped[float] = mapped_column(Float, default=0.0)
    status: Mapped[str] = mapped_column(String(20), default=AlgorandTransactionStatus.PENDING.value)
    transaction_hash: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)


# =============================================================================
# Billing Models
# =============================================================================


class Subscription(Base, TimestampMixin):
    """A Stripe subscription mirrored locally."""

    __tablename__ = "subscriptions"

    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), unique=True, nullable=False)
    stripe_subscription_id: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    stripe_customer_id: Mapped[str] = mapped_column(String(100), nullable=False)
    stripe_price_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(String(30), default=SubscriptionStatus.ACTIVE.value)
    plan_type: Mapped[str] = mapped_column(String(20), default=PlanType.PRO.value)
    billing_period: Mapped[str] = mapped_column(String(20), default=BillingPeriod.MONTHLY.value)
    current_period_start: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    current_period_end: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    cancel_at_period_end: Mapped[bool] = mapped_column(Boolean, default=False)
    canceled_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)


class Invoice(Base, TimestampMixin):
    __tablename__ = "invoices"

    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    subscription_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    stripe_invoice_id: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    amount: Mapped[float] = mapped_column(Float, default=0.0)
    currency: Mapped[str] = mapped_column(String(10), default="usd")
    status: Mapped[str] = mapped_column(String(20), default=InvoiceStatus.OPEN.value)
    invoice_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    invoice_pdf: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    period_start: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    period_end: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)


class PaymentMethod(Base, TimestampMixin):
    __tablename__ = "payment_methods"

    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    stripe_payment_method_id: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    type: Mapped[str] = mapped_column(String(20), default="CARD")
    last4: Mapped[Optional[str]] = mapped_column(String(4), nullable=True)
    exp_month: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    exp_year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    brand: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False)


class BillingInfo(Base, TimestampMixin):
    __tablename__ = "billing_info"

    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    address_line1: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    address_line2: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    state: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    postal_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    country: Mapped[Optional[str]] = mapped_column(String(2), nullable=True)
    tax_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)


class PromoCode(Base, TimestampMixin):
    __tablename__ = "promo_codes"

    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    discount_percent: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    discount_amount: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    currency: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    max_redemptions: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    times_redeemed: Mapped[int] = mapped_column(Integer, default=0)
    valid_until: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    stripe_coupon_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)


class PromoCodeUsage(Base, TimestampMixin):
    __tablename__ = "promo_code_usages"

    promo_code_id: Mapped[str] = mapped_column(String(36), ForeignKey("promo_codes.id"), nullable=False)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    subscription_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    __table_args__ = (
        UniqueConstraint("promo_code_id", "user_id", name="uq_promo_code_usages"),
    )


# =============================================================================
# Contact Models
# =============================================================================


class ContactMessage(Base, TimestampMixin):
    __tablename__ = "contact_messages"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[str] = mapped_column(String(20), default="MEDIUM")
    type: Mapped[str] = mapped_column(String(20), default="GENERAL")
    attachments: Mapped[Optional[List]] = mapped_column(JSON, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="NEW")


class AssistantChat(Base, TimestampMixin):
    """A help assistant conversation; messages hold role, content and timestamp."""

    __tablename__ = "assistant_chats"

    session_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    user_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)
    messages: Mapped[List] = mapped_column(JSON, default=list)


class CalendlyEvent(Base, TimestampMixin):
    """A meeting booked through Calendly."""

    __tablename__ = "calendly_events"

    event_type: Mapped[str] = mapped_column(String(20), default="general")
    event_name: Mapped[str] = mapped_column(String(255), nullable=False)
    invitee_email: Mapped[str] = mapped_column(String(255), nullable=False)
    invitee_name: Mapped[str] = mapped_column(String(255), nullable=False)
    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    status: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    calendly_event_uri: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


# =============================================================================
# Exports
# =============================================================================


__all__ = [
    # Enums
    "TransformationStatus",
    "OperationStatus",
    "Difficulty",
    "BlockchainStatus",
    "ListingStatus",
    "AlgorandTransactionType",
    "AlgorandTransactionStatus",
    "SubscriptionStatus",
    "PlanType",
    "BillingPeriod",
    "InvoiceStatus",
    # Users
    "User",
    "Follow",
    # Audio & voice
    "AudioFile",
    "VoiceEffect",
    "VoiceModel",
    "VoiceTransformation",
    "SavedVoiceCreation",
    # Translation
    "Translation",
    "VoiceClone",
    "VoiceTranslateBatch",
    "VoiceTranslateOperation",
    # Feed
    "FeedPost",
    "FeedPostTag",
    "Like",
    "SavedPost",
    "Share",
    "Comment",
    "CommentLike",
    # Challenges
    "Challenge",
    "ChallengeTag",
    "ChallengeParticipant",
    "ChallengeSubmission",
    # Algorand
    "AlgorandWallet",
    "NFT",
    "NFTTag",
    "NFTLike",
    "NFTMarketplaceListing",
    "NFTTransaction",
    "AlgorandTransaction",
    # Billing
    "Subscription",
    "Invoice",
    "PaymentMethod",
    "BillingInfo",
    "PromoCode",
    "PromoCodeUsage",
    # Contact
    "ContactMessage",
    "AssistantChat",
    "CalendlyEvent",
]
