"""
Help Assistant

Keyword-matched answers for the contact page assistant. Entries are
checked in order and the first one with a keyword contained in the
message wins.
"""

import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List


GREETING = "Hello! I'm your VoiceVerse AI assistant. How can I help you today?"

FALLBACK_REPLY = (
    "I'm not sure I understand your question. Could you please provide more details or rephrase? "
    "You can ask about voice transformations, subscription plans, technical support, "
    "or any other VoiceVerse features."
)


@dataclass
class FAQEntry:
    """A canned answer and the keywords that select it."""

    name: str
    response: str
    keywords: List[str] = field(default_factory=list)

    def matches(self, text: str) -> bool:
        text = text.lower()
        return any(keyword in text for keyword in self.keywords)


FAQS: List[FAQEntry] = [
    FAQEntry(
        name="password",
        keywords=["reset", "password", "forgot", "login", "sign in"],
        response=(
            'To reset your password, click the "Forgot Password" link on the login page. '
            "We'll send you an email with instructions to create a new password."
        ),
    ),
    FAQEntry(
        name="subscription",
        keywords=["subscription", "plan", "upgrade", "downgrade", "cancel"],
        response=(
            "You can manage your subscription plan in Settings > Subscription. From there, you can "
            "upgrade, downgrade, or cancel your plan. Changes will take effect on your next billing cycle."
        ),
    ),
    FAQEntry(
        name="refund",
        keywords=["refund", "money back", "payment"],
        response=(
            "Refunds are typically processed within 3-5 business days. If you have questions about "
            "a refund, please contact our billing department at billing@voiceverse.app."
        ),
    ),
    FAQEntry(
        name="voice_model",
        keywords=["voice", "model", "create", "clone"],
        response=(
            'To create a voice model, go to the Studio section and click "New Voice Model". You can '
            "upload audio samples or use our voice cloning technology to create a digital version of your voice."
        ),
    ),
    FAQEntry(
        name="transform",
        keywords=["transform", "effect", "filter", "audio"],
        response=(
            "VoiceVerse offers various voice transformation effects. Upload your audio file in the Studio, "
            'select an effect from our library, adjust the settings, and click "Transform" to apply it.'
        ),
    ),
    FAQEntry(
        name="download",
        keywords=["download", "export", "save", "file"],
        response=(
            "You can download your transformed audio files from your Library. Click on the file you want "
            'to download and select the "Download" option from the menu.'
        ),
    ),
    FAQEntry(
        name="nft",
        keywords=["nft", "marketplace", "sell", "buy"],
        response=(
            "Our NFT marketplace allows you to mint and sell your voice creations as NFTs. Go to the NFT "
            "section, connect your wallet, and follow the instructions to create or purchase voice NFTs."
        ),
    ),
    FAQEntry(
        name="support",
        keywords=["contact", "support", "help", "team"],
        response=(
            "You can reach our support team through email at support@voiceverse.app, by phone at "
            "+254 700 581 615, or by using the contact form on our website."
        ),
    ),
    FAQEntry(
        name="trial",
        keywords=["free", "trial", "demo"],
        response=(
            "We offer a free trial that includes limited access to our voice transformation features. "
            "Sign up on our website to start your free trial today!"
        ),
    ),
    FAQEntry(
        name="privacy",
        keywords=["privacy", "data", "security", "information"],
        response=(
            "We take your privacy seriously. Your data is encrypted and securely stored. You can review "
            "our privacy policy at voiceverse.app/privacy for more details."
        ),
    ),
    FAQEntry(
        name="developers",
        keywords=["api", "integration", "developer", "code"],
        response=(
            "Our API documentation is available at voiceverse.app/developers. You'll find guides, "
            "examples, and SDKs to help you integrate VoiceVerse into your applications."
        ),
    ),
    FAQEntry(
        name="greeting",
        keywords=["hello", "hi", "hey", "greetings"],
        response=(
            "Hello! I'm the VoiceVerse AI assistant. How can I help you with voice transformation, "
            "audio effects, or any other questions about our platform?"
        ),
    ),
]


def generate_reply(message: str) -> str:
    """Answer a user message from the FAQ table."""
    for entry in FAQS:
        if entry.matches(message):
            return entry.response
    return FALLBACK_REPLY


def new_session_id() -> str:
    return f"session_{int(time.time() * 1000)}_{secrets.token_hex(4)[:7]}"


def chat_message(role: str, content: str) -> Dict[str, Any]:
    return {"role": role, "content": content, "timestamp": datetime.utcnow().isoformat()}


__all__ = [
    "GREETING",
    "FALLBACK_REPLY",
    "FAQEntry",
    "FAQS",
    "generate_reply",
    "new_session_id",
    "chat_message",
]
