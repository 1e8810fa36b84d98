"""
VoiceVerse

Backend for a voice creation platform: recording, AI voice
transformation, translation, a social feed, challenges, Algorand voice
NFTs and Stripe subscriptions.
"""

__version__ = "1.0.0"
