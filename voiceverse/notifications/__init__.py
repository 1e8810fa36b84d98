"""
Notifications Module

Transactional email over SMTP.
"""

from .email import EmailConfig, EmailService


__all__ = [
    "EmailConfig",
    "EmailService",
]
