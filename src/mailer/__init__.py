"""
Email delivery and templates for update notifications.

Modules:
    service: EmailService with SMTP and Resend providers
    templates: HTML bodies for favorite and anime subscription updates
"""

from .service import EmailService, EmailError
from .templates import (
    anime_update_email,
    batch_favorite_update_email,
    favorite_update_subject,
)

__all__ = [
    "EmailService",
    "EmailError",
    "anime_update_email",
    "batch_favorite_update_email",
    "favorite_update_subject",
]
