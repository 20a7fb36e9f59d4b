"""Email delivery package."""

from .backend import InMemoryMailer, Mailer, MailerError, ResendMailer, SMTPMailer

__all__ = [
    "InMemoryMailer",
    "Mailer",
    "MailerError",
    "ResendMailer",
    "SMTPMailer",
]
