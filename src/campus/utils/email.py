import asyncio
from typing import Any, Coroutine, Dict, Optional, Set

from campus.settings import settings
from campus.utils.logging import logger

# Strong references so scheduled sends are not garbage collected mid-flight
_pending_sends: Set[asyncio.Task] = set()


async def send_email(
    to: str, subject: str, template: str, context: Optional[Dict[str, Any]] = None
) -> bool:
    """
    Deliver an email rendered from ``template``.

    No transport is wired in yet, so the message is written to the application
    log and reported as delivered.
    """
    logger.info(
        f"Sending email to: {to} - Subject: {subject} - Template: {template} "
        f"- From: {settings.email_from} - Context keys: {sorted((context or {}).keys())}"
    )
    return True


async def send_email_verification(email: str, token: str) -> bool:
    verification_url = f"{settings.frontend_url}/verify-email?token={token}"
    return await send_email(
        to=email,
        subject="Verify Your Email Address",
        template="email-verification",
        context={"verification_url": verification_url, "token": token},
    )


async def send_password_reset(email: str, token: str) -> bool:
    reset_url = f"{settings.frontend_url}/reset-password?token={token}"
    return await send_email(
        to=email,
        subject="Reset Your Password",
        template="password-reset",
        context={"reset_url": reset_url, "token": token},
    )


async def send_welcome_email(email: str, first_name: str) -> bool:
    return await send_email(
        to=email,
        subject="Welcome to Our Platform!",
        template="welcome",
        context={"first_name": first_name},
    )


async def send_contact_notification(
    contact_name: str, contact_email: str, message: str
) -> bool:
    return await send_email(
        to=settings.admin_contact_email,
        subject=f"New Contact Form Submission from {contact_name}",
        template="contact-notification",
        context={
            "contact_name": contact_name,
            "contact_email": contact_email,
            "message": message,
        },
    )


def _log_send_result(task: asyncio.Task, description: str):
    _pending_sends.discard(task)

    if task.cancelled():
        logger.warning(f"Email dispatch cancelled: {description}")
        return

    exc = task.exception()
    if exc is not None:
        logger.error(f"Error sending {description}: {type(exc).__name__}: {exc}")
    elif task.result() is False:
        logger.warning(f"Failed to send {description}")
    else:
        logger.info(f"Sent {description}")


def dispatch(coro: Coroutine, description: str) -> asyncio.Task:
    """Schedule an email send without waiting for it.

    Failures are logged and never reach the caller or roll back its work.
    """
    task = asyncio.create_task(coro)
    _pending_sends.add(task)
    task.add_done_callback(lambda t: _log_send_result(t, description))
    return task
