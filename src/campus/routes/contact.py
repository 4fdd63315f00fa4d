from fastapi import APIRouter, status

from campus.db.contact import create_contact
from campus.errors import internal_error
from campus.models import Contact, CreateContactRequest
from campus.utils.email import dispatch, send_contact_notification
from campus.utils.logging import logger

router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED, response_model=Contact)
async def submit_contact_form(request: CreateContactRequest) -> Contact:
    logger.info("Creating new contact form submission")

    try:
        contact = await create_contact(request.name, request.email, request.message)
    except Exception as e:
        logger.error(f"Failed to create contact: {type(e).__name__}: {e}")
        raise internal_error("Failed to submit contact form")

    logger.info(f"Contact created successfully with ID: {contact.id}")

    dispatch(
        send_contact_notification(request.name, request.email, request.message),
        f"contact notification for contact {contact.id}",
    )

    return contact
