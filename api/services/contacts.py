from api.exceptions.auth import AuthenticationFailedError
from api.logger import get_logger
from api.models.contact import Contact
from api.services.hubspot import HubSpotClient
from api.settings import settings
from api.utils.validation import validate_identity


logger = get_logger(__name__)


class ContactService:
    def __init__(self, client: HubSpotClient) -> None:
        self.client = client

    async def authenticate(self, student_id: str, email: str) -> Contact | None:
        """Return the contact matching both the student id and the email address."""

        results = await self.client.search_objects(
            settings.contacts_object,
            [
                {"propertyName": "student_id", "operator": "EQ", "value": student_id},
                {"propertyName": "email", "operator": "EQ", "value": email.lower()},
            ],
            Contact.PROPERTIES,
            limit=1,
        )
        if not results:
            logger.info(f"No contact found for student {student_id}")
            return None

        return Contact.from_hubspot(results[0])

    async def require(self, student_id: str, email: str) -> Contact:
        """Validate the credentials and return the matching contact or raise `AuthenticationFailedError`."""

        validate_identity(student_id, email)
        if not (contact := await self.authenticate(student_id, email)):
            raise AuthenticationFailedError
        return contact
