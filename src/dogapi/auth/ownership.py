"""Ownership guard — only the uploader may touch an image.

Learn: Applied after the record is loaded and before any file access or
mutation. Ids are compared as strings because the identity comes from
token claims (str) while the record holds a uuid.UUID.
"""

from dogapi.auth.dependencies import CurrentIdentity
from dogapi.db.models import DogImage
from dogapi.errors import Forbidden


def is_owner(identity: CurrentIdentity, record: DogImage) -> bool:
    return str(identity.user_id) == str(record.user_id)


def authorize(
    identity: CurrentIdentity,
    record: DogImage,
    message: str = "You are not authorized to access this image.",
) -> None:
    """Raise Forbidden unless the identity owns the record."""
    if not is_owner(identity, record):
        raise Forbidden(message)
