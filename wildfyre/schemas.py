"""
Pydantic schemas for the documents sent by the WildFyre API
"""
from datetime import datetime
from typing import Any, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from wildfyre.errors import InvalidDocumentError

M = TypeVar("M", bound=BaseModel)


# ===== ACCOUNT SCHEMAS =====

class AuthToken(BaseModel):
    """Reply of POST /account/auth/"""
    token: str


class Identity(BaseModel):
    """Reply of GET /users/ : who the token belongs to"""
    user: int


# ===== USER SCHEMAS =====

class UserDocument(BaseModel):
    """A user profile"""
    user: int
    name: str = ""
    avatar: Optional[str] = None
    bio: str = ""
    banned: bool = False


class AuthorDocument(BaseModel):
    """Author summary embedded in posts and comments"""
    user: int
    name: Optional[str] = None
    avatar: Optional[str] = None


# ===== AREA SCHEMAS =====

class AreaDocument(BaseModel):
    """An entry of GET /areas/"""
    name: str
    displayname: Optional[str] = None


class ReputationDocument(BaseModel):
    """Reputation and spread of the logged-in user in one area"""
    reputation: Optional[int] = None
    spread: Optional[int] = None


# ===== POST SCHEMAS =====

class CommentDocument(BaseModel):
    """A comment embedded in a post"""
    id: int
    author: Optional[AuthorDocument] = None
    created: datetime
    text: str
    image: Optional[str] = None


class PostDocument(BaseModel):
    """A post or a draft"""
    id: int
    author: Optional[AuthorDocument] = None
    anonym: bool
    subscribed: bool
    created: datetime
    active: bool
    text: Optional[str] = None
    image: Optional[str] = None
    additional_images: List[str] = []
    comments: List[CommentDocument] = []


class IdDocument(BaseModel):
    id: int


class IdResults(BaseModel):
    """Paginated list of objects, of which only the IDs are read"""
    count: Optional[int] = None
    results: List[IdDocument]


class PostResults(BaseModel):
    """Paginated list of full posts or drafts"""
    count: Optional[int] = None
    results: List[PostDocument]


def parse_document(model: Type[M], data: Any) -> M:
    """
    Validate a document received from the server.

    Raises:
        InvalidDocumentError: If the document does not match the schema
    """
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise InvalidDocumentError(
            f"Unexpected {model.__name__} document from the server: {e}"
        ) from e
