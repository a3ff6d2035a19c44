import logging

from fastapi import APIRouter, Depends

from taxassist.api.v1.deps import get_current_user
from taxassist.core.errors import NotFoundError, ValidationError
from taxassist.models.user import LANGUAGES, User
from taxassist.schemas.user import LanguageIn, LanguageOut

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/user", tags=["user"])


@router.patch("/language", response_model=LanguageOut)
async def update_language(body: LanguageIn, user: User = Depends(get_current_user)):
    """
    Store the user's preferred language (picked in the quick-start dialog).

    Errors:
        400: language missing or not supported
        404: the user disappeared after authentication
    """
    if not body.language:
        raise ValidationError("language missing", public_message="Language is required")
    if body.language not in LANGUAGES:
        raise ValidationError(f"language {body.language!r}", public_message="Unsupported language")

    updated = await User.filter(id=user.id).update(language=body.language)
    if not updated:
        raise NotFoundError(f"user {user.id} vanished", public_message="User not found")
    logger.info("[user] language=%s user=%s", body.language, user.id)
    return {"success": True, "language": body.language}
