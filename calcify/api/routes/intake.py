"""Course intake chat route."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from calcify.api.deps import CurrentUser, DbSession
from calcify.schemas.intake import IntakeMessageRequest, IntakeReply
from calcify.services.intake_service import IntakeService, build_reply, intake_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/courses/intake", tags=["intake"])


def get_intake_service() -> IntakeService:
    return intake_service


@router.post("/messages", response_model=IntakeReply)
async def send_intake_message(
    request: IntakeMessageRequest,
    db: DbSession,
    user: CurrentUser,
    service: Annotated[IntakeService, Depends(get_intake_service)],
) -> IntakeReply:
    """
    Send the transcript to the intake assistant.

    Always answers 200 with an assistant message; upstream failures are
    reported in the message text. When the reply is a finished course plan
    it has already been saved and message.savedCourseId names it.
    """
    message = await service.submit_message(db, user.id, request.history)
    if message.saved_course_id:
        logger.info("Intake saved course %s for user %s", message.saved_course_id, user.id)
    return build_reply(message)
