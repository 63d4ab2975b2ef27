"""
Intake chat session state and the structured question dialog.

The whole client session (transcript, pending uploads, open question dialog)
is one immutable IntakeSession value. Every change goes through
reduce(state, action), which returns a new value, so the step machine can be
driven and tested without a UI.

Dialog lifecycle per StructuredInfoRequest:

    idle -> open(step 0..N-1) -> submitted

A requestId is answered at most once: submitted ids are remembered and never
queued again, even if the same envelope shows up in history later.

This is the client-side session controller, shipped as a library for the
intake front end. The server keeps no session: the client posts its transcript
to /courses/intake/messages and feeds each reply back in as AssistantReplied.
"""

import logging
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict

from calcify.schemas.intake import (
    ChatAttachment,
    ChatMessage,
    InfoAnswer,
    InfoQuestion,
    StructuredInfoRequest,
    StructuredInfoResponse,
)
from calcify.services.envelope import encode_info_response, parse_info_request, parse_info_response

logger = logging.getLogger(__name__)

GREETING = (
    "Hi! I'm Calcify's course intake assistant. Share the course syllabus details you have, "
    "and I'll ask follow-up questions to build out the plan."
)

REQUIRED_TEXT_ERROR = "Please answer this question before continuing."
REQUIRED_CHOICE_ERROR = "Please choose one of the options before continuing."
INVALID_CHOICE_ERROR = "Please choose one of the listed options."
SKIP_REQUIRED_ERROR = "This question is required and can't be skipped."


class IntakeSession(BaseModel):
    """Snapshot of one intake chat session."""

    model_config = ConfigDict(frozen=True)

    messages: tuple[ChatMessage, ...] = ()
    pending_attachments: tuple[ChatAttachment, ...] = ()
    awaiting_reply: bool = False

    queued_request: StructuredInfoRequest | None = None
    dialog_open: bool = False
    step: int = 0
    answers: dict[str, str] = {}
    error: str | None = None
    completed_request_ids: frozenset[str] = frozenset()

    @property
    def active_question(self) -> InfoQuestion | None:
        if self.queued_request is None:
            return None
        questions = self.queued_request.questions
        if 0 <= self.step < len(questions):
            return questions[self.step]
        return None

    @property
    def is_last_step(self) -> bool:
        return self.queued_request is not None and self.step >= len(self.queued_request.questions) - 1


def initial_session() -> IntakeSession:
    """A fresh session opened by the assistant's greeting."""
    return IntakeSession(messages=(ChatMessage(role="assistant", content=GREETING),))


# =============================================================================
# ACTIONS
# =============================================================================


@dataclass(frozen=True)
class AttachmentAdded:
    attachment: ChatAttachment


@dataclass(frozen=True)
class AttachmentRemoved:
    attachment_id: str


@dataclass(frozen=True)
class UserMessageSubmitted:
    content: str


@dataclass(frozen=True)
class AssistantReplied:
    message: ChatMessage


@dataclass(frozen=True)
class AnswerChanged:
    value: str


@dataclass(frozen=True)
class NextStep:
    pass


@dataclass(frozen=True)
class SkipStep:
    pass


@dataclass(frozen=True)
class BackStep:
    pass


@dataclass(frozen=True)
class DialogOpened:
    pass


@dataclass(frozen=True)
class DialogClosed:
    pass


IntakeAction = (
    AttachmentAdded
    | AttachmentRemoved
    | UserMessageSubmitted
    | AssistantReplied
    | AnswerChanged
    | NextStep
    | SkipStep
    | BackStep
    | DialogOpened
    | DialogClosed
)


# =============================================================================
# TRANSITIONS
# =============================================================================


def _add_attachment(state: IntakeSession, action: AttachmentAdded) -> IntakeSession:
    if any(item.id == action.attachment.id for item in state.pending_attachments):
        return state
    return state.model_copy(
        update={"pending_attachments": state.pending_attachments + (action.attachment,)}
    )


def _remove_attachment(state: IntakeSession, action: AttachmentRemoved) -> IntakeSession:
    remaining = tuple(item for item in state.pending_attachments if item.id != action.attachment_id)
    return state.model_copy(update={"pending_attachments": remaining})


def _submit_message(state: IntakeSession, action: UserMessageSubmitted) -> IntakeSession:
    content = action.content.strip()
    if not content or state.awaiting_reply:
        return state

    message = ChatMessage(
        role="user",
        content=content,
        attachments=list(state.pending_attachments) or None,
    )
    return state.model_copy(
        update={
            "messages": state.messages + (message,),
            "pending_attachments": (),
            "awaiting_reply": True,
        }
    )


def _queue_request(state: IntakeSession, message: ChatMessage) -> IntakeSession:
    """Open the dialog for a request carried by message, unless already seen."""
    if message.role != "assistant":
        return state

    parsed = parse_info_request(message.content)
    if parsed is None:
        return state

    request = parsed.payload
    if request.request_id in state.completed_request_ids:
        logger.debug("Request %s already answered, not reopening", request.request_id)
        return state
    if state.queued_request is not None and state.queued_request.request_id == request.request_id:
        return state

    return state.model_copy(
        update={
            "queued_request": request,
            "dialog_open": True,
            "step": 0,
            "answers": {},
            "error": None,
        }
    )


def _receive_reply(state: IntakeSession, action: AssistantReplied) -> IntakeSession:
    state = state.model_copy(
        update={"messages": state.messages + (action.message,), "awaiting_reply": False}
    )
    return _queue_request(state, action.message)


def _change_answer(state: IntakeSession, action: AnswerChanged) -> IntakeSession:
    question = state.active_question
    if question is None:
        return state
    return state.model_copy(
        update={"answers": {**state.answers, question.id: action.value}, "error": None}
    )


def _validation_error(question: InfoQuestion, answer: str) -> str | None:
    value = answer.strip()
    if question.type == "choice":
        allowed = {option.value for option in question.options or []}
        if not value:
            return REQUIRED_CHOICE_ERROR if question.required else None
        return None if value in allowed else INVALID_CHOICE_ERROR

    if question.required and not value:
        return REQUIRED_TEXT_ERROR
    return None


def _build_response(request: StructuredInfoRequest, answers: dict[str, str]) -> StructuredInfoResponse:
    return StructuredInfoResponse(
        request_id=request.request_id,
        title=request.title,
        answers=[
            InfoAnswer(id=question.id, prompt=question.prompt, response=answers.get(question.id, "").strip())
            for question in request.questions
        ],
    )


def _advance(state: IntakeSession, answers: dict[str, str]) -> IntakeSession:
    if not state.is_last_step:
        return state.model_copy(update={"answers": answers, "step": state.step + 1, "error": None})

    request = state.queued_request
    response = _build_response(request, answers)
    message = ChatMessage(role="user", content=encode_info_response(response))
    logger.debug("Submitting answers for request %s", request.request_id)

    return state.model_copy(
        update={
            "messages": state.messages + (message,),
            "awaiting_reply": True,
            "queued_request": None,
            "dialog_open": False,
            "step": 0,
            "answers": {},
            "error": None,
            "completed_request_ids": state.completed_request_ids | {request.request_id},
        }
    )


def _next_step(state: IntakeSession, action: NextStep) -> IntakeSession:
    question = state.active_question
    if question is None:
        return state

    error = _validation_error(question, state.answers.get(question.id, ""))
    if error is not None:
        return state.model_copy(update={"error": error})

    return _advance(state, state.answers)


def _skip_step(state: IntakeSession, action: SkipStep) -> IntakeSession:
    question = state.active_question
    if question is None:
        return state
    if question.required:
        return state.model_copy(update={"error": SKIP_REQUIRED_ERROR})

    return _advance(state, {**state.answers, question.id: ""})


def _back_step(state: IntakeSession, action: BackStep) -> IntakeSession:
    if state.queued_request is None:
        return state
    return state.model_copy(update={"step": max(state.step - 1, 0), "error": None})


def _open_dialog(state: IntakeSession, action: DialogOpened) -> IntakeSession:
    if state.queued_request is None:
        return state
    return state.model_copy(update={"dialog_open": True})


def _close_dialog(state: IntakeSession, action: DialogClosed) -> IntakeSession:
    # Keeps the queued request, step and answers so reopening resumes in place
    return state.model_copy(update={"dialog_open": False})


_HANDLERS = {
    AttachmentAdded: _add_attachment,
    AttachmentRemoved: _remove_attachment,
    UserMessageSubmitted: _submit_message,
    AssistantReplied: _receive_reply,
    AnswerChanged: _change_answer,
    NextStep: _next_step,
    SkipStep: _skip_step,
    BackStep: _back_step,
    DialogOpened: _open_dialog,
    DialogClosed: _close_dialog,
}


def reduce(state: IntakeSession, action: IntakeAction) -> IntakeSession:
    """Apply one action and return the resulting session."""
    handler = _HANDLERS.get(type(action))
    if handler is None:
        raise TypeError(f"Unknown intake action: {type(action).__name__}")
    return handler(state, action)


def sync_from_history(state: IntakeSession) -> IntakeSession:
    """
    Rebuild dialog bookkeeping from the transcript.

    Every response envelope sent by the learner marks its requestId completed;
    then the latest assistant message may queue its request if still open.
    """
    completed = set(state.completed_request_ids)
    for message in state.messages:
        if message.role != "user":
            continue
        parsed = parse_info_response(message.content)
        if parsed is not None:
            completed.add(parsed.payload.request_id)

    state = state.model_copy(update={"completed_request_ids": frozenset(completed)})
    if state.queued_request is not None and state.queued_request.request_id in completed:
        state = state.model_copy(
            update={"queued_request": None, "dialog_open": False, "step": 0, "answers": {}, "error": None}
        )

    latest = next((m for m in reversed(state.messages) if m.role == "assistant"), None)
    if latest is None:
        return state
    return _queue_request(state, latest)
