"""Course intake assistant: LLM round trips, attachment inlining, course capture."""

import base64
import json
import logging
from collections.abc import Sequence
from pathlib import Path
from uuid import UUID

from anthropic import APIStatusError, AsyncAnthropic
from sqlalchemy.ext.asyncio import AsyncSession

from calcify.config import get_settings
from calcify.schemas.intake import ChatMessage, CourseSummary, IntakeReply
from calcify.services.course_store import (
    OCTET_STREAM,
    LoadedAttachment,
    list_course_files,
    persist_generated_course,
)
from calcify.services.envelope import display_text, parse_info_request
from calcify.services.json_extract import extract_json_from_text, parse_json_object
from calcify.services.s3 import S3Service, s3_service

logger = logging.getLogger(__name__)
settings = get_settings()

MISSING_KEY_MESSAGE = (
    "The assistant API key is not configured. Add ANTHROPIC_API_KEY to your environment "
    "to enable the intake assistant."
)
UPSTREAM_ERROR_MESSAGE = (
    "Something went wrong while contacting the assistant. Check the server logs for details."
)
UNREADABLE_REPLY_MESSAGE = (
    "I wasn't able to understand the response from the assistant. Try asking again or adjust your input."
)
UNEXPECTED_ERROR_MESSAGE = (
    "An unexpected error occurred while reaching the assistant. Please try again in a moment."
)

_IMAGE_TYPES = {"image/png", "image/jpeg", "image/gif", "image/webp"}


def _load_system_prompt() -> str:
    """Load the course architect instructions for the system prompt."""
    prompt_path = Path(__file__).parent.parent / "prompts" / "course_architect.md"
    try:
        return prompt_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.warning("Intake prompt not found at %s, using fallback prompt", prompt_path)
        return (
            "You are Calcify's course architect. Gather the learner's syllabus details and reply "
            "with a single JSON course plan once you have enough information."
        )


# Load once at module import
_SYSTEM_PROMPT = _load_system_prompt()


def _describe_file(name: str, mime_type: str | None) -> str:
    return f"{name} ({mime_type})" if mime_type else name


def _inline_block(attachment: LoadedAttachment) -> dict:
    """Content block carrying the attachment bytes, by MIME type."""
    mime_type = attachment.mime_type or OCTET_STREAM

    if mime_type == "application/pdf":
        return {
            "type": "document",
            "source": {"type": "base64", "media_type": mime_type, "data": attachment.base64},
        }

    if mime_type in _IMAGE_TYPES:
        return {
            "type": "image",
            "source": {"type": "base64", "media_type": mime_type, "data": attachment.base64},
        }

    if mime_type.startswith("text/"):
        text = base64.b64decode(attachment.base64).decode("utf-8", errors="replace")
        return {
            "type": "document",
            "source": {"type": "text", "media_type": "text/plain", "data": text},
        }

    logger.info("Cannot inline %s (%s), sending a note instead", attachment.original_name, mime_type)
    return {
        "type": "text",
        "text": (
            f"(The file {attachment.original_name} has type {mime_type}, which cannot be shown inline. "
            "Ask the learner to paste the relevant parts if you need them.)"
        ),
    }


def build_llm_messages(
    history: Sequence[ChatMessage],
    attachments: Sequence[LoadedAttachment],
) -> list[dict]:
    """
    Convert the chat transcript into Anthropic message turns.

    Attachment contents ride on the most recent user turn, or on a new user
    turn if the transcript has none.
    """
    messages: list[dict] = []

    for message in history:
        role = "assistant" if message.role == "assistant" else "user"
        # The conversation must open with a user turn; drop the canned greeting
        if role == "assistant" and not messages:
            continue

        parts = []
        if message.content.strip():
            parts.append({"type": "text", "text": message.content})

        if role == "user" and message.attachments:
            summary = ", ".join(
                _describe_file(item.original_name, item.mime_type) for item in message.attachments
            )
            parts.append({"type": "text", "text": f"Learner attached files: {summary}"})

        if parts:
            messages.append({"role": role, "content": parts})

    if attachments:
        file_parts = []
        for attachment in attachments:
            file_parts.append(
                {
                    "type": "text",
                    "text": f"Attached file: {_describe_file(attachment.original_name, attachment.mime_type)}",
                }
            )
            file_parts.append(_inline_block(attachment))

        target = next((turn for turn in reversed(messages) if turn["role"] == "user"), None)
        if target is not None:
            target["content"].extend(file_parts)
        else:
            messages.append({"role": "user", "content": file_parts})

    return messages


def extract_reply_text(response) -> str | None:
    """Join the text blocks of a Messages API response, or None if there are none."""
    blocks = getattr(response, "content", None) or []
    texts = [block.text for block in blocks if getattr(block, "type", None) == "text" and isinstance(block.text, str)]
    joined = "\n".join(texts).strip()
    return joined or None


def summarize_course_reply(content: str) -> CourseSummary | None:
    """Title/term/instructor of a course JSON reply, for the "course saved" card."""
    data = parse_json_object(content)
    if data is None or not isinstance(data.get("title"), str):
        return None

    syllabus = data.get("syllabusExtract")
    syllabus = syllabus if isinstance(syllabus, dict) else {}
    term = syllabus.get("term")
    instructor = syllabus.get("instructor")
    return CourseSummary(
        title=data["title"],
        term=term if isinstance(term, str) else None,
        instructor=instructor if isinstance(instructor, str) else None,
    )


def build_reply(message: ChatMessage) -> IntakeReply:
    """Wrap an assistant message with what a client needs to render it."""
    parsed = parse_info_request(message.content)
    return IntakeReply(
        message=message,
        display_text=display_text(message.content),
        info_request=parsed.payload if parsed else None,
        course_summary=summarize_course_reply(message.content) if message.saved_course_id else None,
    )


class IntakeService:
    """Runs one intake chat turn against the LLM and captures finished course plans."""

    def __init__(self, client: AsyncAnthropic | None = None, storage: S3Service | None = None):
        """Initialize the Anthropic client when an API key is configured."""
        if client is None and settings.anthropic_api_key:
            client = AsyncAnthropic(api_key=settings.anthropic_api_key)
        self.client = client
        self.storage = storage or s3_service

    async def load_attachments(self, db: AsyncSession, user_id: UUID) -> list[LoadedAttachment]:
        """
        Read every upload of the user from storage, oldest first.

        A file that cannot be read is logged and skipped.
        """
        files = await list_course_files(db, user_id)
        attachments = []

        for file in files:
            try:
                data = await self.storage.download_file(file.storage_key)
            except Exception:
                logger.warning(
                    "Failed to read upload for intake (file_id=%s, key=%s)",
                    file.id, file.storage_key, exc_info=True,
                )
                continue
            attachments.append(
                LoadedAttachment(
                    id=str(file.id),
                    original_name=file.original_name,
                    mime_type=file.mime_type,
                    base64=base64.b64encode(data).decode("ascii"),
                )
            )

        return attachments

    async def submit_message(
        self,
        db: AsyncSession,
        user_id: UUID,
        history: Sequence[ChatMessage],
    ) -> ChatMessage:
        """
        Send the transcript to the LLM and return the assistant's reply.

        Failures never raise: they come back as an assistant message. When the
        reply contains a course JSON object it is saved and its id attached.

        Args:
            db: Database session
            user_id: Current user
            history: Full transcript, newest last

        Returns:
            Assistant ChatMessage
        """
        if self.client is None:
            return ChatMessage(role="assistant", content=MISSING_KEY_MESSAGE)

        attachments = await self.load_attachments(db, user_id)

        try:
            response = await self.client.messages.create(
                model=settings.llm_model,
                max_tokens=settings.llm_max_tokens,
                system=_SYSTEM_PROMPT,
                messages=build_llm_messages(history, attachments),
                temperature=settings.llm_temperature,
                top_k=settings.llm_top_k,
            )
        except APIStatusError as e:
            logger.error("Intake LLM call failed with status %s: %s", e.status_code, e.body)
            return ChatMessage(role="assistant", content=UPSTREAM_ERROR_MESSAGE)
        except Exception:
            logger.exception("Intake LLM request failed")
            return ChatMessage(role="assistant", content=UNEXPECTED_ERROR_MESSAGE)

        text = extract_reply_text(response)
        if text is None:
            return ChatMessage(role="assistant", content=UNREADABLE_REPLY_MESSAGE)

        saved_course_id = await self._capture_course(db, user_id, text, attachments)
        return ChatMessage(role="assistant", content=text, saved_course_id=saved_course_id)

    async def _capture_course(
        self,
        db: AsyncSession,
        user_id: UUID,
        text: str,
        attachments: Sequence[LoadedAttachment],
    ) -> str | None:
        # A question envelope carries JSON too, but it is not a course
        if parse_info_request(text) is not None:
            return None

        candidate = extract_json_from_text(text)
        if candidate is None:
            return None

        try:
            payload = json.loads(candidate)
        except json.JSONDecodeError:
            logger.warning("Failed to parse assistant reply as course JSON: %.200s", candidate)
            return None

        course_id = await persist_generated_course(db, user_id, payload, attachments)
        return str(course_id) if course_id is not None else None


# Singleton instance
intake_service = IntakeService()
