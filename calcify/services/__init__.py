"""Services for external integrations."""

from calcify.services.s3 import s3_service
from calcify.services.syllabus_processor import syllabus_processor
from calcify.services.intake_service import intake_service

__all__ = ["s3_service", "syllabus_processor", "intake_service"]
