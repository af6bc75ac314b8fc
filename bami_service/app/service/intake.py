# Document intake: records an upload batch and hands it to the reading pipeline
import logging
from typing import Optional, Sequence

from bami_service.app.config import settings
from bami_service.app.models import NarrationEvent, PublicCase, UploadedFile
from bami_service.app.service.cases import CaseService
from bami_service.app.service.exceptions import EmptyUploadError, UploadLimitExceededError
from bami_service.app.service.pipeline import PipelineScheduler, ReadingPipeline
from bami_service.infrastructure.events import EventChannel

logger = logging.getLogger(__name__)


class DocumentIntake:
    def __init__(
        self,
        case_service: CaseService,
        channel: EventChannel,
        pipeline: ReadingPipeline,
        scheduler: PipelineScheduler,
        max_files: Optional[int] = None,
        max_file_bytes: Optional[int] = None
    ):
        self.case_service = case_service
        self.channel = channel
        self.pipeline = pipeline
        self.scheduler = scheduler
        self.max_files = max_files or settings.MAX_UPLOAD_FILES
        self.max_file_bytes = max_file_bytes or settings.MAX_UPLOAD_FILE_BYTES

    def check_file_count(self, count: int) -> None:
        if count > self.max_files:
            raise UploadLimitExceededError(f"At most {self.max_files} files per upload ({count} given).")

    def check_file_size(self, slot: str, original_name: str, size: Optional[int]) -> None:
        """Unknown sizes pass; the recorded batch is checked again once read."""
        if size is not None and size > self.max_file_bytes:
            raise UploadLimitExceededError(
                f"File '{original_name}' for slot '{slot}' exceeds {self.max_file_bytes} bytes."
            )

    def _check_limits(self, case_id: str, files: Sequence[UploadedFile]) -> None:
        if not files:
            raise EmptyUploadError(case_id)
        self.check_file_count(len(files))
        for uploaded_file in files:
            self.check_file_size(uploaded_file.slot, uploaded_file.original_name, uploaded_file.size)

    def receive_files(self, case_id: str, files: Sequence[UploadedFile]) -> PublicCase:
        """
        Records the batch, acknowledges it to live viewers and schedules the
        reading pipeline. Returns without waiting for the pipeline.

        Raises:
            CaseNotFoundError: unknown case id, checked before any side effect.
            EmptyUploadError: no files in the batch.
            UploadLimitExceededError: the batch breaks the upload limits.
        """
        self.case_service.require_case(case_id)
        files = list(files)
        self._check_limits(case_id, files)

        case = self.case_service.record_uploaded_files(case_id, files)
        self.channel.publish(case_id, NarrationEvent(text=f"📥 Received {len(files)} file(s). Preparing to read…"))
        self.scheduler.spawn(self.pipeline, case_id, files)

        logger.info(f"Case {case_id}: intake accepted {len(files)} file(s); reading pipeline started.")
        return self.case_service.to_public_case(case)
