import json

import pytest
from unittest.mock import MagicMock

from bami_service.app.models import Stage, UploadedFile
from bami_service.app.service.exceptions import CaseNotFoundError, EmptyUploadError, UploadLimitExceededError
from bami_service.app.service.intake import DocumentIntake


@pytest.fixture
def scheduler():
    return MagicMock()

@pytest.fixture
def intake(case_service, channel, scheduler):
    return DocumentIntake(case_service, channel, MagicMock(), scheduler, max_files=3, max_file_bytes=100)


def test_receive_files_records_acknowledges_and_schedules(intake, case_service, channel, recording_sink, scheduler):
    case = case_service.create_case("personal-loan")
    channel.subscribe(case.id, recording_sink)
    files = [UploadedFile(slot="dpi", size=10), UploadedFile(slot="proof_of_income", size=10)]

    public = intake.receive_files(case.id, files)

    assert public.stage == Stage.RECEIVED.value
    assert public.missing == ["credit_history"]
    assert [json.loads(frame[6:]) for frame in recording_sink.frames] == [
        {"role": "ai", "text": "📥 Received 2 file(s). Preparing to read…"}
    ]
    scheduler.spawn.assert_called_once_with(intake.pipeline, case.id, files)

def test_unknown_case_fails_before_any_side_effect(intake, channel, recording_sink, scheduler):
    channel.subscribe("C-00000", recording_sink)

    with pytest.raises(CaseNotFoundError):
        intake.receive_files("C-00000", [])

    assert recording_sink.frames == []
    scheduler.spawn.assert_not_called()

def test_empty_batch_is_rejected(intake, case_service, scheduler):
    case = case_service.create_case("credit-card")

    with pytest.raises(EmptyUploadError):
        intake.receive_files(case.id, [])

    assert case_service.get_case(case.id).stage == Stage.REQUIRES_DOCS.value
    scheduler.spawn.assert_not_called()

def test_too_many_files_is_rejected(intake, case_service):
    case = case_service.create_case("credit-card")

    with pytest.raises(UploadLimitExceededError, match="At most 3 files"):
        intake.receive_files(case.id, [UploadedFile(slot=f"doc{i}") for i in range(4)])

def test_oversized_file_is_rejected(intake, case_service):
    case = case_service.create_case("credit-card")

    with pytest.raises(UploadLimitExceededError, match="selfie"):
        intake.receive_files(case.id, [UploadedFile(slot="selfie", size=101, original_name="big.png")])

    assert case_service.get_case(case.id).uploaded == {}

def test_declared_limits_can_be_checked_before_reading(intake):
    intake.check_file_count(3)
    intake.check_file_size("dpi", "dpi.jpg", 100)
    intake.check_file_size("dpi", "dpi.jpg", None)

    with pytest.raises(UploadLimitExceededError, match="At most 3 files"):
        intake.check_file_count(4)
    with pytest.raises(UploadLimitExceededError, match="'dpi.jpg' for slot 'dpi' exceeds 100 bytes"):
        intake.check_file_size("dpi", "dpi.jpg", 101)
