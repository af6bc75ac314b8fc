# API Router for Documents: manual marking and real uploads
from fastapi import APIRouter, Depends, HTTPException, Request
from starlette.datastructures import UploadFile
import logging
from typing import List

from bami_service.app.dependencies.auth import require_api_key
from bami_service.app.dependencies.services import get_case_service, get_document_intake
from bami_service.app.models import MarkDocumentsRequest, UploadedFile
from bami_service.app.service.cases import CaseService
from bami_service.app.service.exceptions import CaseNotFoundError, EmptyUploadError, UploadLimitExceededError
from bami_service.app.service.intake import DocumentIntake

logger = logging.getLogger(__name__)
router = APIRouter(dependencies=[Depends(require_api_key)])


@router.post("/documents", summary="Mark documents as submitted without files", tags=["Documents"])
async def mark_documents(request_data: MarkDocumentsRequest, case_service: CaseService = Depends(get_case_service)):
    try:
        result = case_service.mark_documents_submitted(request_data.id, request_data.docs)
        return {"ok": True, "missing_after": result["after"]}
    except CaseNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Unexpected error marking documents for case {request_data.id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to mark documents")


async def _read_uploaded_files(form, intake: DocumentIntake) -> List[UploadedFile]:
    # Limits are enforced on the parsed parts before any file body is loaded
    uploads = [(field_name, value) for field_name, value in form.multi_items() if isinstance(value, UploadFile)]
    intake.check_file_count(len(uploads))
    for field_name, value in uploads:
        intake.check_file_size(field_name, value.filename or "", value.size)

    files: List[UploadedFile] = []
    for field_name, value in uploads:
        content = await value.read()
        files.append(UploadedFile(
            slot=field_name,
            mime_type=value.content_type or "application/octet-stream",
            size=len(content),
            original_name=value.filename or "",
            content=content,
        ))
    return files


@router.post("/documents/upload", summary="Upload document files and start AI reading", tags=["Documents"])
async def upload_documents(request: Request, intake: DocumentIntake = Depends(get_document_intake)):
    """
    Multipart body: an `id` field plus one file field per document, the
    field name being the document slot (e.g. `dpi`, `selfie`).
    """
    form = await request.form()
    try:
        case_id = form.get("id")
        if not case_id or not isinstance(case_id, str):
            raise HTTPException(status_code=400, detail="id is required")

        intake.case_service.require_case(case_id)
        files = await _read_uploaded_files(form, intake)
        case = intake.receive_files(case_id, files)
        return {"ok": True, "case": case}
    except HTTPException:
        raise
    except CaseNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except EmptyUploadError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except UploadLimitExceededError as e:
        raise HTTPException(status_code=413, detail=str(e))
    except Exception as e:
        logger.error(f"Unexpected error uploading documents: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to upload documents")
    finally:
        await form.close()
