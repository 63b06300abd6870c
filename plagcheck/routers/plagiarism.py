import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, Response, UploadFile
from pydantic import ValidationError

from plagcheck.errors import ConfigurationError, InputError
from plagcheck.schemas.plagiarism_schemas import PlagiarismReport
from plagcheck.services.plagiarism_service import PlagiarismService, build_service, default_options
from plagcheck.utils.file_utils import extract_text_from_file
from plagcheck.utils.report_utils import generate_pdf_report
from plagcheck.utils.text_utils import sanitize_input

router = APIRouter(tags=["plagiarism"])

logger = logging.getLogger("plagcheck.routes")


def get_service(request: Request) -> PlagiarismService:
    service = getattr(request.app.state, "service", None)
    if service is None:
        service = build_service()
        request.app.state.service = service
    return service


@router.get("/health")
async def health(service: PlagiarismService = Depends(get_service)):
    embedder = service.engine.embedder
    return {"status": "ok", "embeddings": bool(embedder is not None and getattr(embedder, "enabled", True))}


@router.post("/check-plagiarism", response_model=PlagiarismReport)
async def check_plagiarism(
    text: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    chunkMaxLen: Optional[int] = Form(None),
    topResults: Optional[int] = Form(None),
    similarityThreshold: Optional[float] = Form(None),
    service: PlagiarismService = Depends(get_service),
):
    try:
        options = default_options(
            chunkMaxLen=chunkMaxLen,
            topResults=topResults,
            similarityThreshold=similarityThreshold,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid options: {e.errors()[0]['msg']}")

    extracted = text or ""
    if file is not None and file.filename:
        raw = await file.read()
        try:
            extracted = extract_text_from_file(raw, file.filename)
        except InputError as e:
            raise HTTPException(status_code=400, detail=str(e))
        logger.info(f"📄 Extracted {len(extracted)} chars from {file.filename}")

    extracted = sanitize_input(extracted)
    if not extracted.strip():
        raise HTTPException(status_code=400, detail="No valid text provided or extracted")

    try:
        return await service.analyze(extracted, options)
    except ConfigurationError as e:
        logger.error(f"❌ Configuration error: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/generate-report")
async def generate_report(report: PlagiarismReport):
    if not report.text.strip():
        raise HTTPException(status_code=400, detail="Missing required data")

    pdf = generate_pdf_report(report)
    logger.info(f"📝 Rendered PDF report ({len(pdf)} bytes, {len(report.results)} match(es))")
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": "attachment; filename=plagiarism_report.pdf"},
    )
