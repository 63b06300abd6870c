import io
import logging
from pdfminer.high_level import extract_text as extract_pdf_text
from docx import Document as DocxDocument
from plagcheck.config import ALLOWED_EXTENSIONS, MAX_FILE_SIZE_MB
from plagcheck.errors import InputError

logger = logging.getLogger("plagcheck.files")


def allowed_file(filename: str) -> bool:
    return bool(filename) and "." in filename and filename.rsplit(".", 1)[1].lower() in ALLOWED_EXTENSIONS


def extract_text_from_file(content_bytes: bytes, filename: str) -> str:
    if not allowed_file(filename):
        raise InputError(f"Unsupported file type: {filename}. Use {', '.join(sorted(ALLOWED_EXTENSIONS))}.")
    if len(content_bytes) > MAX_FILE_SIZE_MB * 1024 * 1024:
        raise InputError(f"File exceeds {MAX_FILE_SIZE_MB} MB.")

    ext = filename.rsplit(".", 1)[1].lower()
    text = ""
    try:
        if ext == "txt":
            text = content_bytes.decode("utf-8", errors="ignore")
        elif ext == "pdf":
            text = extract_pdf_text(io.BytesIO(content_bytes))
        elif ext == "docx":
            doc = DocxDocument(io.BytesIO(content_bytes))
            text = "\n".join([p.text for p in doc.paragraphs])
    except Exception as e:
        logger.warning(f"Could not extract text from {filename}: {e}")
        text = ""

    return text
