import logging
import re
from dataclasses import asdict, dataclass
from io import BytesIO

from docx import Document
from pypdf import PdfReader

from interview_assistant.errors import ValidationError

logger = logging.getLogger("interview_assistant.resume")

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

NAME_PATTERN = re.compile(r"^([A-Z][a-z]+(?:[ \t]+[A-Z][a-z]+)*)", re.MULTILINE)
EMAIL_PATTERN = re.compile(r"([a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,})")

# Tried in order; the first pattern that matches anywhere wins.
PHONE_PATTERNS = (
    re.compile(r"(\+91[-.\s]?)?([6-9][0-9]{9})"),
    re.compile(r"(0091|91)[-.\s]?([6-9][0-9]{9})"),
    re.compile(r"(\+?1?[-.\s]?)?\(?([0-9]{3})\)?[-.\s]?([0-9]{3})[-.\s]?([0-9]{4})"),
    re.compile(r"(\+[0-9]{1,3}[-.\s]?)?([0-9]{8,15})"),
    re.compile(r"([0-9]{10,15})"),
)
INDIAN_LOCAL = re.compile(r"^[6-9][0-9]{9}$")
INDIAN_WITH_PREFIX = re.compile(r"^(91|0091|\+91)[-.\s]?([6-9][0-9]{9})$")


@dataclass
class ParsedResume:
    name: str = ""
    email: str = ""
    phone: str = ""
    text: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


# ---------- TEXT EXTRACTION ----------

def parse_pdf(file_bytes: bytes) -> str:
    reader = PdfReader(BytesIO(file_bytes))
    text = []
    for page in reader.pages:
        t = page.extract_text()
        if t:
            text.append(t)
    return "\n".join(text)


def parse_docx(file_bytes: bytes) -> str:
    doc = Document(BytesIO(file_bytes))
    return "\n".join([p.text for p in doc.paragraphs])


# ---------- CONTACT FIELDS ----------

def normalize_phone(phone: str) -> str:
    phone = str(phone or "").strip()
    if INDIAN_LOCAL.match(phone):
        return f"+91 {phone}"
    if INDIAN_WITH_PREFIX.match(phone):
        digits = re.sub(r"[^0-9]", "", phone)
        return f"+91 {digits[-10:]}"
    return phone


def extract_contact_info(text: str) -> ParsedResume:
    text = str(text or "")
    parsed = ParsedResume(text=text)

    name_match = NAME_PATTERN.search(text)
    if name_match:
        parsed.name = name_match.group(1).strip()

    email_match = EMAIL_PATTERN.search(text)
    if email_match:
        parsed.email = email_match.group(1).strip()

    for pattern in PHONE_PATTERNS:
        phone_match = pattern.search(text)
        if phone_match:
            parsed.phone = normalize_phone(phone_match.group(0))
            break

    return parsed


def missing_fields(parsed: ParsedResume) -> list[str]:
    return [name for name in ("name", "email", "phone") if not str(getattr(parsed, name) or "").strip()]


def _detect_kind(mime_type: str, filename: str) -> str:
    mime = str(mime_type or "").lower().strip()
    name = str(filename or "").lower().strip()
    if mime == PDF_MIME or (not mime.startswith(DOCX_MIME) and name.endswith(".pdf")):
        return "pdf"
    if mime == DOCX_MIME or name.endswith(".docx"):
        return "docx"
    return ""


def parse_resume(file_bytes: bytes, mime_type: str, filename: str = "") -> ParsedResume:
    kind = _detect_kind(mime_type, filename)
    if not kind:
        raise ValidationError("Unsupported file type. Please upload a PDF or DOCX file.", fields=["file"])
    if not file_bytes:
        raise ValidationError("Uploaded file is empty", fields=["file"])

    try:
        text = parse_pdf(file_bytes) if kind == "pdf" else parse_docx(file_bytes)
    except Exception as exc:
        logger.warning("resume extraction failed kind=%s err=%s", kind, exc)
        raise ValidationError(f"Could not read the uploaded {kind.upper()} file", fields=["file"]) from exc

    parsed = extract_contact_info(text)
    logger.info("parsed resume kind=%s chars=%s missing=%s", kind, len(text), missing_fields(parsed))
    return parsed
