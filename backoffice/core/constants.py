import os

# 📁 Storage key prefixes for uploaded documents
UPLOAD_PREFIXES = {
    "invoices": "invoices",
    "receipts": "receipts",
}

ALLOWED_UPLOAD_TYPES = {
    "application/pdf": ".pdf",
    "image/jpeg": ".jpg",
    "image/png": ".png",
}

MAX_INVOICE_BYTES = 4 * 1024 * 1024
MAX_RECEIPT_BYTES = 5 * 1024 * 1024

# Prompt templates under Settings.prompts_dir
INVOICE_EXTRACTION_PROMPT = "invoice_extraction_prompt.txt"
RECEIPT_EXTRACTION_PROMPT = "z_read_extraction_prompt.txt"
INSIGHT_ENGINE_PROMPT = "master_insight_engine_prompt.txt"


def upload_extension(filename: str, content_type: str) -> str:
    extension = os.path.splitext(filename or "")[1].lower()
    return extension or ALLOWED_UPLOAD_TYPES.get(content_type, "")
