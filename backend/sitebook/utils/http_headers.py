"""
Content-Disposition for downloads (RFC 5987).
Starlette headers are latin-1 only, so a worker or project name with non-ASCII characters
(e.g. Devanagari) goes into filename*=UTF-8''... while filename= carries an ASCII fallback.
"""
import re
from urllib.parse import quote

_UNSAFE_ASCII = re.compile(r"[^A-Za-z0-9._-]+")


def ascii_fallback(filename: str, default: str = "download") -> str:
    cleaned = _UNSAFE_ASCII.sub("_", filename).strip("_")
    return cleaned or default


def build_content_disposition(filename: str, inline: bool = False) -> str:
    """
    build_content_disposition("Hajri_Ramesh_2025_01.xlsx")
    -> attachment; filename="Hajri_Ramesh_2025_01.xlsx"; filename*=UTF-8''Hajri_Ramesh_2025_01.xlsx
    """
    disposition = "inline" if inline else "attachment"
    encoded = quote(filename, safe="")
    return f'{disposition}; filename="{ascii_fallback(filename)}"; filename*=UTF-8\'\'{encoded}'
