"""Before returning a worker: decrypt and mask KYC fields (aadhaar_number, alternate_phone) unless revealed"""
from typing import Any, Dict, Optional

from sitebook.crypto import decrypt, mask_aadhaar, mask_phone
from sitebook.models import Worker


def _mask_or_plain(raw_value: Optional[str], reveal: bool, mask_fn) -> Optional[str]:
    plain = decrypt(raw_value) if raw_value else None
    if not plain:
        return None
    return plain if reveal else mask_fn(plain)


def worker_to_read_dict(worker: Worker, reveal_sensitive: bool = False) -> Dict[str, Any]:
    """Worker ORM -> API dict; KYC fields masked or plain depending on reveal_sensitive"""
    return {
        "id": worker.id,
        "full_name": worker.full_name,
        "phone_number": worker.phone_number,
        "skill_type": worker.skill_type,
        "daily_wage": worker.daily_wage,
        "status": worker.status,
        "address": worker.address,
        "aadhaar_number": _mask_or_plain(worker.aadhaar_number, reveal_sensitive, mask_aadhaar),
        "alternate_phone": _mask_or_plain(worker.alternate_phone, reveal_sensitive, mask_phone),
        "gender": worker.gender,
        "age": worker.age,
        "photo_url": worker.photo_url,
        "id_document_url": worker.id_document_url,
        "created_at": worker.created_at,
        "updated_at": worker.updated_at,
    }
